from datetime import date
from typing import Any, Iterable, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.engine import Connection

from booking_sync.models.bookings import Booking
from booking_sync.models.enums import ACTIVE_BOOKING_STATUSES, BookingStatus
from booking_sync.records import BookingRecord


def _to_record(row: Any) -> BookingRecord:
    return BookingRecord(
        id=row.id,
        tenant_id=row.tenant_id,
        room_id=row.room_id,
        guest_name=row.guest_name,
        check_in=row.check_in,
        check_out=row.check_out,
        status=row.status,
        source=row.source,
        external_id=row.external_id,
        notes=row.notes,
    )


def get_booking_by_external_id(
    conn: Connection, tenant_id: UUID, external_id: str
) -> Optional[BookingRecord]:
    """
    Look up a channel-synced booking by its feed event id.

    ``external_id`` is unique per tenant, so at most one row matches.

    Args:
        conn (Connection): SQLAlchemy DB connection.
        tenant_id (UUID): Owning tenant.
        external_id (str): Stable id derived from the feed event.

    Returns:
        Optional[BookingRecord]: The booking, or None if it was never ingested.
    """
    row = conn.execute(
        select(Booking).where(Booking.tenant_id == tenant_id, Booking.external_id == external_id)
    ).fetchone()
    return _to_record(row) if row else None


def get_non_cancelled_bookings(
    conn: Connection, tenant_id: UUID, room_id: UUID
) -> list[BookingRecord]:
    """
    Fetch every booking on a room that is not cancelled.

    This is the snapshot the reconciler checks each new external reservation
    against; it is re-queried per record so earlier inserts in the same run
    are visible.
    """
    rows = conn.execute(
        select(Booking)
        .where(
            Booking.tenant_id == tenant_id,
            Booking.room_id == room_id,
            Booking.status != BookingStatus.CANCELLED.value,
        )
        .order_by(Booking.check_in, Booking.check_out)
    ).fetchall()
    return [_to_record(r) for r in rows]


def get_overlapping_bookings(
    conn: Connection,
    tenant_id: UUID,
    room_id: UUID,
    check_in: date,
    check_out: date,
    statuses: Iterable[str] = ACTIVE_BOOKING_STATUSES,
    exclude_booking_id: Optional[UUID] = None,
) -> list[BookingRecord]:
    """
    Fetch bookings on a room whose stay overlaps [check_in, check_out).

    Overlap is the half-open test: existing.check_in < check_out AND
    existing.check_out > check_in.

    Args:
        conn (Connection): SQLAlchemy DB connection.
        tenant_id (UUID): Owning tenant.
        room_id (UUID): Room ID.
        check_in (date): Start of the window (inclusive).
        check_out (date): End of the window (exclusive).
        statuses (Iterable[str]): Booking statuses to include.
        exclude_booking_id (Optional[UUID]): Booking to leave out, e.g. the one being edited.

    Returns:
        list[BookingRecord]: Overlapping bookings ordered by check-in.
    """
    stmt = select(Booking).where(
        Booking.tenant_id == tenant_id,
        Booking.room_id == room_id,
        Booking.status.in_(list(statuses)),
        Booking.check_in < check_out,
        Booking.check_out > check_in,
    )
    if exclude_booking_id is not None:
        stmt = stmt.where(Booking.id != exclude_booking_id)

    rows = conn.execute(stmt.order_by(Booking.check_in, Booking.check_out)).fetchall()
    return [_to_record(r) for r in rows]
