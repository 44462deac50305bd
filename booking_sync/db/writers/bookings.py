from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional
from uuid import UUID

import structlog
from sqlalchemy import insert, update
from sqlalchemy.engine import Connection

from booking_sync.models.bookings import Booking
from booking_sync.utils.datetime import utc_now

logger = structlog.get_logger(__name__)


def insert_booking(
    conn: Connection,
    tenant_id: UUID,
    room_id: UUID,
    guest_name: str,
    check_in: date,
    check_out: date,
    status: str,
    source: str,
    total_amount: Decimal = Decimal("0"),
    currency: str = "ZAR",
    external_id: Optional[str] = None,
    synced_at: Optional[datetime] = None,
    notes: Optional[str] = None,
    **extra: Any,
) -> UUID:
    """
    Insert one booking into the ledger.

    Args:
        conn (Connection): SQLAlchemy DB connection (within a transaction).
        tenant_id (UUID): Owning tenant.
        room_id (UUID): Booked room.
        guest_name (str): Guest display name.
        check_in (date): Arrival date (inclusive).
        check_out (date): Departure date (exclusive).
        status (str): Initial booking status.
        source (str): Channel identifier ("direct", "airbnb", ...).
        total_amount (Decimal): Stay total.
        currency (str): ISO currency code.
        external_id (Optional[str]): Feed event id for channel bookings.
        synced_at (Optional[datetime]): When the feed last reported this booking.
        notes (Optional[str]): Free text, may carry a conflict annotation.
        **extra: Optional columns (guest_email, guest_phone, guests, payment_status).

    Returns:
        UUID: ID of the new booking.
    """
    now = utc_now()
    result = conn.execute(
        insert(Booking)
        .values(
            tenant_id=tenant_id,
            room_id=room_id,
            guest_name=guest_name,
            check_in=check_in,
            check_out=check_out,
            status=status,
            source=source,
            total_amount=total_amount,
            currency=currency,
            external_id=external_id,
            synced_at=synced_at,
            notes=notes,
            created_at=now,
            updated_at=now,
            **extra,
        )
    )
    booking_id: UUID = result.inserted_primary_key[0]
    return booking_id


def update_synced_booking(
    conn: Connection,
    tenant_id: UUID,
    booking_id: UUID,
    guest_name: str,
    check_in: date,
    check_out: date,
    notes: Optional[str],
    synced_at: datetime,
) -> None:
    """
    Overwrite the feed-owned fields of a previously ingested booking.

    The external calendar is the source of truth on refresh, so guest name,
    dates and notes are replaced unconditionally. Status is left alone.

    Args:
        conn (Connection): SQLAlchemy DB connection.
        tenant_id (UUID): Owning tenant.
        booking_id (UUID): Booking to update.
        guest_name (str): Guest name from the feed.
        check_in (date): Arrival date from the feed.
        check_out (date): Departure date from the feed.
        notes (Optional[str]): Description from the feed.
        synced_at (datetime): Time of this sync.
    """
    conn.execute(
        update(Booking)
        .where(Booking.id == booking_id, Booking.tenant_id == tenant_id)
        .values(
            guest_name=guest_name,
            check_in=check_in,
            check_out=check_out,
            notes=notes,
            synced_at=synced_at,
            updated_at=synced_at,
        )
    )
