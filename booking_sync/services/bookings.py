"""
Direct booking intake and the prospective-stay conflict query.

Direct bookings are priced by the calculator, checked against the room's
units and stay rules, and enter the ledger as ``pending`` with
``source="direct"``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional
from uuid import UUID

import structlog
from sqlalchemy.engine import Engine

from booking_sync.db.readers.bookings import get_overlapping_bookings
from booking_sync.db.readers.rooms import get_room, get_seasonal_rates
from booking_sync.db.writers.bookings import insert_booking
from booking_sync.errors import NotFoundError, ValidationError
from booking_sync.models.enums import BookingStatus
from booking_sync.records import BookingRecord
from booking_sync.services.pricing import check_availability, validate_stay

logger = structlog.get_logger(__name__)

DIRECT_SOURCE = "direct"

# Every status except cancelled occupies the calendar for conflict purposes
NON_CANCELLED_STATUSES = tuple(s.value for s in BookingStatus if s is not BookingStatus.CANCELLED)


@dataclass(frozen=True)
class DirectBooking:
    booking_id: UUID
    room_id: UUID
    check_in: date
    check_out: date
    nights: int
    total_amount: Decimal
    currency: str
    status: str


def create_direct_booking(
    engine: Engine,
    tenant_id: UUID,
    room_id: UUID,
    guest_name: str,
    check_in: date,
    check_out: date,
    guests: Optional[int] = None,
    guest_email: Optional[str] = None,
    guest_phone: Optional[str] = None,
    notes: Optional[str] = None,
) -> DirectBooking:
    """
    Validate, price and store a booking made directly with the property.

    The availability check and the insert share one transaction.

    Args:
        engine (Engine): SQLAlchemy engine.
        tenant_id (UUID): Owning tenant.
        room_id (UUID): Room to book.
        guest_name (str): Guest display name.
        check_in (date): Arrival date.
        check_out (date): Departure date.
        guests (Optional[int]): Number of guests, checked against max_guests.
        guest_email (Optional[str]): Guest email.
        guest_phone (Optional[str]): Guest phone number.
        notes (Optional[str]): Free text from the guest.

    Returns:
        DirectBooking: The stored booking with its priced total.

    Raises:
        ValidationError: Bad dates, too many guests, or the room is unavailable.
        NotFoundError: Unknown room.
    """
    validate_stay(check_in, check_out)
    if not guest_name or not guest_name.strip():
        raise ValidationError("guest_name is required")

    with engine.begin() as conn:
        room = get_room(conn, tenant_id, room_id)
        if room is None:
            raise NotFoundError(f"Room {room_id} not found")
        if guests is not None and guests > room.max_guests:
            raise ValidationError(f"Room {room.name} allows at most {room.max_guests} guests")

        rates = get_seasonal_rates(conn, tenant_id, room_id, check_in, check_out)
        overlapping = get_overlapping_bookings(conn, tenant_id, room_id, check_in, check_out)
        availability = check_availability(room, rates, overlapping, check_in, check_out)

        if not availability.meets_min_stay:
            raise ValidationError(f"Minimum stay is {room.min_stay_nights} night(s)")
        if not availability.meets_max_stay:
            raise ValidationError(f"Maximum stay is {room.max_stay_nights} night(s)")
        if not availability.available:
            raise ValidationError(f"Room {room.name} is not available for the selected dates")

        quote = availability.quote
        booking_id = insert_booking(
            conn,
            tenant_id=tenant_id,
            room_id=room_id,
            guest_name=guest_name.strip(),
            check_in=check_in,
            check_out=check_out,
            status=BookingStatus.PENDING.value,
            source=DIRECT_SOURCE,
            total_amount=quote.subtotal,
            currency=quote.currency,
            notes=notes,
            guests=guests,
            guest_email=guest_email,
            guest_phone=guest_phone,
        )

    logger.info(
        "direct_booking_created",
        booking_id=str(booking_id),
        room_id=str(room_id),
        nights=quote.nights_count,
        total=str(quote.subtotal),
    )
    return DirectBooking(
        booking_id=booking_id,
        room_id=room_id,
        check_in=check_in,
        check_out=check_out,
        nights=quote.nights_count,
        total_amount=quote.subtotal,
        currency=quote.currency,
        status=BookingStatus.PENDING.value,
    )


def check_booking_conflicts(
    engine: Engine,
    tenant_id: UUID,
    room_id: UUID,
    check_in: date,
    check_out: date,
    exclude_booking_id: Optional[UUID] = None,
) -> list[BookingRecord]:
    """Non-cancelled bookings on a room that overlap a prospective stay."""
    validate_stay(check_in, check_out)
    with engine.connect() as conn:
        return get_overlapping_bookings(
            conn,
            tenant_id,
            room_id,
            check_in,
            check_out,
            statuses=NON_CANCELLED_STATUSES,
            exclude_booking_id=exclude_booking_id,
        )
