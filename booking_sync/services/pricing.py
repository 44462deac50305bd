"""
Availability & Pricing Calculator.

Nightly price = the seasonal rate covering the night (highest priority wins),
or the room's base price when no rate covers it. Availability counts the
pending/confirmed bookings that overlap the stay against the room's units and
checks the stay length against the room's min/max stay rules.

The ``quote_stay`` / ``check_availability`` / ``blocked_dates`` functions are
pure; the ``get_*`` wrappers load their inputs from the ledger.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Iterable, Optional
from uuid import UUID

import structlog
from sqlalchemy.engine import Engine

from booking_sync.db.readers.bookings import get_overlapping_bookings
from booking_sync.db.readers.rooms import get_room, get_seasonal_rates
from booking_sync.errors import NotFoundError, ValidationError
from booking_sync.metrics import pricing_queries
from booking_sync.models.enums import ACTIVE_BOOKING_STATUSES, InventoryMode
from booking_sync.records import BookingRecord, RateRecord, RoomRecord
from booking_sync.services.conflicts import intervals_overlap
from booking_sync.utils.datetime import iter_dates

logger = structlog.get_logger(__name__)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class NightlyPrice:
    date: date
    price: Decimal
    rate_name: Optional[str] = None


@dataclass(frozen=True)
class PriceQuote:
    room_id: UUID
    check_in: date
    check_out: date
    nights: tuple[NightlyPrice, ...]
    subtotal: Decimal
    currency: str

    @property
    def nights_count(self) -> int:
        return len(self.nights)


@dataclass(frozen=True)
class AvailabilityQuote:
    quote: PriceQuote
    total_units: int
    overlapping_bookings: int
    available_units: int
    meets_min_stay: bool
    meets_max_stay: bool
    available: bool


def validate_stay(check_in: date, check_out: date) -> None:
    """Raise ValidationError unless check_in is strictly before check_out."""
    if check_out <= check_in:
        raise ValidationError(
            f"check_out ({check_out.isoformat()}) must be after check_in ({check_in.isoformat()})"
        )


def nights_between(check_in: date, check_out: date) -> list[date]:
    """Nights of a stay: every date from check_in up to but excluding check_out."""
    return list(iter_dates(check_in, check_out))


def _rate_order(rate: RateRecord) -> tuple[int, datetime, str]:
    created = rate.created_at or _EPOCH
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    return (rate.priority, created, str(rate.id))


def select_rate(rates: Iterable[RateRecord], night: date) -> Optional[RateRecord]:
    """
    Pick the seasonal rate that prices ``night``.

    Among rates whose inclusive window covers the night, the highest priority
    wins; ties go to the most recently created rate, then to the greater id.

    Returns:
        Optional[RateRecord]: The winning rate, or None when no window covers the night.
    """
    matching = [r for r in rates if r.covers(night)]
    if not matching:
        return None
    return max(matching, key=_rate_order)


def quote_stay(
    room: RoomRecord, rates: Iterable[RateRecord], check_in: date, check_out: date
) -> PriceQuote:
    """
    Price every night of a stay.

    Args:
        room (RoomRecord): Room being priced.
        rates (Iterable[RateRecord]): Seasonal rates of the room.
        check_in (date): Arrival date.
        check_out (date): Departure date.

    Returns:
        PriceQuote: Per-night breakdown whose prices sum to ``subtotal``.

    Raises:
        ValidationError: If check_out is not after check_in.
    """
    validate_stay(check_in, check_out)
    room_rates = [r for r in rates if r.room_id == room.id]

    nights = []
    for night in nights_between(check_in, check_out):
        rate = select_rate(room_rates, night)
        if rate is None:
            nights.append(NightlyPrice(date=night, price=Decimal(room.base_price_per_night)))
        else:
            nights.append(
                NightlyPrice(date=night, price=Decimal(rate.price_per_night), rate_name=rate.name)
            )

    return PriceQuote(
        room_id=room.id,
        check_in=check_in,
        check_out=check_out,
        nights=tuple(nights),
        subtotal=sum((n.price for n in nights), Decimal("0")),
        currency=room.currency,
    )


def _active_overlaps(
    bookings: Iterable[BookingRecord], room_id: UUID, check_in: date, check_out: date
) -> list[BookingRecord]:
    return [
        b
        for b in bookings
        if b.room_id == room_id
        and b.status in ACTIVE_BOOKING_STATUSES
        and intervals_overlap(check_in, check_out, b.check_in, b.check_out)
    ]


def check_availability(
    room: RoomRecord,
    rates: Iterable[RateRecord],
    bookings: Iterable[BookingRecord],
    check_in: date,
    check_out: date,
) -> AvailabilityQuote:
    """
    Price a stay and decide whether it can be booked.

    Available means at least one unit is free across the stay and the stay
    length satisfies the room's min/max stay rules.

    Args:
        room (RoomRecord): Room being checked.
        rates (Iterable[RateRecord]): Seasonal rates of the room.
        bookings (Iterable[BookingRecord]): Existing bookings on the room.
        check_in (date): Arrival date.
        check_out (date): Departure date.

    Returns:
        AvailabilityQuote: Price quote plus unit and stay-rule checks.
    """
    quote = quote_stay(room, rates, check_in, check_out)
    overlapping = len(_active_overlaps(bookings, room.id, check_in, check_out))
    available_units = max(room.total_units - overlapping, 0)

    meets_min = quote.nights_count >= room.min_stay_nights
    meets_max = room.max_stay_nights is None or quote.nights_count <= room.max_stay_nights

    return AvailabilityQuote(
        quote=quote,
        total_units=room.total_units,
        overlapping_bookings=overlapping,
        available_units=available_units,
        meets_min_stay=meets_min,
        meets_max_stay=meets_max,
        available=available_units > 0 and meets_min and meets_max,
    )


def blocked_dates(
    room: RoomRecord, bookings: Iterable[BookingRecord], start: date, end: date
) -> list[date]:
    """
    Expand bookings into the dates a calendar should show as unavailable.

    Single-unit rooms (or any room with one unit) block every date touched by
    an active booking. Multi-unit rooms block a date only once the bookings
    touching it use up every unit.

    Args:
        room (RoomRecord): Room whose calendar is rendered.
        bookings (Iterable[BookingRecord]): Existing bookings on the room.
        start (date): First date of the calendar window.
        end (date): Day after the last date of the window.

    Returns:
        list[date]: Sorted unavailable dates inside [start, end).
    """
    validate_stay(start, end)
    usage: Counter[date] = Counter()
    for booking in _active_overlaps(bookings, room.id, start, end):
        for night in iter_dates(max(booking.check_in, start), min(booking.check_out, end)):
            usage[night] += 1

    single_unit = room.inventory_mode == InventoryMode.SINGLE_UNIT.value or room.total_units == 1
    threshold = 1 if single_unit else room.total_units
    return sorted(d for d, count in usage.items() if count >= threshold)


def _load_room(engine: Engine, tenant_id: UUID, room_id: UUID) -> RoomRecord:
    with engine.connect() as conn:
        room = get_room(conn, tenant_id, room_id)
    if room is None:
        raise NotFoundError(f"Room {room_id} not found")
    return room


def get_price_quote(
    engine: Engine, tenant_id: UUID, room_id: UUID, check_in: date, check_out: date
) -> PriceQuote:
    """Load a room and its seasonal rates and price the stay."""
    validate_stay(check_in, check_out)
    room = _load_room(engine, tenant_id, room_id)
    with engine.connect() as conn:
        rates = get_seasonal_rates(conn, tenant_id, room_id, check_in, check_out)

    quote = quote_stay(room, rates, check_in, check_out)
    pricing_queries.labels(query="pricing").inc()
    logger.info(
        "price_quoted",
        room_id=str(room_id),
        nights=quote.nights_count,
        subtotal=str(quote.subtotal),
    )
    return quote


def get_availability(
    engine: Engine, tenant_id: UUID, room_id: UUID, check_in: date, check_out: date
) -> AvailabilityQuote:
    """Load a room, its rates and overlapping bookings and check the stay."""
    validate_stay(check_in, check_out)
    room = _load_room(engine, tenant_id, room_id)
    with engine.connect() as conn:
        rates = get_seasonal_rates(conn, tenant_id, room_id, check_in, check_out)
        bookings = get_overlapping_bookings(conn, tenant_id, room_id, check_in, check_out)

    result = check_availability(room, rates, bookings, check_in, check_out)
    pricing_queries.labels(query="availability").inc()
    logger.info(
        "availability_checked",
        room_id=str(room_id),
        available=result.available,
        available_units=result.available_units,
    )
    return result


def get_blocked_dates(
    engine: Engine, tenant_id: UUID, room_id: UUID, start: date, end: date
) -> list[date]:
    """Load a room's active bookings in a window and expand them to blocked dates."""
    validate_stay(start, end)
    room = _load_room(engine, tenant_id, room_id)
    with engine.connect() as conn:
        bookings = get_overlapping_bookings(conn, tenant_id, room_id, start, end)
    pricing_queries.labels(query="blocked_dates").inc()
    return blocked_dates(room, bookings, start, end)
