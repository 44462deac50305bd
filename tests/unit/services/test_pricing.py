from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

import pytest

from booking_sync.errors import ValidationError
from booking_sync.records import BookingRecord, RateRecord, RoomRecord
from booking_sync.services.pricing import (
    blocked_dates,
    check_availability,
    nights_between,
    quote_stay,
    select_rate,
)

TENANT = uuid4()


def _room(total_units: int = 1, inventory_mode: str = "single_unit", **kwargs) -> RoomRecord:
    return RoomRecord(
        id=kwargs.pop("id", uuid4()),
        tenant_id=TENANT,
        name="Sea View",
        base_price_per_night=Decimal("1000"),
        currency="ZAR",
        total_units=total_units,
        inventory_mode=inventory_mode,
        **kwargs,
    )


def _rate(
    room: RoomRecord,
    start: date,
    end: date,
    price: str,
    priority: int = 0,
    name: str = "Season",
    created_at: Optional[datetime] = None,
    rate_id: Optional[UUID] = None,
) -> RateRecord:
    return RateRecord(
        id=rate_id or uuid4(),
        room_id=room.id,
        name=name,
        start_date=start,
        end_date=end,
        price_per_night=Decimal(price),
        priority=priority,
        created_at=created_at,
    )


def _booking(room: RoomRecord, check_in: date, check_out: date, status: str = "confirmed") -> BookingRecord:
    return BookingRecord(
        id=uuid4(),
        tenant_id=TENANT,
        room_id=room.id,
        guest_name="Guest",
        check_in=check_in,
        check_out=check_out,
        status=status,
        source="direct",
    )


@pytest.mark.unit
def test_peak_rate_example() -> None:
    """Three nights inside a peak window are all priced at the peak rate."""
    room = _room()
    peak = _rate(room, date(2025, 12, 20), date(2025, 12, 26), "1500", priority=10, name="Peak")

    quote = quote_stay(room, [peak], date(2025, 12, 24), date(2025, 12, 27))

    assert [n.date for n in quote.nights] == [
        date(2025, 12, 24),
        date(2025, 12, 25),
        date(2025, 12, 26),
    ]
    assert all(n.price == Decimal("1500") for n in quote.nights)
    assert all(n.rate_name == "Peak" for n in quote.nights)
    assert quote.subtotal == Decimal("4500")
    assert quote.nights_count == 3


@pytest.mark.unit
def test_nights_outside_windows_use_base_price() -> None:
    room = _room()
    peak = _rate(room, date(2025, 12, 20), date(2025, 12, 26), "1500", priority=10)

    quote = quote_stay(room, [peak], date(2025, 12, 25), date(2025, 12, 29))

    assert [n.price for n in quote.nights] == [
        Decimal("1500"),
        Decimal("1500"),
        Decimal("1000"),
        Decimal("1000"),
    ]
    assert quote.nights[-1].rate_name is None
    assert quote.subtotal == sum(n.price for n in quote.nights)


@pytest.mark.unit
def test_higher_priority_window_wins() -> None:
    room = _room()
    low = _rate(room, date(2025, 7, 1), date(2025, 7, 31), "800", priority=1, name="Winter")
    high = _rate(room, date(2025, 7, 10), date(2025, 7, 12), "2000", priority=5, name="Festival")

    assert select_rate([low, high], date(2025, 7, 11)) is high
    assert select_rate([low, high], date(2025, 7, 13)) is low
    assert select_rate([low, high], date(2025, 8, 1)) is None


@pytest.mark.unit
def test_priority_tie_goes_to_newest_rate_then_greater_id() -> None:
    room = _room()
    older = _rate(
        room, date(2025, 7, 1), date(2025, 7, 31), "800",
        created_at=datetime(2025, 1, 1, tzinfo=timezone.utc),
    )
    newer = _rate(
        room, date(2025, 7, 1), date(2025, 7, 31), "900",
        created_at=datetime(2025, 2, 1, tzinfo=timezone.utc),
    )
    assert select_rate([newer, older], date(2025, 7, 5)) is newer
    assert select_rate([older, newer], date(2025, 7, 5)) is newer

    same_time = datetime(2025, 3, 1, tzinfo=timezone.utc)
    a = _rate(room, date(2025, 7, 1), date(2025, 7, 31), "700", created_at=same_time,
              rate_id=UUID("00000000-0000-0000-0000-000000000001"))
    b = _rate(room, date(2025, 7, 1), date(2025, 7, 31), "750", created_at=same_time,
              rate_id=UUID("00000000-0000-0000-0000-000000000002"))
    assert select_rate([a, b], date(2025, 7, 5)) is b
    assert select_rate([b, a], date(2025, 7, 5)) is b


@pytest.mark.unit
def test_rate_window_end_date_is_inclusive() -> None:
    room = _room()
    rate = _rate(room, date(2025, 12, 20), date(2025, 12, 26), "1500")

    assert select_rate([rate], date(2025, 12, 26)) is rate
    assert select_rate([rate], date(2025, 12, 27)) is None


@pytest.mark.unit
def test_rates_of_other_rooms_are_ignored() -> None:
    room = _room()
    other = _room()
    rate = _rate(other, date(2025, 12, 20), date(2025, 12, 26), "1500", priority=99)

    quote = quote_stay(room, [rate], date(2025, 12, 21), date(2025, 12, 22))

    assert quote.subtotal == Decimal("1000")


@pytest.mark.unit
@pytest.mark.parametrize(
    "check_in, check_out",
    [(date(2025, 1, 10), date(2025, 1, 10)), (date(2025, 1, 12), date(2025, 1, 10))],
)
def test_empty_or_inverted_stay_is_rejected(check_in: date, check_out: date) -> None:
    with pytest.raises(ValidationError):
        quote_stay(_room(), [], check_in, check_out)


@pytest.mark.unit
def test_nights_between_excludes_checkout_day() -> None:
    assert nights_between(date(2025, 2, 27), date(2025, 3, 2)) == [
        date(2025, 2, 27),
        date(2025, 2, 28),
        date(2025, 3, 1),
    ]


@pytest.mark.unit
def test_single_unit_room_with_overlap_is_unavailable() -> None:
    room = _room(total_units=1)
    bookings = [_booking(room, date(2025, 5, 1), date(2025, 5, 4), status="pending")]

    result = check_availability(room, [], bookings, date(2025, 5, 3), date(2025, 5, 5))

    assert result.overlapping_bookings == 1
    assert result.available_units == 0
    assert result.available is False


@pytest.mark.unit
def test_cancelled_and_abandoned_bookings_do_not_hold_inventory() -> None:
    room = _room(total_units=1)
    bookings = [
        _booking(room, date(2025, 5, 1), date(2025, 5, 4), status="cancelled"),
        _booking(room, date(2025, 5, 1), date(2025, 5, 4), status="cart_abandoned"),
        _booking(room, date(2025, 5, 1), date(2025, 5, 4), status="payment_failed"),
    ]

    result = check_availability(room, [], bookings, date(2025, 5, 2), date(2025, 5, 3))

    assert result.available_units == 1
    assert result.available is True


@pytest.mark.unit
def test_multi_unit_room_counts_free_units() -> None:
    room = _room(total_units=3, inventory_mode="multi_unit")
    bookings = [
        _booking(room, date(2025, 5, 1), date(2025, 5, 4)),
        _booking(room, date(2025, 5, 2), date(2025, 5, 6)),
    ]

    result = check_availability(room, [], bookings, date(2025, 5, 3), date(2025, 5, 5))

    assert result.total_units == 3
    assert result.available_units == 1
    assert result.available is True


@pytest.mark.unit
def test_stay_length_rules() -> None:
    room = _room(min_stay_nights=2, max_stay_nights=5)

    too_short = check_availability(room, [], [], date(2025, 6, 1), date(2025, 6, 2))
    too_long = check_availability(room, [], [], date(2025, 6, 1), date(2025, 6, 8))
    just_right = check_availability(room, [], [], date(2025, 6, 1), date(2025, 6, 3))

    assert not too_short.meets_min_stay and not too_short.available
    assert not too_long.meets_max_stay and not too_long.available
    assert just_right.available
    assert just_right.available_units == 1


@pytest.mark.unit
def test_blocked_dates_single_unit_blocks_every_booked_night() -> None:
    room = _room()
    bookings = [
        _booking(room, date(2025, 5, 1), date(2025, 5, 3)),
        _booking(room, date(2025, 5, 10), date(2025, 5, 11), status="cancelled"),
    ]

    assert blocked_dates(room, bookings, date(2025, 5, 1), date(2025, 5, 31)) == [
        date(2025, 5, 1),
        date(2025, 5, 2),
    ]


@pytest.mark.unit
def test_blocked_dates_multi_unit_blocks_only_full_nights() -> None:
    room = _room(total_units=2, inventory_mode="multi_unit")
    bookings = [
        _booking(room, date(2025, 5, 1), date(2025, 5, 4)),
        _booking(room, date(2025, 5, 3), date(2025, 5, 5)),
    ]

    assert blocked_dates(room, bookings, date(2025, 5, 1), date(2025, 5, 31)) == [date(2025, 5, 3)]


@pytest.mark.unit
def test_blocked_dates_are_clipped_to_window() -> None:
    room = _room()
    bookings = [_booking(room, date(2025, 4, 28), date(2025, 5, 3))]

    assert blocked_dates(room, bookings, date(2025, 5, 1), date(2025, 5, 2)) == [date(2025, 5, 1)]
