from datetime import date
from unittest.mock import MagicMock, patch

from booking_sync.errors import ExternalFeedError
from booking_sync.pollers.feeds import poll_feed


@patch("booking_sync.pollers.feeds.fetch_feed")
def test_poll_feed_returns_error_instead_of_raising(mock_fetch: MagicMock) -> None:
    """
    Ensure an unreachable feed becomes an error result.
    """
    mock_fetch.side_effect = ExternalFeedError("Calendar feed returned HTTP 503")

    result = poll_feed("https://example.com/cal.ics", platform="booking_com")

    assert not result.ok
    assert result.records == []
    assert "HTTP 503" in (result.error or "")


@patch("booking_sync.pollers.feeds.fetch_feed")
def test_poll_feed_returns_error_for_unparseable_body(mock_fetch: MagicMock) -> None:
    mock_fetch.return_value = "<html>maintenance</html>"

    result = poll_feed("https://example.com/cal.ics")

    assert not result.ok
    assert "Failed to parse iCal data" in (result.error or "")


def test_poll_feed_parses_demo_calendar() -> None:
    """
    Ensure the bundled Booking.com sample calendar parses to its two stays.
    """
    result = poll_feed("demo://booking_com", platform="booking_com")

    assert result.ok
    assert [r.external_id for r in result.records] == [
        "demo-booking-2001@booking.com",
        "demo-booking-2002@booking.com",
    ]
    assert result.records[0].check_in == date(2025, 3, 15)
    assert result.records[0].guest_name == "Sarah Naidoo"


def test_poll_feed_demo_airbnb_skips_block() -> None:
    result = poll_feed("demo://airbnb", platform="airbnb")

    assert result.ok
    assert len(result.records) == 2
