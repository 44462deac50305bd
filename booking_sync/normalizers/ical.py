import json
import re
from dataclasses import asdict
from datetime import date, datetime, timedelta
from typing import Any, Optional

import structlog
from icalendar import Calendar

from booking_sync.config import DEBUG
from booking_sync.errors import ExternalFeedError
from booking_sync.records import ExternalReservation

logger = structlog.get_logger(__name__)

# Prefixes channels put in front of the guest name in SUMMARY
_SUMMARY_PREFIXES = re.compile(
    r"^(Airbnb Guest|Booking\.com|Reserved|Blocked|Not available)\s*-\s*", re.IGNORECASE
)
_BLOCK_MARKERS = ("blocked", "not available", "unavailable")

DEFAULT_GUEST_NAME = "Unknown Guest"


def _as_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    raise ValueError(f"Unsupported date value: {value!r}")


def _is_block(summary: str) -> bool:
    lowered = summary.lower().strip()
    return lowered == "reserved" or any(marker in lowered for marker in _BLOCK_MARKERS)


def _guest_name(summary: str) -> str:
    return _SUMMARY_PREFIXES.sub("", summary).strip() or DEFAULT_GUEST_NAME


def _event_to_reservation(event: Any, platform: Optional[str]) -> Optional[ExternalReservation]:
    summary = str(event.get("summary", "") or "")
    if _is_block(summary):
        return None

    dtstart = event.get("dtstart")
    if dtstart is None:
        logger.warning("Skipping event without DTSTART", uid=str(event.get("uid", "")))
        return None

    check_in = _as_date(dtstart.dt)
    dtend = event.get("dtend")
    check_out = _as_date(dtend.dt) if dtend is not None else check_in + timedelta(days=1)

    if check_out <= check_in:
        logger.warning(
            "Skipping event with empty stay",
            uid=str(event.get("uid", "")),
            check_in=check_in.isoformat(),
        )
        return None

    guest_name = _guest_name(summary) if summary else DEFAULT_GUEST_NAME
    description = event.get("description")
    notes = str(description).replace("\\n", "\n") if description else None

    uid = str(event.get("uid", "") or "").strip()
    external_id = uid or f"{platform or 'ical'}-{check_in.isoformat()}-{guest_name}"

    # Instances of a recurring event share its UID
    recurrence_id = event.get("recurrence-id")
    if uid and recurrence_id is not None:
        external_id = f"{uid}#{recurrence_id.dt.isoformat()}"

    return ExternalReservation(
        external_id=external_id,
        guest_name=guest_name,
        check_in=check_in,
        check_out=check_out,
        notes=notes,
    )


def parse_feed(ical_text: str, platform: Optional[str] = None) -> list[ExternalReservation]:
    """
    Parse iCalendar text into canonical external reservations.

    Each VEVENT becomes one reservation. Blocked/unavailable placeholders are
    skipped, as are events without a start date or with an empty stay. The
    external id is the event UID, so an unchanged event parses to the same id
    on every fetch. Instances of a recurring event carry a RECURRENCE-ID and
    get ``"{uid}#{recurrence_id}"``; events without a UID fall back to
    ``"{platform}-{check_in}-{guest_name}"``.

    Args:
        ical_text: Raw feed body.
        platform: Channel name, used in fallback ids.

    Returns:
        Reservations in feed order.

    Raises:
        ExternalFeedError: If the body is not a parseable calendar.
    """
    try:
        calendar = Calendar.from_ical(ical_text)
    except Exception as err:
        raise ExternalFeedError(f"Failed to parse iCal data: {err}") from err

    if getattr(calendar, "name", None) != "VCALENDAR":
        raise ExternalFeedError("Failed to parse iCal data: missing VCALENDAR")

    reservations = []
    for event in calendar.walk("VEVENT"):
        try:
            reservation = _event_to_reservation(event, platform)
        except (ValueError, TypeError) as err:
            logger.warning("Error parsing event", uid=str(event.get("uid", "")), error=str(err))
            continue
        if reservation is not None:
            reservations.append(reservation)

    if DEBUG and reservations:
        logger.debug(
            "Sample reservation:\n%s", json.dumps(asdict(reservations[0]), indent=2, default=str)
        )

    logger.info("Parsed %d reservations from iCal feed", len(reservations))
    return reservations
