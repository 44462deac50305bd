"""
Client for fetching external calendar (iCal) feeds published by booking channels.

Each fetch is a single GET; failed fetches are not retried here. The next
manual or scheduled sync run is the retry.
"""

import time
from pathlib import Path

import requests
import structlog

from booking_sync.config import FEED_TIMEOUT_SECONDS, FEED_USER_AGENT
from booking_sync.errors import ExternalFeedError
from booking_sync.metrics import feed_latency

logger = structlog.get_logger(__name__)

DEMO_SCHEME = "demo://"
DEMO_DATA_DIR = Path(__file__).resolve().parent.parent / "data"
DEMO_CALENDARS = {
    "airbnb": "demo-ical-airbnb.ics",
    "booking": "demo-ical-booking.ics",
    "booking_com": "demo-ical-booking.ics",
}


def _read_demo_feed(url: str) -> str:
    """
    Read a bundled sample calendar for ``demo://<platform>`` URLs.

    Raises:
        ExternalFeedError: If the platform has no sample calendar.
    """
    platform = url[len(DEMO_SCHEME):].strip("/").lower()
    filename = DEMO_CALENDARS.get(platform)
    if filename is None:
        raise ExternalFeedError(
            f"Unknown demo platform: {platform}. Available: {', '.join(sorted(DEMO_CALENDARS))}",
            url=url,
        )
    return (DEMO_DATA_DIR / filename).read_text(encoding="utf-8")


def fetch_feed(url: str, timeout: float = FEED_TIMEOUT_SECONDS) -> str:
    """
    Fetch the raw iCalendar text of a feed.

    Args:
        url (str): Feed URL (http, https or demo://).
        timeout (float): Request timeout in seconds.

    Returns:
        str: Response body.

    Raises:
        ExternalFeedError: On timeouts, connection errors and non-2xx responses.
    """
    if url.startswith(DEMO_SCHEME):
        return _read_demo_feed(url)

    headers = {
        "User-Agent": FEED_USER_AGENT,
        "Accept": "text/calendar, application/calendar+json, text/plain",
    }

    try:
        logger.debug("Requesting calendar feed %s", url)
        start_time = time.time()
        res = requests.get(url, headers=headers, timeout=timeout)
        feed_latency.observe(time.time() - start_time)

        res.raise_for_status()
    except requests.Timeout as err:
        raise ExternalFeedError(f"Timed out fetching calendar feed after {timeout}s", url=url) from err
    except requests.HTTPError as err:
        status_code = err.response.status_code if err.response is not None else "unknown"
        raise ExternalFeedError(f"Calendar feed returned HTTP {status_code}", url=url) from err
    except requests.RequestException as err:
        raise ExternalFeedError(f"Failed to fetch calendar feed: {err}", url=url) from err

    return res.text
