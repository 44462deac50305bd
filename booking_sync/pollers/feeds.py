from dataclasses import dataclass, field
from typing import Optional

import structlog

from booking_sync.errors import ExternalFeedError
from booking_sync.metrics import feed_fetches
from booking_sync.network.client import fetch_feed
from booking_sync.normalizers.ical import parse_feed
from booking_sync.records import ExternalReservation

logger = structlog.get_logger(__name__)


@dataclass
class FeedResult:
    """Outcome of fetching and parsing one feed: either records or an error message."""

    url: str
    records: list[ExternalReservation] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def poll_feed(url: str, platform: Optional[str] = None) -> FeedResult:
    """
    Fetch and parse one calendar feed without touching the ledger.

    Failures are returned in ``FeedResult.error`` instead of being raised, so a
    caller iterating over many feeds never has to guard each call.

    Args:
        url (str): Feed URL.
        platform (Optional[str]): Channel the feed belongs to.

    Returns:
        FeedResult: Parsed reservations, or the error that stopped the fetch.
    """
    label = platform or "ical"
    try:
        text = fetch_feed(url)
        records = parse_feed(text, platform=platform)
    except ExternalFeedError as err:
        feed_fetches.labels(platform=label, status="failure").inc()
        logger.warning("feed_fetch_failed", url=url, platform=label, error=str(err))
        return FeedResult(url=url, error=str(err))

    feed_fetches.labels(platform=label, status="success").inc()
    logger.info("feed_fetched", url=url, platform=label, records=len(records))
    return FeedResult(url=url, records=records)
