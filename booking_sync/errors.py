"""
Exception taxonomy for the availability and channel-sync engine.

Route handlers translate these into HTTP status codes; the sync orchestrator
catches the feed and persistence errors per mapping so one bad calendar never
aborts a whole run.
"""

from __future__ import annotations

from typing import Optional


class BookingSyncError(Exception):
    """Base exception for engine errors."""

    pass


class ValidationError(BookingSyncError):
    """Inverted or malformed date range, guest count above capacity, or unavailable stay."""

    pass


class NotFoundError(BookingSyncError):
    """Unknown room, integration or room mapping."""

    pass


class ExternalFeedError(BookingSyncError):
    """Fetching or parsing one external calendar feed failed."""

    def __init__(self, message: str, url: Optional[str] = None) -> None:
        super().__init__(message)
        self.url = url


class PersistenceError(BookingSyncError):
    """A ledger write for a single record failed."""

    pass


class SyncInProgressError(BookingSyncError):
    """Another sync run currently holds the lease for this integration."""

    pass


class AlreadyExistsError(BookingSyncError):
    """The tenant already has an integration for this platform."""

    pass
