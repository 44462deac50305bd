"""
Plain value types passed between the ledger readers and the engine.

Readers convert SQLAlchemy rows into these frozen dataclasses so the pricing
calculator, conflict detector and reconciler stay pure functions over ordinary
Python values and can be tested without a database.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional
from uuid import UUID


@dataclass(frozen=True)
class RoomRecord:
    id: UUID
    tenant_id: UUID
    name: str
    base_price_per_night: Decimal
    currency: str
    total_units: int = 1
    inventory_mode: str = "single_unit"
    min_stay_nights: int = 1
    max_stay_nights: Optional[int] = None
    max_guests: int = 2

    def __post_init__(self) -> None:
        if self.total_units < 1:
            raise ValueError(f"Room {self.id} must have at least one unit")


@dataclass(frozen=True)
class RateRecord:
    id: UUID
    room_id: UUID
    name: str
    start_date: date
    end_date: date
    price_per_night: Decimal
    priority: int = 0
    created_at: Optional[datetime] = None

    def covers(self, night: date) -> bool:
        """True if ``night`` falls inside the inclusive [start_date, end_date] window."""
        return self.start_date <= night <= self.end_date


@dataclass(frozen=True)
class BookingRecord:
    id: UUID
    tenant_id: UUID
    room_id: UUID
    guest_name: str
    check_in: date
    check_out: date
    status: str
    source: str
    external_id: Optional[str] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class ExternalReservation:
    """One VEVENT from a channel's calendar feed, in canonical form."""

    external_id: str
    guest_name: str
    check_in: date
    check_out: date
    notes: Optional[str] = None


@dataclass(frozen=True)
class IntegrationCredentials:
    """
    Secret material of an integration.

    Generated once by :meth:`generate` when the integration is created and
    stored as-is. Nothing in the engine mutates it; replacing credentials means
    creating a new value.
    """

    webhook_secret: str
    values: tuple[tuple[str, str], ...] = ()

    @classmethod
    def generate(cls, supplied: Optional[dict[str, str]] = None) -> "IntegrationCredentials":
        items = tuple(sorted((k, str(v)) for k, v in (supplied or {}).items() if v))
        return cls(webhook_secret=secrets.token_urlsafe(32), values=items)

    @classmethod
    def from_stored(
        cls, values: Optional[dict[str, Any]], webhook_secret: Optional[str]
    ) -> "IntegrationCredentials":
        """Rebuild the credentials read back from an integration row."""
        items = tuple(sorted((k, str(v)) for k, v in (values or {}).items()))
        return cls(webhook_secret=webhook_secret or "", values=items)

    def as_dict(self) -> dict[str, str]:
        return dict(self.values)

    def masked(self) -> dict[str, str]:
        """Credential values reduced to their first four characters."""
        return {k: (v[:4] + "****" if len(v) > 4 else "****") for k, v in self.values}


@dataclass(frozen=True)
class IntegrationRecord:
    id: UUID
    tenant_id: UUID
    platform: str
    display_name: Optional[str] = None
    is_active: bool = True
    is_connected: bool = False
    last_synced_at: Optional[datetime] = None
    last_error: Optional[str] = None
    auto_sync_enabled: bool = False
    sync_interval_minutes: int = 60


@dataclass(frozen=True)
class MappingWithRoom:
    """A room mapping, optionally joined with the mapped room's display name."""

    id: UUID
    tenant_id: UUID
    integration_id: UUID
    room_id: UUID
    external_room_id: str
    ical_url: Optional[str] = None
    external_room_name: Optional[str] = None
    room_name: Optional[str] = None
    last_ical_sync: Optional[datetime] = None

    @property
    def label(self) -> str:
        return self.room_name or self.external_room_name or self.external_room_id


@dataclass(frozen=True)
class SyncLogRecord:
    id: UUID
    integration_id: UUID
    sync_type: str
    direction: str
    status: str
    started_at: datetime
    completed_at: Optional[datetime] = None
    records_processed: int = 0
    records_created: int = 0
    records_updated: int = 0
    records_skipped: int = 0
    records_failed: int = 0
    error_message: Optional[str] = None
    details: dict[str, Any] = field(default_factory=dict)
