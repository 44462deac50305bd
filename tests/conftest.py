"""
Shared fixtures for the test suite.

Configuration is read from the environment at import time, so the required
variables are set before any booking_sync module is imported.
"""

from __future__ import annotations

import os

os.environ.setdefault("DATABASE_URL", "sqlite:///./.pytest-booking-sync.db")
os.environ.setdefault("ALLOWED_ORIGINS", "*")

from datetime import date, datetime  # noqa: E402
from decimal import Decimal  # noqa: E402
from typing import Any, Callable, Generator, Optional  # noqa: E402
from uuid import UUID, uuid4  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy import create_engine, insert  # noqa: E402
from sqlalchemy.engine import Engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from booking_sync.db.writers.bookings import insert_booking  # noqa: E402
from booking_sync.db.writers.integrations import insert_integration  # noqa: E402
from booking_sync.models.base import Base  # noqa: E402
from booking_sync.models.bookings import Booking  # noqa: E402, F401
from booking_sync.models.integrations import Integration, RoomMapping  # noqa: E402, F401
from booking_sync.models.rooms import Room, SeasonalRate  # noqa: E402
from booking_sync.models.sync_logs import SyncLog  # noqa: E402, F401
from booking_sync.records import IntegrationCredentials  # noqa: E402
from booking_sync.utils.datetime import utc_now  # noqa: E402


@pytest.fixture
def sqlite_engine() -> Generator[Engine, None, None]:
    """In-memory SQLite database with the full schema, shared across connections."""
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def tenant_id() -> UUID:
    return uuid4()


@pytest.fixture
def make_room(sqlite_engine: Engine, tenant_id: UUID) -> Callable[..., UUID]:
    """Factory inserting a room for the test tenant."""

    def _make(
        name: str = "Garden Suite",
        base_price: str = "1000.00",
        total_units: int = 1,
        inventory_mode: str = "single_unit",
        min_stay_nights: int = 1,
        max_stay_nights: Optional[int] = None,
        max_guests: int = 2,
        tenant: Optional[UUID] = None,
    ) -> UUID:
        room_id = uuid4()
        now = utc_now()
        with sqlite_engine.begin() as conn:
            conn.execute(
                insert(Room).values(
                    id=room_id,
                    tenant_id=tenant or tenant_id,
                    name=name,
                    base_price_per_night=Decimal(base_price),
                    currency="ZAR",
                    total_units=total_units,
                    inventory_mode=inventory_mode,
                    min_stay_nights=min_stay_nights,
                    max_stay_nights=max_stay_nights,
                    max_guests=max_guests,
                    is_active=True,
                    created_at=now,
                    updated_at=now,
                )
            )
        return room_id

    return _make


@pytest.fixture
def make_rate(sqlite_engine: Engine, tenant_id: UUID) -> Callable[..., UUID]:
    """Factory inserting a seasonal rate."""

    def _make(
        room_id: UUID,
        start: date,
        end: date,
        price: str,
        priority: int = 0,
        name: str = "Season",
        created_at: Optional[datetime] = None,
    ) -> UUID:
        rate_id = uuid4()
        with sqlite_engine.begin() as conn:
            conn.execute(
                insert(SeasonalRate).values(
                    id=rate_id,
                    tenant_id=tenant_id,
                    room_id=room_id,
                    name=name,
                    start_date=start,
                    end_date=end,
                    price_per_night=Decimal(price),
                    priority=priority,
                    created_at=created_at or utc_now(),
                )
            )
        return rate_id

    return _make


@pytest.fixture
def make_booking(sqlite_engine: Engine, tenant_id: UUID) -> Callable[..., UUID]:
    """Factory inserting a booking into the ledger."""

    def _make(
        room_id: UUID,
        check_in: date,
        check_out: date,
        status: str = "confirmed",
        source: str = "direct",
        guest_name: str = "Lerato Dlamini",
        external_id: Optional[str] = None,
        **extra: Any,
    ) -> UUID:
        with sqlite_engine.begin() as conn:
            return insert_booking(
                conn,
                tenant_id=tenant_id,
                room_id=room_id,
                guest_name=guest_name,
                check_in=check_in,
                check_out=check_out,
                status=status,
                source=source,
                external_id=external_id,
                **extra,
            )

    return _make


@pytest.fixture
def make_integration(sqlite_engine: Engine, tenant_id: UUID) -> Callable[..., UUID]:
    """Factory inserting an active integration."""

    def _make(
        platform: str = "airbnb",
        auto_sync_enabled: bool = False,
        sync_interval_minutes: int = 60,
    ) -> UUID:
        with sqlite_engine.begin() as conn:
            return insert_integration(
                conn,
                tenant_id=tenant_id,
                platform=platform,
                credentials=IntegrationCredentials.generate(),
                auto_sync_enabled=auto_sync_enabled,
                sync_interval_minutes=sync_interval_minutes,
            )

    return _make


@pytest.fixture
def make_mapping(sqlite_engine: Engine, tenant_id: UUID) -> Callable[..., UUID]:
    """Factory inserting a room mapping."""

    def _make(
        integration_id: UUID,
        room_id: UUID,
        external_room_id: str,
        ical_url: Optional[str] = None,
        external_room_name: Optional[str] = None,
    ) -> UUID:
        mapping_id = uuid4()
        now = utc_now()
        with sqlite_engine.begin() as conn:
            conn.execute(
                insert(RoomMapping).values(
                    id=mapping_id,
                    tenant_id=tenant_id,
                    integration_id=integration_id,
                    room_id=room_id,
                    external_room_id=external_room_id,
                    external_room_name=external_room_name,
                    ical_url=ical_url,
                    created_at=now,
                    updated_at=now,
                )
            )
        return mapping_id

    return _make
