"""
Route tests for integration setup, manual sync, sync history and connection tests.
"""

from __future__ import annotations

from datetime import date
from typing import Callable, Generator
from unittest.mock import MagicMock, patch
from uuid import UUID, uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import func, select
from sqlalchemy.engine import Engine

from booking_sync.db.writers.integrations import acquire_sync_lease
from booking_sync.db.writers.sync_logs import create_sync_log
from booking_sync.dependencies import get_db_engine
from booking_sync.main import app
from booking_sync.models.bookings import Booking
from booking_sync.models.integrations import RoomMapping
from booking_sync.models.sync_logs import SyncLog
from booking_sync.pollers.feeds import FeedResult
from booking_sync.records import ExternalReservation
from booking_sync.services.scheduler import find_due_integrations

FEED = "https://feeds.example/listing.ics"


@pytest.fixture
def client(sqlite_engine: Engine) -> Generator[TestClient, None, None]:
    app.dependency_overrides[get_db_engine] = lambda: sqlite_engine
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def headers(tenant_id: UUID) -> dict[str, str]:
    return {"X-Tenant-ID": str(tenant_id)}


@pytest.mark.integration
def test_create_integration_masks_credentials(client: TestClient, headers: dict[str, str]) -> None:
    payload = {
        "platform": "booking_com",
        "display_name": "Booking.com",
        "credentials": {"api_key": "bk_secret_value"},
        "auto_sync_enabled": True,
        "sync_interval_minutes": 30,
    }

    response = client.post("/integrations", json=payload, headers=headers)

    assert response.status_code == 201
    body = response.json()
    assert body["platform"] == "booking_com"
    assert body["credentials"] == {"api_key": "bk_s****"}
    assert body["auto_sync_enabled"] is True
    assert body["is_connected"] is False

    duplicate = client.post("/integrations", json=payload, headers=headers)
    assert duplicate.status_code == 409


@pytest.mark.integration
def test_room_mappings_round_trip(
    client: TestClient,
    headers: dict[str, str],
    make_room: Callable[..., UUID],
    make_integration: Callable[..., UUID],
) -> None:
    room_id = make_room(name="Ocean View")
    integration_id = make_integration()

    put = client.put(
        f"/integrations/{integration_id}/room-mappings",
        json={"mappings": [{"room_id": str(room_id), "external_room_id": "L-1", "ical_url": FEED}]},
        headers=headers,
    )
    assert put.status_code == 200

    got = client.get(f"/integrations/{integration_id}/room-mappings", headers=headers)
    assert got.status_code == 200
    [mapping] = got.json()
    assert mapping["room_name"] == "Ocean View"
    assert mapping["external_room_id"] == "L-1"
    assert mapping["ical_url"] == FEED

    unknown_room = client.put(
        f"/integrations/{integration_id}/room-mappings",
        json={"mappings": [{"room_id": str(uuid4()), "external_room_id": "L-2"}]},
        headers=headers,
    )
    assert unknown_room.status_code == 404

    unknown = client.get(f"/integrations/{uuid4()}/room-mappings", headers=headers)
    assert unknown.status_code == 404


@pytest.mark.integration
@patch("booking_sync.services.reconciler.poll_feed")
def test_manual_sync_and_history(
    mock_poll: MagicMock,
    client: TestClient,
    headers: dict[str, str],
    make_room: Callable[..., UUID],
    make_integration: Callable[..., UUID],
    make_mapping: Callable[..., UUID],
) -> None:
    room_id = make_room()
    integration_id = make_integration()
    make_mapping(integration_id, room_id, "L-1", ical_url=FEED)
    mock_poll.return_value = FeedResult(
        FEED, [ExternalReservation("evt-1", "Airbnb Guest", date(2025, 7, 1), date(2025, 7, 4))]
    )

    first = client.post(
        f"/integrations/{integration_id}/sync", params={"dry_run": "false"}, headers=headers
    )
    assert first.status_code == 200
    assert first.json()["status"] == "success"
    assert first.json()["records_created"] == 1

    second = client.post(
        f"/integrations/{integration_id}/sync",
        params={"dry_run": "false"},
        json={"sync_type": "bookings"},
        headers=headers,
    )
    assert second.status_code == 200
    assert second.json()["records_updated"] == 1

    logs = client.get(f"/integrations/{integration_id}/sync-logs", headers=headers)
    assert logs.status_code == 200
    body = logs.json()
    assert [entry["id"] for entry in body] == [second.json()["log_id"], first.json()["log_id"]]
    assert body[0]["sync_type"] == "bookings"
    assert body[0]["direction"] == "inbound"

    limited = client.get(
        f"/integrations/{integration_id}/sync-logs", params={"limit": 1}, headers=headers
    )
    assert len(limited.json()) == 1


@pytest.mark.integration
def test_sync_rejected_while_lease_held(
    client: TestClient,
    headers: dict[str, str],
    sqlite_engine: Engine,
    make_integration: Callable[..., UUID],
) -> None:
    integration_id = make_integration()
    with sqlite_engine.begin() as conn:
        assert acquire_sync_lease(conn, integration_id, ttl_seconds=600)

    response = client.post(f"/integrations/{integration_id}/sync", headers=headers)

    assert response.status_code == 409


@pytest.mark.integration
def test_sync_rejects_bad_sync_type_and_unknown_integration(
    client: TestClient, headers: dict[str, str], make_integration: Callable[..., UUID]
) -> None:
    integration_id = make_integration()

    bad = client.post(
        f"/integrations/{integration_id}/sync", json={"sync_type": "everything"}, headers=headers
    )
    assert bad.status_code == 422

    missing = client.post(f"/integrations/{uuid4()}/sync", headers=headers)
    assert missing.status_code == 404


@pytest.mark.integration
@patch("booking_sync.services.sync.poll_feed")
def test_connection_endpoint(
    mock_poll: MagicMock,
    client: TestClient,
    headers: dict[str, str],
    make_room: Callable[..., UUID],
    make_integration: Callable[..., UUID],
    make_mapping: Callable[..., UUID],
) -> None:
    room_id = make_room()
    integration_id = make_integration()
    make_mapping(integration_id, room_id, "L-1", ical_url=FEED)
    mock_poll.return_value = FeedResult(FEED, [], error="HTTP 404")

    response = client.post(f"/integrations/{integration_id}/test", headers=headers)

    assert response.status_code == 200
    body = response.json()
    assert body["connected"] is False
    assert body["feeds_invalid"] == 1
    assert body["errors"]


@pytest.mark.integration
def test_list_and_get_integrations_mask_credentials(
    client: TestClient, headers: dict[str, str]
) -> None:
    created = client.post(
        "/integrations",
        json={"platform": "airbnb", "credentials": {"api_key": "ab_live_secret"}},
        headers=headers,
    ).json()
    client.post("/integrations", json={"platform": "booking_com"}, headers=headers)

    listed = client.get("/integrations", headers=headers)
    assert listed.status_code == 200
    assert [i["platform"] for i in listed.json()] == ["airbnb", "booking_com"]

    got = client.get(f"/integrations/{created['id']}", headers=headers)
    assert got.status_code == 200
    assert got.json()["credentials"] == {"api_key": "ab_l****"}

    other_tenant = client.get(f"/integrations/{created['id']}", headers={"X-Tenant-ID": str(uuid4())})
    assert other_tenant.status_code == 404
    assert client.get("/integrations", headers={"X-Tenant-ID": str(uuid4())}).json() == []


@pytest.mark.integration
def test_update_integration_settings_keeps_credentials(
    client: TestClient, headers: dict[str, str]
) -> None:
    created = client.post(
        "/integrations",
        json={"platform": "airbnb", "credentials": {"api_key": "ab_live_secret"}},
        headers=headers,
    ).json()
    url = f"/integrations/{created['id']}"

    updated = client.put(
        url,
        json={"display_name": "Airbnb (main)", "auto_sync_enabled": True, "sync_interval_minutes": 15},
        headers=headers,
    )
    assert updated.status_code == 200
    body = updated.json()
    assert body["display_name"] == "Airbnb (main)"
    assert body["auto_sync_enabled"] is True
    assert body["sync_interval_minutes"] == 15
    assert body["is_active"] is True

    rejected = client.put(url, json={"credentials": {"api_key": "replaced"}}, headers=headers)
    assert rejected.status_code == 422
    assert client.put(url, json={"sync_interval_minutes": 0}, headers=headers).status_code == 422
    assert client.put(f"/integrations/{uuid4()}", json={}, headers=headers).status_code == 404

    assert client.get(url, headers=headers).json()["credentials"] == {"api_key": "ab_l****"}


@pytest.mark.integration
def test_deactivated_integration_is_not_synced(
    client: TestClient,
    headers: dict[str, str],
    sqlite_engine: Engine,
    make_integration: Callable[..., UUID],
) -> None:
    integration_id = make_integration(auto_sync_enabled=True)
    with sqlite_engine.connect() as conn:
        assert [i.id for i in find_due_integrations(conn)] == [integration_id]

    response = client.put(f"/integrations/{integration_id}", json={"is_active": False}, headers=headers)
    assert response.status_code == 200
    assert response.json()["is_active"] is False

    sync = client.post(f"/integrations/{integration_id}/sync", headers=headers)
    assert sync.status_code == 400
    with sqlite_engine.connect() as conn:
        assert find_due_integrations(conn) == []


@pytest.mark.integration
def test_delete_integration_removes_mappings_and_logs(
    client: TestClient,
    headers: dict[str, str],
    sqlite_engine: Engine,
    tenant_id: UUID,
    make_room: Callable[..., UUID],
    make_booking: Callable[..., UUID],
    make_integration: Callable[..., UUID],
    make_mapping: Callable[..., UUID],
) -> None:
    room_id = make_room()
    integration_id = make_integration()
    make_mapping(integration_id, room_id, "L-1", ical_url=FEED)
    make_booking(room_id, date(2025, 9, 1), date(2025, 9, 3), source="airbnb", external_id="evt-1")
    with sqlite_engine.begin() as conn:
        create_sync_log(conn, tenant_id, integration_id, "full")

    response = client.delete(f"/integrations/{integration_id}", headers=headers)

    assert response.status_code == 200
    assert client.get(f"/integrations/{integration_id}", headers=headers).status_code == 404
    assert client.delete(f"/integrations/{integration_id}", headers=headers).status_code == 404
    with sqlite_engine.connect() as conn:
        assert conn.execute(select(func.count()).select_from(RoomMapping)).scalar_one() == 0
        assert conn.execute(select(func.count()).select_from(SyncLog)).scalar_one() == 0
        assert conn.execute(select(func.count()).select_from(Booking)).scalar_one() == 1


@pytest.mark.integration
def test_delete_integration_rejected_while_syncing(
    client: TestClient,
    headers: dict[str, str],
    sqlite_engine: Engine,
    make_integration: Callable[..., UUID],
) -> None:
    integration_id = make_integration()
    with sqlite_engine.begin() as conn:
        assert acquire_sync_lease(conn, integration_id, ttl_seconds=600)

    response = client.delete(f"/integrations/{integration_id}", headers=headers)

    assert response.status_code == 409
    assert client.get(f"/integrations/{integration_id}", headers=headers).status_code == 200
