"""
Route tests for room pricing, availability, blocked dates and direct bookings.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Callable, Generator
from uuid import UUID, uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.engine import Engine

from booking_sync.dependencies import get_db_engine
from booking_sync.main import app


@pytest.fixture
def client(sqlite_engine: Engine) -> Generator[TestClient, None, None]:
    app.dependency_overrides[get_db_engine] = lambda: sqlite_engine
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def headers(tenant_id: UUID) -> dict[str, str]:
    return {"X-Tenant-ID": str(tenant_id)}


@pytest.mark.integration
def test_pricing_breakdown(
    client: TestClient,
    headers: dict[str, str],
    make_room: Callable[..., UUID],
    make_rate: Callable[..., UUID],
) -> None:
    room_id = make_room(base_price="1000.00")
    make_rate(room_id, date(2025, 12, 20), date(2025, 12, 26), "1500", priority=10, name="Peak")

    response = client.get(
        f"/rooms/{room_id}/pricing",
        params={"check_in": "2025-12-24", "check_out": "2025-12-27"},
        headers=headers,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["nights"] == 3
    assert Decimal(body["subtotal"]) == Decimal("4500")
    assert [n["rate_name"] for n in body["breakdown"]] == ["Peak", "Peak", "Peak"]
    assert body["currency"] == "ZAR"


@pytest.mark.integration
def test_pricing_errors(
    client: TestClient, headers: dict[str, str], make_room: Callable[..., UUID]
) -> None:
    room_id = make_room()
    params = {"check_in": "2025-05-03", "check_out": "2025-05-03"}

    assert client.get(f"/rooms/{room_id}/pricing", params=params).status_code == 400
    assert client.get(f"/rooms/{room_id}/pricing", params=params, headers=headers).status_code == 400

    params["check_out"] = "2025-05-05"
    missing = client.get(f"/rooms/{uuid4()}/pricing", params=params, headers=headers)
    assert missing.status_code == 404

    other_tenant = client.get(
        f"/rooms/{room_id}/pricing", params=params, headers={"X-Tenant-ID": str(uuid4())}
    )
    assert other_tenant.status_code == 404


@pytest.mark.integration
def test_availability_counts_units(
    client: TestClient,
    headers: dict[str, str],
    make_room: Callable[..., UUID],
    make_booking: Callable[..., UUID],
) -> None:
    room_id = make_room(total_units=3, inventory_mode="multi_unit")
    make_booking(room_id, date(2025, 5, 1), date(2025, 5, 4))
    make_booking(room_id, date(2025, 5, 2), date(2025, 5, 5), status="cancelled")

    response = client.get(
        f"/rooms/{room_id}/availability",
        params={"check_in": "2025-05-03", "check_out": "2025-05-06"},
        headers=headers,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["overlapping_bookings"] == 1
    assert body["available_units"] == 2
    assert body["available"] is True


@pytest.mark.integration
def test_blocked_dates(
    client: TestClient,
    headers: dict[str, str],
    make_room: Callable[..., UUID],
    make_booking: Callable[..., UUID],
) -> None:
    room_id = make_room()
    make_booking(room_id, date(2025, 5, 2), date(2025, 5, 4), status="pending")

    response = client.get(
        f"/rooms/{room_id}/blocked-dates",
        params={"start": "2025-05-01", "end": "2025-05-06"},
        headers=headers,
    )

    assert response.status_code == 200
    assert response.json()["blocked_dates"] == ["2025-05-02", "2025-05-03"]


@pytest.mark.integration
def test_direct_booking_then_conflict_check(
    client: TestClient, headers: dict[str, str], make_room: Callable[..., UUID]
) -> None:
    room_id = make_room()
    payload = {
        "room_id": str(room_id),
        "guest_name": "Thabo Nkosi",
        "check_in": "2025-06-10",
        "check_out": "2025-06-13",
        "guests": 2,
    }

    created = client.post("/bookings", json=payload, headers=headers)
    assert created.status_code == 201
    booking = created.json()
    assert booking["status"] == "pending"
    assert booking["nights"] == 3
    assert Decimal(booking["total_amount"]) == Decimal("3000")

    again = client.post("/bookings", json=payload, headers=headers)
    assert again.status_code == 400

    check = client.post(
        "/bookings/check-conflicts",
        json={"room_id": str(room_id), "check_in": "2025-06-12", "check_out": "2025-06-15"},
        headers=headers,
    )
    assert check.status_code == 200
    body = check.json()
    assert body["has_conflict"] is True
    assert body["conflicts"][0]["id"] == booking["id"]
    assert body["conflicts"][0]["guest"] == "Thabo Nkosi"
    assert body["conflicts"][0]["dates"] == "2025-06-10 - 2025-06-13"

    editing = client.post(
        "/bookings/check-conflicts",
        json={
            "room_id": str(room_id),
            "check_in": "2025-06-12",
            "check_out": "2025-06-15",
            "exclude_booking_id": booking["id"],
        },
        headers=headers,
    )
    assert editing.json() == {"has_conflict": False, "conflicts": []}


@pytest.mark.integration
def test_conflict_check_flags_bookings_needing_review(
    client: TestClient,
    headers: dict[str, str],
    make_room: Callable[..., UUID],
    make_booking: Callable[..., UUID],
) -> None:
    room_id = make_room()
    direct = make_booking(room_id, date(2025, 8, 1), date(2025, 8, 4))
    flagged = make_booking(
        room_id,
        date(2025, 8, 2),
        date(2025, 8, 5),
        status="pending",
        source="airbnb",
        external_id="evt-77",
        notes=f"Late arrival\n[CONFLICT] overlaps booking(s) {direct}",
    )

    response = client.post(
        "/bookings/check-conflicts",
        json={"room_id": str(room_id), "check_in": "2025-08-03", "check_out": "2025-08-04"},
        headers=headers,
    )

    assert response.status_code == 200
    review = {c["id"]: c["needs_review"] for c in response.json()["conflicts"]}
    assert review == {str(direct): False, str(flagged): True}
