"""
Unit tests for metrics endpoint.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from booking_sync.main import app
from booking_sync.metrics import (
    conflicts_detected,
    feed_fetches,
    feed_latency,
    records_synced,
    sync_duration,
    sync_runs,
)


@pytest.fixture
def client() -> TestClient:
    """FastAPI test client."""
    return TestClient(app)


@pytest.mark.unit
def test_metrics_endpoint_returns_prometheus_format(client: TestClient) -> None:
    """Test that /metrics endpoint returns Prometheus text format."""
    response = client.get("/metrics")

    assert response.status_code == 200
    assert "text/plain" in response.headers["content-type"]


@pytest.mark.unit
def test_metrics_endpoint_contains_custom_metrics(client: TestClient) -> None:
    """Test that /metrics endpoint includes the sync and feed metrics."""
    sync_runs.labels(platform="airbnb", status="success").inc()
    sync_duration.labels(platform="airbnb").observe(1.5)
    records_synced.labels(operation="created").inc(2)
    conflicts_detected.labels(platform="airbnb").inc()
    feed_fetches.labels(platform="airbnb", status="success").inc()
    feed_latency.observe(0.3)

    content = client.get("/metrics").text

    assert "booking_sync_runs_total" in content
    assert "booking_sync_run_duration_seconds" in content
    assert "booking_sync_records_total" in content
    assert "booking_sync_conflicts_total" in content
    assert "booking_sync_feed_fetches_total" in content
    assert "booking_sync_feed_latency_seconds" in content
