"""
Prometheus metrics for sync runs, calendar feed fetches and pricing queries.

Metrics are exposed via the /metrics endpoint for scraping by Prometheus.

Example:
    >>> from booking_sync.metrics import sync_duration, sync_runs
    >>> with sync_duration.labels(platform="airbnb").time():
    ...     result = sync_integration(engine, tenant_id, integration_id)
    >>> sync_runs.labels(platform="airbnb", status=result.status).inc()
"""

from __future__ import annotations

from prometheus_client import Counter, Histogram

# =============================================================================
# Sync Metrics
# =============================================================================

sync_runs = Counter(
    "booking_sync_runs_total",
    "Total number of integration sync runs by terminal status",
    ["platform", "status"],
)
"""
Counter for completed sync runs.

Labels:
    platform: Channel platform of the integration (airbnb, booking_com, ...)
    status: success, partial, warning or failed
"""

sync_duration = Histogram(
    "booking_sync_run_duration_seconds",
    "Duration of integration sync runs in seconds",
    ["platform"],
    buckets=(0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0, float("inf")),
)

records_synced = Counter(
    "booking_sync_records_total",
    "Ledger records touched by sync runs",
    ["operation"],
)
"""
Counter for reconciled records.

Labels:
    operation: created, updated, skipped or failed
"""

conflicts_detected = Counter(
    "booking_sync_conflicts_total",
    "External reservations ingested as pending because they overlap existing bookings",
    ["platform"],
)

# =============================================================================
# Feed Metrics
# =============================================================================

feed_fetches = Counter(
    "booking_sync_feed_fetches_total",
    "Calendar feed fetch+parse attempts",
    ["platform", "status"],
)
"""
Counter for feed fetches.

Labels:
    platform: Channel platform the feed belongs to
    status: success or failure
"""

feed_latency = Histogram(
    "booking_sync_feed_latency_seconds",
    "Calendar feed HTTP latency in seconds",
    buckets=(0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, float("inf")),
)

# =============================================================================
# Query Metrics
# =============================================================================

pricing_queries = Counter(
    "booking_sync_pricing_queries_total",
    "Pricing and availability queries served",
    ["query"],
)
"""
Counter for calculator queries.

Labels:
    query: pricing, availability or blocked_dates
"""
