"""
Prometheus metrics endpoint for monitoring and observability.

This module provides a FastAPI route that exposes Prometheus metrics in the
standard text-based format for scraping by Prometheus servers.

Example:
    GET /metrics

    Response:
        # HELP booking_sync_runs_total Total number of integration sync runs by terminal status
        # TYPE booking_sync_runs_total counter
        booking_sync_runs_total{platform="airbnb",status="success"} 42.0
        ...
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

router = APIRouter()


@router.get("/metrics", response_class=Response)
async def metrics() -> Any:
    """
    Prometheus metrics endpoint.

    Returns metrics in Prometheus text-based exposition format. This endpoint
    should be scraped by Prometheus at regular intervals (e.g., every 15-30 seconds).

    Returns:
        Response: Metrics in Prometheus format with Content-Type: text/plain

    Example Response:
        # HELP booking_sync_feed_fetches_total Calendar feed fetch+parse attempts
        # TYPE booking_sync_feed_fetches_total counter
        booking_sync_feed_fetches_total{platform="airbnb",status="failure"} 3.0

        # HELP booking_sync_feed_latency_seconds Calendar feed HTTP latency in seconds
        # TYPE booking_sync_feed_latency_seconds histogram
        booking_sync_feed_latency_seconds_bucket{le="0.5"} 10.0
        ...
    """
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
