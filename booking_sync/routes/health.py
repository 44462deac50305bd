"""
Health and readiness check endpoints for Kubernetes probes.

Health checks are used by container orchestration platforms to determine
if the application should be restarted or if it can receive traffic.
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.engine import Engine

from booking_sync.db.engine import check_engine_health
from booking_sync.dependencies import get_db_engine

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.get("/health")
def health_check() -> JSONResponse:
    """
    Liveness probe endpoint.

    Returns 200 if the application is running.

    Example:
        >>> GET /health
        {"status": "ok"}
    """
    return JSONResponse(content={"status": "ok"})


@router.get("/ready")
def readiness_check(engine: Engine = Depends(get_db_engine)) -> JSONResponse:
    """
    Readiness probe endpoint.

    Returns 200 if the ledger database is reachable, 503 otherwise. Calendar
    hosts are not probed; an unreachable feed is a per-mapping sync error, not
    a reason to stop serving availability queries.

    Example:
        >>> GET /ready
        {"status": "ready", "checks": {"database": "ok"}}
    """
    checks = {}

    if check_engine_health(engine):
        checks["database"] = "ok"
        return JSONResponse(content={"status": "ready", "checks": checks})

    logger.error("readiness_check_failed", reason="database_not_accessible")
    checks["database"] = "failed"
    return JSONResponse(
        status_code=503,
        content={"status": "not ready", "checks": checks},
    )
