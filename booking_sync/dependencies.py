"""
FastAPI dependency injection providers.

Dependencies can be overridden in tests using app.dependency_overrides, so
route tests can run against an in-memory database or a mock engine.
"""

from __future__ import annotations

from typing import Generator, Optional
from uuid import UUID

from fastapi import Header, HTTPException, status
from sqlalchemy.engine import Engine

from booking_sync.db.engine import engine


def get_db_engine() -> Generator[Engine, None, None]:
    """
    Provide database engine for dependency injection.

    Yields:
        Engine: SQLAlchemy database engine

    Testing Example:
        >>> app.dependency_overrides[get_db_engine] = lambda: sqlite_engine
        >>> client = TestClient(app)
        >>> client.get(f"/rooms/{room_id}/pricing", params={...}, headers={"X-Tenant-ID": ...})
    """
    yield engine


def get_tenant_id(x_tenant_id: Optional[str] = Header(None)) -> UUID:
    """
    Read the tenant from the X-Tenant-ID header.

    Tenant resolution (domains, auth) happens upstream; this only validates
    that a well-formed tenant id arrived with the request.

    Raises:
        HTTPException: 400 if the header is missing or not a UUID
    """
    if not x_tenant_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Tenant ID required")
    try:
        return UUID(x_tenant_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Tenant ID must be a UUID"
        )
