"""
FastAPI middleware for request tracing and correlation.

Every request gets a unique id that is returned in the X-Request-ID header
and bound into the structlog context, so all log lines emitted while the
request is handled (including a manually triggered sync) carry it.
"""

from __future__ import annotations

import uuid
from typing import Awaitable, Callable

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Middleware to add unique request IDs to each HTTP request.

    The id is:
    1. Stored in request.state.request_id for route handlers
    2. Bound as ``request_id`` in structlog's context variables
    3. Returned to the client in the X-Request-ID header

    Example:
        >>> app.add_middleware(RequestIDMiddleware)
        >>> # Response headers will include:
        >>> # X-Request-ID: 550e8400-e29b-41d4-a716-446655440000
    """

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        """
        Process each request by adding a unique request ID.

        Args:
            request: Incoming FastAPI request
            call_next: Next middleware or route handler in chain

        Returns:
            Response with X-Request-ID header added
        """
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)
        try:
            response = await call_next(request)
        finally:
            structlog.contextvars.unbind_contextvars("request_id")

        response.headers["X-Request-ID"] = request_id
        return response
