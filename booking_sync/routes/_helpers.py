"""
Internal helpers shared by the route handlers.

Translates engine exceptions into HTTP errors so handlers stay thin.
"""

from __future__ import annotations

from fastapi import HTTPException, status

from booking_sync.errors import (
    AlreadyExistsError,
    BookingSyncError,
    NotFoundError,
    SyncInProgressError,
    ValidationError,
)

_STATUS_BY_ERROR: list[tuple[type[BookingSyncError], int]] = [
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (SyncInProgressError, status.HTTP_409_CONFLICT),
    (AlreadyExistsError, status.HTTP_409_CONFLICT),
]


def http_error(error: BookingSyncError) -> HTTPException:
    """
    Map an engine error to the HTTPException a handler should raise.

    Args:
        error: Engine error raised by a service call

    Returns:
        HTTPException: 400/404/409 for known errors, 500 otherwise
    """
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return HTTPException(status_code=status_code, detail=str(error))
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error"
    )
