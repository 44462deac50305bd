from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import insert, update
from sqlalchemy.engine import Connection

from booking_sync.models.enums import SyncDirection, SyncStatus
from booking_sync.models.sync_logs import SyncLog
from booking_sync.utils.datetime import utc_now


def create_sync_log(
    conn: Connection,
    tenant_id: UUID,
    integration_id: UUID,
    sync_type: str,
    direction: str = SyncDirection.INBOUND.value,
) -> UUID:
    """
    Open a sync log row in the ``pending`` state.

    Args:
        conn (Connection): SQLAlchemy DB connection.
        tenant_id (UUID): Owning tenant.
        integration_id (UUID): Integration being synced.
        sync_type (str): Requested sync type.
        direction (str): Sync direction.

    Returns:
        UUID: ID of the new log row.
    """
    now = utc_now()
    result = conn.execute(
        insert(SyncLog)
        .values(
            tenant_id=tenant_id,
            integration_id=integration_id,
            sync_type=sync_type,
            direction=direction,
            status=SyncStatus.PENDING.value,
            started_at=now,
            details={},
            created_at=now,
        )
    )
    log_id: UUID = result.inserted_primary_key[0]
    return log_id


def mark_sync_in_progress(conn: Connection, log_id: UUID) -> None:
    """Move a pending sync log to ``in_progress``."""
    conn.execute(
        update(SyncLog)
        .where(SyncLog.id == log_id, SyncLog.status == SyncStatus.PENDING.value)
        .values(status=SyncStatus.IN_PROGRESS.value)
    )


def complete_sync_log(
    conn: Connection,
    log_id: UUID,
    status: str,
    counts: dict[str, int],
    error_message: Optional[str],
    details: dict[str, Any],
    completed_at: Optional[datetime] = None,
) -> None:
    """
    Write the terminal state of a sync run.

    Args:
        conn (Connection): SQLAlchemy DB connection.
        log_id (UUID): Sync log ID.
        status (str): Terminal status (success, partial, warning or failed).
        counts (dict[str, int]): records_processed/created/updated/skipped/failed.
        error_message (Optional[str]): First error of the run, if any.
        details (dict): Error and conflict lists.
        completed_at (Optional[datetime]): Completion time (defaults to utc_now()).
    """
    conn.execute(
        update(SyncLog)
        .where(SyncLog.id == log_id)
        .values(
            status=status,
            completed_at=completed_at or utc_now(),
            error_message=error_message,
            details=details,
            **counts,
        )
    )
