from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.engine import Connection

from booking_sync.models.sync_logs import SyncLog
from booking_sync.records import SyncLogRecord


def _to_record(row: Any) -> SyncLogRecord:
    return SyncLogRecord(
        id=row.id,
        integration_id=row.integration_id,
        sync_type=row.sync_type,
        direction=row.direction,
        status=row.status,
        started_at=row.started_at,
        completed_at=row.completed_at,
        records_processed=row.records_processed,
        records_created=row.records_created,
        records_updated=row.records_updated,
        records_skipped=row.records_skipped,
        records_failed=row.records_failed,
        error_message=row.error_message,
        details=dict(row.details or {}),
    )


def list_sync_logs(
    conn: Connection, tenant_id: UUID, integration_id: UUID, limit: int = 20
) -> list[SyncLogRecord]:
    """
    Fetch the most recent sync runs of an integration, newest first.

    Args:
        conn (Connection): SQLAlchemy DB connection.
        tenant_id (UUID): Owning tenant.
        integration_id (UUID): Integration ID.
        limit (int): Maximum number of rows.

    Returns:
        list[SyncLogRecord]: Sync logs ordered by start time descending.
    """
    rows = conn.execute(
        select(SyncLog)
        .where(SyncLog.tenant_id == tenant_id, SyncLog.integration_id == integration_id)
        .order_by(SyncLog.started_at.desc(), SyncLog.created_at.desc())
        .limit(limit)
    ).fetchall()
    return [_to_record(r) for r in rows]
