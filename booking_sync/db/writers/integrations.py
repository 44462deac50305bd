from datetime import datetime, timedelta
from typing import Any, Optional
from uuid import UUID

import structlog
from sqlalchemy import delete, insert, or_, update
from sqlalchemy.engine import Connection

from booking_sync.models.integrations import Integration, RoomMapping
from booking_sync.models.sync_logs import SyncLog
from booking_sync.records import IntegrationCredentials
from booking_sync.utils.datetime import utc_now

logger = structlog.get_logger(__name__)


def insert_integration(
    conn: Connection,
    tenant_id: UUID,
    platform: str,
    credentials: IntegrationCredentials,
    display_name: Optional[str] = None,
    auto_sync_enabled: bool = False,
    sync_interval_minutes: int = 60,
) -> UUID:
    """
    Create an integration with its write-once credentials.

    Args:
        conn (Connection): SQLAlchemy DB connection.
        tenant_id (UUID): Owning tenant.
        platform (str): Channel platform name.
        credentials (IntegrationCredentials): Secret material generated at creation.
        display_name (Optional[str]): Label shown to the host.
        auto_sync_enabled (bool): Whether the scheduler should run this integration.
        sync_interval_minutes (int): Minutes between scheduled runs.

    Returns:
        UUID: ID of the new integration.
    """
    now = utc_now()
    result = conn.execute(
        insert(Integration)
        .values(
            tenant_id=tenant_id,
            platform=platform,
            display_name=display_name,
            credentials=credentials.as_dict(),
            webhook_secret=credentials.webhook_secret,
            is_active=True,
            is_connected=False,
            auto_sync_enabled=auto_sync_enabled,
            sync_interval_minutes=sync_interval_minutes,
            created_at=now,
            updated_at=now,
        )
    )
    integration_id: UUID = result.inserted_primary_key[0]
    logger.info("integration_created", integration_id=str(integration_id), platform=platform)
    return integration_id


def update_sync_outcome(
    conn: Connection,
    tenant_id: UUID,
    integration_id: UUID,
    synced_at: datetime,
    is_connected: bool,
    last_error: Optional[str],
) -> None:
    """
    Store the outcome of a finished sync run on its integration.

    Args:
        conn (Connection): SQLAlchemy DB connection.
        tenant_id (UUID): Owning tenant.
        integration_id (UUID): Integration ID.
        synced_at (datetime): Completion time of the run.
        is_connected (bool): Whether at least part of the run succeeded.
        last_error (Optional[str]): First error, or first conflict summary.
    """
    conn.execute(
        update(Integration)
        .where(Integration.id == integration_id, Integration.tenant_id == tenant_id)
        .values(
            last_synced_at=synced_at,
            is_connected=is_connected,
            last_error=last_error,
            updated_at=synced_at,
        )
    )


def update_connection_status(
    conn: Connection,
    tenant_id: UUID,
    integration_id: UUID,
    is_connected: bool,
    last_error: Optional[str],
) -> None:
    """Store the result of a connection test without touching sync timestamps."""
    conn.execute(
        update(Integration)
        .where(Integration.id == integration_id, Integration.tenant_id == tenant_id)
        .values(is_connected=is_connected, last_error=last_error, updated_at=utc_now())
    )


def update_integration_settings(
    conn: Connection, tenant_id: UUID, integration_id: UUID, data: dict[str, Any]
) -> None:
    """
    Update host-editable settings of an integration.

    Args:
        conn (Connection): SQLAlchemy DB connection.
        tenant_id (UUID): Owning tenant.
        integration_id (UUID): Integration ID.
        data (dict): Fields to update (display_name, is_active, auto_sync_enabled,
            sync_interval_minutes). Credentials are never part of an update.
    """
    conn.execute(
        update(Integration)
        .where(Integration.id == integration_id, Integration.tenant_id == tenant_id)
        .values(**data, updated_at=utc_now())
    )


def delete_integration(conn: Connection, tenant_id: UUID, integration_id: UUID) -> None:
    """
    Permanently delete an integration with its room mappings and sync logs.

    Imported bookings stay in the ledger. Dependent rows are deleted here as
    well as by the FK cascades, since SQLite only enforces those when
    foreign_keys is switched on.

    Args:
        conn (Connection): SQLAlchemy DB connection (within a transaction).
        tenant_id (UUID): Owning tenant.
        integration_id (UUID): Integration ID.
    """
    conn.execute(
        delete(RoomMapping).where(
            RoomMapping.tenant_id == tenant_id, RoomMapping.integration_id == integration_id
        )
    )
    conn.execute(
        delete(SyncLog).where(SyncLog.tenant_id == tenant_id, SyncLog.integration_id == integration_id)
    )
    conn.execute(
        delete(Integration).where(
            Integration.id == integration_id, Integration.tenant_id == tenant_id
        )
    )
    logger.info("integration_deleted", integration_id=str(integration_id))


def acquire_sync_lease(
    conn: Connection, integration_id: UUID, ttl_seconds: int, now: Optional[datetime] = None
) -> Optional[datetime]:
    """
    Try to take the sync lease of an integration.

    A single conditional UPDATE claims the lease only when it is free or has
    expired, so two callers racing for the same integration cannot both win.

    Args:
        conn (Connection): SQLAlchemy DB connection.
        integration_id (UUID): Integration ID.
        ttl_seconds (int): Lease lifetime; an expired lease can be reclaimed.
        now (Optional[datetime]): Current time (defaults to utc_now()).

    Returns:
        Optional[datetime]: Expiry of the lease now held by this caller, or
            None if another holder still has it. Pass it to release_sync_lease.
    """
    now = now or utc_now()
    expires_at = now + timedelta(seconds=ttl_seconds)
    result = conn.execute(
        update(Integration)
        .where(
            Integration.id == integration_id,
            or_(
                Integration.sync_lease_expires_at.is_(None),
                Integration.sync_lease_expires_at < now,
            ),
        )
        .values(sync_lease_expires_at=expires_at)
    )
    return expires_at if result.rowcount == 1 else None


def release_sync_lease(conn: Connection, integration_id: UUID, expires_at: datetime) -> bool:
    """
    Free the sync lease of an integration if this caller still holds it.

    The expiry returned by acquire_sync_lease identifies the holder. When a
    run outlived its lease and another run reclaimed it, the stored expiry no
    longer matches and the newer lease is left alone.

    Returns:
        bool: True if the lease was released.
    """
    result = conn.execute(
        update(Integration)
        .where(
            Integration.id == integration_id,
            Integration.sync_lease_expires_at == expires_at,
        )
        .values(sync_lease_expires_at=None)
    )
    return result.rowcount == 1


def replace_room_mappings(
    conn: Connection,
    tenant_id: UUID,
    integration_id: UUID,
    mappings: list[dict[str, Any]],
) -> int:
    """
    Replace every room mapping of an integration.

    Args:
        conn (Connection): SQLAlchemy DB connection (within a transaction).
        tenant_id (UUID): Owning tenant.
        integration_id (UUID): Integration ID.
        mappings (list[dict]): Rows with room_id, external_room_id and optional
            external_room_name / ical_url.

    Returns:
        int: Number of mappings written.
    """
    conn.execute(
        delete(RoomMapping).where(
            RoomMapping.tenant_id == tenant_id, RoomMapping.integration_id == integration_id
        )
    )

    now = utc_now()
    rows = [
        {
            "tenant_id": tenant_id,
            "integration_id": integration_id,
            "room_id": m["room_id"],
            "external_room_id": m["external_room_id"],
            "external_room_name": m.get("external_room_name"),
            "ical_url": m.get("ical_url") or None,
            "created_at": now,
            "updated_at": now,
        }
        for m in mappings
    ]
    if rows:
        conn.execute(insert(RoomMapping), rows)

    logger.info(
        "room_mappings_replaced", integration_id=str(integration_id), count=len(rows)
    )
    return len(rows)


def touch_mapping_sync(conn: Connection, mapping_id: UUID, synced_at: datetime) -> None:
    """Record when a mapping's feed was last fetched successfully."""
    conn.execute(
        update(RoomMapping)
        .where(RoomMapping.id == mapping_id)
        .values(last_ical_sync=synced_at, updated_at=synced_at)
    )
