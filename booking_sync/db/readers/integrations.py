from typing import Any, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.engine import Connection

from booking_sync.models.integrations import Integration, RoomMapping
from booking_sync.models.rooms import Room
from booking_sync.records import IntegrationCredentials, IntegrationRecord, MappingWithRoom


def _to_record(row: Any) -> IntegrationRecord:
    return IntegrationRecord(
        id=row.id,
        tenant_id=row.tenant_id,
        platform=row.platform,
        display_name=row.display_name,
        is_active=row.is_active,
        is_connected=row.is_connected,
        last_synced_at=row.last_synced_at,
        last_error=row.last_error,
        auto_sync_enabled=row.auto_sync_enabled,
        sync_interval_minutes=row.sync_interval_minutes,
    )


def get_integration(
    conn: Connection, tenant_id: UUID, integration_id: UUID
) -> Optional[IntegrationRecord]:
    """
    Fetch an integration scoped to its tenant.

    Args:
        conn (Connection): SQLAlchemy DB connection.
        tenant_id (UUID): Owning tenant.
        integration_id (UUID): Integration ID.

    Returns:
        Optional[IntegrationRecord]: The integration, or None if not found.
    """
    row = conn.execute(
        select(Integration).where(
            Integration.id == integration_id, Integration.tenant_id == tenant_id
        )
    ).fetchone()
    return _to_record(row) if row else None


def list_integrations(conn: Connection, tenant_id: UUID) -> list[IntegrationRecord]:
    """Fetch every integration of a tenant ordered by platform."""
    rows = conn.execute(
        select(Integration)
        .where(Integration.tenant_id == tenant_id)
        .order_by(Integration.platform)
    ).fetchall()
    return [_to_record(r) for r in rows]


def get_integration_credentials(
    conn: Connection, tenant_id: UUID, integration_id: UUID
) -> Optional[IntegrationCredentials]:
    """
    Fetch the stored credentials of an integration.

    Args:
        conn (Connection): SQLAlchemy DB connection.
        tenant_id (UUID): Owning tenant.
        integration_id (UUID): Integration ID.

    Returns:
        Optional[IntegrationCredentials]: Credentials as written at creation, or None if not found.
    """
    row = conn.execute(
        select(Integration.credentials, Integration.webhook_secret).where(
            Integration.id == integration_id, Integration.tenant_id == tenant_id
        )
    ).fetchone()
    if row is None:
        return None
    return IntegrationCredentials.from_stored(row.credentials, row.webhook_secret)


def get_auto_sync_integrations(conn: Connection) -> list[IntegrationRecord]:
    """
    Fetch every active integration with auto-sync turned on, across tenants.

    Only the scheduler reads across tenants; each run it starts is tenant-scoped.
    """
    rows = conn.execute(
        select(Integration)
        .where(Integration.is_active.is_(True), Integration.auto_sync_enabled.is_(True))
        .order_by(Integration.last_synced_at)
    ).fetchall()
    return [_to_record(r) for r in rows]


def get_room_mappings(
    conn: Connection, tenant_id: UUID, integration_id: UUID
) -> list[MappingWithRoom]:
    """
    Fetch the room mappings of an integration with the mapped room's name.

    Args:
        conn (Connection): SQLAlchemy DB connection.
        tenant_id (UUID): Owning tenant.
        integration_id (UUID): Integration ID.

    Returns:
        list[MappingWithRoom]: Mappings in a stable order (external room id).
    """
    rows = conn.execute(
        select(RoomMapping, Room.name.label("room_name"))
        .outerjoin(Room, Room.id == RoomMapping.room_id)
        .where(RoomMapping.tenant_id == tenant_id, RoomMapping.integration_id == integration_id)
        .order_by(RoomMapping.external_room_id)
    ).fetchall()

    return [
        MappingWithRoom(
            id=r.id,
            tenant_id=r.tenant_id,
            integration_id=r.integration_id,
            room_id=r.room_id,
            external_room_id=r.external_room_id,
            ical_url=r.ical_url or None,
            external_room_name=r.external_room_name,
            room_name=r.room_name,
            last_ical_sync=r.last_ical_sync,
        )
        for r in rows
    ]
