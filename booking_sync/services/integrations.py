"""Integration setup: write-once credentials, host-editable settings and room mappings."""

from __future__ import annotations

from typing import Any, Optional
from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.engine import Engine

from booking_sync.db.readers.integrations import (
    get_integration,
    get_integration_credentials,
    get_room_mappings,
    list_integrations,
)
from booking_sync.db.writers.integrations import (
    delete_integration,
    insert_integration,
    replace_room_mappings,
    update_integration_settings,
)
from booking_sync.errors import (
    AlreadyExistsError,
    NotFoundError,
    SyncInProgressError,
    ValidationError,
)
from booking_sync.models.integrations import Integration
from booking_sync.models.rooms import Room
from booking_sync.records import IntegrationCredentials, IntegrationRecord, MappingWithRoom
from booking_sync.utils.datetime import as_aware, utc_now

logger = structlog.get_logger(__name__)


def create_integration(
    engine: Engine,
    tenant_id: UUID,
    platform: str,
    display_name: Optional[str] = None,
    credentials: Optional[dict[str, str]] = None,
    auto_sync_enabled: bool = False,
    sync_interval_minutes: int = 60,
) -> tuple[IntegrationRecord, IntegrationCredentials]:
    """
    Create a tenant's integration with one booking channel.

    Credentials are generated here once (including the webhook secret) and
    stored unchanged for the life of the integration.

    Args:
        engine (Engine): SQLAlchemy engine.
        tenant_id (UUID): Owning tenant.
        platform (str): Channel platform name, unique per tenant.
        display_name (Optional[str]): Label shown to the host.
        credentials (Optional[dict]): Credential values supplied by the host.
        auto_sync_enabled (bool): Whether the scheduler runs this integration.
        sync_interval_minutes (int): Minutes between scheduled runs.

    Returns:
        tuple[IntegrationRecord, IntegrationCredentials]: The stored integration and its credentials.

    Raises:
        ValidationError: Missing platform or non-positive interval.
        AlreadyExistsError: The tenant already has this platform.
    """
    platform = (platform or "").strip().lower()
    if not platform:
        raise ValidationError("platform is required")
    if sync_interval_minutes < 1:
        raise ValidationError("sync_interval_minutes must be at least 1")

    creds = IntegrationCredentials.generate(credentials)

    with engine.begin() as conn:
        existing = conn.execute(
            select(Integration.id).where(
                Integration.tenant_id == tenant_id, Integration.platform == platform
            )
        ).first()
        if existing:
            raise AlreadyExistsError(f"Integration for platform {platform} already exists")

        integration_id = insert_integration(
            conn,
            tenant_id=tenant_id,
            platform=platform,
            credentials=creds,
            display_name=display_name,
            auto_sync_enabled=auto_sync_enabled,
            sync_interval_minutes=sync_interval_minutes,
        )
        integration = get_integration(conn, tenant_id, integration_id)
        if integration is None:
            raise NotFoundError(f"Integration {integration_id} not found after insert")

    return integration, creds


def list_tenant_integrations(
    engine: Engine, tenant_id: UUID
) -> list[tuple[IntegrationRecord, IntegrationCredentials]]:
    """Every integration of a tenant with its stored credentials."""
    with engine.connect() as conn:
        integrations = list_integrations(conn, tenant_id)
        return [
            (i, get_integration_credentials(conn, tenant_id, i.id) or IntegrationCredentials(""))
            for i in integrations
        ]


def get_integration_detail(
    engine: Engine, tenant_id: UUID, integration_id: UUID
) -> tuple[IntegrationRecord, IntegrationCredentials]:
    with engine.connect() as conn:
        integration = get_integration(conn, tenant_id, integration_id)
        credentials = get_integration_credentials(conn, tenant_id, integration_id)
    if integration is None or credentials is None:
        raise NotFoundError(f"Integration {integration_id} not found")
    return integration, credentials


def update_integration(
    engine: Engine,
    tenant_id: UUID,
    integration_id: UUID,
    display_name: Optional[str] = None,
    is_active: Optional[bool] = None,
    auto_sync_enabled: Optional[bool] = None,
    sync_interval_minutes: Optional[int] = None,
) -> tuple[IntegrationRecord, IntegrationCredentials]:
    """
    Change the host-editable settings of an integration.

    Only the given (non-None) fields change. Credentials are write-once and
    cannot be updated; deactivating an integration stops both manual and
    scheduled syncs.

    Args:
        engine (Engine): SQLAlchemy engine.
        tenant_id (UUID): Owning tenant.
        integration_id (UUID): Integration to update.
        display_name (Optional[str]): New label.
        is_active (Optional[bool]): Enable or disable the integration.
        auto_sync_enabled (Optional[bool]): Let the scheduler run it.
        sync_interval_minutes (Optional[int]): Minutes between scheduled runs.

    Returns:
        tuple[IntegrationRecord, IntegrationCredentials]: The updated integration and its credentials.

    Raises:
        ValidationError: Non-positive interval.
        NotFoundError: Unknown integration.
    """
    if sync_interval_minutes is not None and sync_interval_minutes < 1:
        raise ValidationError("sync_interval_minutes must be at least 1")

    data = {
        k: v
        for k, v in {
            "display_name": display_name,
            "is_active": is_active,
            "auto_sync_enabled": auto_sync_enabled,
            "sync_interval_minutes": sync_interval_minutes,
        }.items()
        if v is not None
    }

    with engine.begin() as conn:
        if get_integration(conn, tenant_id, integration_id) is None:
            raise NotFoundError(f"Integration {integration_id} not found")
        if data:
            update_integration_settings(conn, tenant_id, integration_id, data)

    logger.info("integration_updated", integration_id=str(integration_id), fields=sorted(data))
    return get_integration_detail(engine, tenant_id, integration_id)


def remove_integration(engine: Engine, tenant_id: UUID, integration_id: UUID) -> None:
    """
    Delete an integration, its room mappings and its sync history.

    Raises:
        NotFoundError: Unknown integration.
        SyncInProgressError: A sync currently holds the integration's lease.
    """
    with engine.begin() as conn:
        lease = conn.execute(
            select(Integration.sync_lease_expires_at).where(
                Integration.id == integration_id, Integration.tenant_id == tenant_id
            )
        ).fetchone()
        if lease is None:
            raise NotFoundError(f"Integration {integration_id} not found")
        if lease.sync_lease_expires_at is not None and as_aware(lease.sync_lease_expires_at) > utc_now():
            raise SyncInProgressError(f"A sync is running for integration {integration_id}")

        delete_integration(conn, tenant_id, integration_id)


def set_room_mappings(
    engine: Engine, tenant_id: UUID, integration_id: UUID, mappings: list[dict[str, Any]]
) -> list[MappingWithRoom]:
    """
    Replace the room mappings of an integration.

    Every mapped room must belong to the tenant, and an external room may be
    mapped only once per integration.

    Args:
        engine (Engine): SQLAlchemy engine.
        tenant_id (UUID): Owning tenant.
        integration_id (UUID): Integration whose mappings are replaced.
        mappings (list[dict]): room_id, external_room_id, optional external_room_name and ical_url.

    Returns:
        list[MappingWithRoom]: The stored mappings with room names.
    """
    external_ids = [str(m["external_room_id"]) for m in mappings]
    if len(set(external_ids)) != len(external_ids):
        raise ValidationError("external_room_id must be unique within an integration")

    with engine.begin() as conn:
        if get_integration(conn, tenant_id, integration_id) is None:
            raise NotFoundError(f"Integration {integration_id} not found")

        room_ids = {m["room_id"] for m in mappings}
        if room_ids:
            found = set(
                conn.execute(
                    select(Room.id).where(Room.tenant_id == tenant_id, Room.id.in_(room_ids))
                ).scalars()
            )
            missing = room_ids - found
            if missing:
                raise NotFoundError(f"Room(s) not found: {', '.join(sorted(str(r) for r in missing))}")

        replace_room_mappings(conn, tenant_id, integration_id, mappings)
        return get_room_mappings(conn, tenant_id, integration_id)


def list_room_mappings(engine: Engine, tenant_id: UUID, integration_id: UUID) -> list[MappingWithRoom]:
    with engine.connect() as conn:
        if get_integration(conn, tenant_id, integration_id) is None:
            raise NotFoundError(f"Integration {integration_id} not found")
        return get_room_mappings(conn, tenant_id, integration_id)
