from typing import Optional
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.engine import Engine

from booking_sync.config import SYNC_LOG_DEFAULT_LIMIT
from booking_sync.dependencies import get_db_engine, get_tenant_id
from booking_sync.errors import BookingSyncError
from booking_sync.records import IntegrationCredentials, IntegrationRecord, MappingWithRoom
from booking_sync.routes._helpers import http_error
from booking_sync.schemas.integrations import (
    ConnectionTestResponse,
    IntegrationCreatePayload,
    IntegrationResponse,
    IntegrationUpdatePayload,
    RoomMappingResponse,
    RoomMappingsPayload,
    SyncLogResponse,
    SyncRunResponse,
    SyncTriggerPayload,
)
from booking_sync.services import sync as sync_service
from booking_sync.services.integrations import (
    create_integration,
    get_integration_detail,
    list_room_mappings,
    list_tenant_integrations,
    remove_integration,
    set_room_mappings,
    update_integration,
)

logger = structlog.get_logger(__name__)
router = APIRouter()


def _mapping_response(m: MappingWithRoom) -> RoomMappingResponse:
    return RoomMappingResponse(
        id=m.id,
        room_id=m.room_id,
        room_name=m.room_name,
        external_room_id=m.external_room_id,
        external_room_name=m.external_room_name,
        ical_url=m.ical_url,
        last_ical_sync=m.last_ical_sync,
    )


def _integration_response(
    integration: IntegrationRecord, credentials: IntegrationCredentials
) -> IntegrationResponse:
    return IntegrationResponse(
        id=integration.id,
        platform=integration.platform,
        display_name=integration.display_name,
        is_active=integration.is_active,
        is_connected=integration.is_connected,
        last_synced_at=integration.last_synced_at,
        last_error=integration.last_error,
        auto_sync_enabled=integration.auto_sync_enabled,
        sync_interval_minutes=integration.sync_interval_minutes,
        credentials=credentials.masked(),
    )


@router.post("/integrations", status_code=status.HTTP_201_CREATED, response_model=IntegrationResponse)
def create_integration_endpoint(
    payload: IntegrationCreatePayload,
    tenant_id: UUID = Depends(get_tenant_id),
    engine: Engine = Depends(get_db_engine),
) -> IntegrationResponse:
    """
    Connect the tenant to a booking channel.

    Args:
        payload: Platform, display name, credentials and auto-sync settings
        tenant_id: Tenant from the X-Tenant-ID header
        engine: Database engine (injected)

    Returns:
        IntegrationResponse: The new integration with masked credentials
    """
    try:
        integration, credentials = create_integration(
            engine,
            tenant_id,
            platform=payload.platform,
            display_name=payload.display_name,
            credentials=payload.credentials,
            auto_sync_enabled=payload.auto_sync_enabled,
            sync_interval_minutes=payload.sync_interval_minutes,
        )
    except BookingSyncError as e:
        raise http_error(e)
    except Exception as e:
        logger.exception("integration_creation_failed", platform=payload.platform, error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")

    return _integration_response(integration, credentials)


@router.get("/integrations", response_model=list[IntegrationResponse])
def list_integrations_endpoint(
    tenant_id: UUID = Depends(get_tenant_id),
    engine: Engine = Depends(get_db_engine),
) -> list[IntegrationResponse]:
    """All integrations of the tenant with masked credentials."""
    try:
        integrations = list_tenant_integrations(engine, tenant_id)
    except Exception as e:
        logger.exception("integration_list_failed", error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")

    return [_integration_response(i, c) for i, c in integrations]


@router.get("/integrations/{integration_id}", response_model=IntegrationResponse)
def get_integration_endpoint(
    integration_id: UUID,
    tenant_id: UUID = Depends(get_tenant_id),
    engine: Engine = Depends(get_db_engine),
) -> IntegrationResponse:
    try:
        integration, credentials = get_integration_detail(engine, tenant_id, integration_id)
    except BookingSyncError as e:
        raise http_error(e)
    except Exception as e:
        logger.exception("integration_read_failed", integration_id=str(integration_id), error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")

    return _integration_response(integration, credentials)


@router.put("/integrations/{integration_id}", response_model=IntegrationResponse)
def update_integration_endpoint(
    integration_id: UUID,
    payload: IntegrationUpdatePayload,
    tenant_id: UUID = Depends(get_tenant_id),
    engine: Engine = Depends(get_db_engine),
) -> IntegrationResponse:
    """
    Update an integration's settings. All fields are optional.

    Credentials cannot be changed; a payload carrying them is rejected with 422.

    Args:
        integration_id: Integration to update
        payload: display_name, is_active, auto_sync_enabled, sync_interval_minutes
        tenant_id: Tenant from the X-Tenant-ID header
        engine: Database engine (injected)

    Returns:
        IntegrationResponse: The updated integration with masked credentials
    """
    try:
        integration, credentials = update_integration(
            engine,
            tenant_id,
            integration_id,
            display_name=payload.display_name,
            is_active=payload.is_active,
            auto_sync_enabled=payload.auto_sync_enabled,
            sync_interval_minutes=payload.sync_interval_minutes,
        )
    except BookingSyncError as e:
        raise http_error(e)
    except Exception as e:
        logger.exception("integration_update_failed", integration_id=str(integration_id), error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")

    return _integration_response(integration, credentials)


@router.delete("/integrations/{integration_id}", status_code=status.HTTP_200_OK)
def delete_integration_endpoint(
    integration_id: UUID,
    tenant_id: UUID = Depends(get_tenant_id),
    engine: Engine = Depends(get_db_engine),
) -> dict[str, str]:
    """
    Permanently delete an integration with its room mappings and sync logs.

    Bookings imported through it stay in the ledger. Returns 409 while a sync
    is running.
    """
    try:
        remove_integration(engine, tenant_id, integration_id)
    except BookingSyncError as e:
        raise http_error(e)
    except Exception as e:
        logger.exception("integration_deletion_failed", integration_id=str(integration_id), error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")

    return {"message": f"Integration {integration_id} deleted"}


@router.put("/integrations/{integration_id}/room-mappings", response_model=list[RoomMappingResponse])
def replace_room_mappings_endpoint(
    integration_id: UUID,
    payload: RoomMappingsPayload,
    tenant_id: UUID = Depends(get_tenant_id),
    engine: Engine = Depends(get_db_engine),
) -> list[RoomMappingResponse]:
    """Replace every room mapping of an integration and return the stored set."""
    try:
        mappings = set_room_mappings(
            engine, tenant_id, integration_id, [m.model_dump() for m in payload.mappings]
        )
    except BookingSyncError as e:
        raise http_error(e)
    except Exception as e:
        logger.exception("room_mapping_update_failed", integration_id=str(integration_id), error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")

    return [_mapping_response(m) for m in mappings]


@router.get("/integrations/{integration_id}/room-mappings", response_model=list[RoomMappingResponse])
def get_room_mappings_endpoint(
    integration_id: UUID,
    tenant_id: UUID = Depends(get_tenant_id),
    engine: Engine = Depends(get_db_engine),
) -> list[RoomMappingResponse]:
    try:
        mappings = list_room_mappings(engine, tenant_id, integration_id)
    except BookingSyncError as e:
        raise http_error(e)
    except Exception as e:
        logger.exception("room_mapping_read_failed", integration_id=str(integration_id), error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")

    return [_mapping_response(m) for m in mappings]


@router.post("/integrations/{integration_id}/sync", response_model=SyncRunResponse)
def trigger_sync(
    integration_id: UUID,
    payload: Optional[SyncTriggerPayload] = None,
    dry_run: Optional[bool] = Query(None, description="Override DRY_RUN setting"),
    tenant_id: UUID = Depends(get_tenant_id),
    engine: Engine = Depends(get_db_engine),
) -> SyncRunResponse:
    """
    Run an inbound sync of every mapped calendar now.

    The run completes before the response is sent, so the caller gets the
    sync log id and terminal counts. Returns 409 while another run holds the
    integration's sync lease.

    Args:
        integration_id: Integration to sync
        payload: Optional sync type (defaults to "full")
        dry_run: Override DRY_RUN setting (optional)
        tenant_id: Tenant from the X-Tenant-ID header
        engine: Database engine (injected)

    Returns:
        SyncRunResponse: Log id, status, counts, errors and conflicts
    """
    sync_type = payload.sync_type if payload else "full"
    kwargs = {} if dry_run is None else {"dry_run": dry_run}
    try:
        result = sync_service.sync_integration(
            engine, tenant_id, integration_id, sync_type=sync_type, **kwargs
        )
    except BookingSyncError as e:
        raise http_error(e)
    except Exception as e:
        logger.exception("sync_trigger_failed", integration_id=str(integration_id), error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")

    return SyncRunResponse(
        log_id=result.log_id,
        status=result.status,
        records_created=result.records_created,
        records_updated=result.records_updated,
        records_skipped=result.records_skipped,
        records_failed=result.records_failed,
        errors=result.errors,
        conflicts=result.conflicts,
    )


@router.get("/integrations/{integration_id}/sync-logs", response_model=list[SyncLogResponse])
def get_sync_logs(
    integration_id: UUID,
    limit: int = Query(SYNC_LOG_DEFAULT_LIMIT, ge=1, le=200),
    tenant_id: UUID = Depends(get_tenant_id),
    engine: Engine = Depends(get_db_engine),
) -> list[SyncLogResponse]:
    """Recent sync runs of an integration, newest first."""
    try:
        logs = sync_service.list_sync_logs(engine, tenant_id, integration_id, limit=limit)
    except BookingSyncError as e:
        raise http_error(e)
    except Exception as e:
        logger.exception("sync_log_read_failed", integration_id=str(integration_id), error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")

    return [
        SyncLogResponse(
            id=log.id,
            sync_type=log.sync_type,
            direction=log.direction,
            status=log.status,
            started_at=log.started_at,
            completed_at=log.completed_at,
            records_processed=log.records_processed,
            records_created=log.records_created,
            records_updated=log.records_updated,
            records_skipped=log.records_skipped,
            records_failed=log.records_failed,
            error_message=log.error_message,
            details=log.details,
        )
        for log in logs
    ]


@router.post("/integrations/{integration_id}/test", response_model=ConnectionTestResponse)
def test_integration(
    integration_id: UUID,
    tenant_id: UUID = Depends(get_tenant_id),
    engine: Engine = Depends(get_db_engine),
) -> ConnectionTestResponse:
    """Fetch and parse every mapped feed without importing anything."""
    try:
        result = sync_service.test_connection(engine, tenant_id, integration_id)
    except BookingSyncError as e:
        raise http_error(e)
    except Exception as e:
        logger.exception("connection_test_failed", integration_id=str(integration_id), error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")

    return ConnectionTestResponse(
        connected=result.connected,
        feeds_total=result.feeds_total,
        feeds_valid=result.feeds_valid,
        feeds_invalid=result.feeds_invalid,
        errors=result.errors,
    )
