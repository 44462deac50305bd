"""Integration-level sync orchestrator for channel calendar feeds."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional
from uuid import UUID

import structlog
from sqlalchemy.engine import Engine

from booking_sync.config import DRY_RUN, SYNC_LEASE_SECONDS, SYNC_LOG_DEFAULT_LIMIT
from booking_sync.db.readers import sync_logs as sync_log_reader
from booking_sync.db.readers.integrations import get_integration, get_room_mappings
from booking_sync.db.writers.integrations import (
    acquire_sync_lease,
    release_sync_lease,
    update_connection_status,
    update_sync_outcome,
)
from booking_sync.db.writers.sync_logs import (
    complete_sync_log,
    create_sync_log,
    mark_sync_in_progress,
)
from booking_sync.errors import NotFoundError, SyncInProgressError, ValidationError
from booking_sync.metrics import sync_duration, sync_runs
from booking_sync.models.enums import SyncStatus, SyncType
from booking_sync.pollers.feeds import poll_feed
from booking_sync.records import IntegrationRecord, MappingWithRoom, SyncLogRecord
from booking_sync.services.notifications import LoggingNotifier, Notifier, SyncNotification
from booking_sync.services.reconciler import MappingResult, reconcile_mapping
from booking_sync.utils.datetime import utc_now

logger = structlog.get_logger(__name__)


@dataclass
class SyncRunResult:
    log_id: UUID
    integration_id: UUID
    status: str
    records_created: int = 0
    records_updated: int = 0
    records_skipped: int = 0
    records_failed: int = 0
    errors: list[str] = field(default_factory=list)
    conflicts: list[str] = field(default_factory=list)
    room_names: list[str] = field(default_factory=list)

    @property
    def records_synced(self) -> int:
        return self.records_created + self.records_updated

    @property
    def hard_failure(self) -> bool:
        """Errors occurred and nothing at all was synced."""
        return bool(self.errors) and self.records_synced == 0


@dataclass
class ConnectionTestResult:
    feeds_total: int
    feeds_valid: int
    feeds_invalid: int
    connected: bool
    errors: list[str] = field(default_factory=list)


def determine_status(errors: list[str], conflicts: list[str]) -> str:
    """
    Terminal status of a run: ``partial`` if any mapping failed, else
    ``warning`` if any conflict was flagged, else ``success``.
    """
    if errors:
        return SyncStatus.PARTIAL.value
    if conflicts:
        return SyncStatus.WARNING.value
    return SyncStatus.SUCCESS.value


def _load_integration(engine: Engine, tenant_id: UUID, integration_id: UUID) -> IntegrationRecord:
    with engine.connect() as conn:
        integration = get_integration(conn, tenant_id, integration_id)
    if integration is None:
        raise NotFoundError(f"Integration {integration_id} not found")
    return integration


def _aggregate(result: SyncRunResult, mapping_result: MappingResult) -> None:
    result.records_created += mapping_result.created
    result.records_updated += mapping_result.updated
    result.records_skipped += mapping_result.skipped
    result.records_failed += mapping_result.failed
    result.errors.extend(mapping_result.errors)
    result.conflicts.extend(c.description for c in mapping_result.conflicts)
    if mapping_result.synced:
        result.room_names.append(mapping_result.room_name)


def _run_mappings(
    engine: Engine,
    integration: IntegrationRecord,
    result: SyncRunResult,
    dry_run: bool,
) -> None:
    with engine.connect() as conn:
        mappings = get_room_mappings(conn, integration.tenant_id, integration.id)

    logger.info("mappings_found", integration_id=str(integration.id), count=len(mappings))

    # Sequential on purpose: each mapping must see the ledger as left by the previous one
    for mapping in mappings:
        try:
            mapping_result = reconcile_mapping(engine, integration, mapping, dry_run=dry_run)
        except Exception as e:
            logger.exception(
                "mapping_sync_failed", integration_id=str(integration.id), mapping_id=str(mapping.id)
            )
            mapping_result = MappingResult(
                mapping_id=mapping.id,
                room_id=mapping.room_id,
                room_name=mapping.label,
                errors=[f"{mapping.label}: {e}"],
            )
        _aggregate(result, mapping_result)


def _notify(notifier: Notifier, integration: IntegrationRecord, result: SyncRunResult) -> None:
    notification = SyncNotification(
        tenant_id=integration.tenant_id,
        integration_id=integration.id,
        platform=integration.display_name or integration.platform,
        success=not result.hard_failure,
        bookings_imported=result.records_synced,
        room_names=tuple(result.room_names),
        conflicts=len(result.conflicts),
        error_message=result.errors[0] if result.errors else None,
    )
    try:
        notifier.notify(notification)
    except Exception as e:
        logger.exception("sync_notification_failed", integration_id=str(integration.id), error=str(e))


def sync_integration(
    engine: Engine,
    tenant_id: UUID,
    integration_id: UUID,
    sync_type: str = SyncType.FULL.value,
    notifier: Optional[Notifier] = None,
    dry_run: bool = DRY_RUN,
) -> SyncRunResult:
    """
    Run one inbound sync of every room mapping of an integration.

    Takes the integration's sync lease, opens a SyncLog (pending ->
    in_progress), reconciles each mapping in turn, then stores the terminal
    status, updates the integration and notifies the collaborator.

    Args:
        engine (Engine): SQLAlchemy engine.
        tenant_id (UUID): Owning tenant.
        integration_id (UUID): Integration to sync.
        sync_type (str): Requested sync type, stored on the log.
        notifier (Optional[Notifier]): Receives the run summary (defaults to logging).
        dry_run (bool): If True, skip ledger writes.

    Returns:
        SyncRunResult: Log id, terminal status, counts, errors and conflicts.

    Raises:
        NotFoundError: If the integration does not exist for this tenant.
        ValidationError: If the integration is inactive.
        SyncInProgressError: If another run holds the lease.
    """
    integration = _load_integration(engine, tenant_id, integration_id)
    if not integration.is_active:
        raise ValidationError(f"Integration {integration_id} is not active")

    with engine.begin() as conn:
        lease_expires_at = acquire_sync_lease(conn, integration.id, SYNC_LEASE_SECONDS)
        if lease_expires_at is None:
            raise SyncInProgressError(f"A sync is already running for integration {integration_id}")

    log = logger.bind(integration_id=str(integration.id), platform=integration.platform)
    try:
        with engine.begin() as conn:
            log_id = create_sync_log(conn, tenant_id, integration.id, sync_type)
        with engine.begin() as conn:
            mark_sync_in_progress(conn, log_id)
        log.info("sync_started", log_id=str(log_id), sync_type=sync_type, dry_run=dry_run)

        result = SyncRunResult(log_id=log_id, integration_id=integration.id, status=SyncStatus.IN_PROGRESS.value)

        with sync_duration.labels(platform=integration.platform).time():
            try:
                _run_mappings(engine, integration, result, dry_run)
            except Exception as e:
                with engine.begin() as conn:
                    complete_sync_log(
                        conn,
                        log_id,
                        status=SyncStatus.FAILED.value,
                        counts={},
                        error_message=str(e),
                        details={"errors": [str(e)], "conflicts": []},
                    )
                sync_runs.labels(platform=integration.platform, status=SyncStatus.FAILED.value).inc()
                log.exception("sync_failed", log_id=str(log_id), error=str(e))
                raise

        result.status = determine_status(result.errors, result.conflicts)
        completed_at = utc_now()

        with engine.begin() as conn:
            complete_sync_log(
                conn,
                log_id,
                status=result.status,
                counts={
                    "records_processed": result.records_synced + result.records_failed,
                    "records_created": result.records_created,
                    "records_updated": result.records_updated,
                    "records_skipped": result.records_skipped,
                    "records_failed": result.records_failed,
                },
                error_message=result.errors[0] if result.errors else None,
                details={"errors": result.errors, "conflicts": result.conflicts},
                completed_at=completed_at,
            )
            last_error = result.errors[0] if result.errors else (result.conflicts[0] if result.conflicts else None)
            update_sync_outcome(
                conn,
                tenant_id,
                integration.id,
                synced_at=completed_at,
                is_connected=result.records_synced > 0 or not result.errors,
                last_error=last_error,
            )
    finally:
        with engine.begin() as conn:
            if not release_sync_lease(conn, integration.id, lease_expires_at):
                log.warning("sync_lease_lost", reason="lease expired and was reclaimed")

    sync_runs.labels(platform=integration.platform, status=result.status).inc()
    log.info(
        "sync_completed",
        log_id=str(result.log_id),
        status=result.status,
        created=result.records_created,
        updated=result.records_updated,
        skipped=result.records_skipped,
        failed=result.records_failed,
        errors=len(result.errors),
        conflicts=len(result.conflicts),
    )

    _notify(notifier or LoggingNotifier(), integration, result)
    return result


def test_connection(engine: Engine, tenant_id: UUID, integration_id: UUID) -> ConnectionTestResult:
    """
    Validate every mapped feed of an integration by fetching and parsing it.

    Nothing is written to the ledger or the sync logs. The integration counts
    as connected when it has no feeds or at least one feed validates, so one
    broken calendar among several does not disconnect it.

    Args:
        engine (Engine): SQLAlchemy engine.
        tenant_id (UUID): Owning tenant.
        integration_id (UUID): Integration to test.

    Returns:
        ConnectionTestResult: Per-feed validation counts and the connected flag.
    """
    integration = _load_integration(engine, tenant_id, integration_id)
    with engine.connect() as conn:
        mappings: list[MappingWithRoom] = [
            m for m in get_room_mappings(conn, tenant_id, integration.id) if m.ical_url
        ]

    errors = []
    valid = 0
    for mapping in mappings:
        feed = poll_feed(mapping.ical_url or "", platform=integration.platform)
        if feed.ok:
            valid += 1
        else:
            errors.append(f"{mapping.label}: {feed.error}")

    connected = len(mappings) == 0 or valid > 0
    with engine.begin() as conn:
        update_connection_status(
            conn, tenant_id, integration.id, is_connected=connected, last_error=errors[0] if errors else None
        )

    logger.info(
        "connection_tested",
        integration_id=str(integration.id),
        feeds_total=len(mappings),
        feeds_valid=valid,
        connected=connected,
    )
    return ConnectionTestResult(
        feeds_total=len(mappings),
        feeds_valid=valid,
        feeds_invalid=len(mappings) - valid,
        connected=connected,
        errors=errors,
    )


def list_sync_logs(
    engine: Engine, tenant_id: UUID, integration_id: UUID, limit: int = SYNC_LOG_DEFAULT_LIMIT
) -> list[SyncLogRecord]:
    """Recent sync runs of an integration, newest first."""
    integration = _load_integration(engine, tenant_id, integration_id)
    with engine.connect() as conn:
        return sync_log_reader.list_sync_logs(conn, tenant_id, integration.id, limit=limit)
