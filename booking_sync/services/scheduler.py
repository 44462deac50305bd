"""
Periodic dispatcher for integrations with auto-sync enabled.

Each pass selects the integrations whose interval has elapsed and runs them
one after another through the orchestrator. The sync lease keeps a scheduled
run and a manual trigger of the same integration from overlapping.
"""

from __future__ import annotations

import threading
from datetime import datetime, timedelta
from typing import Optional

import structlog
from sqlalchemy.engine import Connection, Engine

from booking_sync.config import DRY_RUN, SCHEDULER_TICK_SECONDS
from booking_sync.db.readers.integrations import get_auto_sync_integrations
from booking_sync.errors import SyncInProgressError
from booking_sync.models.enums import SyncType
from booking_sync.records import IntegrationRecord
from booking_sync.services.notifications import Notifier
from booking_sync.services.sync import SyncRunResult, sync_integration
from booking_sync.utils.datetime import as_aware, utc_now

logger = structlog.get_logger(__name__)


def is_due(integration: IntegrationRecord, now: datetime) -> bool:
    """
    Whether an integration should be synced at ``now``.

    Args:
        integration (IntegrationRecord): Candidate integration.
        now (datetime): Current UTC time.

    Returns:
        bool: True if active, auto-sync is on, and it never synced or its
        interval has elapsed since the last sync.
    """
    if not integration.is_active or not integration.auto_sync_enabled:
        return False
    if integration.last_synced_at is None:
        return True
    interval = timedelta(minutes=integration.sync_interval_minutes)
    return as_aware(integration.last_synced_at) + interval <= now


def find_due_integrations(conn: Connection, now: Optional[datetime] = None) -> list[IntegrationRecord]:
    now = now or utc_now()
    return [i for i in get_auto_sync_integrations(conn) if is_due(i, now)]


def run_due_syncs(
    engine: Engine,
    now: Optional[datetime] = None,
    notifier: Optional[Notifier] = None,
    dry_run: bool = DRY_RUN,
) -> list[SyncRunResult]:
    """
    Run one full sync for every due integration.

    A failure in one integration is logged and the pass moves on to the next.

    Args:
        engine (Engine): SQLAlchemy engine.
        now (Optional[datetime]): Reference time (defaults to utc_now()).
        notifier (Optional[Notifier]): Passed through to each run.
        dry_run (bool): If True, runs skip ledger writes.

    Returns:
        list[SyncRunResult]: Results of the runs that completed.
    """
    with engine.connect() as conn:
        due = find_due_integrations(conn, now)

    logger.info("scheduler_pass_started", due=len(due))
    results = []
    for integration in due:
        try:
            results.append(
                sync_integration(
                    engine,
                    integration.tenant_id,
                    integration.id,
                    sync_type=SyncType.FULL.value,
                    notifier=notifier,
                    dry_run=dry_run,
                )
            )
        except SyncInProgressError:
            logger.info("scheduled_sync_skipped", integration_id=str(integration.id), reason="lease_held")
        except Exception as e:
            logger.exception("scheduled_sync_failed", integration_id=str(integration.id), error=str(e))

    logger.info("scheduler_pass_completed", due=len(due), completed=len(results))
    return results


def run_forever(
    engine: Engine,
    tick_seconds: int = SCHEDULER_TICK_SECONDS,
    stop_event: Optional[threading.Event] = None,
) -> None:
    """
    Run scheduler passes until ``stop_event`` is set.

    Args:
        engine (Engine): SQLAlchemy engine.
        tick_seconds (int): Seconds to wait between passes.
        stop_event (Optional[threading.Event]): Set it to stop the loop.
    """
    stop_event = stop_event or threading.Event()
    logger.info("scheduler_started", tick_seconds=tick_seconds)
    while not stop_event.is_set():
        try:
            run_due_syncs(engine)
        except Exception as e:
            logger.exception("scheduler_pass_failed", error=str(e))
        stop_event.wait(tick_seconds)
    logger.info("scheduler_stopped")
