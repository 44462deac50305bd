"""
Sync Reconciler: merges one room mapping's calendar feed into the booking ledger.

For every reservation in the feed:
    * a booking with the same (tenant_id, external_id) is refreshed from the feed;
    * otherwise a new booking is created, ``confirmed`` when it collides with
      nothing and ``pending`` plus a ``[CONFLICT]`` note when it overlaps a
      booking from another source.

Each record is written in its own transaction; a failed write is recorded and
the remaining records are still processed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional
from uuid import UUID

import structlog
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from booking_sync.config import DRY_RUN
from booking_sync.db.readers.bookings import get_booking_by_external_id, get_non_cancelled_bookings
from booking_sync.db.writers.bookings import insert_booking, update_synced_booking
from booking_sync.db.writers.integrations import touch_mapping_sync
from booking_sync.errors import PersistenceError
from booking_sync.metrics import conflicts_detected, records_synced
from booking_sync.models.enums import BookingStatus
from booking_sync.pollers.feeds import poll_feed
from booking_sync.records import ExternalReservation, IntegrationRecord, MappingWithRoom
from booking_sync.services.conflicts import (
    Candidate,
    ConflictWarning,
    annotate_notes,
    describe_conflict,
    find_conflicts,
)
from booking_sync.utils.datetime import utc_now

logger = structlog.get_logger(__name__)


@dataclass
class MappingResult:
    mapping_id: UUID
    room_id: UUID
    room_name: str
    created: int = 0
    updated: int = 0
    skipped: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)
    conflicts: list[ConflictWarning] = field(default_factory=list)

    @property
    def synced(self) -> int:
        return self.created + self.updated


def _reconcile_record(
    engine: Engine,
    integration: IntegrationRecord,
    mapping: MappingWithRoom,
    record: ExternalReservation,
    feed_ids: frozenset[str],
    synced_at: datetime,
    dry_run: bool,
) -> tuple[str, Optional[ConflictWarning]]:
    """
    Apply one external reservation to the ledger.

    Returns:
        ("created" | "updated", conflict warning or None)

    Raises:
        PersistenceError: If reading or writing the ledger fails.
    """
    tenant_id = integration.tenant_id
    try:
        with engine.begin() as conn:
            existing = get_booking_by_external_id(conn, tenant_id, record.external_id)
            if existing is not None:
                if dry_run:
                    logger.info("[DRY RUN] Would update booking", external_id=record.external_id)
                else:
                    update_synced_booking(
                        conn,
                        tenant_id=tenant_id,
                        booking_id=existing.id,
                        guest_name=record.guest_name,
                        check_in=record.check_in,
                        check_out=record.check_out,
                        notes=record.notes,
                        synced_at=synced_at,
                    )
                return "updated", None

            # Bookings from this same feed are the channel's own inventory, not conflicts
            others = [
                b
                for b in get_non_cancelled_bookings(conn, tenant_id, mapping.room_id)
                if b.external_id is None or b.external_id not in feed_ids
            ]
            candidate = Candidate(
                room_id=mapping.room_id,
                check_in=record.check_in,
                check_out=record.check_out,
                external_id=record.external_id,
            )
            conflicts = find_conflicts(candidate, others)

            warning = None
            status = BookingStatus.CONFIRMED.value
            notes = record.notes
            if conflicts:
                status = BookingStatus.PENDING.value
                notes = annotate_notes(record.notes, conflicts)
                warning = ConflictWarning(
                    room_id=mapping.room_id,
                    external_id=record.external_id,
                    guest_name=record.guest_name,
                    check_in=record.check_in,
                    check_out=record.check_out,
                    conflicting_booking_ids=tuple(b.id for b in conflicts),
                    description=f"{mapping.label}: "
                    + describe_conflict(record.guest_name, record.check_in, record.check_out, conflicts),
                )

            if dry_run:
                logger.info(
                    "[DRY RUN] Would create booking", external_id=record.external_id, status=status
                )
            else:
                insert_booking(
                    conn,
                    tenant_id=tenant_id,
                    room_id=mapping.room_id,
                    guest_name=record.guest_name,
                    check_in=record.check_in,
                    check_out=record.check_out,
                    status=status,
                    source=integration.platform,
                    external_id=record.external_id,
                    synced_at=synced_at,
                    notes=notes,
                )
            return "created", warning
    except SQLAlchemyError as err:
        raise PersistenceError(
            f"Failed to store booking {record.external_id}: {err.__class__.__name__}"
        ) from err


def reconcile_mapping(
    engine: Engine,
    integration: IntegrationRecord,
    mapping: MappingWithRoom,
    dry_run: bool = DRY_RUN,
) -> MappingResult:
    """
    Fetch one mapping's feed and merge it into the ledger.

    Args:
        engine (Engine): SQLAlchemy engine.
        integration (IntegrationRecord): Integration the mapping belongs to.
        mapping (MappingWithRoom): Room mapping to reconcile.
        dry_run (bool): If True, read and compare but skip ledger writes.

    Returns:
        MappingResult: Counts, mapping-scoped error strings and conflict warnings.
    """
    result = MappingResult(mapping_id=mapping.id, room_id=mapping.room_id, room_name=mapping.label)
    log = logger.bind(
        integration_id=str(integration.id), mapping_id=str(mapping.id), room=mapping.label
    )

    if not mapping.ical_url:
        log.info("mapping_skipped", reason="no_ical_url")
        result.skipped = 1
        records_synced.labels(operation="skipped").inc()
        return result

    feed = poll_feed(mapping.ical_url, platform=integration.platform)
    if not feed.ok:
        result.errors.append(f"{mapping.label}: {feed.error}")
        return result

    synced_at = utc_now()
    feed_ids = frozenset(r.external_id for r in feed.records)
    seen: set[str] = set()

    for record in feed.records:
        # A repeated id would otherwise overwrite the stay stored for its first occurrence
        if record.external_id in seen:
            log.error(
                "duplicate_feed_event",
                external_id=record.external_id,
                check_in=record.check_in.isoformat(),
            )
            result.failed += 1
            result.errors.append(
                f"{mapping.label}: duplicate event id {record.external_id} in feed "
                f"({record.check_in} to {record.check_out} not imported)"
            )
            records_synced.labels(operation="failed").inc()
            continue
        seen.add(record.external_id)

        try:
            outcome, warning = _reconcile_record(
                engine, integration, mapping, record, feed_ids, synced_at, dry_run
            )
        except PersistenceError as err:
            log.error("record_failed", external_id=record.external_id, error=str(err))
            result.failed += 1
            result.errors.append(f"{mapping.label}: {err}")
            records_synced.labels(operation="failed").inc()
            continue

        if outcome == "updated":
            result.updated += 1
        else:
            result.created += 1
        records_synced.labels(operation=outcome).inc()

        if warning is not None:
            result.conflicts.append(warning)
            conflicts_detected.labels(platform=integration.platform).inc()
            log.warning("booking_conflict", external_id=record.external_id, detail=warning.description)

    if not dry_run:
        try:
            with engine.begin() as conn:
                touch_mapping_sync(conn, mapping.id, synced_at)
        except SQLAlchemyError as err:
            log.warning("mapping_sync_timestamp_failed", error=str(err))

    log.info(
        "mapping_reconciled",
        created=result.created,
        updated=result.updated,
        failed=result.failed,
        conflicts=len(result.conflicts),
    )
    return result
