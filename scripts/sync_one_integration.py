import sys
from pathlib import Path
from uuid import UUID

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import structlog

from booking_sync.db.engine import engine
from booking_sync.logging_config import setup_logging
from booking_sync.services.sync import sync_integration

setup_logging()
logger = structlog.get_logger(__name__)


def main() -> None:
    """
    Run one full inbound sync for an integration.

    Usage: python scripts/sync_one_integration.py <tenant_id> <integration_id> [--dry-run]
    """
    if len(sys.argv) < 3:
        print("Usage: sync_one_integration.py <tenant_id> <integration_id> [--dry-run]")
        sys.exit(2)

    tenant_id = UUID(sys.argv[1])
    integration_id = UUID(sys.argv[2])
    dry_run = "--dry-run" in sys.argv[3:]

    logger.info("manual_sync_started", integration_id=str(integration_id), dry_run=dry_run)

    try:
        result = sync_integration(engine, tenant_id, integration_id, dry_run=dry_run)
        logger.info(
            "manual_sync_completed",
            integration_id=str(integration_id),
            status=result.status,
            created=result.records_created,
            updated=result.records_updated,
            conflicts=len(result.conflicts),
        )
    except Exception:
        logger.exception("manual_sync_failed", integration_id=str(integration_id))
        raise


if __name__ == "__main__":
    main()
