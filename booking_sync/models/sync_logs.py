import uuid

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String, Text, Uuid

from booking_sync.models.base import Base
from booking_sync.utils.datetime import utc_now


class SyncLog(Base):
    """
    ORM model for one sync run of an integration.

    Status moves pending -> in_progress -> success | partial | warning | failed.
    ``details`` keeps the per-mapping error strings and conflict descriptions
    gathered during the run.
    """

    __tablename__ = "sync_logs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid, nullable=False, index=True)
    integration_id = Column(
        Uuid, ForeignKey("integrations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    sync_type = Column(String(50), nullable=False)
    direction = Column(String(20), nullable=False, default="inbound")
    status = Column(String(20), nullable=False, default="pending")
    started_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    records_processed = Column(Integer, nullable=False, default=0)
    records_created = Column(Integer, nullable=False, default=0)
    records_updated = Column(Integer, nullable=False, default=0)
    records_skipped = Column(Integer, nullable=False, default=0)
    records_failed = Column(Integer, nullable=False, default=0)
    error_message = Column(Text, nullable=True)
    details = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, index=True)
