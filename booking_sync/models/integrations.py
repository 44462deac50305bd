"""SQLAlchemy models for channel integrations and their room mappings."""

import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)

from booking_sync.models.base import Base
from booking_sync.utils.datetime import utc_now


class Integration(Base):
    """
    ORM model for a tenant's connection to one booking channel.

    ``credentials`` and ``webhook_secret`` are written once when the integration
    is created and never updated afterwards. ``sync_lease_expires_at`` is the
    per-integration sync lock: a run may start only when it is NULL or in the
    past.
    """

    __tablename__ = "integrations"
    __table_args__ = (UniqueConstraint("tenant_id", "platform", name="uq_integrations_tenant_platform"),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid, nullable=False, index=True)
    platform = Column(String(50), nullable=False)
    display_name = Column(String(255), nullable=True)
    credentials = Column(JSON, nullable=False, default=dict)
    webhook_secret = Column(String(255), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    is_connected = Column(Boolean, nullable=False, default=False)
    last_synced_at = Column(DateTime(timezone=True), nullable=True)
    last_error = Column(Text, nullable=True)
    auto_sync_enabled = Column(Boolean, nullable=False, default=False)
    sync_interval_minutes = Column(Integer, nullable=False, default=60)
    sync_lease_expires_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)


class RoomMapping(Base):
    """
    ORM model linking an internal room to a room/listing on the channel.

    ``ical_url`` is optional: mappings without a feed are skipped by sync runs.
    """

    __tablename__ = "room_mappings"
    __table_args__ = (
        UniqueConstraint(
            "integration_id", "external_room_id", name="uq_room_mappings_integration_external"
        ),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid, nullable=False, index=True)
    integration_id = Column(
        Uuid, ForeignKey("integrations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    room_id = Column(Uuid, ForeignKey("rooms.id", ondelete="CASCADE"), nullable=False, index=True)
    external_room_id = Column(String(255), nullable=False)
    external_room_name = Column(String(255), nullable=True)
    ical_url = Column(Text, nullable=True)
    last_ical_sync = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)
