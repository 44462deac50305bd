# models/bookings.py

import uuid

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)

from booking_sync.models.base import Base
from booking_sync.utils.datetime import utc_now


class Booking(Base):
    """
    ORM model for the booking ledger.

    Every reservation lives here regardless of origin: direct bookings carry
    ``source="direct"`` and no ``external_id``, channel-synced bookings carry the
    platform name in ``source`` and the feed's event UID in ``external_id``.
    The stay is the half-open interval [check_in, check_out). Rows are never
    deleted by the engine; cancellation is a status change.
    """

    __tablename__ = "bookings"
    __table_args__ = (
        UniqueConstraint("tenant_id", "external_id", name="uq_bookings_tenant_external_id"),
        CheckConstraint("check_out > check_in", name="bookings_valid_dates"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid, nullable=False, index=True)
    room_id = Column(Uuid, ForeignKey("rooms.id", ondelete="CASCADE"), nullable=False, index=True)
    guest_name = Column(String(255), nullable=False)
    guest_email = Column(String(255), nullable=True)
    guest_phone = Column(String(50), nullable=True)
    guests = Column(Integer, nullable=True)
    check_in = Column(Date, nullable=False)
    check_out = Column(Date, nullable=False)
    status = Column(String(20), nullable=False, default="pending")
    payment_status = Column(String(20), nullable=False, default="pending")
    source = Column(String(50), nullable=False, default="direct")
    external_id = Column(String(255), nullable=True)  # Feed event UID
    synced_at = Column(DateTime(timezone=True), nullable=True)
    total_amount = Column(Numeric(10, 2), nullable=False, default=0)
    currency = Column(String(3), nullable=False, default="ZAR")
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)
