"""SQLAlchemy models for rooms and their seasonal rate overrides."""

import uuid

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Uuid,
)

from booking_sync.models.base import Base
from booking_sync.utils.datetime import utc_now


class Room(Base):
    """
    ORM model for a bookable room.

    A room is either a single physical unit or a pool of ``total_units``
    interchangeable units (``inventory_mode``). Pricing starts from
    ``base_price_per_night`` and is overridden per night by seasonal rates.
    """

    __tablename__ = "rooms"
    __table_args__ = (
        CheckConstraint("total_units >= 1", name="rooms_valid_total_units"),
        CheckConstraint("max_guests > 0", name="rooms_valid_max_guests"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    base_price_per_night = Column(Numeric(10, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="ZAR")
    total_units = Column(Integer, nullable=False, default=1)
    inventory_mode = Column(String(20), nullable=False, default="single_unit")
    min_stay_nights = Column(Integer, nullable=False, default=1)
    max_stay_nights = Column(Integer, nullable=True)  # NULL means no maximum
    max_guests = Column(Integer, nullable=False, default=2)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)


class SeasonalRate(Base):
    """
    ORM model for a date-ranged nightly price override.

    ``start_date`` and ``end_date`` are both inclusive. Windows on the same room
    may overlap; ``priority`` (higher wins) then ``created_at`` (newer wins)
    decide which one prices a night.
    """

    __tablename__ = "seasonal_rates"
    __table_args__ = (
        CheckConstraint("end_date >= start_date", name="seasonal_rates_valid_date_range"),
        CheckConstraint("price_per_night >= 0", name="seasonal_rates_valid_price"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid, nullable=False, index=True)
    room_id = Column(Uuid, ForeignKey("rooms.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    price_per_night = Column(Numeric(10, 2), nullable=False)
    priority = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
