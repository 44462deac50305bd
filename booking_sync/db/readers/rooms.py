from datetime import date
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.engine import Connection

from booking_sync.models.rooms import Room, SeasonalRate
from booking_sync.records import RateRecord, RoomRecord


def get_room(conn: Connection, tenant_id: UUID, room_id: UUID) -> Optional[RoomRecord]:
    """
    Fetch a room scoped to its tenant.

    Args:
        conn (Connection): An active SQLAlchemy database connection.
        tenant_id (UUID): Owning tenant.
        room_id (UUID): Room ID.

    Returns:
        Optional[RoomRecord]: The room, or None if it does not exist for this tenant.
    """
    row = conn.execute(
        select(Room).where(Room.id == room_id, Room.tenant_id == tenant_id)
    ).fetchone()
    if row is None:
        return None

    return RoomRecord(
        id=row.id,
        tenant_id=row.tenant_id,
        name=row.name,
        base_price_per_night=row.base_price_per_night,
        currency=row.currency,
        total_units=row.total_units,
        inventory_mode=row.inventory_mode,
        min_stay_nights=row.min_stay_nights,
        max_stay_nights=row.max_stay_nights,
        max_guests=row.max_guests,
    )


def get_seasonal_rates(
    conn: Connection,
    tenant_id: UUID,
    room_id: UUID,
    start: date,
    end: date,
) -> list[RateRecord]:
    """
    Fetch the seasonal rates of a room whose window touches [start, end).

    Args:
        conn (Connection): SQLAlchemy DB connection.
        tenant_id (UUID): Owning tenant.
        room_id (UUID): Room ID.
        start (date): First night of interest.
        end (date): Day after the last night of interest.

    Returns:
        list[RateRecord]: Matching rates, highest priority first.
    """
    rows = conn.execute(
        select(SeasonalRate)
        .where(
            SeasonalRate.tenant_id == tenant_id,
            SeasonalRate.room_id == room_id,
            SeasonalRate.start_date < end,
            SeasonalRate.end_date >= start,
        )
        .order_by(SeasonalRate.priority.desc())
    ).fetchall()

    return [
        RateRecord(
            id=r.id,
            room_id=r.room_id,
            name=r.name,
            start_date=r.start_date,
            end_date=r.end_date,
            price_per_night=r.price_per_night,
            priority=r.priority,
            created_at=r.created_at,
        )
        for r in rows
    ]
