from datetime import date
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class NightlyPriceResponse(BaseModel):
    date: date
    price: Decimal
    rate_name: Optional[str] = Field(None, description="Seasonal rate applied, None for the base price")


class PriceQuoteResponse(BaseModel):
    room_id: UUID
    check_in: date
    check_out: date
    nights: int
    breakdown: list[NightlyPriceResponse]
    subtotal: Decimal
    currency: str


class AvailabilityResponse(PriceQuoteResponse):
    total_units: int
    overlapping_bookings: int
    available_units: int
    meets_min_stay: bool
    meets_max_stay: bool
    available: bool


class BlockedDatesResponse(BaseModel):
    room_id: UUID
    start: date
    end: date
    blocked_dates: list[date]
