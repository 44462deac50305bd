from datetime import date
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class DirectBookingPayload(BaseModel):
    """
    Schema for a booking made directly with the property.
    """

    room_id: UUID = Field(..., description="Room to book")
    guest_name: str = Field(..., min_length=1, description="Guest display name")
    check_in: date = Field(..., description="Arrival date")
    check_out: date = Field(..., description="Departure date (exclusive)")
    guests: Optional[int] = Field(None, ge=1, description="Number of guests")
    guest_email: Optional[str] = Field(None, description="Guest email")
    guest_phone: Optional[str] = Field(None, description="Guest phone number")
    notes: Optional[str] = Field(None, description="Free text from the guest")


class DirectBookingResponse(BaseModel):
    id: UUID
    room_id: UUID
    check_in: date
    check_out: date
    nights: int
    total_amount: Decimal
    currency: str
    status: str


class ConflictCheckPayload(BaseModel):
    room_id: UUID
    check_in: date
    check_out: date
    exclude_booking_id: Optional[UUID] = Field(None, description="Booking being edited")


class ConflictingBooking(BaseModel):
    id: UUID
    guest: str
    source: str
    dates: str
    status: str
    needs_review: bool = Field(False, description="Imported over another booking and flagged for the host")


class ConflictCheckResponse(BaseModel):
    has_conflict: bool
    conflicts: list[ConflictingBooking]
