from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.engine import Engine

from booking_sync.dependencies import get_db_engine, get_tenant_id
from booking_sync.errors import BookingSyncError
from booking_sync.routes._helpers import http_error
from booking_sync.schemas.bookings import (
    ConflictCheckPayload,
    ConflictCheckResponse,
    ConflictingBooking,
    DirectBookingPayload,
    DirectBookingResponse,
)
from booking_sync.services.bookings import check_booking_conflicts, create_direct_booking
from booking_sync.services.conflicts import has_conflict_annotation

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.post("/bookings", status_code=status.HTTP_201_CREATED, response_model=DirectBookingResponse)
def create_booking(
    payload: DirectBookingPayload,
    tenant_id: UUID = Depends(get_tenant_id),
    engine: Engine = Depends(get_db_engine),
) -> DirectBookingResponse:
    """
    Take a direct booking after validating and pricing it.

    Args:
        payload: Guest, room and stay dates
        tenant_id: Tenant from the X-Tenant-ID header
        engine: Database engine (injected)

    Returns:
        DirectBookingResponse: The pending booking and its priced total
    """
    try:
        booking = create_direct_booking(
            engine,
            tenant_id,
            room_id=payload.room_id,
            guest_name=payload.guest_name,
            check_in=payload.check_in,
            check_out=payload.check_out,
            guests=payload.guests,
            guest_email=payload.guest_email,
            guest_phone=payload.guest_phone,
            notes=payload.notes,
        )
    except BookingSyncError as e:
        raise http_error(e)
    except Exception as e:
        logger.exception("booking_creation_failed", room_id=str(payload.room_id), error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")

    return DirectBookingResponse(
        id=booking.booking_id,
        room_id=booking.room_id,
        check_in=booking.check_in,
        check_out=booking.check_out,
        nights=booking.nights,
        total_amount=booking.total_amount,
        currency=booking.currency,
        status=booking.status,
    )


@router.post("/bookings/check-conflicts", response_model=ConflictCheckResponse)
def check_conflicts(
    payload: ConflictCheckPayload,
    tenant_id: UUID = Depends(get_tenant_id),
    engine: Engine = Depends(get_db_engine),
) -> ConflictCheckResponse:
    """List non-cancelled bookings that would collide with a prospective stay."""
    try:
        conflicts = check_booking_conflicts(
            engine,
            tenant_id,
            payload.room_id,
            payload.check_in,
            payload.check_out,
            exclude_booking_id=payload.exclude_booking_id,
        )
    except BookingSyncError as e:
        raise http_error(e)
    except Exception as e:
        logger.exception("conflict_check_failed", room_id=str(payload.room_id), error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")

    return ConflictCheckResponse(
        has_conflict=bool(conflicts),
        conflicts=[
            ConflictingBooking(
                id=c.id,
                guest=c.guest_name,
                source=c.source,
                dates=f"{c.check_in} - {c.check_out}",
                status=c.status,
                needs_review=has_conflict_annotation(c.notes),
            )
            for c in conflicts
        ],
    )
