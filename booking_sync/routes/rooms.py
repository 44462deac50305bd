from datetime import date
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.engine import Engine

from booking_sync.dependencies import get_db_engine, get_tenant_id
from booking_sync.errors import BookingSyncError
from booking_sync.routes._helpers import http_error
from booking_sync.schemas.pricing import (
    AvailabilityResponse,
    BlockedDatesResponse,
    NightlyPriceResponse,
    PriceQuoteResponse,
)
from booking_sync.services.pricing import (
    PriceQuote,
    get_availability,
    get_blocked_dates,
    get_price_quote,
)

logger = structlog.get_logger(__name__)
router = APIRouter()


def _quote_fields(quote: PriceQuote) -> dict:
    return {
        "room_id": quote.room_id,
        "check_in": quote.check_in,
        "check_out": quote.check_out,
        "nights": quote.nights_count,
        "breakdown": [
            NightlyPriceResponse(date=n.date, price=n.price, rate_name=n.rate_name) for n in quote.nights
        ],
        "subtotal": quote.subtotal,
        "currency": quote.currency,
    }


@router.get("/rooms/{room_id}/pricing", response_model=PriceQuoteResponse)
def room_pricing(
    room_id: UUID,
    check_in: date = Query(..., description="Arrival date"),
    check_out: date = Query(..., description="Departure date (exclusive)"),
    tenant_id: UUID = Depends(get_tenant_id),
    engine: Engine = Depends(get_db_engine),
) -> PriceQuoteResponse:
    """
    Per-night price breakdown and subtotal for a stay.

    Args:
        room_id: Room to price
        check_in: Arrival date
        check_out: Departure date
        tenant_id: Tenant from the X-Tenant-ID header
        engine: Database engine (injected)

    Returns:
        PriceQuoteResponse: Breakdown, subtotal and currency
    """
    try:
        quote = get_price_quote(engine, tenant_id, room_id, check_in, check_out)
    except BookingSyncError as e:
        raise http_error(e)
    except Exception as e:
        logger.exception("pricing_failed", room_id=str(room_id), error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")

    return PriceQuoteResponse(**_quote_fields(quote))


@router.get("/rooms/{room_id}/availability", response_model=AvailabilityResponse)
def room_availability(
    room_id: UUID,
    check_in: date = Query(..., description="Arrival date"),
    check_out: date = Query(..., description="Departure date (exclusive)"),
    tenant_id: UUID = Depends(get_tenant_id),
    engine: Engine = Depends(get_db_engine),
) -> AvailabilityResponse:
    """Price a stay and report free units and min/max stay checks."""
    try:
        result = get_availability(engine, tenant_id, room_id, check_in, check_out)
    except BookingSyncError as e:
        raise http_error(e)
    except Exception as e:
        logger.exception("availability_failed", room_id=str(room_id), error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")

    return AvailabilityResponse(
        **_quote_fields(result.quote),
        total_units=result.total_units,
        overlapping_bookings=result.overlapping_bookings,
        available_units=result.available_units,
        meets_min_stay=result.meets_min_stay,
        meets_max_stay=result.meets_max_stay,
        available=result.available,
    )


@router.get("/rooms/{room_id}/blocked-dates", response_model=BlockedDatesResponse)
def room_blocked_dates(
    room_id: UUID,
    start: date = Query(..., description="First date of the calendar window"),
    end: date = Query(..., description="Day after the last date of the window"),
    tenant_id: UUID = Depends(get_tenant_id),
    engine: Engine = Depends(get_db_engine),
) -> BlockedDatesResponse:
    """Dates in [start, end) a booking calendar should show as unavailable."""
    try:
        dates = get_blocked_dates(engine, tenant_id, room_id, start, end)
    except BookingSyncError as e:
        raise http_error(e)
    except Exception as e:
        logger.exception("blocked_dates_failed", room_id=str(room_id), error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")

    return BlockedDatesResponse(room_id=room_id, start=start, end=end, blocked_dates=dates)
