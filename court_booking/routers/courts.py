"""
Court endpoints – listing, details, availability and price quotes.
"""

from datetime import date

from fastapi import APIRouter, Depends, Query

from court_booking.dependencies import Bookings, Courts, PaginationParams, paginate
from court_booking.models import (
    AvailabilityResponse,
    Court,
    CourtListResponse,
    PriceQuote,
)

router = APIRouter(prefix="/api/courts", tags=["courts"])


@router.get(
    "",
    response_model=CourtListResponse,
    operation_id="listCourts",
    summary="List active courts",
)
async def list_courts(
    courts: Courts,
    pagination: PaginationParams = Depends(PaginationParams),
) -> CourtListResponse:
    return paginate(await courts.list_courts(), pagination, CourtListResponse)


@router.get(
    "/{court_id}",
    response_model=Court,
    operation_id="getCourt",
    summary="Get details of a specific court",
)
async def get_court(court_id: str, courts: Courts) -> Court:
    return await courts.get_court(court_id)


@router.get(
    "/{court_id}/availability",
    response_model=AvailabilityResponse,
    operation_id="getCourtAvailability",
    summary="List free hourly slots for a court on a date",
)
async def get_availability(
    court_id: str,
    bookings: Bookings,
    on_date: date = Query(..., alias="date", description="Calendar day (YYYY-MM-DD)"),
) -> AvailabilityResponse:
    return await bookings.availability(court_id, on_date)


@router.get(
    "/{court_id}/price",
    response_model=PriceQuote,
    operation_id="getCourtPrice",
    summary="Quote the price of booking a time range",
)
async def get_price(
    court_id: str,
    bookings: Bookings,
    start_time: str = Query(..., examples=["10:00"]),
    end_time: str = Query(..., examples=["12:00"]),
) -> PriceQuote:
    return await bookings.quote(court_id, start_time, end_time)
