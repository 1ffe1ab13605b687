"""
Booking endpoints (authenticated).
"""

from fastapi import APIRouter, Depends, Query, status

from court_booking.dependencies import Bookings, CurrentUser, PaginationParams, paginate
from court_booking.models import (
    Booking,
    BookingCancel,
    BookingConfirm,
    BookingCreate,
    BookingListResponse,
    BookingStatus,
)

router = APIRouter(prefix="/api/bookings", tags=["bookings"])


@router.post(
    "",
    response_model=Booking,
    status_code=status.HTTP_201_CREATED,
    operation_id="createBooking",
    summary="Book a court for a range of hourly slots",
)
async def create_booking(
    body: BookingCreate,
    current_user: CurrentUser,
    bookings: Bookings,
) -> Booking:
    return await bookings.create_booking(
        body.court_id, current_user.id, body.date, body.start_time, body.end_time
    )


@router.get(
    "",
    response_model=BookingListResponse,
    operation_id="listMyBookings",
    summary="List the authenticated user's bookings",
)
async def list_my_bookings(
    current_user: CurrentUser,
    bookings: Bookings,
    pagination: PaginationParams = Depends(PaginationParams),
    booking_status: BookingStatus | None = Query(None, alias="status"),
) -> BookingListResponse:
    items = await bookings.list_user_bookings(current_user.id, booking_status)
    return paginate(items, pagination, BookingListResponse)


@router.get(
    "/{booking_id}",
    response_model=Booking,
    operation_id="getBooking",
    summary="Get a booking (owner or admin)",
)
async def get_booking(
    booking_id: str,
    current_user: CurrentUser,
    bookings: Bookings,
) -> Booking:
    return await bookings.get_booking(booking_id, current_user.id)


@router.post(
    "/{booking_id}/confirm",
    response_model=Booking,
    operation_id="confirmBooking",
    summary="Confirm a pending booking after payment",
)
async def confirm_booking(
    booking_id: str,
    body: BookingConfirm,
    current_user: CurrentUser,
    bookings: Bookings,
) -> Booking:
    return await bookings.confirm_booking(booking_id, body.payment_ref, current_user.id)


@router.post(
    "/{booking_id}/cancel",
    response_model=Booking,
    operation_id="cancelBooking",
    summary="Cancel a pending or confirmed booking",
)
async def cancel_booking(
    booking_id: str,
    current_user: CurrentUser,
    bookings: Bookings,
    body: BookingCancel | None = None,
) -> Booking:
    reason = body.reason if body else None
    return await bookings.cancel_booking(booking_id, current_user.id, reason)
