"""
Admin dashboard endpoints. Every route requires an admin session.
"""

from fastapi import APIRouter, Depends, Query, status

from court_booking.dependencies import (
    AdminUser,
    Auth,
    Bookings,
    Courts,
    PaginationParams,
    get_store,
    paginate,
)
from court_booking.models import (
    AdminStats,
    AuditLogListResponse,
    BookingListResponse,
    BookingStatus,
    Court,
    CourtCreate,
    CourtListResponse,
    CourtUpdate,
    ExpirySweepResponse,
    MessageResponse,
    UserListResponse,
)
from court_booking.storage.base import Store

router = APIRouter(prefix="/api/admin", tags=["admin"])


# ── Bookings ──────────────────────────────────────────────────────────────


@router.get(
    "/bookings",
    response_model=BookingListResponse,
    operation_id="adminListBookings",
    summary="List all bookings",
)
async def list_bookings(
    admin: AdminUser,
    bookings: Bookings,
    pagination: PaginationParams = Depends(PaginationParams),
    booking_status: BookingStatus | None = Query(None, alias="status"),
) -> BookingListResponse:
    items = await bookings.list_all_bookings(booking_status)
    return paginate(items, pagination, BookingListResponse)


@router.post(
    "/expire-bookings",
    response_model=ExpirySweepResponse,
    operation_id="adminExpireBookings",
    summary="Expire overdue pending bookings now",
)
async def expire_bookings(admin: AdminUser, bookings: Bookings) -> ExpirySweepResponse:
    expired = await bookings.expire_stale()
    return ExpirySweepResponse(expired=len(expired))


@router.get(
    "/stats",
    response_model=AdminStats,
    operation_id="adminStats",
    summary="Booking, revenue and user statistics",
)
async def get_stats(admin: AdminUser, bookings: Bookings) -> AdminStats:
    return await bookings.stats()


# ── Users ─────────────────────────────────────────────────────────────────


@router.get(
    "/users",
    response_model=UserListResponse,
    operation_id="adminListUsers",
    summary="List all users",
)
async def list_users(
    admin: AdminUser,
    auth: Auth,
    pagination: PaginationParams = Depends(PaginationParams),
) -> UserListResponse:
    users = [u.to_info() for u in await auth.list_users()]
    return paginate(users, pagination, UserListResponse)


@router.delete(
    "/users/{user_id}",
    response_model=MessageResponse,
    operation_id="adminDeleteUser",
    summary="Delete a user with their sessions and bookings",
)
async def delete_user(user_id: str, admin: AdminUser, auth: Auth) -> MessageResponse:
    await auth.delete_user(user_id, admin.id)
    return MessageResponse(message="User deleted successfully")


# ── Courts ────────────────────────────────────────────────────────────────


@router.get(
    "/courts",
    response_model=CourtListResponse,
    operation_id="adminListCourts",
    summary="List all courts, including inactive ones",
)
async def list_courts(
    admin: AdminUser,
    courts: Courts,
    pagination: PaginationParams = Depends(PaginationParams),
) -> CourtListResponse:
    items = await courts.list_courts(include_inactive=True)
    return paginate(items, pagination, CourtListResponse)


@router.post(
    "/courts",
    response_model=Court,
    status_code=status.HTTP_201_CREATED,
    operation_id="adminCreateCourt",
    summary="Add a court",
)
async def create_court(body: CourtCreate, admin: AdminUser, courts: Courts) -> Court:
    return await courts.create_court(body, admin.id)


@router.patch(
    "/courts/{court_id}",
    response_model=Court,
    operation_id="adminUpdateCourt",
    summary="Change a court's details, rate or active flag",
)
async def update_court(
    court_id: str, body: CourtUpdate, admin: AdminUser, courts: Courts
) -> Court:
    return await courts.update_court(court_id, body, admin.id)


# ── Audit log ─────────────────────────────────────────────────────────────


@router.get(
    "/audit-log",
    response_model=AuditLogListResponse,
    operation_id="adminAuditLog",
    summary="Audit log, newest first",
)
async def get_audit_log(
    admin: AdminUser,
    store: Store = Depends(get_store),
    pagination: PaginationParams = Depends(PaginationParams),
) -> AuditLogListResponse:
    entries = await store.list_audit_entries()
    return paginate(entries, pagination, AuditLogListResponse)
