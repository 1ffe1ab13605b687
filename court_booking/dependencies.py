import logging
from datetime import timedelta
from typing import Annotated

from fastapi import Cookie, Depends, HTTPException, Query, Request, Response, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from court_booking.config import (
    AUTO_CONFIRM_BOOKINGS,
    CLOSING_HOUR,
    ENVIRONMENT,
    JWT_EXPIRY_HOURS,
    OPENING_HOUR,
    PENDING_BOOKING_TTL_HOURS,
)
from court_booking.errors import AuthorizationError
from court_booking.models import PaginationMeta, Session, User
from court_booking.services.auth_service import AuthService
from court_booking.services.booking_service import BookingService
from court_booking.services.clock import Clock
from court_booking.services.court_service import CourtService
from court_booking.services.slots import BookingPolicy
from court_booking.storage.base import Store

logger = logging.getLogger(__name__)

SESSION_COOKIE = "session"


# ── Pagination ─────────────────────────────────────────────────────────────


class PaginationParams:
    def __init__(
        self,
        page: Annotated[int, Query(ge=1, description="Page number (1-indexed)")] = 1,
        page_size: Annotated[int, Query(ge=1, le=100, description="Items per page")] = 20,
    ):
        self.page = page
        self.page_size = page_size

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


def paginate(items: list, pagination: PaginationParams, response_cls: type):
    total = len(items)
    start = pagination.offset
    end = start + pagination.page_size
    return response_cls(
        items=items[start:end],
        meta=PaginationMeta(
            page=pagination.page,
            page_size=pagination.page_size,
            total_items=total,
            total_pages=max(1, -(-total // pagination.page_size)),
        ),
    )


# ── Store, clock & services ────────────────────────────────────────────────


def get_store(request: Request) -> Store:
    return request.app.state.store


def get_clock(request: Request) -> Clock:
    return request.app.state.clock


def get_policy() -> BookingPolicy:
    return BookingPolicy(
        opening_hour=OPENING_HOUR,
        closing_hour=CLOSING_HOUR,
        auto_confirm=AUTO_CONFIRM_BOOKINGS,
        pending_ttl=timedelta(hours=PENDING_BOOKING_TTL_HOURS),
    )


def get_booking_service(
    store: Annotated[Store, Depends(get_store)],
    clock: Annotated[Clock, Depends(get_clock)],
    policy: Annotated[BookingPolicy, Depends(get_policy)],
) -> BookingService:
    return BookingService(store, clock, policy)


def get_auth_service(
    store: Annotated[Store, Depends(get_store)],
    clock: Annotated[Clock, Depends(get_clock)],
) -> AuthService:
    return AuthService(store, clock)


def get_court_service(
    store: Annotated[Store, Depends(get_store)],
    clock: Annotated[Clock, Depends(get_clock)],
) -> CourtService:
    return CourtService(store, clock)


Bookings = Annotated[BookingService, Depends(get_booking_service)]
Auth = Annotated[AuthService, Depends(get_auth_service)]
Courts = Annotated[CourtService, Depends(get_court_service)]


# ── Token / Session ────────────────────────────────────────────────────────

_bearer = HTTPBearer(auto_error=False)


def set_session_cookie(response: Response, session: Session) -> None:
    response.set_cookie(
        key=SESSION_COOKIE,
        value=session.token,
        httponly=True,
        samesite="lax",
        secure=ENVIRONMENT == "production",
        max_age=JWT_EXPIRY_HOURS * 3600,
    )


async def get_token(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(_bearer)],
    session: Annotated[str | None, Cookie()] = None,
) -> str:
    """Bearer token from the Authorization header, falling back to the cookie."""
    if credentials is not None:
        return credentials.credentials
    if session:
        return session
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Authentication required. Please log in via /api/auth/login",
    )


Token = Annotated[str, Depends(get_token)]


async def get_current_user(token: Token, auth: Auth) -> User:
    return await auth.authenticate(token)


CurrentUser = Annotated[User, Depends(get_current_user)]


async def get_admin_user(current_user: CurrentUser) -> User:
    if not current_user.is_admin:
        logger.warning("Non-admin %s attempted an admin action", current_user.id)
        raise AuthorizationError("Admin access required")
    return current_user


AdminUser = Annotated[User, Depends(get_admin_user)]
