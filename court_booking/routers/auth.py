"""
Authentication endpoints – email/password login with session-backed JWTs.
"""

from fastapi import APIRouter, Request, Response, status

from court_booking.dependencies import (
    SESSION_COOKIE,
    Auth,
    CurrentUser,
    Token,
    set_session_cookie,
)
from court_booking.models import (
    AuthResponse,
    LoginRequest,
    MessageResponse,
    RegisterRequest,
    UserInfo,
)
from court_booking.rate_limit import AUTH, limiter

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _client_meta(request: Request) -> dict:
    return {
        "ip_address": request.client.host if request.client else None,
        "user_agent": request.headers.get("user-agent"),
    }


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    operation_id="register",
    summary="Create an account and start a session",
)
@limiter.limit(AUTH)
async def register(
    request: Request, body: RegisterRequest, response: Response, auth: Auth
) -> AuthResponse:
    user = await auth.register(body.name, body.email, body.password, body.phone)
    session = await auth.issue_session(user, **_client_meta(request))
    set_session_cookie(response, session)
    return AuthResponse(
        message="Registered successfully",
        user=user.to_info(),
        access_token=session.token,
        expires_at=session.expires_at,
    )


@router.post(
    "/login",
    response_model=AuthResponse,
    operation_id="login",
    summary="Log in with email and password",
)
@limiter.limit(AUTH)
async def login(
    request: Request, body: LoginRequest, response: Response, auth: Auth
) -> AuthResponse:
    user, session = await auth.login(body.email, body.password, **_client_meta(request))
    set_session_cookie(response, session)
    return AuthResponse(
        message="Authenticated successfully",
        user=user.to_info(),
        access_token=session.token,
        expires_at=session.expires_at,
    )


@router.post(
    "/refresh",
    response_model=AuthResponse,
    operation_id="refreshSession",
    summary="Exchange the current session for a new one",
)
@limiter.limit(AUTH)
async def refresh(
    request: Request, token: Token, response: Response, auth: Auth
) -> AuthResponse:
    user, session = await auth.refresh(token, **_client_meta(request))
    set_session_cookie(response, session)
    return AuthResponse(
        message="Session refreshed",
        user=user.to_info(),
        access_token=session.token,
        expires_at=session.expires_at,
    )


@router.post(
    "/logout",
    response_model=MessageResponse,
    operation_id="logout",
    summary="Revoke the current session",
)
async def logout(
    current_user: CurrentUser, token: Token, response: Response, auth: Auth
) -> MessageResponse:
    await auth.logout(token, current_user.id)
    response.delete_cookie(SESSION_COOKIE)
    return MessageResponse(message="Logged out successfully")


@router.get(
    "/me",
    response_model=UserInfo,
    operation_id="getMe",
    summary="Get current authenticated user info",
)
async def get_me(current_user: CurrentUser) -> UserInfo:
    return current_user.to_info()
