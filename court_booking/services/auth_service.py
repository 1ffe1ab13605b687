"""
Users and sessions: registration, credential checks, token issuance.

Access tokens are signed JWTs (``sub`` = user id, ``jti`` = session id).
A token is accepted only while its signature and ``exp`` are valid *and*
its session row exists, is not revoked, and has not reached
``expires_at`` on the service clock.  Logging out revokes the session,
so a copied token stops working immediately.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import timedelta
from uuid import uuid4

import bcrypt
import jwt

from court_booking.config import BCRYPT_ROUNDS, JWT_ALGORITHM, JWT_EXPIRY_HOURS, JWT_SECRET
from court_booking.errors import AuthenticationError, NotFoundError, ValidationError
from court_booking.models import Session, User, UserRole
from court_booking.services.audit import record_event
from court_booking.services.clock import Clock
from court_booking.storage.base import Store

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes of a password.
_BCRYPT_MAX_BYTES = 72


def hash_password(password: str) -> str:
    """bcrypt hash of ``password``. CPU-bound; call it off the event loop."""
    return bcrypt.hashpw(
        password.encode("utf-8"), bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    ).decode("ascii")


def verify_password(password: str, password_hash: str) -> bool:
    raw = password.encode("utf-8")
    if len(raw) > _BCRYPT_MAX_BYTES:
        return False
    return bcrypt.checkpw(raw, password_hash.encode("ascii"))


class AuthService:
    def __init__(self, store: Store, clock: Clock) -> None:
        self._store = store
        self._clock = clock

    # ── Registration ───────────────────────────────────────────────────

    async def register(
        self,
        name: str,
        email: str,
        password: str,
        phone: str | None = None,
        *,
        role: UserRole = UserRole.USER,
        is_verified: bool = False,
    ) -> User:
        """Create a user. Raises ConflictError when the email is taken."""
        if len(password.encode("utf-8")) > _BCRYPT_MAX_BYTES:
            raise ValidationError("Password is too long")

        now = self._clock.now()
        user = User(
            id=str(uuid4()),
            name=name.strip(),
            email=email,
            phone=phone,
            password_hash=await asyncio.to_thread(hash_password, password),
            role=role,
            is_verified=is_verified,
            created_at=now,
            updated_at=now,
        )
        user = await self._store.create_user(user)
        logger.info("Registered %s user %s", user.role.value, user.id)
        await record_event(
            self._store, self._clock, "USER_REGISTERED", user.id, email=user.email
        )
        return user

    async def ensure_admin(
        self, name: str, email: str, password: str, phone: str | None = None
    ) -> User:
        """Return the admin with this email, creating it on first start."""
        existing = await self._store.get_user_by_email(email)
        if existing is not None:
            return existing
        return await self.register(
            name, email, password, phone, role=UserRole.ADMIN, is_verified=True
        )

    # ── Sessions ───────────────────────────────────────────────────────

    async def login(
        self,
        email: str,
        password: str,
        *,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> tuple[User, Session]:
        user = await self._store.get_user_by_email(email)
        if user is None or not await asyncio.to_thread(
            verify_password, password, user.password_hash
        ):
            logger.warning("Failed login for %s", email)
            await record_event(
                self._store, self._clock, "FAILED_LOGIN", None,
                email=email, ip_address=ip_address,
            )
            raise AuthenticationError("Invalid credentials")

        session = await self.issue_session(user, ip_address=ip_address, user_agent=user_agent)
        now = self._clock.now()
        await self._store.update_last_login(user.id, now)
        await record_event(
            self._store, self._clock, "USER_LOGIN", user.id, ip_address=ip_address
        )
        return user.model_copy(update={"last_login": now}), session

    async def issue_session(
        self,
        user: User,
        *,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> Session:
        now = self._clock.now()
        expires_at = now + timedelta(hours=JWT_EXPIRY_HOURS)
        session_id = str(uuid4())
        token = jwt.encode(
            {"sub": user.id, "jti": session_id, "iat": now, "exp": expires_at},
            JWT_SECRET,
            algorithm=JWT_ALGORITHM,
        )
        session = Session(
            id=session_id,
            user_id=user.id,
            token=token,
            expires_at=expires_at,
            ip_address=ip_address,
            user_agent=user_agent,
            created_at=now,
        )
        return await self._store.create_session(session)

    async def authenticate(self, token: str) -> User:
        """Resolve a bearer token to its user or raise AuthenticationError."""
        try:
            jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
        except jwt.ExpiredSignatureError:
            raise AuthenticationError("Session expired. Please log in again.") from None
        except jwt.PyJWTError:
            raise AuthenticationError("Invalid session. Please log in again.") from None

        session = await self._store.get_session_by_token(token)
        if session is None or not session.is_valid(self._clock.now()):
            raise AuthenticationError("Session expired or revoked. Please log in again.")

        user = await self._store.get_user(session.user_id)
        if user is None:
            raise AuthenticationError("User not found")
        return user

    async def refresh(
        self,
        token: str,
        *,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> tuple[User, Session]:
        """Swap a valid session for a fresh one. The old token stops working."""
        user = await self.authenticate(token)
        # Only one caller can win the revoke, so a token refreshes once.
        if not await self._store.revoke_session(token):
            raise AuthenticationError("Session expired or revoked. Please log in again.")
        session = await self.issue_session(user, ip_address=ip_address, user_agent=user_agent)
        await record_event(self._store, self._clock, "SESSION_REFRESHED", user.id)
        return user, session

    async def logout(self, token: str, user_id: str) -> None:
        await self._store.revoke_session(token)
        await record_event(self._store, self._clock, "USER_LOGOUT", user_id)

    # ── Administration ─────────────────────────────────────────────────

    async def list_users(self) -> list[User]:
        return await self._store.list_users()

    async def delete_user(self, user_id: str, actor_id: str) -> None:
        """Delete a non-admin user together with their sessions and bookings."""
        user = await self._store.get_user(user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found")
        if user.role == UserRole.ADMIN:
            raise ValidationError("Cannot delete admin users")

        await self._store.delete_user(user_id)
        logger.info("User %s deleted by %s", user_id, actor_id)
        await record_event(
            self._store, self._clock, "USER_DELETED", actor_id,
            deleted_user_id=user_id, email=user.email,
        )
