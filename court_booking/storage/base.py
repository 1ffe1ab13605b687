"""
Abstract interface for persistence backends.

Every backend implements this protocol so the services (booking
lifecycle, auth, admin) are decoupled from how records are stored.
A backend must enforce two invariants on its own, independent of any
checks the services perform first:

* user emails are unique (case-insensitive) – violation raises ConflictError;
* non-terminal bookings on the same (court, date) never overlap –
  ``insert_booking`` raises ConflictError instead of storing an overlap.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Protocol

from court_booking.models import (
    AuditLogEntry,
    Booking,
    BookingStatus,
    Court,
    Session,
    User,
)

# Columns a lifecycle transition may change besides status.
TRANSITION_FIELDS = frozenset(
    {
        "payment_ref",
        "cancellation_reason",
        "confirmed_at",
        "cancelled_at",
        "expires_at",
        "updated_at",
    }
)

COURT_UPDATE_FIELDS = frozenset(
    {
        "name",
        "location",
        "description",
        "hourly_rate",
        "capacity",
        "amenities",
        "image_url",
        "is_active",
        "updated_at",
    }
)


class Store(Protocol):
    """Protocol that every storage backend must satisfy."""

    backend: str

    # ── Lifecycle ─────────────────────────────────────────────────────
    async def open(self) -> None: ...

    async def close(self) -> None: ...

    # ── Courts ────────────────────────────────────────────────────────
    async def list_courts(self, *, active_only: bool = False) -> list[Court]: ...

    async def get_court(self, court_id: str) -> Court | None: ...

    async def create_court(self, court: Court) -> Court: ...

    async def update_court(self, court_id: str, changes: dict[str, Any]) -> Court | None:
        """Apply ``changes`` (keys from COURT_UPDATE_FIELDS); None if unknown."""
        ...

    # ── Users ─────────────────────────────────────────────────────────
    async def create_user(self, user: User) -> User: ...

    async def get_user(self, user_id: str) -> User | None: ...

    async def get_user_by_email(self, email: str) -> User | None: ...

    async def list_users(self) -> list[User]: ...

    async def update_last_login(self, user_id: str, at: datetime) -> None: ...

    async def delete_user(self, user_id: str) -> bool:
        """Delete a user together with their sessions and bookings."""
        ...

    # ── Sessions ──────────────────────────────────────────────────────
    async def create_session(self, session: Session) -> Session: ...

    async def get_session_by_token(self, token: str) -> Session | None: ...

    async def revoke_session(self, token: str) -> bool: ...

    async def purge_expired_sessions(self, now: datetime) -> int: ...

    # ── Bookings ──────────────────────────────────────────────────────
    async def insert_booking(self, booking: Booking) -> Booking:
        """Atomically store a booking; ConflictError if it would overlap."""
        ...

    async def get_booking(self, booking_id: str) -> Booking | None: ...

    async def list_active_bookings(self, court_id: str, on_date: date) -> list[Booking]:
        """Non-terminal bookings for (court, date), ordered by start time."""
        ...

    async def list_bookings(
        self,
        *,
        user_id: str | None = None,
        status: BookingStatus | None = None,
    ) -> list[Booking]:
        """Bookings newest first, optionally filtered."""
        ...

    async def transition_booking(
        self,
        booking_id: str,
        from_statuses: frozenset[BookingStatus],
        to_status: BookingStatus,
        changes: dict[str, Any],
    ) -> Booking | None:
        """
        Compare-and-set a status change.

        Returns the updated booking, or None when the booking does not
        exist or its current status is not in ``from_statuses``.
        """
        ...

    async def expire_pending(self, now: datetime) -> list[Booking]:
        """Mark every pending booking with ``expires_at < now`` expired."""
        ...

    # ── Audit log ─────────────────────────────────────────────────────
    async def add_audit_entry(self, entry: AuditLogEntry) -> None: ...

    async def list_audit_entries(self) -> list[AuditLogEntry]:
        """All entries, newest first."""
        ...
