"""
JSON-file storage backend.

Keeps every record in memory and rewrites the whole data file after each
write (temp file + atomic rename), which is plenty for a single-venue
deployment.  Pass ``path=None`` for a purely in-memory store.

All writes go through one ``asyncio.Lock``; ``insert_booking`` re-checks
for overlaps inside that lock, so the check and the insert are atomic
with respect to every other writer in the process.  A write whose file
rewrite fails is rolled back in memory as well, so memory never runs
ahead of the data file.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from contextlib import asynccontextmanager
from datetime import date, datetime
from pathlib import Path
from typing import Any

from court_booking.errors import ConflictError, NotFoundError
from court_booking.models import (
    ACTIVE_STATUSES,
    AuditLogEntry,
    Booking,
    BookingStatus,
    Court,
    Session,
    User,
)
from court_booking.services.slots import find_conflict
from court_booking.storage.base import COURT_UPDATE_FIELDS, TRANSITION_FIELDS

logger = logging.getLogger(__name__)


class JsonFileStore:
    """In-memory implementation of the Store protocol with JSON persistence."""

    backend = "json"

    def __init__(self, path: str | None) -> None:
        self._path = Path(path) if path else None
        self._lock = asyncio.Lock()
        self._courts: dict[str, Court] = {}
        self._users: dict[str, User] = {}
        self._sessions: dict[str, Session] = {}  # keyed by token
        self._bookings: dict[str, Booking] = {}
        self._audit: list[AuditLogEntry] = []

    # ── Lifecycle ──────────────────────────────────────────────────────

    async def open(self) -> None:
        if self._path is None:
            logger.info("Using in-memory store (no persistence)")
            return
        self._path.parent.mkdir(parents=True, exist_ok=True)
        if self._path.exists():
            raw = json.loads(self._path.read_text(encoding="utf-8"))
            self._load(raw)
            logger.info(
                "Loaded %d courts, %d users, %d bookings from %s",
                len(self._courts), len(self._users), len(self._bookings), self._path,
            )
        else:
            self._save()
            logger.info("Created data file at %s", self._path)

    async def close(self) -> None:
        async with self._lock:
            self._save()

    def _load(self, raw: dict[str, Any]) -> None:
        self._courts = {c["id"]: Court.model_validate(c) for c in raw.get("courts", [])}
        self._users = {u["id"]: User.model_validate(u) for u in raw.get("users", [])}
        self._sessions = {
            s["token"]: Session.model_validate(s) for s in raw.get("sessions", [])
        }
        self._bookings = {
            b["id"]: Booking.model_validate(b) for b in raw.get("bookings", [])
        }
        self._audit = [AuditLogEntry.model_validate(e) for e in raw.get("audit_log", [])]

    @asynccontextmanager
    async def _write(self):
        """Hold the write lock and undo in-memory changes if the block raises."""
        async with self._lock:
            snapshot = (
                dict(self._courts),
                dict(self._users),
                dict(self._sessions),
                dict(self._bookings),
                list(self._audit),
            )
            try:
                yield
            except BaseException:
                (
                    self._courts,
                    self._users,
                    self._sessions,
                    self._bookings,
                    self._audit,
                ) = snapshot
                raise

    def _save(self) -> None:
        if self._path is None:
            return
        payload = {
            "courts": [c.model_dump(mode="json") for c in self._courts.values()],
            "users": [u.model_dump(mode="json") for u in self._users.values()],
            "sessions": [s.model_dump(mode="json") for s in self._sessions.values()],
            "bookings": [b.model_dump(mode="json") for b in self._bookings.values()],
            "audit_log": [e.model_dump(mode="json") for e in self._audit],
        }
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        os.replace(tmp, self._path)

    # ── Courts ─────────────────────────────────────────────────────────

    async def list_courts(self, *, active_only: bool = False) -> list[Court]:
        courts = list(self._courts.values())
        if active_only:
            courts = [c for c in courts if c.is_active]
        return sorted(courts, key=lambda c: c.name)

    async def get_court(self, court_id: str) -> Court | None:
        return self._courts.get(court_id)

    async def create_court(self, court: Court) -> Court:
        async with self._write():
            if court.id in self._courts:
                raise ConflictError(f"Court {court.id} already exists")
            self._courts[court.id] = court
            self._save()
        return court

    async def update_court(self, court_id: str, changes: dict[str, Any]) -> Court | None:
        unknown = set(changes) - COURT_UPDATE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update court fields: {sorted(unknown)}")
        async with self._write():
            court = self._courts.get(court_id)
            if court is None:
                return None
            court = court.model_copy(update=changes)
            self._courts[court_id] = court
            self._save()
        return court

    # ── Users ──────────────────────────────────────────────────────────

    async def create_user(self, user: User) -> User:
        async with self._write():
            if self._find_user_by_email(user.email) is not None:
                raise ConflictError("Email already registered")
            self._users[user.id] = user
            self._save()
        return user

    def _find_user_by_email(self, email: str) -> User | None:
        wanted = email.lower()
        for user in self._users.values():
            if user.email.lower() == wanted:
                return user
        return None

    async def get_user(self, user_id: str) -> User | None:
        return self._users.get(user_id)

    async def get_user_by_email(self, email: str) -> User | None:
        return self._find_user_by_email(email)

    async def list_users(self) -> list[User]:
        return sorted(self._users.values(), key=lambda u: u.created_at)

    async def update_last_login(self, user_id: str, at: datetime) -> None:
        async with self._write():
            user = self._users.get(user_id)
            if user is not None:
                self._users[user_id] = user.model_copy(update={"last_login": at})
                self._save()

    async def delete_user(self, user_id: str) -> bool:
        async with self._write():
            if self._users.pop(user_id, None) is None:
                return False
            self._sessions = {
                t: s for t, s in self._sessions.items() if s.user_id != user_id
            }
            self._bookings = {
                i: b for i, b in self._bookings.items() if b.user_id != user_id
            }
            self._save()
        return True

    # ── Sessions ───────────────────────────────────────────────────────

    async def create_session(self, session: Session) -> Session:
        async with self._write():
            self._sessions[session.token] = session
            self._save()
        return session

    async def get_session_by_token(self, token: str) -> Session | None:
        return self._sessions.get(token)

    async def revoke_session(self, token: str) -> bool:
        async with self._write():
            session = self._sessions.get(token)
            if session is None or session.revoked:
                return False
            self._sessions[token] = session.model_copy(update={"revoked": True})
            self._save()
        return True

    async def purge_expired_sessions(self, now: datetime) -> int:
        async with self._write():
            stale = [
                t for t, s in self._sessions.items() if s.revoked or s.expires_at <= now
            ]
            for token in stale:
                del self._sessions[token]
            if stale:
                self._save()
        return len(stale)

    # ── Bookings ───────────────────────────────────────────────────────

    def _active_for(self, court_id: str, on_date: date) -> list[Booking]:
        return sorted(
            (
                b
                for b in self._bookings.values()
                if b.court_id == court_id and b.date == on_date and b.is_active
            ),
            key=lambda b: b.start_hour,
        )

    async def insert_booking(self, booking: Booking) -> Booking:
        async with self._write():
            if booking.court_id not in self._courts or booking.user_id not in self._users:
                raise NotFoundError("Court or user not found")
            if booking.is_active:
                conflict = find_conflict(
                    self._active_for(booking.court_id, booking.date),
                    booking.start_hour,
                    booking.end_hour,
                )
                if conflict is not None:
                    raise ConflictError(
                        "Requested slots are not available",
                        conflicting_booking_id=conflict.id,
                    )
            self._bookings[booking.id] = booking
            self._save()
        return booking

    async def get_booking(self, booking_id: str) -> Booking | None:
        return self._bookings.get(booking_id)

    async def list_active_bookings(self, court_id: str, on_date: date) -> list[Booking]:
        return self._active_for(court_id, on_date)

    async def list_bookings(
        self,
        *,
        user_id: str | None = None,
        status: BookingStatus | None = None,
    ) -> list[Booking]:
        bookings = list(self._bookings.values())
        if user_id is not None:
            bookings = [b for b in bookings if b.user_id == user_id]
        if status is not None:
            bookings = [b for b in bookings if b.status == status]
        return sorted(bookings, key=lambda b: (b.created_at, b.id), reverse=True)

    async def transition_booking(
        self,
        booking_id: str,
        from_statuses: frozenset[BookingStatus],
        to_status: BookingStatus,
        changes: dict[str, Any],
    ) -> Booking | None:
        unknown = set(changes) - TRANSITION_FIELDS
        if unknown:
            raise ValueError(f"Cannot change booking fields: {sorted(unknown)}")
        async with self._write():
            booking = self._bookings.get(booking_id)
            if booking is None or booking.status not in from_statuses:
                return None
            booking = booking.model_copy(update={**changes, "status": to_status})
            self._bookings[booking_id] = booking
            self._save()
        return booking

    async def expire_pending(self, now: datetime) -> list[Booking]:
        expired: list[Booking] = []
        async with self._write():
            for booking_id, booking in self._bookings.items():
                if (
                    booking.status == BookingStatus.PENDING
                    and booking.expires_at is not None
                    and booking.expires_at < now
                ):
                    booking = booking.model_copy(
                        update={"status": BookingStatus.EXPIRED, "updated_at": now}
                    )
                    self._bookings[booking_id] = booking
                    expired.append(booking)
            if expired:
                self._save()
        return expired

    # ── Audit log ──────────────────────────────────────────────────────

    async def add_audit_entry(self, entry: AuditLogEntry) -> None:
        async with self._write():
            self._audit.append(entry)
            self._save()

    async def list_audit_entries(self) -> list[AuditLogEntry]:
        return list(reversed(self._audit))
