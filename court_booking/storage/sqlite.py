"""
SQLite storage backend using aiosqlite.

Stores courts, users, sessions, bookings and the audit log.
Tables are created automatically on open.

Double booking is prevented by the ``booking_slots`` table: every
non-terminal booking owns one row per occupied hour, and the primary key
on (court_id, date, hour) rejects a second claim on the same hour even
when two processes race past the application-level check.
"""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import date, datetime
from pathlib import Path
from typing import Any

import aiosqlite

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
from court_booking.storage.base import COURT_UPDATE_FIELDS, TRANSITION_FIELDS

logger = logging.getLogger(__name__)


# ── Schema ────────────────────────────────────────────────────────────────

_SCHEMA = """
CREATE TABLE IF NOT EXISTS courts (
    id              TEXT PRIMARY KEY,
    name            TEXT NOT NULL,
    location        TEXT NOT NULL,
    description     TEXT,
    hourly_rate     INTEGER NOT NULL CHECK (hourly_rate > 0),
    capacity        INTEGER NOT NULL DEFAULT 10,
    amenities       TEXT,
    image_url       TEXT,
    is_active       INTEGER NOT NULL DEFAULT 1,
    created_at      TEXT NOT NULL,
    updated_at      TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS users (
    id              TEXT PRIMARY KEY,
    name            TEXT NOT NULL,
    email           TEXT NOT NULL UNIQUE COLLATE NOCASE,
    phone           TEXT,
    password_hash   TEXT NOT NULL,
    role            TEXT NOT NULL DEFAULT 'user',
    is_verified     INTEGER NOT NULL DEFAULT 0,
    created_at      TEXT NOT NULL,
    updated_at      TEXT NOT NULL,
    last_login      TEXT
);

CREATE TABLE IF NOT EXISTS sessions (
    id              TEXT PRIMARY KEY,
    user_id         TEXT NOT NULL,
    token           TEXT NOT NULL UNIQUE,
    expires_at      TEXT NOT NULL,
    revoked         INTEGER NOT NULL DEFAULT 0,
    ip_address      TEXT,
    user_agent      TEXT,
    created_at      TEXT NOT NULL,
    FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_sessions_user ON sessions(user_id);

CREATE TABLE IF NOT EXISTS bookings (
    id              TEXT PRIMARY KEY,
    court_id        TEXT NOT NULL,
    user_id         TEXT NOT NULL,
    date            TEXT NOT NULL,           -- YYYY-MM-DD
    start_time      TEXT NOT NULL,           -- HH:00
    end_time        TEXT NOT NULL,           -- HH:00
    status          TEXT NOT NULL,
    total_price     INTEGER NOT NULL,
    payment_ref     TEXT,
    cancellation_reason TEXT,
    created_at      TEXT NOT NULL,
    updated_at      TEXT NOT NULL,
    confirmed_at    TEXT,
    cancelled_at    TEXT,
    expires_at      TEXT,
    FOREIGN KEY (court_id) REFERENCES courts(id),
    FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_bookings_court_date ON bookings(court_id, date);
CREATE INDEX IF NOT EXISTS idx_bookings_user ON bookings(user_id);
CREATE INDEX IF NOT EXISTS idx_bookings_status ON bookings(status);

-- One row per occupied hour of every non-terminal booking.
CREATE TABLE IF NOT EXISTS booking_slots (
    court_id        TEXT NOT NULL,
    date            TEXT NOT NULL,
    hour            INTEGER NOT NULL,
    booking_id      TEXT NOT NULL,
    PRIMARY KEY (court_id, date, hour),
    FOREIGN KEY (booking_id) REFERENCES bookings(id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_booking_slots_booking ON booking_slots(booking_id);

CREATE TABLE IF NOT EXISTS audit_logs (
    id              TEXT PRIMARY KEY,
    user_id         TEXT,
    event_type      TEXT NOT NULL,
    details_json    TEXT NOT NULL,
    created_at      TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_audit_created ON audit_logs(created_at);
"""


# ── Helpers ───────────────────────────────────────────────────────────────


def _iso(dt: datetime | date | None) -> str | None:
    if dt is None:
        return None
    if isinstance(dt, datetime):
        # Fixed width so stored timestamps compare correctly as strings.
        return dt.isoformat(timespec="microseconds")
    return dt.isoformat()


def _sql_value(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return _iso(value)
    if isinstance(value, bool):
        return int(value)
    return value


def _row_to_court(row: aiosqlite.Row) -> Court:
    return Court(
        id=row["id"],
        name=row["name"],
        location=row["location"],
        description=row["description"],
        hourly_rate=row["hourly_rate"],
        capacity=row["capacity"],
        amenities=row["amenities"],
        image_url=row["image_url"],
        is_active=bool(row["is_active"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _row_to_user(row: aiosqlite.Row) -> User:
    return User(
        id=row["id"],
        name=row["name"],
        email=row["email"],
        phone=row["phone"],
        password_hash=row["password_hash"],
        role=row["role"],
        is_verified=bool(row["is_verified"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        last_login=row["last_login"],
    )


def _row_to_session(row: aiosqlite.Row) -> Session:
    return Session(
        id=row["id"],
        user_id=row["user_id"],
        token=row["token"],
        expires_at=row["expires_at"],
        revoked=bool(row["revoked"]),
        ip_address=row["ip_address"],
        user_agent=row["user_agent"],
        created_at=row["created_at"],
    )


def _row_to_booking(row: aiosqlite.Row) -> Booking:
    return Booking(
        id=row["id"],
        court_id=row["court_id"],
        user_id=row["user_id"],
        date=row["date"],
        start_time=row["start_time"],
        end_time=row["end_time"],
        status=row["status"],
        total_price=row["total_price"],
        payment_ref=row["payment_ref"],
        cancellation_reason=row["cancellation_reason"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        confirmed_at=row["confirmed_at"],
        cancelled_at=row["cancelled_at"],
        expires_at=row["expires_at"],
    )


def _row_to_audit(row: aiosqlite.Row) -> AuditLogEntry:
    return AuditLogEntry(
        id=row["id"],
        user_id=row["user_id"],
        event_type=row["event_type"],
        details=json.loads(row["details_json"]),
        created_at=row["created_at"],
    )


class SQLiteStore:
    """aiosqlite-backed implementation of the Store protocol."""

    backend = "sqlite"

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path
        self._db: aiosqlite.Connection | None = None
        # All write transactions share one connection; never interleave them.
        self._write_lock = asyncio.Lock()

    # ── Lifecycle ──────────────────────────────────────────────────────

    async def open(self) -> None:
        """Open the database and create tables if they don't exist."""
        db_path = Path(self._db_path)
        db_path.parent.mkdir(parents=True, exist_ok=True)

        self._db = await aiosqlite.connect(str(db_path))
        self._db.row_factory = aiosqlite.Row  # dict-like rows
        await self._db.execute("PRAGMA journal_mode=WAL")
        await self._db.execute("PRAGMA foreign_keys=ON")

        await self._db.executescript(_SCHEMA)
        await self._db.commit()
        logger.info("Database initialized at %s", db_path)

    async def close(self) -> None:
        if self._db is not None:
            await self._db.close()
            self._db = None
            logger.info("Database connection closed")

    @property
    def db(self) -> aiosqlite.Connection:
        assert self._db is not None, "Database not initialized, call open() first"
        return self._db

    async def _fetchone(self, sql: str, params: tuple | list = ()) -> aiosqlite.Row | None:
        async with self.db.execute(sql, params) as cur:
            return await cur.fetchone()

    async def _fetchall(self, sql: str, params: tuple | list = ()) -> list[aiosqlite.Row]:
        async with self.db.execute(sql, params) as cur:
            return list(await cur.fetchall())

    # ══════════════════════════════════════════════════════════════════
    #                         COURTS
    # ══════════════════════════════════════════════════════════════════

    async def list_courts(self, *, active_only: bool = False) -> list[Court]:
        sql = "SELECT * FROM courts"
        if active_only:
            sql += " WHERE is_active = 1"
        sql += " ORDER BY name"
        return [_row_to_court(r) for r in await self._fetchall(sql)]

    async def get_court(self, court_id: str) -> Court | None:
        row = await self._fetchone("SELECT * FROM courts WHERE id = ?", (court_id,))
        return _row_to_court(row) if row else None

    async def create_court(self, court: Court) -> Court:
        async with self._write_lock:
            try:
                await self.db.execute(
                    """
                    INSERT INTO courts (
                        id, name, location, description, hourly_rate, capacity,
                        amenities, image_url, is_active, created_at, updated_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        court.id, court.name, court.location, court.description,
                        court.hourly_rate, court.capacity,
                        court.amenities, court.image_url, int(court.is_active),
                        _iso(court.created_at), _iso(court.updated_at),
                    ),
                )
                await self.db.commit()
            except aiosqlite.IntegrityError as exc:
                await self.db.rollback()
                raise ConflictError(f"Court {court.id} already exists") from exc
        return court

    async def update_court(self, court_id: str, changes: dict[str, Any]) -> Court | None:
        unknown = set(changes) - COURT_UPDATE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update court fields: {sorted(unknown)}")
        if changes:
            assignments = ", ".join(f"{name} = ?" for name in changes)
            params = [_sql_value(v) for v in changes.values()] + [court_id]
            async with self._write_lock:
                await self.db.execute(
                    f"UPDATE courts SET {assignments} WHERE id = ?", params
                )
                await self.db.commit()
        return await self.get_court(court_id)

    # ══════════════════════════════════════════════════════════════════
    #                         USERS
    # ══════════════════════════════════════════════════════════════════

    async def create_user(self, user: User) -> User:
        async with self._write_lock:
            try:
                await self.db.execute(
                    """
                    INSERT INTO users (
                        id, name, email, phone, password_hash, role,
                        is_verified, created_at, updated_at, last_login
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        user.id, user.name, user.email, user.phone,
                        user.password_hash, user.role.value, int(user.is_verified),
                        _iso(user.created_at), _iso(user.updated_at), _iso(user.last_login),
                    ),
                )
                await self.db.commit()
            except aiosqlite.IntegrityError as exc:
                await self.db.rollback()
                raise ConflictError("Email already registered") from exc
        return user

    async def get_user(self, user_id: str) -> User | None:
        row = await self._fetchone("SELECT * FROM users WHERE id = ?", (user_id,))
        return _row_to_user(row) if row else None

    async def get_user_by_email(self, email: str) -> User | None:
        row = await self._fetchone("SELECT * FROM users WHERE email = ?", (email,))
        return _row_to_user(row) if row else None

    async def list_users(self) -> list[User]:
        rows = await self._fetchall("SELECT * FROM users ORDER BY created_at")
        return [_row_to_user(r) for r in rows]

    async def update_last_login(self, user_id: str, at: datetime) -> None:
        async with self._write_lock:
            await self.db.execute(
                "UPDATE users SET last_login = ? WHERE id = ?", (_iso(at), user_id)
            )
            await self.db.commit()

    async def delete_user(self, user_id: str) -> bool:
        """Delete a user; sessions, bookings and their slots cascade."""
        async with self._write_lock:
            cur = await self.db.execute("DELETE FROM users WHERE id = ?", (user_id,))
            await self.db.commit()
        return cur.rowcount > 0

    # ══════════════════════════════════════════════════════════════════
    #                         SESSIONS
    # ══════════════════════════════════════════════════════════════════

    async def create_session(self, session: Session) -> Session:
        async with self._write_lock:
            await self.db.execute(
                """
                INSERT INTO sessions (
                    id, user_id, token, expires_at, revoked,
                    ip_address, user_agent, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    session.id, session.user_id, session.token,
                    _iso(session.expires_at), int(session.revoked),
                    session.ip_address, session.user_agent, _iso(session.created_at),
                ),
            )
            await self.db.commit()
        return session

    async def get_session_by_token(self, token: str) -> Session | None:
        row = await self._fetchone("SELECT * FROM sessions WHERE token = ?", (token,))
        return _row_to_session(row) if row else None

    async def revoke_session(self, token: str) -> bool:
        async with self._write_lock:
            cur = await self.db.execute(
                "UPDATE sessions SET revoked = 1 WHERE token = ? AND revoked = 0", (token,)
            )
            await self.db.commit()
        return cur.rowcount > 0

    async def purge_expired_sessions(self, now: datetime) -> int:
        async with self._write_lock:
            cur = await self.db.execute(
                "DELETE FROM sessions WHERE expires_at <= ? OR revoked = 1", (_iso(now),)
            )
            await self.db.commit()
        return cur.rowcount

    # ══════════════════════════════════════════════════════════════════
    #                         BOOKINGS
    # ══════════════════════════════════════════════════════════════════

    async def insert_booking(self, booking: Booking) -> Booking:
        async with self._write_lock:
            try:
                await self.db.execute(
                    """
                    INSERT INTO bookings (
                        id, court_id, user_id, date, start_time, end_time,
                        status, total_price, payment_ref, cancellation_reason,
                        created_at, updated_at, confirmed_at, cancelled_at, expires_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        booking.id, booking.court_id, booking.user_id,
                        _iso(booking.date), booking.start_time, booking.end_time,
                        booking.status.value, booking.total_price,
                        booking.payment_ref, booking.cancellation_reason,
                        _iso(booking.created_at), _iso(booking.updated_at),
                        _iso(booking.confirmed_at), _iso(booking.cancelled_at),
                        _iso(booking.expires_at),
                    ),
                )
                if booking.is_active:
                    await self.db.executemany(
                        "INSERT INTO booking_slots (court_id, date, hour, booking_id) "
                        "VALUES (?, ?, ?, ?)",
                        [
                            (booking.court_id, _iso(booking.date), hour, booking.id)
                            for hour in range(booking.start_hour, booking.end_hour)
                        ],
                    )
                await self.db.commit()
            except aiosqlite.IntegrityError as exc:
                await self.db.rollback()
                if "booking_slots" not in str(exc):
                    raise NotFoundError("Court or user not found") from exc
                holder = await self._slot_holder(booking)
                raise ConflictError(
                    "Requested slots are not available",
                    conflicting_booking_id=holder,
                ) from exc
        return booking

    async def _slot_holder(self, booking: Booking) -> str | None:
        row = await self._fetchone(
            """
            SELECT booking_id FROM booking_slots
            WHERE court_id = ? AND date = ? AND hour >= ? AND hour < ?
            ORDER BY hour LIMIT 1
            """,
            (booking.court_id, _iso(booking.date), booking.start_hour, booking.end_hour),
        )
        return row["booking_id"] if row else None

    async def get_booking(self, booking_id: str) -> Booking | None:
        row = await self._fetchone("SELECT * FROM bookings WHERE id = ?", (booking_id,))
        return _row_to_booking(row) if row else None

    async def list_active_bookings(self, court_id: str, on_date: date) -> list[Booking]:
        rows = await self._fetchall(
            """
            SELECT * FROM bookings
            WHERE court_id = ? AND date = ? AND status IN ('pending', 'confirmed')
            ORDER BY start_time
            """,
            (court_id, _iso(on_date)),
        )
        return [_row_to_booking(r) for r in rows]

    async def list_bookings(
        self,
        *,
        user_id: str | None = None,
        status: BookingStatus | None = None,
    ) -> list[Booking]:
        sql = "SELECT * FROM bookings WHERE 1 = 1"
        params: list = []

        if user_id is not None:
            sql += " AND user_id = ?"
            params.append(user_id)
        if status is not None:
            sql += " AND status = ?"
            params.append(BookingStatus(status).value)

        sql += " ORDER BY created_at DESC, id DESC"
        return [_row_to_booking(r) for r in await self._fetchall(sql, params)]

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

        assignments = ", ".join(["status = ?"] + [f"{name} = ?" for name in changes])
        placeholders = ", ".join("?" for _ in from_statuses)
        params = (
            [to_status.value]
            + [_sql_value(v) for v in changes.values()]
            + [booking_id]
            + [s.value for s in from_statuses]
        )

        async with self._write_lock:
            cur = await self.db.execute(
                f"UPDATE bookings SET {assignments} "
                f"WHERE id = ? AND status IN ({placeholders})",
                params,
            )
            if cur.rowcount == 0:
                await self.db.rollback()
                return None
            if to_status not in ACTIVE_STATUSES:
                await self.db.execute(
                    "DELETE FROM booking_slots WHERE booking_id = ?", (booking_id,)
                )
            await self.db.commit()
        return await self.get_booking(booking_id)

    async def expire_pending(self, now: datetime) -> list[Booking]:
        async with self._write_lock:
            rows = await self._fetchall(
                "SELECT id FROM bookings WHERE status = 'pending' AND expires_at < ?",
                (_iso(now),),
            )
            ids = [r["id"] for r in rows]
            if not ids:
                return []
            placeholders = ", ".join("?" for _ in ids)
            await self.db.execute(
                f"UPDATE bookings SET status = 'expired', updated_at = ? "
                f"WHERE id IN ({placeholders})",
                [_iso(now), *ids],
            )
            await self.db.execute(
                f"DELETE FROM booking_slots WHERE booking_id IN ({placeholders})", ids
            )
            await self.db.commit()
            rows = await self._fetchall(
                f"SELECT * FROM bookings WHERE id IN ({placeholders})", ids
            )
        return [_row_to_booking(r) for r in rows]

    # ══════════════════════════════════════════════════════════════════
    #                         AUDIT LOG
    # ══════════════════════════════════════════════════════════════════

    async def add_audit_entry(self, entry: AuditLogEntry) -> None:
        async with self._write_lock:
            await self.db.execute(
                """
                INSERT INTO audit_logs (id, user_id, event_type, details_json, created_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    entry.id, entry.user_id, entry.event_type,
                    json.dumps(entry.details, default=str), _iso(entry.created_at),
                ),
            )
            await self.db.commit()

    async def list_audit_entries(self) -> list[AuditLogEntry]:
        rows = await self._fetchall(
            "SELECT * FROM audit_logs ORDER BY created_at DESC, rowid DESC"
        )
        return [_row_to_audit(r) for r in rows]
