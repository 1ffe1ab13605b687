"""
Court catalogue: listing, lookup, and admin-driven edits.

Courts are never deleted; admins deactivate them through ``is_active``.
Inactive courts disappear from public listings and cannot be booked,
but existing bookings keep referencing them.
"""

from __future__ import annotations

import logging
from uuid import uuid4

from court_booking.errors import NotFoundError
from court_booking.models import Court, CourtCreate, CourtUpdate
from court_booking.services.audit import record_event
from court_booking.services.clock import Clock
from court_booking.storage.base import Store

logger = logging.getLogger(__name__)


class CourtService:
    def __init__(self, store: Store, clock: Clock) -> None:
        self._store = store
        self._clock = clock

    async def list_courts(self, *, include_inactive: bool = False) -> list[Court]:
        return await self._store.list_courts(active_only=not include_inactive)

    async def get_court(self, court_id: str, *, include_inactive: bool = False) -> Court:
        court = await self._store.get_court(court_id)
        if court is None or (not court.is_active and not include_inactive):
            raise NotFoundError(f"Court {court_id} not found")
        return court

    async def create_court(
        self,
        body: CourtCreate,
        actor_id: str | None = None,
        *,
        court_id: str | None = None,
    ) -> Court:
        now = self._clock.now()
        court = Court(
            id=court_id or f"court_{uuid4().hex[:12]}",
            **body.model_dump(),
            is_active=True,
            created_at=now,
            updated_at=now,
        )
        court = await self._store.create_court(court)
        logger.info("Court %s (%s) created", court.id, court.name)
        await record_event(
            self._store, self._clock, "COURT_CREATED", actor_id,
            court_id=court.id, hourly_rate=court.hourly_rate,
        )
        return court

    async def update_court(self, court_id: str, body: CourtUpdate, actor_id: str) -> Court:
        changes = body.model_dump(exclude_unset=True)
        # Explicit nulls only make sense for the optional text fields.
        for required in ("name", "location", "hourly_rate", "capacity", "is_active"):
            if changes.get(required, ...) is None:
                del changes[required]

        existing = await self.get_court(court_id, include_inactive=True)
        if not changes:
            return existing

        updated = await self._store.update_court(
            court_id, {**changes, "updated_at": self._clock.now()}
        )
        if updated is None:
            raise NotFoundError(f"Court {court_id} not found")

        logger.info("Court %s updated: %s", court_id, sorted(changes))
        await record_event(
            self._store, self._clock, "COURT_UPDATED", actor_id,
            court_id=court_id, changes=changes,
        )
        return updated
