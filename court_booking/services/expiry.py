"""
Periodic housekeeping: expire unconfirmed bookings and purge dead sessions.

Correctness never depends on this worker (every booking read expires
overdue bookings first); it just keeps stored state tidy between reads.
"""

from __future__ import annotations

import logging

from court_booking.services.background import BackgroundWorker
from court_booking.services.booking_service import BookingService
from court_booking.services.clock import Clock
from court_booking.storage.base import Store

logger = logging.getLogger(__name__)


class ExpirySweeper(BackgroundWorker):
    def __init__(
        self,
        store: Store,
        bookings: BookingService,
        clock: Clock,
        *,
        interval: float,
    ) -> None:
        super().__init__(interval=interval, name="expiry-sweeper", run_on_start=True)
        self._store = store
        self._bookings = bookings
        self._clock = clock

    async def _tick(self) -> None:
        expired = await self._bookings.expire_stale()
        purged = await self._store.purge_expired_sessions(self._clock.now())
        if expired or purged:
            logger.info(
                "Sweep: %d bookings expired, %d sessions purged", len(expired), purged
            )
