"""
Booking lifecycle: availability, creation, confirmation, cancellation, expiry.

State machine::

    pending ──confirm──▶ confirmed
       │                    │
       ├──cancel──▶ cancelled ◀──cancel──┘
       └──expire──▶ expired

``cancelled`` and ``expired`` are terminal and release their slots.
Whether a new booking starts ``pending`` or ``confirmed`` is decided once
per deployment by ``BookingPolicy.auto_confirm``.

Expiry is evaluated lazily: every read that depends on booking state
first expires overdue pending bookings, so no timer is needed for
correctness.  ``ExpirySweeper`` additionally runs the same sweep in the
background.
"""

from __future__ import annotations

import logging
import re
from datetime import date
from uuid import uuid4

from court_booking.errors import (
    AuthorizationError,
    ConflictError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from court_booking.models import (
    ACTIVE_STATUSES,
    AdminStats,
    AvailabilityResponse,
    Booking,
    BookingStatus,
    Court,
    PriceQuote,
    User,
    UserRole,
)
from court_booking.services.audit import record_event
from court_booking.services.clock import Clock
from court_booking.services.slots import (
    BookingPolicy,
    find_conflict,
    format_hour,
    free_slots,
    price_for,
    validate_range,
)
from court_booking.storage.base import Store

logger = logging.getLogger(__name__)

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def parse_date(value: date | str) -> date:
    """Accept a date or a strict ``YYYY-MM-DD`` string."""
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not _DATE_RE.match(value):
        raise ValidationError(f"Invalid date {value!r}. Use YYYY-MM-DD")
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise ValidationError(f"Invalid date {value!r}") from None


class BookingService:
    def __init__(self, store: Store, clock: Clock, policy: BookingPolicy) -> None:
        self._store = store
        self._clock = clock
        self._policy = policy

    @property
    def policy(self) -> BookingPolicy:
        return self._policy

    # ── Helpers ────────────────────────────────────────────────────────

    async def _active_court(self, court_id: str) -> Court:
        court = await self._store.get_court(court_id)
        if court is None or not court.is_active:
            raise NotFoundError(f"Court {court_id} not found")
        return court

    async def _booking(self, booking_id: str) -> Booking:
        booking = await self._store.get_booking(booking_id)
        if booking is None:
            raise NotFoundError(f"Booking {booking_id} not found")
        return booking

    async def _authorize(self, booking: Booking, actor_id: str, action: str) -> User:
        actor = await self._store.get_user(actor_id)
        if actor is None:
            raise AuthorizationError(f"Not authorized to {action} this booking")
        if actor.role != UserRole.ADMIN and booking.user_id != actor.id:
            await record_event(
                self._store, self._clock, "UNAUTHORIZED_BOOKING_ACCESS", actor.id,
                booking_id=booking.id, action=action,
            )
            raise AuthorizationError(f"Not authorized to {action} this booking")
        return actor

    async def expire_stale(self) -> list[Booking]:
        """Expire every pending booking whose confirmation window has passed."""
        expired = await self._store.expire_pending(self._clock.now())
        for booking in expired:
            logger.info(
                "Booking %s expired (court %s, %s %s-%s)",
                booking.id, booking.court_id, booking.date,
                booking.start_time, booking.end_time,
            )
            await record_event(
                self._store, self._clock, "BOOKING_EXPIRED", None, booking_id=booking.id
            )
        return expired

    # ── Availability & pricing ─────────────────────────────────────────

    async def list_free_slots(self, court_id: str, on_date: date | str) -> list[str]:
        """Free slot start times (``HH:00``) for a court on a date."""
        availability = await self.availability(court_id, on_date)
        return availability.available_slots

    async def availability(self, court_id: str, on_date: date | str) -> AvailabilityResponse:
        day = parse_date(on_date)
        await self._active_court(court_id)
        await self.expire_stale()

        bookings = await self._store.list_active_bookings(court_id, day)
        slots = [format_hour(h) for h in free_slots(self._policy, bookings)]
        return AvailabilityResponse(
            court_id=court_id,
            date=day,
            available_slots=slots,
            total_slots=self._policy.slots_per_day,
            booked_slots=self._policy.slots_per_day - len(slots),
        )

    async def compute_price(self, court_id: str, start_time: str, end_time: str) -> int:
        quote = await self.quote(court_id, start_time, end_time)
        return quote.total_price

    async def quote(self, court_id: str, start_time: str, end_time: str) -> PriceQuote:
        start_hour, end_hour = validate_range(self._policy, start_time, end_time)
        court = await self._active_court(court_id)
        return PriceQuote(
            court_id=court.id,
            start_time=format_hour(start_hour),
            end_time=format_hour(end_hour),
            hours=end_hour - start_hour,
            hourly_rate=court.hourly_rate,
            total_price=price_for(court, start_hour, end_hour),
        )

    # ── Lifecycle ──────────────────────────────────────────────────────

    async def create_booking(
        self,
        court_id: str,
        user_id: str,
        booking_date: date | str,
        start_time: str,
        end_time: str,
    ) -> Booking:
        day = parse_date(booking_date)
        now = self._clock.now()
        if day < now.date():
            raise ValidationError("Cannot book for past dates")

        start_hour, end_hour = validate_range(self._policy, start_time, end_time)
        court = await self._active_court(court_id)
        if await self._store.get_user(user_id) is None:
            raise NotFoundError(f"User {user_id} not found")
        await self.expire_stale()

        # Fast path; the store enforces the same rule atomically on insert.
        existing = await self._store.list_active_bookings(court_id, day)
        conflict = find_conflict(existing, start_hour, end_hour)
        if conflict is not None:
            raise ConflictError(
                "Requested slots are not available",
                conflicting_booking_id=conflict.id,
            )

        status = self._policy.initial_status
        booking = Booking(
            id=str(uuid4()),
            court_id=court.id,
            user_id=user_id,
            date=day,
            start_time=format_hour(start_hour),
            end_time=format_hour(end_hour),
            status=status,
            total_price=price_for(court, start_hour, end_hour),
            created_at=now,
            updated_at=now,
            confirmed_at=now if status == BookingStatus.CONFIRMED else None,
            expires_at=now + self._policy.pending_ttl if status == BookingStatus.PENDING else None,
        )
        booking = await self._store.insert_booking(booking)

        logger.info(
            "Booking %s created: court %s, %s %s-%s, %s, price %d",
            booking.id, court.id, day, booking.start_time, booking.end_time,
            booking.status.value, booking.total_price,
        )
        await record_event(
            self._store, self._clock, "BOOKING_CREATED", user_id,
            booking_id=booking.id, court_id=court.id, date=day.isoformat(),
            total_price=booking.total_price,
        )
        return booking

    async def confirm_booking(
        self,
        booking_id: str,
        payment_ref: str | None,
        actor_id: str,
    ) -> Booking:
        """pending → confirmed, recording the external payment reference."""
        await self.expire_stale()
        booking = await self._booking(booking_id)
        await self._authorize(booking, actor_id, "confirm")

        now = self._clock.now()
        updated = await self._store.transition_booking(
            booking_id,
            frozenset({BookingStatus.PENDING}),
            BookingStatus.CONFIRMED,
            {
                "payment_ref": payment_ref,
                "confirmed_at": now,
                "expires_at": None,
                "updated_at": now,
            },
        )
        if updated is None:
            current = await self._booking(booking_id)
            raise InvalidStateError(f"Cannot confirm a {current.status.value} booking")

        logger.info("Booking %s confirmed by %s", booking_id, actor_id)
        await record_event(
            self._store, self._clock, "BOOKING_CONFIRMED", actor_id,
            booking_id=booking_id, payment_ref=payment_ref,
        )
        return updated

    async def cancel_booking(
        self,
        booking_id: str,
        actor_id: str,
        reason: str | None = None,
    ) -> Booking:
        """pending|confirmed → cancelled. Cancelling twice is an error."""
        await self.expire_stale()
        booking = await self._booking(booking_id)
        await self._authorize(booking, actor_id, "cancel")

        now = self._clock.now()
        updated = await self._store.transition_booking(
            booking_id,
            ACTIVE_STATUSES,
            BookingStatus.CANCELLED,
            {
                "cancellation_reason": reason,
                "cancelled_at": now,
                "updated_at": now,
            },
        )
        if updated is None:
            current = await self._booking(booking_id)
            raise InvalidStateError(f"Cannot cancel a {current.status.value} booking")

        logger.info("Booking %s cancelled by %s", booking_id, actor_id)
        await record_event(
            self._store, self._clock, "BOOKING_CANCELLED", actor_id,
            booking_id=booking_id, reason=reason,
        )
        return updated

    # ── Queries ────────────────────────────────────────────────────────

    async def get_booking(self, booking_id: str, actor_id: str) -> Booking:
        await self.expire_stale()
        booking = await self._booking(booking_id)
        await self._authorize(booking, actor_id, "view")
        return booking

    async def list_user_bookings(
        self, user_id: str, status: BookingStatus | None = None
    ) -> list[Booking]:
        await self.expire_stale()
        return await self._store.list_bookings(user_id=user_id, status=status)

    async def list_all_bookings(self, status: BookingStatus | None = None) -> list[Booking]:
        await self.expire_stale()
        return await self._store.list_bookings(status=status)

    async def stats(self) -> AdminStats:
        await self.expire_stale()
        bookings = await self._store.list_bookings()
        counts = {s: 0 for s in BookingStatus}
        for booking in bookings:
            counts[booking.status] += 1

        users = await self._store.list_users()
        courts = await self._store.list_courts(active_only=True)
        return AdminStats(
            total_bookings=len(bookings),
            pending_bookings=counts[BookingStatus.PENDING],
            confirmed_bookings=counts[BookingStatus.CONFIRMED],
            cancelled_bookings=counts[BookingStatus.CANCELLED],
            expired_bookings=counts[BookingStatus.EXPIRED],
            total_revenue=sum(
                b.total_price for b in bookings if b.status == BookingStatus.CONFIRMED
            ),
            total_users=sum(1 for u in users if u.role == UserRole.USER),
            active_courts=len(courts),
        )
