"""
Hourly time-slot model: availability, conflict detection and pricing.

The operating day is the half-open set of hour starts
``[opening_hour, closing_hour)``.  A booking occupies the slots
``start_hour <= slot < end_hour`` on its (court, date).

Two formulations of "is this range free" live here:

* ``find_conflict`` – direct half-open interval overlap against the
  existing bookings.  This is the authoritative definition.
* ``is_range_available`` – every requested hour must appear in the
  free-slot list.  Equivalent as long as everything is hour-aligned.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import timedelta

from court_booking.errors import ValidationError
from court_booking.models import ACTIVE_STATUSES, Booking, BookingStatus, Court

_TIME_RE = re.compile(r"^(\d{2}):(\d{2})$")


@dataclass(frozen=True)
class BookingPolicy:
    """
    Business rules for slot booking.

    Attributes:
        opening_hour: First bookable hour (inclusive).
        closing_hour: Closing hour; the last slot starts one hour earlier.
        auto_confirm: New bookings start "confirmed" instead of "pending".
        pending_ttl: How long a pending booking may wait for confirmation.
    """

    opening_hour: int = 6
    closing_hour: int = 22
    auto_confirm: bool = False
    pending_ttl: timedelta = field(default=timedelta(hours=24))

    def __post_init__(self) -> None:
        if not 0 <= self.opening_hour < self.closing_hour <= 24:
            raise ValueError(
                f"Invalid operating hours {self.opening_hour}-{self.closing_hour}"
            )
        if self.pending_ttl <= timedelta(0):
            raise ValueError("pending_ttl must be positive")

    @property
    def initial_status(self) -> BookingStatus:
        return BookingStatus.CONFIRMED if self.auto_confirm else BookingStatus.PENDING

    @property
    def slots_per_day(self) -> int:
        return self.closing_hour - self.opening_hour


# ── Time parsing ──────────────────────────────────────────────────────────


def parse_time(value: str) -> int:
    """Parse an ``HH:MM`` string that must fall on a whole hour."""
    match = _TIME_RE.match(value or "")
    if match is None:
        raise ValidationError(f"Invalid time {value!r}. Use HH:MM")
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 24 or minute > 59 or (hour == 24 and minute):
        raise ValidationError(f"Invalid time {value!r}")
    if minute != 0:
        raise ValidationError(f"Time {value!r} must be on a whole hour")
    return hour


def format_hour(hour: int) -> str:
    return f"{hour:02d}:00"


def operating_slots(policy: BookingPolicy) -> list[int]:
    """Every bookable slot start in the operating day."""
    return list(range(policy.opening_hour, policy.closing_hour))


def validate_range(policy: BookingPolicy, start_time: str, end_time: str) -> tuple[int, int]:
    """Return ``(start_hour, end_hour)`` or raise ValidationError."""
    start_hour = parse_time(start_time)
    end_hour = parse_time(end_time)
    if start_hour >= end_hour:
        raise ValidationError("Start time must be before end time")
    if start_hour < policy.opening_hour or end_hour > policy.closing_hour:
        raise ValidationError(
            f"Invalid time range. Courts open "
            f"{format_hour(policy.opening_hour)} - {format_hour(policy.closing_hour)}"
        )
    return start_hour, end_hour


# ── Availability & conflicts ──────────────────────────────────────────────


def _active(bookings: Iterable[Booking]) -> list[Booking]:
    return [b for b in bookings if b.status in ACTIVE_STATUSES]


def free_slots(policy: BookingPolicy, bookings: Iterable[Booking]) -> list[int]:
    """
    Slots of the operating day not covered by any non-terminal booking.

    ``bookings`` must all belong to the same (court, date).
    """
    active = _active(bookings)
    return [
        slot
        for slot in operating_slots(policy)
        if not any(b.start_hour <= slot < b.end_hour for b in active)
    ]


def find_conflict(bookings: Iterable[Booking], start_hour: int, end_hour: int) -> Booking | None:
    """First non-terminal booking overlapping ``[start_hour, end_hour)``, if any."""
    for booking in _active(bookings):
        if booking.start_hour < end_hour and start_hour < booking.end_hour:
            return booking
    return None


def is_range_available(
    policy: BookingPolicy,
    bookings: Iterable[Booking],
    start_hour: int,
    end_hour: int,
) -> bool:
    """True when every hour of ``[start_hour, end_hour)`` is a free slot."""
    available = set(free_slots(policy, bookings))
    return all(hour in available for hour in range(start_hour, end_hour))


# ── Pricing ───────────────────────────────────────────────────────────────


def price_for(court: Court, start_hour: int, end_hour: int) -> int:
    return (end_hour - start_hour) * court.hourly_rate
