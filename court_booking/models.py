"""Pydantic models for the Court Booking API and its stores."""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, EmailStr, Field, field_validator

_TIME_PATTERN = r"^\d{2}:\d{2}$"


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


# Bookings in these states occupy their slots.
ACTIVE_STATUSES = frozenset({BookingStatus.PENDING, BookingStatus.CONFIRMED})


class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"


# ── Courts ────────────────────────────────────────────────────────────────


class Court(BaseModel):
    """A bookable court."""

    id: str = Field(..., description="Unique court identifier")
    name: str = Field(..., description="Display name")
    location: str = Field(..., description="Where the court is")
    description: str | None = None
    hourly_rate: int = Field(..., gt=0, description="Price per hour in whole currency units")
    capacity: int = Field(..., ge=1, description="Maximum number of players")
    amenities: str | None = None
    image_url: str | None = None
    is_active: bool = True
    created_at: datetime
    updated_at: datetime


class CourtCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    location: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    hourly_rate: int = Field(..., gt=0)
    capacity: int = Field(10, ge=1)
    amenities: str | None = None
    image_url: str | None = None


class CourtUpdate(BaseModel):
    """Partial update; only fields that are set are applied."""

    name: str | None = Field(None, min_length=1, max_length=100)
    location: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = None
    hourly_rate: int | None = Field(None, gt=0)
    capacity: int | None = Field(None, ge=1)
    amenities: str | None = None
    image_url: str | None = None
    is_active: bool | None = None


class AvailabilityResponse(BaseModel):
    court_id: str
    date: date
    available_slots: list[str] = Field(..., description="Free slot start times (HH:00)")
    total_slots: int
    booked_slots: int


class PriceQuote(BaseModel):
    court_id: str
    start_time: str
    end_time: str
    hours: int
    hourly_rate: int
    total_price: int


# ── Users & sessions ──────────────────────────────────────────────────────


class UserInfo(BaseModel):
    """Public view of a user (never carries the password hash)."""

    id: str
    name: str
    email: EmailStr
    phone: str | None = None
    role: UserRole = UserRole.USER
    is_verified: bool = False
    created_at: datetime
    updated_at: datetime
    last_login: datetime | None = None


class User(UserInfo):
    password_hash: str

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def to_info(self) -> UserInfo:
        return UserInfo.model_validate(self.model_dump(exclude={"password_hash"}))


class Session(BaseModel):
    id: str
    user_id: str
    token: str
    expires_at: datetime
    revoked: bool = False
    ip_address: str | None = None
    user_agent: str | None = None
    created_at: datetime

    def is_valid(self, now: datetime) -> bool:
        return not self.revoked and now < self.expires_at


class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=72)
    phone: str | None = Field(None, pattern=r"^\+?[0-9]{7,15}$")

    @field_validator("name")
    @classmethod
    def check_name(cls, value: str) -> str:
        value = value.strip()
        if len(value) < 2:
            raise ValueError("Name must be between 2 and 100 characters")
        if not all(ch.isalpha() or ch in " '-" for ch in value):
            raise ValueError("Name can only contain letters, spaces, hyphens and apostrophes")
        return value

    @field_validator("password")
    @classmethod
    def check_password_strength(cls, value: str) -> str:
        missing = [
            label
            for label, present in (
                ("an uppercase letter", any(ch.isupper() for ch in value)),
                ("a lowercase letter", any(ch.islower() for ch in value)),
                ("a number", any(ch.isdigit() for ch in value)),
                ("a special character", any(not ch.isalnum() and not ch.isspace() for ch in value)),
            )
            if not present
        ]
        if missing:
            raise ValueError("Password must contain " + ", ".join(missing))
        return value


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class AuthResponse(BaseModel):
    message: str
    user: UserInfo
    access_token: str
    token_type: str = "bearer"
    expires_at: datetime


# ── Bookings ──────────────────────────────────────────────────────────────


class Booking(BaseModel):
    id: str
    court_id: str
    user_id: str
    date: date
    start_time: str = Field(..., description="Start of the first booked slot (HH:00)")
    end_time: str = Field(..., description="End of the last booked slot (HH:00)")
    status: BookingStatus
    total_price: int
    payment_ref: str | None = None
    cancellation_reason: str | None = None
    created_at: datetime
    updated_at: datetime
    confirmed_at: datetime | None = None
    cancelled_at: datetime | None = None
    expires_at: datetime | None = None

    @property
    def start_hour(self) -> int:
        return int(self.start_time[:2])

    @property
    def end_hour(self) -> int:
        return int(self.end_time[:2])

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES


class BookingCreate(BaseModel):
    court_id: str
    date: date
    start_time: str = Field(..., pattern=_TIME_PATTERN, examples=["10:00"])
    end_time: str = Field(..., pattern=_TIME_PATTERN, examples=["12:00"])


class BookingConfirm(BaseModel):
    payment_ref: str | None = Field(None, max_length=200, description="External payment reference")


class BookingCancel(BaseModel):
    reason: str | None = Field(None, max_length=500)


# ── Admin ─────────────────────────────────────────────────────────────────


class AuditLogEntry(BaseModel):
    id: str
    user_id: str | None = None
    event_type: str
    details: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime


class AdminStats(BaseModel):
    total_bookings: int
    pending_bookings: int
    confirmed_bookings: int
    cancelled_bookings: int
    expired_bookings: int
    total_revenue: int = Field(..., description="Sum of confirmed booking prices")
    total_users: int
    active_courts: int


class ExpirySweepResponse(BaseModel):
    expired: int


# ── Common ────────────────────────────────────────────────────────────────


class PaginationMeta(BaseModel):
    page: int
    page_size: int
    total_items: int
    total_pages: int


class CourtListResponse(BaseModel):
    items: list[Court]
    meta: PaginationMeta


class BookingListResponse(BaseModel):
    items: list[Booking]
    meta: PaginationMeta


class UserListResponse(BaseModel):
    items: list[UserInfo]
    meta: PaginationMeta


class AuditLogListResponse(BaseModel):
    items: list[AuditLogEntry]
    meta: PaginationMeta


class HealthResponse(BaseModel):
    status: str
    version: str
    storage: str
    timestamp: datetime


class MessageResponse(BaseModel):
    message: str
