"""
Application configuration from environment variables.

All settings have sensible defaults for local development.
A .env file in the project root is loaded automatically (if present).
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env file before reading any env vars
load_dotenv(Path(__file__).resolve().parent.parent / ".env")


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


# ── Environment ───────────────────────────────────────────────────────────

ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")

# ── Paths ─────────────────────────────────────────────────────────────────

PROJECT_ROOT = Path(__file__).resolve().parent.parent
DATA_DIR = PROJECT_ROOT / "data"

# "sqlite" or "json"
STORAGE_BACKEND: str = os.getenv("STORAGE_BACKEND", "sqlite").lower()

DB_PATH: str = os.getenv("DB_PATH", str(DATA_DIR / "court_booking.db"))
JSON_DATA_PATH: str = os.getenv("JSON_DATA_PATH", str(DATA_DIR / "court_booking.json"))

# ── JWT / passwords ───────────────────────────────────────────────────────

JWT_SECRET: str = os.getenv("JWT_SECRET", "dev-secret-change-me-in-production")
JWT_ALGORITHM: str = "HS256"
JWT_EXPIRY_HOURS: int = int(os.getenv("JWT_EXPIRY_HOURS", "24"))

BCRYPT_ROUNDS: int = int(os.getenv("BCRYPT_ROUNDS", "12"))

# ── Booking policy ────────────────────────────────────────────────────────

OPENING_HOUR: int = int(os.getenv("OPENING_HOUR", "6"))
CLOSING_HOUR: int = int(os.getenv("CLOSING_HOUR", "22"))

# When false (default) new bookings start as "pending" and must be confirmed
# by the owner or an admin once payment has been verified.
AUTO_CONFIRM_BOOKINGS: bool = _env_bool("AUTO_CONFIRM_BOOKINGS", "false")

# Unconfirmed bookings expire this many hours after creation.
PENDING_BOOKING_TTL_HOURS: int = int(os.getenv("PENDING_BOOKING_TTL_HOURS", "24"))

# How often the background sweeper expires stale bookings (seconds).
EXPIRY_SWEEP_INTERVAL: float = float(os.getenv("EXPIRY_SWEEP_INTERVAL", "300"))

# ── Seed data ─────────────────────────────────────────────────────────────

ADMIN_EMAIL: str = os.getenv("ADMIN_EMAIL", "admin@basketball.com")
ADMIN_PASSWORD: str = os.getenv("ADMIN_PASSWORD", "admin12345")
ADMIN_NAME: str = os.getenv("ADMIN_NAME", "Admin User")
ADMIN_PHONE: str | None = os.getenv("ADMIN_PHONE") or None

SEED_DEFAULT_COURTS: bool = _env_bool("SEED_DEFAULT_COURTS", "true")
