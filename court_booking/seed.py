"""
Default data created on first start: the admin account and three courts.
"""

from __future__ import annotations

import logging

from court_booking.config import (
    ADMIN_EMAIL,
    ADMIN_NAME,
    ADMIN_PASSWORD,
    ADMIN_PHONE,
    SEED_DEFAULT_COURTS,
)
from court_booking.models import CourtCreate
from court_booking.services.auth_service import AuthService
from court_booking.services.clock import Clock
from court_booking.services.court_service import CourtService
from court_booking.storage.base import Store

logger = logging.getLogger(__name__)

DEFAULT_COURTS: list[tuple[str, CourtCreate]] = [
    (
        "court_001",
        CourtCreate(
            name="Main Court",
            location="Building A - Ground Floor",
            description="Professional hardwood court with NBA standards",
            hourly_rate=500,
            capacity=10,
            amenities="Scoreboard, Lights, Changing Room, Water Fountain",
            image_url="/images/court1.jpg",
        ),
    ),
    (
        "court_002",
        CourtCreate(
            name="Training Court B",
            location="Building B - First Floor",
            description="Smaller court perfect for group training",
            hourly_rate=300,
            capacity=6,
            amenities="Lights, Training Equipment, Water Fountain",
            image_url="/images/court2.jpg",
        ),
    ),
    (
        "court_003",
        CourtCreate(
            name="Half Court C",
            location="Outdoor Area",
            description="Outdoor half-court with adjustable hoops",
            hourly_rate=200,
            capacity=5,
            amenities="Lights, Water Fountain, Restrooms",
            image_url="/images/court3.jpg",
        ),
    ),
]


async def seed_defaults(store: Store, clock: Clock) -> None:
    await AuthService(store, clock).ensure_admin(
        ADMIN_NAME, ADMIN_EMAIL, ADMIN_PASSWORD, ADMIN_PHONE
    )

    if SEED_DEFAULT_COURTS and not await store.list_courts():
        courts = CourtService(store, clock)
        for court_id, body in DEFAULT_COURTS:
            await courts.create_court(body, court_id=court_id)
        logger.info("Default courts created")
