"""
Shared test fixtures.

Provides:
  • a FastAPI TestClient wired to a temporary SQLite database (via app lifespan)
  • the same client backed by a JSON data file
  • auth headers for a regular user, a second user and the seeded admin
  • both Store implementations, opened and pre-populated, for service tests

bcrypt runs with the minimum cost factor and rate limiting is disabled
so the suite stays fast.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from court_booking.config import ADMIN_EMAIL, ADMIN_PASSWORD
from court_booking.main import app
from court_booking.storage.json_file import JsonFileStore
from court_booking.storage.sqlite import SQLiteStore
from tests.mocks.client import login, register
from tests.mocks.models import (
    MOCK_ADMIN,
    MOCK_COURT,
    MOCK_COURT_CHEAP,
    MOCK_USER,
    MOCK_USER_2,
    FixedClock,
)

# ── App fixtures ───────────────────────────────────────────────────────────


@pytest.fixture()
def _test_env(monkeypatch, tmp_path):
    """
    Patch the storage location, hashing cost and background sweeper so
    the app lifespan runs cleanly against a temp database.
    """
    monkeypatch.setattr("court_booking.storage.factory.STORAGE_BACKEND", "sqlite")
    monkeypatch.setattr("court_booking.storage.factory.DB_PATH", str(tmp_path / "test.db"))
    monkeypatch.setattr(
        "court_booking.storage.factory.JSON_DATA_PATH", str(tmp_path / "test.json")
    )
    monkeypatch.setattr("court_booking.services.auth_service.BCRYPT_ROUNDS", 4)
    monkeypatch.setattr("court_booking.main.EXPIRY_SWEEP_INTERVAL", 3600)

    # ── Disable rate limiting in tests ────────────────────────────────
    from court_booking.rate_limit import limiter as _limiter
    monkeypatch.setattr(_limiter, "enabled", False)

    return tmp_path


@pytest.fixture()
def client(_test_env) -> TestClient:
    """TestClient running the full lifespan (store open, seed, sweeper)."""
    with TestClient(app, raise_server_exceptions=False) as tc:
        yield tc


@pytest.fixture()
def json_client(_test_env, monkeypatch) -> TestClient:
    """TestClient backed by the JSON file store."""
    monkeypatch.setattr("court_booking.storage.factory.STORAGE_BACKEND", "json")
    with TestClient(app, raise_server_exceptions=False) as tc:
        yield tc


@pytest.fixture()
def user_headers(client) -> dict:
    return register(client, "Jordan Player", "player@example.com")


@pytest.fixture()
def other_headers(client) -> dict:
    return register(client, "Casey Coach", "coach@example.com")


@pytest.fixture()
def admin_headers(client) -> dict:
    return login(client, ADMIN_EMAIL, ADMIN_PASSWORD)


@pytest.fixture()
def booking_date() -> str:
    """A day safely in the future for the real clock the app runs on."""
    return (datetime.now(UTC) + timedelta(days=7)).date().isoformat()


# ── Store fixtures ─────────────────────────────────────────────────────────


@pytest.fixture()
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture(params=["sqlite", "json"])
async def store(request, tmp_path):
    """An opened, empty store of each backend."""
    if request.param == "sqlite":
        s = SQLiteStore(str(tmp_path / "store.db"))
    else:
        s = JsonFileStore(str(tmp_path / "store.json"))
    await s.open()
    yield s
    await s.close()


@pytest.fixture()
async def seeded_store(store):
    """Store holding two courts, two players and an admin."""
    for court in (MOCK_COURT, MOCK_COURT_CHEAP):
        await store.create_court(court)
    for user in (MOCK_USER, MOCK_USER_2, MOCK_ADMIN):
        await store.create_user(user)
    return store
