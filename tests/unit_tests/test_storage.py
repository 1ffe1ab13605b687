"""Tests for the storage backends' own guarantees."""

from datetime import timedelta

import pytest

from court_booking.errors import ConflictError, NotFoundError
from court_booking.models import AuditLogEntry, BookingStatus, Session
from court_booking.storage.factory import create_store
from court_booking.storage.json_file import JsonFileStore
from court_booking.storage.sqlite import SQLiteStore
from tests.mocks.models import (
    FUTURE_DATE,
    MOCK_COURT,
    MOCK_USER,
    MOCK_USER_2,
    NOW,
    make_booking,
    make_user,
)


def _session(token: str, user_id: str = MOCK_USER.id, *, hours: int = 24) -> Session:
    return Session(
        id=f"sess-{token}",
        user_id=user_id,
        token=token,
        expires_at=NOW + timedelta(hours=hours),
        created_at=NOW,
    )


class TestBookingInvariant:
    async def test_overlapping_insert_rejected(self, seeded_store):
        first = make_booking("10:00", "12:00", name="first")
        second = make_booking("11:00", "13:00", name="second", user_id=MOCK_USER_2.id)
        await seeded_store.insert_booking(first)

        with pytest.raises(ConflictError) as exc_info:
            await seeded_store.insert_booking(second)
        assert exc_info.value.conflicting_booking_id == first.id
        assert await seeded_store.get_booking(second.id) is None

    async def test_adjacent_insert_allowed(self, seeded_store):
        await seeded_store.insert_booking(make_booking("10:00", "12:00", name="a"))
        await seeded_store.insert_booking(make_booking("12:00", "13:00", name="b"))
        active = await seeded_store.list_active_bookings(MOCK_COURT.id, FUTURE_DATE)
        assert [b.start_time for b in active] == ["10:00", "12:00"]

    async def test_terminal_transition_releases_slots(self, seeded_store):
        first = make_booking("10:00", "12:00", name="first")
        await seeded_store.insert_booking(first)
        cancelled = await seeded_store.transition_booking(
            first.id,
            frozenset({BookingStatus.PENDING, BookingStatus.CONFIRMED}),
            BookingStatus.CANCELLED,
            {"cancelled_at": NOW, "updated_at": NOW},
        )
        assert cancelled.status == BookingStatus.CANCELLED

        await seeded_store.insert_booking(make_booking("10:00", "12:00", name="again"))

    async def test_transition_is_compare_and_set(self, seeded_store):
        booking = make_booking("10:00", "11:00", status=BookingStatus.PENDING)
        await seeded_store.insert_booking(booking)

        assert await seeded_store.transition_booking(
            booking.id, frozenset({BookingStatus.CONFIRMED}), BookingStatus.CANCELLED, {}
        ) is None
        assert (await seeded_store.get_booking(booking.id)).status == BookingStatus.PENDING

    async def test_transition_rejects_unknown_fields(self, seeded_store):
        booking = make_booking("10:00", "11:00")
        await seeded_store.insert_booking(booking)
        with pytest.raises(ValueError):
            await seeded_store.transition_booking(
                booking.id,
                frozenset({BookingStatus.CONFIRMED}),
                BookingStatus.CANCELLED,
                {"total_price": 0},
            )

    async def test_expire_pending(self, seeded_store):
        pending = make_booking("10:00", "11:00", status=BookingStatus.PENDING).model_copy(
            update={"expires_at": NOW + timedelta(hours=1)}
        )
        await seeded_store.insert_booking(pending)

        assert await seeded_store.expire_pending(NOW) == []
        assert await seeded_store.expire_pending(NOW + timedelta(hours=1)) == []
        expired = await seeded_store.expire_pending(NOW + timedelta(hours=1, seconds=1))
        assert [b.id for b in expired] == [pending.id]
        assert expired[0].status == BookingStatus.EXPIRED
        assert await seeded_store.list_active_bookings(MOCK_COURT.id, FUTURE_DATE) == []

    async def test_unknown_user_rejected(self, seeded_store):
        orphan = make_booking("10:00", "11:00").model_copy(update={"user_id": "ghost-user"})
        with pytest.raises(NotFoundError):
            await seeded_store.insert_booking(orphan)
        assert await seeded_store.list_active_bookings(MOCK_COURT.id, FUTURE_DATE) == []


class TestUsers:
    async def test_email_unique_case_insensitive(self, seeded_store):
        clash = make_user("other").model_copy(update={"email": "PLAYER@example.com"})
        with pytest.raises(ConflictError):
            await seeded_store.create_user(clash)

    async def test_lookup_by_email_ignores_case(self, seeded_store):
        user = await seeded_store.get_user_by_email("Player@Example.com")
        assert user is not None and user.id == MOCK_USER.id

    async def test_delete_cascades(self, seeded_store):
        await seeded_store.create_session(_session("tok-1"))
        await seeded_store.insert_booking(make_booking("10:00", "12:00", name="mine"))

        assert await seeded_store.delete_user(MOCK_USER.id) is True
        assert await seeded_store.get_user(MOCK_USER.id) is None
        assert await seeded_store.get_session_by_token("tok-1") is None
        assert await seeded_store.list_bookings(user_id=MOCK_USER.id) == []

        # Slots of the deleted user's bookings are free again.
        await seeded_store.insert_booking(
            make_booking("10:00", "12:00", name="theirs", user_id=MOCK_USER_2.id)
        )

    async def test_delete_unknown_user(self, seeded_store):
        assert await seeded_store.delete_user("missing") is False


class TestSessions:
    async def test_revoke(self, seeded_store):
        await seeded_store.create_session(_session("tok-1"))
        assert await seeded_store.revoke_session("tok-1") is True
        assert await seeded_store.revoke_session("tok-1") is False
        assert (await seeded_store.get_session_by_token("tok-1")).revoked

    async def test_purge_expired_and_revoked(self, seeded_store):
        await seeded_store.create_session(_session("live"))
        await seeded_store.create_session(_session("old", hours=-1))
        await seeded_store.create_session(_session("revoked"))
        await seeded_store.revoke_session("revoked")

        assert await seeded_store.purge_expired_sessions(NOW) == 2
        assert await seeded_store.get_session_by_token("live") is not None


class TestAuditLog:
    async def test_newest_first(self, store):
        for i in range(3):
            await store.add_audit_entry(
                AuditLogEntry(
                    id=f"e{i}",
                    event_type="TEST",
                    details={"n": i},
                    created_at=NOW + timedelta(seconds=i),
                )
            )
        entries = await store.list_audit_entries()
        assert [e.id for e in entries] == ["e2", "e1", "e0"]
        assert entries[0].details == {"n": 2}


class TestPersistence:
    async def test_json_store_survives_restart(self, tmp_path):
        path = str(tmp_path / "data.json")
        store = JsonFileStore(path)
        await store.open()
        await store.create_court(MOCK_COURT)
        await store.create_user(MOCK_USER)
        await store.insert_booking(make_booking("10:00", "12:00"))
        await store.close()

        reopened = JsonFileStore(path)
        await reopened.open()
        assert (await reopened.get_court(MOCK_COURT.id)).hourly_rate == MOCK_COURT.hourly_rate
        active = await reopened.list_active_bookings(MOCK_COURT.id, FUTURE_DATE)
        assert len(active) == 1
        with pytest.raises(ConflictError):
            await reopened.insert_booking(make_booking("11:00", "12:00", name="clash"))

    async def test_sqlite_store_survives_restart(self, tmp_path):
        path = str(tmp_path / "data.db")
        store = SQLiteStore(path)
        await store.open()
        await store.create_court(MOCK_COURT)
        await store.create_user(MOCK_USER)
        await store.insert_booking(make_booking("10:00", "12:00"))
        await store.close()

        reopened = SQLiteStore(path)
        await reopened.open()
        try:
            with pytest.raises(ConflictError):
                await reopened.insert_booking(make_booking("11:00", "12:00", name="clash"))
        finally:
            await reopened.close()

    async def test_failed_json_write_rolls_back(self, tmp_path, monkeypatch):
        store = JsonFileStore(str(tmp_path / "data.json"))
        await store.open()
        await store.create_court(MOCK_COURT)
        await store.create_user(MOCK_USER)

        def _disk_full():
            raise OSError("No space left on device")

        monkeypatch.setattr(store, "_save", _disk_full)
        booking = make_booking("10:00", "12:00")
        with pytest.raises(OSError):
            await store.insert_booking(booking)
        with pytest.raises(OSError):
            await store.update_court(MOCK_COURT.id, {"hourly_rate": 900})

        assert await store.get_booking(booking.id) is None
        assert await store.list_active_bookings(MOCK_COURT.id, FUTURE_DATE) == []
        assert (await store.get_court(MOCK_COURT.id)).hourly_rate == MOCK_COURT.hourly_rate

        monkeypatch.undo()
        await store.insert_booking(booking)
        await store.close()

        reopened = JsonFileStore(str(tmp_path / "data.json"))
        await reopened.open()
        assert (await reopened.get_booking(booking.id)).id == booking.id

    async def test_in_memory_json_store(self):
        store = JsonFileStore(None)
        await store.open()
        await store.create_court(MOCK_COURT)
        assert [c.id for c in await store.list_courts()] == [MOCK_COURT.id]
        await store.close()


class TestFactory:
    def test_sqlite_backend(self, monkeypatch, tmp_path):
        monkeypatch.setattr("court_booking.storage.factory.STORAGE_BACKEND", "sqlite")
        monkeypatch.setattr("court_booking.storage.factory.DB_PATH", str(tmp_path / "x.db"))
        assert isinstance(create_store(), SQLiteStore)

    def test_json_backend(self, monkeypatch):
        monkeypatch.setattr("court_booking.storage.factory.STORAGE_BACKEND", "json")
        assert create_store().backend == "json"

    def test_unknown_backend(self, monkeypatch):
        monkeypatch.setattr("court_booking.storage.factory.STORAGE_BACKEND", "mongo")
        with pytest.raises(ValueError):
            create_store()
