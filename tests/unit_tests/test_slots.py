"""Tests for the hourly slot model: parsing, availability, conflicts, pricing."""

from datetime import timedelta

import pytest

from court_booking.errors import ValidationError
from court_booking.models import BookingStatus
from court_booking.services.slots import (
    BookingPolicy,
    find_conflict,
    format_hour,
    free_slots,
    is_range_available,
    operating_slots,
    parse_time,
    price_for,
    validate_range,
)
from tests.mocks.models import MOCK_COURT, MOCK_COURT_CHEAP, make_booking

POLICY = BookingPolicy()


class TestBookingPolicy:
    def test_defaults(self):
        assert POLICY.opening_hour == 6
        assert POLICY.closing_hour == 22
        assert POLICY.slots_per_day == 16
        assert POLICY.initial_status == BookingStatus.PENDING

    def test_auto_confirm_starts_confirmed(self):
        assert BookingPolicy(auto_confirm=True).initial_status == BookingStatus.CONFIRMED

    @pytest.mark.parametrize("opening,closing", [(22, 6), (10, 10), (-1, 22), (6, 25)])
    def test_invalid_hours_rejected(self, opening, closing):
        with pytest.raises(ValueError):
            BookingPolicy(opening_hour=opening, closing_hour=closing)

    def test_non_positive_ttl_rejected(self):
        with pytest.raises(ValueError):
            BookingPolicy(pending_ttl=timedelta(0))


class TestParseTime:
    def test_whole_hours(self):
        assert parse_time("06:00") == 6
        assert parse_time("22:00") == 22
        assert parse_time("24:00") == 24

    @pytest.mark.parametrize("value", ["6:00", "06-00", "0600", "", "ab:cd", "06:00:00"])
    def test_malformed(self, value):
        with pytest.raises(ValidationError):
            parse_time(value)

    @pytest.mark.parametrize("value", ["10:30", "25:00", "24:30", "12:60"])
    def test_out_of_range_or_partial_hour(self, value):
        with pytest.raises(ValidationError):
            parse_time(value)

    def test_format_hour(self):
        assert format_hour(6) == "06:00"
        assert format_hour(21) == "21:00"


class TestValidateRange:
    def test_valid_range(self):
        assert validate_range(POLICY, "10:00", "12:00") == (10, 12)

    def test_full_day(self):
        assert validate_range(POLICY, "06:00", "22:00") == (6, 22)

    def test_empty_range(self):
        with pytest.raises(ValidationError, match="before end"):
            validate_range(POLICY, "10:00", "10:00")

    def test_reversed_range(self):
        with pytest.raises(ValidationError):
            validate_range(POLICY, "12:00", "10:00")

    def test_before_opening(self):
        with pytest.raises(ValidationError, match="Courts open"):
            validate_range(POLICY, "05:00", "07:00")

    def test_after_closing(self):
        with pytest.raises(ValidationError):
            validate_range(POLICY, "21:00", "23:00")

    def test_custom_hours(self):
        policy = BookingPolicy(opening_hour=8, closing_hour=20)
        with pytest.raises(ValidationError):
            validate_range(policy, "07:00", "09:00")
        assert validate_range(policy, "19:00", "20:00") == (19, 20)


class TestFreeSlots:
    def test_empty_day_is_fully_free(self):
        assert free_slots(POLICY, []) == operating_slots(POLICY)
        assert len(free_slots(POLICY, [])) == 16

    def test_booking_removes_its_hours(self):
        bookings = [make_booking("10:00", "12:00")]
        free = free_slots(POLICY, bookings)
        assert 10 not in free and 11 not in free
        assert 9 in free and 12 in free
        assert len(free) == 14

    def test_terminal_bookings_release_slots(self):
        bookings = [
            make_booking("10:00", "12:00", status=BookingStatus.CANCELLED),
            make_booking("14:00", "15:00", status=BookingStatus.EXPIRED),
        ]
        assert free_slots(POLICY, bookings) == operating_slots(POLICY)

    def test_pending_bookings_hold_slots(self):
        bookings = [make_booking("06:00", "07:00", status=BookingStatus.PENDING)]
        assert 6 not in free_slots(POLICY, bookings)

    def test_free_slots_complement_occupied(self):
        bookings = [
            make_booking("06:00", "08:00"),
            make_booking("12:00", "13:00", status=BookingStatus.PENDING),
            make_booking("20:00", "22:00"),
        ]
        occupied = {h for b in bookings for h in range(b.start_hour, b.end_hour)}
        free = set(free_slots(POLICY, bookings))
        assert free | occupied == set(operating_slots(POLICY))
        assert free & occupied == set()


class TestConflicts:
    EXISTING = [make_booking("10:00", "12:00", name="existing")]

    @pytest.mark.parametrize(
        "start,end",
        [(9, 11), (11, 13), (10, 12), (10, 11), (11, 12), (8, 14)],
    )
    def test_overlaps_conflict(self, start, end):
        conflict = find_conflict(self.EXISTING, start, end)
        assert conflict is not None
        assert conflict.id == self.EXISTING[0].id
        assert not is_range_available(POLICY, self.EXISTING, start, end)

    @pytest.mark.parametrize("start,end", [(8, 10), (12, 14), (6, 7), (21, 22)])
    def test_adjacent_ranges_do_not_conflict(self, start, end):
        assert find_conflict(self.EXISTING, start, end) is None
        assert is_range_available(POLICY, self.EXISTING, start, end)

    def test_cancelled_booking_never_conflicts(self):
        cancelled = [make_booking("10:00", "12:00", status=BookingStatus.CANCELLED)]
        assert find_conflict(cancelled, 10, 12) is None

    def test_interval_and_slot_checks_agree(self):
        bookings = [make_booking("08:00", "09:00"), make_booking("15:00", "18:00")]
        for start in range(6, 22):
            for end in range(start + 1, 23):
                assert (find_conflict(bookings, start, end) is None) == is_range_available(
                    POLICY, bookings, start, end
                ), (start, end)


class TestPricing:
    def test_price_is_hours_times_rate(self):
        assert price_for(MOCK_COURT, 10, 12) == 1000
        assert price_for(MOCK_COURT_CHEAP, 6, 22) == 16 * 200

    def test_price_is_additive(self):
        whole = price_for(MOCK_COURT, 8, 14)
        assert whole == price_for(MOCK_COURT, 8, 11) + price_for(MOCK_COURT, 11, 14)
