"""
Tests for domain models.
"""

import pendulum
import pytest
from datetime import date, time

from salonslots.domain.exceptions import InvalidSearchRequestError, ScheduleDataError
from salonslots.domain.models import (
    CLOSED,
    ExistingBooking,
    OpenHours,
    ProximityLabel,
    RankedSlot,
    SearchRequest,
    Service,
    SlotCandidate,
    TimeRange,
    Weekday,
    WeeklySchedule,
    parse_clock,
)


def _candidate(start: str, minutes: int = 60, provider_id: str = "m-anna") -> SlotCandidate:
    slot_start = pendulum.parse(start, tz="Europe/Berlin")
    return SlotCandidate(
        provider_id=provider_id,
        provider_name="Anna",
        service_id="svc-haircut",
        service_name="Haircut",
        duration_minutes=minutes,
        start=slot_start,
        end=slot_start.add(minutes=minutes),
    )


class TestTimeRange:
    """Tests for TimeRange model."""

    def test_create_valid_time_range(self):
        """Test creating a valid time range."""
        start = pendulum.parse("2024-11-25 09:00", tz="Europe/Berlin")
        end = pendulum.parse("2024-11-25 17:00", tz="Europe/Berlin")

        tr = TimeRange(start=start, end=end)

        assert tr.duration_minutes() == 480

    def test_invalid_time_range_raises_error(self):
        """Test that creating an invalid time range raises ValueError."""
        start = pendulum.parse("2024-11-25 17:00", tz="Europe/Berlin")
        end = pendulum.parse("2024-11-25 09:00", tz="Europe/Berlin")

        with pytest.raises(ValueError, match="Start time .* must be before end time"):
            TimeRange(start=start, end=end)

    def test_touching_ranges_do_not_overlap(self):
        """Ranges sharing only a boundary are not overlapping."""
        morning = TimeRange(
            start=pendulum.parse("2024-11-25 09:00", tz="Europe/Berlin"),
            end=pendulum.parse("2024-11-25 10:00", tz="Europe/Berlin"),
        )
        later = TimeRange(
            start=pendulum.parse("2024-11-25 10:00", tz="Europe/Berlin"),
            end=pendulum.parse("2024-11-25 11:00", tz="Europe/Berlin"),
        )
        inner = TimeRange(
            start=pendulum.parse("2024-11-25 09:30", tz="Europe/Berlin"),
            end=pendulum.parse("2024-11-25 09:45", tz="Europe/Berlin"),
        )

        assert not morning.overlaps(later)
        assert not later.overlaps(morning)
        assert morning.overlaps(inner)
        assert inner.overlaps(morning)


class TestParseClock:
    """Tests for clock string parsing."""

    def test_valid_values(self):
        assert parse_clock("09:00") == time(9, 0)
        assert parse_clock("18:30:00") == time(18, 30)
        assert parse_clock(time(7, 15, 30)) == time(7, 15)

    @pytest.mark.parametrize("value", [None, "", "  ", "9", "25:00", "10:75", "ab:cd", 900])
    def test_unusable_values(self, value):
        assert parse_clock(value) is None


class TestOpenHours:
    """Tests for daily windows and their intersection."""

    def test_start_must_precede_end(self):
        with pytest.raises(ValueError):
            OpenHours(start=time(18, 0), end=time(9, 0))

    def test_intersect_with_salon_hours(self):
        provider = OpenHours(start=time(8, 0), end=time(18, 0))
        salon = OpenHours(start=time(9, 0), end=time(20, 0))

        assert provider.intersect(salon) == OpenHours(start=time(9, 0), end=time(18, 0))

    def test_intersect_without_restriction(self):
        provider = OpenHours(start=time(8, 0), end=time(18, 0))

        assert provider.intersect(None) is provider

    def test_disjoint_windows_are_closed(self):
        provider = OpenHours(start=time(6, 0), end=time(8, 0))
        salon = OpenHours(start=time(9, 0), end=time(20, 0))

        assert provider.intersect(salon) is CLOSED

    def test_parse_rejects_inverted_window(self):
        assert OpenHours.parse("18:00", "09:00") is CLOSED
        assert OpenHours.parse("09:00", None) is CLOSED
        assert OpenHours.parse("09:00", "18:00") == OpenHours(start=time(9, 0), end=time(18, 0))


class TestWeeklySchedule:
    """Tests for weekday-keyed schedule parsing."""

    def test_from_mapping(self):
        schedule = WeeklySchedule.from_mapping({
            "Monday": {"start": "09:00", "end": "18:00"},
            "tuesday": {"start": "10:00", "end": "16:00"},
            "wednesday": {"start": "", "end": "16:00"},
            "thursday": None,
            "saturday": {"start": "12:00", "end": "10:00"},
        })

        assert schedule.for_weekday(Weekday.MONDAY) == OpenHours(start=time(9, 0), end=time(18, 0))
        assert schedule.for_weekday(Weekday.TUESDAY) == OpenHours(start=time(10, 0), end=time(16, 0))
        assert schedule.for_weekday(Weekday.WEDNESDAY) is CLOSED
        assert schedule.for_weekday(Weekday.THURSDAY) is CLOSED
        assert schedule.for_weekday(Weekday.FRIDAY) is CLOSED
        assert schedule.for_weekday(Weekday.SATURDAY) is CLOSED
        assert schedule.for_weekday(Weekday.SUNDAY) is CLOSED

    def test_for_date_uses_monday_first_index(self):
        hours = OpenHours(start=time(9, 0), end=time(17, 0))
        schedule = WeeklySchedule.uniform(hours, [Weekday.MONDAY])

        assert schedule.for_date(date(2024, 11, 25)) == hours  # Monday
        assert schedule.for_date(date(2024, 11, 24)) is CLOSED  # Sunday

    def test_missing_payload_is_closed_all_week(self):
        assert WeeklySchedule.from_mapping(None) == WeeklySchedule.closed()

    def test_non_mapping_payload_raises(self):
        with pytest.raises(ScheduleDataError):
            WeeklySchedule.from_mapping(["monday"])

    def test_requires_seven_days(self):
        with pytest.raises(ValueError):
            WeeklySchedule(days=(CLOSED,))


class TestServiceAndBooking:
    """Tests for services and bookings."""

    def test_service_requires_positive_duration(self):
        with pytest.raises(ScheduleDataError):
            Service(id="svc", name="Broken", duration_minutes=0, category="hair")

    def test_booking_without_end_lasts_one_hour(self):
        start = pendulum.parse("2024-11-25 10:00", tz="Europe/Berlin")
        booking = ExistingBooking(provider_id="m-anna", start=start)

        assert booking.effective_end == start.add(minutes=60)

    def test_booking_status_is_case_insensitive(self):
        start = pendulum.parse("2024-11-25 10:00", tz="Europe/Berlin")

        assert ExistingBooking(provider_id="p", start=start, status="pending").is_active
        assert ExistingBooking(provider_id="p", start=start, status="IN_PROGRESS").is_active
        assert not ExistingBooking(provider_id="p", start=start, status="CANCELLED").is_active
        assert not ExistingBooking(provider_id="p", start=start, status="COMPLETED").is_active


class TestSlotCandidate:
    """Tests for candidate identity and conflicts."""

    def test_id_is_deterministic(self):
        first = _candidate("2024-11-25 10:00")
        second = _candidate("2024-11-25 10:00")

        assert first.id == second.id
        assert first.id.startswith("m-anna-2024-11-25T10:00:00")

    def test_conflicts_only_with_own_provider(self):
        slot = _candidate("2024-11-25 10:00")
        other_provider = ExistingBooking(
            provider_id="m-ben",
            start=pendulum.parse("2024-11-25 10:00", tz="Europe/Berlin"),
        )
        own = ExistingBooking(
            provider_id="m-anna",
            start=pendulum.parse("2024-11-25 10:30", tz="Europe/Berlin"),
        )

        assert not slot.conflicts_with(other_provider)
        assert slot.conflicts_with(own)


class TestRankedSlot:
    """Tests for proximity text and display formatting."""

    def test_proximity_text_combines_day_and_time(self):
        slot = RankedSlot(
            candidate=_candidate("2024-11-26 14:30"),
            score=1200,
            label=ProximityLabel.SAME_WEEK,
            minute_offset=30,
            day_offset=1,
        )

        assert slot.proximity_text() == "Tomorrow, 30 minutes later"

    def test_proximity_text_skips_distant_times(self):
        slot = RankedSlot(
            candidate=_candidate("2024-11-25 18:00"),
            score=800,
            label=ProximityLabel.SAME_DAY,
            minute_offset=240,
            day_offset=0,
        )

        assert slot.proximity_text() is None

    def test_format_display_marks_highlighted(self):
        slot = RankedSlot(
            candidate=_candidate("2024-11-25 13:00"),
            score=1800,
            label=ProximityLabel.CLOSE,
            highlighted=True,
            minute_offset=-60,
            day_offset=0,
        )

        text = slot.format_display()

        assert text.startswith("⭐ ")
        assert "25.11.2024 | 13:00 – 14:00 (60 min) · Anna" in text
        assert text.endswith("(1 hour earlier)")


class TestSearchRequest:
    """Tests for request validation."""

    def test_defaults(self):
        request = SearchRequest(salon_id="salon-1", service_id="svc-haircut")

        assert request.max_days_ahead == 7
        assert request.limit == 10

    @pytest.mark.parametrize("field", ["max_days_ahead", "limit"])
    def test_non_positive_values_rejected(self, field):
        with pytest.raises(InvalidSearchRequestError):
            SearchRequest(salon_id="salon-1", service_id="svc-haircut", **{field: 0})
