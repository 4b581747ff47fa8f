# backend/tests/unit/services/test_availability.py
"""
Unit tests for slot computation.

The seeded provider works Mondays 09:00-17:00 with a 12:00-13:00 break and
the grid step is 30 minutes.
"""

from datetime import timedelta

import pytest

from clinicbook.core.exceptions import InvalidDurationError, NotFoundException, ScheduleNotFoundError
from clinicbook.core.timeutils import to_minutes
from clinicbook.services.availability import candidate_starts, validate_duration
from clinicbook.services.schedule_catalog import ScheduleRuleView


def _rule(start="09:00", end="17:00", break_start=None, break_end=None):
    return ScheduleRuleView(
        provider_id="p",
        day_of_week=1,
        start_minutes=to_minutes(start),
        end_minutes=to_minutes(end),
        break_start_minutes=to_minutes(break_start) if break_start else None,
        break_end_minutes=to_minutes(break_end) if break_end else None,
    )


class TestCandidateStarts:
    def test_grid_stops_when_duration_no_longer_fits(self):
        starts = candidate_starts(_rule("09:00", "10:30"), 60, 30)
        assert starts == [540, 570]

    def test_break_excludes_overlapping_starts(self):
        starts = candidate_starts(_rule(break_start="12:00", break_end="13:00"), 60, 30)
        assert 660 in starts  # 11:00-12:00 ends as the break starts
        assert 690 not in starts  # 11:30-12:30 runs into the break
        assert 720 not in starts
        assert 780 in starts

    def test_break_start_alone_is_no_break(self):
        starts = candidate_starts(_rule(break_start="12:00"), 30, 30)
        assert 720 in starts
        assert 750 in starts

    def test_break_end_alone_is_no_break(self):
        starts = candidate_starts(_rule(break_end="13:00"), 30, 30)
        assert 720 in starts
        assert 750 in starts


class TestValidateDuration:
    @pytest.mark.parametrize("value", [0, -15, "30", 30.0, True, 24 * 60 + 1])
    def test_invalid_durations(self, value):
        with pytest.raises(InvalidDurationError):
            validate_duration(value)

    def test_valid_duration_passes_through(self):
        assert validate_duration(45) == 45


class TestAvailabilityComputer:
    def test_thirty_minute_slots_skip_the_break(self, availability, clinic):
        slots = availability.get_available_slots(
            clinic.provider_id, clinic.day, clinic.short_service_id
        )

        assert slots[0] == "09:00"
        assert slots[-1] == "16:30"
        assert "11:30" in slots
        assert "13:00" in slots
        assert "12:00" not in slots
        assert "12:30" not in slots
        assert len(slots) == 14

    def test_sixty_minute_slots(self, availability, clinic):
        slots = availability.get_available_slots(
            clinic.provider_id, clinic.day, clinic.long_service_id
        )

        assert "11:00" in slots
        assert "11:30" not in slots
        assert slots[-1] == "16:00"
        assert len(slots) == 12

    def test_slots_are_sorted_and_unique(self, availability, clinic):
        slots = availability.get_available_slots(
            clinic.provider_id, clinic.day, clinic.short_service_id
        )
        assert slots == sorted(set(slots))

    def test_booked_interval_removes_overlapping_starts(self, availability, book, clinic):
        book("10:00", service_id=clinic.long_service_id)

        slots = availability.get_available_slots(
            clinic.provider_id, clinic.day, clinic.short_service_id
        )

        assert "09:30" in slots
        assert "10:00" not in slots
        assert "10:30" not in slots
        assert "11:00" in slots

    def test_cancelled_appointments_do_not_block(self, availability, booking, book, clinic):
        appointment = book("10:00")
        booking.cancel_appointment(appointment.id, initiator="patient-1")

        slots = availability.get_available_slots(
            clinic.provider_id, clinic.day, clinic.short_service_id
        )
        assert "10:00" in slots

    def test_day_without_schedule_is_empty(self, availability, clinic):
        tuesday = clinic.day + timedelta(days=1)
        assert availability.get_available_slots(clinic.provider_id, tuesday, "cleaning") == []

    def test_unavailable_rule_is_empty(self, availability, catalog, clinic):
        catalog.upsert_schedule_rule(clinic.provider_id, 1, "09:00", "17:00", is_available=False)
        assert availability.get_available_slots(clinic.provider_id, clinic.day, "cleaning") == []

    def test_inactive_service_has_no_slots(self, availability, catalog, clinic):
        catalog.upsert_service("cleaning", "Teeth cleaning", 30, "500.00", is_active=False)
        assert availability.get_available_slots(clinic.provider_id, clinic.day, "cleaning") == []

    def test_unknown_service_raises(self, availability, clinic):
        with pytest.raises(NotFoundException):
            availability.get_available_slots(clinic.provider_id, clinic.day, "no-such-service")

    def test_require_schedule_raises_for_off_day(self, availability, clinic):
        with pytest.raises(ScheduleNotFoundError) as exc_info:
            availability.require_schedule(clinic.provider_id, clinic.day + timedelta(days=1))
        assert exc_info.value.details["day_of_week"] == 2

    def test_is_bookable_checks_grid_and_conflicts(self, availability, book, clinic):
        assert availability.is_bookable(clinic.provider_id, clinic.day, "09:00", 30)
        assert not availability.is_bookable(clinic.provider_id, clinic.day, "09:10", 30)
        assert not availability.is_bookable(clinic.provider_id, clinic.day, "12:00", 30)

        appointment = book("09:00")
        assert not availability.is_bookable(clinic.provider_id, clinic.day, "09:00", 30)
        assert availability.is_bookable(
            clinic.provider_id,
            clinic.day,
            "09:00",
            30,
            exclude_appointment_id=appointment.id,
        )
