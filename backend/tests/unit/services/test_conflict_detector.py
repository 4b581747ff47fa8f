# backend/tests/unit/services/test_conflict_detector.py
"""Overlap detection, including rows imported without times."""

from datetime import time

import pytest

from clinicbook.core.exceptions import MalformedRecordWarning
from clinicbook.models.appointment import Appointment


def _legacy_row(db, clinic, confirmation_number="LEGACY01"):
    """An imported appointment that never had its times filled in."""
    row = Appointment(
        provider_id=clinic.provider_id,
        service_id=clinic.short_service_id,
        user_id="legacy-patient",
        appointment_date=clinic.day,
        start_time=None,
        end_time=None,
        duration_minutes=30,
        status="confirmed",
        payment_status="pending",
        service_payment_status="pending",
        confirmation_number=confirmation_number,
    )
    db.add(row)
    db.commit()
    return row


class TestConflictDetector:
    def test_adjacent_appointments_do_not_conflict(self, conflict_detector, book, clinic):
        book("10:00")

        assert conflict_detector.is_available(clinic.provider_id, clinic.day, "10:30", 30)
        assert conflict_detector.is_available(clinic.provider_id, clinic.day, "09:30", 30)
        assert not conflict_detector.is_available(clinic.provider_id, clinic.day, "09:45", 30)

    def test_find_conflicts_returns_the_overlapping_rows(self, conflict_detector, book, clinic):
        first = book("09:00", user_id="patient-1")
        book("11:00", user_id="patient-2")

        conflicts = conflict_detector.find_conflicts(clinic.provider_id, clinic.day, "09:00", 60)

        assert [a.id for a in conflicts] == [first.id]

    def test_excluded_appointment_is_ignored(self, conflict_detector, book, clinic):
        appointment = book("10:00")

        assert conflict_detector.is_available(
            clinic.provider_id,
            clinic.day,
            "10:00",
            30,
            exclude_appointment_id=appointment.id,
        )

    def test_accepts_minutes_or_times(self, conflict_detector, book, clinic):
        book("10:00")
        assert not conflict_detector.is_available(clinic.provider_id, clinic.day, 600, 30)
        assert not conflict_detector.is_available(clinic.provider_id, clinic.day, time(10, 15), 30)


class TestMalformedRows:
    def test_rows_without_times_are_skipped_with_a_warning(self, db, conflict_detector, clinic):
        _legacy_row(db, clinic)

        with pytest.warns(MalformedRecordWarning):
            available = conflict_detector.is_available(clinic.provider_id, clinic.day, "10:00", 30)

        assert available

    def test_availability_survives_a_malformed_row(self, db, availability, clinic):
        _legacy_row(db, clinic)

        with pytest.warns(MalformedRecordWarning):
            slots = availability.get_available_slots(clinic.provider_id, clinic.day, "cleaning")

        assert len(slots) == 14
