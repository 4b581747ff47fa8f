# backend/clinicbook/services/conflict_detector.py
"""
Conflict Detector Service for clinicbook

Decides whether a requested interval overlaps any active (pending or
confirmed) appointment of the same provider on the same day:
- Appointment data is always read fresh from the database
- Overlap is the half-open test req_start < apt_end and req_end > apt_start
- Rows missing a start or end time are skipped with a MalformedRecordWarning,
  never raised, so one bad record cannot take availability down

This check is advisory. The write path re-runs it inside its transaction and
is ultimately guarded by the slot claim unique constraint.
"""

import logging
from datetime import date
from typing import Iterable, List, Optional, Union
import warnings

from sqlalchemy.orm import Session

from ..core.exceptions import MalformedRecordWarning
from ..core.timeutils import TimeLike, intervals_overlap, to_minutes
from ..models.appointment import Appointment
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.appointment_repository import AppointmentRepository
from ..repositories.factory import RepositoryFactory
from .base import BaseService

logger = logging.getLogger(__name__)


class ConflictDetector(BaseService):
    """Overlap checks against a provider's active appointments."""

    def __init__(self, db: Session, repository: Optional[AppointmentRepository] = None):
        super().__init__(db)
        self.repository = repository or RepositoryFactory.create_appointment_repository(db)

    def load_active(
        self,
        provider_id: str,
        on_date: date,
        exclude_appointment_id: Optional[str] = None,
    ) -> List[Appointment]:
        return self.repository.get_active_for_provider_date(
            provider_id, on_date, exclude_appointment_id
        )

    def well_formed(self, appointments: Iterable[Appointment]) -> List[Appointment]:
        """Drop rows without a start or end time, reporting each one."""
        usable = []
        for appointment in appointments:
            if appointment.start_time is None or appointment.end_time is None:
                self._report_malformed(appointment)
                continue
            usable.append(appointment)
        return usable

    def overlapping(
        self,
        appointments: Iterable[Appointment],
        start_minutes: int,
        end_minutes: int,
    ) -> List[Appointment]:
        """Appointments from `appointments` overlapping [start, end)."""
        conflicts = []
        for appointment in appointments:
            if appointment.start_time is None or appointment.end_time is None:
                continue
            if intervals_overlap(
                start_minutes,
                end_minutes,
                to_minutes(appointment.start_time),
                to_minutes(appointment.end_time),
            ):
                conflicts.append(appointment)
        return conflicts

    def find_conflicts(
        self,
        provider_id: str,
        on_date: date,
        start: Union[TimeLike, int],
        duration_minutes: int,
        exclude_appointment_id: Optional[str] = None,
    ) -> List[Appointment]:
        start_minutes = start if isinstance(start, int) else to_minutes(start)
        appointments = self.well_formed(
            self.load_active(provider_id, on_date, exclude_appointment_id)
        )
        return self.overlapping(appointments, start_minutes, start_minutes + duration_minutes)

    def is_available(
        self,
        provider_id: str,
        on_date: date,
        start: Union[TimeLike, int],
        duration_minutes: int,
        exclude_appointment_id: Optional[str] = None,
    ) -> bool:
        """True when no active appointment overlaps the requested interval."""
        return not self.find_conflicts(
            provider_id, on_date, start, duration_minutes, exclude_appointment_id
        )

    def _report_malformed(self, appointment: Appointment) -> None:
        message = (
            f"Appointment {appointment.id} has no start or end time; "
            "skipped during conflict detection"
        )
        warnings.warn(message, MalformedRecordWarning, stacklevel=3)
        prometheus_metrics.record_malformed_record("appointment")
        logger.warning(
            message,
            extra={
                "appointment_id": appointment.id,
                "provider_id": appointment.provider_id,
                "appointment_date": str(appointment.appointment_date),
            },
        )
