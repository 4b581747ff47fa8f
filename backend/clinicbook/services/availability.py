# backend/clinicbook/services/availability.py
"""
Availability Computer for clinicbook

Turns a provider's weekly schedule rule into the bookable start times for a
date and a service duration:

1. Look up the rule for the weekday; none, or marked unavailable, means no slots
2. Walk the window in grid steps while start + duration still fits
3. Drop starts whose interval touches the break (only when both ends are set)
4. Drop starts that overlap an active appointment

The schedule rule comes from the cached catalog; appointments are always
read fresh.
"""

import logging
from datetime import date
from typing import List, Optional

from sqlalchemy.orm import Session

from ..core.config import Settings, settings as default_settings
from ..core.constants import MINUTES_PER_DAY
from ..core.exceptions import InvalidDurationError, ScheduleNotFoundError
from ..core.timeutils import (
    DateLike,
    TimeLike,
    coerce_date,
    day_of_week,
    format_minutes,
    intervals_overlap,
    to_minutes,
)
from .base import BaseService
from .conflict_detector import ConflictDetector
from .schedule_catalog import ScheduleCatalog, ScheduleRuleView

logger = logging.getLogger(__name__)


def validate_duration(duration_minutes: object) -> int:
    if isinstance(duration_minutes, bool) or not isinstance(duration_minutes, int):
        raise InvalidDurationError(duration_minutes, "Duration must be a whole number of minutes")
    if duration_minutes <= 0:
        raise InvalidDurationError(duration_minutes)
    if duration_minutes > MINUTES_PER_DAY:
        raise InvalidDurationError(duration_minutes, "Duration cannot exceed one day")
    return duration_minutes


def candidate_starts(rule: ScheduleRuleView, duration_minutes: int, step_minutes: int) -> List[int]:
    """Grid starts inside the rule's window that fit the duration and avoid the break."""
    starts = []
    current = rule.start_minutes
    while current + duration_minutes <= rule.end_minutes:
        if not (
            rule.has_break
            and intervals_overlap(
                current,
                current + duration_minutes,
                rule.break_start_minutes,
                rule.break_end_minutes,
            )
        ):
            starts.append(current)
        current += step_minutes
    return starts


class AvailabilityComputer(BaseService):
    """Computes bookable slots for a provider, date and service."""

    def __init__(
        self,
        db: Session,
        catalog: Optional[ScheduleCatalog] = None,
        conflict_detector: Optional[ConflictDetector] = None,
        config: Optional[Settings] = None,
    ):
        super().__init__(db)
        self.config = config or default_settings
        self.catalog = catalog or ScheduleCatalog(db, config=self.config)
        self.conflict_detector = conflict_detector or ConflictDetector(db)
        self.step_minutes = self.config.slot_step_minutes

    def _usable_rule(self, provider_id: str, on_date: date) -> Optional[ScheduleRuleView]:
        rule = self.catalog.get_rule_for_date(provider_id, on_date)
        if rule is None or not rule.is_available:
            return None
        return rule

    def require_schedule(self, provider_id: str, on_date: DateLike) -> ScheduleRuleView:
        """The usable rule for the date, or ScheduleNotFoundError."""
        day = coerce_date(on_date)
        rule = self._usable_rule(provider_id, day)
        if rule is None:
            raise ScheduleNotFoundError(provider_id, day_of_week(day))
        return rule

    @BaseService.measure_operation("compute_candidates")
    def compute_candidates(
        self,
        provider_id: str,
        on_date: DateLike,
        duration_minutes: int,
        exclude_appointment_id: Optional[str] = None,
    ) -> List[str]:
        """Ordered "HH:MM" starts that are free for `duration_minutes`."""
        duration = validate_duration(duration_minutes)
        day = coerce_date(on_date)
        rule = self._usable_rule(provider_id, day)
        if rule is None:
            return []

        starts = candidate_starts(rule, duration, self.step_minutes)
        if not starts:
            return []

        appointments = self.conflict_detector.well_formed(
            self.conflict_detector.load_active(provider_id, day, exclude_appointment_id)
        )
        return [
            format_minutes(start)
            for start in starts
            if not self.conflict_detector.overlapping(appointments, start, start + duration)
        ]

    def get_available_slots(self, provider_id: str, on_date: DateLike, service_id: str) -> List[str]:
        """
        Bookable start times for a service on a date.

        Args:
            provider_id: Provider to book
            on_date: Calendar date (ISO string or date)
            service_id: Catalog service whose duration sizes the slot

        Returns:
            Ordered list of "HH:MM" strings; empty when the provider does not
            work that day or the service is inactive

        Raises:
            NotFoundException: Unknown service
            InvalidDurationError: Service carries an impossible duration
        """
        service = self.catalog.get_service(service_id)
        if not service.is_active:
            return []
        return self.compute_candidates(provider_id, on_date, service.duration_minutes)

    def is_bookable(
        self,
        provider_id: str,
        on_date: DateLike,
        start: TimeLike,
        duration_minutes: int,
        exclude_appointment_id: Optional[str] = None,
    ) -> bool:
        """Single-start version of compute_candidates."""
        duration = validate_duration(duration_minutes)
        day = coerce_date(on_date)
        rule = self._usable_rule(provider_id, day)
        if rule is None:
            return False
        start_minutes = to_minutes(start)
        if start_minutes not in candidate_starts(rule, duration, self.step_minutes):
            return False
        return self.conflict_detector.is_available(
            provider_id, day, start_minutes, duration, exclude_appointment_id
        )
