# backend/clinicbook/repositories/appointment_repository.py
"""
Appointment Repository for clinicbook

Implements all data access operations for appointment management:
- Active appointments for a provider/day (conflict detection input)
- Slot claim insertion and release (the double-booking guard)
- Reschedule history
- Expired pending holds

Availability reads here are never cached; they must observe every
committed booking.
"""

from datetime import date, datetime, time
import logging
from typing import Iterable, List, Optional

from sqlalchemy import and_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.enums import ACTIVE_APPOINTMENT_STATUSES, AppointmentStatus
from ..core.exceptions import RepositoryException
from ..models.appointment import Appointment, AppointmentReschedule, AppointmentSlotClaim
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)

SLOT_CLAIM_CONSTRAINT = "uq_appointment_slot_claims_provider_slot"

_ACTIVE_VALUES = [status.value for status in ACTIVE_APPOINTMENT_STATUSES]


class AppointmentRepository(BaseRepository[Appointment]):
    """Repository for appointment data access."""

    def __init__(self, db: Session):
        super().__init__(db, Appointment)

    # Conflict detection

    def get_active_for_provider_date(
        self,
        provider_id: str,
        appointment_date: date,
        exclude_appointment_id: Optional[str] = None,
    ) -> List[Appointment]:
        """Pending and confirmed appointments of one provider on one day."""
        try:
            query = self.db.query(Appointment).filter(
                and_(
                    Appointment.provider_id == provider_id,
                    Appointment.appointment_date == appointment_date,
                    Appointment.status.in_(_ACTIVE_VALUES),
                )
            )
            if exclude_appointment_id:
                query = query.filter(Appointment.id != exclude_appointment_id)
            return query.order_by(Appointment.start_time).all()
        except SQLAlchemyError as e:
            self.logger.error(
                f"Error loading active appointments for provider {provider_id} on {appointment_date}: {str(e)}"
            )
            raise RepositoryException(f"Failed to load appointments: {str(e)}")

    # Lookups

    def confirmation_number_exists(self, confirmation_number: str) -> bool:
        return self.exists(confirmation_number=confirmation_number)

    def list_expired_pending(self, now: datetime, limit: int = 100) -> List[Appointment]:
        """Pending appointments whose hold has lapsed."""
        try:
            return (
                self.db.query(Appointment)
                .filter(
                    Appointment.status == AppointmentStatus.PENDING.value,
                    Appointment.pending_expires_at.isnot(None),
                    Appointment.pending_expires_at <= now,
                )
                .order_by(Appointment.pending_expires_at)
                .limit(limit)
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing expired pending appointments: {str(e)}")
            raise RepositoryException(f"Failed to list expired appointments: {str(e)}")

    # Slot claims

    def add_slot_claims(
        self,
        appointment: Appointment,
        slot_date: date,
        slot_times: Iterable[time],
    ) -> List[AppointmentSlotClaim]:
        """
        Insert one claim per grid cell and flush.

        IntegrityError on SLOT_CLAIM_CONSTRAINT is deliberately not wrapped:
        it means another booking won the cell and callers translate it.
        """
        claims = [
            AppointmentSlotClaim(
                appointment_id=appointment.id,
                provider_id=appointment.provider_id,
                slot_date=slot_date,
                slot_time=slot_time,
            )
            for slot_time in slot_times
        ]
        self.db.add_all(claims)
        self.db.flush()
        return claims

    def release_slot_claims(self, appointment_id: str) -> int:
        try:
            released = (
                self.db.query(AppointmentSlotClaim)
                .filter(AppointmentSlotClaim.appointment_id == appointment_id)
                .delete(synchronize_session="fetch")
            )
            self.db.flush()
            return int(released)
        except SQLAlchemyError as e:
            self.logger.error(f"Error releasing slot claims for {appointment_id}: {str(e)}")
            raise RepositoryException(f"Failed to release slot claims: {str(e)}")

    # Reschedule history

    def add_reschedule_entry(self, **kwargs) -> AppointmentReschedule:
        try:
            entry = AppointmentReschedule(**kwargs)
            self.db.add(entry)
            self.db.flush()
            return entry
        except SQLAlchemyError as e:
            self.logger.error(f"Error writing reschedule history: {str(e)}")
            raise RepositoryException(f"Failed to write reschedule history: {str(e)}")

    def get_reschedule_history(self, appointment_id: str) -> List[AppointmentReschedule]:
        return (
            self.db.query(AppointmentReschedule)
            .filter(AppointmentReschedule.appointment_id == appointment_id)
            .order_by(AppointmentReschedule.rescheduled_at)
            .all()
        )


def is_slot_claim_violation(exc: Exception) -> bool:
    """True when an IntegrityError came from the slot claim unique constraint."""
    orig = getattr(exc, "orig", None)
    diag = getattr(orig, "diag", None)
    constraint_name = getattr(diag, "constraint_name", "") if diag is not None else ""
    if constraint_name:
        return bool(constraint_name == SLOT_CLAIM_CONSTRAINT)
    text = str(orig if orig is not None else exc)
    # SQLite reports the columns rather than the constraint name
    return SLOT_CLAIM_CONSTRAINT in text or "appointment_slot_claims.provider_id" in text
