# backend/clinicbook/services/booking_ledger.py
"""
Booking Ledger for clinicbook

Owns the appointment lifecycle:
- Booking with an advisory availability read and an authoritative,
  constraint-guarded write
- Confirmation, cancellation, completion and no-show transitions
- Bounded rescheduling with history
- Releasing pending holds that were never confirmed or paid

Every mutation runs the status transition table and the cross-axis state
validator before it is flushed, and records an event to the audit sink in
the same transaction. Patient notifications and waitlist promotion happen
only after the commit is durable.
"""

from dataclasses import dataclass
from datetime import date, datetime, time
import logging
import secrets
from typing import Callable, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.config import Settings, settings as default_settings
from ..core.constants import (
    CLAIM_GRANULARITY_MINUTES,
    CONFIRMATION_NUMBER_ALPHABET,
    CONFIRMATION_NUMBER_LENGTH,
)
from ..core.enums import (
    ActorRole,
    AppointmentStatus,
    PaymentStatus,
    ServicePaymentStatus,
)
from ..core.exceptions import (
    BusinessRuleException,
    InvalidStatusTransitionError,
    NotFoundException,
    RescheduleLimitExceededError,
    ServiceException,
    SlotUnavailableError,
    ValidationException,
)
from ..core.state_machine import RESCHEDULABLE_STATUSES, validate_appointment_state
from ..core.timeutils import (
    DateLike,
    TimeLike,
    claim_cells,
    coerce_date,
    format_hhmm,
    from_minutes,
    minutes_from,
    parse_time,
    to_minutes,
    utc_now,
)
from ..events.appointment_events import (
    AppointmentCancelled,
    AppointmentCompleted,
    AppointmentConfirmed,
    AppointmentCreated,
    AppointmentExpired,
    AppointmentNoShow,
    AppointmentRescheduled,
)
from ..events.publisher import EventPublisher, build_event_publisher
from ..models.appointment import Appointment
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.appointment_repository import is_slot_claim_violation
from ..repositories.factory import RepositoryFactory
from .availability import AvailabilityComputer, candidate_starts, validate_duration
from .base import BaseService
from .conflict_detector import ConflictDetector
from .waitlist_promoter import WaitlistPromoter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FreedSlot:
    """A slot given up by an appointment, handed to waitlist promotion after commit."""

    provider_id: str
    service_id: str
    slot_date: date
    slot_time: time


class BookingLedger(BaseService):
    """Appointment lifecycle service."""

    def __init__(
        self,
        db: Session,
        availability: Optional[AvailabilityComputer] = None,
        conflict_detector: Optional[ConflictDetector] = None,
        waitlist: Optional[WaitlistPromoter] = None,
        publisher: Optional[EventPublisher] = None,
        config: Optional[Settings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        super().__init__(db)
        self.config = config or default_settings
        self.clock = clock or utc_now
        self.conflict_detector = conflict_detector or ConflictDetector(db)
        self.availability = availability or AvailabilityComputer(
            db, conflict_detector=self.conflict_detector, config=self.config
        )
        self.catalog = self.availability.catalog
        self.publisher = publisher or build_event_publisher(db, self.config)
        self.waitlist = waitlist or WaitlistPromoter(
            db,
            availability=self.availability,
            publisher=self.publisher,
            config=self.config,
            clock=self.clock,
        )
        self.repository = RepositoryFactory.create_appointment_repository(db)

    # Lookups

    def get_appointment(self, appointment_id: str) -> Appointment:
        appointment = self.repository.get_by_id(appointment_id)
        if appointment is None:
            raise NotFoundException(
                f"Appointment {appointment_id} not found",
                code="APPOINTMENT_NOT_FOUND",
                details={"appointment_id": appointment_id},
            )
        return appointment

    def lock_appointment(self, appointment_id: str) -> Appointment:
        appointment = self.repository.get_for_update(appointment_id)
        if appointment is None:
            raise NotFoundException(
                f"Appointment {appointment_id} not found",
                code="APPOINTMENT_NOT_FOUND",
                details={"appointment_id": appointment_id},
            )
        return appointment

    # Booking

    @BaseService.measure_operation("book_appointment")
    def book_appointment(
        self,
        provider_id: str,
        service_id: str,
        user_id: str,
        appointment_date: DateLike,
        start_time: TimeLike,
        actor_role: str = ActorRole.PATIENT.value,
    ) -> Appointment:
        """
        Book a slot for a patient.

        The availability read is advisory. Inside the transaction the overlap
        check is repeated and one slot claim per covered cell is inserted; the
        unique constraint on claims decides the winner when two bookings race.

        Raises:
            SlotUnavailableError: The slot is not bookable or was just taken
            ScheduleNotFoundError: The provider does not work that day
            NotFoundException: Unknown provider or service
            BusinessRuleException: Inactive provider or service
        """
        if not user_id:
            raise ValidationException("user_id is required", code="INVALID_USER")
        day = coerce_date(appointment_date)
        start = parse_time(start_time)

        service = self.catalog.get_service(service_id)
        provider = self.catalog.get_provider(provider_id)
        if not service.is_active:
            raise BusinessRuleException(
                "This service is not currently offered",
                code="SERVICE_INACTIVE",
                details={"service_id": service_id},
            )
        if not provider.is_active:
            raise BusinessRuleException(
                "This provider is not currently taking appointments",
                code="PROVIDER_INACTIVE",
                details={"provider_id": provider_id},
            )

        duration = validate_duration(service.duration_minutes)
        start_minutes, end_minutes = self._slot_bounds(provider_id, day, start, duration)

        self.log_operation(
            "book_appointment",
            provider_id=provider_id,
            service_id=service_id,
            user_id=user_id,
            appointment_date=day.isoformat(),
            start_time=format_hhmm(start),
        )

        if not self.conflict_detector.is_available(provider_id, day, start_minutes, duration):
            prometheus_metrics.record_slot_conflict("advisory")
            raise SlotUnavailableError(details=self._slot_details(provider_id, day, start))

        now = self.clock()
        events = []
        try:
            with self.transaction():
                if not self.conflict_detector.is_available(
                    provider_id, day, start_minutes, duration
                ):
                    prometheus_metrics.record_slot_conflict("write")
                    raise SlotUnavailableError(details=self._slot_details(provider_id, day, start))

                appointment = self.repository.create(
                    provider_id=provider_id,
                    service_id=service_id,
                    user_id=user_id,
                    appointment_date=day,
                    start_time=from_minutes(start_minutes),
                    end_time=from_minutes(end_minutes),
                    duration_minutes=duration,
                    status=AppointmentStatus.PENDING.value,
                    payment_status=PaymentStatus.PENDING.value,
                    service_payment_status=ServicePaymentStatus.PENDING.value,
                    confirmation_number=self._new_confirmation_number(),
                    max_reschedules=self.config.default_max_reschedules,
                    pending_expires_at=minutes_from(now, self.config.pending_hold_minutes),
                    created_at=now,
                )
                self.repository.add_slot_claims(
                    appointment,
                    day,
                    claim_cells(start_minutes, end_minutes, CLAIM_GRANULARITY_MINUTES),
                )
                validate_appointment_state(appointment)
                self.waitlist.mark_booked(provider_id, service_id, user_id, day, appointment.id)
                events.append(
                    self.publisher.record(
                        AppointmentCreated(
                            appointment_id=appointment.id,
                            user_id=user_id,
                            occurred_at=now,
                            actor_id=user_id,
                            actor_role=actor_role,
                            after=appointment.snapshot(),
                            provider_id=provider_id,
                            appointment_date=day,
                            start_time=format_hhmm(start),
                            confirmation_number=appointment.confirmation_number,
                        )
                    )
                )
        except IntegrityError as exc:
            raise self._translate_integrity_error(exc, provider_id, day, start) from exc

        self.publisher.dispatch(events)
        logger.info(
            f"Appointment {appointment.id} booked for provider {provider_id} "
            f"on {day} at {format_hhmm(start)}"
        )
        return appointment

    # Status transitions

    @BaseService.measure_operation("confirm_appointment")
    def confirm_appointment(
        self,
        appointment_id: str,
        actor_id: Optional[str] = None,
        actor_role: str = ActorRole.STAFF.value,
    ) -> Appointment:
        now = self.clock()
        with self.transaction():
            appointment = self.lock_appointment(appointment_id)
            before = appointment.snapshot()
            appointment.confirm(now)
            validate_appointment_state(appointment)
            self.db.flush()
            event = self.publisher.record(
                AppointmentConfirmed(
                    appointment_id=appointment.id,
                    user_id=appointment.user_id,
                    occurred_at=now,
                    actor_id=actor_id,
                    actor_role=actor_role,
                    before=before,
                    after=appointment.snapshot(),
                )
            )
        self.publisher.dispatch([event])
        return appointment

    @BaseService.measure_operation("cancel_appointment")
    def cancel_appointment(
        self,
        appointment_id: str,
        initiator: str,
        reason: Optional[str] = None,
        initiator_role: str = ActorRole.PATIENT.value,
    ) -> Appointment:
        """
        Cancel a pending or confirmed appointment and release its slot.

        Does not refund; a paid deposit stays paid until the payment ledger
        refunds it. The freed slot is offered to the waitlist after commit.
        """
        if not initiator:
            raise ValidationException("initiator is required", code="INVALID_INITIATOR")
        now = self.clock()
        with self.transaction():
            appointment = self.lock_appointment(appointment_id)
            event, freed = self.cancel_within_transaction(
                appointment, initiator, initiator_role, reason, now
            )
        self.publisher.dispatch([event])
        self.promote_freed_slot(freed)
        return appointment

    def cancel_within_transaction(
        self,
        appointment: Appointment,
        initiator: str,
        initiator_role: str,
        reason: Optional[str],
        now: datetime,
        expired: bool = False,
    ) -> Tuple[AppointmentCancelled, Optional[FreedSlot]]:
        """
        Cancel inside a transaction the caller owns.

        Shared with the payment ledger's refund-with-cancel path and the
        pending expiry sweep. Returns the recorded event and the freed slot.
        """
        before = appointment.snapshot()
        appointment.cancel(initiator, now, reason)
        validate_appointment_state(appointment)
        self.repository.release_slot_claims(appointment.id)
        self.db.flush()

        event_type = AppointmentExpired if expired else AppointmentCancelled
        event = self.publisher.record(
            event_type(
                appointment_id=appointment.id,
                user_id=appointment.user_id,
                occurred_at=now,
                actor_id=initiator,
                actor_role=initiator_role,
                before=before,
                after=appointment.snapshot(),
                reason=reason,
                provider_id=appointment.provider_id,
                service_id=appointment.service_id,
                appointment_date=appointment.appointment_date,
                start_time=format_hhmm(appointment.start_time) if appointment.start_time else None,
            )
        )
        return event, self._freed_slot(appointment)

    @BaseService.measure_operation("mark_completed")
    def mark_completed(
        self,
        appointment_id: str,
        actor_id: Optional[str] = None,
        actor_role: str = ActorRole.STAFF.value,
    ) -> Appointment:
        now = self.clock()
        with self.transaction():
            appointment = self.lock_appointment(appointment_id)
            before = appointment.snapshot()
            appointment.complete(now)
            validate_appointment_state(appointment)
            self.repository.release_slot_claims(appointment.id)
            self.db.flush()
            event = self.publisher.record(
                AppointmentCompleted(
                    appointment_id=appointment.id,
                    user_id=appointment.user_id,
                    occurred_at=now,
                    actor_id=actor_id,
                    actor_role=actor_role,
                    before=before,
                    after=appointment.snapshot(),
                )
            )
        self.publisher.dispatch([event])
        return appointment

    @BaseService.measure_operation("mark_no_show")
    def mark_no_show(
        self,
        appointment_id: str,
        actor_id: Optional[str] = None,
        actor_role: str = ActorRole.STAFF.value,
    ) -> Appointment:
        now = self.clock()
        with self.transaction():
            appointment = self.lock_appointment(appointment_id)
            before = appointment.snapshot()
            appointment.mark_no_show()
            validate_appointment_state(appointment)
            self.repository.release_slot_claims(appointment.id)
            self.db.flush()
            event = self.publisher.record(
                AppointmentNoShow(
                    appointment_id=appointment.id,
                    user_id=appointment.user_id,
                    occurred_at=now,
                    actor_id=actor_id,
                    actor_role=actor_role,
                    before=before,
                    after=appointment.snapshot(),
                )
            )
        self.publisher.dispatch([event])
        return appointment

    # Rescheduling

    @BaseService.measure_operation("reschedule_appointment")
    def reschedule_appointment(
        self,
        appointment_id: str,
        new_date: DateLike,
        new_start_time: TimeLike,
        reason: Optional[str] = None,
        rescheduled_by: Optional[str] = None,
        rescheduled_by_role: str = ActorRole.PATIENT.value,
    ) -> Appointment:
        """
        Move an appointment to another slot, keeping its status.

        Raises:
            RescheduleLimitExceededError: The allowance is used up; nothing changes
            InvalidStatusTransitionError: The appointment is no longer active
            SlotUnavailableError: The new slot is not free
        """
        day = coerce_date(new_date)
        start = parse_time(new_start_time)
        now = self.clock()

        try:
            with self.transaction():
                appointment = self.lock_appointment(appointment_id)
                if AppointmentStatus(appointment.status) not in RESCHEDULABLE_STATUSES:
                    raise InvalidStatusTransitionError(
                        appointment.status, "rescheduled", appointment.id
                    )
                if appointment.reschedule_count >= appointment.max_reschedules:
                    raise RescheduleLimitExceededError(
                        appointment.id, appointment.reschedule_count, appointment.max_reschedules
                    )
                if day == appointment.appointment_date and start == appointment.start_time:
                    raise ValidationException(
                        "The appointment is already at this time",
                        code="SAME_SLOT",
                        details={"appointment_id": appointment.id},
                    )

                duration = validate_duration(appointment.duration_minutes)
                start_minutes, end_minutes = self._slot_bounds(
                    appointment.provider_id, day, start, duration
                )
                if not self.conflict_detector.is_available(
                    appointment.provider_id,
                    day,
                    start_minutes,
                    duration,
                    exclude_appointment_id=appointment.id,
                ):
                    prometheus_metrics.record_slot_conflict("write")
                    raise SlotUnavailableError(
                        details=self._slot_details(appointment.provider_id, day, start)
                    )

                before = appointment.snapshot()
                freed = self._freed_slot(appointment)
                from_date, from_start, from_end = (
                    appointment.appointment_date,
                    appointment.start_time,
                    appointment.end_time,
                )

                self.repository.release_slot_claims(appointment.id)
                appointment.appointment_date = day
                appointment.start_time = from_minutes(start_minutes)
                appointment.end_time = from_minutes(end_minutes)
                appointment.reschedule_count += 1
                self.repository.add_slot_claims(
                    appointment,
                    day,
                    claim_cells(start_minutes, end_minutes, CLAIM_GRANULARITY_MINUTES),
                )
                self.repository.add_reschedule_entry(
                    appointment_id=appointment.id,
                    from_date=from_date,
                    from_start_time=from_start,
                    from_end_time=from_end,
                    to_date=day,
                    to_start_time=appointment.start_time,
                    to_end_time=appointment.end_time,
                    reason=reason,
                    rescheduled_by=rescheduled_by,
                    rescheduled_by_role=rescheduled_by_role,
                    rescheduled_at=now,
                )
                validate_appointment_state(appointment)
                self.db.flush()
                event = self.publisher.record(
                    AppointmentRescheduled(
                        appointment_id=appointment.id,
                        user_id=appointment.user_id,
                        occurred_at=now,
                        actor_id=rescheduled_by,
                        actor_role=rescheduled_by_role,
                        before=before,
                        after=appointment.snapshot(),
                        from_date=from_date,
                        from_start_time=format_hhmm(from_start) if from_start else None,
                        to_date=day,
                        to_start_time=format_hhmm(start),
                        reason=reason,
                    )
                )
        except IntegrityError as exc:
            raise self._translate_integrity_error(exc, appointment.provider_id, day, start) from exc

        self.publisher.dispatch([event])
        self.promote_freed_slot(freed)
        return appointment

    # Pending expiry

    @BaseService.measure_operation("release_expired_pending")
    def release_expired_pending(self, now: Optional[datetime] = None, limit: int = 100) -> List[str]:
        """
        Cancel pending appointments whose hold lapsed without confirmation or payment.

        Each appointment is released in its own transaction so one failure
        does not keep the others holding their slots.
        """
        now = now or self.clock()
        released: List[str] = []
        for candidate in self.repository.list_expired_pending(now, limit=limit):
            with self.transaction():
                appointment = self.lock_appointment(candidate.id)
                # Confirmed or paid since the sweep query ran
                if (
                    appointment.status != AppointmentStatus.PENDING.value
                    or appointment.pending_expires_at is None
                ):
                    continue
                event, freed = self.cancel_within_transaction(
                    appointment,
                    ActorRole.SYSTEM.value,
                    ActorRole.SYSTEM.value,
                    "expired",
                    now,
                    expired=True,
                )
            released.append(appointment.id)
            self.publisher.dispatch([event])
            self.promote_freed_slot(freed)

        if released:
            logger.info(f"Released {len(released)} expired pending appointments")
        return released

    # Waitlist hand-off

    def promote_freed_slot(self, freed: Optional[FreedSlot]) -> None:
        """Offer a freed slot to the waitlist; the triggering change is already committed."""
        if freed is None:
            return
        try:
            self.waitlist.promote_waitlist(
                freed.provider_id, freed.service_id, freed.slot_date, freed.slot_time
            )
        except Exception:
            # Staff can still notify the next patient manually
            logger.exception(
                f"Waitlist promotion failed for provider {freed.provider_id} "
                f"on {freed.slot_date} at {format_hhmm(freed.slot_time)}"
            )

    # Helpers

    def _slot_bounds(self, provider_id: str, day: date, start: time, duration: int) -> Tuple[int, int]:
        """Start/end minutes for a slot, or SlotUnavailableError if it is not on the grid."""
        rule = self.availability.require_schedule(provider_id, day)
        start_minutes = to_minutes(start)
        if start_minutes not in candidate_starts(rule, duration, self.availability.step_minutes):
            raise SlotUnavailableError(
                "This time is outside the provider's bookable slots",
                details=self._slot_details(provider_id, day, start),
            )
        return start_minutes, start_minutes + duration

    def _new_confirmation_number(self) -> str:
        for _ in range(5):
            candidate = "".join(
                secrets.choice(CONFIRMATION_NUMBER_ALPHABET)
                for _ in range(CONFIRMATION_NUMBER_LENGTH)
            )
            if not self.repository.confirmation_number_exists(candidate):
                return candidate
        raise ServiceException("Could not allocate a unique confirmation number")

    @staticmethod
    def _freed_slot(appointment: Appointment) -> Optional[FreedSlot]:
        if appointment.start_time is None:
            return None
        return FreedSlot(
            provider_id=appointment.provider_id,
            service_id=appointment.service_id,
            slot_date=appointment.appointment_date,
            slot_time=appointment.start_time,
        )

    @staticmethod
    def _slot_details(provider_id: str, day: date, start: time) -> dict:
        return {
            "provider_id": provider_id,
            "appointment_date": day.isoformat(),
            "start_time": format_hhmm(start),
        }

    def _translate_integrity_error(
        self, exc: IntegrityError, provider_id: str, day: date, start: time
    ) -> Exception:
        if is_slot_claim_violation(exc):
            prometheus_metrics.record_slot_conflict("write")
            logger.info(
                f"Slot claim conflict for provider {provider_id} on {day} at {format_hhmm(start)}"
            )
            return SlotUnavailableError(details=self._slot_details(provider_id, day, start))
        logger.error(f"Integrity error writing appointment: {exc}")
        return ServiceException(f"Database constraint violated: {exc.orig}")
