# backend/clinicbook/services/payment_ledger.py
"""
Payment Ledger for clinicbook

Two independent payment axes live on every appointment:

- Reservation (deposit): pending -> reservation_paid -> fully_paid, and
  refunded from either paid state once the appointment is cancelled
- Service (point of service): pending -> paid | waived

Each money movement appends a PaymentRecord; revenue is aggregated from those
rows, never from the appointment's running totals.
"""

from datetime import datetime
from decimal import Decimal, InvalidOperation
import logging
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from ..core.config import Settings, settings as default_settings
from ..core.enums import (
    ActorRole,
    AppointmentStatus,
    PaymentAxis,
    PaymentMethod,
    PaymentRecordKind,
    PaymentStatus,
    ServicePaymentStatus,
)
from ..core.exceptions import (
    PaymentStateConflictError,
    RefundFromPendingError,
    ValidationException,
)
from ..core.state_machine import (
    SERVICE_PAYABLE_STATUSES,
    ensure_reservation_transition,
    ensure_service_payment_transition,
    validate_appointment_state,
)
from ..core.timeutils import DateLike, coerce_date
from ..events.appointment_events import PaymentRecorded, PaymentRefunded, ServicePaymentWaived
from ..models.appointment import Appointment
from ..models.payment import PaymentRecord
from ..repositories.factory import RepositoryFactory
from .base import BaseService
from .booking_ledger import BookingLedger

logger = logging.getLogger(__name__)

_TWO_PLACES = Decimal("0.01")


def _to_amount(value: Any, field: str = "amount") -> Decimal:
    """Positive money amount rounded to paise/cents."""
    try:
        amount = Decimal(str(value)).quantize(_TWO_PLACES)
    except (InvalidOperation, ValueError) as exc:
        raise ValidationException(
            f"{field} must be a number", code="INVALID_AMOUNT", details={field: str(value)}
        ) from exc
    if amount <= 0:
        raise ValidationException(
            f"{field} must be greater than zero", code="INVALID_AMOUNT", details={field: str(value)}
        )
    return amount


def _to_method(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    try:
        return PaymentMethod(str(value).lower()).value
    except ValueError as exc:
        raise ValidationException(
            f"Unsupported payment method: {value}",
            code="INVALID_PAYMENT_METHOD",
            details={"method": value, "allowed": [m.value for m in PaymentMethod]},
        ) from exc


class PaymentLedger(BaseService):
    """Reservation and service payment bookkeeping."""

    def __init__(
        self,
        db: Session,
        booking: Optional[BookingLedger] = None,
        config: Optional[Settings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        super().__init__(db)
        self.config = config or default_settings
        self.booking = booking or BookingLedger(db, config=self.config, clock=clock)
        self.clock = clock or self.booking.clock
        self.publisher = self.booking.publisher
        self.repository = RepositoryFactory.create_payment_repository(db)

    def _append_record(
        self,
        appointment: Appointment,
        axis: PaymentAxis,
        kind: PaymentRecordKind,
        amount: Decimal,
        when: datetime,
        method: Optional[str] = None,
        reference: Optional[str] = None,
        notes: Optional[str] = None,
        recorded_by: Optional[str] = None,
    ) -> PaymentRecord:
        return self.repository.create(
            appointment_id=appointment.id,
            axis=axis.value,
            kind=kind.value,
            amount=amount,
            currency=self.config.currency,
            method=method,
            transaction_reference=reference,
            notes=notes,
            recorded_by=recorded_by,
            recorded_at=when,
        )

    @BaseService.measure_operation("record_payment")
    def record_payment(
        self,
        appointment_id: str,
        axis: str,
        amount: Any = None,
        method: Optional[str] = None,
        reference: Optional[str] = None,
        notes: Optional[str] = None,
        recorded_by: Optional[str] = None,
        actor_role: str = ActorRole.STAFF.value,
    ) -> Appointment:
        """
        Record a payment on one axis.

        Reservation: the first payment moves pending -> reservation_paid and
        releases the pending hold; a further one (balance paid online) moves
        reservation_paid -> fully_paid. Service: pending -> paid, only for a
        confirmed or completed appointment.

        A reservation payment without an amount is taken at the configured
        reservation fee; service payments must state the amount.

        Raises:
            PaymentStateConflictError: The axis cannot take this payment now
            ValidationException: Bad amount, axis or method
        """
        try:
            payment_axis = PaymentAxis(axis)
        except ValueError as exc:
            raise ValidationException(
                f"Unknown payment axis: {axis}", code="INVALID_PAYMENT_AXIS", details={"axis": axis}
            ) from exc
        if amount is None:
            if payment_axis != PaymentAxis.RESERVATION:
                raise ValidationException(
                    "amount is required for service payments", code="INVALID_AMOUNT"
                )
            amount = self.config.reservation_fee
        value = _to_amount(amount)
        payment_method = _to_method(method)
        now = self.clock()

        with self.transaction():
            appointment = self.booking.lock_appointment(appointment_id)
            before = appointment.snapshot()

            if payment_axis == PaymentAxis.RESERVATION:
                if not appointment.is_active:
                    raise PaymentStateConflictError(
                        f"Cannot take a reservation payment for a {appointment.status} appointment",
                        details={"appointment_id": appointment.id, "status": appointment.status},
                    )
                target = (
                    PaymentStatus.RESERVATION_PAID
                    if appointment.payment_status == PaymentStatus.PENDING.value
                    else PaymentStatus.FULLY_PAID
                )
                ensure_reservation_transition(appointment.payment_status, target, appointment.id)
                appointment.payment_status = target.value
                appointment.payment_amount = Decimal(str(appointment.payment_amount or 0)) + value
                appointment.payment_method = payment_method or appointment.payment_method
                appointment.pending_expires_at = None
            else:
                if AppointmentStatus(appointment.status) not in SERVICE_PAYABLE_STATUSES:
                    raise PaymentStateConflictError(
                        f"Cannot collect the service charge for a {appointment.status} appointment",
                        details={"appointment_id": appointment.id, "status": appointment.status},
                    )
                ensure_service_payment_transition(
                    appointment.service_payment_status, ServicePaymentStatus.PAID, appointment.id
                )
                appointment.service_payment_status = ServicePaymentStatus.PAID.value
                appointment.service_payment_amount = value
                appointment.service_payment_method = payment_method
                appointment.service_payment_notes = notes

            validate_appointment_state(appointment)
            self._append_record(
                appointment,
                payment_axis,
                PaymentRecordKind.PAYMENT,
                value,
                now,
                method=payment_method,
                reference=reference,
                notes=notes,
                recorded_by=recorded_by,
            )
            self.publisher.record(
                PaymentRecorded(
                    appointment_id=appointment.id,
                    user_id=appointment.user_id,
                    occurred_at=now,
                    actor_id=recorded_by,
                    actor_role=actor_role,
                    before=before,
                    after=appointment.snapshot(),
                    axis=payment_axis.value,
                    amount=value,
                    method=payment_method,
                )
            )

        self.log_operation(
            "record_payment",
            appointment_id=appointment.id,
            axis=payment_axis.value,
            amount=str(value),
        )
        return appointment

    @BaseService.measure_operation("waive_service_payment")
    def waive_service_payment(
        self,
        appointment_id: str,
        reason: Optional[str] = None,
        waived_by: Optional[str] = None,
        actor_role: str = ActorRole.STAFF.value,
    ) -> Appointment:
        now = self.clock()
        with self.transaction():
            appointment = self.booking.lock_appointment(appointment_id)
            before = appointment.snapshot()
            ensure_service_payment_transition(
                appointment.service_payment_status, ServicePaymentStatus.WAIVED, appointment.id
            )
            appointment.service_payment_status = ServicePaymentStatus.WAIVED.value
            appointment.service_payment_notes = reason
            validate_appointment_state(appointment)
            self.db.flush()
            self.publisher.record(
                ServicePaymentWaived(
                    appointment_id=appointment.id,
                    user_id=appointment.user_id,
                    occurred_at=now,
                    actor_id=waived_by,
                    actor_role=actor_role,
                    before=before,
                    after=appointment.snapshot(),
                    reason=reason,
                )
            )
        return appointment

    @BaseService.measure_operation("refund_payment")
    def refund_payment(
        self,
        appointment_id: str,
        amount: Any,
        reason: Optional[str] = None,
        force_cancel: bool = False,
        refunded_by: Optional[str] = None,
        actor_role: str = ActorRole.STAFF.value,
    ) -> Appointment:
        """
        Refund the reservation deposit.

        The appointment must already be cancelled, unless `force_cancel` is
        set, in which case it is cancelled in the same transaction.

        Raises:
            RefundFromPendingError: Nothing was paid; the appointment is untouched
            PaymentStateConflictError: Already refunded, or not cancelled
            ValidationException: Amount outside (0, amount paid]
        """
        value = _to_amount(amount)
        now = self.clock()
        events = []
        freed = None

        with self.transaction():
            appointment = self.booking.lock_appointment(appointment_id)
            if appointment.payment_status == PaymentStatus.PENDING.value:
                raise RefundFromPendingError(appointment.id)
            if appointment.payment_status == PaymentStatus.REFUNDED.value:
                raise PaymentStateConflictError(
                    "This appointment has already been refunded",
                    details={"appointment_id": appointment.id},
                )
            paid = Decimal(str(appointment.payment_amount or 0))
            if value > paid:
                raise ValidationException(
                    "Refund amount exceeds payment amount",
                    code="REFUND_EXCEEDS_PAYMENT",
                    details={"amount": str(value), "payment_amount": str(paid)},
                )

            if appointment.status != AppointmentStatus.CANCELLED.value:
                if not force_cancel:
                    raise PaymentStateConflictError(
                        "Cancel the appointment before refunding it",
                        details={"appointment_id": appointment.id, "status": appointment.status},
                    )
                cancelled, freed = self.booking.cancel_within_transaction(
                    appointment,
                    refunded_by or ActorRole.STAFF.value,
                    actor_role,
                    reason,
                    now,
                )
                events.append(cancelled)

            before = appointment.snapshot()
            ensure_reservation_transition(
                appointment.payment_status, PaymentStatus.REFUNDED, appointment.id
            )
            appointment.payment_status = PaymentStatus.REFUNDED.value
            appointment.refund_amount = value
            appointment.refund_reason = reason
            appointment.refunded_at = now
            validate_appointment_state(appointment)
            self._append_record(
                appointment,
                PaymentAxis.RESERVATION,
                PaymentRecordKind.REFUND,
                value,
                now,
                method=appointment.payment_method,
                notes=reason,
                recorded_by=refunded_by,
            )
            events.append(
                self.publisher.record(
                    PaymentRefunded(
                        appointment_id=appointment.id,
                        user_id=appointment.user_id,
                        occurred_at=now,
                        actor_id=refunded_by,
                        actor_role=actor_role,
                        before=before,
                        after=appointment.snapshot(),
                        amount=value,
                        reason=reason,
                    )
                )
            )

        self.publisher.dispatch(events)
        self.booking.promote_freed_slot(freed)
        logger.info(f"Refund of {value} {self.config.currency} processed for {appointment.id}")
        return appointment

    def list_payments(self, appointment_id: str) -> List[PaymentRecord]:
        self.booking.get_appointment(appointment_id)
        return self.repository.list_for_appointment(appointment_id)

    @BaseService.measure_operation("net_revenue")
    def net_revenue(self, on_date: DateLike) -> Dict[str, Any]:
        """Reservation plus service payments minus refunds for appointments on a date."""
        day = coerce_date(on_date)
        totals = self.repository.totals_for_date(day)
        net = totals["reservation"] + totals["service"] - totals["refunds"]
        return {
            "date": day,
            "currency": self.config.currency,
            "reservation": totals["reservation"],
            "service": totals["service"],
            "refunds": totals["refunds"],
            "net": net,
        }

