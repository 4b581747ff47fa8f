# backend/clinicbook/core/state_machine.py
"""
Transition tables for the three appointment state axes.

An appointment carries a status axis plus two payment axes (reservation
deposit and point-of-service payment). Each axis has its own table of legal
moves, and `validate_appointment_state` checks the cross-axis rules. Every
mutation path runs both before flushing, so an illegal combination can never
reach the database.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, FrozenSet, List, Mapping, Optional

from .enums import AppointmentStatus, PaymentStatus, ServicePaymentStatus
from .exceptions import InvalidStatusTransitionError, PaymentStateConflictError

STATUS_TRANSITIONS: Mapping[AppointmentStatus, FrozenSet[AppointmentStatus]] = {
    AppointmentStatus.PENDING: frozenset({AppointmentStatus.CONFIRMED, AppointmentStatus.CANCELLED}),
    AppointmentStatus.CONFIRMED: frozenset(
        {AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED, AppointmentStatus.NO_SHOW}
    ),
    AppointmentStatus.COMPLETED: frozenset(),
    AppointmentStatus.CANCELLED: frozenset(),
    AppointmentStatus.NO_SHOW: frozenset(),
}

# Statuses from which the time of an appointment may still change
RESCHEDULABLE_STATUSES: FrozenSet[AppointmentStatus] = frozenset(
    {AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED}
)

RESERVATION_TRANSITIONS: Mapping[PaymentStatus, FrozenSet[PaymentStatus]] = {
    PaymentStatus.PENDING: frozenset({PaymentStatus.RESERVATION_PAID}),
    PaymentStatus.RESERVATION_PAID: frozenset({PaymentStatus.FULLY_PAID, PaymentStatus.REFUNDED}),
    PaymentStatus.FULLY_PAID: frozenset({PaymentStatus.REFUNDED}),
    PaymentStatus.REFUNDED: frozenset(),
}

SERVICE_PAYMENT_TRANSITIONS: Mapping[ServicePaymentStatus, FrozenSet[ServicePaymentStatus]] = {
    ServicePaymentStatus.PENDING: frozenset({ServicePaymentStatus.PAID, ServicePaymentStatus.WAIVED}),
    ServicePaymentStatus.PAID: frozenset(),
    ServicePaymentStatus.WAIVED: frozenset(),
}

# Statuses in which the clinic may collect the service charge
SERVICE_PAYABLE_STATUSES: FrozenSet[AppointmentStatus] = frozenset(
    {AppointmentStatus.CONFIRMED, AppointmentStatus.COMPLETED}
)


def can_transition_status(current: str, target: str) -> bool:
    return AppointmentStatus(target) in STATUS_TRANSITIONS[AppointmentStatus(current)]


def ensure_status_transition(current: str, target: str, appointment_id: Optional[str] = None) -> None:
    if not can_transition_status(current, target):
        raise InvalidStatusTransitionError(
            AppointmentStatus(current).value, AppointmentStatus(target).value, appointment_id
        )


def ensure_reservation_transition(
    current: str, target: str, appointment_id: Optional[str] = None
) -> None:
    if PaymentStatus(target) not in RESERVATION_TRANSITIONS[PaymentStatus(current)]:
        raise PaymentStateConflictError(
            f"Reservation payment cannot move from {PaymentStatus(current).value} "
            f"to {PaymentStatus(target).value}",
            details={"appointment_id": appointment_id, "axis": "reservation"},
        )


def ensure_service_payment_transition(
    current: str, target: str, appointment_id: Optional[str] = None
) -> None:
    if ServicePaymentStatus(target) not in SERVICE_PAYMENT_TRANSITIONS[ServicePaymentStatus(current)]:
        raise PaymentStateConflictError(
            f"Service payment cannot move from {ServicePaymentStatus(current).value} "
            f"to {ServicePaymentStatus(target).value}",
            details={"appointment_id": appointment_id, "axis": "service"},
        )


def state_violations(
    status: str,
    payment_status: str,
    service_payment_status: str,
    payment_amount: Any = 0,
    service_payment_amount: Any = 0,
    refund_amount: Any = 0,
) -> List[str]:
    """Return the cross-axis rules a combination of states breaks (empty when valid)."""
    violations: List[str] = []
    appointment_status = AppointmentStatus(status)
    reservation = PaymentStatus(payment_status)
    ServicePaymentStatus(service_payment_status)

    if reservation == PaymentStatus.REFUNDED and appointment_status != AppointmentStatus.CANCELLED:
        violations.append("refunded reservation requires a cancelled appointment")
    if reservation == PaymentStatus.FULLY_PAID and appointment_status == AppointmentStatus.PENDING:
        violations.append("fully paid appointment cannot still be pending")

    paid = Decimal(str(payment_amount or 0))
    service_paid = Decimal(str(service_payment_amount or 0))
    refunded = Decimal(str(refund_amount or 0))
    if paid < 0 or service_paid < 0 or refunded < 0:
        violations.append("amounts cannot be negative")
    if refunded > paid:
        violations.append("refund exceeds reservation amount paid")
    if reservation == PaymentStatus.PENDING and paid > 0:
        violations.append("reservation amount recorded without a reservation payment status")
    return violations


def validate_appointment_state(appointment: Any) -> None:
    """Raise PaymentStateConflictError if the appointment's axes are jointly illegal."""
    violations = state_violations(
        appointment.status,
        appointment.payment_status,
        appointment.service_payment_status,
        appointment.payment_amount,
        appointment.service_payment_amount,
        appointment.refund_amount,
    )
    if violations:
        details: Dict[str, Any] = {
            "appointment_id": getattr(appointment, "id", None),
            "status": str(AppointmentStatus(appointment.status).value),
            "payment_status": str(PaymentStatus(appointment.payment_status).value),
            "service_payment_status": str(
                ServicePaymentStatus(appointment.service_payment_status).value
            ),
            "violations": violations,
        }
        raise PaymentStateConflictError("; ".join(violations), details=details)
