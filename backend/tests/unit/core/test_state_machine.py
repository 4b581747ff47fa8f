# backend/tests/unit/core/test_state_machine.py
"""Transition tables and cross-axis rules for appointment state."""

from types import SimpleNamespace

import pytest

from clinicbook.core.exceptions import InvalidStatusTransitionError, PaymentStateConflictError
from clinicbook.core.state_machine import (
    can_transition_status,
    ensure_reservation_transition,
    ensure_service_payment_transition,
    ensure_status_transition,
    state_violations,
    validate_appointment_state,
)


class TestStatusAxis:
    @pytest.mark.parametrize(
        "current,target",
        [
            ("pending", "confirmed"),
            ("pending", "cancelled"),
            ("confirmed", "completed"),
            ("confirmed", "cancelled"),
            ("confirmed", "no_show"),
        ],
    )
    def test_allowed_transitions(self, current, target):
        assert can_transition_status(current, target)

    @pytest.mark.parametrize(
        "current,target",
        [
            ("pending", "completed"),
            ("pending", "no_show"),
            ("cancelled", "confirmed"),
            ("completed", "cancelled"),
            ("no_show", "confirmed"),
        ],
    )
    def test_rejected_transitions(self, current, target):
        with pytest.raises(InvalidStatusTransitionError) as exc_info:
            ensure_status_transition(current, target, "apt-1")
        assert exc_info.value.details["current"] == current
        assert exc_info.value.details["target"] == target


class TestPaymentAxes:
    def test_reservation_cannot_refund_from_pending(self):
        with pytest.raises(PaymentStateConflictError):
            ensure_reservation_transition("pending", "refunded")

    def test_reservation_paid_can_be_topped_up_or_refunded(self):
        ensure_reservation_transition("reservation_paid", "fully_paid")
        ensure_reservation_transition("reservation_paid", "refunded")
        ensure_reservation_transition("fully_paid", "refunded")

    def test_service_axis_is_terminal_after_paid_or_waived(self):
        ensure_service_payment_transition("pending", "paid")
        ensure_service_payment_transition("pending", "waived")
        with pytest.raises(PaymentStateConflictError):
            ensure_service_payment_transition("waived", "paid")


class TestCrossAxisRules:
    def test_valid_combination_has_no_violations(self):
        assert state_violations("confirmed", "reservation_paid", "paid", "500", "1500", "0") == []

    def test_refund_requires_cancellation(self):
        violations = state_violations("confirmed", "refunded", "pending", "500", "0", "500")
        assert "refunded reservation requires a cancelled appointment" in violations

    def test_fully_paid_cannot_be_pending(self):
        assert state_violations("pending", "fully_paid", "pending", "1000")

    def test_cancelled_with_service_paid_is_valid(self):
        assert state_violations("cancelled", "pending", "paid", "0", "100") == []

    def test_refund_cannot_exceed_payment(self):
        violations = state_violations("cancelled", "refunded", "pending", "500", "0", "600")
        assert "refund exceeds reservation amount paid" in violations

    def test_cancelled_and_fully_paid_is_a_valid_interim_state(self):
        assert state_violations("cancelled", "fully_paid", "pending", "1000") == []

    def test_validate_appointment_state_raises_with_details(self):
        appointment = SimpleNamespace(
            id="apt-1",
            status="pending",
            payment_status="refunded",
            service_payment_status="pending",
            payment_amount=500,
            service_payment_amount=0,
            refund_amount=500,
        )
        with pytest.raises(PaymentStateConflictError) as exc_info:
            validate_appointment_state(appointment)
        assert exc_info.value.details["appointment_id"] == "apt-1"
        assert exc_info.value.details["violations"]
