# backend/tests/unit/services/test_payment_ledger.py
"""Reservation and service payment axes, refunds and revenue."""

from decimal import Decimal

import pytest

from clinicbook.core.exceptions import (
    PaymentStateConflictError,
    RefundFromPendingError,
    ValidationException,
)
from clinicbook.models.appointment import AppointmentSlotClaim


class TestReservationPayments:
    def test_deposit_moves_to_reservation_paid_and_clears_hold(self, payments, book):
        appointment = book("10:00")

        paid = payments.record_payment(appointment.id, "reservation", "500", method="upi")

        assert paid.payment_status == "reservation_paid"
        assert paid.payment_amount == Decimal("500.00")
        assert paid.payment_method == "upi"
        assert paid.pending_expires_at is None

    def test_paid_hold_is_not_released(self, booking, payments, book, clock):
        appointment = book("10:00")
        payments.record_payment(appointment.id, "reservation", "500")
        clock.advance(hours=1)

        assert booking.release_expired_pending() == []

    def test_balance_after_confirmation_makes_fully_paid(self, booking, payments, book):
        appointment = book("10:00")
        payments.record_payment(appointment.id, "reservation", "500")
        booking.confirm_appointment(appointment.id)

        paid = payments.record_payment(appointment.id, "reservation", "1000")

        assert paid.payment_status == "fully_paid"
        assert paid.payment_amount == Decimal("1500.00")

    def test_fully_paid_while_pending_is_rejected(self, payments, book):
        appointment = book("10:00")
        payments.record_payment(appointment.id, "reservation", "500")

        with pytest.raises(PaymentStateConflictError):
            payments.record_payment(appointment.id, "reservation", "1000")

        current = payments.booking.get_appointment(appointment.id)
        assert current.payment_status == "reservation_paid"
        assert current.payment_amount == Decimal("500.00")
        assert len(payments.list_payments(appointment.id)) == 1

    def test_deposit_on_cancelled_appointment_is_rejected(self, booking, payments, book):
        appointment = book("10:00")
        booking.cancel_appointment(appointment.id, initiator="patient-1")

        with pytest.raises(PaymentStateConflictError):
            payments.record_payment(appointment.id, "reservation", "500")

    @pytest.mark.parametrize("amount", ["0", "-5", "abc"])
    def test_invalid_amounts(self, payments, book, amount):
        appointment = book("10:00")

        with pytest.raises(ValidationException) as exc_info:
            payments.record_payment(appointment.id, "reservation", amount)
        assert exc_info.value.code == "INVALID_AMOUNT"

    def test_unknown_axis_and_method(self, payments, book):
        appointment = book("10:00")

        with pytest.raises(ValidationException) as exc_info:
            payments.record_payment(appointment.id, "tips", "10")
        assert exc_info.value.code == "INVALID_PAYMENT_AXIS"

        with pytest.raises(ValidationException) as exc_info:
            payments.record_payment(appointment.id, "reservation", "10", method="barter")
        assert exc_info.value.code == "INVALID_PAYMENT_METHOD"

    def test_deposit_defaults_to_configured_fee(self, payments, book):
        appointment = book("10:00")

        paid = payments.record_payment(appointment.id, "reservation")

        assert paid.payment_amount == Decimal("500.00")
        assert payments.list_payments(appointment.id)[0].amount == Decimal("500.00")

    def test_service_payment_needs_an_amount(self, booking, payments, book):
        appointment = book("10:00")
        booking.confirm_appointment(appointment.id)

        with pytest.raises(ValidationException) as exc_info:
            payments.record_payment(appointment.id, "service")

        assert exc_info.value.code == "INVALID_AMOUNT"


class TestServicePayments:
    def test_service_payment_requires_confirmation(self, payments, book):
        appointment = book("10:00")

        with pytest.raises(PaymentStateConflictError):
            payments.record_payment(appointment.id, "service", "1500")

    def test_service_payment_after_confirmation(self, booking, payments, book):
        appointment = book("10:00")
        booking.confirm_appointment(appointment.id)

        paid = payments.record_payment(
            appointment.id, "service", "1500", method="cash", notes="paid at desk"
        )

        assert paid.service_payment_status == "paid"
        assert paid.service_payment_amount == Decimal("1500.00")
        assert paid.service_payment_method == "cash"
        # the reservation axis is independent
        assert paid.payment_status == "pending"

    def test_waived_service_payment_cannot_be_paid(self, booking, payments, book):
        appointment = book("10:00")
        booking.confirm_appointment(appointment.id)

        waived = payments.waive_service_payment(appointment.id, reason="follow-up visit")
        assert waived.service_payment_status == "waived"

        with pytest.raises(PaymentStateConflictError):
            payments.record_payment(appointment.id, "service", "100")

    def test_cancel_after_service_was_paid(self, booking, payments, book, db):
        appointment = book("10:00")
        booking.confirm_appointment(appointment.id)
        payments.record_payment(appointment.id, "service", "500")

        cancelled = booking.cancel_appointment(appointment.id, initiator="staff-1")

        assert cancelled.status == "cancelled"
        assert cancelled.service_payment_status == "paid"
        assert cancelled.service_payment_amount == Decimal("500.00")
        assert db.query(AppointmentSlotClaim).count() == 0

    def test_service_payment_on_cancelled_appointment_is_rejected(self, booking, payments, book):
        appointment = book("10:00")
        booking.confirm_appointment(appointment.id)
        booking.cancel_appointment(appointment.id, initiator="staff-1")

        with pytest.raises(PaymentStateConflictError):
            payments.record_payment(appointment.id, "service", "500")
        assert booking.get_appointment(appointment.id).service_payment_status == "pending"


class TestRefunds:
    def test_refund_from_pending_leaves_appointment_untouched(self, booking, payments, book):
        appointment = book("10:00")
        booking.cancel_appointment(appointment.id, initiator="patient-1")

        with pytest.raises(RefundFromPendingError) as exc_info:
            payments.refund_payment(appointment.id, "500")

        assert exc_info.value.code == "REFUND_FROM_PENDING"
        current = booking.get_appointment(appointment.id)
        assert current.payment_status == "pending"
        assert current.refund_amount == Decimal("0")

    def test_refund_requires_cancellation(self, payments, book):
        appointment = book("10:00")
        payments.record_payment(appointment.id, "reservation", "500")

        with pytest.raises(PaymentStateConflictError):
            payments.refund_payment(appointment.id, "500")

    def test_refund_after_cancellation(self, booking, payments, book, notifier):
        appointment = book("10:00")
        payments.record_payment(appointment.id, "reservation", "500")
        booking.cancel_appointment(appointment.id, initiator="patient-1")

        refunded = payments.refund_payment(appointment.id, "500", reason="cancelled early")

        assert refunded.payment_status == "refunded"
        assert refunded.refund_amount == Decimal("500.00")
        assert refunded.refund_reason == "cancelled early"
        assert refunded.refunded_at is not None
        assert "payment_refunded" in notifier.templates()
        kinds = [record.kind for record in payments.list_payments(appointment.id)]
        assert kinds == ["payment", "refund"]

    def test_force_cancel_refund_frees_the_slot(self, db, payments, book):
        appointment = book("10:00")
        payments.record_payment(appointment.id, "reservation", "500")

        refunded = payments.refund_payment(appointment.id, "250", force_cancel=True)

        assert refunded.status == "cancelled"
        assert refunded.payment_status == "refunded"
        assert refunded.refund_amount == Decimal("250.00")
        assert db.query(AppointmentSlotClaim).count() == 0

    def test_refund_cannot_exceed_payment(self, booking, payments, book):
        appointment = book("10:00")
        payments.record_payment(appointment.id, "reservation", "500")
        booking.cancel_appointment(appointment.id, initiator="patient-1")

        with pytest.raises(ValidationException) as exc_info:
            payments.refund_payment(appointment.id, "600")
        assert exc_info.value.code == "REFUND_EXCEEDS_PAYMENT"

    def test_second_refund_is_rejected(self, booking, payments, book):
        appointment = book("10:00")
        payments.record_payment(appointment.id, "reservation", "500")
        booking.cancel_appointment(appointment.id, initiator="patient-1")
        payments.refund_payment(appointment.id, "500")

        with pytest.raises(PaymentStateConflictError):
            payments.refund_payment(appointment.id, "100")


class TestRevenue:
    def test_net_revenue_for_a_day(self, booking, payments, book, clinic):
        kept = book("09:00", user_id="patient-1")
        payments.record_payment(kept.id, "reservation", "500")
        booking.confirm_appointment(kept.id)
        payments.record_payment(kept.id, "service", "1500")

        dropped = book("10:00", user_id="patient-2")
        payments.record_payment(dropped.id, "reservation", "500")
        payments.refund_payment(dropped.id, "500", force_cancel=True)

        revenue = payments.net_revenue(clinic.day)

        assert revenue["currency"] == "INR"
        assert revenue["reservation"] == Decimal("1000")
        assert revenue["service"] == Decimal("1500")
        assert revenue["refunds"] == Decimal("500")
        assert revenue["net"] == Decimal("2000")

    def test_empty_day(self, payments, clinic):
        revenue = payments.net_revenue(clinic.day)
        assert revenue["net"] == Decimal("0")
