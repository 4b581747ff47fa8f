# backend/clinicbook/core/enums.py
"""
Core enums for the clinicbook platform.

Values match the strings stored in the database and exchanged with the
patient and staff clients, so they must never be renamed in place.
"""

from enum import Enum


class AppointmentStatus(str, Enum):
    """Appointment lifecycle statuses."""

    PENDING = "pending"  # Booked, awaiting confirmation / deposit
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


# Statuses that occupy a provider's time
ACTIVE_APPOINTMENT_STATUSES = (AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED)

TERMINAL_APPOINTMENT_STATUSES = (
    AppointmentStatus.COMPLETED,
    AppointmentStatus.CANCELLED,
    AppointmentStatus.NO_SHOW,
)


class PaymentStatus(str, Enum):
    """Reservation (deposit) payment axis."""

    PENDING = "pending"
    RESERVATION_PAID = "reservation_paid"
    FULLY_PAID = "fully_paid"
    REFUNDED = "refunded"


class ServicePaymentStatus(str, Enum):
    """Point-of-service payment axis."""

    PENDING = "pending"
    PAID = "paid"
    WAIVED = "waived"


class PaymentAxis(str, Enum):
    RESERVATION = "reservation"
    SERVICE = "service"


class PaymentRecordKind(str, Enum):
    PAYMENT = "payment"
    REFUND = "refund"


class PaymentMethod(str, Enum):
    CASH = "cash"
    CARD = "card"
    UPI = "upi"
    RAZORPAY = "razorpay"
    OTHER = "other"


class WaitlistStatus(str, Enum):
    """Waitlist entry lifecycle."""

    ACTIVE = "active"
    NOTIFIED = "notified"
    BOOKED = "booked"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class ActorRole(str, Enum):
    """Who initiated a transition."""

    PATIENT = "patient"
    STAFF = "staff"
    SYSTEM = "system"
