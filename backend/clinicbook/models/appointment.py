# backend/clinicbook/models/appointment.py
"""
Appointment model for the clinicbook platform.

Appointments are self-contained records: provider, date, times and the
service duration are stored on the row, so they persist as commitments
regardless of later schedule or catalog edits. Appointments are never
deleted; cancellation is a status so the audit trail stays intact.

Double-booking is prevented by AppointmentSlotClaim: every active
appointment owns one claim row per grid cell it covers, and the unique
constraint on (provider_id, slot_date, slot_time) makes the insert the
authoritative availability check.
"""

from datetime import datetime
from decimal import Decimal
import logging
from typing import Any, Optional

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Time,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..core.enums import (
    ACTIVE_APPOINTMENT_STATUSES,
    AppointmentStatus,
    PaymentStatus,
    ServicePaymentStatus,
)
from ..core.state_machine import ensure_status_transition
from ..core.timeutils import format_hhmm, to_minutes
from ..database import Base

logger = logging.getLogger(__name__)


class Appointment(Base):
    """A patient's booking of one service with one provider."""

    __tablename__ = "appointments"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))

    provider_id = Column(String(26), ForeignKey("providers.id"), nullable=False)
    service_id = Column(String(26), ForeignKey("services.id"), nullable=False)
    user_id = Column(String(128), nullable=False, index=True)

    appointment_date = Column(Date, nullable=False, index=True)
    # Nullable only for rows imported from the legacy document store
    start_time = Column(Time, nullable=True)
    end_time = Column(Time, nullable=True)
    duration_minutes = Column(Integer, nullable=False)

    status = Column(String(20), nullable=False, default=AppointmentStatus.PENDING.value, index=True)
    confirmation_number = Column(String(16), nullable=False, unique=True)

    # Reservation (deposit) axis
    payment_status = Column(String(30), nullable=False, default=PaymentStatus.PENDING.value)
    payment_amount = Column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    payment_method = Column(String(30), nullable=True)
    refund_amount = Column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    refund_reason = Column(Text, nullable=True)
    refunded_at = Column(DateTime(timezone=True), nullable=True)

    # Point-of-service axis
    service_payment_status = Column(
        String(30), nullable=False, default=ServicePaymentStatus.PENDING.value
    )
    service_payment_amount = Column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    service_payment_method = Column(String(30), nullable=True)
    service_payment_notes = Column(Text, nullable=True)

    # Rescheduling
    reschedule_count = Column(Integer, nullable=False, default=0)
    max_reschedules = Column(Integer, nullable=False, default=2)

    # Unconfirmed, unpaid bookings release their slot after this instant
    pending_expires_at = Column(DateTime(timezone=True), nullable=True, index=True)

    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_by = Column(String(128), nullable=True)
    cancellation_reason = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    provider = relationship("Provider")
    service = relationship("Service")
    slot_claims = relationship(
        "AppointmentSlotClaim", back_populates="appointment", cascade="all, delete-orphan"
    )
    reschedule_history = relationship(
        "AppointmentReschedule",
        back_populates="appointment",
        cascade="all, delete-orphan",
        order_by="AppointmentReschedule.rescheduled_at",
    )
    payment_records = relationship(
        "PaymentRecord",
        back_populates="appointment",
        order_by="PaymentRecord.recorded_at",
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'confirmed', 'completed', 'cancelled', 'no_show')",
            name="ck_appointments_status",
        ),
        CheckConstraint(
            "payment_status IN ('pending', 'reservation_paid', 'fully_paid', 'refunded')",
            name="ck_appointments_payment_status",
        ),
        CheckConstraint(
            "service_payment_status IN ('pending', 'paid', 'waived')",
            name="ck_appointments_service_payment_status",
        ),
        CheckConstraint("duration_minutes > 0", name="ck_appointments_duration_positive"),
        CheckConstraint(
            "reschedule_count >= 0 AND reschedule_count <= max_reschedules",
            name="ck_appointments_reschedule_bound",
        ),
        CheckConstraint("payment_amount >= 0", name="ck_appointments_payment_non_negative"),
        CheckConstraint("refund_amount >= 0", name="ck_appointments_refund_non_negative"),
        Index("ix_appointments_provider_date_status", "provider_id", "appointment_date", "status"),
    )

    def __repr__(self) -> str:
        return (
            f"<Appointment {self.id}: provider={self.provider_id}, user={self.user_id}, "
            f"date={self.appointment_date}, time={self.start_time}-{self.end_time}, "
            f"status={self.status}>"
        )

    @property
    def is_active(self) -> bool:
        return self.status in [s.value for s in ACTIVE_APPOINTMENT_STATUSES]

    @property
    def start_minutes(self) -> Optional[int]:
        return to_minutes(self.start_time) if self.start_time is not None else None

    @property
    def end_minutes(self) -> Optional[int]:
        return to_minutes(self.end_time) if self.end_time is not None else None

    def transition_to(self, target: AppointmentStatus) -> None:
        """Move the status axis, enforcing the transition table."""
        ensure_status_transition(self.status, target, self.id)
        self.status = target.value

    def confirm(self, when: datetime) -> None:
        self.transition_to(AppointmentStatus.CONFIRMED)
        self.confirmed_at = when
        self.pending_expires_at = None
        logger.info(f"Appointment {self.id} confirmed")

    def cancel(self, cancelled_by: str, when: datetime, reason: Optional[str] = None) -> None:
        self.transition_to(AppointmentStatus.CANCELLED)
        self.cancelled_at = when
        self.cancelled_by = cancelled_by
        self.cancellation_reason = reason
        self.pending_expires_at = None
        logger.info(f"Appointment {self.id} cancelled by {cancelled_by}")

    def complete(self, when: datetime) -> None:
        self.transition_to(AppointmentStatus.COMPLETED)
        self.completed_at = when
        logger.info(f"Appointment {self.id} marked as completed")

    def mark_no_show(self) -> None:
        self.transition_to(AppointmentStatus.NO_SHOW)
        logger.info(f"Appointment {self.id} marked as no-show")

    def snapshot(self) -> dict[str, Any]:
        """State captured before/after a transition for the audit trail."""
        return {
            "status": self.status,
            "payment_status": self.payment_status,
            "service_payment_status": self.service_payment_status,
            "appointment_date": self.appointment_date.isoformat() if self.appointment_date else None,
            "start_time": format_hhmm(self.start_time) if self.start_time else None,
            "end_time": format_hhmm(self.end_time) if self.end_time else None,
            "reschedule_count": self.reschedule_count,
            "payment_amount": str(self.payment_amount) if self.payment_amount is not None else None,
            "service_payment_amount": (
                str(self.service_payment_amount) if self.service_payment_amount is not None else None
            ),
            "refund_amount": str(self.refund_amount) if self.refund_amount is not None else None,
        }


class AppointmentSlotClaim(Base):
    """
    One grid cell of a provider's day held by an active appointment.

    Rows exist only while the owning appointment is pending or confirmed.
    """

    __tablename__ = "appointment_slot_claims"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    appointment_id = Column(
        String(26), ForeignKey("appointments.id", ondelete="CASCADE"), nullable=False, index=True
    )
    provider_id = Column(String(26), nullable=False)
    slot_date = Column(Date, nullable=False)
    slot_time = Column(Time, nullable=False)

    appointment = relationship("Appointment", back_populates="slot_claims")

    __table_args__ = (
        UniqueConstraint(
            "provider_id", "slot_date", "slot_time", name="uq_appointment_slot_claims_provider_slot"
        ),
    )

    def __repr__(self) -> str:
        return f"<AppointmentSlotClaim {self.provider_id} {self.slot_date} {self.slot_time}>"


class AppointmentReschedule(Base):
    """History entry written every time an appointment's time changes."""

    __tablename__ = "appointment_reschedules"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    appointment_id = Column(
        String(26), ForeignKey("appointments.id", ondelete="CASCADE"), nullable=False, index=True
    )
    from_date = Column(Date, nullable=False)
    from_start_time = Column(Time, nullable=True)
    from_end_time = Column(Time, nullable=True)
    to_date = Column(Date, nullable=False)
    to_start_time = Column(Time, nullable=False)
    to_end_time = Column(Time, nullable=False)
    reason = Column(Text, nullable=True)
    rescheduled_by = Column(String(128), nullable=True)
    rescheduled_by_role = Column(String(20), nullable=True)
    rescheduled_at = Column(DateTime(timezone=True), nullable=False)

    appointment = relationship("Appointment", back_populates="reschedule_history")

    def __repr__(self) -> str:
        return (
            f"<AppointmentReschedule {self.appointment_id}: {self.from_date} {self.from_start_time}"
            f" -> {self.to_date} {self.to_start_time}>"
        )
