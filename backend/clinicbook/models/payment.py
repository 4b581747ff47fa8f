"""Append-only payment ledger rows."""

from __future__ import annotations

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Numeric, String, Text
from sqlalchemy.orm import relationship
import ulid

from ..database import Base


class PaymentRecord(Base):
    """
    One money movement against an appointment.

    The appointment row holds the current axis states; these rows hold the
    history that revenue is aggregated from. Refund rows carry a positive
    amount and kind='refund'.
    """

    __tablename__ = "payment_records"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    appointment_id = Column(
        String(26), ForeignKey("appointments.id", ondelete="CASCADE"), nullable=False, index=True
    )
    axis = Column(String(20), nullable=False)
    kind = Column(String(20), nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="INR")
    method = Column(String(30), nullable=True)
    transaction_reference = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)
    recorded_by = Column(String(128), nullable=True)
    recorded_at = Column(DateTime(timezone=True), nullable=False)

    appointment = relationship("Appointment", back_populates="payment_records")

    __table_args__ = (
        CheckConstraint("axis IN ('reservation', 'service')", name="ck_payment_records_axis"),
        CheckConstraint("kind IN ('payment', 'refund')", name="ck_payment_records_kind"),
        CheckConstraint("amount > 0", name="ck_payment_records_amount_positive"),
    )

    def __repr__(self) -> str:
        return f"<PaymentRecord {self.appointment_id} {self.axis}/{self.kind} {self.amount}>"
