"""
Payment ledger repository.

Payment records are append-only; revenue is always aggregated from them
rather than from the appointment's current amounts.
"""

from datetime import date
from decimal import Decimal
import logging
from typing import Dict, List

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.enums import PaymentAxis, PaymentRecordKind
from ..core.exceptions import RepositoryException
from ..models.appointment import Appointment
from ..models.payment import PaymentRecord
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class PaymentRepository(BaseRepository[PaymentRecord]):
    def __init__(self, db: Session):
        super().__init__(db, PaymentRecord)

    def list_for_appointment(self, appointment_id: str) -> List[PaymentRecord]:
        try:
            return (
                self.db.query(PaymentRecord)
                .filter(PaymentRecord.appointment_id == appointment_id)
                .order_by(PaymentRecord.recorded_at, PaymentRecord.id)
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing payment records for {appointment_id}: {str(e)}")
            raise RepositoryException(f"Failed to list payment records: {str(e)}")

    def totals_for_date(self, appointment_date: date) -> Dict[str, Decimal]:
        """
        Sum ledger rows for appointments scheduled on a date.

        Returns a mapping with keys reservation, service and refunds.
        """
        totals = {"reservation": Decimal("0"), "service": Decimal("0"), "refunds": Decimal("0")}
        try:
            rows = (
                self.db.query(PaymentRecord.axis, PaymentRecord.kind, func.sum(PaymentRecord.amount))
                .join(Appointment, Appointment.id == PaymentRecord.appointment_id)
                .filter(Appointment.appointment_date == appointment_date)
                .group_by(PaymentRecord.axis, PaymentRecord.kind)
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error aggregating revenue for {appointment_date}: {str(e)}")
            raise RepositoryException(f"Failed to aggregate revenue: {str(e)}")

        for axis, kind, amount in rows:
            value = Decimal(str(amount or 0))
            if kind == PaymentRecordKind.REFUND.value:
                totals["refunds"] += value
            elif axis == PaymentAxis.RESERVATION.value:
                totals["reservation"] += value
            else:
                totals["service"] += value
        return totals
