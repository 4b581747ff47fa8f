# backend/clinicbook/models/waitlist.py
"""
Waitlist entries for patients who want a slot that is currently taken.

An entry is `active` until a freed slot is offered to it (`notified`), after
which it ends as `booked`, `expired` or `cancelled`. The partial unique index
allows at most one outstanding offer per (provider, service, date, time), so
two promotions racing for the same freed slot cannot both notify someone.
"""

import logging

from sqlalchemy import CheckConstraint, Column, Date, DateTime, ForeignKey, Index, String, Time, text
from sqlalchemy.sql import func
import ulid

from ..core.enums import WaitlistStatus
from ..database import Base

logger = logging.getLogger(__name__)


class WaitlistEntry(Base):
    __tablename__ = "waitlist_entries"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    provider_id = Column(String(26), ForeignKey("providers.id"), nullable=False)
    service_id = Column(String(26), ForeignKey("services.id"), nullable=False)
    user_id = Column(String(128), nullable=False, index=True)
    preferred_date = Column(Date, nullable=False)
    preferred_time = Column(Time, nullable=True)
    status = Column(String(20), nullable=False, default=WaitlistStatus.ACTIVE.value)

    offered_time = Column(Time, nullable=True)
    notified_at = Column(DateTime(timezone=True), nullable=True)
    offer_expires_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint(
            "status IN ('active', 'notified', 'booked', 'expired', 'cancelled')",
            name="ck_waitlist_entries_status",
        ),
        Index(
            "ix_waitlist_entries_match",
            "provider_id",
            "service_id",
            "preferred_date",
            "status",
        ),
        Index(
            "uq_waitlist_entries_open_offer",
            "provider_id",
            "service_id",
            "preferred_date",
            "offered_time",
            unique=True,
            sqlite_where=text("status = 'notified'"),
            postgresql_where=text("status = 'notified'"),
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<WaitlistEntry {self.id}: user={self.user_id} provider={self.provider_id} "
            f"date={self.preferred_date} status={self.status}>"
        )

    def snapshot(self) -> dict:
        return {
            "status": self.status,
            "preferred_date": self.preferred_date.isoformat() if self.preferred_date else None,
            "preferred_time": self.preferred_time.strftime("%H:%M") if self.preferred_time else None,
            "offered_time": self.offered_time.strftime("%H:%M") if self.offered_time else None,
            "offer_expires_at": (
                self.offer_expires_at.isoformat() if self.offer_expires_at else None
            ),
        }
