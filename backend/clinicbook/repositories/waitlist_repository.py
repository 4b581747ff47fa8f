"""
Waitlist repository: candidate matching and offer bookkeeping.
"""

from datetime import date, datetime, time
import logging
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.constants import WAITLIST_CANDIDATE_LIMIT
from ..core.enums import WaitlistStatus
from ..core.exceptions import RepositoryException
from ..models.waitlist import WaitlistEntry
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)

OPEN_OFFER_INDEX = "uq_waitlist_entries_open_offer"


class WaitlistRepository(BaseRepository[WaitlistEntry]):
    def __init__(self, db: Session):
        super().__init__(db, WaitlistEntry)

    def find_candidates(
        self,
        provider_id: str,
        service_id: str,
        preferred_date: date,
        slot_time: time,
        limit: int = WAITLIST_CANDIDATE_LIMIT,
    ) -> List[WaitlistEntry]:
        """Active entries for this slot, oldest first (FIFO)."""
        try:
            return (
                self.db.query(WaitlistEntry)
                .filter(
                    WaitlistEntry.provider_id == provider_id,
                    WaitlistEntry.service_id == service_id,
                    WaitlistEntry.preferred_date == preferred_date,
                    WaitlistEntry.status == WaitlistStatus.ACTIVE.value,
                    or_(
                        WaitlistEntry.preferred_time.is_(None),
                        WaitlistEntry.preferred_time == slot_time,
                    ),
                )
                .order_by(WaitlistEntry.created_at, WaitlistEntry.id)
                .limit(limit)
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error finding waitlist candidates: {str(e)}")
            raise RepositoryException(f"Failed to find waitlist candidates: {str(e)}")

    def get_open_offer(
        self, provider_id: str, service_id: str, preferred_date: date, slot_time: time
    ) -> Optional[WaitlistEntry]:
        return self.find_one_by(
            provider_id=provider_id,
            service_id=service_id,
            preferred_date=preferred_date,
            offered_time=slot_time,
            status=WaitlistStatus.NOTIFIED.value,
        )

    def list_stale_offers(self, now: datetime, limit: int = 100) -> List[WaitlistEntry]:
        try:
            return (
                self.db.query(WaitlistEntry)
                .filter(
                    WaitlistEntry.status == WaitlistStatus.NOTIFIED.value,
                    WaitlistEntry.offer_expires_at.isnot(None),
                    WaitlistEntry.offer_expires_at <= now,
                )
                .order_by(WaitlistEntry.offer_expires_at)
                .limit(limit)
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing stale waitlist offers: {str(e)}")
            raise RepositoryException(f"Failed to list stale offers: {str(e)}")

    def list_open_for_user(
        self, provider_id: str, service_id: str, user_id: str, preferred_date: date
    ) -> List[WaitlistEntry]:
        """Entries a new booking by this patient satisfies."""
        try:
            return (
                self.db.query(WaitlistEntry)
                .filter(
                    WaitlistEntry.provider_id == provider_id,
                    WaitlistEntry.service_id == service_id,
                    WaitlistEntry.user_id == user_id,
                    WaitlistEntry.preferred_date == preferred_date,
                    WaitlistEntry.status.in_(
                        [WaitlistStatus.ACTIVE.value, WaitlistStatus.NOTIFIED.value]
                    ),
                )
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing waitlist entries for user {user_id}: {str(e)}")
            raise RepositoryException(f"Failed to list waitlist entries: {str(e)}")
