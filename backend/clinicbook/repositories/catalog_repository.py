"""
Catalog repositories: providers, services and provider schedule rules.
"""

import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.catalog import Provider, ProviderScheduleRule, Service
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class ProviderRepository(BaseRepository[Provider]):
    def __init__(self, db: Session):
        super().__init__(db, Provider)


class ServiceRepository(BaseRepository[Service]):
    def __init__(self, db: Session):
        super().__init__(db, Service)


class ScheduleRuleRepository(BaseRepository[ProviderScheduleRule]):
    """Weekly schedule rules, one per (provider, weekday)."""

    def __init__(self, db: Session):
        super().__init__(db, ProviderScheduleRule)

    def get_for_day(self, provider_id: str, day_of_week: int) -> Optional[ProviderScheduleRule]:
        try:
            return (
                self.db.query(ProviderScheduleRule)
                .filter(
                    ProviderScheduleRule.provider_id == provider_id,
                    ProviderScheduleRule.day_of_week == day_of_week,
                )
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error(
                f"Error loading schedule rule for provider {provider_id} day {day_of_week}: {str(e)}"
            )
            raise RepositoryException(f"Failed to load schedule rule: {str(e)}")

    def list_for_provider(self, provider_id: str) -> list[ProviderScheduleRule]:
        try:
            return (
                self.db.query(ProviderScheduleRule)
                .filter(ProviderScheduleRule.provider_id == provider_id)
                .order_by(ProviderScheduleRule.day_of_week)
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing schedule rules for provider {provider_id}: {str(e)}")
            raise RepositoryException(f"Failed to list schedule rules: {str(e)}")
