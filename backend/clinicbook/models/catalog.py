# backend/clinicbook/models/catalog.py
"""
Catalog models: providers, services and weekly schedule rules.

These rows are edited by staff and are read-only to the scheduling core.
Reads are served through the catalog cache; every write path invalidates it.

Classes:
    Provider: A dentist or hygienist who can be booked
    Service: A bookable treatment with a fixed duration and price
    ProviderScheduleRule: A provider's working and break window for one weekday
"""

import logging

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Time,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..database import Base

logger = logging.getLogger(__name__)


class Provider(Base):
    """A bookable clinician."""

    __tablename__ = "providers"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    name = Column(String(255), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    schedule_rules = relationship(
        "ProviderScheduleRule", back_populates="provider", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Provider {self.id}: {self.name}>"


class Service(Base):
    """Catalog entry for a treatment; duration drives slot length."""

    __tablename__ = "services"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    name = Column(String(255), nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    __table_args__ = (
        CheckConstraint("duration_minutes > 0", name="ck_services_duration_positive"),
        CheckConstraint("price >= 0", name="ck_services_price_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<Service {self.id}: {self.name} ({self.duration_minutes}m)>"


class ProviderScheduleRule(Base):
    """
    Recurring weekly availability for one provider on one weekday.

    day_of_week uses 0 = Sunday .. 6 = Saturday. A break only applies when
    both break_start and break_end are set.
    """

    __tablename__ = "provider_schedule_rules"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    provider_id = Column(
        String(26), ForeignKey("providers.id", ondelete="CASCADE"), nullable=False, index=True
    )
    day_of_week = Column(Integer, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    break_start = Column(Time, nullable=True)
    break_end = Column(Time, nullable=True)
    is_available = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    provider = relationship("Provider", back_populates="schedule_rules")

    __table_args__ = (
        UniqueConstraint("provider_id", "day_of_week", name="uq_schedule_rule_provider_day"),
        CheckConstraint("day_of_week BETWEEN 0 AND 6", name="ck_schedule_rule_day_of_week"),
        CheckConstraint("start_time < end_time", name="ck_schedule_rule_window_order"),
    )

    def __repr__(self) -> str:
        return (
            f"<ProviderScheduleRule provider={self.provider_id} day={self.day_of_week} "
            f"{self.start_time}-{self.end_time} available={self.is_available}>"
        )
