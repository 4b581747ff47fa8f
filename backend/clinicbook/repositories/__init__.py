# backend/clinicbook/repositories/__init__.py
"""
Repository Pattern Implementation for clinicbook

This package provides the repository layer for data access,
separating business logic from database queries.

Key Components:
- BaseRepository: Lookups, row locks and inserts shared by every repository
- RepositoryFactory: Factory for creating repository instances
- AppointmentRepository: Appointments, slot claims, reschedule history
- PaymentRepository: Append-only payment ledger and revenue aggregation
- WaitlistRepository: Waitlist candidate matching and offers
- ProviderRepository / ServiceRepository / ScheduleRuleRepository: Catalog
- AuditRepository: Audit trail rows

Usage:
    from clinicbook.repositories import RepositoryFactory

    repository = RepositoryFactory.create_appointment_repository(db)
    appointments = repository.get_active_for_provider_date(provider_id, day)
"""

from .appointment_repository import AppointmentRepository
from .audit_repository import AuditRepository
from .base_repository import BaseRepository
from .catalog_repository import ProviderRepository, ScheduleRuleRepository, ServiceRepository
from .factory import RepositoryFactory
from .payment_repository import PaymentRepository
from .waitlist_repository import WaitlistRepository

__all__ = [
    "AppointmentRepository",
    "AuditRepository",
    "BaseRepository",
    "PaymentRepository",
    "ProviderRepository",
    "RepositoryFactory",
    "ScheduleRuleRepository",
    "ServiceRepository",
    "WaitlistRepository",
]
