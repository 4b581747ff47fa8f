# backend/clinicbook/repositories/factory.py
"""
Repository Factory for clinicbook

Provides centralized creation of repository instances,
ensuring consistent initialization and dependency injection.
"""

from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

# Avoid circular imports
if TYPE_CHECKING:
    from .appointment_repository import AppointmentRepository
    from .audit_repository import AuditRepository
    from .catalog_repository import ProviderRepository, ScheduleRuleRepository, ServiceRepository
    from .payment_repository import PaymentRepository
    from .waitlist_repository import WaitlistRepository


class RepositoryFactory:
    """
    Factory class for creating repository instances.

    Centralizes repository creation to ensure consistent initialization
    and makes it easy to swap implementations if needed.
    """

    @staticmethod
    def create_appointment_repository(db: Session) -> "AppointmentRepository":
        """Create repository for appointment and slot claim operations."""
        from .appointment_repository import AppointmentRepository

        return AppointmentRepository(db)

    @staticmethod
    def create_payment_repository(db: Session) -> "PaymentRepository":
        from .payment_repository import PaymentRepository

        return PaymentRepository(db)

    @staticmethod
    def create_waitlist_repository(db: Session) -> "WaitlistRepository":
        from .waitlist_repository import WaitlistRepository

        return WaitlistRepository(db)

    @staticmethod
    def create_provider_repository(db: Session) -> "ProviderRepository":
        from .catalog_repository import ProviderRepository

        return ProviderRepository(db)

    @staticmethod
    def create_service_repository(db: Session) -> "ServiceRepository":
        from .catalog_repository import ServiceRepository

        return ServiceRepository(db)

    @staticmethod
    def create_schedule_rule_repository(db: Session) -> "ScheduleRuleRepository":
        """Create repository for weekly provider schedule rules."""
        from .catalog_repository import ScheduleRuleRepository

        return ScheduleRuleRepository(db)

    @staticmethod
    def create_audit_repository(db: Session) -> "AuditRepository":
        from .audit_repository import AuditRepository

        return AuditRepository(db)
