# backend/clinicbook/services/__init__.py
"""
Service layer for clinicbook.

Services own transactions and business rules; repositories own queries;
routes only translate HTTP to service calls.
"""

from .audit_sink import AuditSink, InMemoryAuditSink, NullAuditSink, SqlAuditSink
from .availability import AvailabilityComputer, candidate_starts, validate_duration
from .base import BaseService
from .booking_ledger import BookingLedger, FreedSlot
from .conflict_detector import ConflictDetector
from .notification_gateway import (
    CeleryNotificationGateway,
    LoggingNotificationGateway,
    NotificationGateway,
    RecordingNotificationGateway,
    build_notification_gateway,
)
from .payment_ledger import PaymentLedger
from .schedule_catalog import ProviderView, ScheduleCatalog, ScheduleRuleView, ServiceView
from .waitlist_promoter import WaitlistPromoter

__all__ = [
    "AuditSink",
    "AvailabilityComputer",
    "BaseService",
    "BookingLedger",
    "CeleryNotificationGateway",
    "ConflictDetector",
    "FreedSlot",
    "InMemoryAuditSink",
    "LoggingNotificationGateway",
    "NotificationGateway",
    "NullAuditSink",
    "PaymentLedger",
    "ProviderView",
    "RecordingNotificationGateway",
    "ScheduleCatalog",
    "ScheduleRuleView",
    "ServiceView",
    "SqlAuditSink",
    "WaitlistPromoter",
    "build_notification_gateway",
    "candidate_starts",
    "validate_duration",
]
