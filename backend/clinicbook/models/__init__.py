"""
Database models for the clinicbook platform.

Importing this package registers every table on `Base.metadata`:
- Catalog: providers, services, weekly schedule rules
- Appointments, their slot claims and reschedule history
- Payment ledger records
- Waitlist entries
- Audit trail
"""

from .appointment import Appointment, AppointmentReschedule, AppointmentSlotClaim
from .audit_log import AuditLog
from .catalog import Provider, ProviderScheduleRule, Service
from .payment import PaymentRecord
from .waitlist import WaitlistEntry

__all__ = [
    "Appointment",
    "AppointmentReschedule",
    "AppointmentSlotClaim",
    "AuditLog",
    "PaymentRecord",
    "Provider",
    "ProviderScheduleRule",
    "Service",
    "WaitlistEntry",
]
