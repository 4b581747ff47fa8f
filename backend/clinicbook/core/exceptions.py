# backend/clinicbook/core/exceptions.py
"""
Domain-specific exceptions for the clinicbook platform.

Services raise these; the API layer turns them into problem documents with
the status code each class declares.
Business-rule violations are typed so callers can react to them
(re-query availability, show "slot no longer available", ...); only
infrastructure faults surface as generic 500s.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status

HTTP_422_UNPROCESSABLE: int = getattr(status, "HTTP_422_UNPROCESSABLE_CONTENT", 422)


class DomainException(Exception):
    """Root of the clinicbook error hierarchy: message, stable code, details."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message,
                "code": self.code,
                "details": self.details,
            },
        )


class ValidationException(DomainException):
    """Input the service cannot interpret (bad amount, off-grid time, same slot)."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundException(DomainException):
    """Unknown appointment, provider, service, schedule or waitlist entry."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictException(DomainException):
    """The request collides with existing state (a taken slot, a duplicate waitlist entry)."""

    status_code = status.HTTP_409_CONFLICT


class BusinessRuleException(DomainException):
    """The request is well formed but the clinic rules forbid it right now."""

    status_code = HTTP_422_UNPROCESSABLE


class ServiceException(DomainException):
    """Infrastructure or programming fault inside a service; always a 500."""

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "message": self.message or "An error occurred processing your request",
                "code": self.code,
                "details": self.details if self.details else {},
            },
        )


# Scheduling


class SlotUnavailableError(ConflictException):
    """The requested slot is taken; recoverable by re-querying availability."""

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message or "This time slot is no longer available",
            code="SLOT_UNAVAILABLE",
            details=details or {},
        )


class ScheduleNotFoundError(NotFoundException):
    """No usable schedule rule for the provider on that weekday."""

    def __init__(self, provider_id: str, day_of_week: int):
        super().__init__(
            message="Provider is not available on this day",
            code="SCHEDULE_NOT_FOUND",
            details={"provider_id": provider_id, "day_of_week": day_of_week},
        )


class InvalidDurationError(ServiceException):
    """A service duration that cannot be scheduled. Indicates bad catalog data or a caller bug."""

    def __init__(self, duration_minutes: Any, reason: str = "Duration must be a positive number of minutes"):
        super().__init__(
            message=reason,
            code="INVALID_DURATION",
            details={"duration_minutes": duration_minutes},
        )


# Appointment lifecycle


class InvalidStatusTransitionError(BusinessRuleException):
    """Raised when an appointment status change is not in the transition table."""

    def __init__(self, current: str, target: str, appointment_id: Optional[str] = None):
        super().__init__(
            message=f"Appointment cannot move from {current} to {target}",
            code="INVALID_STATUS_TRANSITION",
            details={"appointment_id": appointment_id, "current": current, "target": target},
        )


class RescheduleLimitExceededError(BusinessRuleException):
    """Raised when an appointment has used up its reschedule allowance."""

    def __init__(self, appointment_id: str, reschedule_count: int, max_reschedules: int):
        super().__init__(
            message=(
                f"You have reached the maximum number of reschedules ({max_reschedules}) "
                "for this appointment"
            ),
            code="RESCHEDULE_LIMIT_EXCEEDED",
            details={
                "appointment_id": appointment_id,
                "reschedule_count": reschedule_count,
                "max_reschedules": max_reschedules,
            },
        )


# Payments


class PaymentStateConflictError(BusinessRuleException):
    """Raised when a payment axis transition is illegal for the current state."""

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code="PAYMENT_STATE_CONFLICT", details=details or {})


class RefundFromPendingError(PaymentStateConflictError):
    """Raised when a refund is requested but no reservation payment was taken."""

    def __init__(self, appointment_id: str):
        super().__init__(
            "No payment found to refund",
            details={"appointment_id": appointment_id, "payment_status": "pending"},
        )
        self.code = "REFUND_FROM_PENDING"


class MalformedRecordWarning(UserWarning):
    """
    A stored record is missing data a computation needs.

    Emitted (and logged) instead of raised so one bad row cannot abort a
    batch computation such as availability.
    """


class RepositoryException(Exception):
    """A query or write failed in the repository layer (SQLAlchemy error wrapped)."""
