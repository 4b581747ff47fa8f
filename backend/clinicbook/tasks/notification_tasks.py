# backend/clinicbook/tasks/notification_tasks.py
"""
Celery task that delivers patient notifications.

The core enqueues (user_id, template, data) after a change commits. The
transport itself (push, SMS, email) is configured outside this package;
this task renders the message headline and hands it to the log-based
gateway, retrying with backoff on failure.
"""

from __future__ import annotations

from typing import Any, Dict

from celery.app.task import Task  # noqa: F401 - used for type hints
from celery.utils.log import get_task_logger

from ..monitoring.prometheus_metrics import prometheus_metrics
from ..services.notification_gateway import LoggingNotificationGateway
from .celery_app import celery_app

logger = get_task_logger(__name__)

BACKOFF_SECONDS = [30, 120, 600]

HEADLINES: Dict[str, str] = {
    "appointment_booked": "Your appointment is booked",
    "appointment_confirmed": "Your appointment is confirmed",
    "appointment_cancelled": "Your appointment was cancelled",
    "appointment_expired": "Your unconfirmed booking was released",
    "appointment_rescheduled": "Your appointment was rescheduled",
    "payment_refunded": "Your refund is on its way",
    "waitlist_slot_available": "A slot you were waiting for is available",
}


def _next_backoff(attempt_number: int) -> int:
    """Return backoff delay for the given attempt (1-indexed)."""
    index = max(0, min(attempt_number - 1, len(BACKOFF_SECONDS) - 1))
    return BACKOFF_SECONDS[index]


def render_headline(template: str, data: Dict[str, Any]) -> str:
    headline = HEADLINES.get(template, template.replace("_", " ").capitalize())
    if data.get("confirmation_number"):
        headline = f"{headline} ({data['confirmation_number']})"
    return headline


@celery_app.task(
    name="clinicbook.tasks.notification_tasks.deliver_notification",
    bind=True,
    max_retries=len(BACKOFF_SECONDS),
    queue="notifications",
)
def deliver_notification(
    self: "Task[Any, Any]", user_id: str, template: str, data: Dict[str, Any]
) -> str:
    payload = dict(data)
    payload["headline"] = render_headline(template, data)
    try:
        LoggingNotificationGateway().notify(user_id, template, payload)
    except Exception as exc:
        prometheus_metrics.record_notification(template, "retry")
        raise self.retry(exc=exc, countdown=_next_backoff(self.request.retries + 1))
    prometheus_metrics.record_notification(template, "delivered")
    return payload["headline"]
