# backend/clinicbook/services/notification_gateway.py
"""
Notification gateway: the core's only way to reach a patient.

Transport (push, SMS, email) lives outside this package. The core asks for
a templated notification to be sent to a user and moves on; delivery,
retries and rendering belong to the gateway implementation.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Protocol, Tuple

from ..core.config import Settings

logger = logging.getLogger(__name__)


class NotificationGateway(Protocol):
    def notify(self, user_id: str, template: str, data: Dict[str, Any]) -> None:
        ...


class LoggingNotificationGateway:
    """Development gateway: writes the request to the log."""

    def notify(self, user_id: str, template: str, data: Dict[str, Any]) -> None:
        logger.info(
            f"Notification {template} for user {user_id}",
            extra={"template": template, "user_id": user_id, "payload": data},
        )


class CeleryNotificationGateway:
    """Hands the request to the `deliver_notification` Celery task."""

    def notify(self, user_id: str, template: str, data: Dict[str, Any]) -> None:
        from ..tasks.notification_tasks import deliver_notification

        deliver_notification.apply_async((user_id, template, data), queue="notifications")


class RecordingNotificationGateway:
    """Keeps every request in memory."""

    def __init__(self) -> None:
        self.sent: List[Tuple[str, str, Dict[str, Any]]] = []

    def notify(self, user_id: str, template: str, data: Dict[str, Any]) -> None:
        self.sent.append((user_id, template, data))

    def templates(self) -> List[str]:
        return [template for _, template, _ in self.sent]


def build_notification_gateway(config: Settings) -> NotificationGateway:
    if config.notification_backend == "celery":
        return CeleryNotificationGateway()
    return LoggingNotificationGateway()
