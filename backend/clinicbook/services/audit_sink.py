# backend/clinicbook/services/audit_sink.py
"""
Audit sink: where every state transition is recorded.

The scheduling core only emits events; the storage format belongs to the
sink. SqlAuditSink writes audit_log rows in the caller's session, so the
audit entry commits or rolls back together with the change it describes.
"""

from __future__ import annotations

import logging
from typing import Any, List, Protocol

from sqlalchemy.orm import Session

from ..models.audit_log import AuditLog
from ..repositories.factory import RepositoryFactory

logger = logging.getLogger(__name__)


class AuditSink(Protocol):
    def record(self, event: Any) -> None:
        ...


class SqlAuditSink:
    """Persist events as AuditLog rows."""

    def __init__(self, db: Session):
        self.repository = RepositoryFactory.create_audit_repository(db)

    def record(self, event: Any) -> None:
        self.repository.write(AuditLog.from_event(event))
        logger.debug(f"Audit recorded: {event.entity_type}:{event.entity_id} {event.action}")


class NullAuditSink:
    """Used when auditing is disabled in settings."""

    def record(self, event: Any) -> None:
        return None


class InMemoryAuditSink:
    """Collects events in a list; handy for assertions in tests and scripts."""

    def __init__(self) -> None:
        self.events: List[Any] = []

    def record(self, event: Any) -> None:
        self.events.append(event)
