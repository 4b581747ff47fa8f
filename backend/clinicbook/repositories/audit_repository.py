"""
Repository helpers for audit_log persistence and querying.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..models.audit_log import AuditLog
from ..monitoring.prometheus_metrics import prometheus_metrics


class AuditRepository:
    """Persist and query audit trail entries."""

    def __init__(self, db: Session):
        self.db = db

    def write(self, audit: AuditLog) -> None:
        """Persist a new audit row inside the active transaction."""
        self.db.add(audit)
        self.db.flush()
        prometheus_metrics.record_audit_write(audit.entity_type, audit.action)

    def list(
        self,
        *,
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
        action: Optional[str] = None,
        limit: int = 50,
    ) -> list[AuditLog]:
        """Return audit rows matching supplied filters, oldest first."""
        stmt = select(AuditLog).order_by(AuditLog.occurred_at, AuditLog.id)
        if entity_type:
            stmt = stmt.where(AuditLog.entity_type == entity_type)
        if entity_id:
            stmt = stmt.where(AuditLog.entity_id == entity_id)
        if action:
            stmt = stmt.where(AuditLog.action == action)
        stmt = stmt.limit(max(0, limit))
        return list(self.db.execute(stmt).scalars().all())
