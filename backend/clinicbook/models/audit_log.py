# backend/clinicbook/models/audit_log.py
"""
Audit trail rows written by the SQL audit sink.

Every appointment, payment and waitlist transition is recorded here in the
same transaction as the change itself, with before/after state snapshots.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import Column, DateTime, Index, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.types import JSON
import ulid

from ..database import Base

# JSONB on PostgreSQL, plain JSON on SQLite
SnapshotType = JSONB(astext_type=Text()).with_variant(JSON(), "sqlite")


class AuditLog(Base):
    """One recorded domain event."""

    __tablename__ = "audit_log"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    entity_type = Column(String(30), nullable=False)
    entity_id = Column(String(64), nullable=False)
    action = Column(String(40), nullable=False)
    event_type = Column(String(60), nullable=False)
    actor_id = Column(String(128), nullable=True)
    actor_role = Column(String(20), nullable=True)
    occurred_at = Column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )
    before = Column(SnapshotType, nullable=True)
    after = Column(SnapshotType, nullable=True)

    __table_args__ = (
        Index("ix_audit_log_entity", "entity_type", "entity_id"),
        Index("ix_audit_log_occurred_at", "occurred_at"),
    )

    @classmethod
    def from_event(cls, event: Any) -> "AuditLog":
        """Build a row from a domain event (appointment, payment or waitlist)."""
        return cls(
            entity_type=event.entity_type,
            entity_id=event.entity_id,
            action=event.action,
            event_type=type(event).__name__,
            actor_id=event.actor_id,
            actor_role=event.actor_role,
            occurred_at=event.occurred_at,
            before=dict(event.before) if event.before is not None else None,
            after=dict(event.after) if event.after is not None else None,
        )

    def __repr__(self) -> str:
        return f"<AuditLog {self.entity_type}:{self.entity_id} {self.action}>"
