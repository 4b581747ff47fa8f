# backend/clinicbook/tasks/scheduling_tasks.py
"""
Periodic booking-lifecycle sweeps.

Each run opens its own session and delegates to the services, which commit
per appointment / per batch and notify after commit.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, List

from celery.utils.log import get_task_logger
from sqlalchemy.orm import Session

from ..core.config import settings
from ..database import SessionLocal
from ..services.booking_ledger import BookingLedger
from .celery_app import celery_app

logger = get_task_logger(__name__)


@contextmanager
def _session_scope() -> Iterator[Session]:
    """Provide a session for use in tasks; services own the commits."""
    session = SessionLocal()
    try:
        yield session
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


@celery_app.task(name="clinicbook.tasks.scheduling_tasks.release_expired_pending", max_retries=0)
def release_expired_pending() -> List[str]:
    """Cancel pending appointments whose hold lapsed; returns the released ids."""
    with _session_scope() as session:
        released = BookingLedger(session, config=settings).release_expired_pending()
    if released:
        logger.info("Released %s expired pending appointments", len(released))
    return released


@celery_app.task(name="clinicbook.tasks.scheduling_tasks.expire_stale_offers", max_retries=0)
def expire_stale_offers() -> List[str]:
    """Expire lapsed waitlist offers and promote the next entry for each freed slot."""
    with _session_scope() as session:
        expired = BookingLedger(session, config=settings).waitlist.expire_stale_offers()
    if expired:
        logger.info("Expired %s waitlist offers", len(expired))
    return expired
