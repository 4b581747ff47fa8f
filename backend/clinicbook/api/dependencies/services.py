# backend/clinicbook/api/dependencies/services.py
"""
Service layer dependencies for dependency injection.

Each request gets services bound to its own session; the catalog cache is a
process-wide singleton so TTLs and invalidations are shared between requests.
"""

from functools import lru_cache
import logging
from typing import Optional

from fastapi import Depends
from sqlalchemy.orm import Session

from ...core.config import settings
from ...infrastructure.cache import CatalogCache, build_catalog_cache
from ...services.availability import AvailabilityComputer
from ...services.booking_ledger import BookingLedger
from ...services.payment_ledger import PaymentLedger
from ...services.schedule_catalog import ScheduleCatalog
from ...services.waitlist_promoter import WaitlistPromoter
from .database import get_db

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_catalog_cache_singleton() -> Optional[CatalogCache]:
    """Get singleton catalog cache instance."""
    return build_catalog_cache(settings)


def get_catalog_cache() -> Optional[CatalogCache]:
    return get_catalog_cache_singleton()


def get_schedule_catalog(
    db: Session = Depends(get_db),
    cache: Optional[CatalogCache] = Depends(get_catalog_cache),
) -> ScheduleCatalog:
    return ScheduleCatalog(db, cache=cache, config=settings)


def get_availability_computer(
    db: Session = Depends(get_db),
    catalog: ScheduleCatalog = Depends(get_schedule_catalog),
) -> AvailabilityComputer:
    return AvailabilityComputer(db, catalog=catalog, config=settings)


def get_booking_ledger(
    db: Session = Depends(get_db),
    availability: AvailabilityComputer = Depends(get_availability_computer),
) -> BookingLedger:
    """
    Get BookingLedger wired to the request's session.

    The ledger builds its waitlist promoter and event publisher from the same
    session so audit rows commit together with the change they describe.
    """
    return BookingLedger(
        db,
        availability=availability,
        conflict_detector=availability.conflict_detector,
        config=settings,
    )


def get_payment_ledger(
    db: Session = Depends(get_db),
    booking: BookingLedger = Depends(get_booking_ledger),
) -> PaymentLedger:
    return PaymentLedger(db, booking=booking, config=settings)


def get_waitlist_promoter(
    booking: BookingLedger = Depends(get_booking_ledger),
) -> WaitlistPromoter:
    return booking.waitlist
