# backend/clinicbook/api/dependencies/__init__.py
"""
Central export point for all dependencies.

This module re-exports all dependencies from submodules
for convenient access throughout the application.
"""

from .database import get_db
from .services import (
    get_availability_computer,
    get_booking_ledger,
    get_catalog_cache,
    get_payment_ledger,
    get_schedule_catalog,
    get_waitlist_promoter,
)

__all__ = [
    # Database
    "get_db",
    # Services
    "get_availability_computer",
    "get_booking_ledger",
    "get_catalog_cache",
    "get_payment_ledger",
    "get_schedule_catalog",
    "get_waitlist_promoter",
]
