# backend/tests/conftest.py
"""
Shared fixtures for the clinicbook test suite.

Every test gets a fresh in-memory SQLite database (services commit, so the
savepoint-per-test pattern does not fit), a controllable clock and a
recording notification gateway. The `clinic` fixture seeds one provider who
works Mondays 09:00-17:00 with a lunch break 12:00-13:00.
"""

from datetime import date, datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from clinicbook.core.config import Settings
from clinicbook.database import Base
from clinicbook.events.publisher import EventPublisher
from clinicbook.infrastructure.cache.catalog_cache import InMemoryCache

# Import models so Base.metadata is populated for create_all.
import clinicbook.models  # noqa: F401
from clinicbook.services.audit_sink import SqlAuditSink
from clinicbook.services.availability import AvailabilityComputer
from clinicbook.services.booking_ledger import BookingLedger
from clinicbook.services.conflict_detector import ConflictDetector
from clinicbook.services.notification_gateway import RecordingNotificationGateway
from clinicbook.services.payment_ledger import PaymentLedger
from clinicbook.services.schedule_catalog import ScheduleCatalog

# 2030-01-07 is a Monday (day_of_week == 1)
MONDAY = date(2030, 1, 7)
TUESDAY = date(2030, 1, 8)
START_OF_TESTS = datetime(2030, 1, 1, 8, 0, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        future=True,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False, future=True)


@pytest.fixture
def db(session_factory) -> Session:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        environment="test",
        database_url="sqlite+pysqlite:///:memory:",
        catalog_cache_backend="memory",
        catalog_cache_ttl_seconds=300,
        slot_step_minutes=30,
        default_max_reschedules=2,
        pending_hold_minutes=15,
        waitlist_offer_hours=24,
        notification_backend="logging",
        audit_enabled=True,
        is_testing=True,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(START_OF_TESTS)


@pytest.fixture
def cache(clock) -> InMemoryCache:
    return InMemoryCache(clock=clock)


@pytest.fixture
def notifier() -> RecordingNotificationGateway:
    return RecordingNotificationGateway()


@pytest.fixture
def publisher(db, notifier) -> EventPublisher:
    return EventPublisher(audit_sink=SqlAuditSink(db), notifier=notifier)


@pytest.fixture
def catalog(db, cache, test_settings) -> ScheduleCatalog:
    return ScheduleCatalog(db, cache=cache, config=test_settings)


@pytest.fixture
def conflict_detector(db) -> ConflictDetector:
    return ConflictDetector(db)


@pytest.fixture
def availability(db, catalog, conflict_detector, test_settings) -> AvailabilityComputer:
    return AvailabilityComputer(
        db, catalog=catalog, conflict_detector=conflict_detector, config=test_settings
    )


@pytest.fixture
def booking(db, availability, conflict_detector, publisher, test_settings, clock) -> BookingLedger:
    return BookingLedger(
        db,
        availability=availability,
        conflict_detector=conflict_detector,
        publisher=publisher,
        config=test_settings,
        clock=clock,
    )


@pytest.fixture
def waitlist(booking):
    return booking.waitlist


@pytest.fixture
def payments(db, booking, test_settings, clock) -> PaymentLedger:
    return PaymentLedger(db, booking=booking, config=test_settings, clock=clock)


@pytest.fixture
def clinic(catalog) -> SimpleNamespace:
    """One provider, two services and a Monday schedule with a lunch break."""
    catalog.upsert_provider("dr-mehta", "Dr. Anika Mehta")
    catalog.upsert_service("cleaning", "Teeth cleaning", 30, "500.00")
    catalog.upsert_service("root-canal", "Root canal", 60, "2500.00")
    catalog.upsert_schedule_rule(
        "dr-mehta", 1, "09:00", "17:00", break_start="12:00", break_end="13:00"
    )
    return SimpleNamespace(
        provider_id="dr-mehta",
        short_service_id="cleaning",
        long_service_id="root-canal",
        day=MONDAY,
    )


@pytest.fixture
def book(booking, clinic):
    """Book a slot on the seeded Monday; defaults to the 30 minute service."""

    def _book(start_time: str, user_id: str = "patient-1", service_id: str = None):
        return booking.book_appointment(
            clinic.provider_id,
            service_id or clinic.short_service_id,
            user_id,
            clinic.day,
            start_time,
        )

    return _book
