# backend/clinicbook/services/waitlist_promoter.py
"""
Waitlist Promoter for clinicbook

When a slot is freed (cancellation, reschedule away, lapsed pending hold)
the earliest matching waitlist entry is offered the slot:

- Match on provider, service, date, and a preferred time that is either the
  freed slot or unset; first come, first served by creation time
- The chosen entry moves active -> notified with an offer expiry
  (waitlist_offer_hours, 24h by default) and the patient is notified
- At most one outstanding offer per slot; the partial unique index on
  waitlist_entries turns a racing second promotion into a no-op
- The slot itself is not held: whoever books first gets it
- Offers past their expiry are expired and the next entry is tried

Staff can also trigger promotion directly ("notify next").
"""

from datetime import date, datetime, time
import logging
from typing import Callable, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.config import Settings, settings as default_settings
from ..core.enums import ActorRole, WaitlistStatus
from ..core.exceptions import (
    BusinessRuleException,
    ConflictException,
    NotFoundException,
    ValidationException,
)
from ..core.timeutils import (
    DateLike,
    TimeLike,
    coerce_date,
    format_hhmm,
    hours_from,
    parse_time,
    utc_now,
)
from ..events.appointment_events import (
    WaitlistEntryBooked,
    WaitlistEntryCancelled,
    WaitlistJoined,
    WaitlistOfferExpired,
    WaitlistOfferSent,
)
from ..events.publisher import EventPublisher, build_event_publisher
from ..models.waitlist import WaitlistEntry
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from .availability import AvailabilityComputer
from .base import BaseService

logger = logging.getLogger(__name__)

_OPEN_STATUSES = (WaitlistStatus.ACTIVE.value, WaitlistStatus.NOTIFIED.value)


class WaitlistPromoter(BaseService):
    """Joins, offers, expiry and bookkeeping for waitlist entries."""

    def __init__(
        self,
        db: Session,
        availability: Optional[AvailabilityComputer] = None,
        publisher: Optional[EventPublisher] = None,
        config: Optional[Settings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        super().__init__(db)
        self.config = config or default_settings
        self.availability = availability or AvailabilityComputer(db, config=self.config)
        self.catalog = self.availability.catalog
        self.publisher = publisher or build_event_publisher(db, self.config)
        self.clock = clock or utc_now
        self.repository = RepositoryFactory.create_waitlist_repository(db)

    def get_entry(self, entry_id: str) -> WaitlistEntry:
        entry = self.repository.get_by_id(entry_id)
        if entry is None:
            raise NotFoundException(
                f"Waitlist entry {entry_id} not found",
                code="WAITLIST_ENTRY_NOT_FOUND",
                details={"entry_id": entry_id},
            )
        return entry

    @BaseService.measure_operation("join_waitlist")
    def join_waitlist(
        self,
        provider_id: str,
        service_id: str,
        user_id: str,
        preferred_date: DateLike,
        preferred_time: Optional[TimeLike] = None,
    ) -> WaitlistEntry:
        if not user_id:
            raise ValidationException("user_id is required", code="INVALID_USER")
        day = coerce_date(preferred_date)
        now = self.clock()
        if day < now.date():
            raise ValidationException(
                "Cannot join the waitlist for a past date",
                code="WAITLIST_DATE_IN_PAST",
                details={"preferred_date": day.isoformat()},
            )
        slot_time = parse_time(preferred_time) if preferred_time is not None else None
        self.catalog.get_provider(provider_id)
        self.catalog.get_service(service_id)

        self.log_operation(
            "join_waitlist", provider_id=provider_id, service_id=service_id, user_id=user_id
        )
        with self.transaction():
            if self.repository.list_open_for_user(provider_id, service_id, user_id, day):
                raise ConflictException(
                    "You are already on the waitlist for this day",
                    code="ALREADY_WAITLISTED",
                    details={"provider_id": provider_id, "preferred_date": day.isoformat()},
                )
            entry = self.repository.create(
                provider_id=provider_id,
                service_id=service_id,
                user_id=user_id,
                preferred_date=day,
                preferred_time=slot_time,
                status=WaitlistStatus.ACTIVE.value,
                created_at=now,
            )
            self.publisher.record(
                WaitlistJoined(
                    entry_id=entry.id,
                    user_id=user_id,
                    occurred_at=now,
                    actor_id=user_id,
                    actor_role=ActorRole.PATIENT.value,
                    after=entry.snapshot(),
                )
            )
        return entry

    @BaseService.measure_operation("cancel_waitlist_entry")
    def cancel_entry(
        self,
        entry_id: str,
        actor_id: Optional[str] = None,
        actor_role: str = ActorRole.PATIENT.value,
    ) -> WaitlistEntry:
        now = self.clock()
        with self.transaction():
            entry = self.get_entry(entry_id)
            if entry.status not in _OPEN_STATUSES:
                raise BusinessRuleException(
                    f"Waitlist entry is already {entry.status}",
                    code="WAITLIST_ENTRY_CLOSED",
                    details={"entry_id": entry_id, "status": entry.status},
                )
            before = entry.snapshot()
            had_offer = entry.status == WaitlistStatus.NOTIFIED.value
            offered_time = entry.offered_time
            entry.status = WaitlistStatus.CANCELLED.value
            self.db.flush()
            self.publisher.record(
                WaitlistEntryCancelled(
                    entry_id=entry.id,
                    user_id=entry.user_id,
                    occurred_at=now,
                    actor_id=actor_id or entry.user_id,
                    actor_role=actor_role,
                    before=before,
                    after=entry.snapshot(),
                )
            )

        if had_offer and offered_time is not None:
            self.promote_waitlist(
                entry.provider_id, entry.service_id, entry.preferred_date, offered_time
            )
        return entry

    @BaseService.measure_operation("promote_waitlist")
    def promote_waitlist(
        self,
        provider_id: str,
        service_id: str,
        slot_date: DateLike,
        slot_time: TimeLike,
        actor_id: Optional[str] = None,
        actor_role: str = ActorRole.SYSTEM.value,
    ) -> Optional[WaitlistEntry]:
        """
        Offer a free slot to the next matching waitlist entry.

        Returns the notified entry, or None when the slot is no longer free,
        an offer for it is already outstanding, or nobody is waiting.
        """
        day = coerce_date(slot_date)
        offered = parse_time(slot_time)

        service = self.catalog.get_service(service_id)
        if not self.availability.is_bookable(provider_id, day, offered, service.duration_minutes):
            prometheus_metrics.record_waitlist_offer("slot_taken")
            logger.info(f"Slot {day} {format_hhmm(offered)} for provider {provider_id} no longer free")
            return None

        if self.repository.get_open_offer(provider_id, service_id, day, offered) is not None:
            prometheus_metrics.record_waitlist_offer("already_offered")
            return None

        candidates = self.repository.find_candidates(provider_id, service_id, day, offered)
        if not candidates:
            prometheus_metrics.record_waitlist_offer("no_candidate")
            return None

        now = self.clock()
        event = None
        try:
            with self.transaction():
                entry = None
                for candidate in candidates:
                    # Cancelled or offered elsewhere since the candidate read
                    locked = self.repository.get_for_update(candidate.id)
                    if locked is not None and locked.status == WaitlistStatus.ACTIVE.value:
                        entry = locked
                        break
                if entry is None:
                    prometheus_metrics.record_waitlist_offer("no_candidate")
                    return None
                before = entry.snapshot()
                entry.status = WaitlistStatus.NOTIFIED.value
                entry.offered_time = offered
                entry.notified_at = now
                entry.offer_expires_at = hours_from(now, self.config.waitlist_offer_hours)
                self.db.flush()
                event = self.publisher.record(
                    WaitlistOfferSent(
                        entry_id=entry.id,
                        user_id=entry.user_id,
                        occurred_at=now,
                        actor_id=actor_id,
                        actor_role=actor_role,
                        before=before,
                        after=entry.snapshot(),
                        provider_id=provider_id,
                        service_id=service_id,
                        offered_date=day,
                        offered_time=format_hhmm(offered),
                        offer_expires_at=entry.offer_expires_at,
                    )
                )
        except IntegrityError:
            # Another promotion for this slot committed first
            prometheus_metrics.record_waitlist_offer("already_offered")
            logger.info(f"Offer for {provider_id} {day} {format_hhmm(offered)} already outstanding")
            return None

        prometheus_metrics.record_waitlist_offer("notified")
        self.publisher.dispatch([event])
        self.log_operation("promote_waitlist", entry_id=entry.id, provider_id=provider_id)
        return entry

    @BaseService.measure_operation("expire_stale_offers")
    def expire_stale_offers(self, now: Optional[datetime] = None) -> List[str]:
        """Expire lapsed offers and pass each freed slot to the next entry in line."""
        now = now or self.clock()
        expired: List[WaitlistEntry] = []
        with self.transaction():
            for entry in self.repository.list_stale_offers(now):
                before = entry.snapshot()
                entry.status = WaitlistStatus.EXPIRED.value
                expired.append(entry)
                self.publisher.record(
                    WaitlistOfferExpired(
                        entry_id=entry.id,
                        user_id=entry.user_id,
                        occurred_at=now,
                        actor_role=ActorRole.SYSTEM.value,
                        before=before,
                        after=entry.snapshot(),
                    )
                )
            self.db.flush()

        for entry in expired:
            prometheus_metrics.record_waitlist_offer("expired")
        slots = {
            (entry.provider_id, entry.service_id, entry.preferred_date, entry.offered_time)
            for entry in expired
            if entry.offered_time is not None
        }
        for provider_id, service_id, day, offered in sorted(slots, key=_slot_sort_key):
            self.promote_waitlist(provider_id, service_id, day, offered)
        return [entry.id for entry in expired]

    def mark_booked(
        self,
        provider_id: str,
        service_id: str,
        user_id: str,
        booked_date: date,
        appointment_id: str,
    ) -> List[WaitlistEntry]:
        """
        Close the patient's open entries satisfied by a new booking.

        Runs inside the caller's transaction; nothing is committed here.
        """
        now = self.clock()
        entries = self.repository.list_open_for_user(provider_id, service_id, user_id, booked_date)
        for entry in entries:
            before = entry.snapshot()
            entry.status = WaitlistStatus.BOOKED.value
            self.publisher.record(
                WaitlistEntryBooked(
                    entry_id=entry.id,
                    user_id=user_id,
                    occurred_at=now,
                    actor_id=user_id,
                    actor_role=ActorRole.PATIENT.value,
                    before=before,
                    after=entry.snapshot(),
                    appointment_id=appointment_id,
                )
            )
        if entries:
            self.db.flush()
        return entries


def _slot_sort_key(slot: tuple) -> tuple:
    provider_id, service_id, day, offered = slot
    return (day, offered or time(0, 0), provider_id, service_id)
