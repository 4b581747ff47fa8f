# backend/clinicbook/services/schedule_catalog.py
"""
Schedule catalog: read-mostly view over providers, services and weekly rules.

Reads go through an injectable CatalogCache with an explicit TTL. Each staff
write invalidates the affected keys synchronously once its transaction has
committed, so the next read after a write returns the new value. A failing
cache never fails a read; the catalog falls back to the database and logs.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date
from decimal import Decimal, InvalidOperation
import logging
from typing import Any, Callable, Dict, Optional, TypeVar

from sqlalchemy.orm import Session

from ..core.config import Settings, settings as default_settings
from ..core.constants import CLAIM_GRANULARITY_MINUTES
from ..core.exceptions import NotFoundException, ValidationException
from ..core.timeutils import TimeLike, day_of_week, format_minutes, from_minutes, to_minutes
from ..infrastructure.cache.catalog_cache import CatalogCache
from ..models.catalog import Provider, ProviderScheduleRule, Service
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from .base import BaseService

logger = logging.getLogger(__name__)

V = TypeVar("V")


@dataclass(frozen=True)
class ScheduleRuleView:
    """A provider's window for one weekday, in minutes since midnight."""

    provider_id: str
    day_of_week: int
    start_minutes: int
    end_minutes: int
    break_start_minutes: Optional[int] = None
    break_end_minutes: Optional[int] = None
    is_available: bool = True

    @property
    def has_break(self) -> bool:
        return self.break_start_minutes is not None and self.break_end_minutes is not None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def to_public(self) -> Dict[str, Any]:
        return {
            "provider_id": self.provider_id,
            "day_of_week": self.day_of_week,
            "start_time": format_minutes(self.start_minutes),
            "end_time": format_minutes(self.end_minutes),
            "break_start": (
                format_minutes(self.break_start_minutes)
                if self.break_start_minutes is not None
                else None
            ),
            "break_end": (
                format_minutes(self.break_end_minutes) if self.break_end_minutes is not None else None
            ),
            "is_available": self.is_available,
        }

    @classmethod
    def from_model(cls, rule: ProviderScheduleRule) -> "ScheduleRuleView":
        return cls(
            provider_id=rule.provider_id,
            day_of_week=rule.day_of_week,
            start_minutes=to_minutes(rule.start_time),
            end_minutes=to_minutes(rule.end_time),
            break_start_minutes=to_minutes(rule.break_start) if rule.break_start is not None else None,
            break_end_minutes=to_minutes(rule.break_end) if rule.break_end is not None else None,
            is_available=bool(rule.is_available),
        )


@dataclass(frozen=True)
class ServiceView:
    id: str
    name: str
    duration_minutes: int
    price: str
    is_active: bool = True

    @property
    def price_amount(self) -> Decimal:
        return Decimal(self.price)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_model(cls, service: Service) -> "ServiceView":
        return cls(
            id=service.id,
            name=service.name,
            duration_minutes=int(service.duration_minutes),
            price=str(service.price),
            is_active=bool(service.is_active),
        )


@dataclass(frozen=True)
class ProviderView:
    id: str
    name: str
    is_active: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_model(cls, provider: Provider) -> "ProviderView":
        return cls(id=provider.id, name=provider.name, is_active=bool(provider.is_active))


def rule_cache_key(provider_id: str, dow: int) -> str:
    return f"catalog:rule:{provider_id}:{dow}"


def service_cache_key(service_id: str) -> str:
    return f"catalog:service:{service_id}"


def provider_cache_key(provider_id: str) -> str:
    return f"catalog:provider:{provider_id}"


class ScheduleCatalog(BaseService):
    """Catalog lookups for the scheduling core plus the staff write path."""

    def __init__(
        self,
        db: Session,
        cache: Optional[CatalogCache] = None,
        config: Optional[Settings] = None,
    ):
        super().__init__(db, cache)
        self.config = config or default_settings
        self.ttl_seconds = self.config.catalog_cache_ttl_seconds
        self.provider_repository = RepositoryFactory.create_provider_repository(db)
        self.service_repository = RepositoryFactory.create_service_repository(db)
        self.rule_repository = RepositoryFactory.create_schedule_rule_repository(db)

    # Cache plumbing

    def _cached(
        self,
        key: str,
        load: Callable[[], Optional[V]],
        to_cache: Callable[[V], Dict[str, Any]],
        from_cache: Callable[[Dict[str, Any]], V],
    ) -> Optional[V]:
        if self.cache is not None:
            try:
                hit = self.cache.get(key)
            except Exception as e:
                prometheus_metrics.record_catalog_cache("error")
                self.logger.warning(f"Catalog cache read failed for {key}, using database: {e}")
                return load()
            if hit is not None:
                prometheus_metrics.record_catalog_cache("hit")
                return from_cache(hit)
            prometheus_metrics.record_catalog_cache("miss")

        value = load()
        if value is not None and self.cache is not None:
            try:
                self.cache.set(key, to_cache(value), self.ttl_seconds)
            except Exception as e:
                self.logger.warning(f"Catalog cache write failed for {key}: {e}")
        return value

    # Reads

    def get_rule(self, provider_id: str, dow: int) -> Optional[ScheduleRuleView]:
        """The provider's rule for a weekday (0 = Sunday), or None."""

        def load() -> Optional[ScheduleRuleView]:
            rule = self.rule_repository.get_for_day(provider_id, dow)
            return ScheduleRuleView.from_model(rule) if rule else None

        return self._cached(
            rule_cache_key(provider_id, dow),
            load,
            ScheduleRuleView.to_dict,
            lambda data: ScheduleRuleView(**data),
        )

    def get_rule_for_date(self, provider_id: str, on_date: date) -> Optional[ScheduleRuleView]:
        return self.get_rule(provider_id, day_of_week(on_date))

    def get_service(self, service_id: str) -> ServiceView:
        def load() -> Optional[ServiceView]:
            service = self.service_repository.get_by_id(service_id)
            return ServiceView.from_model(service) if service else None

        view = self._cached(
            service_cache_key(service_id),
            load,
            ServiceView.to_dict,
            lambda data: ServiceView(**data),
        )
        if view is None:
            raise NotFoundException(
                f"Service {service_id} not found",
                code="SERVICE_NOT_FOUND",
                details={"service_id": service_id},
            )
        return view

    def get_provider(self, provider_id: str) -> ProviderView:
        def load() -> Optional[ProviderView]:
            provider = self.provider_repository.get_by_id(provider_id)
            return ProviderView.from_model(provider) if provider else None

        view = self._cached(
            provider_cache_key(provider_id),
            load,
            ProviderView.to_dict,
            lambda data: ProviderView(**data),
        )
        if view is None:
            raise NotFoundException(
                f"Provider {provider_id} not found",
                code="PROVIDER_NOT_FOUND",
                details={"provider_id": provider_id},
            )
        return view

    # Staff write path

    @BaseService.measure_operation("upsert_provider")
    def upsert_provider(self, provider_id: str, name: str, is_active: bool = True) -> ProviderView:
        name = (name or "").strip()
        if not name:
            raise ValidationException("Provider name is required", code="INVALID_PROVIDER")

        with self.transaction():
            provider = self.provider_repository.get_by_id(provider_id)
            if provider is None:
                provider = self.provider_repository.create(
                    id=provider_id, name=name, is_active=is_active
                )
            else:
                provider.name = name
                provider.is_active = is_active
                self.db.flush()
            view = ProviderView.from_model(provider)

        self.invalidate_cache(provider_cache_key(provider_id))
        self.log_operation("upsert_provider", provider_id=provider_id)
        return view

    @BaseService.measure_operation("upsert_service")
    def upsert_service(
        self,
        service_id: str,
        name: str,
        duration_minutes: int,
        price: Any,
        is_active: bool = True,
    ) -> ServiceView:
        name = (name or "").strip()
        if not name:
            raise ValidationException("Service name is required", code="INVALID_SERVICE")
        if not isinstance(duration_minutes, int) or duration_minutes <= 0:
            raise ValidationException(
                "Service duration must be a positive number of minutes",
                code="INVALID_DURATION",
                details={"duration_minutes": duration_minutes},
            )
        if duration_minutes % CLAIM_GRANULARITY_MINUTES:
            raise ValidationException(
                f"Service duration must be a multiple of {CLAIM_GRANULARITY_MINUTES} minutes",
                code="INVALID_DURATION",
                details={"duration_minutes": duration_minutes},
            )
        try:
            price_amount = Decimal(str(price))
        except InvalidOperation:
            raise ValidationException("Service price must be a number", code="INVALID_PRICE")
        if price_amount < 0:
            raise ValidationException("Service price cannot be negative", code="INVALID_PRICE")

        with self.transaction():
            service = self.service_repository.get_by_id(service_id)
            if service is None:
                service = self.service_repository.create(
                    id=service_id,
                    name=name,
                    duration_minutes=duration_minutes,
                    price=price_amount,
                    is_active=is_active,
                )
            else:
                service.name = name
                service.duration_minutes = duration_minutes
                service.price = price_amount
                service.is_active = is_active
                self.db.flush()
            view = ServiceView.from_model(service)

        self.invalidate_cache(service_cache_key(service_id))
        self.log_operation("upsert_service", service_id=service_id)
        return view

    @BaseService.measure_operation("upsert_schedule_rule")
    def upsert_schedule_rule(
        self,
        provider_id: str,
        dow: int,
        start_time: TimeLike,
        end_time: TimeLike,
        break_start: Optional[TimeLike] = None,
        break_end: Optional[TimeLike] = None,
        is_available: bool = True,
    ) -> ScheduleRuleView:
        if not 0 <= dow <= 6:
            raise ValidationException(
                "day_of_week must be between 0 (Sunday) and 6 (Saturday)",
                code="INVALID_DAY_OF_WEEK",
                details={"day_of_week": dow},
            )
        start, end = to_minutes(start_time), to_minutes(end_time)
        if start >= end:
            raise ValidationException(
                "Schedule start must be before end", code="INVALID_SCHEDULE_WINDOW"
            )
        if (break_start is None) != (break_end is None):
            raise ValidationException(
                "Break needs both a start and an end", code="INVALID_SCHEDULE_BREAK"
            )
        brk_start = to_minutes(break_start) if break_start is not None else None
        brk_end = to_minutes(break_end) if break_end is not None else None
        if any(
            value is not None and value % CLAIM_GRANULARITY_MINUTES
            for value in (start, end, brk_start, brk_end)
        ):
            raise ValidationException(
                f"Schedule times must fall on {CLAIM_GRANULARITY_MINUTES}-minute boundaries",
                code="INVALID_SCHEDULE_WINDOW",
            )
        if brk_start is not None and brk_end is not None:
            if not (start <= brk_start < brk_end <= end):
                raise ValidationException(
                    "Break must fall inside the working window", code="INVALID_SCHEDULE_BREAK"
                )

        with self.transaction():
            if self.provider_repository.get_by_id(provider_id) is None:
                raise NotFoundException(
                    f"Provider {provider_id} not found",
                    code="PROVIDER_NOT_FOUND",
                    details={"provider_id": provider_id},
                )
            values = {
                "start_time": from_minutes(start),
                "end_time": from_minutes(end),
                "break_start": from_minutes(brk_start) if brk_start is not None else None,
                "break_end": from_minutes(brk_end) if brk_end is not None else None,
                "is_available": is_available,
            }
            rule = self.rule_repository.get_for_day(provider_id, dow)
            if rule is None:
                rule = self.rule_repository.create(provider_id=provider_id, day_of_week=dow, **values)
            else:
                for key, value in values.items():
                    setattr(rule, key, value)
                self.db.flush()
            view = ScheduleRuleView.from_model(rule)

        self.invalidate_cache(rule_cache_key(provider_id, dow))
        self.log_operation("upsert_schedule_rule", provider_id=provider_id, day_of_week=dow)
        return view
