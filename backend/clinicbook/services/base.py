# backend/clinicbook/services/base.py
"""
Shared plumbing for clinicbook services.

Every scheduling service (catalog, availability, booking, payments, waitlist)
derives from BaseService and gets:
- a unit-of-work `transaction()` that commits or rolls back the session
- `measure_operation` timing, exported to Prometheus and kept per class
- best-effort catalog cache invalidation
- a logger named after the concrete service
"""

from contextlib import contextmanager
from dataclasses import dataclass
from functools import wraps
import logging
import time
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterator, Optional, TypeVar, cast

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.constants import SLOW_OPERATION_SECONDS
from ..core.exceptions import ServiceException
from ..monitoring.prometheus_metrics import prometheus_metrics

if TYPE_CHECKING:
    from ..infrastructure.cache.catalog_cache import CatalogCache

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


@dataclass
class OperationStats:
    """Running timings for one measured operation of one service class."""

    calls: int = 0
    failures: int = 0
    total_seconds: float = 0.0
    fastest: float = float("inf")
    slowest: float = 0.0

    def add(self, elapsed: float, ok: bool) -> None:
        self.calls += 1
        self.total_seconds += elapsed
        self.fastest = min(self.fastest, elapsed)
        self.slowest = max(self.slowest, elapsed)
        if not ok:
            self.failures += 1

    def summary(self) -> Dict[str, float]:
        return {
            "count": self.calls,
            "avg_time": self.total_seconds / self.calls,
            "min_time": self.fastest,
            "max_time": self.slowest,
            "success_rate": (self.calls - self.failures) / self.calls,
        }


class BaseService:
    """Base class for the scheduling services."""

    # service class name -> operation name -> stats
    _operation_stats: Dict[str, Dict[str, OperationStats]] = {}

    def __init__(self, db: Session, cache: Optional["CatalogCache"] = None):
        self.db = db
        self.cache = cache
        self.logger = logging.getLogger(self.__class__.__name__)

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """
        Run a block as one unit of work on the service's session.

        The session is committed when the block exits normally and rolled
        back otherwise. Constraint violations (IntegrityError) come back out
        unchanged because the booking and waitlist paths turn them into
        domain errors; any other database failure becomes a ServiceException.
        Domain exceptions raised inside the block propagate after rollback.
        """
        try:
            yield self.db
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            self.logger.error(f"Database error, rolled back: {e}")
            raise ServiceException(f"Database operation failed: {e}") from e
        except Exception as e:
            self.db.rollback()
            self.logger.debug(f"Rolled back after {type(e).__name__}: {e}")
            raise

    @staticmethod
    def measure_operation(operation_name: str) -> Callable[[F], F]:
        """
        Time a service method.

            @BaseService.measure_operation("cancel_appointment")
            def cancel_appointment(self, ...):
                ...

        Failures are counted and re-raised; calls slower than
        SLOW_OPERATION_SECONDS are logged as warnings.
        """

        def decorator(func: F) -> F:
            @wraps(func)
            def wrapper(self: "BaseService", *args: Any, **kwargs: Any) -> Any:
                started = time.perf_counter()
                error_type: Optional[str] = None
                try:
                    return func(self, *args, **kwargs)
                except Exception as e:
                    error_type = type(e).__name__
                    raise
                finally:
                    elapsed = time.perf_counter() - started
                    self._track(operation_name, elapsed, ok=error_type is None)
                    if elapsed > SLOW_OPERATION_SECONDS:
                        self.logger.warning(f"{operation_name} took {elapsed:.2f}s")
                    prometheus_metrics.record_service_operation(
                        service=self.__class__.__name__,
                        operation=operation_name,
                        duration=elapsed,
                        status="error" if error_type else "success",
                        error_type=error_type,
                    )

            return cast(F, wrapper)

        return decorator

    def invalidate_cache(self, *keys: str) -> None:
        """Drop catalog cache entries; a failing cache is logged and otherwise ignored."""
        if self.cache is None:
            return
        for key in keys:
            try:
                self.cache.delete(key)
            except Exception as e:
                self.logger.warning(f"Could not invalidate cache key {key}: {e}")

    def log_operation(self, operation: str, **context: Any) -> None:
        self.logger.info(f"Operation: {operation}", extra={"operation": operation, **context})

    def _track(self, operation: str, elapsed: float, ok: bool) -> None:
        per_class = BaseService._operation_stats.setdefault(self.__class__.__name__, {})
        per_class.setdefault(operation, OperationStats()).add(elapsed, ok)

    def get_metrics(self) -> Dict[str, Dict[str, float]]:
        """Timing summary for each measured operation of this service class."""
        per_class = BaseService._operation_stats.get(self.__class__.__name__, {})
        return {name: stats.summary() for name, stats in per_class.items() if stats.calls}
