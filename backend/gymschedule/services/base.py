# backend/gymschedule/services/base.py
"""
Base Service Pattern for the gym scheduling engine.

Every scheduling service inherits:
- a transaction boundary that commits once all checks passed and rolls
  back on any rejection
- timing of public operations, split into successes, business
  rejections (class full, trainer busy, ...) and infrastructure errors
- operation logging with structured context
- a replaceable clock, so "is this slot in the past" is testable
"""

from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date, datetime
from functools import wraps
import logging
import time
from typing import Any, Callable, ClassVar, Dict, Iterator, Optional, TypeVar, cast

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import DomainException, RepositoryException, ServiceException
from ..core.timezone_utils import get_gym_now, to_gym_time
from ..monitoring.prometheus_metrics import prometheus_metrics

logger = logging.getLogger(__name__)

NowProvider = Callable[[], datetime]

F = TypeVar("F", bound=Callable[..., Any])


def _outcome_of(exc: Optional[BaseException]) -> str:
    if exc is None:
        return "success"
    if isinstance(exc, DomainException) and not isinstance(exc, ServiceException):
        return "rejected"
    return "error"


@dataclass
class OperationStats:
    """In-process timing summary for one measured operation."""

    count: int = 0
    success_count: int = 0
    failure_count: int = 0
    total_time: float = 0.0
    min_time: float = float("inf")
    max_time: float = 0.0

    def add(self, elapsed: float, success: bool) -> None:
        self.count += 1
        self.total_time += elapsed
        self.min_time = min(self.min_time, elapsed)
        self.max_time = max(self.max_time, elapsed)
        if success:
            self.success_count += 1
        else:
            self.failure_count += 1

    def summary(self) -> Dict[str, Any]:
        return {
            "count": self.count,
            "avg_time": self.total_time / self.count,
            "min_time": self.min_time,
            "max_time": self.max_time,
            "total_time": self.total_time,
            "success_rate": self.success_count / self.count,
            "success_count": self.success_count,
            "failure_count": self.failure_count,
        }


class BaseService:
    """
    Base class for all scheduling services.

    Services own the transaction: repositories only flush, and nothing is
    committed until every check of an operation has passed.
    """

    # Per service class, per operation
    _stats: ClassVar[Dict[str, Dict[str, OperationStats]]] = {}

    def __init__(self, db: Session, now_provider: Optional[NowProvider] = None):
        """
        Initialize base service.

        Args:
            db: Database session
            now_provider: Optional callable returning the current datetime
        """
        self.db = db
        self._now_provider = now_provider
        self.logger = logging.getLogger(self.__class__.__name__)

    def now(self) -> datetime:
        """Current aware datetime in the gym timezone."""
        current = self._now_provider() if self._now_provider is not None else get_gym_now()
        return to_gym_time(current)

    def today(self) -> date:
        return self.now().date()

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """
        Commit on success; roll back on anything raised inside the block.

        Domain rejections propagate unchanged. Storage failures surface as
        ServiceException so callers never see driver errors.
        """
        try:
            yield self.db
            self.db.commit()
        except (SQLAlchemyError, RepositoryException) as e:
            self.db.rollback()
            self.logger.error("Transaction rolled back after storage failure: %s", e)
            raise ServiceException(f"Database operation failed: {str(e)}") from e
        except Exception:
            self.db.rollback()
            raise

    @staticmethod
    def measure_operation(operation_name: str) -> Callable[[F], F]:
        """
        Decorator that times a service method and reports how it ended.

        Usage:
            @BaseService.measure_operation("create_session")
            def create_session(self, ...):
                ...
        """

        def decorator(func: F) -> F:
            @wraps(func)
            def wrapper(self: "BaseService", *args: Any, **kwargs: Any) -> Any:
                started = time.perf_counter()
                failure: Optional[BaseException] = None
                try:
                    return func(self, *args, **kwargs)
                except Exception as exc:
                    failure = exc
                    raise
                finally:
                    self._finish_operation(operation_name, time.perf_counter() - started, failure)

            wrapper._operation_name = operation_name  # type: ignore[attr-defined]
            return cast(F, wrapper)

        return decorator

    def _finish_operation(
        self, operation: str, elapsed: float, failure: Optional[BaseException]
    ) -> None:
        self._record_metric(operation, elapsed, failure is None)
        if elapsed > settings.slow_operation_seconds:
            self.logger.warning("Slow operation detected: %s took %.2fs", operation, elapsed)
        prometheus_metrics.record_service_operation(
            service=self.__class__.__name__,
            operation=operation,
            duration=elapsed,
            status=_outcome_of(failure),
            error_type=type(failure).__name__ if failure is not None else None,
        )

    def log_operation(self, operation: str, **context: Any) -> None:
        """Log an operation with its context as structured extras."""
        self.logger.info("Operation: %s", operation, extra={"operation": operation, **context})

    def _record_metric(self, operation: str, elapsed: float, success: bool) -> None:
        per_class = BaseService._stats.setdefault(self.__class__.__name__, {})
        per_class.setdefault(operation, OperationStats()).add(elapsed, success)

    def get_metrics(self) -> Dict[str, Any]:
        """Timing summary for each operation this service class has run."""
        per_class = BaseService._stats.get(self.__class__.__name__, {})
        return {name: stats.summary() for name, stats in per_class.items() if stats.count}

    def reset_metrics(self) -> None:
        BaseService._stats.pop(self.__class__.__name__, None)
        self.logger.info("Metrics reset for %s", self.__class__.__name__)
