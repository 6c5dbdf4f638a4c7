"""
Base implementation for error trackers.
"""
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from ..types import ErrorKind, ErrorMetrics, RawFailure, ScrapingContext, SourceOutcome


logger = logging.getLogger(__name__)

DEFAULT_WINDOW = timedelta(hours=1)
DEFAULT_MAX_HISTORY = 1000
# First failure of a kind is retried; the second inside the window escalates.
DEFAULT_RECURRING_THRESHOLD = 2


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


@dataclass
class RecurringErrorCounter:
    """Per-(source, kind) occurrence counter inside a time window.

    A success for the source discards the counter; an occurrence after the
    window has lapsed starts a new count.
    """

    count: int = 0
    first_seen: datetime | None = None
    last_seen: datetime | None = None

    def record(self, at: datetime, window: timedelta) -> None:
        if self.first_seen is None or at - self.first_seen > window:
            self.count = 1
            self.first_seen = at
        else:
            self.count += 1
        self.last_seen = at

    def is_recurring(self, threshold: int, window: timedelta, now: datetime) -> bool:
        if self.first_seen is None:
            return False
        return self.count >= threshold and now - self.first_seen <= window


def error_rate(outcomes: list[SourceOutcome]) -> float:
    """Fraction of failed outcomes; 0.0 when there are none."""
    if not outcomes:
        return 0.0
    failures = sum(1 for outcome in outcomes if not outcome.success)
    return failures / len(outcomes)


def trailing_failures(outcomes: list[SourceOutcome]) -> int:
    """Length of the run of failures at the end of an oldest-first history."""
    count = 0
    for outcome in reversed(outcomes):
        if outcome.success:
            break
        count += 1
    return count


class BaseErrorTracker(ABC):
    """Base class for error tracker implementations."""

    def __init__(
        self,
        window: timedelta = DEFAULT_WINDOW,
        max_history: int = DEFAULT_MAX_HISTORY,
        recurring_threshold: int = DEFAULT_RECURRING_THRESHOLD,
        clock: Callable[[], datetime] | None = None
    ):
        self.window = window
        self.max_history = max_history
        self.recurring_threshold = recurring_threshold
        self._clock = clock or (lambda: datetime.now(UTC))

    def now(self) -> datetime:
        return as_utc(self._clock())

    def _log_failure(self, failure: RawFailure, context: ScrapingContext, kind: ErrorKind) -> None:
        logger.error(
            f"[{kind.value}] {(failure.message or '')[:200]} "
            f"(source={context.source_id}, job={context.job_id}, "
            f"attempt={context.attempt_number}, url={failure.url})"
        )

    @abstractmethod
    async def track_error(self, failure: RawFailure, context: ScrapingContext) -> None:
        """Durably record one failure."""
        pass

    @abstractmethod
    async def record_source_success(self, context: ScrapingContext) -> None:
        """Record a successful operation for a source."""
        pass

    @abstractmethod
    async def record_successful_retry(self, kind: ErrorKind, resolution_time_ms: float) -> None:
        pass

    @abstractmethod
    async def record_failed_retry(self, kind: ErrorKind) -> None:
        pass

    @abstractmethod
    async def get_source_error_history(self, source_id: str, limit: int = 50) -> list[SourceOutcome]:
        """Most recent outcomes for a source, oldest first."""
        pass

    @abstractmethod
    async def get_source_error_rate(self, source_id: str) -> float:
        """Error rate over the tracking window."""
        pass

    @abstractmethod
    async def has_recurring_errors(self, source_id: str, kind: ErrorKind) -> bool:
        pass

    @abstractmethod
    async def get_error_metrics(self) -> dict[ErrorKind, ErrorMetrics]:
        pass

    @abstractmethod
    async def get_recent_errors(self, limit: int = 100) -> list[SourceOutcome]:
        """Most recent failures across all sources, newest first."""
        pass

    @abstractmethod
    async def clear_source_errors(self, source_id: str) -> None:
        pass

    async def get_statistics(self) -> dict:
        """Get statistics about tracked errors."""
        metrics = await self.get_error_metrics()
        return {
            'total_errors': sum(m.count for m in metrics.values()),
            'successful_retries': sum(m.successful_retries for m in metrics.values()),
            'failed_retries': sum(m.failed_retries for m in metrics.values()),
            'by_kind': {kind.value: m.to_dict() for kind, m in metrics.items()},
        }
