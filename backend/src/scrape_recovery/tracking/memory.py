"""In-memory error tracker."""
import asyncio
from collections import deque

from ..classification import classify
from ..types import ErrorKind, ErrorMetrics, RawFailure, ScrapingContext, SourceOutcome
from .base import BaseErrorTracker, RecurringErrorCounter, as_utc, error_rate


class InMemoryErrorTracker(BaseErrorTracker):
    """In-memory implementation of the error tracker.

    Useful for tests and single-process pipelines where error history
    does not need to survive a restart.
    """

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self._history: dict[str, deque[SourceOutcome]] = {}
        self._metrics: dict[ErrorKind, ErrorMetrics] = {}
        self._recurring: dict[tuple[str, ErrorKind], RecurringErrorCounter] = {}
        self._lock = asyncio.Lock()

    def _source_history(self, source_id: str) -> deque[SourceOutcome]:
        if source_id not in self._history:
            self._history[source_id] = deque(maxlen=self.max_history)
        return self._history[source_id]

    async def track_error(self, failure: RawFailure, context: ScrapingContext) -> None:
        kind = classify(failure)
        occurred_at = as_utc(failure.timestamp)

        async with self._lock:
            self._source_history(context.source_id).append(
                SourceOutcome(success=False, timestamp=occurred_at, kind=kind, message=failure.message)
            )

            metrics = self._metrics.setdefault(kind, ErrorMetrics(kind=kind))
            metrics.count += 1
            metrics.last_occurrence = occurred_at

            counter = self._recurring.setdefault((context.source_id, kind), RecurringErrorCounter())
            counter.record(occurred_at, self.window)

        self._log_failure(failure, context, kind)

    async def record_source_success(self, context: ScrapingContext) -> None:
        async with self._lock:
            self._source_history(context.source_id).append(
                SourceOutcome(success=True, timestamp=self.now())
            )
            for key in [k for k in self._recurring if k[0] == context.source_id]:
                del self._recurring[key]

    async def record_successful_retry(self, kind: ErrorKind, resolution_time_ms: float) -> None:
        async with self._lock:
            metrics = self._metrics.setdefault(kind, ErrorMetrics(kind=kind))
            total = metrics.successful_retries + 1
            metrics.average_resolution_ms = (
                metrics.average_resolution_ms * metrics.successful_retries + resolution_time_ms
            ) / total
            metrics.successful_retries = total

    async def record_failed_retry(self, kind: ErrorKind) -> None:
        async with self._lock:
            self._metrics.setdefault(kind, ErrorMetrics(kind=kind)).failed_retries += 1

    async def get_source_error_history(self, source_id: str, limit: int = 50) -> list[SourceOutcome]:
        if limit <= 0:
            return []
        async with self._lock:
            history = list(self._history.get(source_id, ()))
        return history[-limit:]

    async def get_source_error_rate(self, source_id: str) -> float:
        cutoff = self.now() - self.window
        async with self._lock:
            recent = [o for o in self._history.get(source_id, ()) if o.timestamp > cutoff]
        return error_rate(recent)

    async def has_recurring_errors(self, source_id: str, kind: ErrorKind) -> bool:
        async with self._lock:
            counter = self._recurring.get((source_id, kind))
        if counter is None:
            return False
        return counter.is_recurring(self.recurring_threshold, self.window, self.now())

    async def get_error_metrics(self) -> dict[ErrorKind, ErrorMetrics]:
        async with self._lock:
            return {
                kind: ErrorMetrics(**vars(metrics))
                for kind, metrics in self._metrics.items()
            }

    async def get_recent_errors(self, limit: int = 100) -> list[SourceOutcome]:
        async with self._lock:
            failures = [
                outcome
                for history in self._history.values()
                for outcome in history
                if not outcome.success
            ]
        failures.sort(key=lambda o: o.timestamp, reverse=True)
        return failures[:limit]

    async def clear_source_errors(self, source_id: str) -> None:
        async with self._lock:
            self._history.pop(source_id, None)
            for key in [k for k in self._recurring if k[0] == source_id]:
                del self._recurring[key]
