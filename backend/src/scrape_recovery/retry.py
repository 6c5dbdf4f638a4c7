"""Retry engine for scraping operations.
"""
import asyncio
import inspect
import logging
import time
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from .classification import classify
from .config import RetryConfig
from .exceptions import AttemptTimeoutError, RetryCancelledError
from .planner import ResolutionPlanner
from .types import ErrorKind, ErrorTracker, RawFailure, ScrapingContext, T

logger = logging.getLogger(__name__)

Operation = Callable[[], Awaitable[T] | T]


async def _execute_with_timeout(operation: Operation, timeout: float | None) -> Any:
    """Run one attempt, bounding awaitable results by ``timeout``.

    Plain (non-awaitable) results are returned as-is; a synchronous
    operation has already finished by the time the timeout could apply.
    """
    result = operation()
    if not inspect.isawaitable(result):
        return result

    if timeout is None:
        return await result

    # Only the deadline's own expiry is converted; a TimeoutError raised by
    # the operation itself propagates unchanged.
    try:
        async with asyncio.timeout(timeout) as deadline:
            return await result
    except TimeoutError as e:
        if deadline.expired():
            raise AttemptTimeoutError(f"Operation timeout after {timeout}s", timeout) from e
        raise


class RetryEngine:
    """Runs an operation with bounded, classified retries.

    Holds no per-call state, so one engine can serve many concurrent
    source workers. Error counts live in the tracker.
    """

    def __init__(
        self,
        tracker: ErrorTracker,
        planner: ResolutionPlanner | None = None,
        retry_config: RetryConfig | None = None
    ):
        self.tracker = tracker
        self.retry_config = retry_config or RetryConfig()
        self.planner = planner or ResolutionPlanner(tracker, self.retry_config)

    def _resolve_config(self, retry_config: RetryConfig | Mapping[str, Any] | None) -> RetryConfig:
        if retry_config is None:
            return self.retry_config
        if isinstance(retry_config, RetryConfig):
            return retry_config
        return self.retry_config.with_overrides(**retry_config)

    @staticmethod
    def _check_cancelled(cancel_event: asyncio.Event | None, context: ScrapingContext, attempts: int) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise RetryCancelledError(
                f"Retry sequence for source {context.source_id} cancelled after {attempts} attempts",
                attempts
            )

    async def _sleep(
        self,
        delay: float,
        cancel_event: asyncio.Event | None,
        context: ScrapingContext,
        attempts: int
    ) -> None:
        """Wait out the backoff, waking early if cancelled."""
        if cancel_event is None:
            await asyncio.sleep(delay)
            return

        try:
            await asyncio.wait_for(cancel_event.wait(), timeout=delay)
        except TimeoutError:
            return
        self._check_cancelled(cancel_event, context, attempts)

    async def execute_with_retry(
        self,
        operation: Operation,
        context: ScrapingContext,
        retry_config: RetryConfig | Mapping[str, Any] | None = None,
        cancel_event: asyncio.Event | None = None
    ) -> T:
        """Execute ``operation`` until it succeeds or retrying stops.

        Args:
            operation: Zero-argument callable, sync or returning an awaitable
            context: Scraping context; ``attempt_number`` is updated in place
            retry_config: Full config or a mapping of overrides on the default
            cancel_event: Set to stop the sequence between attempts

        Returns:
            The operation's result

        Raises:
            The last failure, once it is non-retryable or retries are exhausted.
            RetryCancelledError if ``cancel_event`` is set between attempts.
        """
        config = self._resolve_config(retry_config)
        started = time.monotonic()
        failures = 0
        last_kind: ErrorKind | None = None

        while True:
            self._check_cancelled(cancel_event, context, failures)
            context.attempt_number = failures + 1

            try:
                logger.debug(
                    f"Attempting operation for source {context.source_id} "
                    f"(attempt {context.attempt_number}/{config.max_retries or 1})"
                )
                result = await _execute_with_timeout(operation, config.attempt_timeout)
            except Exception as error:
                failures += 1
                failure = RawFailure.from_exception(error, context.source_url)
                last_kind = classify(failure)

                if not self.planner.should_retry(last_kind, failures, config.max_retries):
                    await self.tracker.record_failed_retry(last_kind)
                    logger.error(
                        f"Giving up on source {context.source_id} after {failures} attempts "
                        f"({last_kind.value}): {failure.message[:200]}"
                    )
                    raise

                delay = self.planner.retry_delay(last_kind, failure, failures, config)
                logger.warning(
                    f"Attempt {failures} failed for source {context.source_id} "
                    f"(job {context.job_id}, {last_kind.value}), retrying in {delay:.2f}s: "
                    f"{failure.message[:200]}"
                )
            else:
                await self.tracker.record_source_success(context)
                if failures and last_kind is not None:
                    resolution_time_ms = (time.monotonic() - started) * 1000
                    await self.tracker.record_successful_retry(last_kind, resolution_time_ms)
                    logger.info(
                        f"Source {context.source_id} recovered after {failures + 1} attempts "
                        f"in {resolution_time_ms:.0f}ms"
                    )
                return result

            self._check_cancelled(cancel_event, context, failures)
            await self._sleep(delay, cancel_event, context, failures)
