"""
Error handler: the entry point scraping workers talk to.

Ties classification, resolution planning, retries, graceful degradation and
alerting together behind three calls.
"""
import asyncio
import logging
from collections.abc import Mapping, Sequence
from typing import Any

from .classification import classify
from .config import ErrorHandlerConfig, RetryConfig
from .degradation import DegradationController
from .planner import ResolutionPlanner
from .retry import Operation, RetryEngine
from .tracking.base import trailing_failures
from .types import (
    DegradationOutcome,
    ErrorKind,
    ErrorTracker,
    NotificationSender,
    RawFailure,
    Resolution,
    ScrapingContext,
    T,
)

logger = logging.getLogger(__name__)


class ErrorHandler:
    """Handles scraping failures for any number of sources.

    Stateless apart from its collaborators: error counts live in the
    tracker, alert suppression in the notifier.
    """

    def __init__(
        self,
        tracker: ErrorTracker,
        notifier: NotificationSender,
        config: ErrorHandlerConfig | None = None
    ):
        self.tracker = tracker
        self.notifier = notifier
        self.config = config or ErrorHandlerConfig()
        self.planner = ResolutionPlanner(tracker, self.config.retry)
        self.retry_engine = RetryEngine(tracker, self.planner, self.config.retry)
        self.degradation = DegradationController(self.config.graceful_degradation)

    async def handle_scraping_error(
        self,
        error: RawFailure | BaseException,
        context: ScrapingContext
    ) -> Resolution:
        """Record a failure, plan the next step and raise any alerts it warrants.

        The failure is recorded before anything else, so the planner's
        recurring-error check and the alert thresholds see it.
        """
        failure = error if isinstance(error, RawFailure) else RawFailure.from_exception(error, context.source_url)

        await self.tracker.track_error(failure, context)
        kind = classify(failure)
        resolution = await self.planner.determine_resolution(kind, failure, context)

        try:
            await self._check_notification_triggers(kind, context)
        except Exception as e:
            logger.exception(f"Failed to send alerts for source {context.source_id}: {e}")

        delay = f", delay {resolution.delay:.2f}s" if resolution.delay is not None else ""
        logger.info(
            f"Resolution for source {context.source_id} ({kind.value}): "
            f"{resolution.action.value}{delay} - {resolution.message}"
        )
        return resolution

    async def _check_notification_triggers(self, kind: ErrorKind, context: ScrapingContext) -> None:
        thresholds = self.config.notification_thresholds

        if kind in thresholds.critical_kinds:
            await self.notifier.send_critical_error_alert(kind, context)
            return

        error_rate = await self.tracker.get_source_error_rate(context.source_id)
        if error_rate > thresholds.error_rate:
            await self.notifier.send_high_error_rate_alert(context.source_id, error_rate)

        # One extra entry tells a streak that just reached the threshold from a longer one
        history = await self.tracker.get_source_error_history(
            context.source_id, limit=thresholds.consecutive_failures + 1
        )
        streak = trailing_failures(history)
        if streak == thresholds.consecutive_failures:
            await self.notifier.send_consecutive_failures_alert(context.source_id, streak)

    async def execute_with_retry(
        self,
        operation: Operation,
        context: ScrapingContext,
        retry_config: RetryConfig | Mapping[str, Any] | None = None,
        cancel_event: asyncio.Event | None = None
    ) -> T:
        """Run ``operation`` through the retry engine, see RetryEngine.execute_with_retry."""
        return await self.retry_engine.execute_with_retry(
            operation, context, retry_config=retry_config, cancel_event=cancel_event
        )

    def handle_partial_failure(
        self,
        errors: Sequence[RawFailure | BaseException],
        successful_results: Sequence[Any],
        context: ScrapingContext
    ) -> DegradationOutcome:
        return self.degradation.handle_partial_failure(errors, successful_results, context)
