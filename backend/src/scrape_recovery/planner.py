"""Resolution planning for classified scraping failures."""
import logging

from .config import RetryConfig
from .strategies import (
    BaseStrategy,
    ExponentialBackoffStrategy,
    FixedDelayStrategy,
    RateLimitStrategy,
)
from .types import (
    ErrorKind,
    ErrorTracker,
    RawFailure,
    Resolution,
    ResolutionAction,
    ScrapingContext,
)

logger = logging.getLogger(__name__)

# Kinds that need a human or a credential fix; retrying cannot help.
NON_RETRYABLE_KINDS: frozenset[ErrorKind] = frozenset({
    ErrorKind.AUTHENTICATION,
    ErrorKind.CAPTCHA,
})

PARSING_RETRY_DELAY = 5.0
STORAGE_RETRY_DELAY = 10.0
PROXY_RETRY_DELAY = 2.0


class ResolutionPlanner:
    """Decides what happens next for each kind of failure."""

    # Fixed-delay retries by kind
    FIXED_DELAY_STRATEGIES: dict[ErrorKind, BaseStrategy] = {
        ErrorKind.PARSING: FixedDelayStrategy(PARSING_RETRY_DELAY),
        ErrorKind.STORAGE: FixedDelayStrategy(STORAGE_RETRY_DELAY),
        ErrorKind.PROXY: FixedDelayStrategy(PROXY_RETRY_DELAY),
    }

    def __init__(
        self,
        tracker: ErrorTracker,
        retry_config: RetryConfig | None = None,
        rate_limit_strategy: RateLimitStrategy | None = None
    ):
        self.tracker = tracker
        self.retry_config = retry_config or RetryConfig()
        self.rate_limit_strategy = rate_limit_strategy or RateLimitStrategy()

    @staticmethod
    def should_retry(kind: ErrorKind, attempt_number: int, max_retries: int) -> bool:
        """Check if a failure of this kind may be retried after ``attempt_number`` attempts."""
        if attempt_number >= max_retries:
            return False
        return kind not in NON_RETRYABLE_KINDS

    def backoff_strategy(self, retry_config: RetryConfig | None = None) -> ExponentialBackoffStrategy:
        return ExponentialBackoffStrategy.from_retry_config(retry_config or self.retry_config)

    def retry_delay(
        self,
        kind: ErrorKind,
        failure: RawFailure,
        attempt_number: int,
        retry_config: RetryConfig | None = None
    ) -> float:
        """Delay the retry engine waits before the next attempt.

        Rate limits follow the server's hint; everything else backs off
        exponentially. The result never exceeds ``max_delay``.
        """
        config = retry_config or self.retry_config
        if kind == ErrorKind.RATE_LIMIT:
            delay = self.rate_limit_strategy.calculate_delay(attempt_number, failure)
            return min(delay, config.max_delay)
        return self.backoff_strategy(config).calculate_delay(attempt_number, failure)

    async def determine_resolution(
        self,
        kind: ErrorKind,
        failure: RawFailure,
        context: ScrapingContext
    ) -> Resolution:
        """Plan the next action for a classified failure."""
        if kind == ErrorKind.RATE_LIMIT:
            return Resolution(
                action=ResolutionAction.RETRY,
                delay=self.rate_limit_strategy.calculate_delay(context.attempt_number, failure),
                message="Rate limit detected, will retry with extended delay",
                kind=kind
            )

        if kind in (ErrorKind.TIMEOUT, ErrorKind.NETWORK):
            if context.attempt_number < self.retry_config.max_retries:
                return Resolution(
                    action=ResolutionAction.RETRY,
                    delay=self.backoff_strategy().calculate_delay(context.attempt_number, failure),
                    message=f"{kind.value.capitalize()} error, will retry with exponential backoff",
                    kind=kind
                )
            return Resolution(
                action=ResolutionAction.SKIP,
                message=f"Max retries exceeded for {kind.value} error",
                kind=kind
            )

        if kind == ErrorKind.AUTHENTICATION:
            return Resolution(
                action=ResolutionAction.MANUAL_REVIEW,
                message="Authentication failed, requires manual intervention",
                kind=kind
            )

        if kind == ErrorKind.CAPTCHA:
            return Resolution(
                action=ResolutionAction.MANUAL_REVIEW,
                message="CAPTCHA or bot detection triggered, requires manual solving",
                kind=kind
            )

        if kind == ErrorKind.PARSING:
            if await self.tracker.has_recurring_errors(context.source_id, kind):
                return Resolution(
                    action=ResolutionAction.MANUAL_REVIEW,
                    message="Recurring parsing errors detected, source structure may have changed",
                    kind=kind
                )
            return Resolution(
                action=ResolutionAction.RETRY,
                delay=self.FIXED_DELAY_STRATEGIES[kind].calculate_delay(context.attempt_number),
                message="Parsing error, will retry once",
                kind=kind
            )

        if kind == ErrorKind.STORAGE:
            return Resolution(
                action=ResolutionAction.RETRY,
                delay=self.FIXED_DELAY_STRATEGIES[kind].calculate_delay(context.attempt_number),
                message="Storage error, will retry with delay",
                kind=kind
            )

        if kind == ErrorKind.CONTENT_STRUCTURE_CHANGED:
            return Resolution(
                action=ResolutionAction.MANUAL_REVIEW,
                message="Content structure changed, selectors need updating",
                kind=kind
            )

        if kind == ErrorKind.PROXY:
            return Resolution(
                action=ResolutionAction.RETRY,
                delay=self.FIXED_DELAY_STRATEGIES[kind].calculate_delay(context.attempt_number),
                message="Proxy error, will retry with different proxy",
                kind=kind
            )

        return Resolution(
            action=ResolutionAction.SKIP,
            message="Unknown error kind, skipping",
            kind=kind
        )
