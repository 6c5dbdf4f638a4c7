"""Graceful degradation for partially failed batches."""
import logging
from collections.abc import Sequence
from typing import Any

from .classification import classify
from .config import GracefulDegradationConfig
from .types import DegradationOutcome, ErrorKind, FallbackStrategy, RawFailure, ScrapingContext

logger = logging.getLogger(__name__)

# Below this error rate a batch continues untouched.
ACCEPTABLE_ERROR_RATE = 0.3
# Share of network/timeout errors at which cached data is served instead.
CACHE_FALLBACK_SHARE = 0.7
# Share of parsing errors at which whatever parsed is kept.
PARTIAL_PROCESSING_SHARE = 0.5

_TRANSIENT_KINDS = frozenset({ErrorKind.NETWORK, ErrorKind.TIMEOUT})


class DegradationController:
    """Decides whether a source run continues after partial failure."""

    def __init__(self, config: GracefulDegradationConfig | None = None):
        self.config = config or GracefulDegradationConfig()

    def select_fallback_strategy(self, errors: Sequence[RawFailure | BaseException]) -> FallbackStrategy:
        """Pick a fallback by the dominant kind of failure."""
        if not errors:
            return FallbackStrategy.SKIP_SOURCE

        kinds = [classify(error) for error in errors]
        total = len(kinds)

        transient_share = sum(1 for kind in kinds if kind in _TRANSIENT_KINDS) / total
        if transient_share >= CACHE_FALLBACK_SHARE:
            return FallbackStrategy.USE_CACHE

        parsing_share = sum(1 for kind in kinds if kind == ErrorKind.PARSING) / total
        if parsing_share >= PARTIAL_PROCESSING_SHARE:
            return FallbackStrategy.PARTIAL_PROCESSING

        return FallbackStrategy.SKIP_SOURCE

    def handle_partial_failure(
        self,
        errors: Sequence[RawFailure | BaseException],
        successful_results: Sequence[Any],
        context: ScrapingContext
    ) -> DegradationOutcome:
        """Decide how a batch with some failures proceeds."""
        if not self.config.enabled:
            return DegradationOutcome(should_continue=False)

        total = len(errors) + len(successful_results)
        error_rate = len(errors) / total if total else 0.0

        if error_rate < ACCEPTABLE_ERROR_RATE:
            return DegradationOutcome(should_continue=True)

        strategy = self.select_fallback_strategy(errors)
        if strategy not in self.config.fallback_strategies:
            if FallbackStrategy.SKIP_SOURCE not in self.config.fallback_strategies:
                logger.warning(
                    f"Fallback {strategy.value} not enabled for source {context.source_id}, failing batch"
                )
                return DegradationOutcome(should_continue=False)
            strategy = FallbackStrategy.SKIP_SOURCE

        logger.info(
            f"Applying graceful degradation for source {context.source_id}: {strategy.value} "
            f"(error rate {error_rate:.2f}, {len(errors)} errors, {len(successful_results)} successes)"
        )
        return DegradationOutcome(should_continue=True, fallback_strategy=strategy)
