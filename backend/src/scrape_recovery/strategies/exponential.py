"""
Exponential backoff delay strategy.
"""
import random

from ..config import RetryConfig
from ..types import RawFailure
from .base import BaseStrategy


class ExponentialBackoffStrategy(BaseStrategy):
    """
    Exponential backoff with optional jitter.

    delay = min(base_delay * (backoff_multiplier ** (attempt - 1)), max_delay)

    Jitter adds a uniform offset of up to ``jitter_range`` of the delay in
    either direction; the result is clamped to [0, max_delay].
    """

    def __init__(
        self,
        base_delay: float = 1.0,
        backoff_multiplier: float = 2.0,
        max_delay: float = 300.0,
        jitter: bool = True,
        jitter_range: float = 0.25,
        rng: random.Random | None = None
    ):
        super().__init__(max_delay)
        self.base_delay = base_delay
        self.backoff_multiplier = backoff_multiplier
        self.jitter = jitter
        self.jitter_range = jitter_range
        self._rng = rng or random.Random()

    @classmethod
    def from_retry_config(cls, config: RetryConfig) -> 'ExponentialBackoffStrategy':
        return cls(
            base_delay=config.base_delay,
            backoff_multiplier=config.backoff_multiplier,
            max_delay=config.max_delay,
            jitter=config.jitter_enabled
        )

    def base_delay_for(self, attempt: int) -> float:
        """Delay for an attempt before jitter is applied."""
        if self.base_delay <= 0:
            return 0.0
        exponent = max(attempt, 1) - 1
        try:
            delay = self.base_delay * (self.backoff_multiplier ** exponent)
        except OverflowError:
            delay = float('inf')
        return min(delay, self.max_delay)

    def calculate_delay(self, attempt: int, failure: RawFailure | None = None) -> float:
        """Calculate exponentially increasing delay with optional jitter."""
        delay = self.base_delay_for(attempt)

        if self.jitter and delay > 0:
            jitter_amount = delay * self.jitter_range
            delay += self._rng.uniform(-jitter_amount, jitter_amount)

        return self._cap(delay)

    @property
    def name(self) -> str:
        return f"ExponentialBackoff(base={self.base_delay}, multiplier={self.backoff_multiplier})"
