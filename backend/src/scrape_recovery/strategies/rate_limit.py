"""
Server-dictated delay strategy for rate-limited requests.
"""
import re

from ..types import RawFailure
from .base import BaseStrategy

# Only the simple textual form is recognised, e.g. "Retry-After: 30"
RETRY_AFTER_PATTERN = re.compile(r"retry[- ]after[:\s]+(\d+)", re.IGNORECASE)

DEFAULT_RATE_LIMIT_DELAY = 60.0


class RateLimitStrategy(BaseStrategy):
    """
    Waits as long as the server asked, when the failure message says so.

    Falls back to ``default_delay`` for messages without a recognisable
    retry-after hint.
    """

    def __init__(self, default_delay: float = DEFAULT_RATE_LIMIT_DELAY, max_delay: float | None = None):
        super().__init__(max_delay)
        self.default_delay = default_delay

    def retry_after(self, message: str) -> float | None:
        """Extract the retry-after hint in seconds, if present."""
        match = RETRY_AFTER_PATTERN.search(message or "")
        if match:
            return float(int(match.group(1)))
        return None

    def calculate_delay(self, attempt: int, failure: RawFailure | None = None) -> float:
        hinted = self.retry_after(failure.message) if failure else None
        return self._cap(hinted if hinted is not None else self.default_delay)

    @property
    def name(self) -> str:
        return f"RateLimit(default={self.default_delay})"
