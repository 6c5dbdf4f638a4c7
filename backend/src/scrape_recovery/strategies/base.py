"""
Base class for delay strategies.
"""
from abc import ABC, abstractmethod

from ..types import RawFailure


class BaseStrategy(ABC):
    """Base class for delay strategies."""

    def __init__(self, max_delay: float | None = None):
        self.max_delay = max_delay

    @abstractmethod
    def calculate_delay(self, attempt: int, failure: RawFailure | None = None) -> float:
        """
        Calculate delay before the next attempt.

        Args:
            attempt: Number of the attempt that just failed (1-based)
            failure: The failure being retried, for strategies that read it

        Returns:
            Delay in seconds
        """
        pass

    def _cap(self, delay: float) -> float:
        if self.max_delay is None:
            return max(delay, 0.0)
        return min(max(delay, 0.0), self.max_delay)

    @property
    @abstractmethod
    def name(self) -> str:
        """Strategy name for logging."""
        pass
