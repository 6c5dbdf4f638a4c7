"""
Configuration for retry, notification and degradation behavior.
"""
import dataclasses
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .exceptions import ConfigurationError
from .types import ErrorKind, FallbackStrategy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryConfig:
    """Configuration for retry behavior. Delays are in seconds."""

    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 300.0
    backoff_multiplier: float = 2.0
    jitter_enabled: bool = True
    attempt_timeout: float | None = None

    def __post_init__(self):
        if self.max_retries < 0:
            raise ConfigurationError("max_retries must be non-negative", "max_retries")
        if self.base_delay < 0:
            raise ConfigurationError("base_delay must be non-negative", "base_delay")
        if self.max_delay < 0:
            raise ConfigurationError("max_delay must be non-negative", "max_delay")
        if self.backoff_multiplier <= 1:
            raise ConfigurationError("backoff_multiplier must be greater than 1", "backoff_multiplier")
        if self.attempt_timeout is not None and self.attempt_timeout <= 0:
            raise ConfigurationError("attempt_timeout must be positive", "attempt_timeout")

    def with_overrides(self, **changes: Any) -> 'RetryConfig':
        """Return a copy with the given fields replaced."""
        return dataclasses.replace(self, **changes)


def _default_critical_kinds() -> frozenset[ErrorKind]:
    return frozenset({ErrorKind.STORAGE, ErrorKind.AUTHENTICATION})


@dataclass(frozen=True)
class NotificationThresholds:
    """When the error handler raises alerts."""

    error_rate: float = 0.5
    consecutive_failures: int = 5
    critical_kinds: frozenset[ErrorKind] = field(default_factory=_default_critical_kinds)

    def __post_init__(self):
        if not 0.0 <= self.error_rate <= 1.0:
            raise ConfigurationError("error_rate must be between 0.0 and 1.0", "error_rate")
        if self.consecutive_failures < 1:
            raise ConfigurationError("consecutive_failures must be at least 1", "consecutive_failures")
        # Accept any iterable of kinds from callers
        object.__setattr__(self, 'critical_kinds', frozenset(self.critical_kinds))


def _default_fallback_strategies() -> tuple[FallbackStrategy, ...]:
    return (FallbackStrategy.SKIP_SOURCE, FallbackStrategy.USE_CACHE, FallbackStrategy.PARTIAL_PROCESSING)


@dataclass(frozen=True)
class GracefulDegradationConfig:
    """Whether partially failed batches may continue, and with which fallbacks."""

    enabled: bool = True
    fallback_strategies: tuple[FallbackStrategy, ...] = field(default_factory=_default_fallback_strategies)

    def __post_init__(self):
        object.__setattr__(self, 'fallback_strategies', tuple(self.fallback_strategies))


@dataclass(frozen=True)
class ErrorHandlerConfig:
    """Process-wide configuration for the error handler."""

    retry: RetryConfig = field(default_factory=RetryConfig)
    notification_thresholds: NotificationThresholds = field(default_factory=NotificationThresholds)
    graceful_degradation: GracefulDegradationConfig = field(default_factory=GracefulDegradationConfig)

    def merged(self, **changes: Any) -> 'ErrorHandlerConfig':
        """Return a copy with the given sections replaced."""
        return dataclasses.replace(self, **changes)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> 'ErrorHandlerConfig':
        """Create from a partial mapping; missing keys keep their defaults."""
        retry = RetryConfig(**data.get('retry', {}))

        thresholds_data = dict(data.get('notification_thresholds', {}))
        if 'critical_kinds' in thresholds_data:
            thresholds_data['critical_kinds'] = frozenset(
                ErrorKind(kind) for kind in thresholds_data['critical_kinds']
            )
        thresholds = NotificationThresholds(**thresholds_data)

        degradation_data = dict(data.get('graceful_degradation', {}))
        if 'fallback_strategies' in degradation_data:
            degradation_data['fallback_strategies'] = tuple(
                FallbackStrategy(name) for name in degradation_data['fallback_strategies']
            )
        degradation = GracefulDegradationConfig(**degradation_data)

        return cls(
            retry=retry,
            notification_thresholds=thresholds,
            graceful_degradation=degradation
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "retry": dataclasses.asdict(self.retry),
            "notification_thresholds": {
                "error_rate": self.notification_thresholds.error_rate,
                "consecutive_failures": self.notification_thresholds.consecutive_failures,
                "critical_kinds": sorted(k.value for k in self.notification_thresholds.critical_kinds),
            },
            "graceful_degradation": {
                "enabled": self.graceful_degradation.enabled,
                "fallback_strategies": [s.value for s in self.graceful_degradation.fallback_strategies],
            },
        }


def load_config(path: str | Path) -> ErrorHandlerConfig:
    """Load error handler configuration from a JSON file.

    A missing file yields the defaults.
    """
    config_path = Path(path)
    if not config_path.exists():
        logger.info(f"No error handler config at {config_path}, using defaults")
        return ErrorHandlerConfig()

    with open(config_path, 'r') as f:
        data = json.load(f)

    logger.debug(f"Loaded error handler config from {config_path}")
    return ErrorHandlerConfig.from_dict(data)
