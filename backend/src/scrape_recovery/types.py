"""
Shared type definitions for the scrape recovery system.
"""
import traceback
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Protocol, TypeVar

# Type variables
T = TypeVar('T')


class ErrorKind(Enum):
    """Closed set of failure kinds a scraping operation can produce."""
    NETWORK = "network"
    TIMEOUT = "timeout"
    RATE_LIMIT = "rate_limit"
    AUTHENTICATION = "authentication"
    CAPTCHA = "captcha"
    PARSING = "parsing"
    CONTENT_STRUCTURE_CHANGED = "content_structure_changed"
    STORAGE = "storage"
    PROXY = "proxy"
    UNKNOWN = "unknown"


class ResolutionAction(Enum):
    """What the pipeline should do next with a failed operation."""
    RETRY = "retry"
    SKIP = "skip"
    MANUAL_REVIEW = "manual_review"


class FallbackStrategy(Enum):
    """Reduced-fidelity modes for the remainder of a source run."""
    USE_CACHE = "use_cache"
    PARTIAL_PROCESSING = "partial_processing"
    SKIP_SOURCE = "skip_source"


@dataclass(frozen=True)
class RawFailure:
    """A single failure occurrence, captured where the operation failed."""

    message: str
    url: str | None = None
    stack: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    error_type: str | None = None
    status_code: int | None = None
    kind_hint: ErrorKind | None = None

    @classmethod
    def from_exception(cls, error: BaseException, url: str | None = None) -> 'RawFailure':
        """Create from an exception, keeping its traceback and any kind/status it carries."""
        kind_hint = getattr(error, 'kind', None)
        status_code = getattr(error, 'status_code', None)
        return cls(
            message=str(error) or type(error).__name__,
            url=url or getattr(error, 'url', None),
            stack=''.join(traceback.format_exception(error)) if error.__traceback__ else None,
            error_type=type(error).__name__,
            status_code=status_code if isinstance(status_code, int) else None,
            kind_hint=kind_hint if isinstance(kind_hint, ErrorKind) else None,
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "message": self.message,
            "url": self.url,
            "stack": self.stack,
            "timestamp": self.timestamp.isoformat(),
            "error_type": self.error_type,
            "status_code": self.status_code,
            "kind_hint": self.kind_hint.value if self.kind_hint else None,
        }


@dataclass
class ScrapingContext:
    """Identifies the run a failure happened in.

    ``attempt_number`` is 1-based and is updated in place by the retry
    engine as the attempt sequence progresses.
    """

    source_id: str
    job_id: str
    source_url: str
    attempt_number: int = 1
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    user_agent: str | None = None
    proxy_used: str | None = None


@dataclass(frozen=True)
class Resolution:
    """Planned next step for one failure."""

    action: ResolutionAction
    message: str
    delay: float | None = None  # seconds
    kind: ErrorKind | None = None

    @property
    def delay_ms(self) -> int | None:
        if self.delay is None:
            return None
        return int(round(self.delay * 1000))


@dataclass(frozen=True)
class DegradationOutcome:
    """Whether a partially failed batch keeps going, and how."""

    should_continue: bool
    fallback_strategy: FallbackStrategy | None = None


@dataclass(frozen=True)
class SourceOutcome:
    """One entry in a source's recent history."""

    success: bool
    timestamp: datetime
    kind: ErrorKind | None = None
    message: str | None = None


@dataclass
class ErrorMetrics:
    """Aggregated statistics for one error kind."""

    kind: ErrorKind
    count: int = 0
    last_occurrence: datetime | None = None
    average_resolution_ms: float = 0.0
    successful_retries: int = 0
    failed_retries: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "count": self.count,
            "last_occurrence": self.last_occurrence.isoformat() if self.last_occurrence else None,
            "average_resolution_ms": self.average_resolution_ms,
            "successful_retries": self.successful_retries,
            "failed_retries": self.failed_retries,
        }


class ErrorTracker(Protocol):
    """Protocol for the authority on per-source error state."""

    async def track_error(self, failure: RawFailure, context: ScrapingContext) -> None:
        """Durably record one failure."""
        ...

    async def record_source_success(self, context: ScrapingContext) -> None:
        """Record a successful operation for the context's source."""
        ...

    async def record_successful_retry(self, kind: ErrorKind, resolution_time_ms: float) -> None:
        """Record that a failure of this kind was resolved by retrying."""
        ...

    async def record_failed_retry(self, kind: ErrorKind) -> None:
        """Record that retrying a failure of this kind was abandoned."""
        ...

    async def get_source_error_rate(self, source_id: str) -> float:
        """Rolling error rate (0.0 to 1.0) for a source."""
        ...

    async def get_source_error_history(self, source_id: str, limit: int = 50) -> list[SourceOutcome]:
        """Most recent outcomes for a source, oldest first."""
        ...

    async def has_recurring_errors(self, source_id: str, kind: ErrorKind) -> bool:
        """Whether failures of this kind keep recurring for a source."""
        ...


class NotificationSender(Protocol):
    """Protocol for alert delivery."""

    async def send_critical_error_alert(self, kind: ErrorKind, context: ScrapingContext) -> None:
        ...

    async def send_high_error_rate_alert(self, source_id: str, error_rate: float) -> None:
        ...

    async def send_consecutive_failures_alert(self, source_id: str, failure_count: int) -> None:
        ...
