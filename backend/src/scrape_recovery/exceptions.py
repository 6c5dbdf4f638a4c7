"""
Exceptions for the scrape recovery system.
"""
from .types import ErrorKind


class RecoveryError(Exception):
    """Base exception for the recovery system."""

    def __init__(self, message: str, kind: ErrorKind | None = None):
        super().__init__(message)
        self.kind = kind


class ScrapingError(RecoveryError):
    """Raised by fetch/parse collaborators that already know the failure kind."""

    def __init__(
        self,
        message: str,
        kind: ErrorKind | None = None,
        url: str | None = None,
        status_code: int | None = None
    ):
        super().__init__(message, kind)
        self.url = url
        self.status_code = status_code


class AttemptTimeoutError(RecoveryError):
    """Raised when a single attempt exceeds its timeout."""

    def __init__(self, message: str, timeout: float):
        super().__init__(message, ErrorKind.TIMEOUT)
        self.timeout = timeout


class RetryCancelledError(RecoveryError):
    """Raised when an attempt sequence is cancelled between attempts."""

    def __init__(self, message: str, attempts: int):
        super().__init__(message)
        self.attempts = attempts


class ConfigurationError(RecoveryError, ValueError):
    """Raised for out-of-range configuration values."""

    def __init__(self, message: str, field_name: str):
        super().__init__(message)
        self.field_name = field_name
