"""Ordered error patterns for classification.

Patterns are evaluated top to bottom and the first match wins, so a message
mentioning both a timeout and the database classifies as a timeout.
"""
from dataclasses import dataclass

from ..types import ErrorKind


@dataclass(frozen=True)
class KindPattern:
    """Substring indicators that identify one error kind."""

    kind: ErrorKind
    indicators: tuple[str, ...]

    def matches(self, text: str) -> bool:
        """Check lowercased text for any indicator."""
        return any(indicator in text for indicator in self.indicators)


TIMEOUT_PATTERN = KindPattern(
    kind=ErrorKind.TIMEOUT,
    indicators=("timeout", "timed out", "etimedout"),
)

NETWORK_PATTERN = KindPattern(
    kind=ErrorKind.NETWORK,
    indicators=("econnrefused", "enotfound", "econnreset", "network", "connection"),
)

RATE_LIMIT_PATTERN = KindPattern(
    kind=ErrorKind.RATE_LIMIT,
    indicators=("rate limit", "429", "too many requests"),
)

AUTHENTICATION_PATTERN = KindPattern(
    kind=ErrorKind.AUTHENTICATION,
    indicators=("401", "403", "unauthorized", "forbidden"),
)

CAPTCHA_PATTERN = KindPattern(
    kind=ErrorKind.CAPTCHA,
    indicators=("captcha", "recaptcha", "bot detection"),
)

PARSING_PATTERN = KindPattern(
    kind=ErrorKind.PARSING,
    indicators=("parse", "selector", "element not found"),
)

STORAGE_PATTERN = KindPattern(
    kind=ErrorKind.STORAGE,
    indicators=("database", "sqlalchemy", "sql"),
)

PROXY_PATTERN = KindPattern(
    kind=ErrorKind.PROXY,
    indicators=("proxy", "tunnel"),
)

# Priority order
ALL_PATTERNS: tuple[KindPattern, ...] = (
    TIMEOUT_PATTERN,
    NETWORK_PATTERN,
    RATE_LIMIT_PATTERN,
    AUTHENTICATION_PATTERN,
    CAPTCHA_PATTERN,
    PARSING_PATTERN,
    STORAGE_PATTERN,
    PROXY_PATTERN,
)

# Unmatched messages fall back to NETWORK. This can misfile e.g. an
# unrecognised database driver error; kept for compatibility with existing
# dashboards and flagged for review rather than guessed at.
DEFAULT_KIND = ErrorKind.NETWORK
