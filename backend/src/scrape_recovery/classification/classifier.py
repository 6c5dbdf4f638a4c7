"""Failure classifier."""
import logging

from ..types import ErrorKind, RawFailure
from .patterns import ALL_PATTERNS, DEFAULT_KIND

logger = logging.getLogger(__name__)


def _haystack(failure: RawFailure) -> str:
    parts = [failure.message or ""]
    if failure.error_type:
        parts.append(failure.error_type)
    if failure.status_code is not None:
        parts.append(str(failure.status_code))
    return " ".join(parts).lower()


def classify(failure: RawFailure | BaseException | str) -> ErrorKind:
    """Map a failure to exactly one error kind.

    Accepts a RawFailure, an exception, or a bare message. Never raises.
    """
    if isinstance(failure, BaseException):
        failure = RawFailure.from_exception(failure)
    elif not isinstance(failure, RawFailure):
        failure = RawFailure(message=str(failure))

    if failure.kind_hint is not None:
        return failure.kind_hint

    text = _haystack(failure)
    for pattern in ALL_PATTERNS:
        if pattern.matches(text):
            return pattern.kind

    logger.debug(f"No pattern matched '{(failure.message or '')[:100]}', defaulting to {DEFAULT_KIND.value}")
    return DEFAULT_KIND
