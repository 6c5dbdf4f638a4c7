"""
Error handling and recovery for scraping pipelines.

Classifies scraping failures, retries them with bounded backoff, plans what
happens to failures that cannot be retried, degrades partially failed
batches gracefully and raises alerts when a source keeps failing.
"""
from .classification import classify
from .config import (
    ErrorHandlerConfig,
    GracefulDegradationConfig,
    NotificationThresholds,
    RetryConfig,
    load_config,
)
from .degradation import DegradationController
from .exceptions import (
    AttemptTimeoutError,
    ConfigurationError,
    RecoveryError,
    RetryCancelledError,
    ScrapingError,
)
from .handler import ErrorHandler
from .notifications import Alert, AlertSeverity, LoggingNotificationSender
from .planner import ResolutionPlanner
from .retry import RetryEngine
from .tracking import InMemoryErrorTracker, SQLAlchemyErrorTracker
from .types import (
    DegradationOutcome,
    ErrorKind,
    ErrorMetrics,
    ErrorTracker,
    FallbackStrategy,
    NotificationSender,
    RawFailure,
    Resolution,
    ResolutionAction,
    ScrapingContext,
    SourceOutcome,
)

__all__ = [
    # Entry points
    'ErrorHandler',
    'classify',

    # Components
    'RetryEngine',
    'ResolutionPlanner',
    'DegradationController',
    'InMemoryErrorTracker',
    'SQLAlchemyErrorTracker',
    'LoggingNotificationSender',

    # Configuration
    'ErrorHandlerConfig',
    'RetryConfig',
    'NotificationThresholds',
    'GracefulDegradationConfig',
    'load_config',

    # Types
    'ErrorKind',
    'ResolutionAction',
    'FallbackStrategy',
    'RawFailure',
    'ScrapingContext',
    'Resolution',
    'DegradationOutcome',
    'SourceOutcome',
    'ErrorMetrics',
    'ErrorTracker',
    'NotificationSender',
    'Alert',
    'AlertSeverity',

    # Exceptions
    'RecoveryError',
    'ScrapingError',
    'AttemptTimeoutError',
    'RetryCancelledError',
    'ConfigurationError',
]
