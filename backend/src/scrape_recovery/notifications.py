"""
Logging notification sender with per-alert cooldowns.

Alerts are rendered into log records only; delivering them to mail, chat or
webhooks is left to whatever handlers the host application configures.
"""
import asyncio
import logging
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from .types import ErrorKind, ScrapingContext

logger = logging.getLogger(__name__)

# Cooldowns in seconds
CRITICAL_ALERT_COOLDOWN = 15 * 60
ERROR_RATE_ALERT_COOLDOWN = 30 * 60
CONSECUTIVE_FAILURES_ALERT_COOLDOWN = 60 * 60
# Most recent alerts kept on the sender for inspection
SENT_ALERTS_HISTORY = 100


class AlertSeverity(Enum):
    """Severity attached to an alert."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass
class Alert:
    """A rendered alert."""

    title: str
    message: str
    severity: AlertSeverity
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    metadata: dict[str, Any] = field(default_factory=dict)


_LOG_LEVELS = {
    AlertSeverity.LOW: logging.INFO,
    AlertSeverity.MEDIUM: logging.WARNING,
    AlertSeverity.HIGH: logging.WARNING,
    AlertSeverity.CRITICAL: logging.CRITICAL,
}


class LoggingNotificationSender:
    """Notification sender that writes alerts to the log.

    Repeats of the same alert (same kind of alert for the same source) are
    suppressed until the alert's cooldown has elapsed.

    ``sent_alerts`` keeps only the most recent ``history_size`` alerts.
    """

    def __init__(self, clock: Callable[[], float] | None = None, history_size: int = SENT_ALERTS_HISTORY):
        self._clock = clock or time.monotonic
        self._cooldowns: dict[str, float] = {}
        self._lock = asyncio.Lock()
        self.sent_alerts: deque[Alert] = deque(maxlen=history_size)

    async def _claim(self, alert_key: str, cooldown: float) -> bool:
        """Reserve an alert slot; False while the key is cooling down."""
        async with self._lock:
            now = self._clock()
            expires_at = self._cooldowns.get(alert_key)
            if expires_at is not None and now < expires_at:
                logger.debug(f"Alert {alert_key} suppressed, in cooldown")
                return False
            self._cooldowns[alert_key] = now + cooldown
            return True

    def _emit(self, alert: Alert) -> None:
        self.sent_alerts.append(alert)
        logger.log(
            _LOG_LEVELS[alert.severity],
            f"[{alert.severity.value.upper()}] {alert.title}: {alert.message}"
        )

    async def send_critical_error_alert(self, kind: ErrorKind, context: ScrapingContext) -> None:
        if not await self._claim(f"critical_{kind.value}_{context.source_id}", CRITICAL_ALERT_COOLDOWN):
            return

        self._emit(Alert(
            title=f"Critical scraping error: {kind.value}",
            message=(
                f"Critical error in source {context.source_id} "
                f"(job {context.job_id}, url {context.source_url}, attempt {context.attempt_number}); "
                f"requires immediate attention"
            ),
            severity=AlertSeverity.CRITICAL,
            metadata={
                "error_kind": kind.value,
                "source_id": context.source_id,
                "job_id": context.job_id,
                "source_url": context.source_url,
                "attempt_number": context.attempt_number,
                "started_at": context.started_at.isoformat(),
                "user_agent": context.user_agent,
                "proxy_used": context.proxy_used,
            }
        ))

    async def send_high_error_rate_alert(self, source_id: str, error_rate: float) -> None:
        if not await self._claim(f"high_error_rate_{source_id}", ERROR_RATE_ALERT_COOLDOWN):
            return

        self._emit(Alert(
            title="High error rate detected",
            message=(
                f"Source {source_id} has an error rate of {error_rate * 100:.1f}%; "
                f"check for site structure changes, blocking or connectivity problems"
            ),
            severity=AlertSeverity.HIGH,
            metadata={"source_id": source_id, "error_rate": error_rate}
        ))

    async def send_consecutive_failures_alert(self, source_id: str, failure_count: int) -> None:
        if not await self._claim(f"consecutive_failures_{source_id}", CONSECUTIVE_FAILURES_ALERT_COOLDOWN):
            return

        self._emit(Alert(
            title="Consecutive failures",
            message=f"Source {source_id} has failed {failure_count} consecutive times",
            severity=AlertSeverity.MEDIUM,
            metadata={"source_id": source_id, "failure_count": failure_count}
        ))

    async def clear_cooldowns(self) -> None:
        async with self._lock:
            self._cooldowns.clear()
