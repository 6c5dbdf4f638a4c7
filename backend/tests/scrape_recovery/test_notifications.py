"""
Tests for the logging notification sender.
"""
import logging
from datetime import UTC, datetime

import pytest

from backend.src.scrape_recovery.notifications import (
    CONSECUTIVE_FAILURES_ALERT_COOLDOWN,
    CRITICAL_ALERT_COOLDOWN,
    ERROR_RATE_ALERT_COOLDOWN,
    SENT_ALERTS_HISTORY,
    AlertSeverity,
    LoggingNotificationSender,
)
from backend.src.scrape_recovery.types import ErrorKind, ScrapingContext


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sender(clock):
    return LoggingNotificationSender(clock=clock)


@pytest.fixture
def context():
    return ScrapingContext(source_id="doe-grants", job_id="job-3", source_url="https://example.org")


class TestLoggingNotificationSender:
    """Test cases for LoggingNotificationSender."""

    @pytest.mark.asyncio
    async def test_critical_alert(self, sender, caplog):
        context = ScrapingContext(
            source_id="doe-grants",
            job_id="job-3",
            source_url="https://example.org",
            started_at=datetime(2026, 3, 1, 12, 0, tzinfo=UTC),
            user_agent="grant-bot/1.0",
            proxy_used="http://proxy-2:3128"
        )

        with caplog.at_level(logging.WARNING):
            await sender.send_critical_error_alert(ErrorKind.STORAGE, context)

        assert len(sender.sent_alerts) == 1
        alert = sender.sent_alerts[0]
        assert alert.severity == AlertSeverity.CRITICAL
        assert alert.metadata["source_id"] == "doe-grants"
        assert alert.metadata["error_kind"] == "storage"
        assert alert.metadata["started_at"] == "2026-03-01T12:00:00+00:00"
        assert alert.metadata["user_agent"] == "grant-bot/1.0"
        assert alert.metadata["proxy_used"] == "http://proxy-2:3128"
        assert "storage" in caplog.text

    @pytest.mark.asyncio
    async def test_critical_cooldown(self, sender, clock, context):
        await sender.send_critical_error_alert(ErrorKind.STORAGE, context)
        await sender.send_critical_error_alert(ErrorKind.STORAGE, context)
        assert len(sender.sent_alerts) == 1

        # Different kind has its own cooldown
        await sender.send_critical_error_alert(ErrorKind.AUTHENTICATION, context)
        assert len(sender.sent_alerts) == 2

        clock.now += CRITICAL_ALERT_COOLDOWN
        await sender.send_critical_error_alert(ErrorKind.STORAGE, context)
        assert len(sender.sent_alerts) == 3

    @pytest.mark.asyncio
    async def test_error_rate_cooldown(self, sender, clock):
        await sender.send_high_error_rate_alert("doe-grants", 0.8)
        clock.now += CRITICAL_ALERT_COOLDOWN
        await sender.send_high_error_rate_alert("doe-grants", 0.9)
        assert len(sender.sent_alerts) == 1

        await sender.send_high_error_rate_alert("other-source", 0.9)
        assert len(sender.sent_alerts) == 2

        clock.now += ERROR_RATE_ALERT_COOLDOWN
        await sender.send_high_error_rate_alert("doe-grants", 0.9)
        assert len(sender.sent_alerts) == 3
        assert sender.sent_alerts[-1].severity == AlertSeverity.HIGH
        assert "90.0%" in sender.sent_alerts[-1].message

    @pytest.mark.asyncio
    async def test_consecutive_failures_cooldown(self, sender, clock):
        await sender.send_consecutive_failures_alert("doe-grants", 5)
        clock.now += ERROR_RATE_ALERT_COOLDOWN
        await sender.send_consecutive_failures_alert("doe-grants", 5)
        assert len(sender.sent_alerts) == 1

        clock.now += CONSECUTIVE_FAILURES_ALERT_COOLDOWN
        await sender.send_consecutive_failures_alert("doe-grants", 5)
        assert len(sender.sent_alerts) == 2
        assert sender.sent_alerts[-1].metadata["failure_count"] == 5

    @pytest.mark.asyncio
    async def test_sent_alerts_bounded(self, clock):
        sender = LoggingNotificationSender(clock=clock, history_size=10)

        for i in range(50):
            clock.now += CONSECUTIVE_FAILURES_ALERT_COOLDOWN
            await sender.send_consecutive_failures_alert("doe-grants", i)

        assert len(sender.sent_alerts) == 10
        assert sender.sent_alerts[0].metadata["failure_count"] == 40
        assert sender.sent_alerts[-1].metadata["failure_count"] == 49

    def test_default_history_size(self, sender):
        assert sender.sent_alerts.maxlen == SENT_ALERTS_HISTORY

    @pytest.mark.asyncio
    async def test_clear_cooldowns(self, sender):
        await sender.send_consecutive_failures_alert("doe-grants", 5)
        await sender.clear_cooldowns()
        await sender.send_consecutive_failures_alert("doe-grants", 5)

        assert len(sender.sent_alerts) == 2
