"""
Tests for the in-memory and SQLAlchemy error trackers.

Both backends run the same cases and must agree.
"""
from datetime import UTC, datetime, timedelta

import pytest
import pytest_asyncio

from backend.src.scrape_recovery.tracking import InMemoryErrorTracker, SQLAlchemyErrorTracker
from backend.src.scrape_recovery.types import ErrorKind, RawFailure, ScrapingContext


class FakeClock:
    def __init__(self):
        self.now = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest_asyncio.fixture(params=["memory", "sqlalchemy"])
async def tracker(request, clock, tmp_path):
    """Each test runs once per backend."""
    if request.param == "memory":
        yield InMemoryErrorTracker(clock=clock, max_history=5)
        return

    tracker = SQLAlchemyErrorTracker(
        f"sqlite+aiosqlite:///{tmp_path / 'errors.db'}",
        clock=clock,
        max_history=5
    )
    yield tracker
    await tracker.close()


def context(source_id="nsf-grants", attempt=1):
    return ScrapingContext(
        source_id=source_id,
        job_id="job-1",
        source_url="https://grants.example.org",
        attempt_number=attempt
    )


async def fail(tracker, clock, message, source_id="nsf-grants"):
    await tracker.track_error(RawFailure(message=message, timestamp=clock()), context(source_id))


class TestErrorTrackers:
    """Behaviour shared by every tracker backend."""

    @pytest.mark.asyncio
    async def test_error_rate(self, tracker, clock):
        assert await tracker.get_source_error_rate("nsf-grants") == 0.0

        for _ in range(3):
            await fail(tracker, clock, "connection reset")
        await tracker.record_source_success(context())

        assert await tracker.get_source_error_rate("nsf-grants") == 0.75
        assert await tracker.get_source_error_rate("other") == 0.0

    @pytest.mark.asyncio
    async def test_error_rate_uses_window(self, tracker, clock):
        await fail(tracker, clock, "connection reset")
        await fail(tracker, clock, "connection reset")
        clock.advance(hours=2)
        await tracker.record_source_success(context())

        assert await tracker.get_source_error_rate("nsf-grants") == 0.0

    @pytest.mark.asyncio
    async def test_history_oldest_first(self, tracker, clock):
        await fail(tracker, clock, "first timeout")
        clock.advance(seconds=1)
        await fail(tracker, clock, "second timeout")
        clock.advance(seconds=1)
        await tracker.record_source_success(context())

        history = await tracker.get_source_error_history("nsf-grants", limit=2)

        assert [o.success for o in history] == [False, True]
        assert history[0].message == "second timeout"
        assert history[0].kind == ErrorKind.TIMEOUT
        assert history[0].timestamp == clock.now - timedelta(seconds=1)

    @pytest.mark.asyncio
    async def test_history_bounded(self, tracker, clock):
        for i in range(8):
            await fail(tracker, clock, f"timeout {i}")

        history = await tracker.get_source_error_history("nsf-grants", limit=50)

        assert len(history) == 5
        assert [o.message for o in history] == [f"timeout {i}" for i in range(3, 8)]

    @pytest.mark.asyncio
    async def test_recurring_errors(self, tracker, clock):
        await fail(tracker, clock, "Element not found: .title")
        assert await tracker.has_recurring_errors("nsf-grants", ErrorKind.PARSING) is False

        await fail(tracker, clock, "Element not found: .title")
        assert await tracker.has_recurring_errors("nsf-grants", ErrorKind.PARSING) is True
        assert await tracker.has_recurring_errors("nsf-grants", ErrorKind.NETWORK) is False
        assert await tracker.has_recurring_errors("other", ErrorKind.PARSING) is False

    @pytest.mark.asyncio
    async def test_recurring_reset_by_success(self, tracker, clock):
        await fail(tracker, clock, "parse failure")
        await fail(tracker, clock, "parse failure")
        await tracker.record_source_success(context())

        assert await tracker.has_recurring_errors("nsf-grants", ErrorKind.PARSING) is False

        await fail(tracker, clock, "parse failure")
        assert await tracker.has_recurring_errors("nsf-grants", ErrorKind.PARSING) is False

    @pytest.mark.asyncio
    async def test_recurring_expires_with_window(self, tracker, clock):
        await fail(tracker, clock, "parse failure")
        await fail(tracker, clock, "parse failure")
        clock.advance(hours=2)

        assert await tracker.has_recurring_errors("nsf-grants", ErrorKind.PARSING) is False

        await fail(tracker, clock, "parse failure")
        assert await tracker.has_recurring_errors("nsf-grants", ErrorKind.PARSING) is False

    @pytest.mark.asyncio
    async def test_retry_metrics(self, tracker, clock):
        await fail(tracker, clock, "connection reset")
        await fail(tracker, clock, "connection reset")
        await tracker.record_successful_retry(ErrorKind.NETWORK, 100.0)
        await tracker.record_successful_retry(ErrorKind.NETWORK, 300.0)
        await tracker.record_failed_retry(ErrorKind.NETWORK)
        await tracker.record_failed_retry(ErrorKind.CAPTCHA)

        metrics = await tracker.get_error_metrics()

        network = metrics[ErrorKind.NETWORK]
        assert network.count == 2
        assert network.successful_retries == 2
        assert network.failed_retries == 1
        assert network.average_resolution_ms == pytest.approx(200.0)
        assert network.last_occurrence == clock.now
        assert metrics[ErrorKind.CAPTCHA].count == 0
        assert metrics[ErrorKind.CAPTCHA].failed_retries == 1

    @pytest.mark.asyncio
    async def test_recent_errors_across_sources(self, tracker, clock):
        await fail(tracker, clock, "timeout a", source_id="a")
        clock.advance(seconds=1)
        await fail(tracker, clock, "timeout b", source_id="b")
        clock.advance(seconds=1)
        await tracker.record_source_success(context("a"))

        recent = await tracker.get_recent_errors(limit=10)

        assert [o.message for o in recent] == ["timeout b", "timeout a"]

    @pytest.mark.asyncio
    async def test_clear_source_errors(self, tracker, clock):
        await fail(tracker, clock, "parse failure")
        await fail(tracker, clock, "parse failure")
        await fail(tracker, clock, "timeout", source_id="other")

        await tracker.clear_source_errors("nsf-grants")

        assert await tracker.get_source_error_history("nsf-grants") == []
        assert await tracker.has_recurring_errors("nsf-grants", ErrorKind.PARSING) is False
        assert len(await tracker.get_source_error_history("other")) == 1

    @pytest.mark.asyncio
    async def test_statistics(self, tracker, clock):
        await fail(tracker, clock, "timeout")
        await fail(tracker, clock, "database is locked")
        await tracker.record_successful_retry(ErrorKind.TIMEOUT, 50.0)

        stats = await tracker.get_statistics()

        assert stats["total_errors"] == 2
        assert stats["successful_retries"] == 1
        assert stats["by_kind"]["storage"]["count"] == 1


class TestSQLAlchemyErrorTracker:
    """Backend-specific behaviour."""

    @pytest.mark.asyncio
    async def test_state_survives_new_instance(self, tmp_path, clock):
        url = f"sqlite+aiosqlite:///{tmp_path / 'errors.db'}"

        first = SQLAlchemyErrorTracker(url, clock=clock)
        await fail(first, clock, "parse failure")
        await fail(first, clock, "parse failure")
        await first.close()

        second = SQLAlchemyErrorTracker(url, clock=clock)
        try:
            assert await second.has_recurring_errors("nsf-grants", ErrorKind.PARSING) is True
            assert await second.get_source_error_rate("nsf-grants") == 1.0
        finally:
            await second.close()

    @pytest.mark.asyncio
    async def test_statistics_identify_backend(self, tmp_path, clock):
        tracker = SQLAlchemyErrorTracker(f"sqlite+aiosqlite:///{tmp_path / 'errors.db'}", clock=clock)
        try:
            stats = await tracker.get_statistics()
        finally:
            await tracker.close()

        assert stats["type"] == "sqlalchemy"
        assert stats["total_errors"] == 0
