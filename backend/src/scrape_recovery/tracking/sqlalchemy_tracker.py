"""SQLAlchemy-based error tracker."""
import asyncio
from pathlib import Path

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from ..classification import classify
from ..types import ErrorKind, ErrorMetrics, RawFailure, ScrapingContext, SourceOutcome
from .base import BaseErrorTracker
from .repository import ErrorTrackingRepository


class SQLAlchemyErrorTracker(BaseErrorTracker):
    """Error tracker that keeps history, metrics and recurring counters in a database.

    Survives process restarts, so rolling error rates and recurring-error
    detection carry across pipeline runs.
    """

    def __init__(self, database_url: str | None = None, **kwargs):
        """Initialize SQLAlchemy error tracker.

        Args:
            database_url: SQLAlchemy database URL. Defaults to SQLite in user data dir.
            **kwargs: Window, history bound, recurring threshold and clock, see BaseErrorTracker.

        """
        super().__init__(**kwargs)
        if database_url is None:
            data_dir = Path.home() / ".scrape-recovery" / "data"
            data_dir.mkdir(parents=True, exist_ok=True)
            db_path = data_dir / "errors.db"
            database_url = f"sqlite+aiosqlite:///{db_path}"

        self.database_url = database_url
        self.engine = create_async_engine(
            database_url,
            echo=False,
            pool_pre_ping=True,
        )
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False
        )
        self._initialized = False
        self._init_lock = asyncio.Lock()

    async def _ensure_initialized(self):
        """Ensure database tables are created."""
        if self._initialized:
            return

        async with self._init_lock:
            if self._initialized:
                return

            from .models import Base

            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)

            self._initialized = True

    async def close(self) -> None:
        """Dispose of the engine's connection pool."""
        await self.engine.dispose()

    async def track_error(self, failure: RawFailure, context: ScrapingContext) -> None:
        await self._ensure_initialized()
        kind = classify(failure)

        async with self.session_factory() as session:
            repository = ErrorTrackingRepository(session)
            await repository.record_failure(failure, context, kind, self.window, self.max_history)

        self._log_failure(failure, context, kind)

    async def record_source_success(self, context: ScrapingContext) -> None:
        await self._ensure_initialized()

        async with self.session_factory() as session:
            repository = ErrorTrackingRepository(session)
            await repository.record_success(context, self.now(), self.max_history)

    async def record_successful_retry(self, kind: ErrorKind, resolution_time_ms: float) -> None:
        await self._ensure_initialized()

        async with self.session_factory() as session:
            repository = ErrorTrackingRepository(session)
            await repository.record_retry_outcome(kind, success=True, resolution_time_ms=resolution_time_ms)

    async def record_failed_retry(self, kind: ErrorKind) -> None:
        await self._ensure_initialized()

        async with self.session_factory() as session:
            repository = ErrorTrackingRepository(session)
            await repository.record_retry_outcome(kind, success=False)

    async def get_source_error_history(self, source_id: str, limit: int = 50) -> list[SourceOutcome]:
        if limit <= 0:
            return []
        await self._ensure_initialized()

        async with self.session_factory() as session:
            repository = ErrorTrackingRepository(session)
            return await repository.get_history(source_id, limit)

    async def get_source_error_rate(self, source_id: str) -> float:
        await self._ensure_initialized()

        async with self.session_factory() as session:
            repository = ErrorTrackingRepository(session)
            failures, total = await repository.count_outcomes_since(source_id, self.now() - self.window)

        if total == 0:
            return 0.0
        return failures / total

    async def has_recurring_errors(self, source_id: str, kind: ErrorKind) -> bool:
        await self._ensure_initialized()

        async with self.session_factory() as session:
            repository = ErrorTrackingRepository(session)
            counter = await repository.get_recurring_counter(source_id, kind)

        if counter is None:
            return False
        return counter.is_recurring(self.recurring_threshold, self.window, self.now())

    async def get_error_metrics(self) -> dict[ErrorKind, ErrorMetrics]:
        await self._ensure_initialized()

        async with self.session_factory() as session:
            repository = ErrorTrackingRepository(session)
            return await repository.get_metrics()

    async def get_recent_errors(self, limit: int = 100) -> list[SourceOutcome]:
        await self._ensure_initialized()

        async with self.session_factory() as session:
            repository = ErrorTrackingRepository(session)
            return await repository.get_recent_failures(limit)

    async def clear_source_errors(self, source_id: str) -> None:
        await self._ensure_initialized()

        async with self.session_factory() as session:
            repository = ErrorTrackingRepository(session)
            await repository.clear_source(source_id)

    async def get_statistics(self) -> dict:
        stats = await super().get_statistics()
        stats['type'] = 'sqlalchemy'
        stats['database_url'] = self.database_url
        return stats
