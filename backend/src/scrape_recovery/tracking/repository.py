"""Repository pattern implementation for error tracking persistence."""
import logging
from datetime import UTC, datetime, timedelta

from sqlalchemy import delete, desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..types import ErrorKind, ErrorMetrics, RawFailure, ScrapingContext, SourceOutcome
from .base import RecurringErrorCounter, as_utc
from .models import ErrorMetricModel, RecurringErrorCounterModel, SourceOutcomeModel

logger = logging.getLogger(__name__)


def _to_db(value: datetime) -> datetime:
    return as_utc(value).replace(tzinfo=None)


def _from_db(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    return value.replace(tzinfo=UTC)


class ErrorTrackingRepository:
    """Repository for error tracking persistence operations.

    Wraps one async session; write methods commit, and roll back on failure.
    """

    def __init__(self, session: AsyncSession):
        """Initialize with async database session."""
        self.session = session

    async def record_failure(
        self,
        failure: RawFailure,
        context: ScrapingContext,
        kind: ErrorKind,
        window: timedelta,
        max_history: int
    ) -> None:
        """Store a failure and update its metrics and recurring counter in one transaction."""
        occurred_at = _to_db(failure.timestamp)
        try:
            self.session.add(SourceOutcomeModel(
                source_id=context.source_id,
                job_id=context.job_id,
                attempt_number=context.attempt_number,
                success=False,
                error_kind=kind.value,
                error_message=failure.message,
                error_type=failure.error_type,
                url=failure.url,
                stack=failure.stack,
                occurred_at=occurred_at
            ))

            metric = await self.session.get(ErrorMetricModel, kind.value)
            if metric is None:
                metric = ErrorMetricModel(
                    error_kind=kind.value,
                    count=0,
                    successful_retries=0,
                    failed_retries=0,
                    average_resolution_ms=0.0
                )
                self.session.add(metric)
            metric.count += 1
            metric.last_occurrence = occurred_at

            counter_model = await self.session.get(
                RecurringErrorCounterModel, (context.source_id, kind.value)
            )
            counter = self._model_to_counter(counter_model)
            counter.record(as_utc(failure.timestamp), window)
            if counter_model is None:
                counter_model = RecurringErrorCounterModel(
                    source_id=context.source_id,
                    error_kind=kind.value
                )
                self.session.add(counter_model)
            counter_model.count = counter.count
            counter_model.first_seen = _to_db(counter.first_seen)
            counter_model.last_seen = _to_db(counter.last_seen)

            await self.session.flush()
            await self._trim_history(context.source_id, max_history)
            await self.session.commit()
            logger.debug(f"Recorded {kind.value} failure for source {context.source_id}")

        except Exception as e:
            await self.session.rollback()
            logger.error(f"Failed to record failure for source {context.source_id}: {e}")
            raise

    async def record_success(self, context: ScrapingContext, occurred_at: datetime, max_history: int) -> None:
        """Store a success and reset the source's recurring counters."""
        try:
            self.session.add(SourceOutcomeModel(
                source_id=context.source_id,
                job_id=context.job_id,
                attempt_number=context.attempt_number,
                success=True,
                occurred_at=_to_db(occurred_at)
            ))
            await self.session.execute(
                delete(RecurringErrorCounterModel).where(
                    RecurringErrorCounterModel.source_id == context.source_id
                )
            )
            await self.session.flush()
            await self._trim_history(context.source_id, max_history)
            await self.session.commit()

        except Exception as e:
            await self.session.rollback()
            logger.error(f"Failed to record success for source {context.source_id}: {e}")
            raise

    async def _trim_history(self, source_id: str, max_history: int) -> None:
        stale_ids = (
            select(SourceOutcomeModel.id)
            .where(SourceOutcomeModel.source_id == source_id)
            .order_by(desc(SourceOutcomeModel.id))
            .offset(max_history)
        )
        result = await self.session.execute(stale_ids)
        ids = list(result.scalars().all())
        if ids:
            await self.session.execute(
                delete(SourceOutcomeModel).where(SourceOutcomeModel.id.in_(ids))
            )

    async def record_retry_outcome(
        self,
        kind: ErrorKind,
        success: bool,
        resolution_time_ms: float | None = None
    ) -> None:
        """Update retry counters for an error kind."""
        try:
            metric = await self.session.get(ErrorMetricModel, kind.value)
            if metric is None:
                metric = ErrorMetricModel(
                    error_kind=kind.value,
                    count=0,
                    successful_retries=0,
                    failed_retries=0,
                    average_resolution_ms=0.0
                )
                self.session.add(metric)

            if success:
                total = metric.successful_retries + 1
                metric.average_resolution_ms = (
                    metric.average_resolution_ms * metric.successful_retries + (resolution_time_ms or 0.0)
                ) / total
                metric.successful_retries = total
            else:
                metric.failed_retries += 1

            await self.session.commit()

        except Exception as e:
            await self.session.rollback()
            logger.error(f"Failed to record retry outcome for {kind.value}: {e}")
            raise

    async def get_history(self, source_id: str, limit: int) -> list[SourceOutcome]:
        """Most recent outcomes for a source, oldest first."""
        try:
            stmt = (
                select(SourceOutcomeModel)
                .where(SourceOutcomeModel.source_id == source_id)
                .order_by(desc(SourceOutcomeModel.id))
                .limit(limit)
            )
            result = await self.session.execute(stmt)
            models = list(result.scalars().all())
            return [self._model_to_outcome(model) for model in reversed(models)]
        except Exception as e:
            logger.error(f"Failed to load history for source {source_id}: {e}")
            raise

    async def count_outcomes_since(self, source_id: str, cutoff: datetime) -> tuple[int, int]:
        """Return (failures, total) for a source since ``cutoff``."""
        try:
            stmt = (
                select(SourceOutcomeModel.success, func.count(SourceOutcomeModel.id))
                .where(
                    SourceOutcomeModel.source_id == source_id,
                    SourceOutcomeModel.occurred_at > _to_db(cutoff)
                )
                .group_by(SourceOutcomeModel.success)
            )
            result = await self.session.execute(stmt)
            counts = {bool(success): count for success, count in result.all()}
            failures = counts.get(False, 0)
            return failures, failures + counts.get(True, 0)
        except Exception as e:
            logger.error(f"Failed to count outcomes for source {source_id}: {e}")
            raise

    async def get_recurring_counter(self, source_id: str, kind: ErrorKind) -> RecurringErrorCounter | None:
        try:
            model = await self.session.get(RecurringErrorCounterModel, (source_id, kind.value))
            if model is None:
                return None
            return self._model_to_counter(model)
        except Exception as e:
            logger.error(f"Failed to load recurring counter for {source_id}/{kind.value}: {e}")
            raise

    async def get_metrics(self) -> dict[ErrorKind, ErrorMetrics]:
        try:
            result = await self.session.execute(select(ErrorMetricModel))
            return {
                ErrorKind(model.error_kind): ErrorMetrics(
                    kind=ErrorKind(model.error_kind),
                    count=model.count,
                    last_occurrence=_from_db(model.last_occurrence),
                    average_resolution_ms=model.average_resolution_ms,
                    successful_retries=model.successful_retries,
                    failed_retries=model.failed_retries
                )
                for model in result.scalars().all()
            }
        except Exception as e:
            logger.error(f"Failed to load error metrics: {e}")
            raise

    async def get_recent_failures(self, limit: int) -> list[SourceOutcome]:
        """Most recent failures across all sources, newest first."""
        try:
            stmt = (
                select(SourceOutcomeModel)
                .where(SourceOutcomeModel.success.is_(False))
                .order_by(desc(SourceOutcomeModel.occurred_at), desc(SourceOutcomeModel.id))
                .limit(limit)
            )
            result = await self.session.execute(stmt)
            return [self._model_to_outcome(model) for model in result.scalars().all()]
        except Exception as e:
            logger.error(f"Failed to load recent failures: {e}")
            raise

    async def clear_source(self, source_id: str) -> None:
        """Delete a source's history and recurring counters."""
        try:
            await self.session.execute(
                delete(SourceOutcomeModel).where(SourceOutcomeModel.source_id == source_id)
            )
            await self.session.execute(
                delete(RecurringErrorCounterModel).where(
                    RecurringErrorCounterModel.source_id == source_id
                )
            )
            await self.session.commit()
            logger.info(f"Cleared error history for source {source_id}")
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Failed to clear source {source_id}: {e}")
            raise

    def _model_to_outcome(self, model: SourceOutcomeModel) -> SourceOutcome:
        """Convert database model to SourceOutcome."""
        return SourceOutcome(
            success=model.success,
            timestamp=_from_db(model.occurred_at),
            kind=ErrorKind(model.error_kind) if model.error_kind else None,
            message=model.error_message
        )

    def _model_to_counter(self, model: RecurringErrorCounterModel | None) -> RecurringErrorCounter:
        if model is None:
            return RecurringErrorCounter()
        return RecurringErrorCounter(
            count=model.count,
            first_seen=_from_db(model.first_seen),
            last_seen=_from_db(model.last_seen)
        )
