"""SQLAlchemy models for error tracking."""
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Float, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class SourceOutcomeModel(Base):
    """One success or failure of a scraping operation for a source.

    Timestamps are stored as naive UTC.
    """

    __tablename__ = 'source_outcomes'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    source_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    job_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    attempt_number: Mapped[int | None] = mapped_column(Integer, nullable=True)

    success: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Failure details, empty for successes
    error_kind: Mapped[str | None] = mapped_column(String(50), nullable=True, index=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    error_type: Mapped[str | None] = mapped_column(String(255), nullable=True)
    url: Mapped[str | None] = mapped_column(Text, nullable=True)
    stack: Mapped[str | None] = mapped_column(Text, nullable=True)

    occurred_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)

    def __repr__(self) -> str:
        return (
            f"<SourceOutcomeModel(source_id='{self.source_id}', "
            f"success={self.success}, error_kind='{self.error_kind}')>"
        )


class ErrorMetricModel(Base):
    """Aggregated counters per error kind."""

    __tablename__ = 'error_metrics'

    error_kind: Mapped[str] = mapped_column(String(50), primary_key=True)

    count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_occurrence: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    successful_retries: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    failed_retries: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    average_resolution_ms: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    def __repr__(self) -> str:
        return f"<ErrorMetricModel(error_kind='{self.error_kind}', count={self.count})>"


class RecurringErrorCounterModel(Base):
    """Per-(source, kind) occurrence counter for recurring-error detection."""

    __tablename__ = 'recurring_error_counters'

    source_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    error_kind: Mapped[str] = mapped_column(String(50), primary_key=True)

    count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    first_seen: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    last_seen: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    def __repr__(self) -> str:
        return (
            f"<RecurringErrorCounterModel(source_id='{self.source_id}', "
            f"error_kind='{self.error_kind}', count={self.count})>"
        )
