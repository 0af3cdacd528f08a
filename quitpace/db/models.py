from __future__ import annotations

from datetime import date, datetime, timezone

from sqlalchemy import BigInteger, Date, DateTime, Float, Index, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all database models."""


class PlanSettings(Base):
    """Stored quit plan (single row).

    Written once by onboarding, read by the timer engine. Times of day are
    stored as "HH:MM" strings.
    """

    __tablename__ = "plan_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=1)
    daily_baseline_count: Mapped[int] = mapped_column(Integer, nullable=False)
    plan_kind: Mapped[str] = mapped_column(String, nullable=False, default="balanced")
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    active_window_start: Mapped[str] = mapped_column(String(5), nullable=False, default="07:00")
    active_window_end: Mapped[str] = mapped_column(String(5), nullable=False, default="23:00")
    pack_price: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    units_per_pack: Mapped[int] = mapped_column(Integer, nullable=False, default=20)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))


class SmokingEvent(Base):
    """Recorded smoking event.

    Events are never updated - only inserted. The autoincrement id preserves
    insertion order.
    """

    __tablename__ = "smoking_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    occurred_at_ms: Mapped[int] = mapped_column(BigInteger, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (Index("idx_smoking_events_occurred_at", "occurred_at_ms"),)
