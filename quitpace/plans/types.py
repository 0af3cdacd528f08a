"""Plan configuration and derived metrics.

PlanConfig is created once at onboarding and is immutable for the engine.
DerivedMetrics is never persisted: it is always recomputable from the
PlanConfig and "now".
"""

from datetime import date, datetime, time
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from quitpace.config.settings import settings
from quitpace.core.clock import resolve_timezone


class PlanKind(str, Enum):
    """Reduction plan chosen at onboarding."""

    GENTLE = "gentle"
    BALANCED = "balanced"
    AGGRESSIVE = "aggressive"


# Older stored plans used "slow" for the gentle plan
_PLAN_KIND_ALIASES = {"slow": PlanKind.GENTLE.value}


class PlanConfig(BaseModel):
    """User's quit plan.

    Attributes:
        daily_baseline_count: Cigarettes per day before the plan started
        plan_kind: Reduction plan (sets the plan horizon)
        start_date: Calendar date the plan started
        active_window_start: Time of day the user's active window opens
        active_window_end: Time of day the active window closes (may wrap past midnight)
        pack_price: Price of one pack
        units_per_pack: Cigarettes per pack
    """

    model_config = ConfigDict(frozen=True)

    daily_baseline_count: int
    plan_kind: PlanKind = PlanKind.BALANCED
    start_date: date
    active_window_start: time = time(7, 0)
    active_window_end: time = time(23, 0)
    pack_price: float = Field(default=0.0, ge=0)
    units_per_pack: int = Field(default=20, gt=0)

    @field_validator("plan_kind", mode="before")
    @classmethod
    def normalize_plan_kind(cls, value: object) -> object:
        if isinstance(value, str):
            lowered = value.strip().lower()
            return _PLAN_KIND_ALIASES.get(lowered, lowered)
        return value

    @field_validator("start_date", mode="before")
    @classmethod
    def parse_start_date(cls, value: object) -> object:
        """Accept a full ISO-8601 timestamp and keep its calendar date.

        Aware timestamps are converted to the configured timezone first, so the
        plan starts on the day the engine counts as day 0.
        """
        if isinstance(value, str) and ("T" in value or " " in value.strip()):
            value = datetime.fromisoformat(value.strip())
        if isinstance(value, datetime):
            if value.tzinfo is not None:
                return value.astimezone(resolve_timezone(settings.timezone)).date()
            return value.date()
        return value

    @field_validator("active_window_start", "active_window_end", mode="before")
    @classmethod
    def parse_clock_time(cls, value: object) -> object:
        """Parse "HH:MM" strings (single-digit hours allowed)."""
        if isinstance(value, str):
            try:
                return datetime.strptime(value.strip(), "%H:%M").time()
            except ValueError as e:
                raise ValueError(f"Expected time of day as HH:MM, got '{value}'") from e
        return value

    @property
    def unit_price(self) -> float:
        """Price of a single cigarette."""
        return self.pack_price / self.units_per_pack


class DerivedMetrics(BaseModel):
    """Today's target and wait interval.

    Attributes:
        target_daily_count: Cigarettes allowed today (0 once the plan horizon is reached)
        interval_seconds: Wait between permitted events (the max-interval sentinel when target is 0)
    """

    model_config = ConfigDict(frozen=True)

    target_daily_count: int = Field(ge=0)
    interval_seconds: int = Field(gt=0)
