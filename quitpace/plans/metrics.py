"""Plan metrics computation.

Maps a PlanConfig and the current day to today's target daily count and the
wait interval between permitted events.

Reduction curve (must stay stable across releases for plan continuity):
- daily_reduction_rate = baseline / plan_horizon_days (real-valued)
- cumulative_reduction = round-half-up(rate * days_elapsed)
- target = baseline - cumulative_reduction, never below 1 before the horizon,
  exactly 0 from the horizon on
- interval = floor(min(max_interval, active_seconds / target))

Rounding is applied to the cumulative reduction, not per day. A per-day
ceil step reaches the floor of 1 sooner for non-integer rates; the
cumulative rule spreads the remainder evenly across the plan.
"""

import math
from datetime import date, datetime

from quitpace.config.settings import settings
from quitpace.plans.types import DerivedMetrics, PlanConfig, PlanKind

PLAN_HORIZON_DAYS: dict[PlanKind, int] = {
    PlanKind.GENTLE: 30,
    PlanKind.BALANCED: 20,
    PlanKind.AGGRESSIVE: 10,
}

MAX_INTERVAL_SECONDS = 24 * 3600


def plan_horizon_days(kind: PlanKind) -> int:
    """Days a plan kind takes to reach zero cigarettes per day."""
    return PLAN_HORIZON_DAYS.get(kind, PLAN_HORIZON_DAYS[PlanKind.BALANCED])


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero.

    Python's round() uses banker's rounding (round(2.5) == 2), which would
    make the reduction curve depend on the parity of the step.
    """
    if value < 0:
        return -math.floor(-value + 0.5)
    return math.floor(value + 0.5)


def days_elapsed(start_date: date, today: date) -> int:
    """Full calendar days between the plan start and today, never negative."""
    return max(0, (today - start_date).days)


def _as_date(now: datetime | date) -> date:
    if isinstance(now, datetime):
        return now.date()
    return now


def compute_plan_metrics(
    config: PlanConfig,
    now: datetime | date,
    *,
    active_window_seconds_per_day: int | None = None,
    max_interval_seconds: int | None = None,
) -> DerivedMetrics:
    """Compute today's target daily count and wait interval.

    Pure function: same config and day always give the same metrics.

    Args:
        config: User's plan configuration
        now: Current local datetime (its calendar date is used) or a date
        active_window_seconds_per_day: Daily awake-time budget (default from settings)
        max_interval_seconds: Interval cap and zero-target sentinel (default from settings)

    Returns:
        DerivedMetrics for the calendar day of `now`
    """
    active_seconds = active_window_seconds_per_day or settings.active_window_seconds_per_day
    max_interval = max_interval_seconds or settings.max_interval_seconds

    baseline = config.daily_baseline_count
    if baseline <= 0:
        return DerivedMetrics(target_daily_count=0, interval_seconds=max_interval)

    elapsed = days_elapsed(config.start_date, _as_date(now))
    horizon = plan_horizon_days(config.plan_kind)

    if elapsed >= horizon:
        return DerivedMetrics(target_daily_count=0, interval_seconds=max_interval)

    daily_reduction_rate = baseline / horizon
    cumulative_reduction = round_half_up(daily_reduction_rate * elapsed)
    target = max(1, baseline - cumulative_reduction)

    # Floor at 1s: a baseline above the window budget would otherwise give 0
    interval = max(1, math.floor(min(max_interval, active_seconds / target)))

    return DerivedMetrics(target_daily_count=target, interval_seconds=interval)
