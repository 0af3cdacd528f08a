"""Usage statistics derived from the event log.

Stats are derived, never stored.
"""

from datetime import tzinfo

from pydantic import BaseModel

from quitpace.core.clock import MS_PER_SECOND, local_midnight_ms, to_local_datetime
from quitpace.events.log import EventLog
from quitpace.plans.metrics import days_elapsed
from quitpace.plans.types import DerivedMetrics, PlanConfig


class UsageStats(BaseModel):
    """Progress summary for display.

    Attributes:
        today_count: Events recorded since local midnight
        total_count: All events in the log
        average_interval_today_seconds: Mean gap between today's events (0 with fewer than two)
        remaining_today: Events left within today's target (negative when over target)
        cost_per_unit: Price of one cigarette
        spent_total: Cost of all logged events
        money_saved: Cost of the baseline consumption not smoked since the plan started
    """

    today_count: int
    total_count: int
    average_interval_today_seconds: float
    remaining_today: int
    cost_per_unit: float
    spent_total: float
    money_saved: float


def average_interval_seconds(timestamps_ms: list[int]) -> float:
    """Mean gap in seconds between consecutive timestamps, 0 for fewer than two."""
    if len(timestamps_ms) < 2:
        return 0.0

    ordered = sorted(timestamps_ms)
    total_ms = ordered[-1] - ordered[0]
    return total_ms / MS_PER_SECOND / (len(ordered) - 1)


def compute_usage_stats(
    log: EventLog,
    config: PlanConfig,
    metrics: DerivedMetrics,
    now_ms: int,
    tz: tzinfo,
) -> UsageStats:
    """Compute usage statistics for the day containing now_ms.

    Args:
        log: Event log
        config: Plan configuration (baseline and pack pricing)
        metrics: Today's derived metrics
        now_ms: Current time in epoch milliseconds
        tz: User timezone (defines "today")

    Returns:
        UsageStats for display
    """
    midnight_ms = local_midnight_ms(now_ms, tz)
    today_entries = log.since(midnight_ms)
    today_count = len(today_entries)
    total_count = len(log)

    cost_per_unit = config.unit_price
    today = to_local_datetime(now_ms, tz).date()
    plan_days = days_elapsed(config.start_date, today) + 1
    expected_units = max(0, config.daily_baseline_count) * plan_days
    not_smoked = max(0, expected_units - total_count)

    return UsageStats(
        today_count=today_count,
        total_count=total_count,
        average_interval_today_seconds=average_interval_seconds([e.occurred_at_ms for e in today_entries]),
        remaining_today=metrics.target_daily_count - today_count,
        cost_per_unit=round(cost_per_unit, 4),
        spent_total=round(total_count * cost_per_unit, 2),
        money_saved=round(not_smoked * cost_per_unit, 2),
    )
