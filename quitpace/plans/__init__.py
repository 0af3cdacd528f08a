"""Plans module - reduction plan configuration and metrics.

This module provides:
- PlanConfig and DerivedMetrics models
- The reduction formula (target daily count and wait interval)
- Active window helpers
"""

from quitpace.plans.metrics import (
    MAX_INTERVAL_SECONDS,
    PLAN_HORIZON_DAYS,
    compute_plan_metrics,
    days_elapsed,
    plan_horizon_days,
    round_half_up,
)
from quitpace.plans.types import DerivedMetrics, PlanConfig, PlanKind
from quitpace.plans.window import is_within_window, seconds_until_window_opens

__all__ = [
    "MAX_INTERVAL_SECONDS",
    "PLAN_HORIZON_DAYS",
    "DerivedMetrics",
    "PlanConfig",
    "PlanKind",
    "compute_plan_metrics",
    "days_elapsed",
    "is_within_window",
    "plan_horizon_days",
    "round_half_up",
    "seconds_until_window_opens",
]
