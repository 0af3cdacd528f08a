"""Events module - append-only smoking event log and usage statistics."""

from quitpace.events.log import EventLog
from quitpace.events.stats import UsageStats, compute_usage_stats
from quitpace.events.types import EventLogEntry

__all__ = [
    "EventLog",
    "EventLogEntry",
    "UsageStats",
    "compute_usage_stats",
]
