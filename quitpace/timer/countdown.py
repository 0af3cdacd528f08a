"""Countdown state machine.

States: IDLE (no plan) -> COUNTING -> TIME_UP, plus PAUSED while the
optional active window is closed.

remaining_seconds is always recomputed from the absolute
next_allowed_at_ms, so the countdown stays correct across process
suspension. Clock jumps in either direction clamp to >= 0 and a
non-positive result reads as TIME_UP.
"""

from __future__ import annotations

import math
from datetime import time, tzinfo

from loguru import logger

from quitpace.core.clock import MS_PER_SECOND, to_local_datetime
from quitpace.plans.types import DerivedMetrics
from quitpace.plans.window import is_within_window, seconds_until_window_opens
from quitpace.timer.types import IDLE_SNAPSHOT, CountdownSnapshot, CountdownState

# Backward jumps smaller than this are tick jitter, not clock anomalies
CLOCK_JITTER_MS = 1000


def remaining_seconds(next_allowed_at_ms: int, now_ms: int) -> int:
    """Whole seconds left until next_allowed_at_ms, rounded up, never negative."""
    return max(0, math.ceil((next_allowed_at_ms - now_ms) / MS_PER_SECOND))


class CountdownEngine:
    """Tracks the next permitted instant and projects it into snapshots.

    Args:
        tz: User timezone (used for the active window)
        active_window: (start, end) times of day; None disables the paused state
    """

    def __init__(self, *, tz: tzinfo, active_window: tuple[time, time] | None = None) -> None:
        self._tz = tz
        self._active_window = active_window
        self._metrics: DerivedMetrics | None = None
        self._next_allowed_at_ms: int | None = None
        # Last recorded event the target is measured from (None for an empty log)
        self._anchor_ms: int | None = None
        self._latest: CountdownSnapshot = IDLE_SNAPSHOT
        self._last_tick_ms: int | None = None

    @property
    def metrics(self) -> DerivedMetrics | None:
        return self._metrics

    @property
    def next_allowed_at_ms(self) -> int | None:
        return self._next_allowed_at_ms

    @property
    def latest(self) -> CountdownSnapshot:
        """Snapshot from the most recent tick or state change."""
        return self._latest

    def set_active_window(self, active_window: tuple[time, time] | None) -> None:
        self._active_window = active_window

    def idle(self) -> CountdownSnapshot:
        """Drop all state (no plan configured)."""
        self._metrics = None
        self._next_allowed_at_ms = None
        self._anchor_ms = None
        self._last_tick_ms = None
        self._latest = IDLE_SNAPSHOT
        return self._latest

    def start(self, metrics: DerivedMetrics, last_event_ms: int | None, now_ms: int) -> CountdownSnapshot:
        """Begin counting from the last recorded event.

        An empty log makes the user free to act immediately.
        """
        self._metrics = metrics
        self._anchor_ms = last_event_ms
        if last_event_ms is None:
            self._next_allowed_at_ms = now_ms
        else:
            self._next_allowed_at_ms = last_event_ms + metrics.interval_seconds * MS_PER_SECOND
        return self.tick(now_ms)

    def reset(self, metrics: DerivedMetrics, occurred_at_ms: int, now_ms: int) -> CountdownSnapshot:
        """Restart the countdown after a newly recorded event.

        A fresh event never shows a zero countdown: if the recomputed target
        is already reached (tiny interval, slow append), it is moved to one
        second from now.
        """
        self._metrics = metrics
        self._anchor_ms = occurred_at_ms
        next_allowed = occurred_at_ms + metrics.interval_seconds * MS_PER_SECOND
        if remaining_seconds(next_allowed, now_ms) == 0:
            logger.debug(f"Countdown target already reached after reset, holding for 1s (interval={metrics.interval_seconds}s)")
            next_allowed = now_ms + MS_PER_SECOND
        self._next_allowed_at_ms = next_allowed
        return self.tick(now_ms)

    def is_paused_at(self, now_ms: int) -> bool:
        if self._active_window is None:
            return False
        start, end = self._active_window
        return not is_within_window(to_local_datetime(now_ms, self._tz), start, end)

    def _next_allowed_for(self, metrics: DerivedMetrics) -> int | None:
        """Target for the given metrics, measured from the same last event."""
        if metrics == self._metrics or self._anchor_ms is None:
            return self._next_allowed_at_ms
        return self._anchor_ms + metrics.interval_seconds * MS_PER_SECOND

    def evaluate(self, now_ms: int, metrics: DerivedMetrics | None = None) -> CountdownSnapshot:
        """Project the countdown at now_ms without changing state.

        Args:
            now_ms: Current time in epoch ms
            metrics: Metrics for the day containing now_ms, when they may differ
                from the ones the countdown was started with (day rollover)
        """
        if self._metrics is None or self._next_allowed_at_ms is None:
            return IDLE_SNAPSHOT

        metrics = metrics or self._metrics
        next_allowed = self._next_allowed_for(metrics)
        common = {
            "next_allowed_at_ms": next_allowed,
            "interval_seconds": metrics.interval_seconds,
            "target_daily_count": metrics.target_daily_count,
        }

        if self.is_paused_at(now_ms):
            start, end = self._active_window
            until_open = seconds_until_window_opens(to_local_datetime(now_ms, self._tz), start, end)
            return CountdownSnapshot(
                state=CountdownState.PAUSED,
                remaining_seconds=until_open,
                is_time_up=False,
                is_paused=True,
                **common,
            )

        remaining = remaining_seconds(next_allowed, now_ms)
        if remaining > 0:
            return CountdownSnapshot(state=CountdownState.COUNTING, remaining_seconds=remaining, **common)
        return CountdownSnapshot(state=CountdownState.TIME_UP, remaining_seconds=0, is_time_up=True, **common)

    def tick(self, now_ms: int, metrics: DerivedMetrics | None = None) -> CountdownSnapshot:
        """Evaluate at now_ms and keep the result as the latest snapshot.

        New metrics (the local day changed since the last reset) move the
        target to last event + new interval.
        """
        if metrics is not None and self._metrics is not None and metrics != self._metrics:
            logger.bind(target=metrics.target_daily_count, interval_seconds=metrics.interval_seconds).info(
                "Plan day changed, countdown rebased"
            )
            self._next_allowed_at_ms = self._next_allowed_for(metrics)
            self._metrics = metrics
        if self._last_tick_ms is not None and now_ms < self._last_tick_ms - CLOCK_JITTER_MS:
            logger.bind(now_ms=now_ms, previous_ms=self._last_tick_ms).warning("System clock moved backwards")
        self._last_tick_ms = now_ms
        self._latest = self.evaluate(now_ms)
        return self._latest
