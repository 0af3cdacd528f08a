"""Tests for the countdown state machine."""

from datetime import time, timezone

from quitpace.plans.types import DerivedMetrics
from quitpace.timer.countdown import CountdownEngine, remaining_seconds
from quitpace.timer.types import CountdownState

T0 = 1_704_110_400_000  # 2024-01-01 12:00:00 UTC
METRICS = DerivedMetrics(target_daily_count=10, interval_seconds=100)


def _engine(active_window=None) -> CountdownEngine:
    return CountdownEngine(tz=timezone.utc, active_window=active_window)


def test_idle_without_metrics():
    countdown = _engine()
    snapshot = countdown.evaluate(T0)
    assert snapshot.state == CountdownState.IDLE
    assert snapshot.remaining_seconds == 0
    assert not snapshot.is_time_up


def test_empty_log_is_free_to_act():
    countdown = _engine()
    snapshot = countdown.start(METRICS, None, T0)
    assert snapshot.remaining_seconds == 0
    assert snapshot.is_time_up
    assert snapshot.next_allowed_at_ms == T0


def test_start_from_last_event():
    countdown = _engine()
    snapshot = countdown.start(METRICS, T0 - 30_000, T0)
    assert snapshot.state == CountdownState.COUNTING
    assert snapshot.remaining_seconds == 70


def test_reset_counts_down_from_absolute_target():
    countdown = _engine()
    countdown.reset(METRICS, T0, T0)

    halfway = countdown.evaluate(T0 + 50_000)
    assert halfway.remaining_seconds == 50
    assert halfway.state == CountdownState.COUNTING

    done = countdown.evaluate(T0 + 100_000)
    assert done.remaining_seconds == 0
    assert done.is_time_up
    assert done.state == CountdownState.TIME_UP


def test_partial_seconds_round_up():
    countdown = _engine()
    countdown.reset(METRICS, T0, T0)
    assert countdown.evaluate(T0 + 99_001).remaining_seconds == 1


def test_reset_never_reports_zero():
    """An event whose target is already behind us still shows one second."""
    countdown = _engine()
    snapshot = countdown.reset(METRICS, T0 - 200_000, T0)
    assert snapshot.remaining_seconds == 1
    assert not snapshot.is_time_up
    assert countdown.next_allowed_at_ms == T0 + 1000


def test_clock_jump_forward_is_time_up_not_negative():
    countdown = _engine()
    countdown.reset(METRICS, T0, T0)
    snapshot = countdown.tick(T0 + 3_600_000)
    assert snapshot.remaining_seconds == 0
    assert snapshot.is_time_up


def test_clock_jump_backwards_is_logged(log_messages):
    countdown = _engine()
    countdown.reset(METRICS, T0, T0)
    countdown.tick(T0 + 10_000)
    snapshot = countdown.tick(T0 - 60_000)
    assert snapshot.remaining_seconds >= 0
    assert any("clock moved backwards" in m for m in log_messages)


def test_paused_outside_active_window():
    countdown = _engine(active_window=(time(7, 0), time(23, 0)))
    countdown.reset(METRICS, T0, T0)
    two_am_next_day = T0 + 14 * 3600 * 1000
    snapshot = countdown.evaluate(two_am_next_day)
    assert snapshot.state == CountdownState.PAUSED
    assert snapshot.is_paused
    assert not snapshot.is_time_up
    assert snapshot.remaining_seconds == 5 * 3600


def test_idle_clears_state():
    countdown = _engine()
    countdown.reset(METRICS, T0, T0)
    countdown.idle()
    assert countdown.metrics is None
    assert countdown.latest.state == CountdownState.IDLE


def test_remaining_seconds_clamped():
    assert remaining_seconds(T0, T0 + 5000) == 0


def test_evaluate_with_new_day_metrics_is_pure():
    countdown = _engine()
    countdown.reset(METRICS, T0, T0)
    next_day = DerivedMetrics(target_daily_count=5, interval_seconds=200)

    snapshot = countdown.evaluate(T0 + 50_000, next_day)

    assert snapshot.remaining_seconds == 150
    assert snapshot.interval_seconds == 200
    assert snapshot.next_allowed_at_ms == T0 + 200_000
    assert countdown.evaluate(T0 + 50_000).remaining_seconds == 50
    assert countdown.metrics == METRICS


def test_tick_with_new_day_metrics_rebases(log_messages):
    countdown = _engine()
    countdown.reset(METRICS, T0, T0)
    next_day = DerivedMetrics(target_daily_count=5, interval_seconds=200)

    countdown.tick(T0 + 50_000, next_day)

    assert countdown.metrics == next_day
    assert countdown.next_allowed_at_ms == T0 + 200_000
    assert any("countdown rebased" in m for m in log_messages)


def test_new_day_metrics_keep_empty_log_free():
    countdown = _engine()
    countdown.start(METRICS, None, T0)

    snapshot = countdown.evaluate(T0, DerivedMetrics(target_daily_count=5, interval_seconds=200))

    assert snapshot.is_time_up
