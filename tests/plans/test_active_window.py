"""Tests for active window helpers."""

from datetime import datetime, time, timezone

from quitpace.plans.window import is_within_window, seconds_until_window_opens


def _at(hour: int, minute: int = 0) -> datetime:
    return datetime(2024, 1, 1, hour, minute, tzinfo=timezone.utc)


def test_daytime_window():
    start, end = time(7, 0), time(23, 0)
    assert is_within_window(_at(7), start, end)
    assert is_within_window(_at(22, 59), start, end)
    assert not is_within_window(_at(23), start, end)
    assert not is_within_window(_at(3), start, end)


def test_window_wrapping_midnight():
    start, end = time(9, 0), time(1, 0)
    assert is_within_window(_at(23, 30), start, end)
    assert is_within_window(_at(0, 30), start, end)
    assert not is_within_window(_at(4), start, end)


def test_equal_bounds_cover_whole_day():
    assert is_within_window(_at(3), time(8, 0), time(8, 0))


def test_seconds_until_window_opens_later_today():
    assert seconds_until_window_opens(_at(2), time(7, 0), time(23, 0)) == 5 * 3600


def test_seconds_until_window_opens_tomorrow():
    assert seconds_until_window_opens(_at(23, 30), time(7, 0), time(23, 0)) == 7 * 3600 + 30 * 60


def test_seconds_until_window_opens_when_open():
    assert seconds_until_window_opens(_at(12), time(7, 0), time(23, 0)) == 0
