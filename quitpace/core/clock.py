"""Wall-clock access for the timer engine.

All engine arithmetic runs on absolute epoch milliseconds. Calendar
questions (which day is it, is the active window open) are answered in the
user's timezone.
"""

from __future__ import annotations

import time
from datetime import datetime, timezone, tzinfo
from typing import Protocol
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from loguru import logger

MS_PER_SECOND = 1000


class Clock(Protocol):
    """Source of "now" for the engine."""

    def now_ms(self) -> int: ...

    def tz(self) -> tzinfo: ...


def resolve_timezone(name: str | None) -> tzinfo:
    """Resolve an IANA timezone name, falling back to the system local zone.

    Args:
        name: IANA timezone name (e.g. "Europe/Kyiv"), or None for local time

    Returns:
        tzinfo for the name; the system local zone if name is empty or unknown
    """
    local_tz = datetime.now().astimezone().tzinfo or timezone.utc
    if not name:
        return local_tz
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown timezone '{name}', using system local time")
        return local_tz


class SystemClock:
    """Clock backed by time.time()."""

    def __init__(self, tz_name: str | None = None) -> None:
        self._tz = resolve_timezone(tz_name)

    def now_ms(self) -> int:
        return int(time.time() * MS_PER_SECOND)

    def tz(self) -> tzinfo:
        return self._tz


def to_local_datetime(epoch_ms: int, tz: tzinfo) -> datetime:
    """Convert epoch milliseconds to an aware datetime in the given zone."""
    return datetime.fromtimestamp(epoch_ms / MS_PER_SECOND, tz=tz)


def local_midnight_ms(epoch_ms: int, tz: tzinfo) -> int:
    """Epoch milliseconds of the local midnight starting the day of epoch_ms."""
    local = to_local_datetime(epoch_ms, tz)
    midnight = local.replace(hour=0, minute=0, second=0, microsecond=0)
    return int(midnight.timestamp() * MS_PER_SECOND)
