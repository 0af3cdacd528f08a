"""Active window helpers.

The active window is the part of the day the cigarette budget is spread
over. It may wrap past midnight (e.g. 07:00-01:00). Equal start and end
times mean the window covers the whole day.
"""

import math
from datetime import datetime, time, timedelta


def is_within_window(local_now: datetime, start: time, end: time) -> bool:
    """Check whether a local datetime falls inside the active window.

    Args:
        local_now: Current datetime in the user's timezone
        start: Window opening time (inclusive)
        end: Window closing time (exclusive)

    Returns:
        True if the window is open at local_now
    """
    if start == end:
        return True

    current = local_now.time().replace(tzinfo=None)
    if start < end:
        return start <= current < end
    return current >= start or current < end


def seconds_until_window_opens(local_now: datetime, start: time, end: time) -> int:
    """Seconds until the active window next opens, 0 if it is open now."""
    if is_within_window(local_now, start, end):
        return 0

    opening = local_now.replace(hour=start.hour, minute=start.minute, second=0, microsecond=0)
    if opening <= local_now:
        opening += timedelta(days=1)

    return max(0, math.ceil(opening.timestamp() - local_now.timestamp()))
