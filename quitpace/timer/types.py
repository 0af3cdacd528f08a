"""Countdown state and display snapshot."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class CountdownState(str, Enum):
    IDLE = "idle"
    COUNTING = "counting"
    TIME_UP = "time_up"
    PAUSED = "paused"


class CountdownSnapshot(BaseModel):
    """Read-only projection of the countdown for display.

    Rebuilt on every tick and every state-changing call, always from the
    absolute next_allowed_at_ms; never decremented on its own.

    Attributes:
        state: Countdown state
        next_allowed_at_ms: Next permitted instant in epoch ms (None while idle)
        remaining_seconds: Seconds until next_allowed_at_ms, or until the active
            window reopens while paused; never negative
        interval_seconds: Current wait interval (0 while idle)
        target_daily_count: Today's target (0 while idle)
        is_time_up: The user may act now
        is_paused: Outside the active window
    """

    model_config = ConfigDict(frozen=True)

    state: CountdownState
    next_allowed_at_ms: int | None = None
    remaining_seconds: int = Field(default=0, ge=0)
    interval_seconds: int = 0
    target_daily_count: int = 0
    is_time_up: bool = False
    is_paused: bool = False


IDLE_SNAPSHOT = CountdownSnapshot(state=CountdownState.IDLE)
