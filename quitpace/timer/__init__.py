"""Timer module - countdown state machine, ticker and the engine facade."""

from quitpace.timer.countdown import CountdownEngine
from quitpace.timer.engine import QuitTimerEngine
from quitpace.timer.ticker import Ticker
from quitpace.timer.types import CountdownSnapshot, CountdownState

__all__ = [
    "CountdownEngine",
    "CountdownSnapshot",
    "CountdownState",
    "QuitTimerEngine",
    "Ticker",
]
