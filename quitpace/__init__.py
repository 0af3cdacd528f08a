"""quitpace - quit-plan timer engine.

Shrinking wait intervals between permitted smoking events, a live countdown
to the next permitted event and a single latency-compensated reminder.
"""

__version__ = "0.1.0"
