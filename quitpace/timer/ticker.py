"""Periodic countdown tick.

The tick is the engine's only autonomous activity. It is cancelled (not
slowed) while the host is backgrounded and resynchronized from the
absolute countdown target on resume. Ticking stops by itself once the
countdown reaches a terminal state and restarts on the next reset.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Callable

from loguru import logger

from quitpace.config.settings import settings
from quitpace.timer.types import CountdownSnapshot, CountdownState

_TERMINAL_STATES = {CountdownState.TIME_UP, CountdownState.IDLE}


class Ticker:
    """Calls on_tick every interval_seconds until the countdown ends.

    Args:
        on_tick: Evaluates the countdown and returns the new snapshot
        interval_seconds: Tick period (default from settings, 1.0)
    """

    def __init__(self, on_tick: Callable[[], CountdownSnapshot], *, interval_seconds: float | None = None) -> None:
        self._on_tick = on_tick
        self.interval_seconds = interval_seconds or settings.tick_interval_seconds
        self._task: asyncio.Task | None = None
        self._suspended = False

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def suspended(self) -> bool:
        return self._suspended

    def start(self) -> None:
        """Start ticking unless already running or suspended. Needs a running loop."""
        if self._suspended or self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                snapshot = self._on_tick()
            except Exception as e:
                logger.bind(error=str(e)).error("Countdown tick failed, stopping ticker")
                return
            if snapshot.state in _TERMINAL_STATES:
                logger.debug(f"Ticker stopped in state {snapshot.state.value}")
                return

    def _cancel(self) -> asyncio.Task | None:
        task = self._task
        self._task = None
        if task is not None and not task.done():
            task.cancel()
        return task

    def suspend(self) -> None:
        """Stop ticking while the host is in the background."""
        self._suspended = True
        self._cancel()

    def resume(self) -> CountdownSnapshot:
        """Resynchronize immediately and restart ticking if the countdown is live."""
        self._suspended = False
        snapshot = self._on_tick()
        if snapshot.state not in _TERMINAL_STATES:
            self.start()
        return snapshot

    async def stop(self) -> None:
        """Cancel ticking for teardown and wait for the task to finish."""
        task = self._cancel()
        if task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await task
