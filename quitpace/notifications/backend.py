"""Notification delivery backends.

A backend is the platform service that actually delivers a local alert at
a given instant. Backends may raise on any call (permission revoked,
service unavailable); the scheduler treats such failures as non-fatal.
"""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import Callable
from typing import Protocol

from loguru import logger

from quitpace.core.clock import MS_PER_SECOND, Clock, SystemClock
from quitpace.notifications.types import ReminderPayload

DeliveryCallback = Callable[[ReminderPayload], None]


class NotificationBackend(Protocol):
    """Platform service delivering local alerts."""

    async def schedule(self, fire_at_ms: int, payload: ReminderPayload) -> str:
        """Schedule an alert and return its handle."""
        ...

    async def cancel(self, handle: str) -> None:
        """Cancel a pending alert or dismiss a delivered one."""
        ...

    async def cancel_all(self) -> None:
        """Cancel every alert this backend holds."""
        ...


def log_delivery(payload: ReminderPayload) -> None:
    logger.bind(**payload.data).info(f"[REMINDER] {payload.title} {payload.body}")


class AsyncioNotificationBackend:
    """Process-local backend delivering through the running event loop.

    Alerts only fire while the loop is alive; use it for hosts that keep
    running (e.g. the CLI watch command).

    Args:
        clock: Clock used to turn fire instants into delays
        on_deliver: Called with the payload when an alert fires
    """

    def __init__(self, *, clock: Clock | None = None, on_deliver: DeliveryCallback = log_delivery) -> None:
        self._clock = clock or SystemClock()
        self._on_deliver = on_deliver
        self._pending: dict[str, asyncio.TimerHandle] = {}

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    async def schedule(self, fire_at_ms: int, payload: ReminderPayload) -> str:
        loop = asyncio.get_running_loop()
        delay = max(0.0, (fire_at_ms - self._clock.now_ms()) / MS_PER_SECOND)
        handle = uuid.uuid4().hex
        self._pending[handle] = loop.call_later(delay, self._deliver, handle, payload)
        logger.debug(f"Reminder {handle} scheduled in {delay:.1f}s")
        return handle

    def _deliver(self, handle: str, payload: ReminderPayload) -> None:
        self._pending.pop(handle, None)
        try:
            self._on_deliver(payload)
        except Exception as e:
            logger.bind(handle=handle, error=str(e)).warning("Reminder delivery callback failed")

    async def cancel(self, handle: str) -> None:
        timer = self._pending.pop(handle, None)
        if timer is not None:
            timer.cancel()

    async def cancel_all(self) -> None:
        for timer in self._pending.values():
            timer.cancel()
        self._pending.clear()
