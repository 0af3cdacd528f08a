"""Single-reminder scheduling with delivery-latency compensation.

Rearm protocol (run on every recorded event):
1. Release the outstanding reminder, if any.
2. candidate = next_allowed_at - early_buffer_seconds.
3. Skip when the candidate is in the past or within min_lead_seconds of now.
4. Otherwise arm the candidate with the fixed reminder payload.

The platform typically delivers ~25s late; the default 27s buffer makes the
alert surface a couple of seconds before the countdown reaches zero.

Backend failures are wrapped in SchedulingFailure, logged, kept as
last_failure and swallowed. The in-app countdown stays authoritative whether
or not the reminder is delivered.
"""

from __future__ import annotations

import asyncio

from loguru import logger

from quitpace.config.settings import settings
from quitpace.core.clock import MS_PER_SECOND
from quitpace.errors import ReminderSlotBusyError, SchedulingFailure
from quitpace.notifications.backend import NotificationBackend
from quitpace.notifications.types import ReminderPayload, ScheduledReminder

MIN_LEAD_SECONDS = 1


class ReminderSlot:
    """Guarded resource holding at most one outstanding reminder.

    acquire() refuses to arm while a reminder is held; release() must come
    first. release() is idempotent.
    """

    def __init__(self, backend: NotificationBackend) -> None:
        self._backend = backend
        self._held: ScheduledReminder | None = None
        self.last_failure: SchedulingFailure | None = None

    @property
    def held(self) -> ScheduledReminder | None:
        return self._held

    async def acquire(self, fire_at_ms: int, payload: ReminderPayload) -> ScheduledReminder | None:
        """Arm a reminder in the empty slot.

        Returns:
            The armed reminder, or None if the backend rejected it

        Raises:
            ReminderSlotBusyError: If a reminder is already held
        """
        if self._held is not None:
            raise ReminderSlotBusyError(f"Reminder {self._held.handle} is still outstanding")

        try:
            handle = await self._backend.schedule(fire_at_ms, payload)
        except Exception as e:
            self.last_failure = SchedulingFailure.wrap("schedule", e)
            logger.bind(fire_at_ms=fire_at_ms, error=str(self.last_failure)).warning(
                "Failed to schedule reminder, countdown continues without it"
            )
            return None

        self._held = ScheduledReminder(handle=handle, fire_at_ms=fire_at_ms, payload=payload)
        self.last_failure = None
        logger.bind(handle=handle, fire_at_ms=fire_at_ms).debug("Reminder armed")
        return self._held

    async def release(self) -> None:
        """Cancel the held reminder. A failed cancel still frees the slot."""
        reminder = self._held
        if reminder is None:
            return

        self._held = None
        try:
            await self._backend.cancel(reminder.handle)
            logger.bind(handle=reminder.handle).debug("Reminder disarmed")
        except Exception as e:
            self.last_failure = SchedulingFailure.wrap("cancel", e)
            logger.bind(handle=reminder.handle, error=str(self.last_failure)).warning("Failed to cancel reminder")


class NotificationScheduler:
    """Arms and disarms the engine's single reminder.

    Args:
        backend: Platform notification service
        early_buffer_seconds: Delivery-latency compensation (default from settings)
        min_lead_seconds: Candidates closer than this to now are not armed
        title: Reminder title (default from settings)
        body: Reminder body (default from settings)
    """

    def __init__(
        self,
        backend: NotificationBackend,
        *,
        early_buffer_seconds: int | None = None,
        min_lead_seconds: int = MIN_LEAD_SECONDS,
        title: str | None = None,
        body: str | None = None,
    ) -> None:
        self._backend = backend
        self._slot = ReminderSlot(backend)
        self._lock = asyncio.Lock()
        self.early_buffer_seconds = settings.early_buffer_seconds if early_buffer_seconds is None else early_buffer_seconds
        self.min_lead_seconds = min_lead_seconds
        self.title = title or settings.reminder_title
        self.body = body or settings.reminder_body

    @property
    def current(self) -> ScheduledReminder | None:
        """The outstanding reminder, if any."""
        return self._slot.held

    @property
    def last_failure(self) -> SchedulingFailure | None:
        """Most recent backend failure, cleared by the next successful arm."""
        return self._slot.last_failure

    def candidate_fire_ms(self, next_allowed_at_ms: int) -> int:
        return next_allowed_at_ms - self.early_buffer_seconds * MS_PER_SECOND

    def build_payload(self, timer_end_ms: int) -> ReminderPayload:
        return ReminderPayload(title=self.title, body=self.body, data={"timer_end": timer_end_ms})

    async def arm(self, target_fire_ms: int, *, timer_end_ms: int | None = None) -> ScheduledReminder | None:
        """Arm one reminder at target_fire_ms.

        Raises:
            ReminderSlotBusyError: If a reminder is already outstanding
        """
        payload = self.build_payload(timer_end_ms if timer_end_ms is not None else target_fire_ms)
        async with self._lock:
            return await self._slot.acquire(target_fire_ms, payload)

    async def disarm(self) -> None:
        """Cancel the outstanding reminder. Safe to call when nothing is armed."""
        async with self._lock:
            await self._slot.release()

    async def rearm(self, next_allowed_at_ms: int, now_ms: int, *, allow: bool = True) -> ScheduledReminder | None:
        """Replace the outstanding reminder with one for a new countdown target.

        Args:
            next_allowed_at_ms: Countdown target in epoch ms
            now_ms: Current time in epoch ms
            allow: False suppresses arming (e.g. outside the active window)

        Returns:
            The armed reminder, or None if arming was skipped or failed
        """
        async with self._lock:
            await self._slot.release()

            if not allow:
                logger.debug("Reminder suppressed outside the active window")
                return None

            candidate = self.candidate_fire_ms(next_allowed_at_ms)
            if candidate <= now_ms + self.min_lead_seconds * MS_PER_SECOND:
                logger.bind(candidate_ms=candidate, now_ms=now_ms).debug("Reminder skipped, fire time too close or past")
                return None

            return await self._slot.acquire(candidate, self.build_payload(next_allowed_at_ms))

    async def purge(self) -> None:
        """Drop every reminder the backend holds, including orphans from a previous run."""
        async with self._lock:
            await self._slot.release()
            try:
                await self._backend.cancel_all()
            except Exception as e:
                self._slot.last_failure = SchedulingFailure.wrap("purge", e)
                logger.bind(error=str(self._slot.last_failure)).warning("Failed to purge reminders")
