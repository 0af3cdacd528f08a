"""Tests for the single-reminder scheduler and the asyncio backend."""

import asyncio

import pytest

from quitpace.errors import ReminderSlotBusyError, SchedulingFailure
from quitpace.notifications.backend import AsyncioNotificationBackend
from quitpace.notifications.scheduler import NotificationScheduler, ReminderSlot

NOW_MS = 1_704_110_400_000


@pytest.mark.asyncio
async def test_disarm_when_nothing_armed_is_safe(scheduler, backend):
    await scheduler.disarm()
    await scheduler.disarm()
    assert backend.cancelled == []


@pytest.mark.asyncio
async def test_rearm_arms_candidate(scheduler, backend):
    next_allowed = NOW_MS + 600_000

    reminder = await scheduler.rearm(next_allowed, NOW_MS)

    assert reminder is not None
    assert reminder.fire_at_ms == next_allowed - 27_000
    assert reminder.payload.title == "Almost time!"
    assert reminder.payload.data["timer_end"] == next_allowed
    assert scheduler.current == reminder
    assert backend.scheduled == [("reminder-1", next_allowed - 27_000)]


@pytest.mark.asyncio
async def test_rearm_replaces_outstanding_reminder(scheduler, backend):
    await scheduler.rearm(NOW_MS + 600_000, NOW_MS)
    await scheduler.rearm(NOW_MS + 900_000, NOW_MS)

    assert backend.cancelled == ["reminder-1"]
    assert list(backend.pending) == ["reminder-2"]


@pytest.mark.asyncio
@pytest.mark.parametrize("lead_ms", [-5_000, 0, 1_000])
async def test_rearm_skips_candidate_too_close(scheduler, backend, lead_ms):
    next_allowed = NOW_MS + 27_000 + lead_ms

    reminder = await scheduler.rearm(next_allowed, NOW_MS)

    assert reminder is None
    assert scheduler.current is None
    assert backend.scheduled == []


@pytest.mark.asyncio
async def test_rearm_suppressed_still_releases(scheduler, backend):
    await scheduler.rearm(NOW_MS + 600_000, NOW_MS)

    reminder = await scheduler.rearm(NOW_MS + 900_000, NOW_MS, allow=False)

    assert reminder is None
    assert backend.pending == {}


@pytest.mark.asyncio
async def test_arm_while_held_is_refused(scheduler):
    await scheduler.arm(NOW_MS + 60_000)

    with pytest.raises(ReminderSlotBusyError):
        await scheduler.arm(NOW_MS + 120_000)


@pytest.mark.asyncio
async def test_slot_release_is_idempotent(backend):
    slot = ReminderSlot(backend)
    payload = NotificationScheduler(backend).build_payload(NOW_MS)
    await slot.acquire(NOW_MS, payload)

    await slot.release()
    await slot.release()

    assert slot.held is None
    assert backend.cancelled == ["reminder-1"]


@pytest.mark.asyncio
async def test_schedule_failure_is_logged(scheduler, backend, log_messages):
    backend.fail_schedule = True

    reminder = await scheduler.rearm(NOW_MS + 600_000, NOW_MS)

    assert reminder is None
    assert scheduler.current is None
    assert any(m.startswith("WARNING Failed to schedule reminder") for m in log_messages)


@pytest.mark.asyncio
async def test_cancel_failure_frees_slot(scheduler, backend, log_messages):
    await scheduler.rearm(NOW_MS + 600_000, NOW_MS)
    backend.fail_cancel = True

    await scheduler.disarm()

    assert scheduler.current is None
    assert any("Failed to cancel reminder" in m for m in log_messages)

    backend.fail_cancel = False
    assert await scheduler.rearm(NOW_MS + 900_000, NOW_MS) is not None


@pytest.mark.asyncio
async def test_purge_clears_orphans(scheduler, backend):
    await scheduler.rearm(NOW_MS + 600_000, NOW_MS)

    await scheduler.purge()

    assert backend.cancel_all_calls == 1
    assert backend.pending == {}
    assert scheduler.current is None


class _LoopClock:
    """Clock pinned to NOW_MS so delays are relative to the test's constant."""

    def now_ms(self) -> int:
        return NOW_MS

    def tz(self):
        return None


@pytest.mark.asyncio
async def test_asyncio_backend_delivers():
    delivered = []
    backend = AsyncioNotificationBackend(clock=_LoopClock(), on_deliver=delivered.append)
    scheduler = NotificationScheduler(backend, early_buffer_seconds=0, min_lead_seconds=0)

    await scheduler.arm(NOW_MS + 10, timer_end_ms=NOW_MS + 10)
    assert backend.pending_count == 1
    await asyncio.sleep(0.05)

    assert len(delivered) == 1
    assert delivered[0].data == {"timer_end": NOW_MS + 10}
    assert backend.pending_count == 0


@pytest.mark.asyncio
async def test_asyncio_backend_cancel_prevents_delivery():
    delivered = []
    backend = AsyncioNotificationBackend(clock=_LoopClock(), on_deliver=delivered.append)
    scheduler = NotificationScheduler(backend)

    await scheduler.arm(NOW_MS + 20)
    await scheduler.disarm()
    await asyncio.sleep(0.05)

    assert delivered == []
    assert backend.pending_count == 0


@pytest.mark.asyncio
async def test_asyncio_backend_survives_callback_error(log_messages):
    def explode(payload):
        raise RuntimeError("terminal closed")

    backend = AsyncioNotificationBackend(clock=_LoopClock(), on_deliver=explode)
    await backend.schedule(NOW_MS, NotificationScheduler(backend).build_payload(NOW_MS))
    await asyncio.sleep(0.01)

    assert any("delivery callback failed" in m for m in log_messages)


class _BrokenBackend:
    """Backend whose platform calls raise plain exceptions."""

    async def schedule(self, fire_at_ms, payload) -> str:
        raise PermissionError("notifications disabled")

    async def cancel(self, handle: str) -> None:
        raise RuntimeError("service gone")

    async def cancel_all(self) -> None:
        raise RuntimeError("service gone")


@pytest.mark.asyncio
async def test_backend_errors_are_wrapped():
    scheduler = NotificationScheduler(_BrokenBackend(), early_buffer_seconds=27)

    assert await scheduler.rearm(NOW_MS + 600_000, NOW_MS) is None

    failure = scheduler.last_failure
    assert isinstance(failure, SchedulingFailure)
    assert isinstance(failure.original_error, PermissionError)
    assert "notifications disabled" in str(failure)


@pytest.mark.asyncio
async def test_purge_error_is_wrapped():
    scheduler = NotificationScheduler(_BrokenBackend())

    await scheduler.purge()

    assert isinstance(scheduler.last_failure.original_error, RuntimeError)


@pytest.mark.asyncio
async def test_successful_arm_clears_last_failure(scheduler, backend):
    backend.fail_schedule = True
    await scheduler.rearm(NOW_MS + 600_000, NOW_MS)
    assert scheduler.last_failure is not None
    assert scheduler.last_failure.original_error is None

    backend.fail_schedule = False
    await scheduler.rearm(NOW_MS + 600_000, NOW_MS)

    assert scheduler.last_failure is None
