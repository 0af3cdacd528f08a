"""Quit-plan timer engine.

Ties the plan metrics, the event log, the countdown and the reminder
scheduler together behind three operations the host calls:

- record_event(): append an event at "now", recompute, reset the countdown
  and rearm the reminder
- snapshot(): read-only countdown projection for display
- refresh(): reload from persistence and recompute (e.g. when a view
  regains focus)

The engine is passive between calls except for the ticker. record_event()
and refresh() are serialized by a lock: a recompute never interleaves with
a pending append, and the single reminder slot is never raced.

Error handling:
- No plan configured: idle snapshot, nothing raised
- StorageFailure: propagated to the caller; in-memory state is untouched so
  the last known countdown keeps showing
- Reminder failures: logged by the scheduler, never raised
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import time

from loguru import logger

from quitpace.config.settings import settings
from quitpace.core.clock import Clock, SystemClock, to_local_datetime
from quitpace.errors import ConfigMissingError
from quitpace.events.log import EventLog
from quitpace.events.stats import UsageStats, compute_usage_stats
from quitpace.events.types import EventLogEntry
from quitpace.notifications.scheduler import NotificationScheduler
from quitpace.persistence.gateway import PersistenceGateway
from quitpace.plans.metrics import compute_plan_metrics
from quitpace.plans.types import DerivedMetrics, PlanConfig
from quitpace.timer.countdown import CountdownEngine
from quitpace.timer.ticker import Ticker
from quitpace.timer.types import CountdownSnapshot, CountdownState

TickListener = Callable[[CountdownSnapshot], None]


class QuitTimerEngine:
    """One engine instance per loaded plan.

    Args:
        gateway: Persistence for the plan and the event log
        scheduler: Reminder scheduler (owns the single reminder slot)
        clock: Source of "now" (default: system clock in the configured timezone)
        enforce_active_window: Pause outside the plan's active window (default from settings)
        sort_event_log: Sort the log by timestamp instead of trusting insertion order
        active_window_seconds_per_day: Daily awake-time budget for the interval formula
        max_interval_seconds: Interval cap and zero-target sentinel
        tick_interval_seconds: Ticker period
        on_tick: Called with every snapshot the ticker produces
    """

    def __init__(
        self,
        gateway: PersistenceGateway,
        scheduler: NotificationScheduler,
        *,
        clock: Clock | None = None,
        enforce_active_window: bool | None = None,
        sort_event_log: bool | None = None,
        active_window_seconds_per_day: int | None = None,
        max_interval_seconds: int | None = None,
        tick_interval_seconds: float | None = None,
        on_tick: TickListener | None = None,
    ) -> None:
        self._gateway = gateway
        self._scheduler = scheduler
        self._clock = clock or SystemClock(settings.timezone)
        self._enforce_active_window = (
            settings.enforce_active_window if enforce_active_window is None else enforce_active_window
        )
        self._sort_event_log = settings.sort_event_log if sort_event_log is None else sort_event_log
        self._active_window_seconds_per_day = active_window_seconds_per_day
        self._max_interval_seconds = max_interval_seconds
        self._on_tick = on_tick

        self._lock = asyncio.Lock()
        self._config: PlanConfig | None = None
        self._log = EventLog(sort_defensively=self._sort_event_log)
        self._countdown = CountdownEngine(tz=self._clock.tz())
        self._ticker = Ticker(self._tick, interval_seconds=tick_interval_seconds)
        self._started = False

    @property
    def config(self) -> PlanConfig | None:
        return self._config

    @property
    def metrics(self) -> DerivedMetrics | None:
        return self._countdown.metrics

    @property
    def entries(self) -> tuple[EventLogEntry, ...]:
        return self._log.entries

    @property
    def ticking(self) -> bool:
        return self._ticker.running

    # --- Lifecycle ---

    async def start(self) -> CountdownSnapshot:
        """Drop orphan reminders, load state and start ticking.

        Raises:
            StorageFailure: If the initial load fails
        """
        await self._scheduler.purge()
        self._started = True
        await self.refresh()
        return self.snapshot()

    def suspend(self) -> None:
        """Host went to the background: stop ticking."""
        self._ticker.suspend()

    def resume(self) -> CountdownSnapshot:
        """Host came back: resync from the absolute target and resume ticking."""
        if not self._started:
            return self.snapshot()
        return self._ticker.resume()

    async def close(self) -> None:
        """Teardown: cancel the ticker. The outstanding reminder stays armed."""
        self._started = False
        await self._ticker.stop()

    # --- Operations ---

    def snapshot(self) -> CountdownSnapshot:
        """Current countdown projection, computed against the clock.

        Target and interval are those of the current local day, even when the
        day changed since the last refresh. The reminder is only moved by
        refresh() or record_event().
        """
        now_ms = self._clock.now_ms()
        return self._countdown.evaluate(now_ms, self._metrics_at(now_ms))

    async def refresh(self) -> None:
        """Reload the plan and the event log from persistence and recompute.

        Raises:
            StorageFailure: If loading fails (previous state is kept)
        """
        async with self._lock:
            config = await self._load()
            now_ms = self._clock.now_ms()

            if config is None:
                logger.info("No plan configured, countdown is idle")
                self._countdown.idle()
                await self._scheduler.disarm()
                self._notify(self._countdown.latest)
                return

            metrics = self._compute_metrics(config, now_ms)
            self._countdown.set_active_window(self._active_window(config))
            last = self._log.last()
            snapshot = self._countdown.start(metrics, last.occurred_at_ms if last else None, now_ms)
            logger.debug(
                f"Refreshed: target={metrics.target_daily_count} interval={metrics.interval_seconds}s "
                f"events={len(self._log)} state={snapshot.state.value}"
            )

            await self._sync_reminder(now_ms)
            self._notify(snapshot)
            self._restart_ticker()

    async def record_event(self) -> None:
        """Record an event at "now", recompute and rearm the reminder.

        An engine that was not started yet loads the plan first. Without a
        stored plan this logs a warning and does nothing.

        Raises:
            StorageFailure: If the append fails (nothing else changes)
        """
        async with self._lock:
            config = self._config
            if config is None:
                config = await self._load()
            if config is None:
                logger.warning("Attempted to record an event before the plan was configured")
                return
            self._countdown.set_active_window(self._active_window(config))

            now_ms = self._clock.now_ms()
            metrics = self._compute_metrics(config, now_ms)
            entry = EventLogEntry(occurred_at_ms=now_ms)

            await self._gateway.append(entry)
            self._log.append(entry)

            # The append may have taken a while
            after_ms = self._clock.now_ms()
            snapshot = self._countdown.reset(metrics, entry.occurred_at_ms, after_ms)
            logger.bind(
                occurred_at_ms=entry.occurred_at_ms,
                target=metrics.target_daily_count,
                interval_seconds=metrics.interval_seconds,
            ).info("Event recorded")

            next_allowed = self._countdown.next_allowed_at_ms
            await self._scheduler.rearm(next_allowed, after_ms, allow=self._reminder_allowed(after_ms, next_allowed))
            self._notify(snapshot)
            self._restart_ticker()

    def stats(self) -> UsageStats:
        """Usage statistics for today.

        Raises:
            ConfigMissingError: If no plan is configured
        """
        config = self._config
        if config is None:
            raise ConfigMissingError("Usage statistics need a configured plan")
        now_ms = self._clock.now_ms()
        metrics = self._compute_metrics(config, now_ms)
        return compute_usage_stats(self._log, config, metrics, now_ms, self._clock.tz())

    # --- Internals ---

    async def _load(self) -> PlanConfig | None:
        """Read the plan and, if there is one, the event log.

        State is only replaced once both reads succeeded.
        """
        config = await self._gateway.load_plan_config()
        entries = await self._gateway.list_entries() if config is not None else []
        self._config = config
        self._log = EventLog(entries, sort_defensively=self._sort_event_log)
        return config

    def _metrics_at(self, now_ms: int) -> DerivedMetrics | None:
        if self._config is None:
            return None
        return self._compute_metrics(self._config, now_ms)

    def _compute_metrics(self, config: PlanConfig, now_ms: int) -> DerivedMetrics:
        return compute_plan_metrics(
            config,
            to_local_datetime(now_ms, self._clock.tz()),
            active_window_seconds_per_day=self._active_window_seconds_per_day,
            max_interval_seconds=self._max_interval_seconds,
        )

    def _active_window(self, config: PlanConfig) -> tuple[time, time] | None:
        if not self._enforce_active_window:
            return None
        return (config.active_window_start, config.active_window_end)

    def _reminder_allowed(self, now_ms: int, next_allowed_at_ms: int) -> bool:
        """No reminders while paused, and none that would fire outside the window."""
        if not self._enforce_active_window:
            return True
        fire_at_ms = self._scheduler.candidate_fire_ms(next_allowed_at_ms)
        return not self._countdown.is_paused_at(now_ms) and not self._countdown.is_paused_at(fire_at_ms)

    async def _sync_reminder(self, now_ms: int) -> None:
        """After a reload, make sure the reminder matches the countdown target."""
        next_allowed = self._countdown.next_allowed_at_ms
        if next_allowed is None or self._countdown.latest.state == CountdownState.TIME_UP:
            await self._scheduler.disarm()
            return

        current = self._scheduler.current
        if current is not None and current.payload.data.get("timer_end") == next_allowed:
            return
        await self._scheduler.rearm(next_allowed, now_ms, allow=self._reminder_allowed(now_ms, next_allowed))

    def _tick(self) -> CountdownSnapshot:
        now_ms = self._clock.now_ms()
        snapshot = self._countdown.tick(now_ms, self._metrics_at(now_ms))
        self._notify(snapshot)
        return snapshot

    def _notify(self, snapshot: CountdownSnapshot) -> None:
        if self._on_tick is None:
            return
        try:
            self._on_tick(snapshot)
        except Exception as e:
            logger.bind(error=str(e)).warning("Tick listener failed")

    def _restart_ticker(self) -> None:
        live = self._countdown.latest.state in (CountdownState.COUNTING, CountdownState.PAUSED)
        if live and self._started and not self._ticker.suspended:
            self._ticker.start()
