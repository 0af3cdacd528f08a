"""Root conftest for all tests.

Shared fixtures: a controllable clock, in-memory persistence and
notification doubles, loguru capture and an in-memory SQLite database.
"""

import asyncio
from datetime import date, datetime, timezone

import pytest
from loguru import logger
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from quitpace.errors import SchedulingFailure, StorageFailure
from quitpace.events.types import EventLogEntry
from quitpace.notifications.scheduler import NotificationScheduler
from quitpace.plans.types import PlanConfig, PlanKind
from quitpace.timer.engine import QuitTimerEngine

PLAN_START = date(2024, 1, 1)
# 2024-01-01 12:00:00 UTC
NOON_MS = int(datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc).timestamp() * 1000)


class FakeClock:
    """Clock the test moves by hand. Always UTC."""

    def __init__(self, now_ms: int = NOON_MS) -> None:
        self._now_ms = now_ms

    def now_ms(self) -> int:
        return self._now_ms

    def tz(self):
        return timezone.utc

    def advance(self, seconds: float) -> None:
        self._now_ms += int(seconds * 1000)

    def set(self, now_ms: int) -> None:
        self._now_ms = now_ms


class InMemoryGateway:
    """Persistence double with failure injection.

    Attributes:
        config: Stored plan (None before onboarding)
        entries: Stored events in insertion order
        fail_append: Number of upcoming appends to reject
        fail_list: Reject list_entries() while True
        append_delay: Seconds each append suspends the caller
        calls: Operation names in call order
    """

    def __init__(self, config: PlanConfig | None = None, entries: list[EventLogEntry] | None = None) -> None:
        self.config = config
        self.entries = list(entries or [])
        self.fail_append = 0
        self.fail_list = False
        self.append_delay = 0.0
        self.calls: list[str] = []

    async def load_plan_config(self) -> PlanConfig | None:
        self.calls.append("load")
        return self.config

    async def append(self, entry: EventLogEntry) -> None:
        self.calls.append("append:start")
        if self.append_delay:
            await asyncio.sleep(self.append_delay)
        if self.fail_append:
            self.fail_append -= 1
            raise StorageFailure("append", OSError("disk full"))
        self.entries.append(entry)
        self.calls.append("append:end")

    async def list_entries(self) -> list[EventLogEntry]:
        self.calls.append("list")
        if self.fail_list:
            raise StorageFailure("list", OSError("read error"))
        return list(self.entries)


class RecordingBackend:
    """Notification backend double that records every call."""

    def __init__(self) -> None:
        self.pending: dict[str, tuple[int, object]] = {}
        self.scheduled: list[tuple[str, int]] = []
        self.cancelled: list[str] = []
        self.cancel_all_calls = 0
        self.fail_schedule = False
        self.fail_cancel = False
        self._next_id = 0

    async def schedule(self, fire_at_ms, payload) -> str:
        if self.fail_schedule:
            raise SchedulingFailure("notification permission revoked")
        self._next_id += 1
        handle = f"reminder-{self._next_id}"
        self.pending[handle] = (fire_at_ms, payload)
        self.scheduled.append((handle, fire_at_ms))
        return handle

    async def cancel(self, handle: str) -> None:
        if self.fail_cancel:
            raise SchedulingFailure("notification service unavailable")
        self.cancelled.append(handle)
        self.pending.pop(handle, None)

    async def cancel_all(self) -> None:
        self.cancel_all_calls += 1
        self.pending.clear()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def plan_config() -> PlanConfig:
    """20 a day on the balanced plan, started on the clock's day."""
    return PlanConfig(
        daily_baseline_count=20,
        plan_kind=PlanKind.BALANCED,
        start_date=PLAN_START,
        active_window_start="07:00",
        active_window_end="23:00",
        pack_price=10.0,
        units_per_pack=20,
    )


@pytest.fixture
def gateway(plan_config: PlanConfig) -> InMemoryGateway:
    return InMemoryGateway(config=plan_config)


@pytest.fixture
def backend() -> RecordingBackend:
    return RecordingBackend()


@pytest.fixture
def scheduler(backend: RecordingBackend) -> NotificationScheduler:
    return NotificationScheduler(backend, early_buffer_seconds=27, title="Almost time!", body="Interval ending")


@pytest.fixture
def make_engine(gateway: InMemoryGateway, scheduler: NotificationScheduler, clock: FakeClock):
    """Factory for engines sharing the test's gateway, scheduler and clock."""

    def _make(**kwargs) -> QuitTimerEngine:
        kwargs.setdefault("clock", clock)
        kwargs.setdefault("enforce_active_window", False)
        kwargs.setdefault("sort_event_log", False)
        kwargs.setdefault("active_window_seconds_per_day", 57600)
        kwargs.setdefault("max_interval_seconds", 86400)
        return QuitTimerEngine(kwargs.pop("gateway", gateway), kwargs.pop("scheduler", scheduler), **kwargs)

    return _make


@pytest.fixture
def log_messages():
    """Capture loguru messages as "LEVEL message" strings."""
    messages: list[str] = []
    handler_id = logger.add(lambda m: messages.append(f"{m.record['level'].name} {m.record['message']}"), level="DEBUG")
    yield messages
    logger.remove(handler_id)


@pytest.fixture(scope="function")
def db_session(monkeypatch):
    """Provides an isolated in-memory SQLite database per test.

    Patches the lazy engine and session factory in quitpace.db.session so
    get_session() and init_db() use it. StaticPool keeps the single
    in-memory connection shared across the gateway's worker threads.
    """
    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    import quitpace.db.session as session_module
    from quitpace.db.models import Base

    Base.metadata.create_all(engine)
    test_session_local = sessionmaker(bind=engine, autocommit=False, autoflush=False)

    monkeypatch.setattr(session_module, "_engine", engine)
    monkeypatch.setattr(session_module, "_SessionLocal", test_session_local)

    session = test_session_local()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()
