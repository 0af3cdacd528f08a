"""Persistence gateway consumed by the timer engine.

The engine only needs three operations: load the plan, append an event and
list the log. Everything is async so a gateway may suspend the caller.
Failures surface as StorageFailure; nothing is silently dropped.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any, Protocol, TypeVar

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError

from quitpace.config.settings import settings
from quitpace.db import session as db_session
from quitpace.errors import StorageFailure
from quitpace.events.types import EventLogEntry
from quitpace.persistence import repository
from quitpace.plans.types import PlanConfig

T = TypeVar("T")


class PersistenceGateway(Protocol):
    """Durable store for the plan configuration and the event log."""

    async def load_plan_config(self) -> PlanConfig | None: ...

    async def append(self, entry: EventLogEntry) -> None: ...

    async def list_entries(self) -> list[EventLogEntry]: ...


class SqlPersistenceGateway:
    """SQLAlchemy-backed gateway.

    Repository calls are synchronous and run in a worker thread so the event
    loop (and the countdown ticker) keeps running during I/O.

    Args:
        retry_attempts: Extra attempts for a failed append (default from settings)
    """

    def __init__(self, *, retry_attempts: int | None = None) -> None:
        self.retry_attempts = settings.storage_retry_attempts if retry_attempts is None else retry_attempts

    async def _run(self, operation: str, fn: Callable[..., T], *args: Any) -> T:
        try:
            return await asyncio.to_thread(fn, *args)
        except (SQLAlchemyError, OSError) as e:
            logger.bind(operation=operation, error=str(e)).warning("Storage operation failed")
            raise StorageFailure(operation, e) from e

    async def load_plan_config(self) -> PlanConfig | None:
        return await self._run("load_plan_config", _load_plan_config)

    async def append(self, entry: EventLogEntry) -> None:
        """Append an event, retrying before surfacing the failure."""
        attempt = 0
        while True:
            try:
                await self._run("append", _append_event, entry)
                return
            except StorageFailure:
                if attempt >= self.retry_attempts:
                    logger.bind(occurred_at_ms=entry.occurred_at_ms, attempts=attempt + 1).error(
                        "Event append failed after retries"
                    )
                    raise
                attempt += 1
                logger.bind(occurred_at_ms=entry.occurred_at_ms, attempt=attempt).info("Retrying event append")

    async def list_entries(self) -> list[EventLogEntry]:
        return await self._run("list", _list_events)

    async def save_plan_config(self, config: PlanConfig) -> None:
        await self._run("save_plan_config", _save_plan_config, config)

    async def clear_all_data(self) -> dict[str, int]:
        counts = await self._run("clear_all_data", _clear_all_data)
        logger.info(f"Cleared all data: {counts}")
        return counts


def _load_plan_config() -> PlanConfig | None:
    with db_session.get_session() as db:
        return repository.get_plan_config(db)


def _append_event(entry: EventLogEntry) -> None:
    with db_session.get_session() as db:
        repository.append_event(db, entry)


def _list_events() -> list[EventLogEntry]:
    with db_session.get_session() as db:
        return repository.list_events(db)


def _save_plan_config(config: PlanConfig) -> None:
    with db_session.get_session() as db:
        repository.save_plan_config(db, config)


def _clear_all_data() -> dict[str, int]:
    with db_session.get_session() as db:
        return repository.clear_all_data(db)
