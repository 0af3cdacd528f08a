"""Append-only event log.

Insertion order is trusted as chronological order. The engine never
mutates or deletes entries; bulk reset belongs to the clear-all-data
collaborator in the persistence layer.
"""

from collections.abc import Iterable, Iterator

from loguru import logger

from quitpace.events.types import EventLogEntry


class EventLog:
    """Ordered sequence of recorded events.

    Args:
        entries: Entries in insertion order
        sort_defensively: Sort by timestamp before answering last(), instead of
            trusting insertion order
    """

    def __init__(self, entries: Iterable[EventLogEntry] = (), *, sort_defensively: bool = False) -> None:
        self._entries: list[EventLogEntry] = list(entries)
        self.sort_defensively = sort_defensively

    def append(self, entry: EventLogEntry) -> None:
        if self._entries and entry.occurred_at_ms < self._entries[-1].occurred_at_ms:
            logger.bind(
                occurred_at_ms=entry.occurred_at_ms,
                previous_ms=self._entries[-1].occurred_at_ms,
            ).warning("Appending event older than the previous entry (clock moved backwards?)")
        self._entries.append(entry)

    @property
    def entries(self) -> tuple[EventLogEntry, ...]:
        return tuple(self._entries)

    def ordered(self) -> list[EventLogEntry]:
        """Entries in the order interval math should use."""
        if self.sort_defensively:
            return sorted(self._entries, key=lambda e: e.occurred_at_ms)
        return list(self._entries)

    def last(self) -> EventLogEntry | None:
        """Most recent event, or None for an empty log."""
        if not self._entries:
            return None
        if self.sort_defensively:
            return max(self._entries, key=lambda e: e.occurred_at_ms)
        return self._entries[-1]

    def since(self, epoch_ms: int) -> list[EventLogEntry]:
        """Entries at or after epoch_ms, in log order."""
        return [e for e in self.ordered() if e.occurred_at_ms >= epoch_ms]

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[EventLogEntry]:
        return iter(self._entries)
