"""Bounded, filterable store of gateway log entries"""

from collections import deque
from datetime import datetime
from typing import Deque, Iterable, List, Optional

from settings import LOG_BUFFER_CAPACITY
from .models import LogEntry, LogFilter, LogLevel


def _as_aware(value: datetime) -> datetime:
    # Naive bounds come from operator input and are read as local time
    if value.tzinfo is None:
        return value.astimezone()
    return value


def _level_value(level) -> str:
    return level.value if isinstance(level, LogLevel) else str(level).strip().lower()


class LogBuffer:
    """FIFO log buffer with a fixed capacity

    Entries are kept in arrival order. When the buffer is full the oldest
    entry is evicted. While paused, incoming entries are dropped without
    touching what is already stored.
    """

    def __init__(self, capacity: Optional[int] = None):
        self.capacity = LOG_BUFFER_CAPACITY if capacity is None else capacity
        if self.capacity <= 0:
            raise ValueError("capacity must be positive")
        self._entries: Deque[LogEntry] = deque(maxlen=self.capacity)
        self._paused = False

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def entries(self) -> List[LogEntry]:
        return list(self._entries)

    @property
    def paused(self) -> bool:
        return self._paused

    def pause(self) -> None:
        self._paused = True

    def resume(self) -> None:
        self._paused = False

    def toggle_pause(self) -> bool:
        """Flip the paused flag and return the new value"""
        self._paused = not self._paused
        return self._paused

    def accept(self, entry: LogEntry) -> bool:
        """Append an entry

        Returns:
            False if the buffer is paused and the entry was dropped
        """
        if self._paused:
            return False
        # deque(maxlen) drops from the left once full
        self._entries.append(entry)
        return True

    def replace(self, entries: Iterable[LogEntry]) -> None:
        """Swap the contents for a fresh backlog, keeping the newest entries"""
        self._entries = deque(entries, maxlen=self.capacity)

    def clear(self) -> None:
        self._entries.clear()

    def query(self, log_filter: Optional[LogFilter] = None) -> List[LogEntry]:
        """Return the entries matching every criterion of ``log_filter``

        Recomputed on each call from the live contents.
        """
        return filter_entries(self._entries, log_filter)


def filter_entries(entries: Iterable[LogEntry], log_filter: Optional[LogFilter] = None) -> List[LogEntry]:
    """Apply the filter pipeline: errors-only or level, then search, then date range"""
    if log_filter is None:
        return list(entries)

    if log_filter.errors_only:
        entries = [e for e in entries if e.level == LogLevel.ERROR]
    else:
        level = _level_value(log_filter.level)
        if level != "all":
            entries = [e for e in entries if e.level.value == level]

    if log_filter.search and log_filter.search.strip():
        # Matched untrimmed; blank input disables the search
        term = log_filter.search.lower()
        entries = [
            e for e in entries
            if term in e.message.lower() or term in e.level.value
        ]

    if log_filter.date_from is not None:
        lower = _as_aware(log_filter.date_from)
        entries = [e for e in entries if e.timestamp >= lower]
    if log_filter.date_to is not None:
        upper = _as_aware(log_filter.date_to)
        entries = [e for e in entries if e.timestamp <= upper]

    return list(entries)
