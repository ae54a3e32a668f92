from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Generic, Hashable, TypeVar

from focus_tracker.time_utils import Clock, utc_now

T = TypeVar("T")

DEFAULT_FRESHNESS = timedelta(minutes=5)


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    data: T
    fetched_at: datetime


class TimedCache(Generic[T]):
    """Per-key memo that trusts an entry while it is younger than the freshness window.

    Entries are never invalidated by writes elsewhere; they only age out.
    """

    def __init__(self, freshness: timedelta = DEFAULT_FRESHNESS, clock: Clock = utc_now) -> None:
        if freshness <= timedelta(0):
            raise ValueError("freshness window must be positive")
        self.freshness = freshness
        self._clock = clock
        self._entries: dict[Hashable, CacheEntry[T]] = {}

    def is_fresh(self, entry: CacheEntry[T], now: datetime | None = None) -> bool:
        current = now if now is not None else self._clock()
        return current - entry.fetched_at < self.freshness

    def get(self, key: Hashable) -> T | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if not self.is_fresh(entry):
            del self._entries[key]
            return None
        return entry.data

    def put(self, key: Hashable, data: T) -> CacheEntry[T]:
        entry = CacheEntry(data=data, fetched_at=self._clock())
        self._entries[key] = entry
        return entry

    def discard(self, key: Hashable) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
