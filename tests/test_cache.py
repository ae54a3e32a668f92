from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from focus_tracker.cache import DEFAULT_FRESHNESS, TimedCache


class FakeClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


def _clock() -> FakeClock:
    return FakeClock(datetime(2026, 2, 4, 9, 0, tzinfo=timezone.utc))


def test_default_freshness_is_five_minutes() -> None:
    assert DEFAULT_FRESHNESS == timedelta(minutes=5)


def test_entry_is_served_until_window_ends() -> None:
    clock = _clock()
    cache: TimedCache[str] = TimedCache(clock=clock)
    entry = cache.put("u1", "value")
    assert entry.fetched_at == clock.now

    clock.advance(minutes=4, seconds=59)
    assert cache.get("u1") == "value"

    clock.advance(seconds=1)
    assert cache.get("u1") is None
    assert len(cache) == 0


def test_keys_are_independent() -> None:
    clock = _clock()
    cache: TimedCache[int] = TimedCache(clock=clock)
    cache.put("a", 1)
    clock.advance(minutes=3)
    cache.put("b", 2)
    clock.advance(minutes=3)
    assert cache.get("a") is None
    assert cache.get("b") == 2


def test_discard_and_clear() -> None:
    cache: TimedCache[int] = TimedCache(clock=_clock())
    cache.put("a", 1)
    cache.put("b", 2)
    cache.discard("a")
    cache.discard("missing")
    assert cache.get("a") is None
    assert cache.get("b") == 2
    cache.clear()
    assert len(cache) == 0


def test_non_positive_freshness_rejected() -> None:
    with pytest.raises(ValueError):
        TimedCache(timedelta(0))
