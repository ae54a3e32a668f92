from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Iterable

from focus_tracker.cache import DEFAULT_FRESHNESS, TimedCache
from focus_tracker.errors import SchemaMissingError
from focus_tracker.models import AggregateStats, SessionRecord, Task
from focus_tracker.store.focus_store import FocusStore
from focus_tracker.time_utils import DEFAULT_TZ, Clock, empty_weekday_counts, to_local, trailing_week, utc_now, weekday_label

logger = logging.getLogger(__name__)


def aggregate_stats(
    tasks: Iterable[Task],
    sessions: Iterable[SessionRecord],
    tz_name: str = DEFAULT_TZ,
) -> AggregateStats:
    completed = [t for t in tasks if t.completed]
    session_list = list(sessions)

    daily = empty_weekday_counts()
    for task in completed:
        label = weekday_label(to_local(task.created_at, tz_name))
        daily[label] += 1

    return AggregateStats(
        completed_task_count=len(completed),
        focus_session_count=len(session_list),
        total_focus_minutes=sum(max(0, s.duration_minutes) for s in session_list),
        daily_completion_counts=daily,
    )


class StatsService:
    """Trailing-week aggregates with a per-user freshness cache.

    Writes never invalidate the cache. Callers that need a read-your-writes view
    (the post-session dashboard refresh) use ``fetch_fresh_stats``.
    """

    def __init__(
        self,
        store: FocusStore,
        *,
        cache: TimedCache[AggregateStats] | None = None,
        freshness: timedelta = DEFAULT_FRESHNESS,
        clock: Clock = utc_now,
        tz_name: str = DEFAULT_TZ,
    ) -> None:
        self.store = store
        self.cache = cache if cache is not None else TimedCache(freshness, clock)
        self._clock = clock
        self.tz_name = tz_name

    async def fetch_aggregate_stats(self, user_id: str) -> AggregateStats:
        cached = self.cache.get(user_id)
        if cached is not None:
            logger.debug("stats cache hit user_id=%s", user_id)
            return cached

        stats = await self._compute_or_zero(user_id)
        if stats is None:
            return AggregateStats.zeroed()
        self.cache.put(user_id, stats)
        return stats

    async def fetch_fresh_stats(self, user_id: str) -> AggregateStats:
        stats = await self._compute_or_zero(user_id)
        return stats if stats is not None else AggregateStats.zeroed()

    async def compute_aggregate_stats(self, user_id: str, since: datetime) -> AggregateStats:
        tasks, sessions = await self.store.fetch_week_rows(user_id, since)
        return aggregate_stats(tasks, sessions, self.tz_name)

    async def _compute_or_zero(self, user_id: str) -> AggregateStats | None:
        window = trailing_week(self._clock())
        try:
            return await self.compute_aggregate_stats(user_id, window.start)
        except SchemaMissingError as exc:
            logger.info("stats tables unavailable, returning empty stats user_id=%s: %s", user_id, exc)
            return None
