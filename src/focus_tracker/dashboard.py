from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from focus_tracker.achievements import DailyProgress, daily_progress, evaluate_achievements, task_streak
from focus_tracker.local_config import LocalConfig
from focus_tracker.models import Achievement, AggregateStats, DailyTargets, Profile, Task
from focus_tracker.stats import StatsService
from focus_tracker.store.focus_store import FocusStore
from focus_tracker.time_utils import DEFAULT_TZ, Clock, to_local, utc_now

logger = logging.getLogger(__name__)


@dataclass
class DashboardView:
    tasks: list[Task] = field(default_factory=list)
    stats: AggregateStats = field(default_factory=AggregateStats.zeroed)
    profile: Profile | None = None
    loading: bool = True


class Dashboard:
    """View state for the outer surface: tasks, weekly stats, targets and achievements.

    ``on_focus_session_complete`` is wired as the recorder's completion
    callback. It reads stats around the cache so a just-recorded session shows
    up immediately. After ``close`` late results are dropped.
    """

    def __init__(
        self,
        store: FocusStore,
        stats: StatsService,
        local_config: LocalConfig,
        *,
        clock: Clock = utc_now,
        tz_name: str = DEFAULT_TZ,
    ) -> None:
        self.store = store
        self.stats_service = stats
        self.local_config = local_config
        self._clock = clock
        self.tz_name = tz_name
        self.view = DashboardView()
        self._mounted = True

    @property
    def mounted(self) -> bool:
        return self._mounted

    async def load(self, email: str | None = None) -> DashboardView:
        user_id = await self.store.require_user()
        tasks, stats, profile = await asyncio.gather(
            self.store.list_tasks(),
            self.stats_service.fetch_aggregate_stats(user_id),
            self.store.load_profile(email),
        )
        if not self._mounted:
            logger.debug("dashboard closed during load, dropping result")
            return self.view
        self.view = DashboardView(tasks=tasks, stats=stats, profile=profile, loading=False)
        return self.view

    async def refresh_stats(self) -> AggregateStats:
        user_id = await self.store.require_user()
        stats = await self.stats_service.fetch_aggregate_stats(user_id)
        if self._mounted:
            self.view.stats = stats
        return stats

    async def on_focus_session_complete(self) -> None:
        user_id = await self.store.require_user()
        tasks, stats = await asyncio.gather(
            self.store.list_tasks(),
            self.stats_service.fetch_fresh_stats(user_id),
        )
        if not self._mounted:
            logger.debug("dashboard closed, ignoring refresh after focus session")
            return
        self.view.tasks = tasks
        self.view.stats = stats
        self.view.loading = False
        logger.info(
            "dashboard refreshed user_id=%s sessions=%s minutes=%s",
            user_id,
            stats.focus_session_count,
            stats.total_focus_minutes,
        )

    async def reload_tasks(self) -> list[Task]:
        tasks = await self.store.list_tasks()
        if self._mounted:
            self.view.tasks = tasks
        return tasks

    def close(self) -> None:
        self._mounted = False

    def targets(self) -> DailyTargets:
        return self.local_config.load_targets()

    def save_targets(self, task_target: int, focus_target: int) -> DailyTargets:
        targets = self.local_config.save_targets(task_target, focus_target)
        logger.info("daily targets saved tasks=%s focus=%s", targets.task_target, targets.focus_target)
        return targets

    def save_focus_target(self, minutes: int) -> int:
        return self.local_config.save_focus_target(minutes)

    def achievements(self) -> list[Achievement]:
        today = to_local(self._clock(), self.tz_name).date()
        streak = task_streak(self.view.tasks, today, self.tz_name)
        return evaluate_achievements(self.view.stats, streak)

    def daily_progress(self) -> DailyProgress:
        today = to_local(self._clock(), self.tz_name).date()
        return daily_progress(
            self.view.stats,
            self.local_config.load_targets(),
            today,
            daily_focus_target=self.local_config.load_focus_target(),
        )
