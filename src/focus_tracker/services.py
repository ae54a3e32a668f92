from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta

from focus_tracker.cache import TimedCache
from focus_tracker.config import Settings
from focus_tracker.dashboard import Dashboard
from focus_tracker.local_config import LocalConfig
from focus_tracker.notifications import NoticeBoard
from focus_tracker.presets import load_presets
from focus_tracker.recorder import SessionRecorder
from focus_tracker.sound import SoundPlayer, TerminalChime
from focus_tracker.stats import StatsService
from focus_tracker.store import Database, FocusStore, RestBackend, RowBackend, SqliteBackend
from focus_tracker.time_utils import Clock, utc_now
from focus_tracker.timer import FocusTimer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Services:
    store: FocusStore
    stats: StatsService
    notices: NoticeBoard
    recorder: SessionRecorder
    timer: FocusTimer
    dashboard: Dashboard

    async def aclose(self) -> None:
        self.timer.close()
        self.dashboard.close()
        await self.store.aclose()


def build_backend(settings: Settings, freshness: timedelta) -> RowBackend:
    if settings.store_backend == "rest":
        if not (settings.supabase_url and settings.supabase_anon_key):
            raise RuntimeError("SUPABASE_URL and SUPABASE_ANON_KEY are required for the rest backend")
        return RestBackend(
            settings.supabase_url,
            settings.supabase_anon_key,
            settings.supabase_access_token,
            identity_cache=TimedCache(freshness),
        )
    return SqliteBackend(Database(settings.database_path), settings.user_id)


def build_services(
    settings: Settings,
    *,
    backend: RowBackend | None = None,
    sound: SoundPlayer | None = None,
    clock: Clock = utc_now,
) -> Services:
    freshness = timedelta(seconds=settings.stats_cache_seconds)
    row_backend = backend if backend is not None else build_backend(settings, freshness)
    store = FocusStore(row_backend, freshness=freshness, clock=clock)
    stats = StatsService(store, freshness=freshness, clock=clock, tz_name=settings.tz)
    notices = NoticeBoard(clock=clock)
    dashboard = Dashboard(store, stats, LocalConfig(settings.local_config_path), clock=clock, tz_name=settings.tz)
    recorder = SessionRecorder(store, notices, on_complete=dashboard.on_focus_session_complete)
    if sound is None:
        sound = TerminalChime()
    timer = FocusTimer(
        load_presets(settings.presets_path),
        recorder=recorder,
        sound=sound,
        sound_enabled=settings.sound_enabled,
        clock=clock,
    )
    logger.info("services ready backend=%s tz=%s", settings.store_backend, settings.tz)
    return Services(store=store, stats=stats, notices=notices, recorder=recorder, timer=timer, dashboard=dashboard)
