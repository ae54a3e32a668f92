from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from focus_tracker.config import Settings
from focus_tracker.dashboard import Dashboard
from focus_tracker.errors import NotAuthenticatedError
from focus_tracker.local_config import LocalConfig
from focus_tracker.services import build_services
from focus_tracker.sound import SilentPlayer
from focus_tracker.stats import StatsService
from focus_tracker.store import Database, FocusStore, SqliteBackend

NOW = datetime(2026, 2, 4, 9, 0, tzinfo=timezone.utc)  # Wednesday


class FakeClock:
    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


def _dashboard(tmp_path: Path, clock: FakeClock, user_id: str | None = "u1") -> Dashboard:
    store = FocusStore(SqliteBackend(Database(tmp_path / "focus.db"), user_id), clock=clock)
    stats = StatsService(store, clock=clock)
    return Dashboard(store, stats, LocalConfig(tmp_path / "local.json"), clock=clock)


def _settings(tmp_path: Path) -> Settings:
    return Settings(
        store_backend="sqlite",
        database_path=tmp_path / "focus.db",
        user_id="u1",
        supabase_url=None,
        supabase_anon_key=None,
        supabase_access_token=None,
        tz="Europe/Oslo",
        stats_cache_seconds=300,
        sound_enabled=False,
        presets_path=tmp_path / "presets.yaml",
        local_config_path=tmp_path / "local.json",
        api_host="127.0.0.1",
        api_port=8080,
        api_token=None,
        log_level="INFO",
    )


def test_load_fills_view(tmp_path) -> None:
    async def scenario() -> None:
        clock = FakeClock()
        dashboard = _dashboard(tmp_path, clock)
        await dashboard.store.create_task("ship it", completed=True)
        await dashboard.store.record_session(25)

        view = await dashboard.load("ada@example.com")
        assert view.loading is False
        assert [t.title for t in view.tasks] == ["ship it"]
        assert view.stats.focus_session_count == 1
        assert view.stats.count_for("Wed") == 1
        assert view.profile is not None and view.profile.full_name == "ada"

    asyncio.run(scenario())


def test_load_requires_user(tmp_path) -> None:
    dashboard = _dashboard(tmp_path, FakeClock(), user_id=None)
    with pytest.raises(NotAuthenticatedError):
        asyncio.run(dashboard.load())


def test_session_complete_bypasses_stats_cache(tmp_path) -> None:
    async def scenario() -> None:
        clock = FakeClock()
        dashboard = _dashboard(tmp_path, clock)
        await dashboard.load()
        assert dashboard.view.stats.focus_session_count == 0

        await dashboard.store.record_session(25)
        assert (await dashboard.refresh_stats()).focus_session_count == 0

        await dashboard.on_focus_session_complete()
        assert dashboard.view.stats.focus_session_count == 1
        assert dashboard.view.stats.total_focus_minutes == 25

    asyncio.run(scenario())


def test_closed_dashboard_ignores_late_refresh(tmp_path) -> None:
    async def scenario() -> None:
        dashboard = _dashboard(tmp_path, FakeClock())
        await dashboard.load()
        dashboard.close()
        await dashboard.store.record_session(25)
        await dashboard.on_focus_session_complete()
        assert dashboard.mounted is False
        assert dashboard.view.stats.focus_session_count == 0

    asyncio.run(scenario())


def test_achievements_and_progress(tmp_path) -> None:
    async def scenario() -> None:
        clock = FakeClock()
        dashboard = _dashboard(tmp_path, clock)
        for days_back in (2, 1, 0):
            clock.now = NOW - timedelta(days=days_back)
            await dashboard.store.create_task(f"task {days_back}", completed=True)
        clock.now = NOW
        await dashboard.store.record_session(50)
        await dashboard.load()

        by_id = {a.id: a for a in dashboard.achievements()}
        assert by_id["first-focus"].completed
        assert by_id["on-a-roll"].completed
        assert by_id["steady-week"].progress == 3

        dashboard.save_targets(2, 45)
        dashboard.save_focus_target(10)
        progress = dashboard.daily_progress()
        assert progress.tasks_done == 1
        assert progress.task_target == 2
        assert progress.task_ratio == 0.5
        assert progress.focus_target == 70
        assert progress.focus_ratio == pytest.approx(50 / 70)

    asyncio.run(scenario())


def test_wired_services_refresh_after_timer_completion(tmp_path) -> None:
    async def scenario() -> None:
        services = build_services(_settings(tmp_path), sound=SilentPlayer(), clock=FakeClock())
        await services.dashboard.load()
        services.timer.tick_interval = 3600
        services.timer.set_custom_durations(1, 1)
        services.timer.start()
        for _ in range(60):
            services.timer.tick()
        outcomes = await services.timer.wait_for_recordings()

        assert outcomes[0].ok
        assert services.timer.last_outcome is outcomes[0]
        assert services.dashboard.view.stats.focus_session_count == 1
        assert services.dashboard.view.stats.total_focus_minutes == 1
        assert [n.title for n in services.notices.list()] == ["Focus session completed!"]
        await services.aclose()

    asyncio.run(scenario())
