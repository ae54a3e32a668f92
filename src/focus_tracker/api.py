from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from focus_tracker.duration import parse_duration_to_minutes
from focus_tracker.errors import (
    FocusTrackerError,
    NotAuthenticatedError,
    StoreError,
    TimerStateError,
    ValidationError,
)
from focus_tracker.models import Phase, Task
from focus_tracker.notifications import Notice
from focus_tracker.services import Services
from focus_tracker.timer import TimerState

logger = logging.getLogger(__name__)

ERROR_STATUS: tuple[tuple[type[FocusTrackerError], int], ...] = (
    (ValidationError, 422),
    (TimerStateError, 409),
    (NotAuthenticatedError, 401),
    (StoreError, 502),
)


def _require_auth(request: Request, token: str | None) -> None:
    if not token:
        return
    header = request.headers.get("x-api-token")
    query = request.query_params.get("token")
    if header == token or query == token:
        return
    raise HTTPException(status_code=401, detail="Unauthorized")


def _status_for(exc: FocusTrackerError) -> int:
    for cls, status in ERROR_STATUS:
        if isinstance(exc, cls):
            return status
    return 500


def _timer_payload(state: TimerState) -> dict[str, Any]:
    return {
        "phase": state.phase.value,
        "status": state.status.value,
        "secondsRemaining": state.seconds_remaining,
        "secondsTotal": state.seconds_total,
        "display": state.display,
        "progress": state.progress,
        "presetId": state.preset_id,
        "awaitingDecision": state.awaiting_decision,
        "soundEnabled": state.sound_enabled,
        "startedAt": state.started_at.isoformat() if state.started_at else None,
    }


def _task_payload(task: Task) -> dict[str, Any]:
    return {
        "id": task.id,
        "title": task.title,
        "completed": task.completed,
        "tags": list(task.tags),
        "priority": task.priority,
        "color": task.color,
        "createdAt": task.created_at.isoformat(),
    }


def _notice_payload(notice: Notice) -> dict[str, Any]:
    return {
        "id": notice.id,
        "title": notice.title,
        "description": notice.description,
        "variant": notice.variant,
        "createdAt": notice.created_at.isoformat(),
    }


class PresetRequest(BaseModel):
    preset_id: str


class PhaseRequest(BaseModel):
    phase: Phase


class CustomDurationsRequest(BaseModel):
    work_minutes: int | str
    break_minutes: int | str


class ResolveRequest(BaseModel):
    continue_: bool = Field(alias="continue")


class SoundRequest(BaseModel):
    enabled: bool | None = None


class TargetsRequest(BaseModel):
    task_target: int
    focus_target: int
    daily_focus_target: int | None = None


class TaskCreateRequest(BaseModel):
    title: str
    tags: list[str] = Field(default_factory=list)
    priority: str | None = None
    color: str | None = None
    completed: bool = False


class TaskUpdateRequest(BaseModel):
    title: str | None = None
    completed: bool | None = None
    tags: list[str] | None = None
    priority: str | None = None
    color: str | None = None


def build_app(services: Services, api_token: str | None = None) -> FastAPI:
    timer = services.timer
    dashboard = services.dashboard
    store = services.store

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        try:
            await dashboard.load()
        except FocusTrackerError as exc:
            logger.warning("initial dashboard load failed: %s", exc)
        yield
        await services.aclose()

    app = FastAPI(title="Focus Tracker", version="1.0.0", lifespan=lifespan)

    @app.exception_handler(FocusTrackerError)
    async def focus_error(_request: Request, exc: FocusTrackerError) -> JSONResponse:
        status = _status_for(exc)
        if status >= 500:
            logger.warning("request failed: %s", exc)
        return JSONResponse(status_code=status, content={"detail": str(exc)})

    @app.get("/api/timer")
    async def api_timer(request: Request) -> dict[str, Any]:
        _require_auth(request, api_token)
        return {
            "timer": _timer_payload(timer.state),
            "presets": [
                {"id": p.id, "name": p.name, "workMinutes": p.work_minutes, "breakMinutes": p.break_minutes}
                for p in timer.presets.all()
            ],
        }

    @app.post("/api/timer/start")
    async def api_timer_start(request: Request) -> dict[str, Any]:
        _require_auth(request, api_token)
        return {"timer": _timer_payload(timer.start())}

    @app.post("/api/timer/pause")
    async def api_timer_pause(request: Request) -> dict[str, Any]:
        _require_auth(request, api_token)
        return {"timer": _timer_payload(timer.pause())}

    @app.post("/api/timer/reset")
    async def api_timer_reset(request: Request) -> dict[str, Any]:
        _require_auth(request, api_token)
        return {"timer": _timer_payload(timer.reset())}

    @app.post("/api/timer/sound")
    async def api_timer_sound(request: Request, payload: SoundRequest) -> dict[str, Any]:
        _require_auth(request, api_token)
        if payload.enabled is None:
            state = timer.toggle_sound()
        else:
            state = timer.set_sound_enabled(payload.enabled)
        return {"timer": _timer_payload(state)}

    @app.post("/api/timer/preset")
    async def api_timer_preset(request: Request, payload: PresetRequest) -> dict[str, Any]:
        _require_auth(request, api_token)
        return {"timer": _timer_payload(timer.switch_preset(payload.preset_id))}

    @app.post("/api/timer/phase")
    async def api_timer_phase(request: Request, payload: PhaseRequest) -> dict[str, Any]:
        _require_auth(request, api_token)
        return {"timer": _timer_payload(timer.switch_phase(payload.phase))}

    @app.post("/api/timer/custom")
    async def api_timer_custom(request: Request, payload: CustomDurationsRequest) -> dict[str, Any]:
        _require_auth(request, api_token)
        state = timer.set_custom_durations(
            parse_duration_to_minutes(payload.work_minutes),
            parse_duration_to_minutes(payload.break_minutes),
        )
        return {"timer": _timer_payload(state)}

    @app.post("/api/timer/resolve")
    async def api_timer_resolve(request: Request, payload: ResolveRequest) -> dict[str, Any]:
        _require_auth(request, api_token)
        return {"timer": _timer_payload(timer.resolve_completion(payload.continue_))}

    @app.get("/api/stats")
    async def api_stats(request: Request, fresh: bool = False) -> dict[str, Any]:
        _require_auth(request, api_token)
        user_id = await store.require_user()
        if fresh:
            stats = await services.stats.fetch_fresh_stats(user_id)
        else:
            stats = await services.stats.fetch_aggregate_stats(user_id)
        return {"stats": stats.to_dict()}

    @app.get("/api/achievements")
    async def api_achievements(request: Request) -> dict[str, Any]:
        _require_auth(request, api_token)
        await dashboard.reload_tasks()
        await dashboard.refresh_stats()
        return {
            "achievements": [
                {
                    "id": a.id,
                    "name": a.name,
                    "description": a.description,
                    "icon": a.icon,
                    "progress": a.progress,
                    "target": a.target,
                    "completed": a.completed,
                    "ratio": a.ratio,
                }
                for a in dashboard.achievements()
            ]
        }

    @app.get("/api/targets")
    async def api_targets(request: Request) -> dict[str, Any]:
        _require_auth(request, api_token)
        targets = dashboard.targets()
        return {
            "dailyTargets": {"taskTarget": targets.task_target, "focusTarget": targets.focus_target},
            "dailyFocusTarget": dashboard.local_config.load_focus_target(),
            "progress": dashboard.daily_progress().to_dict(),
        }

    @app.put("/api/targets")
    async def api_save_targets(request: Request, payload: TargetsRequest) -> dict[str, Any]:
        _require_auth(request, api_token)
        targets = dashboard.save_targets(payload.task_target, payload.focus_target)
        if payload.daily_focus_target is not None:
            dashboard.save_focus_target(payload.daily_focus_target)
        return {
            "ok": True,
            "dailyTargets": {"taskTarget": targets.task_target, "focusTarget": targets.focus_target},
        }

    @app.get("/api/tasks")
    async def api_tasks(request: Request) -> dict[str, Any]:
        _require_auth(request, api_token)
        return {"tasks": [_task_payload(t) for t in await dashboard.reload_tasks()]}

    @app.post("/api/tasks")
    async def api_create_task(request: Request, payload: TaskCreateRequest) -> dict[str, Any]:
        _require_auth(request, api_token)
        task = await store.create_task(
            payload.title,
            tags=payload.tags,
            priority=payload.priority,
            color=payload.color,
            completed=payload.completed,
        )
        return {"task": _task_payload(task)}

    @app.patch("/api/tasks/{task_id}")
    async def api_update_task(task_id: str, request: Request, payload: TaskUpdateRequest) -> dict[str, Any]:
        _require_auth(request, api_token)
        task = await store.update_task(task_id, **payload.model_dump(exclude_unset=True))
        if task is None:
            raise HTTPException(status_code=404, detail="Task not found")
        return {"task": _task_payload(task)}

    @app.delete("/api/tasks/{task_id}")
    async def api_delete_task(task_id: str, request: Request) -> dict[str, Any]:
        _require_auth(request, api_token)
        if not await store.delete_task(task_id):
            raise HTTPException(status_code=404, detail="Task not found")
        return {"ok": True}

    @app.get("/api/notices")
    async def api_notices(request: Request) -> dict[str, Any]:
        _require_auth(request, api_token)
        return {"notices": [_notice_payload(n) for n in services.notices.list()]}

    @app.delete("/api/notices/{notice_id}")
    async def api_dismiss_notice(notice_id: int, request: Request) -> dict[str, Any]:
        _require_auth(request, api_token)
        if not services.notices.dismiss(notice_id):
            raise HTTPException(status_code=404, detail="Notice not found")
        return {"ok": True}

    return app
