from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Any, Iterable

from focus_tracker.cache import DEFAULT_FRESHNESS, TimedCache
from focus_tracker.errors import (
    MISSING_TABLE_CODE,
    NotAuthenticatedError,
    SchemaMissingError,
    StoreError,
    StoreUnavailableError,
    StoreWriteError,
    ValidationError,
)
from focus_tracker.models import Profile, SessionRecord, Task
from focus_tracker.store.base import RowBackend
from focus_tracker.store.converters import _row_to_profile, _row_to_session, _row_to_task
from focus_tracker.time_utils import Clock, utc_now

logger = logging.getLogger(__name__)

TASKS_TABLE = "tasks"
SESSIONS_TABLE = "focus_sessions"
PROFILES_TABLE = "profiles"

PRIORITIES = ("low", "medium", "high")
TASK_UPDATE_FIELDS = ("title", "completed", "tags", "priority", "color")


def _check_priority(priority: str | None) -> str | None:
    if priority is not None and priority not in PRIORITIES:
        raise ValidationError(f"priority must be one of {', '.join(PRIORITIES)}")
    return priority


class FocusStore:
    """Persistent store client: every read and write is scoped to the authenticated user."""

    def __init__(
        self,
        backend: RowBackend,
        *,
        freshness: timedelta = DEFAULT_FRESHNESS,
        clock: Clock = utc_now,
    ) -> None:
        self.backend = backend
        self._clock = clock
        self._task_cache: TimedCache[list[Task]] = TimedCache(freshness, clock)

    async def current_user_id(self) -> str | None:
        return await self.backend.current_user_id()

    async def require_user(self) -> str:
        user_id = await self.backend.current_user_id()
        if not user_id:
            raise NotAuthenticatedError("No authenticated user")
        return user_id

    async def record_session(self, duration_minutes: int) -> SessionRecord:
        if isinstance(duration_minutes, bool) or not isinstance(duration_minutes, int) or duration_minutes <= 0:
            raise ValidationError(f"Invalid focus session duration: {duration_minutes!r}")
        user_id = await self.require_user()

        try:
            if not await self.backend.table_exists(SESSIONS_TABLE):
                raise StoreUnavailableError(f"{SESSIONS_TABLE} table does not exist", code=MISSING_TABLE_CODE)
            row = await self.backend.insert(
                SESSIONS_TABLE,
                {"user_id": user_id, "duration": duration_minutes, "created_at": self._clock()},
            )
        except StoreUnavailableError:
            raise
        except SchemaMissingError as exc:
            raise StoreUnavailableError(str(exc), code=exc.code) from exc
        except StoreWriteError:
            raise
        except StoreError as exc:
            raise StoreWriteError(str(exc), code=exc.code) from exc

        if not row:
            raise StoreWriteError("Failed to record focus session - no data returned")
        record = _row_to_session(row)
        logger.info("recorded focus session user_id=%s minutes=%s", user_id, duration_minutes)
        return record

    async def fetch_week_rows(self, user_id: str, since: datetime) -> tuple[list[Task], list[SessionRecord]]:
        """Completed tasks and focus sessions created at or after ``since``.

        Raises SchemaMissingError when either table is absent.
        """
        tasks_ok, sessions_ok = await asyncio.gather(
            self.backend.table_exists(TASKS_TABLE),
            self.backend.table_exists(SESSIONS_TABLE),
        )
        if not (tasks_ok and sessions_ok):
            missing = [name for name, ok in ((TASKS_TABLE, tasks_ok), (SESSIONS_TABLE, sessions_ok)) if not ok]
            raise SchemaMissingError(f"missing tables: {', '.join(missing)}", code=MISSING_TABLE_CODE)

        task_rows, session_rows = await asyncio.gather(
            self.backend.select(
                TASKS_TABLE,
                equals={"user_id": user_id, "completed": True},
                since=("created_at", since),
            ),
            self.backend.select(
                SESSIONS_TABLE,
                equals={"user_id": user_id},
                since=("created_at", since),
            ),
        )
        return [_row_to_task(r) for r in task_rows], [_row_to_session(r) for r in session_rows]

    async def list_tasks(self) -> list[Task]:
        user_id = await self.current_user_id()
        if not user_id:
            return []
        cached = self._task_cache.get(user_id)
        if cached is not None:
            return cached
        try:
            if not await self.backend.table_exists(TASKS_TABLE):
                logger.info("tasks table missing, returning no tasks")
                return []
            rows = await self.backend.select(
                TASKS_TABLE,
                equals={"user_id": user_id},
                order_by="created_at",
                descending=True,
            )
        except SchemaMissingError:
            return []
        tasks = [_row_to_task(r) for r in rows]
        self._task_cache.put(user_id, tasks)
        return tasks

    async def create_task(
        self,
        title: str,
        *,
        tags: Iterable[str] = (),
        priority: str | None = None,
        color: str | None = None,
        completed: bool = False,
    ) -> Task:
        clean_title = title.strip()
        if not clean_title:
            raise ValidationError("Task title is required")
        user_id = await self.require_user()
        row = await self.backend.insert(
            TASKS_TABLE,
            {
                "user_id": user_id,
                "title": clean_title,
                "completed": completed,
                "tags": [str(t) for t in tags],
                "priority": _check_priority(priority),
                "color": color,
                "created_at": self._clock(),
            },
        )
        if not row:
            raise StoreWriteError("Failed to create task - no data returned")
        self._task_cache.discard(user_id)
        return _row_to_task(row)

    async def update_task(self, task_id: str, **updates: Any) -> Task | None:
        unknown = [k for k in updates if k not in TASK_UPDATE_FIELDS]
        if unknown:
            raise ValidationError(f"Cannot update task fields: {', '.join(unknown)}")
        if "priority" in updates:
            _check_priority(updates["priority"])
        if "title" in updates:
            updates["title"] = str(updates["title"]).strip()
            if not updates["title"]:
                raise ValidationError("Task title is required")
        if "tags" in updates:
            updates["tags"] = [str(t) for t in updates["tags"] or ()]
        user_id = await self.require_user()
        rows = await self.backend.update(TASKS_TABLE, updates, equals={"id": task_id, "user_id": user_id})
        self._task_cache.discard(user_id)
        return _row_to_task(rows[0]) if rows else None

    async def delete_task(self, task_id: str) -> bool:
        user_id = await self.require_user()
        deleted = await self.backend.delete(TASKS_TABLE, equals={"id": task_id, "user_id": user_id})
        self._task_cache.discard(user_id)
        return deleted > 0

    async def load_profile(self, email: str | None = None) -> Profile:
        user_id = await self.require_user()
        fallback = Profile(
            id=user_id,
            full_name=(email or "").split("@")[0] or "User",
            email=email,
            updated_at=self._clock(),
        )
        try:
            rows = await self.backend.select(PROFILES_TABLE, equals={"id": user_id}, limit=1)
            if rows:
                return _row_to_profile(rows[0])
            created = await self.backend.insert(
                PROFILES_TABLE,
                {
                    "id": fallback.id,
                    "full_name": fallback.full_name,
                    "email": fallback.email,
                    "updated_at": fallback.updated_at,
                },
            )
        except StoreError as exc:
            logger.info("profile unavailable, using default user_id=%s: %s", user_id, exc)
            return fallback
        return _row_to_profile(created) if created else fallback

    async def aclose(self) -> None:
        await self.backend.aclose()
