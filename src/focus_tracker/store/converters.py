from __future__ import annotations

from focus_tracker.models import Profile, SessionRecord, Task
from focus_tracker.store.base import Row
from focus_tracker.time_utils import parse_timestamp, utc_now


def _row_to_session(row: Row) -> SessionRecord:
    return SessionRecord(
        id=str(row["id"]),
        user_id=str(row["user_id"]),
        duration_minutes=int(row.get("duration") or 0),
        created_at=parse_timestamp(row["created_at"]),
    )


def _row_to_task(row: Row) -> Task:
    tags = row.get("tags") or []
    return Task(
        id=str(row["id"]),
        user_id=str(row["user_id"]),
        title=str(row.get("title") or ""),
        completed=bool(row.get("completed")),
        tags=tuple(str(t) for t in tags),
        priority=row.get("priority"),
        color=row.get("color"),
        created_at=parse_timestamp(row["created_at"]),
    )


def _row_to_profile(row: Row) -> Profile:
    updated_raw = row.get("updated_at")
    updated_at = parse_timestamp(updated_raw) if updated_raw else utc_now()
    return Profile(
        id=str(row["id"]),
        full_name=row.get("full_name"),
        email=row.get("email"),
        updated_at=updated_at,
    )
