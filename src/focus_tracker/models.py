from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from focus_tracker.time_utils import WEEKDAY_LABELS, empty_weekday_counts


class Phase(str, Enum):
    WORK = "work"
    BREAK = "break"

    @property
    def other(self) -> Phase:
        return Phase.BREAK if self is Phase.WORK else Phase.WORK


class TimerStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"


@dataclass(frozen=True)
class SessionRecord:
    id: str
    user_id: str
    duration_minutes: int
    created_at: datetime


@dataclass(frozen=True)
class Task:
    id: str
    user_id: str
    title: str
    completed: bool
    tags: tuple[str, ...]
    priority: str | None
    color: str | None
    created_at: datetime


@dataclass(frozen=True)
class Profile:
    id: str
    full_name: str | None
    email: str | None
    updated_at: datetime


@dataclass(frozen=True)
class AggregateStats:
    completed_task_count: int = 0
    focus_session_count: int = 0
    total_focus_minutes: int = 0
    daily_completion_counts: dict[str, int] = field(default_factory=empty_weekday_counts)

    @classmethod
    def zeroed(cls) -> AggregateStats:
        return cls()

    def count_for(self, label: str) -> int:
        return int(self.daily_completion_counts.get(label, 0))

    def to_dict(self) -> dict[str, Any]:
        return {
            "completedTaskCount": self.completed_task_count,
            "focusSessionCount": self.focus_session_count,
            "totalFocusMinutes": self.total_focus_minutes,
            "dailyCompletionCounts": {label: self.count_for(label) for label in WEEKDAY_LABELS},
        }


@dataclass(frozen=True)
class DailyTargets:
    task_target: int = 3
    focus_target: int = 60


@dataclass(frozen=True)
class Achievement:
    id: str
    name: str
    description: str
    icon: str
    progress: int
    target: int
    completed: bool

    @property
    def ratio(self) -> float:
        if self.target <= 0:
            return 1.0
        return min(self.progress / self.target, 1.0)
