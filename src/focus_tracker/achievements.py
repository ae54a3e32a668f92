from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Callable, Iterable

from focus_tracker.models import Achievement, AggregateStats, DailyTargets, Task
from focus_tracker.time_utils import DEFAULT_TZ, WEEKDAY_LABELS, to_local, weekday_label


@dataclass(frozen=True)
class AchievementRule:
    id: str
    name: str
    description: str
    icon: str
    target: int
    measure: Callable[[AggregateStats, int], int]


def _active_days(stats: AggregateStats, _streak: int) -> int:
    return sum(1 for label in WEEKDAY_LABELS if stats.count_for(label) > 0)


ACHIEVEMENTS: tuple[AchievementRule, ...] = (
    AchievementRule(
        id="first-focus",
        name="First Focus",
        description="Complete your first focus session",
        icon="timer",
        target=1,
        measure=lambda stats, _streak: stats.focus_session_count,
    ),
    AchievementRule(
        id="focus-marathon",
        name="Focus Marathon",
        description="Focus for 300 minutes in a week",
        icon="flame",
        target=300,
        measure=lambda stats, _streak: stats.total_focus_minutes,
    ),
    AchievementRule(
        id="task-master",
        name="Task Master",
        description="Complete 10 tasks in a week",
        icon="check",
        target=10,
        measure=lambda stats, _streak: stats.completed_task_count,
    ),
    AchievementRule(
        id="steady-week",
        name="Steady Week",
        description="Complete a task on 5 different days of the week",
        icon="calendar",
        target=5,
        measure=_active_days,
    ),
    AchievementRule(
        id="on-a-roll",
        name="On a Roll",
        description="Complete tasks 3 days in a row",
        icon="trophy",
        target=3,
        measure=lambda _stats, streak: streak,
    ),
)


def task_streak(tasks: Iterable[Task], today: date, tz_name: str = DEFAULT_TZ) -> int:
    """Consecutive days, ending today, with at least one completed task."""
    days = {to_local(t.created_at, tz_name).date() for t in tasks if t.completed}
    streak = 0
    day = today
    while day in days:
        streak += 1
        day -= timedelta(days=1)
    return streak


def evaluate_achievements(stats: AggregateStats, streak: int = 0) -> list[Achievement]:
    result: list[Achievement] = []
    for rule in ACHIEVEMENTS:
        progress = max(0, int(rule.measure(stats, streak)))
        result.append(
            Achievement(
                id=rule.id,
                name=rule.name,
                description=rule.description,
                icon=rule.icon,
                progress=min(progress, rule.target),
                target=rule.target,
                completed=progress >= rule.target,
            )
        )
    return result


@dataclass(frozen=True)
class DailyProgress:
    tasks_done: int
    task_target: int
    focus_minutes: int
    focus_target: int

    @property
    def task_ratio(self) -> float:
        return _ratio(self.tasks_done, self.task_target)

    @property
    def focus_ratio(self) -> float:
        return _ratio(self.focus_minutes, self.focus_target)

    def to_dict(self) -> dict[str, float | int]:
        return {
            "tasksDone": self.tasks_done,
            "taskTarget": self.task_target,
            "taskRatio": self.task_ratio,
            "focusMinutes": self.focus_minutes,
            "focusTarget": self.focus_target,
            "focusRatio": self.focus_ratio,
        }


def _ratio(done: int, target: int) -> float:
    if target <= 0:
        return 1.0
    return min(done / target, 1.0)


def daily_progress(
    stats: AggregateStats,
    targets: DailyTargets,
    today: date,
    daily_focus_target: int | None = None,
) -> DailyProgress:
    """Today's completions against the task target.

    Focus minutes are only tracked per week, so they are compared with a
    seven-day multiple of the daily focus target.
    """
    focus_daily = daily_focus_target if daily_focus_target is not None else targets.focus_target
    return DailyProgress(
        tasks_done=stats.count_for(weekday_label(today)),
        task_target=targets.task_target,
        focus_minutes=stats.total_focus_minutes,
        focus_target=focus_daily * 7,
    )
