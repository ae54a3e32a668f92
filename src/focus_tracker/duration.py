from __future__ import annotations

import re

from focus_tracker.errors import ValidationError

DURATION_PATTERN = re.compile(r"^(?:(?P<hours>\d+(?:\.\d+)?)h)?(?:(?P<minutes>\d+)m)?$")

WORK_MINUTES_RANGE = (1, 120)
BREAK_MINUTES_RANGE = (1, 30)


class DurationParseError(ValidationError):
    pass


def parse_duration_to_minutes(raw: str | int) -> int:
    if isinstance(raw, int) and not isinstance(raw, bool):
        if raw <= 0:
            raise DurationParseError("Duration must be positive")
        return raw

    value = str(raw).strip().lower()
    if not value:
        raise DurationParseError("Duration is required")

    if value.isdigit():
        minutes = int(value)
        if minutes <= 0:
            raise DurationParseError("Duration must be positive")
        return minutes

    if " " in value:
        raise DurationParseError("Use compact duration format like 25m or 1h")

    match = DURATION_PATTERN.fullmatch(value)
    if not match:
        raise DurationParseError("Invalid duration format. Examples: 25, 25m, 1h, 1h30m")

    hours = float(match.group("hours")) if match.group("hours") else 0.0
    minutes = int(match.group("minutes")) if match.group("minutes") else 0
    total = int(round(hours * 60)) + minutes

    if total <= 0:
        raise DurationParseError("Duration must be positive")
    return total


def _check_range(label: str, minutes: int, bounds: tuple[int, int]) -> int:
    low, high = bounds
    if isinstance(minutes, bool) or not isinstance(minutes, int):
        raise ValidationError(f"{label} duration must be a whole number of minutes")
    if not low <= minutes <= high:
        raise ValidationError(f"{label} duration must be between {low} and {high} minutes")
    return minutes


def validate_durations(work_minutes: int, break_minutes: int) -> tuple[int, int]:
    return (
        _check_range("Work", work_minutes, WORK_MINUTES_RANGE),
        _check_range("Break", break_minutes, BREAK_MINUTES_RANGE),
    )


def format_mmss(seconds: int) -> str:
    seconds = max(0, int(seconds))
    return f"{seconds // 60:02d}:{seconds % 60:02d}"
