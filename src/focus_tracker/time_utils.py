from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Callable
from zoneinfo import ZoneInfo


DEFAULT_TZ = "Europe/Oslo"
WEEKDAY_LABELS = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")
TRAILING_WINDOW_DAYS = 7
_FRACTION_RE = re.compile(r"\.(\d+)")

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


@dataclass(frozen=True)
class WeekRange:
    start: datetime
    end: datetime


def trailing_week(now: datetime) -> WeekRange:
    return WeekRange(start=now - timedelta(days=TRAILING_WINDOW_DAYS), end=now)


def weekday_label(dt: datetime | date) -> str:
    # Python weeks start on Monday; labels start on Sunday.
    return WEEKDAY_LABELS[(dt.weekday() + 1) % 7]


def empty_weekday_counts() -> dict[str, int]:
    return {label: 0 for label in WEEKDAY_LABELS}


def parse_timestamp(raw: str | datetime) -> datetime:
    if isinstance(raw, datetime):
        value = raw
    else:
        text = raw.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        # fromisoformat before 3.11 only takes 3 or 6 fraction digits
        text = _FRACTION_RE.sub(lambda m: "." + (m.group(1) + "000000")[:6], text, count=1)
        value = datetime.fromisoformat(text)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def to_local(dt: datetime, tz_name: str = DEFAULT_TZ) -> datetime:
    return dt.astimezone(ZoneInfo(tz_name))
