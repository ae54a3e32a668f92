from __future__ import annotations

import itertools
import logging
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from focus_tracker.time_utils import Clock, utc_now

logger = logging.getLogger(__name__)

VARIANTS = ("default", "destructive")


@dataclass(frozen=True)
class Notice:
    id: int
    title: str
    description: str
    variant: str
    created_at: datetime


class Notifier(Protocol):
    def notify(self, title: str, description: str, variant: str = "default") -> Notice: ...


class NoticeBoard:
    """Dismissable notices kept for the outer surface to show."""

    def __init__(self, limit: int = 50, clock: Clock = utc_now) -> None:
        self._notices: deque[Notice] = deque(maxlen=limit)
        self._ids = itertools.count(1)
        self._clock = clock

    def notify(self, title: str, description: str, variant: str = "default") -> Notice:
        if variant not in VARIANTS:
            variant = "default"
        notice = Notice(
            id=next(self._ids),
            title=title,
            description=description,
            variant=variant,
            created_at=self._clock(),
        )
        self._notices.append(notice)
        if variant == "destructive":
            logger.warning("notice: %s - %s", title, description)
        else:
            logger.info("notice: %s - %s", title, description)
        return notice

    def list(self) -> list[Notice]:
        return list(self._notices)

    def dismiss(self, notice_id: int) -> bool:
        for notice in self._notices:
            if notice.id == notice_id:
                self._notices.remove(notice)
                return True
        return False
