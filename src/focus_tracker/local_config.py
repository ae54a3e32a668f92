from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from focus_tracker.errors import ValidationError
from focus_tracker.models import DailyTargets

logger = logging.getLogger(__name__)

TARGETS_KEY = "dailyTargets"
FOCUS_TARGET_KEY = "dailyFocusTarget"


def _positive_int(label: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValidationError(f"{label} must be a positive whole number")
    return value


class LocalConfig:
    """Small JSON file for per-device preferences that never reach the store."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text())
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("ignoring unreadable local config %s: %s", self.path, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, indent=2))

    def load_targets(self) -> DailyTargets:
        raw = self._read().get(TARGETS_KEY)
        defaults = DailyTargets()
        if not isinstance(raw, dict):
            return defaults
        try:
            return DailyTargets(
                task_target=_positive_int("taskTarget", raw.get("taskTarget", defaults.task_target)),
                focus_target=_positive_int("focusTarget", raw.get("focusTarget", defaults.focus_target)),
            )
        except ValidationError as exc:
            logger.warning("ignoring stored daily targets: %s", exc)
            return defaults

    def save_targets(self, task_target: int, focus_target: int) -> DailyTargets:
        targets = DailyTargets(
            task_target=_positive_int("taskTarget", task_target),
            focus_target=_positive_int("focusTarget", focus_target),
        )
        data = self._read()
        data[TARGETS_KEY] = {"taskTarget": targets.task_target, "focusTarget": targets.focus_target}
        self._write(data)
        return targets

    def load_focus_target(self) -> int:
        raw = self._read().get(FOCUS_TARGET_KEY)
        try:
            return _positive_int("dailyFocusTarget", raw)
        except ValidationError:
            return DailyTargets().focus_target

    def save_focus_target(self, minutes: int) -> int:
        value = _positive_int("dailyFocusTarget", minutes)
        data = self._read()
        data[FOCUS_TARGET_KEY] = value
        self._write(data)
        return value
