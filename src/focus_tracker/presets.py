from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from pathlib import Path

import yaml

from focus_tracker.duration import validate_durations
from focus_tracker.errors import ValidationError
from focus_tracker.models import Phase

logger = logging.getLogger(__name__)

CUSTOM_PRESET_ID = "custom"
DEFAULT_PRESET_ID = "25-5"


@dataclass(frozen=True)
class TimerPreset:
    id: str
    name: str
    work_minutes: int
    break_minutes: int

    def minutes_for(self, phase: Phase) -> int:
        return self.work_minutes if phase is Phase.WORK else self.break_minutes

    def seconds_for(self, phase: Phase) -> int:
        return self.minutes_for(phase) * 60


DEFAULT_PRESETS: tuple[TimerPreset, ...] = (
    TimerPreset(id="15-2", name="15/2", work_minutes=15, break_minutes=2),
    TimerPreset(id="25-5", name="25/5", work_minutes=25, break_minutes=5),
    TimerPreset(id="50-10", name="50/10", work_minutes=50, break_minutes=10),
    TimerPreset(id=CUSTOM_PRESET_ID, name="Custom", work_minutes=25, break_minutes=5),
)


class PresetBook:
    """Ordered presets; only the custom slot can change after construction."""

    def __init__(self, presets: tuple[TimerPreset, ...] = DEFAULT_PRESETS, default_id: str = DEFAULT_PRESET_ID) -> None:
        self._presets: dict[str, TimerPreset] = {}
        for preset in presets:
            validate_durations(preset.work_minutes, preset.break_minutes)
            self._presets[preset.id] = preset
        if CUSTOM_PRESET_ID not in self._presets:
            self._presets[CUSTOM_PRESET_ID] = DEFAULT_PRESETS[-1]
        self.default_id = default_id if default_id in self._presets else next(iter(self._presets))

    def get(self, preset_id: str) -> TimerPreset:
        preset = self._presets.get(preset_id)
        if preset is None:
            raise ValidationError(f"Unknown timer preset: {preset_id}")
        return preset

    def all(self) -> list[TimerPreset]:
        return list(self._presets.values())

    @property
    def custom(self) -> TimerPreset:
        return self._presets[CUSTOM_PRESET_ID]

    def update_custom(self, work_minutes: int, break_minutes: int) -> TimerPreset:
        work, brk = validate_durations(work_minutes, break_minutes)
        updated = replace(self.custom, work_minutes=work, break_minutes=brk)
        self._presets[CUSTOM_PRESET_ID] = updated
        return updated


def load_presets(path: Path | None) -> PresetBook:
    if path is None or not path.exists():
        return PresetBook()

    raw = yaml.safe_load(path.read_text()) or {}
    if not isinstance(raw, dict):
        logger.warning("ignoring preset file with unexpected layout: %s", path)
        return PresetBook()

    presets: list[TimerPreset] = []
    items = raw.get("presets", [])
    if isinstance(items, list):
        for item in items:
            if not isinstance(item, dict):
                continue
            pid = str(item.get("id", "")).strip()
            if not pid or pid == CUSTOM_PRESET_ID:
                continue
            try:
                work, brk = validate_durations(item.get("work"), item.get("break"))
            except ValidationError as exc:
                logger.warning("skipping preset %s: %s", pid, exc)
                continue
            presets.append(
                TimerPreset(id=pid, name=str(item.get("name") or pid), work_minutes=work, break_minutes=brk)
            )

    if not presets:
        presets = [p for p in DEFAULT_PRESETS if p.id != CUSTOM_PRESET_ID]

    custom = DEFAULT_PRESETS[-1]
    custom_raw = raw.get("custom")
    if isinstance(custom_raw, dict):
        try:
            work, brk = validate_durations(custom_raw.get("work"), custom_raw.get("break"))
            custom = replace(custom, work_minutes=work, break_minutes=brk)
        except ValidationError as exc:
            logger.warning("ignoring custom preset defaults: %s", exc)
    presets.append(custom)

    return PresetBook(tuple(presets), default_id=str(raw.get("default_preset", DEFAULT_PRESET_ID)))
