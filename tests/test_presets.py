from __future__ import annotations

import pytest

from focus_tracker.errors import ValidationError
from focus_tracker.models import Phase
from focus_tracker.presets import CUSTOM_PRESET_ID, DEFAULT_PRESET_ID, PresetBook, load_presets


def test_default_book() -> None:
    book = PresetBook()
    assert [p.id for p in book.all()] == ["15-2", "25-5", "50-10", "custom"]
    assert book.default_id == DEFAULT_PRESET_ID
    assert book.get("50-10").seconds_for(Phase.BREAK) == 600
    with pytest.raises(ValidationError):
        book.get("nope")


def test_update_custom_only_touches_custom_slot() -> None:
    book = PresetBook()
    updated = book.update_custom(40, 8)
    assert updated.id == CUSTOM_PRESET_ID
    assert book.custom.minutes_for(Phase.WORK) == 40
    assert book.get("25-5").work_minutes == 25
    with pytest.raises(ValidationError):
        book.update_custom(121, 5)
    assert book.custom.work_minutes == 40


def test_missing_file_gives_defaults(tmp_path) -> None:
    book = load_presets(tmp_path / "presets.yaml")
    assert book.default_id == DEFAULT_PRESET_ID
    assert len(book.all()) == 4
    assert load_presets(None).default_id == DEFAULT_PRESET_ID


def test_yaml_presets(tmp_path) -> None:
    path = tmp_path / "presets.yaml"
    path.write_text(
        """
default_preset: deep
presets:
  - id: deep
    name: Deep work
    work: 90
    break: 15
  - id: broken
    work: 500
    break: 5
  - id: custom
    work: 1
    break: 1
custom:
  work: 30
  break: 6
"""
    )
    book = load_presets(path)
    assert [p.id for p in book.all()] == ["deep", "custom"]
    assert book.default_id == "deep"
    assert book.get("deep").name == "Deep work"
    assert book.custom.work_minutes == 30
    assert book.custom.break_minutes == 6


def test_unknown_default_falls_back_to_first(tmp_path) -> None:
    path = tmp_path / "presets.yaml"
    path.write_text("default_preset: nope\n")
    book = load_presets(path)
    assert book.default_id == "15-2"


def test_non_mapping_file_ignored(tmp_path) -> None:
    path = tmp_path / "presets.yaml"
    path.write_text("- just\n- a list\n")
    assert len(load_presets(path).all()) == 4
