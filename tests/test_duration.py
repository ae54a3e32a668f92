import pytest

from focus_tracker.duration import (
    DurationParseError,
    format_mmss,
    parse_duration_to_minutes,
    validate_durations,
)
from focus_tracker.errors import ValidationError


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("90m", 90),
        ("1.5h", 90),
        ("1h20m", 80),
        ("45", 45),
        ("2h", 120),
        (25, 25),
    ],
)
def test_parse_duration_valid(raw: str, expected: int) -> None:
    assert parse_duration_to_minutes(raw) == expected


@pytest.mark.parametrize("raw", ["", "abc", "0", "-10", "1 h", "1m20h", 0])
def test_parse_duration_invalid(raw: str) -> None:
    with pytest.raises(DurationParseError):
        parse_duration_to_minutes(raw)


def test_parse_error_is_a_validation_error() -> None:
    with pytest.raises(ValidationError):
        parse_duration_to_minutes("soon")


def test_validate_durations_bounds() -> None:
    assert validate_durations(1, 1) == (1, 1)
    assert validate_durations(120, 30) == (120, 30)


@pytest.mark.parametrize("work,brk", [(0, 5), (121, 5), (25, 0), (25, 31), (True, 5), (25.0, 5)])
def test_validate_durations_rejects(work, brk) -> None:
    with pytest.raises(ValidationError):
        validate_durations(work, brk)


def test_format_mmss() -> None:
    assert format_mmss(1500) == "25:00"
    assert format_mmss(61) == "01:01"
    assert format_mmss(0) == "00:00"
    assert format_mmss(-3) == "00:00"
