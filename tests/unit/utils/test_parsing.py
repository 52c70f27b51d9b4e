"""
Unit tests for utils.parsing module.

Tests:
- parse_duration() with unit strings, compound strings and numbers
- Rejection of malformed and negative durations
- format_duration() rendering
- Duration as a pydantic field type
"""

import pytest
from pydantic import BaseModel, ValidationError

from urlchecker.utils.parsing import Duration, format_duration, parse_duration


class TestParseDuration:
    """parse_duration()."""

    @pytest.mark.parametrize(
        ("text", "seconds"),
        [
            ("5s", 5.0),
            ("500ms", 0.5),
            ("1m", 60.0),
            ("1h", 3600.0),
            ("1m30s", 90.0),
            ("1h2m3s", 3723.0),
            ("1.5s", 1.5),
            (".5s", 0.5),
            ("250us", 0.00025),
            ("250µs", 0.00025),
            ("100ns", 1e-7),
            ("0", 0.0),
            ("+2s", 2.0),
            (" 3s ", 3.0),
        ],
    )
    def test_strings(self, text, seconds):
        assert parse_duration(text) == pytest.approx(seconds)

    def test_numbers_are_seconds(self):
        assert parse_duration(3) == 3.0
        assert parse_duration(0.25) == 0.25

    @pytest.mark.parametrize("text", ["", "5", "abc", "5x", "s", "1m30", "5 s", "1..5s"])
    def test_malformed(self, text):
        with pytest.raises(ValueError):
            parse_duration(text)

    @pytest.mark.parametrize("value", ["-1s", -1, -0.5])
    def test_negative(self, value):
        with pytest.raises(ValueError, match="negative"):
            parse_duration(value)

    @pytest.mark.parametrize("value", [True, None, [1], {"s": 1}])
    def test_wrong_type(self, value):
        with pytest.raises(ValueError):
            parse_duration(value)


class TestFormatDuration:
    """format_duration()."""

    @pytest.mark.parametrize(
        ("seconds", "text"),
        [
            (0, "0s"),
            (0.5, "500ms"),
            (5.0, "5s"),
            (1.5, "1.5s"),
            (60.0, "1m"),
            (90.0, "1m30s"),
            (3600.0, "1h"),
            (3723.0, "1h2m3s"),
            (0.00025, "250us"),
        ],
    )
    def test_format(self, seconds, text):
        assert format_duration(seconds) == text

    @pytest.mark.parametrize("seconds", [0.5, 5.0, 90.0, 3723.0, 1.5])
    def test_parses_back(self, seconds):
        assert parse_duration(format_duration(seconds)) == pytest.approx(seconds)


class _Model(BaseModel):
    timeout: Duration = 5.0


class TestDurationField:
    """Duration annotated type."""

    def test_string_input(self):
        assert _Model(timeout="250ms").timeout == 0.25

    def test_number_input(self):
        assert _Model(timeout=2).timeout == 2.0

    def test_invalid_input(self):
        with pytest.raises(ValidationError):
            _Model(timeout="soon")

    def test_json_dump_uses_string(self):
        assert _Model(timeout=90.0).model_dump(mode="json") == {"timeout": "1m30s"}

    def test_python_dump_keeps_float(self):
        assert _Model(timeout=90.0).model_dump() == {"timeout": 90.0}
