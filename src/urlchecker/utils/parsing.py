"""Duration parsing for configuration values.

Durations are written the way the command-line flags accept them: a
sequence of decimal numbers, each with a unit suffix, such as ``300ms``,
``1.5s`` or ``1h2m3s``. Valid units are ``ns``, ``us`` (or ``µs``),
``ms``, ``s``, ``m`` and ``h``. ``"0"`` is accepted without a unit.

Numbers (``int`` or ``float``, e.g. from YAML) are taken as seconds.

Examples:
    ```python
    from urlchecker.utils.parsing import parse_duration, format_duration

    parse_duration("500ms")    # 0.5
    parse_duration("1m30s")    # 90.0
    format_duration(90.0)      # '1m30s'
    ```
"""

from __future__ import annotations

import re
from typing import Annotated, Any

from pydantic import BeforeValidator, PlainSerializer


_UNIT_SECONDS: dict[str, float] = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}

_COMPONENT = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")


def parse_duration(value: Any) -> float:
    """Convert a duration string or number of seconds into seconds.

    Raises:
        ValueError: If the value is not a well-formed, non-negative duration.
    """
    if isinstance(value, bool):
        raise ValueError(f"invalid duration: {value!r}")
    if isinstance(value, int | float):
        if value < 0:
            raise ValueError(f"duration must not be negative: {value!r}")
        return float(value)
    if not isinstance(value, str):
        raise ValueError(f"invalid duration: {value!r}")

    text = value.strip()
    if text == "0":
        return 0.0
    if text.startswith("-"):
        raise ValueError(f"duration must not be negative: {value!r}")
    if text.startswith("+"):
        text = text[1:]
    if not text:
        raise ValueError(f"invalid duration: {value!r}")

    total = 0.0
    pos = 0
    for match in _COMPONENT.finditer(text):
        if match.start() != pos:
            break
        total += float(match.group(1)) * _UNIT_SECONDS[match.group(2)]
        pos = match.end()

    if pos != len(text):
        raise ValueError(
            f"invalid duration: {value!r} (use a format like '500ms', '5s' or '1m30s')"
        )
    return total


def format_duration(seconds: float) -> str:
    """Render seconds in the same notation ``parse_duration`` accepts."""
    if seconds == 0:
        return "0s"
    if seconds < 1:
        millis = seconds * 1000
        if millis >= 1 and millis == int(millis):
            return f"{int(millis)}ms"
        return f"{seconds * 1_000_000:g}us"

    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    parts = []
    if hours:
        parts.append(f"{int(hours)}h")
    if minutes:
        parts.append(f"{int(minutes)}m")
    if secs or not parts:
        parts.append(f"{secs:g}s")
    return "".join(parts)


Duration = Annotated[
    float,
    BeforeValidator(parse_duration),
    PlainSerializer(format_duration, return_type=str, when_used="json"),
]
"""Pydantic field type: accepts duration strings, stores seconds as ``float``."""
