"""Target list files.

A target list is a plain text file with one entry per line. Blank lines
and lines starting with ``#`` are ignored. A ``[group:<name>]`` header puts
every following entry into ``<name>`` until the next header; entries
before the first header are ungrouped. Other bracketed lines, such as
``[::1]:53``, are entries.

```text
# web tier
[group:web-servers]
google.com
github.com:443

[group:api-services]
api.github.com:443
```

Examples:
    ```python
    from urlchecker.utils.sources import read_target_file

    entries = read_target_file("urls.txt")
    # [TargetEntry(url='google.com', group='web-servers'), ...]
    ```
"""

from __future__ import annotations

from pathlib import Path
from typing import NamedTuple

from urlchecker.models.constants import UNGROUPED


class TargetEntry(NamedTuple):
    """An entry of a target list together with the group it belongs to."""

    url: str
    group: str = UNGROUPED


def _parse_group_header(line: str) -> str | None:
    """Return the group name of a ``[group:<name>]`` header, or None."""
    if not (line.startswith("[") and line.endswith("]")):
        return None
    prefix, sep, name = line[1:-1].partition(":")
    if not sep or prefix.strip().lower() != "group":
        return None
    return name.strip()


def parse_target_lines(lines: list[str]) -> list[TargetEntry]:
    """Parse the lines of a target list into grouped entries."""
    entries: list[TargetEntry] = []
    current_group = UNGROUPED

    for raw in lines:
        line = raw.strip()
        if not line or line.startswith("#"):
            continue

        group = _parse_group_header(line)
        if group is not None:
            current_group = group
            continue

        entries.append(TargetEntry(line, current_group))

    return entries


def read_target_file(path: str | Path) -> list[TargetEntry]:
    """Read a target list file.

    Raises:
        OSError: If the file cannot be opened or read.
        UnicodeDecodeError: If the file is not valid UTF-8.
    """
    with Path(path).open(encoding="utf-8") as f:
        return parse_target_lines(f.read().splitlines())
