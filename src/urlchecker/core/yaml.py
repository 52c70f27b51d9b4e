"""Safe YAML loading.

Uses ``yaml.safe_load`` so configuration files can only produce plain
strings, numbers, lists and dicts. Used by
[BaseService.from_yaml()][urlchecker.core.base_service.BaseService.from_yaml]
and [load_config()][urlchecker.services.common.configs.load_config].

Examples:
    ```python
    from urlchecker.core.yaml import load_yaml

    data = load_yaml("urlchecker.yaml")
    ```
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml


def load_yaml(config_path: str | Path) -> dict[str, Any]:
    """Load and parse a YAML mapping from a file.

    Returns:
        The parsed mapping, or an empty dict for an empty document.

    Raises:
        FileNotFoundError: If the file does not exist.
        yaml.YAMLError: If the file contains invalid YAML syntax.
        ValueError: If the document is not a mapping.
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with path.open(encoding="utf-8") as f:
        return parse_yaml(f.read())


def parse_yaml(text: str) -> dict[str, Any]:
    """Parse a YAML mapping from a string (see [load_yaml][urlchecker.core.yaml.load_yaml])."""
    data = yaml.safe_load(text) or {}
    if not isinstance(data, dict):
        raise ValueError(f"expected a mapping at the top level, got {type(data).__name__}")
    return data


def dump_yaml(data: dict[str, Any]) -> str:
    """Serialize a mapping as block-style YAML, keeping key order."""
    return yaml.safe_dump(data, default_flow_style=False, sort_keys=False, allow_unicode=True)
