"""Configuration models and file handling for urlchecker services.

[UrlCheckerConfig][urlchecker.services.common.configs.UrlCheckerConfig] is
the single validated configuration shared by the checker and the exporter.
It is assembled from three layers, later ones winning: built-in defaults,
a YAML or JSON config file, and the command-line flags that were actually
given (see [merge()][urlchecker.services.common.configs.UrlCheckerConfig.merge]).

Durations accept the same notation as the flags (``500ms``, ``5s``,
``1m30s``) or a bare number of seconds.

Examples:
    ```yaml
    urls:
      - example.com:443
    timeout: 3s
    workers: 10
    groups:
      web-servers:
        urls: [google.com, github.com:443]
        critical_threshold: 2s
      databases:
        urls: [db.internal:5432]
        retry_count: 5
    metrics:
      enabled: true
      port: 9090
    ```

See Also:
    [BaseServiceConfig][urlchecker.core.base_service.BaseServiceConfig]:
        Provides ``max_consecutive_failures`` and ``metrics``.
    [read_target_file()][urlchecker.utils.sources.read_target_file]: Parses
        the ``file`` target list.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Self

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from urlchecker.core.base_service import BaseServiceConfig
from urlchecker.core.exceptions import ConfigurationError, InputSourceError
from urlchecker.core.yaml import dump_yaml, parse_yaml
from urlchecker.models.constants import DEFAULT_PORT, UNGROUPED, Protocol
from urlchecker.models.target import CheckPolicy, Target
from urlchecker.utils.parsing import Duration
from urlchecker.utils.sources import TargetEntry, read_target_file


_YAML_SUFFIXES = (".yaml", ".yml")
_JSON_SUFFIXES = (".json",)


class GroupConfig(BaseModel):
    """Members of a named group plus optional per-group overrides.

    Unset overrides fall back to the top-level values of
    [UrlCheckerConfig][urlchecker.services.common.configs.UrlCheckerConfig].
    """

    model_config = ConfigDict(extra="forbid")

    urls: list[str] = Field(default_factory=list)
    warning_threshold: Duration | None = None
    critical_threshold: Duration | None = None
    retry_count: int | None = Field(default=None, ge=0, le=10)
    retry_delay: Duration | None = None
    circuit_breaker_threshold: int | None = Field(default=None, ge=1, le=100)
    circuit_breaker_timeout: Duration | None = None


class UrlCheckerConfig(BaseServiceConfig):
    """Validated settings for a checker or exporter run.

    Ranges are enforced at load time: ``workers`` in [1, 100],
    ``retry_count`` in [0, 10], ``circuit_breaker_threshold`` in [1, 100],
    ``metrics.port`` in [1, 65535]. Any violation is a
    ``pydantic.ValidationError``.
    """

    model_config = ConfigDict(extra="forbid")

    urls: list[str] = Field(default_factory=list, description="Target entries")
    file: str | None = Field(default=None, description="Target list file")
    port: str = Field(default=DEFAULT_PORT, min_length=1, description="Default port")
    protocol: Protocol = Field(default=Protocol.TCP, description="Transport protocol")
    timeout: Duration = Field(default=5.0, gt=0, description="Dial timeout")
    json_output: bool = Field(default=False, description="Print results as JSON")
    exporter: bool = Field(default=False, description="Run as a Prometheus exporter")
    check_interval: Duration = Field(default=30.0, gt=0, description="Time between passes")
    workers: int = Field(default=5, ge=1, le=100, description="Exporter worker threads")
    group_name: str = Field(default=UNGROUPED, description="Group for urls and file entries")
    groups: dict[str, GroupConfig] = Field(default_factory=dict)
    warning_threshold: Duration = Field(default=0.5, description="Warning response time")
    critical_threshold: Duration = Field(default=1.0, description="Critical response time")
    retry_count: int = Field(default=3, ge=0, le=10, description="Retries per check")
    retry_delay: Duration = Field(default=1.0, description="Base backoff delay")
    circuit_breaker_threshold: int = Field(default=5, ge=1, le=100)
    circuit_breaker_timeout: Duration = Field(default=60.0)

    @model_validator(mode="before")
    @classmethod
    def _fold_legacy_metrics(cls, data: Any) -> Any:
        """Accept the flat ``metrics: true`` / ``metrics_port: N`` keys."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        metrics = data.get("metrics")
        port = data.pop("metrics_port", None)

        if isinstance(metrics, bool):
            metrics = {"enabled": metrics}
        if port is not None:
            metrics = {**(metrics or {}), "port": port}
        if metrics is not None:
            data["metrics"] = metrics
        return data

    # -------------------------------------------------------------------------
    # Policies and targets
    # -------------------------------------------------------------------------

    def policy_for(self, group: str = UNGROUPED) -> CheckPolicy:
        """Resolve the check policy for ``group``.

        Group overrides win over the top-level values; unknown groups and
        ungrouped targets get the top-level values.
        """
        g = self.groups.get(group) if group else None
        if g is None:
            g = GroupConfig()

        def pick(override: Any, default: Any) -> Any:
            return default if override is None else override

        return CheckPolicy(
            timeout=self.timeout,
            retry_count=pick(g.retry_count, self.retry_count),
            retry_delay=pick(g.retry_delay, self.retry_delay),
            circuit_threshold=pick(g.circuit_breaker_threshold, self.circuit_breaker_threshold),
            circuit_timeout=pick(g.circuit_breaker_timeout, self.circuit_breaker_timeout),
            warning_threshold=pick(g.warning_threshold, self.warning_threshold),
            critical_threshold=pick(g.critical_threshold, self.critical_threshold),
        )

    def target_entries(self) -> list[TargetEntry]:
        """All target entries with their group, in configuration order.

        Order: the ``file`` entries, then ``urls``, then each group's
        ``urls``.

        Raises:
            InputSourceError: If ``file`` cannot be read.
        """
        entries: list[TargetEntry] = []

        if self.file:
            try:
                file_entries = read_target_file(self.file)
            except (OSError, UnicodeDecodeError) as e:
                raise InputSourceError(f"cannot read target file {self.file}: {e}") from e
            if self.group_name:
                file_entries = [TargetEntry(e.url, self.group_name) for e in file_entries]
            entries.extend(file_entries)

        entries.extend(TargetEntry(url, self.group_name) for url in self.urls)

        for name, group in self.groups.items():
            entries.extend(TargetEntry(url, name) for url in group.urls)

        return entries

    def resolve_targets(self) -> list[Target]:
        """Build the [Target][urlchecker.models.target.Target] list.

        Raises:
            InputSourceError: If ``file`` cannot be read.
            ConfigurationError: If an entry is not a valid ``host[:port]``.
        """
        targets: list[Target] = []
        policies: dict[str, CheckPolicy] = {}

        for entry in self.target_entries():
            if entry.group not in policies:
                policies[entry.group] = self.policy_for(entry.group)
            try:
                targets.append(
                    Target.parse(
                        entry.url,
                        default_port=self.port,
                        protocol=self.protocol,
                        group=entry.group,
                        policy=policies[entry.group],
                    )
                )
            except ValueError as e:
                raise ConfigurationError(f"invalid target {entry.url!r}: {e}") from e

        return targets

    # -------------------------------------------------------------------------
    # Layering
    # -------------------------------------------------------------------------

    def merge(self, overrides: dict[str, Any]) -> Self:
        """Return a copy where every non-None value in ``overrides`` wins.

        Overrides are validated like a config file.

        Raises:
            pydantic.ValidationError: If an override is invalid.
        """
        data = self.model_dump()
        for key, value in overrides.items():
            if value is None:
                continue
            if key == "metrics" and isinstance(value, dict):
                data["metrics"] = {**data["metrics"], **value}
            else:
                data[key] = value
        return self.model_validate(data)


# =============================================================================
# Files
# =============================================================================


def _parse_config_text(text: str, suffix: str) -> dict[str, Any]:
    if suffix in _JSON_SUFFIXES or (
        suffix not in _YAML_SUFFIXES and text.lstrip().startswith(("{", "["))
    ):
        data = json.loads(text) if text.strip() else {}
        if not isinstance(data, dict):
            raise ValueError(f"expected an object at the top level, got {type(data).__name__}")
        return data
    return parse_yaml(text)


def load_config(path: str | Path) -> UrlCheckerConfig:
    """Load and validate a YAML or JSON configuration file.

    The format follows the extension (``.yaml``, ``.yml``, ``.json``).
    Other files are read as JSON when they start with ``{`` or ``[`` and
    as YAML otherwise.

    Raises:
        ConfigurationError: If the file cannot be read, parsed, or validated.
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigurationError(f"cannot read config file {path}: {e}") from e

    try:
        data = _parse_config_text(text, path.suffix.lower())
    except (ValueError, yaml.YAMLError) as e:
        raise ConfigurationError(f"cannot parse config file {path}: {e}") from e

    try:
        return UrlCheckerConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"invalid config file {path}: {e}") from e


def save_config(config: UrlCheckerConfig, path: str | Path) -> None:
    """Write ``config`` as YAML or JSON, chosen by the file extension.

    Durations are written in their string form (``5s``, ``500ms``).

    Raises:
        ConfigurationError: If the extension is not supported or the file
            cannot be written.
    """
    path = Path(path)
    suffix = path.suffix.lower()
    data = config.model_dump(mode="json", exclude_none=True)

    if suffix in _YAML_SUFFIXES:
        text = dump_yaml(data)
    elif suffix in _JSON_SUFFIXES:
        text = json.dumps(data, indent=2, ensure_ascii=False) + "\n"
    else:
        raise ConfigurationError(
            f"unsupported config format {suffix or '(none)'!r}: use .yaml, .yml or .json"
        )

    try:
        path.write_text(text, encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"cannot write config file {path}: {e}") from e
