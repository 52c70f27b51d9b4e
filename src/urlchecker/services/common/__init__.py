"""Shared building blocks for the checker and exporter services.

Attributes:
    configs: [UrlCheckerConfig][urlchecker.services.common.configs.UrlCheckerConfig],
        per-group overrides, and config file loading and saving.
    checks: [TargetChecker][urlchecker.services.common.checks.TargetChecker],
        the per-job pipeline run on worker threads.
    groups: Group health aggregation.
    report: Text, JSON and nested group rendering of results.
"""

from .checks import TargetChecker
from .configs import GroupConfig, UrlCheckerConfig, load_config, save_config
from .groups import compute_all_groups, compute_group_health, get_all_groups
from .report import (
    build_nested_report,
    classify_response_time,
    format_group_summary,
    format_json_line,
    format_nested_report,
    format_text_line,
)


__all__ = [
    "GroupConfig",
    "TargetChecker",
    "UrlCheckerConfig",
    "build_nested_report",
    "classify_response_time",
    "compute_all_groups",
    "compute_group_health",
    "format_group_summary",
    "format_json_line",
    "format_nested_report",
    "format_text_line",
    "get_all_groups",
    "load_config",
    "save_config",
]
