"""Rendering of check results for the terminal.

Four presentations of one pass:

* a text line per result, e.g. ``🟢 [+] [tcp]  example.com:443 (0.042s)``;
* a JSON object per result (``--json``);
* the group summary printed after a pass;
* the nested group document printed after a pass in JSON mode.

All functions are pure: they return strings or dicts and leave the writing
to the caller.
"""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from typing import Any

from urlchecker.models.constants import CheckState, StatusLevel
from urlchecker.models.results import CheckResult, GroupStatus
from urlchecker.models.target import Target, TargetKey

from .groups import compute_group_health, get_all_groups


SUMMARY_HEADER = "=== Group Health Summary ==="
NESTED_HEADER = "=== Nested Group Structure ==="

HEALTHY_ICON = "🟢"
UNHEALTHY_ICON = "🔴"

_STATUS_ICONS: dict[StatusLevel, str] = {
    StatusLevel.OK: "🟢",
    StatusLevel.WARNING: "🟡",
    StatusLevel.CRITICAL: "🔴",
}


def classify_response_time(
    response_time: float, warning_threshold: float, critical_threshold: float
) -> StatusLevel:
    """Map a successful check's response time to a status level."""
    if response_time > critical_threshold:
        return StatusLevel.CRITICAL
    if response_time > warning_threshold:
        return StatusLevel.WARNING
    return StatusLevel.OK


def format_text_line(result: CheckResult) -> str:
    """One human-readable line for ``result``."""
    timing = f"({result.response_time:.3f}s)"
    proto = result.protocol

    if result.state == CheckState.CIRCUIT_OPEN:
        return f"🚫 [Circuit Open] [{proto}]  {result.endpoint} {timing}"
    if result.state == CheckState.FAILED:
        return f"😿 [-] [{proto}]  {result.endpoint} {timing}"

    icon = _STATUS_ICONS[result.status or StatusLevel.OK]
    return f"{icon} [+] [{proto}]  {result.endpoint} {timing}"


def format_json_line(result: CheckResult) -> str:
    """Compact JSON object for ``result``."""
    return json.dumps(result.to_dict(), ensure_ascii=False)


def format_group_summary(statuses: Sequence[GroupStatus]) -> list[str]:
    """Summary lines for the named groups, header first.

    Returns an empty list when there is no named group.
    """
    named = [s for s in statuses if s.group_name]
    if not named:
        return []

    lines = ["", SUMMARY_HEADER]
    for status in named:
        icon = HEALTHY_ICON if status.is_healthy else UNHEALTHY_ICON
        lines.append(
            f"{icon} Group '{status.group_name}': "
            f"{status.healthy_urls}/{status.total_urls} URLs healthy"
        )
    return lines


def build_nested_report(
    targets: Sequence[Target],
    results: Mapping[TargetKey, CheckResult],
) -> dict[str, Any]:
    """Results arranged by group, with overall counts.

    Groups appear in order of first appearance. ``groups`` and
    ``ungrouped_urls`` are omitted when empty; ``summary`` is always
    present.
    """
    healthy_by_key = {key: r.is_healthy for key, r in results.items()}

    groups: list[dict[str, Any]] = []
    ungrouped: list[dict[str, Any]] = []

    for group in get_all_groups(targets):
        members = [results[t.key] for t in targets if t.group == group and t.key in results]
        if not group:
            ungrouped.extend(r.to_dict() for r in members)
            continue
        if not members:
            continue
        status = compute_group_health(group, targets, healthy_by_key)
        groups.append(
            {
                "group_name": status.group_name,
                "is_healthy": status.is_healthy,
                "total_urls": status.total_urls,
                "healthy_urls": status.healthy_urls,
                "unhealthy_urls": status.unhealthy_urls,
                "urls": [r.to_dict() for r in members],
            }
        )

    healthy_groups = sum(1 for g in groups if g["is_healthy"])
    total_urls = sum(g["total_urls"] for g in groups) + len(ungrouped)
    healthy_urls = sum(g["healthy_urls"] for g in groups) + sum(
        1 for r in ungrouped if r["state"] == CheckState.SUCCESS
    )

    report: dict[str, Any] = {}
    if groups:
        report["groups"] = groups
    if ungrouped:
        report["ungrouped_urls"] = ungrouped
    report["summary"] = {
        "total_groups": len(groups),
        "healthy_groups": healthy_groups,
        "unhealthy_groups": len(groups) - healthy_groups,
        "total_urls": total_urls,
        "healthy_urls": healthy_urls,
        "unhealthy_urls": total_urls - healthy_urls,
    }
    return report


def format_nested_report(report: Mapping[str, Any]) -> list[str]:
    """Header and indented JSON of a nested report."""
    return ["", NESTED_HEADER, json.dumps(report, indent=2, ensure_ascii=False)]
