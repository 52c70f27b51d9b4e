"""Group health aggregation.

A group is healthy only when it has members and every member's latest
check succeeded. A member with no entry in the results snapshot counts as
unhealthy. The ungrouped targets form the ``""`` group, which is
enumerated like any other but left out of the printed summary.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from urlchecker.models.results import GroupStatus
from urlchecker.models.target import Target, TargetKey


def compute_group_health(
    group: str,
    targets: Iterable[Target],
    results: Mapping[TargetKey, bool],
) -> GroupStatus:
    """Aggregate the health of the members of ``group``.

    Args:
        group: Group name (``""`` for ungrouped targets).
        targets: All configured targets; members are filtered by group.
        results: Healthy flag per target key.

    Returns:
        The group's status; an empty group has ``total_urls == 0`` and is
        never healthy.
    """
    urls: list[str] = []
    healthy = 0

    for target in targets:
        if target.group != group:
            continue
        urls.append(target.raw)
        if results.get(target.key, False):
            healthy += 1

    total = len(urls)
    return GroupStatus(
        group_name=group,
        is_healthy=total > 0 and healthy == total,
        total_urls=total,
        healthy_urls=healthy,
        unhealthy_urls=total - healthy,
        urls=tuple(urls),
    )


def get_all_groups(targets: Iterable[Target]) -> list[str]:
    """Unique group names in order of first appearance, ``""`` included."""
    return list(dict.fromkeys(t.group for t in targets))


def compute_all_groups(
    targets: list[Target],
    results: Mapping[TargetKey, bool],
    *,
    include_ungrouped: bool = False,
) -> list[GroupStatus]:
    """Status of every group, in order of first appearance."""
    return [
        compute_group_health(group, targets, results)
        for group in get_all_groups(targets)
        if group or include_ungrouped
    ]
