"""
Unit tests for services.common.groups module.

Tests:
- compute_group_health() counts, membership and empty groups
- get_all_groups() first-appearance order
- compute_all_groups() with and without the ungrouped bucket
"""

import pytest

from urlchecker.services.common.groups import (
    compute_all_groups,
    compute_group_health,
    get_all_groups,
)


@pytest.fixture
def targets(make_target):
    return [
        make_target("a.test", group="web"),
        make_target("solo.test"),
        make_target("b.test:8080", group="web"),
        make_target("db.test:5432", group="db"),
    ]


class TestComputeGroupHealth:
    """compute_group_health()."""

    def test_all_healthy(self, targets):
        results = {t.key: True for t in targets}

        status = compute_group_health("web", targets, results)

        assert status.is_healthy is True
        assert status.total_urls == 2
        assert status.healthy_urls == 2
        assert status.unhealthy_urls == 0
        assert status.urls == ("a.test", "b.test:8080")

    def test_one_unhealthy(self, targets):
        results = {t.key: True for t in targets}
        results[targets[2].key] = False

        status = compute_group_health("web", targets, results)

        assert status.is_healthy is False
        assert status.healthy_urls == 1
        assert status.unhealthy_urls == 1

    def test_missing_result_counts_as_unhealthy(self, targets):
        results = {targets[0].key: True}

        status = compute_group_health("web", targets, results)

        assert status.is_healthy is False
        assert status.healthy_urls == 1

    def test_empty_group_never_healthy(self, targets):
        status = compute_group_health("nobody", targets, {})

        assert status.total_urls == 0
        assert status.is_healthy is False

    def test_ungrouped_bucket(self, targets):
        status = compute_group_health("", targets, {targets[1].key: True})

        assert status.urls == ("solo.test",)
        assert status.is_healthy is True


class TestGetAllGroups:
    """get_all_groups()."""

    def test_first_appearance_order(self, targets):
        assert get_all_groups(targets) == ["web", "", "db"]

    def test_empty(self):
        assert get_all_groups([]) == []


class TestComputeAllGroups:
    """compute_all_groups()."""

    def test_named_only_by_default(self, targets):
        statuses = compute_all_groups(targets, {t.key: True for t in targets})
        assert [s.group_name for s in statuses] == ["web", "db"]

    def test_include_ungrouped(self, targets):
        statuses = compute_all_groups(targets, {}, include_ungrouped=True)
        assert [s.group_name for s in statuses] == ["web", "", "db"]
