"""
Unit tests for services.common.checks module.

Tests:
- Successful, slow and failed checks produce the right CheckResult
- Breaker gating: rejection without dialing, half-open probe after cooldown
- State updates and metrics recorded per check
- Group health end to end through the checker
"""

import pytest

from urlchecker.core.retry import RetryPolicy
from urlchecker.core.state import ExporterState
from urlchecker.models import CheckPolicy, CheckState, CircuitState, StatusLevel
from urlchecker.services.common.checks import TargetChecker
from urlchecker.services.common.groups import compute_group_health


LABELS = {"url": "a.test:80", "protocol": "tcp"}


@pytest.fixture
def state(clock):
    return ExporterState(breaker_clock=clock)


@pytest.fixture
def checker(state, fake_dialer, sink, no_sleep, clock):
    retry = RetryPolicy(fake_dialer, sink, sleep=no_sleep, clock=clock)
    return TargetChecker(state, retry, sink, clock=clock)


# ============================================================================
# Results
# ============================================================================


class TestCheckResults:
    """Results of individual checks."""

    def test_success(self, checker, make_target, fast_policy):
        target = make_target("a.test", group="web", policy=fast_policy)

        result = checker.check(target)

        assert result.state == CheckState.SUCCESS
        assert result.address == "a.test"
        assert result.port == "80"
        assert result.group == "web"
        assert result.status == StatusLevel.OK
        assert result.error is None

    def test_failure(self, checker, make_target, fake_dialer, fast_policy):
        fake_dialer.set("a.test", False)

        result = checker.check(make_target("a.test", policy=fast_policy))

        assert result.state == CheckState.FAILED
        assert result.error == "connection refused"
        assert result.status is None

    def test_status_from_policy_thresholds(self, state, fake_dialer, no_sleep, make_target):
        clock_values = iter([0.0, 0.8])
        retry = RetryPolicy(fake_dialer, sleep=no_sleep, clock=lambda: next(clock_values))
        checker = TargetChecker(state, retry)
        policy = CheckPolicy(retry_count=0, warning_threshold=0.5, critical_threshold=1.0)

        result = checker.check(make_target("a.test", policy=policy))

        assert result.response_time == pytest.approx(0.8)
        assert result.status == StatusLevel.WARNING

    def test_retries_before_failing(self, checker, make_target, fake_dialer):
        fake_dialer.set("a.test", False)
        policy = CheckPolicy(retry_count=2, retry_delay=0.0, circuit_threshold=5)

        checker.check(make_target("a.test", policy=policy))

        assert fake_dialer.calls_for("a.test") == 3


# ============================================================================
# State and Metrics
# ============================================================================


class TestStateAndMetrics:
    """Side effects of a check."""

    def test_state_updated(self, checker, make_target, fast_policy, state):
        target = make_target("a.test", policy=fast_policy)

        checker.check(target)
        checker.check(target)

        current = state.get_state(target.key)
        assert current is not None
        assert current.check_count == 2
        assert current.is_up is True

    def test_check_metrics(self, checker, make_target, fake_dialer, fast_policy, sink):
        target = make_target("a.test", policy=fast_policy)

        checker.check(target)
        fake_dialer.set("a.test", False)
        checker.check(target)

        r = sink.registry
        assert r.get_sample_value("urlchecker_total_checks_total", LABELS) == 2.0
        assert r.get_sample_value("urlchecker_failed_checks_total", LABELS) == 1.0
        assert r.get_sample_value("urlchecker_current_status", LABELS) == 0.0
        assert r.get_sample_value("urlchecker_check_duration_seconds_count", LABELS) == 2.0
        assert r.get_sample_value("urlchecker_circuit_breaker_failure_count", LABELS) == 1.0
        assert r.get_sample_value("urlchecker_circuit_breaker_state", LABELS) == 0.0

    def test_transition_metrics(self, checker, make_target, fake_dialer, fast_policy, sink):
        fake_dialer.set("a.test", False)
        target = make_target("a.test", policy=fast_policy)

        checker.check(target)
        checker.check(target)

        r = sink.registry
        assert (
            r.get_sample_value(
                "urlchecker_circuit_breaker_transitions_total",
                {**LABELS, "transition": "closed_to_open"},
            )
            == 1.0
        )
        assert r.get_sample_value("urlchecker_circuit_breaker_state", LABELS) == 2.0


# ============================================================================
# Circuit Breaker Gating
# ============================================================================


class TestBreakerGating:
    """Checks rejected by an open breaker."""

    def test_rejected_without_dial(self, checker, make_target, fake_dialer, fast_policy, sink):
        fake_dialer.set("a.test", False)
        target = make_target("a.test", policy=fast_policy)
        checker.check(target)
        checker.check(target)
        dials = fake_dialer.calls_for("a.test")

        result = checker.check(target)

        assert result.state == CheckState.CIRCUIT_OPEN
        assert fake_dialer.calls_for("a.test") == dials
        assert sink.registry.get_sample_value("urlchecker_circuit_rejections_total", LABELS) == 1.0

    def test_rejection_leaves_state(self, checker, make_target, fake_dialer, fast_policy, state):
        fake_dialer.set("a.test", False)
        target = make_target("a.test", policy=fast_policy)
        checker.check(target)
        checker.check(target)

        checker.check(target)

        current = state.get_state(target.key)
        assert current is not None
        assert current.check_count == 2

    def test_threshold_one_scenario(self, checker, make_target, fake_dialer, clock, state):
        """One failure opens; 10ms later is rejected; 110ms later probes again."""
        policy = CheckPolicy(retry_count=0, circuit_threshold=1, circuit_timeout=0.1)
        target = make_target("b.test", policy=policy)
        fake_dialer.set("b.test", False)

        assert checker.check(target).state == CheckState.FAILED
        assert state.get_breaker(target.key).get_state() == CircuitState.OPEN

        clock.advance(0.01)
        assert checker.check(target).state == CheckState.CIRCUIT_OPEN
        assert fake_dialer.calls_for("b.test") == 1

        clock.advance(0.1)
        fake_dialer.set("b.test", True)
        result = checker.check(target)

        assert result.state == CheckState.SUCCESS
        assert fake_dialer.calls_for("b.test") == 2
        assert state.get_breaker(target.key).get_state() == CircuitState.CLOSED

    def test_half_open_failure_reopens(self, checker, make_target, fake_dialer, clock, state):
        policy = CheckPolicy(retry_count=0, circuit_threshold=1, circuit_timeout=0.1)
        target = make_target("b.test", policy=policy)
        fake_dialer.set("b.test", False)
        checker.check(target)

        clock.advance(0.2)
        assert checker.check(target).state == CheckState.FAILED
        assert checker.check(target).state == CheckState.CIRCUIT_OPEN

    def test_breakers_are_per_key(self, checker, make_target, fake_dialer, fast_policy):
        fake_dialer.set("a.test", False)
        bad = make_target("a.test", policy=fast_policy)
        good = make_target("a.test:8080", policy=fast_policy)
        checker.check(bad)
        checker.check(bad)

        assert checker.check(bad).state == CheckState.CIRCUIT_OPEN
        assert checker.check(good).state == CheckState.FAILED


# ============================================================================
# Groups
# ============================================================================


class TestGroupScenario:
    """Group health computed from checker results."""

    def test_one_healthy_one_down(self, checker, make_target, fake_dialer, fast_policy):
        fake_dialer.set("b.test", False)
        targets = [
            make_target("a.test:healthy", group="g1", policy=fast_policy),
            make_target("b.test:down", group="g1", policy=fast_policy),
        ]

        results = {t.key: checker.check(t).is_healthy for t in targets}
        status = compute_group_health("g1", targets, results)

        assert status.total_urls == 2
        assert status.healthy_urls == 1
        assert status.is_healthy is False
