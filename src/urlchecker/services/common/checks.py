"""The per-target check pipeline shared by the checker and the exporter.

[TargetChecker.check()][urlchecker.services.common.checks.TargetChecker.check]
runs on a worker thread for every job:

```text
breaker gate ──open──▶ CircuitOpen result (nothing dialed)
     │
   closed / half-open
     ▼
retry policy ─▶ breaker record ─▶ state update ─▶ metrics ─▶ CheckResult
```
"""

from __future__ import annotations

import time
from collections.abc import Callable

from urlchecker.core.breaker import CircuitBreaker, TransitionCallback
from urlchecker.core.logger import Logger
from urlchecker.core.metrics import MetricsSink, NullSink
from urlchecker.core.retry import RetryPolicy
from urlchecker.core.state import ExporterState
from urlchecker.models.constants import CheckState, CircuitState
from urlchecker.models.results import CheckResult
from urlchecker.models.target import Target

from .report import classify_response_time


class TargetChecker:
    """Checks one target at a time; safe to call from many threads.

    Args:
        state: Shared per-target state and breaker registry.
        retry: Retry policy wrapping the dialer.
        sink: Metrics sink for check, breaker and duration metrics.
        clock: Monotonic time source for check durations.
    """

    def __init__(
        self,
        state: ExporterState,
        retry: RetryPolicy,
        sink: MetricsSink | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
        logger: Logger | None = None,
    ) -> None:
        self._state = state
        self._retry = retry
        self._sink: MetricsSink = sink if sink is not None else NullSink()
        self._clock = clock
        self._logger = logger or Logger("checks")

    @property
    def state(self) -> ExporterState:
        return self._state

    def breaker_for(self, target: Target) -> CircuitBreaker:
        """The target's breaker, created on first use."""
        return self._state.get_or_create_breaker(
            target.key,
            target.policy.circuit_threshold,
            target.policy.circuit_timeout,
            on_transition=self._transition_recorder(target),
        )

    def check(self, target: Target) -> CheckResult:
        """Run the full pipeline for ``target`` and return its result."""
        start = self._clock()
        address = target.address
        protocol = target.protocol
        breaker = self.breaker_for(target)

        if breaker.is_open():
            elapsed = self._clock() - start
            self._sink.record_circuit_rejection(address, protocol)
            self._sink.record_circuit_state(address, protocol, CircuitState.OPEN)
            self._logger.debug(
                "check_rejected",
                address=address,
                protocol=protocol,
                failures=breaker.failure_count,
            )
            return CheckResult(
                address=target.host,
                port=target.port,
                protocol=protocol,
                state=CheckState.CIRCUIT_OPEN,
                response_time=elapsed,
                group=target.group,
            )

        outcome = self._retry.attempt(target)

        if outcome.success:
            breaker.record_success()
        else:
            breaker.record_failure()
        self._sink.record_circuit_state(address, protocol, breaker.get_state())
        self._sink.record_circuit_failure_count(address, protocol, breaker.failure_count)

        self._state.update_state(target.key, outcome.success, outcome.elapsed)

        self._sink.record_check(address, protocol, outcome.success, outcome.elapsed)
        self._sink.record_check_duration(address, protocol, self._clock() - start)

        if not outcome.success:
            self._logger.warning(
                "check_failed",
                address=address,
                protocol=protocol,
                attempts=outcome.attempts,
                elapsed_s=round(outcome.elapsed, 3),
                error=outcome.error,
            )
            return CheckResult(
                address=target.host,
                port=target.port,
                protocol=protocol,
                state=CheckState.FAILED,
                response_time=outcome.elapsed,
                group=target.group,
                error=outcome.error,
            )

        self._logger.debug(
            "check_succeeded",
            address=address,
            protocol=protocol,
            attempts=outcome.attempts,
            elapsed_s=round(outcome.elapsed, 3),
        )
        return CheckResult(
            address=target.host,
            port=target.port,
            protocol=protocol,
            state=CheckState.SUCCESS,
            response_time=outcome.elapsed,
            group=target.group,
            status=classify_response_time(
                outcome.elapsed,
                target.policy.warning_threshold,
                target.policy.critical_threshold,
            ),
        )

    def _transition_recorder(self, target: Target) -> TransitionCallback:
        address = target.address
        protocol = target.protocol

        def record(old: CircuitState, new: CircuitState) -> None:
            self._sink.record_circuit_transition(address, protocol, f"{old.label}_to_{new.label}")
            self._logger.info(
                "circuit_transition",
                address=address,
                protocol=protocol,
                old=old.label,
                new=new.label,
            )

        return record
