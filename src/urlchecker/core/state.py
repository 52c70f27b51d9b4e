"""
Thread-safe per-target state and circuit breaker registry.

[ExporterState][urlchecker.core.state.ExporterState] owns exactly one
[TargetState][urlchecker.models.results.TargetState] and one
[CircuitBreaker][urlchecker.core.breaker.CircuitBreaker] per
[TargetKey][urlchecker.models.target.TargetKey]. Both are created lazily on
first use and never removed: the target set is fixed for the lifetime of a
run, so the maps stay bounded by it.

``TargetState`` values are frozen and replaced on every update, so a
snapshot from [get_all_states()][urlchecker.core.state.ExporterState.get_all_states]
never changes after it is returned.
"""

from __future__ import annotations

import dataclasses
import threading
import time
from collections.abc import Callable

from urlchecker.models.results import TargetState
from urlchecker.models.target import TargetKey

from .breaker import CircuitBreaker, TransitionCallback


class ExporterState:
    """Shared state map updated concurrently by worker threads.

    Args:
        clock: Wall-clock source for the recorded timestamps.
        breaker_clock: Monotonic source handed to every new breaker.
    """

    def __init__(
        self,
        *,
        clock: Callable[[], float] = time.time,
        breaker_clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._clock = clock
        self._breaker_clock = breaker_clock
        self._lock = threading.Lock()
        self._states: dict[TargetKey, TargetState] = {}
        self._breakers: dict[TargetKey, CircuitBreaker] = {}

    def update_state(self, key: TargetKey, success: bool, response_time: float) -> TargetState:
        """Record the result of one check for ``key``.

        Returns:
            The new TargetState stored for ``key``.
        """
        with self._lock:
            now = self._clock()
            current = self._states.get(key)

            if current is None:
                state = TargetState(
                    address=key.address,
                    protocol=key.protocol,
                    last_check=now,
                    response_time=response_time,
                    is_up=success,
                    check_count=1,
                    failure_count=0 if success else 1,
                    last_success=now if success else None,
                    last_failure=None if success else now,
                )
            elif success:
                state = dataclasses.replace(
                    current,
                    last_check=now,
                    response_time=response_time,
                    is_up=True,
                    check_count=current.check_count + 1,
                    last_success=now,
                )
            else:
                state = dataclasses.replace(
                    current,
                    last_check=now,
                    response_time=response_time,
                    is_up=False,
                    check_count=current.check_count + 1,
                    failure_count=current.failure_count + 1,
                    last_failure=now,
                )

            self._states[key] = state
            return state

    def get_state(self, key: TargetKey) -> TargetState | None:
        with self._lock:
            return self._states.get(key)

    def get_all_states(self) -> dict[TargetKey, TargetState]:
        """Point-in-time copy of every target's state."""
        with self._lock:
            return dict(self._states)

    def get_or_create_breaker(
        self,
        key: TargetKey,
        threshold: int,
        timeout: float,
        on_transition: TransitionCallback | None = None,
    ) -> CircuitBreaker:
        """Return the breaker for ``key``, creating it on first use.

        ``threshold``, ``timeout`` and ``on_transition`` only apply when the
        breaker is created; an existing breaker is returned unchanged.
        """
        with self._lock:
            breaker = self._breakers.get(key)
            if breaker is None:
                breaker = CircuitBreaker(
                    threshold,
                    timeout,
                    clock=self._breaker_clock,
                    on_transition=on_transition,
                )
                self._breakers[key] = breaker
            return breaker

    def get_breaker(self, key: TargetKey) -> CircuitBreaker | None:
        with self._lock:
            return self._breakers.get(key)

    def __len__(self) -> int:
        with self._lock:
            return len(self._states)
