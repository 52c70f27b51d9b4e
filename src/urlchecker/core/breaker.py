"""
Per-target circuit breaker.

A [CircuitBreaker][urlchecker.core.breaker.CircuitBreaker] is a three-state
gate that stops dialing a target after repeated failures and lets a probe
through again once a cooldown has passed:

```text
           failures >= threshold
  CLOSED ─────────────────────────▶ OPEN
    ▲                                │ ▲
    │ success          timeout       │ │ failure
    │                  elapsed       ▼ │
    └──────────────────────────── HALF_OPEN
```

There is no background timer. The Open to HalfOpen transition happens
lazily, as a side effect of the first ``is_open()`` or ``get_state()`` call
made after the cooldown has elapsed. Until something queries the breaker
its state may therefore look stale.

All state is guarded by a per-breaker ``threading.Lock``; worker threads
share breakers through
[ExporterState][urlchecker.core.state.ExporterState].

Examples:
    ```python
    breaker = CircuitBreaker(threshold=3, timeout=30.0)
    if not breaker.is_open():
        outcome = policy.attempt(target)
        if outcome.success:
            breaker.record_success()
        else:
            breaker.record_failure()
    ```
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable

from urlchecker.models.constants import CircuitState


TransitionCallback = Callable[[CircuitState, CircuitState], None]


class CircuitBreaker:
    """Three-state gate for one (endpoint, protocol) key.

    Args:
        threshold: Consecutive failures that open the breaker (>= 1).
        timeout: Seconds an open breaker waits after the last failure
            before letting a probe through.
        clock: Monotonic time source, injectable for tests.
        on_transition: Called with ``(old, new)`` after every state change,
            outside the lock.

    Raises:
        ValueError: If ``threshold`` < 1 or ``timeout`` < 0.
    """

    def __init__(
        self,
        threshold: int,
        timeout: float,
        *,
        clock: Callable[[], float] = time.monotonic,
        on_transition: TransitionCallback | None = None,
    ) -> None:
        if threshold < 1:
            raise ValueError(f"threshold must be >= 1, got {threshold}")
        if timeout < 0:
            raise ValueError(f"timeout must be >= 0, got {timeout}")

        self._threshold = threshold
        self._timeout = timeout
        self._clock = clock
        self._on_transition = on_transition
        self._lock = threading.Lock()

        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._last_failure: float | None = None

    @property
    def threshold(self) -> int:
        return self._threshold

    @property
    def timeout(self) -> float:
        return self._timeout

    @property
    def failure_count(self) -> int:
        with self._lock:
            return self._failure_count

    @property
    def last_failure(self) -> float | None:
        """Clock reading of the last recorded failure, ``None`` if never."""
        with self._lock:
            return self._last_failure

    # -------------------------------------------------------------------------
    # State reads (side-effecting)
    # -------------------------------------------------------------------------

    def is_open(self) -> bool:
        """Return True while checks must be rejected.

        An open breaker whose cooldown has elapsed moves to HALF_OPEN on
        this call and returns False.
        """
        return self.get_state() == CircuitState.OPEN

    def get_state(self) -> CircuitState:
        """Return the current state, applying the lazy Open to HalfOpen move."""
        with self._lock:
            old = self._state
            if (
                old == CircuitState.OPEN
                and self._last_failure is not None
                and self._clock() - self._last_failure >= self._timeout
            ):
                self._state = CircuitState.HALF_OPEN
            new = self._state

        self._notify(old, new)
        return new

    # -------------------------------------------------------------------------
    # Recording
    # -------------------------------------------------------------------------

    def record_success(self) -> None:
        """Close the breaker and reset the failure count."""
        with self._lock:
            old = self._state
            self._failure_count = 0
            self._state = CircuitState.CLOSED

        self._notify(old, CircuitState.CLOSED)

    def record_failure(self) -> None:
        """Count a failure and open the breaker when required.

        From CLOSED the breaker opens once the count reaches the threshold.
        From HALF_OPEN it reopens immediately. While OPEN the count still
        grows and the cooldown restarts from now.
        """
        with self._lock:
            old = self._state
            self._failure_count += 1
            now = self._clock()

            if old == CircuitState.HALF_OPEN:
                self._state = CircuitState.OPEN
                self._last_failure = now
            elif old == CircuitState.OPEN:
                self._last_failure = now
            elif self._failure_count >= self._threshold:
                self._state = CircuitState.OPEN
                self._last_failure = now
            new = self._state

        self._notify(old, new)

    def _notify(self, old: CircuitState, new: CircuitState) -> None:
        if old != new and self._on_transition is not None:
            self._on_transition(old, new)

    def __repr__(self) -> str:
        return (
            f"CircuitBreaker(state={self._state.label}, failures={self._failure_count}, "
            f"threshold={self._threshold}, timeout={self._timeout})"
        )
