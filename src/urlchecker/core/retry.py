"""
Bounded retries with exponential backoff around the dialer.

[RetryPolicy][urlchecker.core.retry.RetryPolicy] dials a target at most
``retry_count + 1`` times. After failed attempt ``n`` (0-based) it sleeps
[backoff_delay()][urlchecker.core.retry.backoff_delay] seconds before the
next one. A failed sequence is a normal result, never an exception.

Examples:
    ```python
    policy = RetryPolicy(Dialer(), sink)
    outcome = policy.attempt(Target.parse("example.com:443"))
    outcome.attempts  # 1 on first-try success
    ```
"""

from __future__ import annotations

import random
import time
from collections.abc import Callable
from typing import Protocol as TypingProtocol

from urlchecker.models.constants import Protocol
from urlchecker.models.results import CheckOutcome
from urlchecker.models.target import Target

from .logger import Logger
from .metrics import MetricsSink, NullSink


JITTER_FRACTION = 0.1


class DialerLike(TypingProtocol):
    """Anything that performs one timed connection attempt."""

    def attempt(
        self, host: str, port: str, protocol: Protocol | str, timeout: float
    ) -> CheckOutcome: ...


def backoff_delay(
    attempt: int,
    base_delay: float,
    timeout: float,
    uniform: Callable[[float, float], float] = random.uniform,
) -> float:
    """Delay to wait after failed attempt ``attempt`` (0-based).

    ``base_delay * 2**attempt`` with symmetric jitter of up to
    ``JITTER_FRACTION`` of that value. A delay longer than ``timeout`` is
    replaced by ``timeout / 2``.
    """
    delay = base_delay * (2**attempt)
    delay += uniform(-JITTER_FRACTION * delay, JITTER_FRACTION * delay)
    if delay > timeout:
        delay = timeout / 2
    return max(delay, 0.0)


class RetryPolicy:
    """Dial a target with retries until it answers or attempts run out.

    Stateless apart from its collaborators, so one instance is shared by
    every worker thread.

    Args:
        dialer: Performs the individual attempts.
        sink: Receives one ``record_retry_attempt`` per retry.
        sleep: Blocking sleep, replaced by a no-op or recorder in tests.
        uniform: Jitter source with the ``random.uniform`` signature.
    """

    def __init__(
        self,
        dialer: DialerLike,
        sink: MetricsSink | None = None,
        *,
        sleep: Callable[[float], None] = time.sleep,
        uniform: Callable[[float, float], float] = random.uniform,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._dialer = dialer
        self._sink: MetricsSink = sink if sink is not None else NullSink()
        self._sleep = sleep
        self._uniform = uniform
        self._clock = clock
        self._logger = Logger("retry")

    def attempt(self, target: Target) -> CheckOutcome:
        """Dial ``target`` per its policy.

        Returns:
            The first successful outcome, or a failed one carrying the last
            error. ``elapsed`` covers every attempt and backoff sleep;
            ``attempts`` is the number of dials made.
        """
        policy = target.policy
        max_attempts = policy.retry_count + 1
        start = self._clock()
        error: str | None = None

        for n in range(max_attempts):
            outcome = self._dialer.attempt(target.host, target.port, target.protocol, policy.timeout)
            if outcome.success:
                return CheckOutcome(success=True, elapsed=self._clock() - start, attempts=n + 1)

            error = outcome.error
            if n + 1 >= max_attempts:
                break

            delay = backoff_delay(n, policy.retry_delay, policy.timeout, self._uniform)
            self._sink.record_retry_attempt(target.address, target.protocol)
            self._logger.debug(
                "retry_attempt",
                address=target.address,
                protocol=target.protocol,
                attempt=n + 1,
                delay=round(delay, 3),
                error=error,
            )
            self._sleep(delay)

        return CheckOutcome(
            success=False,
            elapsed=self._clock() - start,
            error=error,
            attempts=max_attempts,
        )
