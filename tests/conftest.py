"""
Pytest configuration and shared fixtures for urlchecker tests.

Provides:
- Fake dialer and fake clock so no test opens sockets or sleeps
- A metrics sink with a private registry
- Target factories and a loopback TCP listener
- Custom pytest markers for test categorization
"""

from __future__ import annotations

import logging
import socket
import threading
import time
from collections.abc import Callable, Iterator

import pytest

from urlchecker.core.metrics import PrometheusSink
from urlchecker.models import CheckOutcome, CheckPolicy, Protocol, Target


# ============================================================================
# Logging Configuration
# ============================================================================


@pytest.fixture(scope="session", autouse=True)
def setup_logging() -> None:
    """Configure logging for tests."""
    logging.basicConfig(level=logging.DEBUG)


# ============================================================================
# Fakes
# ============================================================================


class FakeDialer:
    """Dialer returning scripted outcomes per host and recording every call."""

    def __init__(self, default: bool = True, elapsed: float = 0.01, delay: float = 0.0) -> None:
        self.default = default
        self.elapsed = elapsed
        self.delay = delay
        self.outcomes: dict[str, bool] = {}
        self.calls: list[tuple[str, str, str, float]] = []
        self._lock = threading.Lock()

    def set(self, host: str, success: bool) -> None:
        self.outcomes[host] = success

    def attempt(
        self, host: str, port: str, protocol: Protocol | str, timeout: float
    ) -> CheckOutcome:
        with self._lock:
            self.calls.append((host, port, str(protocol), timeout))
        if self.delay:
            time.sleep(self.delay)
        success = self.outcomes.get(host, self.default)
        return CheckOutcome(
            success=success,
            elapsed=self.elapsed,
            error=None if success else "connection refused",
        )

    def calls_for(self, host: str) -> int:
        with self._lock:
            return sum(1 for call in self.calls if call[0] == host)


class FakeClock:
    """Manually advanced time source."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_dialer() -> FakeDialer:
    """Dialer where every host succeeds unless scripted otherwise."""
    return FakeDialer()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sink() -> PrometheusSink:
    """Metrics sink backed by its own registry."""
    return PrometheusSink()


@pytest.fixture
def no_sleep() -> Callable[[float], None]:
    """Sleep replacement that returns immediately."""

    def _sleep(_seconds: float) -> None:
        return None

    return _sleep


# ============================================================================
# Targets
# ============================================================================


@pytest.fixture
def fast_policy() -> CheckPolicy:
    """Policy without retries and with a low breaker threshold."""
    return CheckPolicy(timeout=1.0, retry_count=0, retry_delay=0.0, circuit_threshold=2)


@pytest.fixture
def make_target() -> Callable[..., Target]:
    """Factory for targets parsed from an entry."""

    def _make(entry: str, group: str = "", policy: CheckPolicy | None = None) -> Target:
        return Target.parse(entry, group=group, policy=policy)

    return _make


@pytest.fixture
def tcp_listener() -> Iterator[tuple[str, int]]:
    """A loopback TCP server accepting connections; yields ``(host, port)``."""
    server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    server.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    server.bind(("127.0.0.1", 0))
    server.listen(16)
    host, port = server.getsockname()
    try:
        yield host, port
    finally:
        server.close()


@pytest.fixture
def closed_port() -> int:
    """A loopback port with nothing listening on it."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()
    return port


# ============================================================================
# Pytest Configuration
# ============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: marks tests as unit tests (no external dependencies)")
    config.addinivalue_line("markers", "slow: marks tests as slow running")


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-mark tests based on location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
