"""Shared constants for the models layer.

Defines the enumerations used across the models, core, and services
layers. Placing them here keeps the models layer free of imports from
any other urlchecker package.

See Also:
    [urlchecker.models.target][]: Uses [Protocol][urlchecker.models.constants.Protocol]
        to describe how a target is dialed.
    [urlchecker.core.breaker][]: Uses
        [CircuitState][urlchecker.models.constants.CircuitState] for its
        three-state gate.
"""

from __future__ import annotations

from enum import IntEnum, StrEnum


class Protocol(StrEnum):
    """Transport protocol used to probe a target.

    Attributes:
        TCP: Stream connection; success means the three-way handshake
            completed within the timeout.
        UDP: Datagram socket ``connect()``; connectionless, so success only
            means the endpoint resolved and a route to it exists.
    """

    TCP = "tcp"
    UDP = "udp"


class CircuitState(IntEnum):
    """Circuit breaker state.

    The integer values are the encoding exported by the
    ``urlchecker_circuit_breaker_state`` gauge.

    Attributes:
        CLOSED: Checks flow normally; failures are counted.
        HALF_OPEN: Cooldown elapsed; checks are let through to probe
            recovery.
        OPEN: Checks are rejected without dialing.
    """

    CLOSED = 0
    HALF_OPEN = 1
    OPEN = 2

    @property
    def label(self) -> str:
        """Lowercase hyphenated name used in logs and transition labels."""
        return self.name.lower().replace("_", "-")


class CheckState(StrEnum):
    """Final state of one target check.

    The string values are the ``state`` field of the JSON output.

    Attributes:
        SUCCESS: The target accepted a connection.
        FAILED: Every attempt failed (transport error or timeout).
        CIRCUIT_OPEN: The circuit breaker rejected the check; nothing was
            dialed.
    """

    SUCCESS = "Success"
    FAILED = "Failed"
    CIRCUIT_OPEN = "CircuitOpen"


class StatusLevel(StrEnum):
    """Response-time classification of a successful check."""

    OK = "ok"
    WARNING = "warning"
    CRITICAL = "critical"


class ServiceName(StrEnum):
    """Canonical service identifiers used in logging and metrics labels.

    Attributes:
        CHECKER: Ad-hoc checks, one pass per cycle, results printed.
        EXPORTER: Scheduled checks through the worker pool, results
            exported as metrics only.
    """

    CHECKER = "checker"
    EXPORTER = "exporter"


DEFAULT_PORT = "80"
UNGROUPED = ""
