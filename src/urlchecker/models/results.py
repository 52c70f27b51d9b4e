"""
Check outcomes, per-target results, rolling target state and group status.

All containers are frozen dataclasses. ``TargetState`` is replaced rather
than mutated by [ExporterState][urlchecker.core.state.ExporterState], so a
snapshot handed to a reader can never change underneath it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .constants import UNGROUPED, CheckState, Protocol, StatusLevel


@dataclass(frozen=True, slots=True)
class CheckOutcome:
    """Result of one dial attempt, or of a whole retry sequence.

    Attributes:
        success: Whether a connection was established.
        elapsed: Wall-clock seconds, including backoff sleeps for a retry
            sequence.
        error: Last transport error message, ``None`` on success.
        attempts: Number of dials performed.
    """

    success: bool
    elapsed: float
    error: str | None = None
    attempts: int = 1


@dataclass(frozen=True, slots=True)
class CheckResult:
    """Report record for one checked target.

    Attributes:
        address: Host part of the endpoint.
        port: Port or service name.
        protocol: Transport protocol used.
        state: Success, failure or circuit-open rejection.
        response_time: Seconds spent on the check.
        group: Group name, ``""`` if ungrouped.
        status: Response-time level, ``None`` unless the check succeeded.
        error: Last transport error, if any.
    """

    address: str
    port: str
    protocol: Protocol
    state: CheckState
    response_time: float
    group: str = UNGROUPED
    status: StatusLevel | None = None
    error: str | None = None

    @property
    def is_healthy(self) -> bool:
        """True only for a successful check."""
        return self.state == CheckState.SUCCESS

    @property
    def endpoint(self) -> str:
        """``host:port`` as shown in text output, IPv6 hosts bracketed."""
        if ":" in self.address:
            return f"[{self.address}]:{self.port}"
        return f"{self.address}:{self.port}"

    def to_dict(self) -> dict[str, Any]:
        """JSON representation; ``group`` is omitted for ungrouped targets."""
        data: dict[str, Any] = {
            "address": self.address,
            "port": self.port,
            "state": str(self.state),
            "response_time_seconds": self.response_time,
        }
        if self.group:
            data["group"] = self.group
        return data


@dataclass(frozen=True, slots=True)
class TargetState:
    """Rolling state of one target key, owned by the exporter state map.

    Timestamps are Unix epoch seconds, ``None`` until the corresponding
    event first happens.
    """

    address: str
    protocol: Protocol
    last_check: float
    response_time: float
    is_up: bool
    check_count: int = 1
    failure_count: int = 0
    last_success: float | None = None
    last_failure: float | None = None


@dataclass(frozen=True, slots=True)
class GroupStatus:
    """Aggregated health of one group.

    Attributes:
        group_name: The group (``""`` for ungrouped targets).
        is_healthy: True iff the group has members and all are healthy.
        total_urls: Number of member targets.
        healthy_urls: Members with a healthy result.
        unhealthy_urls: ``total_urls - healthy_urls``.
        urls: Raw entries of the members, in configuration order.
    """

    group_name: str
    is_healthy: bool
    total_urls: int
    healthy_urls: int
    unhealthy_urls: int
    urls: tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        return {
            "group_name": self.group_name,
            "is_healthy": self.is_healthy,
            "total_urls": self.total_urls,
            "healthy_urls": self.healthy_urls,
            "unhealthy_urls": self.unhealthy_urls,
            "urls": list(self.urls),
        }
