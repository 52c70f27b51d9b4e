"""Pure frozen dataclasses and enumerations with zero I/O.

The models layer is the foundation of the package. It depends only on the
standard library and is imported by every other layer.

Attributes:
    Target: Immutable endpoint (host, port, protocol, group, policy).
    TargetKey: Typed ``(address, protocol)`` key for state and breakers.
    CheckPolicy: Timeout, retry and circuit breaker settings of a target.
    CheckOutcome: Result of a dial attempt or retry sequence.
    CheckResult: Per-target report record.
    TargetState: Rolling per-key state kept by the exporter.
    GroupStatus: Aggregated health of a group.
"""

from .constants import (
    DEFAULT_PORT,
    UNGROUPED,
    CheckState,
    CircuitState,
    Protocol,
    ServiceName,
    StatusLevel,
)
from .results import CheckOutcome, CheckResult, GroupStatus, TargetState
from .target import CheckPolicy, Target, TargetKey, split_host_port


__all__ = [
    "DEFAULT_PORT",
    "UNGROUPED",
    "CheckOutcome",
    "CheckPolicy",
    "CheckResult",
    "CheckState",
    "CircuitState",
    "GroupStatus",
    "Protocol",
    "ServiceName",
    "StatusLevel",
    "Target",
    "TargetKey",
    "TargetState",
    "split_host_port",
]
