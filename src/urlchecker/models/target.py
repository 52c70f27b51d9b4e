"""
Immutable probe targets and the typed key that identifies them.

A target entry is written as ``host``, ``host:port``, ``[v6addr]`` or
``[v6addr]:port``. A bare IPv6 literal (more than one colon, no brackets)
is treated as a host without a port. An embedded port overrides the
configured default port.

Ports are kept as strings: the dialer hands them to ``getaddrinfo``,
which also accepts service names such as ``http``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import NamedTuple

from .constants import DEFAULT_PORT, UNGROUPED, Protocol


class TargetKey(NamedTuple):
    """Composite key for per-target state and circuit breakers.

    Attributes:
        address: Normalized ``host:port`` endpoint (IPv6 hosts bracketed).
        protocol: Transport protocol the endpoint is probed with.
    """

    address: str
    protocol: Protocol


@dataclass(frozen=True, slots=True)
class CheckPolicy:
    """Per-target check settings, all durations in seconds.

    Attributes:
        timeout: Dial timeout for a single attempt.
        retry_count: Retries after the first failed attempt.
        retry_delay: Base delay of the exponential backoff.
        circuit_threshold: Consecutive failures that open the breaker.
        circuit_timeout: Cooldown before an open breaker lets a probe through.
        warning_threshold: Response time above which a success is a warning.
        critical_threshold: Response time above which a success is critical.
    """

    timeout: float = 5.0
    retry_count: int = 3
    retry_delay: float = 1.0
    circuit_threshold: int = 5
    circuit_timeout: float = 60.0
    warning_threshold: float = 0.5
    critical_threshold: float = 1.0

    def __post_init__(self) -> None:
        if self.timeout <= 0:
            raise ValueError(f"timeout must be positive, got {self.timeout}")
        if self.retry_count < 0:
            raise ValueError(f"retry_count must be >= 0, got {self.retry_count}")
        if self.retry_delay < 0:
            raise ValueError(f"retry_delay must be >= 0, got {self.retry_delay}")
        if self.circuit_threshold < 1:
            raise ValueError(f"circuit_threshold must be >= 1, got {self.circuit_threshold}")
        if self.circuit_timeout < 0:
            raise ValueError(f"circuit_timeout must be >= 0, got {self.circuit_timeout}")


def split_host_port(entry: str, default_port: str = DEFAULT_PORT) -> tuple[str, str]:
    """Split a target entry into ``(host, port)``.

    Raises:
        ValueError: If the entry is empty or has an empty host or port.
    """
    entry = entry.strip()
    if not entry:
        raise ValueError("empty target entry")

    if entry.startswith("["):
        end = entry.find("]")
        if end == -1:
            raise ValueError(f"unterminated IPv6 literal: {entry!r}")
        host = entry[1:end]
        rest = entry[end + 1 :]
        if not rest:
            port = default_port
        elif rest.startswith(":"):
            port = rest[1:]
        else:
            raise ValueError(f"unexpected text after IPv6 literal: {entry!r}")
    elif entry.count(":") == 1:
        host, port = entry.split(":", 1)
    else:
        host, port = entry, default_port

    if not host:
        raise ValueError(f"missing host in {entry!r}")
    if not port:
        raise ValueError(f"missing port in {entry!r}")
    return host, port


@dataclass(frozen=True, slots=True)
class Target:
    """A single endpoint to probe.

    Build instances with [Target.parse][urlchecker.models.target.Target.parse]
    so the embedded port is honored.

    Attributes:
        host: Hostname or IP literal (no brackets).
        port: Port number or service name.
        protocol: Transport protocol.
        group: Group name, ``""`` for ungrouped targets.
        raw: The entry as written in the configuration or target file.
        policy: Timeouts, retry and circuit breaker settings.

    Examples:
        ```python
        target = Target.parse("example.com:443", group="web")
        target.address   # 'example.com:443'
        target.key       # TargetKey(address='example.com:443', protocol=<Protocol.TCP: 'tcp'>)
        ```
    """

    host: str
    port: str
    protocol: Protocol = Protocol.TCP
    group: str = UNGROUPED
    raw: str = ""
    policy: CheckPolicy = field(default_factory=CheckPolicy)

    def __post_init__(self) -> None:
        if not self.host:
            raise ValueError("host must not be empty")
        if not self.port:
            raise ValueError("port must not be empty")
        object.__setattr__(self, "protocol", Protocol(self.protocol))
        if not self.raw:
            object.__setattr__(self, "raw", self.address)

    @classmethod
    def parse(
        cls,
        entry: str,
        *,
        default_port: str = DEFAULT_PORT,
        protocol: Protocol = Protocol.TCP,
        group: str = UNGROUPED,
        policy: CheckPolicy | None = None,
    ) -> Target:
        """Create a target from an entry such as ``host`` or ``host:port``."""
        host, port = split_host_port(entry, default_port)
        return cls(
            host=host,
            port=port,
            protocol=protocol,
            group=group,
            raw=entry.strip(),
            policy=policy or CheckPolicy(),
        )

    @property
    def address(self) -> str:
        """Normalized ``host:port`` endpoint."""
        if ":" in self.host:
            return f"[{self.host}]:{self.port}"
        return f"{self.host}:{self.port}"

    @property
    def key(self) -> TargetKey:
        """Key under which state and breaker for this target are stored."""
        return TargetKey(self.address, self.protocol)
