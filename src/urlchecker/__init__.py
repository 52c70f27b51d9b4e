r"""urlchecker -- TCP/UDP reachability checks with retries and circuit breakers.

Probes a configurable set of endpoints, optionally grouped, either once
(printing results and a group summary) or continuously as a Prometheus
exporter backed by a worker pool.

Architecture follows a **diamond DAG** dependency structure where imports
flow strictly downward:

```text
              services         Checker, Exporter, config, reporting
             /        \
          core        utils    Breaker, retry, pool, state | sockets, parsing
             \        /
              models           Pure frozen dataclasses (zero I/O)
```

Attributes:
    models: Pure frozen dataclasses. Zero I/O, depends only on stdlib.
    core: Circuit breaker, retry policy, worker pool, exporter state, base
        service, exceptions, logging, metrics.
    utils: Socket probes, duration parsing, target list files.
    services: The checker and exporter services.

Note:
    For lightweight usage, import directly from subpackages::

        from urlchecker.models import Target
        from urlchecker.core import CircuitBreaker

    Top-level imports (``from urlchecker import Checker``) use lazy loading
    and resolve on first access.
"""

import importlib
from importlib.metadata import version as _get_version


__version__ = _get_version("urlchecker")

__all__ = [
    "BaseService",
    "Checker",
    "CircuitBreaker",
    "ConfigT",
    "Exporter",
    "ExporterState",
    "Logger",
    "Protocol",
    "RetryPolicy",
    "Target",
    "UrlCheckerConfig",
    "WorkerPool",
]

_LAZY_IMPORTS: dict[str, tuple[str, str]] = {
    "BaseService": ("urlchecker.core", "BaseService"),
    "CircuitBreaker": ("urlchecker.core", "CircuitBreaker"),
    "ConfigT": ("urlchecker.core", "ConfigT"),
    "ExporterState": ("urlchecker.core", "ExporterState"),
    "Logger": ("urlchecker.core", "Logger"),
    "RetryPolicy": ("urlchecker.core", "RetryPolicy"),
    "WorkerPool": ("urlchecker.core", "WorkerPool"),
    "Protocol": ("urlchecker.models", "Protocol"),
    "Target": ("urlchecker.models", "Target"),
    "Checker": ("urlchecker.services", "Checker"),
    "Exporter": ("urlchecker.services", "Exporter"),
    "UrlCheckerConfig": ("urlchecker.services", "UrlCheckerConfig"),
}


def __getattr__(name: str) -> object:
    if name in _LAZY_IMPORTS:
        module_path, attr_name = _LAZY_IMPORTS[name]
        module = importlib.import_module(module_path)
        value = getattr(module, attr_name)
        globals()[name] = value  # Cache for subsequent access
        return value
    raise AttributeError(f"module 'urlchecker' has no attribute {name!r}")


def __dir__() -> list[str]:
    return __all__
