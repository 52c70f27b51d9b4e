"""Core layer: the check orchestration machinery and service infrastructure.

Sits in the middle of the diamond DAG -- depends only on
``urlchecker.models`` and is depended upon by ``urlchecker.services``.

Attributes:
    CircuitBreaker: Three-state per-target gate with lazy recovery.
        See [CircuitBreaker][urlchecker.core.breaker.CircuitBreaker].
    RetryPolicy: Bounded retries with exponential backoff and jitter.
        See [RetryPolicy][urlchecker.core.retry.RetryPolicy].
    ExporterState: Thread-safe per-target state and breaker registry.
        See [ExporterState][urlchecker.core.state.ExporterState].
    WorkerPool: Fixed set of threads draining a bounded job queue.
        See [WorkerPool][urlchecker.core.workers.WorkerPool].
    BaseService: Abstract generic base class with lifecycle management
        ([run()][urlchecker.core.base_service.BaseService.run] /
        [run_forever()][urlchecker.core.base_service.BaseService.run_forever] /
        shutdown) and factory methods.
    Logger: Structured logger supporting key=value and JSON output modes.
    PrometheusSink: Metrics sink owning its own registry, served by
        [MetricsServer][urlchecker.core.metrics.MetricsServer].

See Also:
    [urlchecker.models][urlchecker.models]: Frozen dataclass models consumed
        by this layer.
    [urlchecker.services][urlchecker.services]: Service implementations that
        depend on this layer.
"""

from .base_service import (
    BaseService,
    BaseServiceConfig,
    ConfigT,
)
from .breaker import CircuitBreaker, TransitionCallback
from .exceptions import ConfigurationError, InputSourceError, UrlCheckerError
from .logger import Logger, StructuredFormatter, format_kv_pairs
from .metrics import (
    MetricsConfig,
    MetricsServer,
    MetricsSink,
    NullSink,
    PrometheusSink,
    start_metrics_server,
)
from .retry import RetryPolicy, backoff_delay
from .state import ExporterState
from .workers import WorkerPool
from .yaml import dump_yaml, load_yaml, parse_yaml


__all__ = [
    "BaseService",
    "BaseServiceConfig",
    "CircuitBreaker",
    "ConfigT",
    "ConfigurationError",
    "ExporterState",
    "InputSourceError",
    "Logger",
    "MetricsConfig",
    "MetricsServer",
    "MetricsSink",
    "NullSink",
    "PrometheusSink",
    "RetryPolicy",
    "StructuredFormatter",
    "TransitionCallback",
    "UrlCheckerError",
    "WorkerPool",
    "backoff_delay",
    "dump_yaml",
    "format_kv_pairs",
    "load_yaml",
    "parse_yaml",
    "start_metrics_server",
]
