"""
Abstract base class for urlchecker services.

``BaseService[ConfigT]`` provides the lifecycle shared by the checker and
the exporter: structured logging via [Logger][urlchecker.core.logger.Logger],
graceful shutdown via ``asyncio.Event``, interval-based cycling with
[run_forever()][urlchecker.core.base_service.BaseService.run_forever],
consecutive failure limits, and cycle metrics recorded through an injected
[MetricsSink][urlchecker.core.metrics.MetricsSink].

The event loop only drives this lifecycle and the metrics endpoint. The
checks themselves run on [WorkerPool][urlchecker.core.workers.WorkerPool]
threads; services move blocking pool calls off the loop with
``asyncio.to_thread``.

See Also:
    [BaseServiceConfig][urlchecker.core.base_service.BaseServiceConfig]: Base
        configuration model for all services.
    [PrometheusSink][urlchecker.core.metrics.PrometheusSink]: Sink injected
        when metrics are exposed.
"""

from __future__ import annotations

import asyncio
import time
from abc import ABC, abstractmethod
from types import TracebackType
from typing import Any, ClassVar, Generic, Self, TypeVar, cast

from pydantic import BaseModel, Field

from urlchecker.models.constants import ServiceName

from .logger import Logger
from .metrics import MetricsConfig, MetricsSink, NullSink
from .yaml import load_yaml


# ---------------------------------------------------------------------------
# Base Configuration
# ---------------------------------------------------------------------------


class BaseServiceConfig(BaseModel):
    """Base configuration shared by all services that run in a loop.

    Subclass this to add service-specific fields. The fields defined here
    control the
    [run_forever()][urlchecker.core.base_service.BaseService.run_forever]
    cycle interval, failure tolerance, and Prometheus metrics exposition.
    """

    check_interval: float = Field(
        default=30.0,
        gt=0,
        description="Seconds between run cycles",
    )
    max_consecutive_failures: int = Field(
        default=5,
        ge=0,
        description="Stop after this many consecutive errors (0 = unlimited)",
    )
    metrics: MetricsConfig = Field(
        default_factory=MetricsConfig,
        description="Prometheus metrics configuration",
    )


# Bound TypeVar ensuring all service configs inherit from BaseServiceConfig
ConfigT = TypeVar("ConfigT", bound=BaseServiceConfig)


class BaseService(ABC, Generic[ConfigT]):
    """Abstract base class for all urlchecker services.

    Subclasses must set ``SERVICE_NAME`` and ``CONFIG_CLASS`` and implement
    [run()][urlchecker.core.base_service.BaseService.run] with one cycle of
    work.

    Attributes:
        SERVICE_NAME: Unique service identifier used in logging and metrics.
        CONFIG_CLASS: Pydantic model class used by the factory methods.
        _config: Typed service configuration (defaults from ``CONFIG_CLASS``).
        _sink: Metrics sink; a [NullSink][urlchecker.core.metrics.NullSink]
            unless one is injected.
        _logger: [Logger][urlchecker.core.logger.Logger] named after the service.
        _shutdown_event: ``asyncio.Event`` controlling the run loop. Clear
            means the service is running; set means shutdown was requested.

    Note:
        The lifecycle pattern is ``async with service:`` then either a
        single [run()][urlchecker.core.base_service.BaseService.run] call
        or [run_forever()][urlchecker.core.base_service.BaseService.run_forever].
        Subclasses that own threads release them in ``__aexit__``.
    """

    SERVICE_NAME: ClassVar[ServiceName]
    CONFIG_CLASS: ClassVar[type[BaseModel]]

    def __init__(
        self,
        config: ConfigT | None = None,
        *,
        sink: MetricsSink | None = None,
        json_logs: bool = False,
    ) -> None:
        self._config: ConfigT = (
            config if config is not None else cast("ConfigT", self.CONFIG_CLASS())
        )
        self._sink: MetricsSink = sink if sink is not None else NullSink()
        self._logger = Logger(self.SERVICE_NAME, json_output=json_logs)
        self._shutdown_event = asyncio.Event()

    @property
    def config(self) -> ConfigT:
        """The typed service configuration (read-only)."""
        return self._config

    @property
    def sink(self) -> MetricsSink:
        return self._sink

    @abstractmethod
    async def run(self) -> Any:
        """Execute one cycle of the service's main logic.

        Called repeatedly by
        [run_forever()][urlchecker.core.base_service.BaseService.run_forever].
        Implementations perform a bounded unit of work and return.
        """
        ...

    def request_shutdown(self) -> None:
        """Request a graceful shutdown of the service.

        Safe to call from signal handlers. The next
        [wait()][urlchecker.core.base_service.BaseService.wait] call in
        [run_forever()][urlchecker.core.base_service.BaseService.run_forever]
        detects the signal and breaks the loop.
        """
        self._shutdown_event.set()

    @property
    def is_running(self) -> bool:
        """Whether the service is still active (shutdown not yet requested)."""
        return not self._shutdown_event.is_set()

    async def wait(self, timeout: float) -> bool:  # noqa: ASYNC109
        """Wait for either a shutdown signal or a timeout to elapse.

        Returns ``True`` if shutdown was requested during the wait, or
        ``False`` if the timeout expired normally.
        """
        try:
            await asyncio.wait_for(self._shutdown_event.wait(), timeout=timeout)
            return True
        except TimeoutError:
            return False

    async def run_forever(self) -> None:
        """Run the service in a loop, ``config.check_interval`` apart.

        The first cycle runs immediately. Exits when shutdown is requested
        via
        [request_shutdown()][urlchecker.core.base_service.BaseService.request_shutdown]
        or when ``config.max_consecutive_failures`` cycles in a row have
        raised. A limit of ``0`` disables the failure limit.

        Cycle metrics go to the sink: ``cycles_success``,
        ``cycles_failed`` and ``errors_{ExceptionType}`` counters,
        ``consecutive_failures`` and ``last_cycle_timestamp`` gauges, and
        the ``cycle_duration_seconds`` histogram.

        ``CancelledError``, ``KeyboardInterrupt``, and ``SystemExit`` always
        propagate immediately without being counted as failures.
        """
        interval = self._config.check_interval
        max_consecutive_failures = self._config.max_consecutive_failures

        self._sink.set_service_info(self.SERVICE_NAME)

        self._logger.info(
            "run_forever_started",
            interval=interval,
            max_consecutive_failures=max_consecutive_failures,
        )

        consecutive_failures = 0

        while self.is_running:
            cycle_start = time.monotonic()

            try:
                await self.run()

                duration = time.monotonic() - cycle_start
                self.inc_counter("cycles_success")
                self._sink.observe_cycle(self.SERVICE_NAME, duration)
                self.set_gauge("last_cycle_timestamp", time.time())
                self.set_gauge("consecutive_failures", 0)

                consecutive_failures = 0
                self._logger.info(
                    "cycle_completed", duration_s=round(duration, 3), next_cycle_s=interval
                )

            except (asyncio.CancelledError, KeyboardInterrupt, SystemExit):
                raise

            except Exception as e:  # Intentionally broad: top-level error boundary for run_forever
                consecutive_failures += 1

                self.inc_counter("cycles_failed")
                self.set_gauge("consecutive_failures", consecutive_failures)
                self.inc_counter(f"errors_{type(e).__name__}")

                self._logger.error(
                    "run_cycle_error",
                    error=str(e),
                    consecutive_failures=consecutive_failures,
                )

                if (
                    max_consecutive_failures > 0
                    and consecutive_failures >= max_consecutive_failures
                ):
                    self._logger.critical(
                        "max_consecutive_failures_reached",
                        failures=consecutive_failures,
                        limit=max_consecutive_failures,
                    )
                    break

            if await self.wait(interval):
                break

        self._logger.info("run_forever_stopped")

    # -------------------------------------------------------------------------
    # Factory Methods
    # -------------------------------------------------------------------------

    @classmethod
    def from_yaml(cls, config_path: str, **kwargs: Any) -> Self:
        """Create a service instance from a YAML configuration file.

        Delegates to [load_yaml()][urlchecker.core.yaml.load_yaml], then to
        [from_dict()][urlchecker.core.base_service.BaseService.from_dict].
        """
        return cls.from_dict(load_yaml(config_path), **kwargs)

    @classmethod
    def from_dict(cls, data: dict[str, Any], **kwargs: Any) -> Self:
        """Create a service instance from a configuration dictionary.

        Args:
            data: Configuration dictionary parsed into ``CONFIG_CLASS``.
            **kwargs: Additional keyword arguments passed to the constructor
                (``sink``, ``json_logs``, ...).
        """
        config = cast("ConfigT", cls.CONFIG_CLASS(**data))
        return cls(config=config, **kwargs)

    # -------------------------------------------------------------------------
    # Context Manager
    # -------------------------------------------------------------------------

    async def __aenter__(self) -> Self:
        """Mark the service as running on context entry."""
        self._shutdown_event.clear()
        self._logger.info("service_started")
        return self

    async def __aexit__(
        self,
        _exc_type: type[BaseException] | None,
        _exc_val: BaseException | None,
        _exc_tb: TracebackType | None,
    ) -> None:
        """Signal shutdown on context exit."""
        self._shutdown_event.set()
        self._logger.info("service_stopped")

    # -------------------------------------------------------------------------
    # Custom Metrics
    # -------------------------------------------------------------------------

    def set_gauge(self, name: str, value: float) -> None:
        """Set a named gauge metric for this service.

        Args:
            name: Metric name (e.g. ``"targets"``, ``"consecutive_failures"``).
            value: Current numeric value.
        """
        self._sink.set_gauge(self.SERVICE_NAME, name, value)

    def inc_counter(self, name: str, value: float = 1) -> None:
        """Increment a named counter metric for this service.

        Args:
            name: Metric name (e.g. ``"jobs_enqueued"``).
            value: Amount to increment (default: 1).
        """
        self._sink.inc_counter(self.SERVICE_NAME, name, value)
