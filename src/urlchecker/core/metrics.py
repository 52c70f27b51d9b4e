"""
Prometheus metrics recording and HTTP exposition.

Metrics are recorded through an injected
[MetricsSink][urlchecker.core.metrics.MetricsSink] rather than module-level
singletons: every [PrometheusSink][urlchecker.core.metrics.PrometheusSink]
owns its own ``CollectorRegistry``, so several sinks (one per test, for
example) never collide on metric names. Components that do not need
metrics receive a [NullSink][urlchecker.core.metrics.NullSink].

The ``MetricsServer`` provides an async HTTP endpoint (via aiohttp) that
serves the sink's registry for Prometheus scraping.

Architecture:
    Check metrics:      total/failed checks, response time and check
                        duration histograms, current status gauge.
    Retry metrics:      retry attempts counter.
    Breaker metrics:    state gauge, failure count gauge, transitions and
                        rejections counters.
    Group metrics:      health, total and healthy members gauges.
    Service metrics:    service info, generic gauge/counter, cycle duration
                        histogram (recorded by ``BaseService.run_forever``).

All prometheus_client metric objects are thread-safe, so worker threads
record directly.
"""

from __future__ import annotations

from typing import Protocol as TypingProtocol

from aiohttp import web
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    Info,
    generate_latest,
)
from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class MetricsConfig(BaseModel):
    """Configuration for the Prometheus metrics endpoint.

    The endpoint is only started when ``enabled`` is True. Exporter mode
    turns it on regardless of this flag.
    """

    enabled: bool = Field(default=False, description="Expose the metrics endpoint")
    port: int = Field(default=9090, ge=1, le=65535, description="Metrics HTTP port")
    host: str = Field(default="0.0.0.0", description="Metrics HTTP bind address")  # noqa: S104
    path: str = Field(default="/metrics", description="Metrics endpoint path")


# ---------------------------------------------------------------------------
# Sink Interface
# ---------------------------------------------------------------------------


class MetricsSink(TypingProtocol):
    """Record-style operations the checking core calls after each unit of work."""

    def record_check(self, url: str, protocol: str, success: bool, response_time: float) -> None:
        """Record the result and response time of a completed check."""

    def record_check_duration(self, url: str, protocol: str, duration: float) -> None:
        """Record the total time spent on a check."""

    def record_retry_attempt(self, url: str, protocol: str) -> None:
        """Record one retry after a failed attempt."""

    def record_circuit_state(self, url: str, protocol: str, state: int) -> None:
        """Record the current breaker state (0 closed, 1 half-open, 2 open)."""

    def record_circuit_failure_count(self, url: str, protocol: str, count: int) -> None:
        """Record the breaker's consecutive failure count."""

    def record_circuit_transition(self, url: str, protocol: str, transition: str) -> None:
        """Record a breaker state transition such as ``closed_to_open``."""

    def record_circuit_rejection(self, url: str, protocol: str) -> None:
        """Record a check skipped because the breaker was open."""

    def record_group_health(
        self, group: str, is_healthy: bool, total_urls: int, healthy_urls: int
    ) -> None:
        """Record the aggregated health of a group."""

    def set_service_info(self, service: str) -> None:
        """Publish static service metadata."""

    def set_gauge(self, service: str, name: str, value: float) -> None:
        """Set a named service gauge."""

    def inc_counter(self, service: str, name: str, value: float = 1) -> None:
        """Increment a named service counter."""

    def observe_cycle(self, service: str, duration: float) -> None:
        """Record the duration of one service cycle."""


class NullSink:
    """Sink that discards everything."""

    def record_check(self, url: str, protocol: str, success: bool, response_time: float) -> None:
        pass

    def record_check_duration(self, url: str, protocol: str, duration: float) -> None:
        pass

    def record_retry_attempt(self, url: str, protocol: str) -> None:
        pass

    def record_circuit_state(self, url: str, protocol: str, state: int) -> None:
        pass

    def record_circuit_failure_count(self, url: str, protocol: str, count: int) -> None:
        pass

    def record_circuit_transition(self, url: str, protocol: str, transition: str) -> None:
        pass

    def record_circuit_rejection(self, url: str, protocol: str) -> None:
        pass

    def record_group_health(
        self, group: str, is_healthy: bool, total_urls: int, healthy_urls: int
    ) -> None:
        pass

    def set_service_info(self, service: str) -> None:
        pass

    def set_gauge(self, service: str, name: str, value: float) -> None:
        pass

    def inc_counter(self, service: str, name: str, value: float = 1) -> None:
        pass

    def observe_cycle(self, service: str, duration: float) -> None:
        pass


# ---------------------------------------------------------------------------
# Prometheus Sink
# ---------------------------------------------------------------------------

_CHECK_LABELS = ("url", "protocol")

# Cycle duration histogram buckets (seconds); a cycle is one scheduling tick
_CYCLE_BUCKETS = (0.01, 0.05, 0.1, 0.5, 1, 5, 10, 30, 60, 120, 300)


class PrometheusSink:
    """Metrics sink backed by a private prometheus_client registry.

    Example:
        sink = PrometheusSink()
        sink.record_check("example.com:443", "tcp", True, 0.042)
        server = MetricsServer(MetricsConfig(enabled=True), sink.registry)
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self.registry = registry if registry is not None else CollectorRegistry()
        r = self.registry

        self.total_checks = Counter(
            "urlchecker_total_checks",
            "Total number of URL health checks performed",
            _CHECK_LABELS,
            registry=r,
        )
        self.failed_checks = Counter(
            "urlchecker_failed_checks",
            "Total number of failed URL health checks",
            _CHECK_LABELS,
            registry=r,
        )
        self.response_time = Histogram(
            "urlchecker_response_time_seconds",
            "Response time in seconds for URL health checks",
            _CHECK_LABELS,
            registry=r,
        )
        self.current_status = Gauge(
            "urlchecker_current_status",
            "Current status of URL health checks (1 = up, 0 = down)",
            _CHECK_LABELS,
            registry=r,
        )
        self.check_duration = Histogram(
            "urlchecker_check_duration_seconds",
            "Total time spent on URL health checks in seconds",
            _CHECK_LABELS,
            registry=r,
        )
        self.group_health = Gauge(
            "urlchecker_group_health",
            "Health status of URL groups (1 = healthy, 0 = unhealthy)",
            ["group"],
            registry=r,
        )
        self.group_total_urls = Gauge(
            "urlchecker_group_total_urls",
            "Total number of URLs in each group",
            ["group"],
            registry=r,
        )
        self.group_healthy_urls = Gauge(
            "urlchecker_group_healthy_urls",
            "Number of healthy URLs in each group",
            ["group"],
            registry=r,
        )
        self.retry_attempts = Counter(
            "urlchecker_retry_attempts",
            "Total number of retry attempts for URL health checks",
            _CHECK_LABELS,
            registry=r,
        )
        self.circuit_state = Gauge(
            "urlchecker_circuit_breaker_state",
            "Current state of circuit breakers (0 = closed, 1 = half-open, 2 = open)",
            _CHECK_LABELS,
            registry=r,
        )
        self.circuit_transitions = Counter(
            "urlchecker_circuit_breaker_transitions",
            "Total number of circuit breaker state transitions",
            [*_CHECK_LABELS, "transition"],
            registry=r,
        )
        self.circuit_failure_count = Gauge(
            "urlchecker_circuit_breaker_failure_count",
            "Current consecutive failure count for each circuit breaker",
            _CHECK_LABELS,
            registry=r,
        )
        self.circuit_rejections = Counter(
            "urlchecker_circuit_rejections",
            "Checks skipped because the circuit breaker was open",
            _CHECK_LABELS,
            registry=r,
        )

        self.service_info = Info("service", "Service information and metadata", registry=r)
        self.service_gauge = Gauge(
            "service_gauge",
            "Service gauge values (point-in-time state)",
            ["service", "name"],
            registry=r,
        )
        self.service_counter = Counter(
            "service_counter",
            "Service counter values (cumulative totals)",
            ["service", "name"],
            registry=r,
        )
        self.cycle_duration = Histogram(
            "cycle_duration_seconds",
            "Duration of service cycle in seconds",
            ["service"],
            buckets=_CYCLE_BUCKETS,
            registry=r,
        )

    def record_check(self, url: str, protocol: str, success: bool, response_time: float) -> None:
        self.total_checks.labels(url, protocol).inc()
        if not success:
            self.failed_checks.labels(url, protocol).inc()
        self.response_time.labels(url, protocol).observe(response_time)
        self.current_status.labels(url, protocol).set(1.0 if success else 0.0)

    def record_check_duration(self, url: str, protocol: str, duration: float) -> None:
        self.check_duration.labels(url, protocol).observe(duration)

    def record_retry_attempt(self, url: str, protocol: str) -> None:
        self.retry_attempts.labels(url, protocol).inc()

    def record_circuit_state(self, url: str, protocol: str, state: int) -> None:
        self.circuit_state.labels(url, protocol).set(float(state))

    def record_circuit_failure_count(self, url: str, protocol: str, count: int) -> None:
        self.circuit_failure_count.labels(url, protocol).set(float(count))

    def record_circuit_transition(self, url: str, protocol: str, transition: str) -> None:
        self.circuit_transitions.labels(url, protocol, transition).inc()

    def record_circuit_rejection(self, url: str, protocol: str) -> None:
        self.circuit_rejections.labels(url, protocol).inc()

    def record_group_health(
        self, group: str, is_healthy: bool, total_urls: int, healthy_urls: int
    ) -> None:
        self.group_health.labels(group).set(1.0 if is_healthy else 0.0)
        self.group_total_urls.labels(group).set(float(total_urls))
        self.group_healthy_urls.labels(group).set(float(healthy_urls))

    def set_service_info(self, service: str) -> None:
        self.service_info.info({"service": service})

    def set_gauge(self, service: str, name: str, value: float) -> None:
        self.service_gauge.labels(service=service, name=name).set(value)

    def inc_counter(self, service: str, name: str, value: float = 1) -> None:
        self.service_counter.labels(service=service, name=name).inc(value)

    def observe_cycle(self, service: str, duration: float) -> None:
        self.cycle_duration.labels(service=service).observe(duration)


# ---------------------------------------------------------------------------
# HTTP Server
# ---------------------------------------------------------------------------


class MetricsServer:
    """Async HTTP server exposing a Prometheus-compatible /metrics endpoint.

    Built on aiohttp so it shares the event loop that drives the service
    lifecycle; the checks themselves run on worker threads.

    Example:
        server = MetricsServer(MetricsConfig(enabled=True, port=9090), sink.registry)
        await server.start()
        # ... service runs ...
        await server.stop()
    """

    def __init__(self, config: MetricsConfig, registry: CollectorRegistry) -> None:
        self._config = config
        self._registry = registry
        self._runner: web.AppRunner | None = None

    @property
    def is_running(self) -> bool:
        return self._runner is not None

    async def start(self) -> None:
        """Start listening for Prometheus scrape requests.

        Returns immediately (no-op) if metrics are disabled in the
        configuration.

        Raises:
            OSError: If the port is already in use or binding fails.
        """
        if not self._config.enabled:
            return

        app = web.Application()
        app.router.add_get(self._config.path, self._handle_metrics)

        runner = web.AppRunner(app, access_log=None)
        await runner.setup()

        site = web.TCPSite(runner, self._config.host, self._config.port)
        try:
            await site.start()
        except OSError:
            await runner.cleanup()
            raise
        self._runner = runner

    async def stop(self) -> None:
        """Stop the HTTP server. Idempotent."""
        if self._runner:
            await self._runner.cleanup()
            self._runner = None

    async def _handle_metrics(self, _request: web.Request) -> web.Response:
        """Serve the latest metrics of this server's registry."""
        return web.Response(
            body=generate_latest(self._registry),
            headers={"Content-Type": CONTENT_TYPE_LATEST},
        )


async def start_metrics_server(
    config: MetricsConfig,
    registry: CollectorRegistry,
) -> MetricsServer:
    """Create and start a metrics server.

    Returns:
        A MetricsServer instance (running unless ``config.enabled`` is
        False). Caller should call ``stop()`` during shutdown.
    """
    server = MetricsServer(config, registry)
    await server.start()
    return server
