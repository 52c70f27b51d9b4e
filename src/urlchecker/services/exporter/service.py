"""Exporter service for urlchecker.

Keeps every configured target under continuous observation for Prometheus
scraping. A fixed [WorkerPool][urlchecker.core.workers.WorkerPool] is
started when the service context is entered; each
[run()][urlchecker.services.exporter.Exporter.run] cycle enqueues one job
per target and returns without waiting for them. Workers run the
[TargetChecker][urlchecker.services.common.checks.TargetChecker] pipeline,
which updates the shared state and the per-target metrics as each job
finishes.

Group gauges are refreshed at the start of each cycle from the state
snapshot, i.e. from the latest result known for every member.

Note:
    The first cycle runs immediately when
    [run_forever()][urlchecker.core.base_service.BaseService.run_forever]
    starts, then every ``check_interval``. Leaving the service context
    stops the pool: in-flight checks finish, queued ones are dropped.

Examples:
    ```python
    from urlchecker.core.metrics import PrometheusSink
    from urlchecker.services import Exporter

    exporter = Exporter.from_dict({"urls": ["example.com:443"]}, sink=PrometheusSink())
    async with exporter:
        await exporter.run_forever()
    ```
"""

from __future__ import annotations

import asyncio
from types import TracebackType
from typing import TYPE_CHECKING, ClassVar, Self

from urlchecker.core.base_service import BaseService
from urlchecker.core.retry import RetryPolicy
from urlchecker.core.state import ExporterState
from urlchecker.core.workers import WorkerPool
from urlchecker.models.constants import ServiceName
from urlchecker.models.results import GroupStatus
from urlchecker.services.common.checks import TargetChecker
from urlchecker.services.common.configs import UrlCheckerConfig
from urlchecker.services.common.groups import compute_all_groups
from urlchecker.utils.transport import Dialer


if TYPE_CHECKING:
    from urlchecker.core.metrics import MetricsSink
    from urlchecker.core.retry import DialerLike
    from urlchecker.models.target import Target


class Exporter(BaseService[UrlCheckerConfig]):
    """Scheduled checks over a fixed worker pool, exported as metrics.

    Args:
        config: Service configuration; ``workers`` sizes the pool.
        sink: Metrics sink the checks report to.
        json_logs: Emit service logs as JSON.
        dialer: Connection attempt implementation (default: real sockets).
        state: Shared state registry (default: a new one).
        targets: Pre-resolved targets; resolved from ``config`` if omitted.

    Raises:
        InputSourceError: If the configured target file cannot be read.
        ConfigurationError: If a target entry is malformed.
    """

    SERVICE_NAME: ClassVar[ServiceName] = ServiceName.EXPORTER
    CONFIG_CLASS: ClassVar[type[UrlCheckerConfig]] = UrlCheckerConfig

    def __init__(
        self,
        config: UrlCheckerConfig | None = None,
        *,
        sink: MetricsSink | None = None,
        json_logs: bool = False,
        dialer: DialerLike | None = None,
        state: ExporterState | None = None,
        targets: list[Target] | None = None,
    ) -> None:
        super().__init__(config=config, sink=sink, json_logs=json_logs)
        self._targets = targets if targets is not None else self._config.resolve_targets()
        self._state = state if state is not None else ExporterState()
        retry = RetryPolicy(dialer if dialer is not None else Dialer(), self._sink)
        self._checker = TargetChecker(self._state, retry, self._sink)
        self._pool: WorkerPool[Target] = WorkerPool(
            self._config.workers, self._checker.check, name="exporter-worker"
        )

    @property
    def targets(self) -> list[Target]:
        return list(self._targets)

    @property
    def state(self) -> ExporterState:
        return self._state

    @property
    def pool(self) -> WorkerPool[Target]:
        return self._pool

    # -------------------------------------------------------------------------
    # BaseService Implementation
    # -------------------------------------------------------------------------

    async def run(self) -> int:
        """Enqueue one check per target.

        Returns:
            Number of jobs enqueued; fewer than the number of targets only
            if the pool was stopped meanwhile.

        Raises:
            RuntimeError: If called outside the service context (pool not
                running).
        """
        if not self._pool.is_running:
            raise RuntimeError("exporter pool is not running; use 'async with exporter:'")

        self.update_group_metrics()

        enqueued = await asyncio.to_thread(self._enqueue_all)

        self.inc_counter("jobs_enqueued", enqueued)
        self.set_gauge("targets", len(self._targets))
        self._logger.info("cycle_enqueued", jobs=enqueued, targets=len(self._targets))
        return enqueued

    def update_group_metrics(self) -> list[GroupStatus]:
        """Record group gauges from the latest known result of every target."""
        snapshot = self._state.get_all_states()
        healthy = {key: s.is_up for key, s in snapshot.items()}
        groups = compute_all_groups(self._targets, healthy)

        for status in groups:
            self._sink.record_group_health(
                status.group_name, status.is_healthy, status.total_urls, status.healthy_urls
            )
        return groups

    def _enqueue_all(self) -> int:
        enqueued = 0
        for target in self._targets:
            if not self._pool.add_job(target):
                break
            enqueued += 1
        return enqueued

    # -------------------------------------------------------------------------
    # Context Manager
    # -------------------------------------------------------------------------

    async def __aenter__(self) -> Self:
        """Start the worker pool, then mark the service as running."""
        self._pool.start()
        self._logger.info(
            "exporter_started",
            workers=self._config.workers,
            targets=len(self._targets),
            interval=self._config.check_interval,
        )
        return await super().__aenter__()

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Signal shutdown, then stop the pool off the event loop."""
        await super().__aexit__(exc_type, exc_val, exc_tb)
        await asyncio.to_thread(self._pool.stop)
