"""Checker service for urlchecker.

Runs one ad-hoc pass over every configured target per
[run()][urlchecker.services.checker.Checker.run] call: the targets are
fanned out over a [WorkerPool][urlchecker.core.workers.WorkerPool], each
result is printed as soon as it is known, and once the pool is idle the
group summary (and, in JSON mode, the nested group document) follows.

Called once for the default one-shot mode, or through
[run_forever()][urlchecker.core.base_service.BaseService.run_forever] for
continuous monitoring with the metrics endpoint up. Breakers and target
state live in one [ExporterState][urlchecker.core.state.ExporterState] for
the lifetime of the service, so repeated passes share them.

See Also:
    [Exporter][urlchecker.services.exporter.Exporter]: Scheduled checks
        without output, for Prometheus scraping.
    [TargetChecker][urlchecker.services.common.checks.TargetChecker]: The
        per-target pipeline run on the worker threads.

Examples:
    ```python
    from urlchecker.services import Checker

    checker = Checker.from_dict({"urls": ["example.com:443"], "json_output": True})
    async with checker:
        report = await checker.run()
    ```
"""

from __future__ import annotations

import asyncio
import sys
import threading
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, ClassVar, TextIO

from urlchecker.core.base_service import BaseService
from urlchecker.core.retry import RetryPolicy
from urlchecker.core.state import ExporterState
from urlchecker.core.workers import WorkerPool
from urlchecker.models.constants import ServiceName
from urlchecker.models.results import CheckResult, GroupStatus
from urlchecker.services.common.checks import TargetChecker
from urlchecker.services.common.configs import UrlCheckerConfig
from urlchecker.services.common.groups import compute_all_groups
from urlchecker.services.common.report import (
    build_nested_report,
    format_group_summary,
    format_json_line,
    format_nested_report,
    format_text_line,
)
from urlchecker.utils.transport import Dialer


if TYPE_CHECKING:
    from urlchecker.core.metrics import MetricsSink
    from urlchecker.core.retry import DialerLike
    from urlchecker.models.target import Target


@dataclass(frozen=True, slots=True)
class RunReport:
    """Outcome of one ad-hoc pass.

    Attributes:
        results: One result per target, in configuration order.
        groups: Status of every named group, in order of first appearance.
    """

    results: tuple[CheckResult, ...]
    groups: tuple[GroupStatus, ...]

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def healthy(self) -> int:
        return sum(1 for r in self.results if r.is_healthy)


class Checker(BaseService[UrlCheckerConfig]):
    """Ad-hoc checks with printed results.

    Args:
        config: Service configuration.
        sink: Metrics sink; omitted means no metrics.
        json_logs: Emit service logs as JSON.
        dialer: Connection attempt implementation (default: real sockets).
        state: Shared state registry (default: a new one).
        output: Stream for results (default: ``sys.stdout`` at write time).
        targets: Pre-resolved targets; resolved from ``config`` if omitted.

    Raises:
        InputSourceError: If the configured target file cannot be read.
        ConfigurationError: If a target entry is malformed.
    """

    SERVICE_NAME: ClassVar[ServiceName] = ServiceName.CHECKER
    CONFIG_CLASS: ClassVar[type[UrlCheckerConfig]] = UrlCheckerConfig

    def __init__(
        self,
        config: UrlCheckerConfig | None = None,
        *,
        sink: MetricsSink | None = None,
        json_logs: bool = False,
        dialer: DialerLike | None = None,
        state: ExporterState | None = None,
        output: TextIO | None = None,
        targets: list[Target] | None = None,
    ) -> None:
        super().__init__(config=config, sink=sink, json_logs=json_logs)
        self._targets = targets if targets is not None else self._config.resolve_targets()
        self._state = state if state is not None else ExporterState()
        retry = RetryPolicy(dialer if dialer is not None else Dialer(), self._sink)
        self._checker = TargetChecker(self._state, retry, self._sink)
        self._output = output
        self._write_lock = threading.Lock()
        self._pool: WorkerPool[tuple[int, Target]] | None = None

    @property
    def targets(self) -> list[Target]:
        return list(self._targets)

    @property
    def state(self) -> ExporterState:
        return self._state

    def request_shutdown(self) -> None:
        """Request shutdown and stop starting queued checks of the running pass.

        Checks already dialing finish; the pass returns with their results
        only.
        """
        super().request_shutdown()
        pool = self._pool
        if pool is not None:
            pool.signal_stop()

    # -------------------------------------------------------------------------
    # BaseService Implementation
    # -------------------------------------------------------------------------

    async def run(self) -> RunReport:
        """Check every target once, print the results, and return them."""
        if not self._targets:
            self._logger.warning("no_targets")
            return RunReport(results=(), groups=())

        self._logger.info("cycle_started", targets=len(self._targets))
        start_time = time.monotonic()

        pairs = await asyncio.to_thread(self._check_all)
        report = self._summarize(pairs)

        self.set_gauge("targets", report.total)
        self.set_gauge("healthy_targets", report.healthy)
        self._logger.info(
            "checks_completed",
            targets=report.total,
            healthy=report.healthy,
            duration_s=round(time.monotonic() - start_time, 3),
        )
        return report

    # -------------------------------------------------------------------------
    # Pass
    # -------------------------------------------------------------------------

    def _check_all(self) -> list[tuple[Target, CheckResult]]:
        """Fan the targets out over a pool and wait until all are checked.

        A shutdown request ends the wait early; targets whose check never
        started are left out.

        Returns:
            ``(target, result)`` pairs in configuration order.
        """
        results: dict[int, CheckResult] = {}
        render = format_json_line if self._config.json_output else format_text_line

        def handle(job: tuple[int, Target]) -> None:
            index, target = job
            result = self._checker.check(target)
            results[index] = result
            self._emit(render(result))

        workers = min(self._config.workers, len(self._targets))
        pool = WorkerPool(workers, handle, name="checker-worker")
        self._pool = pool
        try:
            with pool:
                if not self.is_running:
                    pool.signal_stop()
                for job in enumerate(self._targets):
                    if not pool.add_job(job):
                        break
                pool.wait_idle()
        finally:
            self._pool = None

        return [(self._targets[i], results[i]) for i in sorted(results)]

    def _summarize(self, pairs: list[tuple[Target, CheckResult]]) -> RunReport:
        """Print the group summary and nested document; record group metrics."""
        by_key = {t.key: r for t, r in pairs}
        healthy = {key: r.is_healthy for key, r in by_key.items()}
        groups = compute_all_groups(self._targets, healthy)

        for status in groups:
            self._sink.record_group_health(
                status.group_name, status.is_healthy, status.total_urls, status.healthy_urls
            )

        for line in format_group_summary(groups):
            self._emit(line)
        if self._config.json_output:
            for line in format_nested_report(build_nested_report(self._targets, by_key)):
                self._emit(line)

        return RunReport(results=tuple(r for _, r in pairs), groups=tuple(groups))

    def _emit(self, line: str) -> None:
        stream = self._output if self._output is not None else sys.stdout
        with self._write_lock:
            stream.write(line + "\n")
            stream.flush()
