"""
Unit tests for services.exporter module.

Tests:
- Pool lifecycle bound to the service context
- run() enqueues one job per target and checks complete on workers
- Group gauges refreshed from the state snapshot
- run_forever() cycles until shutdown
"""

import asyncio

import pytest

from urlchecker.services.common.configs import GroupConfig, UrlCheckerConfig
from urlchecker.services.exporter import Exporter


def _config(**kwargs) -> UrlCheckerConfig:
    kwargs.setdefault("retry_count", 0)
    kwargs.setdefault("retry_delay", 0)
    kwargs.setdefault("workers", 2)
    return UrlCheckerConfig(**kwargs)


class TestExporterLifecycle:
    """Pool start/stop with the service context."""

    @pytest.mark.asyncio
    async def test_pool_follows_context(self, fake_dialer):
        exporter = Exporter(_config(urls=["a.test"]), dialer=fake_dialer)
        assert exporter.pool.is_running is False

        async with exporter:
            assert exporter.pool.is_running is True
            assert exporter.pool.workers == 2

        assert exporter.pool.is_running is False

    @pytest.mark.asyncio
    async def test_run_outside_context(self, fake_dialer):
        exporter = Exporter(_config(urls=["a.test"]), dialer=fake_dialer)

        with pytest.raises(RuntimeError, match="not running"):
            await exporter.run()

    def test_service_name(self):
        assert Exporter.SERVICE_NAME == "exporter"


class TestExporterRun:
    """Exporter.run() cycles."""

    @pytest.mark.asyncio
    async def test_enqueues_every_target(self, fake_dialer, sink):
        urls = ["a.test", "b.test", "c.test", "d.test", "e.test"]
        exporter = Exporter(_config(urls=urls), dialer=fake_dialer, sink=sink)

        async with exporter:
            enqueued = await exporter.run()
            await asyncio.to_thread(exporter.pool.wait_idle)

        assert enqueued == 5
        assert len(exporter.state) == 5
        assert (
            sink.registry.get_sample_value(
                "service_counter_total", {"service": "exporter", "name": "jobs_enqueued"}
            )
            == 5.0
        )
        assert (
            sink.registry.get_sample_value(
                "urlchecker_total_checks_total", {"url": "c.test:80", "protocol": "tcp"}
            )
            == 1.0
        )

    @pytest.mark.asyncio
    async def test_state_accumulates_over_cycles(self, fake_dialer):
        exporter = Exporter(_config(urls=["a.test"]), dialer=fake_dialer)

        async with exporter:
            for _ in range(3):
                await exporter.run()
                await asyncio.to_thread(exporter.pool.wait_idle)

        state = exporter.state.get_state(exporter.targets[0].key)
        assert state is not None
        assert state.check_count == 3

    @pytest.mark.asyncio
    async def test_group_metrics_from_snapshot(self, fake_dialer, sink):
        """Group gauges reflect the results known at the start of a cycle."""
        fake_dialer.set("b.test", False)
        config = _config(groups={"web": GroupConfig(urls=["a.test", "b.test"])})
        exporter = Exporter(config, dialer=fake_dialer, sink=sink)

        async with exporter:
            await exporter.run()
            await asyncio.to_thread(exporter.pool.wait_idle)
            statuses = exporter.update_group_metrics()

        assert statuses[0].healthy_urls == 1
        assert statuses[0].is_healthy is False
        r = sink.registry
        assert r.get_sample_value("urlchecker_group_total_urls", {"group": "web"}) == 2.0
        assert r.get_sample_value("urlchecker_group_healthy_urls", {"group": "web"}) == 1.0

    @pytest.mark.asyncio
    async def test_unchecked_members_are_unhealthy(self, fake_dialer, sink):
        exporter = Exporter(
            _config(groups={"web": GroupConfig(urls=["a.test"])}), dialer=fake_dialer, sink=sink
        )

        statuses = exporter.update_group_metrics()

        assert statuses[0].healthy_urls == 0
        assert sink.registry.get_sample_value("urlchecker_group_health", {"group": "web"}) == 0.0


class TestExporterRunForever:
    """run_forever() scheduling."""

    @pytest.mark.asyncio
    async def test_cycles_until_shutdown(self, fake_dialer, sink):
        exporter = Exporter(
            _config(urls=["a.test"], check_interval="10ms"), dialer=fake_dialer, sink=sink
        )

        async with exporter:
            task = asyncio.create_task(exporter.run_forever())
            await asyncio.sleep(0.1)
            exporter.request_shutdown()
            await asyncio.wait_for(task, timeout=5)

        cycles = sink.registry.get_sample_value(
            "service_counter_total", {"service": "exporter", "name": "cycles_success"}
        )
        assert cycles is not None
        assert cycles >= 2
