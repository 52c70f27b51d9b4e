"""
Unit tests for the urlchecker.__main__ CLI module.

Tests:
- build_parser() flags and defaults
- cli_overrides() / build_config() layering
- setup_logging() handler installation
- main() modes: version, help, write-config, one-shot, errors
- run_service() metrics server and service lifecycle
"""

import json
import logging
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from urlchecker.__main__ import (
    build_config,
    build_parser,
    cli_overrides,
    main,
    run_service,
    setup_logging,
    version_info,
)
from urlchecker.core.logger import Logger, StructuredFormatter
from urlchecker.core.metrics import MetricsConfig, PrometheusSink
from urlchecker.services.checker import Checker
from urlchecker.services.common.configs import UrlCheckerConfig, load_config
from urlchecker.services.exporter import Exporter


@pytest.fixture(autouse=True)
def no_logging_setup():
    """Keep main() from adding handlers to the root logger."""
    with patch("urlchecker.__main__.setup_logging") as mock_setup:
        yield mock_setup


@pytest.fixture
def mock_metrics_server() -> MagicMock:
    server = MagicMock()
    server.stop = AsyncMock()
    return server


# ============================================================================
# Parser Tests
# ============================================================================


class TestBuildParser:
    """Tests for build_parser()."""

    def test_defaults_are_none(self) -> None:
        """Setting flags default to None so they never mask the config file."""
        args = build_parser().parse_args([])

        assert args.urls is None
        assert args.port is None
        assert args.json_output is None
        assert args.metrics is None
        assert args.exporter is None
        assert args.log_level == "WARNING"
        assert args.log_json is False

    def test_repeatable_url(self) -> None:
        args = build_parser().parse_args(["--url", "a.test", "--url", "b.test:443"])
        assert args.urls == ["a.test", "b.test:443"]

    def test_dest_names(self) -> None:
        args = build_parser().parse_args(
            [
                "--group",
                "web",
                "--warn-threshold",
                "200ms",
                "--crit-threshold",
                "2s",
                "--circuit-threshold",
                "3",
                "--circuit-timeout",
                "10s",
                "--json",
            ]
        )

        assert args.group_name == "web"
        assert args.warning_threshold == "200ms"
        assert args.critical_threshold == "2s"
        assert args.circuit_breaker_threshold == 3
        assert args.circuit_breaker_timeout == "10s"
        assert args.json_output is True

    def test_invalid_protocol(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--protocol", "icmp"])

    def test_invalid_log_level(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--log-level", "debug"])


# ============================================================================
# Configuration Layering Tests
# ============================================================================


class TestCliOverrides:
    """Tests for cli_overrides()."""

    def test_absent_flags_are_none(self) -> None:
        overrides = cli_overrides(build_parser().parse_args([]))

        assert all(value is None for value in overrides.values())

    def test_metrics_flags(self) -> None:
        overrides = cli_overrides(build_parser().parse_args(["--metrics", "--metrics-port", "9100"]))
        assert overrides["metrics"] == {"enabled": True, "port": 9100}

    def test_metrics_port_only(self) -> None:
        overrides = cli_overrides(build_parser().parse_args(["--metrics-port", "9100"]))
        assert overrides["metrics"] == {"port": 9100}


class TestBuildConfig:
    """Tests for build_config()."""

    def test_defaults(self) -> None:
        assert build_config(build_parser().parse_args([])) == UrlCheckerConfig()

    def test_flags_override_file(self, tmp_path) -> None:
        path = tmp_path / "urlchecker.yaml"
        path.write_text(
            "urls: [from-file.test]\ntimeout: 5s\nworkers: 8\nmetrics:\n  port: 9200\n",
            encoding="utf-8",
        )
        args = build_parser().parse_args(
            ["--config", str(path), "--url", "flag.test", "--timeout", "2s", "--metrics"]
        )

        config = build_config(args)

        assert config.urls == ["flag.test"]
        assert config.timeout == 2.0
        assert config.workers == 8
        assert config.metrics.enabled is True
        assert config.metrics.port == 9200


# ============================================================================
# Logging Tests
# ============================================================================


class TestSetupLogging:
    """Tests for setup_logging()."""

    @pytest.fixture
    def root_handlers(self):
        saved_handlers = list(logging.root.handlers)
        saved_level = logging.root.level
        yield
        logging.root.handlers[:] = saved_handlers
        logging.root.setLevel(saved_level)

    @pytest.mark.parametrize("level", ["DEBUG", "INFO", "WARNING", "ERROR"])
    def test_level(self, root_handlers, level: str) -> None:
        setup_logging(level)
        assert logging.root.level == getattr(logging, level)

    def test_structured_formatter(self, root_handlers) -> None:
        setup_logging("INFO")
        assert isinstance(logging.root.handlers[-1].formatter, StructuredFormatter)

    def test_json_passthrough(self, root_handlers) -> None:
        setup_logging("INFO", json_output=True)
        assert not isinstance(logging.root.handlers[-1].formatter, StructuredFormatter)


# ============================================================================
# main() Tests
# ============================================================================


class TestMain:
    """Tests for main()."""

    def test_version_info(self) -> None:
        lines = version_info().splitlines()
        assert lines[0].startswith("urlchecker ")
        assert lines[1].startswith("python ")
        assert lines[2].startswith("platform ")

    @pytest.mark.asyncio
    async def test_version(self, capsys) -> None:
        assert await main(["--version"]) == 0
        assert capsys.readouterr().out.startswith("urlchecker ")

    @pytest.mark.asyncio
    async def test_no_targets_prints_help(self, capsys) -> None:
        assert await main([]) == 0
        assert "usage: urlchecker" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_one_shot(self, capsys, tcp_listener, closed_port) -> None:
        host, port = tcp_listener
        code = await main(
            [
                "--url",
                f"{host}:{port}",
                "--url",
                f"127.0.0.1:{closed_port}",
                "--retry-count",
                "0",
            ]
        )

        out = capsys.readouterr().out
        assert code == 0
        assert f"[+] [tcp]  {host}:{port}" in out
        assert f"😿 [-] [tcp]  127.0.0.1:{closed_port}" in out

    @pytest.mark.asyncio
    async def test_one_shot_json(self, capsys, tcp_listener) -> None:
        host, port = tcp_listener

        code = await main(["--url", f"{host}:{port}", "--group", "local", "--json"])

        out = capsys.readouterr().out.splitlines()
        assert code == 0
        first = json.loads(out[0])
        assert first["state"] == "Success"
        assert first["group"] == "local"
        assert "=== Nested Group Structure ===" in out

    @pytest.mark.asyncio
    async def test_write_config(self, tmp_path) -> None:
        path = tmp_path / "out.yaml"

        code = await main(["--url", "a.test", "--timeout", "2s", "--write-config", str(path)])

        assert code == 0
        config = load_config(path)
        assert config.urls == ["a.test"]
        assert config.timeout == 2.0

    @pytest.mark.asyncio
    async def test_invalid_flag_value(self) -> None:
        assert await main(["--url", "a.test", "--workers", "0"]) == 1

    @pytest.mark.asyncio
    async def test_invalid_duration(self) -> None:
        assert await main(["--url", "a.test", "--timeout", "soon"]) == 1

    @pytest.mark.asyncio
    async def test_missing_config_file(self, tmp_path) -> None:
        assert await main(["--config", str(tmp_path / "missing.yaml")]) == 1

    @pytest.mark.asyncio
    async def test_missing_target_file(self, tmp_path) -> None:
        assert await main(["--file", str(tmp_path / "missing.txt")]) == 1

    @pytest.mark.asyncio
    async def test_invalid_target(self) -> None:
        assert await main(["--url", "example.com:"]) == 1

    @pytest.mark.asyncio
    async def test_exporter_mode(self) -> None:
        with patch("urlchecker.__main__.run_service", AsyncMock(return_value=0)) as mock_run:
            code = await main(["--url", "a.test", "--exporter", "--metrics-port", "9100"])

        assert code == 0
        service, metrics_config, sink, _logger = mock_run.call_args.args
        assert isinstance(service, Exporter)
        assert metrics_config.enabled is True
        assert metrics_config.port == 9100
        assert isinstance(sink, PrometheusSink)

    @pytest.mark.asyncio
    async def test_metrics_mode(self) -> None:
        with patch("urlchecker.__main__.run_service", AsyncMock(return_value=0)) as mock_run:
            code = await main(["--url", "a.test", "--metrics"])

        assert code == 0
        service, metrics_config, _sink, _logger = mock_run.call_args.args
        assert isinstance(service, Checker)
        assert metrics_config.enabled is True

    @pytest.mark.asyncio
    async def test_one_shot_failure(self) -> None:
        with patch.object(Checker, "run", AsyncMock(side_effect=RuntimeError("boom"))):
            assert await main(["--url", "a.test"]) == 1


# ============================================================================
# run_service() Tests
# ============================================================================


class TestRunService:
    """Tests for run_service()."""

    @pytest.mark.asyncio
    async def test_success(self, mock_metrics_server, fake_dialer) -> None:
        sink = PrometheusSink()
        checker = Checker(UrlCheckerConfig(urls=["a.test"]), sink=sink, dialer=fake_dialer)

        with (
            patch(
                "urlchecker.__main__.start_metrics_server",
                AsyncMock(return_value=mock_metrics_server),
            ) as mock_start,
            patch.object(Checker, "run_forever", AsyncMock()) as mock_forever,
        ):
            code = await run_service(checker, MetricsConfig(enabled=True), sink, Logger("cli"))

        assert code == 0
        mock_start.assert_awaited_once()
        assert mock_start.call_args.args[1] is sink.registry
        mock_forever.assert_awaited_once()
        mock_metrics_server.stop.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_service_failure(self, mock_metrics_server, fake_dialer) -> None:
        sink = PrometheusSink()
        checker = Checker(UrlCheckerConfig(urls=["a.test"]), sink=sink, dialer=fake_dialer)

        with (
            patch(
                "urlchecker.__main__.start_metrics_server",
                AsyncMock(return_value=mock_metrics_server),
            ),
            patch.object(Checker, "run_forever", AsyncMock(side_effect=RuntimeError("boom"))),
        ):
            code = await run_service(checker, MetricsConfig(enabled=True), sink, Logger("cli"))

        assert code == 1
        mock_metrics_server.stop.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_metrics_port_unavailable(self, fake_dialer) -> None:
        sink = PrometheusSink()
        checker = Checker(UrlCheckerConfig(urls=["a.test"]), sink=sink, dialer=fake_dialer)

        with (
            patch(
                "urlchecker.__main__.start_metrics_server",
                AsyncMock(side_effect=OSError("address in use")),
            ),
            patch.object(Checker, "run_forever", AsyncMock()) as mock_forever,
        ):
            code = await run_service(checker, MetricsConfig(enabled=True), sink, Logger("cli"))

        assert code == 1
        mock_forever.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_exporter_pool_stopped(self, mock_metrics_server, fake_dialer) -> None:
        sink = PrometheusSink()
        exporter = Exporter(UrlCheckerConfig(urls=["a.test"]), sink=sink, dialer=fake_dialer)

        with (
            patch(
                "urlchecker.__main__.start_metrics_server",
                AsyncMock(return_value=mock_metrics_server),
            ),
            patch.object(Exporter, "run_forever", AsyncMock()),
        ):
            code = await run_service(exporter, MetricsConfig(enabled=True), sink, Logger("cli"))

        assert code == 0
        assert exporter.pool.is_running is False
