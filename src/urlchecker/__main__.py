"""CLI entry point for urlchecker.

Three modes share one configuration:

* one-shot (default): check every target once, print the results and the
  group summary, exit;
* continuous monitoring (``--metrics``): repeat the one-shot pass every
  ``--check-interval`` with the Prometheus endpoint up;
* exporter (``--exporter``): a fixed worker pool checks the targets every
  interval; results are only exported as metrics.

Settings are layered: defaults, then ``--config`` (YAML or JSON), then the
flags actually given on the command line.

Examples:
    ```bash
    urlchecker --url example.com --port 443
    urlchecker --file urls.txt --json
    urlchecker --config urlchecker.yaml --exporter --metrics-port 9100
    python -m urlchecker --url db.internal:5432 --retry-count 0
    ```
"""

import argparse
import asyncio
import logging
import platform
import signal
import sys
from typing import Any

from pydantic import ValidationError

from urlchecker.core.base_service import BaseService
from urlchecker.core.exceptions import ConfigurationError, InputSourceError
from urlchecker.core.logger import Logger, StructuredFormatter
from urlchecker.core.metrics import (
    MetricsConfig,
    MetricsSink,
    NullSink,
    PrometheusSink,
    start_metrics_server,
)
from urlchecker.models.constants import Protocol
from urlchecker.models.target import Target
from urlchecker.services.checker import Checker
from urlchecker.services.common.configs import UrlCheckerConfig, load_config, save_config
from urlchecker.services.exporter import Exporter


def version_info() -> str:
    """Version banner printed by ``--version``."""
    from urlchecker import __version__  # noqa: PLC0415

    return (
        f"urlchecker {__version__}\n"
        f"python {platform.python_version()} ({platform.python_implementation()})\n"
        f"platform {platform.system().lower()}/{platform.machine()}"
    )


def build_parser() -> argparse.ArgumentParser:
    """Argument parser; every setting flag defaults to None (not given)."""
    parser = argparse.ArgumentParser(
        prog="urlchecker",
        description="Check TCP/UDP reachability of hosts, optionally as a Prometheus exporter.",
    )

    targets = parser.add_argument_group("targets")
    targets.add_argument(
        "--url",
        action="append",
        dest="urls",
        metavar="HOST[:PORT]",
        help="Target to check, ex: example.com (repeatable)",
    )
    targets.add_argument("--file", help="Read targets from a file, ex: urls.txt")
    targets.add_argument("--port", help="Default port, ex: 443 (default: 80)")
    targets.add_argument(
        "--protocol",
        choices=[p.value for p in Protocol],
        help="Transport protocol (default: tcp)",
    )
    targets.add_argument("--group", dest="group_name", help="Group name for the targets")

    checks = parser.add_argument_group("checks")
    checks.add_argument("--timeout", help="Dial timeout, ex: 3s (default: 5s)")
    checks.add_argument(
        "--warn-threshold", dest="warning_threshold", help="Warning response time (default: 500ms)"
    )
    checks.add_argument(
        "--crit-threshold", dest="critical_threshold", help="Critical response time (default: 1s)"
    )
    checks.add_argument("--retry-count", type=int, help="Retries after a failure (default: 3)")
    checks.add_argument("--retry-delay", help="Initial backoff delay (default: 1s)")
    checks.add_argument(
        "--circuit-threshold",
        dest="circuit_breaker_threshold",
        type=int,
        help="Consecutive failures that open the circuit breaker (default: 5)",
    )
    checks.add_argument(
        "--circuit-timeout",
        dest="circuit_breaker_timeout",
        help="Cooldown before an open circuit breaker is probed (default: 60s)",
    )

    modes = parser.add_argument_group("modes")
    modes.add_argument(
        "--json", dest="json_output", action="store_true", default=None, help="JSON output"
    )
    modes.add_argument(
        "--metrics",
        action="store_true",
        default=None,
        help="Check continuously and serve Prometheus metrics",
    )
    modes.add_argument(
        "--exporter",
        action="store_true",
        default=None,
        help="Run as a Prometheus exporter with a worker pool (includes metrics)",
    )
    modes.add_argument("--metrics-port", type=int, help="Metrics endpoint port (default: 9090)")
    modes.add_argument("--check-interval", help="Interval between passes (default: 30s)")
    modes.add_argument("--workers", type=int, help="Worker threads (default: 5)")

    general = parser.add_argument_group("general")
    general.add_argument("--config", help="Configuration file (YAML or JSON)")
    general.add_argument(
        "--write-config",
        metavar="PATH",
        help="Write the effective configuration to PATH (.yaml, .yml or .json) and exit",
    )
    general.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
        help="Log level (default: WARNING)",
    )
    general.add_argument("--log-json", action="store_true", help="Emit logs as JSON")
    general.add_argument("--version", action="store_true", help="Print version and exit")

    return parser


def setup_logging(level: str, *, json_output: bool = False) -> None:
    """Configure the root logger to write to stderr.

    Installs a ``StructuredFormatter`` on the root handler so that all log
    output -- from both ``Logger`` (with ``structured_kv`` extra) and plain
    ``logging.getLogger()`` calls in utils -- is unified as
    ``level name message key=value ...``. In JSON mode ``Logger`` renders
    the whole record itself, so the handler passes messages through.
    """
    handler = logging.StreamHandler()
    if json_output:
        handler.setFormatter(logging.Formatter("%(message)s"))
    else:
        handler.setFormatter(StructuredFormatter())
    logging.root.addHandler(handler)
    logging.root.setLevel(getattr(logging, level))


def cli_overrides(args: argparse.Namespace) -> dict[str, Any]:
    """Settings given on the command line, ``None`` where a flag was absent."""
    overrides: dict[str, Any] = {
        key: getattr(args, key)
        for key in (
            "urls",
            "file",
            "port",
            "protocol",
            "group_name",
            "timeout",
            "warning_threshold",
            "critical_threshold",
            "retry_count",
            "retry_delay",
            "circuit_breaker_threshold",
            "circuit_breaker_timeout",
            "json_output",
            "exporter",
            "check_interval",
            "workers",
        )
    }

    metrics: dict[str, Any] = {}
    if args.metrics:
        metrics["enabled"] = True
    if args.metrics_port is not None:
        metrics["port"] = args.metrics_port
    overrides["metrics"] = metrics or None
    return overrides


def build_config(args: argparse.Namespace) -> UrlCheckerConfig:
    """Defaults, then the config file, then the command-line flags.

    Raises:
        ConfigurationError: If the config file is unreadable or invalid.
        pydantic.ValidationError: If a flag value is invalid.
    """
    base = load_config(args.config) if args.config else UrlCheckerConfig()
    return base.merge(cli_overrides(args))


async def run_once(checker: Checker, logger: Logger) -> int:
    """Run a single checker pass."""
    try:
        async with checker:
            await checker.run()
        return 0
    except Exception as e:  # Intentionally broad: CLI error boundary for one-shot mode
        logger.error("checker_failed", error=str(e))
        return 1


async def run_service(
    service: BaseService[UrlCheckerConfig],
    metrics_config: MetricsConfig,
    sink: PrometheusSink,
    logger: Logger,
) -> int:
    """Run a service until a shutdown signal, with the metrics endpoint up.

    Returns:
        Exit code: 0 for a clean shutdown, 1 for failure.
    """
    try:
        metrics_server = await start_metrics_server(metrics_config, sink.registry)
    except OSError as e:
        logger.error("metrics_server_failed", port=metrics_config.port, error=str(e))
        return 1

    logger.info(
        "metrics_server_started",
        host=metrics_config.host,
        port=metrics_config.port,
        path=metrics_config.path,
    )

    def handle_signal(sig: signal.Signals) -> None:
        logger.info("shutdown_signal", signal=sig.name)
        service.request_shutdown()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, handle_signal, sig)

    try:
        async with service:
            await service.run_forever()
        return 0
    except Exception as e:  # Intentionally broad: CLI error boundary for continuous mode
        logger.error(f"{service.SERVICE_NAME}_failed", error=str(e))
        return 1
    finally:
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.remove_signal_handler(sig)
        await metrics_server.stop()
        logger.info("metrics_server_stopped")


async def main(argv: list[str] | None = None) -> int:
    """Main entry point: parse args, build the configuration, run a mode."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(version_info())
        return 0

    setup_logging(args.log_level, json_output=args.log_json)
    logger = Logger("cli", json_output=args.log_json)

    try:
        config = build_config(args)
        if args.write_config:
            save_config(config, args.write_config)
            logger.info("config_written", path=args.write_config)
            return 0
        targets: list[Target] = config.resolve_targets()
    except (ValidationError, ConfigurationError) as e:
        logger.error("invalid_configuration", error=str(e))
        return 1
    except InputSourceError as e:
        logger.error("input_source_failed", error=str(e))
        return 1

    if not targets:
        parser.print_help()
        return 0

    logger.info("targets_resolved", count=len(targets), file=config.file, group=config.group_name)

    if config.exporter:
        sink = PrometheusSink()
        exporter = Exporter(config, sink=sink, json_logs=args.log_json, targets=targets)
        metrics_config = config.metrics.model_copy(update={"enabled": True})
        return await run_service(exporter, metrics_config, sink, logger)

    if config.metrics.enabled:
        sink = PrometheusSink()
        checker = Checker(config, sink=sink, json_logs=args.log_json, targets=targets)
        return await run_service(checker, config.metrics, sink, logger)

    null_sink: MetricsSink = NullSink()
    checker = Checker(config, sink=null_sink, json_logs=args.log_json, targets=targets)
    try:
        return await run_once(checker, logger)
    except KeyboardInterrupt:
        logger.info("interrupted")
        return 130


def cli() -> None:
    """Synchronous entry point for console_scripts."""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli()
