"""Command-line entry point: ``python -m airhost_rt``."""

import argparse
import asyncio
import random
import signal
import sys
from typing import Optional

import structlog

from .config.loader import ConfigLoader
from .errors import ConfigurationError
from .logging import configure_logging
from .service import RealtimeService
from .sources.demo import DemoDashboardSource, DemoPricingDataSource

logger = structlog.get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="airhost_rt",
        description="Realtime dashboard broadcast and dynamic pricing server",
    )
    parser.add_argument("--config-dir", help="Directory containing settings.yaml")
    parser.add_argument("--host", help="Interface to listen on")
    parser.add_argument("--port", type=int, help="Port to listen on")
    parser.add_argument("--log-level", help="DEBUG, INFO, WARNING or ERROR")
    parser.add_argument("--json-logs", action="store_true", help="Emit logs as JSON")
    parser.add_argument("--demo", action="store_true",
                        help="Serve generated demo data instead of external sources")
    parser.add_argument("--seed", type=int, help="Seed for demo data and synthetic metrics")
    return parser


def cli_overrides(args: argparse.Namespace) -> dict:
    overrides: dict = {}
    if args.host:
        overrides.setdefault("server", {})["host"] = args.host
    if args.port is not None:
        overrides.setdefault("server", {})["port"] = args.port
    if args.log_level:
        overrides.setdefault("logging", {})["level"] = args.log_level.upper()
    if args.json_logs:
        overrides.setdefault("logging", {})["format_json"] = True
    return overrides


async def serve(service: RealtimeService) -> None:
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            # add_signal_handler is unavailable on Windows event loops
            pass

    await service.start()
    try:
        await stop.wait()
    finally:
        await service.stop()


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = ConfigLoader.create(args.config_dir).load(cli_overrides(args))
    except ConfigurationError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        for err in e.errors:
            print(f"  {err.field}: {err.message} (got: {err.value})", file=sys.stderr)
        return 2

    configure_logging(level=config.logging.level, format_json=config.logging.format_json)

    if not args.demo:
        logger.error("No external data sources are bundled; run with --demo")
        return 2

    service = RealtimeService(
        DemoDashboardSource(seed=args.seed),
        DemoPricingDataSource(seed=args.seed),
        config=config,
        rng=random.Random(args.seed),
        host_server=True,
    )

    try:
        asyncio.run(serve(service))
    except KeyboardInterrupt:
        pass
    return 0


if __name__ == "__main__":
    sys.exit(main())
