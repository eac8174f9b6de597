"""Command line entry point."""

import argparse
import asyncio
from pathlib import Path
from typing import Optional, Sequence

from .config import settings
from .errors import WrapperError
from .events.dispatcher import event_dispatcher
from .log_monitor import LineClassifier, LogLocator, LogMonitor
from .logger import logger
from .server import ServerProcess, Supervisor


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stk-wrapper",
        description="Run a SuperTuxKart server and follow its log for lifecycle events",
    )
    parser.add_argument(
        "-i",
        "--input",
        default=settings.command,
        help="the command and arguments to execute the server binary",
    )
    parser.add_argument(
        "--home",
        type=Path,
        default=None,
        help="directory the server log path is relative to (default: home directory)",
    )
    return parser


async def run_wrapper(command: str, home: Optional[Path] = None) -> int:
    """Start the server and supervise it until it exits."""
    locator = LogLocator.from_settings(settings.log_location, base_dir=home)
    monitor = LogMonitor(
        event_dispatcher,
        LineClassifier(settings.classifier),
        locator,
        settings.tail,
    )
    supervisor = Supervisor(
        ServerProcess(command),
        monitor,
        event_dispatcher,
        stop_timeout=settings.stop_timeout,
    )
    return await supervisor.run()


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logger.info("Starting wrapper for SuperTuxKart")
    try:
        return asyncio.run(run_wrapper(args.input, args.home))
    except WrapperError as e:
        logger.error(str(e))
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 130
