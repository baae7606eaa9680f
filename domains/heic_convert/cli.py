#!/usr/bin/env python3
"""Convert HEIC images dropped into a directory to JPEG.

This module exposes a CLI entrypoint that watches one directory (the user's
Downloads folder by default) and converts every new ``.heic`` file with
``sips``.  Monitoring can be toggled at runtime by sending ``SIGUSR1``; the
process keeps running while disabled.
"""

from __future__ import annotations

import argparse
import signal
import sys
import threading
from pathlib import Path
from typing import Optional

from loguru import logger

from app.utils.config import get_settings
from domains.heic_convert.converter import SipsConverter
from domains.heic_convert.watcher import DirectoryWatcher

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"
)


def configure_logging(level: str) -> None:
    """Send loguru output to stdout at ``level``."""

    logger.remove()
    logger.add(sys.stdout, format=LOG_FORMAT, level=level.upper())


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse CLI arguments."""

    settings = get_settings()

    parser = argparse.ArgumentParser(
        description="Watch a directory and convert new HEIC images to JPEG.",
    )
    parser.add_argument(
        "--watch-dir",
        type=Path,
        default=settings.get_watch_dir(),
        help="Directory to monitor (default: %(default)s).",
    )
    parser.add_argument(
        "--converter",
        type=Path,
        default=settings.converter_path,
        help="Path to the sips executable (default: %(default)s).",
    )
    parser.add_argument(
        "--retry-limit",
        type=int,
        default=settings.retry_limit,
        help="Extra attempts for files whose conversion failed (default: %(default)s).",
    )
    parser.add_argument(
        "--disabled",
        action="store_false",
        dest="enabled",
        default=settings.enabled,
        help="Start with monitoring switched off; send SIGUSR1 to toggle.",
    )
    parser.add_argument(
        "--log-level",
        default=settings.log_level,
        help="Log level (default: %(default)s).",
    )

    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> int:
    """Entry point for the CLI script."""

    args = parse_args(argv)
    configure_logging(args.log_level)

    watcher = DirectoryWatcher(
        watch_dir=args.watch_dir,
        converter=SipsConverter(args.converter),
        retry_limit=args.retry_limit,
    )

    if args.enabled and not watcher.set_enabled(True):
        logger.error(f"Could not start monitoring {watcher.watch_dir}")
        return 1
    if not args.enabled:
        logger.info("Monitoring disabled, send SIGUSR1 to enable")

    stop_event = threading.Event()
    toggle_event = threading.Event()

    def _signal_handler(signum, frame):  # noqa: D401
        logger.info(f"Received signal {signum}, shutting down.")
        stop_event.set()

    def _toggle_handler(signum, frame):  # noqa: D401
        toggle_event.set()

    signal.signal(signal.SIGINT, _signal_handler)
    signal.signal(signal.SIGTERM, _signal_handler)
    if hasattr(signal, "SIGUSR1"):
        signal.signal(signal.SIGUSR1, _toggle_handler)

    try:
        while not stop_event.is_set():
            stop_event.wait(1.0)
            if toggle_event.is_set():
                toggle_event.clear()
                running = watcher.set_enabled(not watcher.enabled)
                logger.info(f"Monitoring {'enabled' if running else 'disabled'}")
    finally:
        watcher.stop()

    logger.info("HEIC watcher stopped.")
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI bridge
    sys.exit(main())
