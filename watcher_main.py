"""
Main entry point for the page change watcher.

Usage:
    python watcher_main.py           # Poll continuously (daemon mode)
    python watcher_main.py --once    # Run a single detection cycle and exit
"""

import asyncio
import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

import structlog
from utilities.config import load_settings
from utilities.logger import setup_logging
from watcher.exceptions import ConfigurationError
from watcher.watch_service import WatchService

USAGE = "Usage: python watcher_main.py [--once|--daemon]"


def parse_mode(argv) -> str:
    """Return 'once' or 'daemon' from the command line arguments."""
    if len(argv) > 1:
        if argv[1] == '--once':
            return 'once'
        if argv[1] == '--daemon':
            return 'daemon'
        raise ValueError(f"Unknown argument: {argv[1]}")
    return 'daemon'


async def main(argv=None) -> int:
    """Load configuration, start the watch service and return an exit status."""
    argv = sys.argv if argv is None else argv

    try:
        mode = parse_mode(argv)
    except ValueError as e:
        print(str(e))
        print(USAGE)
        return 2

    try:
        settings = load_settings()
    except ConfigurationError as e:
        setup_logging()
        structlog.get_logger(__name__).error(
            "Invalid configuration",
            problems=e.problems
        )
        return 1

    setup_logging(
        log_level=settings.log_level,
        log_format=settings.log_format,
        log_file=settings.get_log_file_path(),
        debug=settings.debug
    )
    logger = structlog.get_logger(__name__)

    try:
        service = WatchService.from_settings(settings)
    except ConfigurationError as e:
        logger.error(
            "Missing critical configuration, refusing to start",
            problems=e.problems
        )
        return 1

    logger.info(
        "Watch service configured",
        mode=mode,
        target_url=service.config.target_url,
        interval_seconds=service.config.interval_seconds,
        notifier=type(service.notifier).__name__
    )

    if mode == 'once':
        report = await service.start(run_once=True)
        logger.info("Run once mode completed", **report.model_dump(mode="json"))
        return 0 if report.success else 1

    await service.start()
    return 0


def run() -> None:
    """Console script entry point."""
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        sys.exit(130)


if __name__ == "__main__":
    run()
