"""Main module for retryshell."""

import logging
import sys

from retryshell.cli import run
from retryshell.config.paths import get_paths
from retryshell.config.settings import settings


def setup_logging() -> None:
    """Configure logging to file for debugging."""
    paths = get_paths()
    paths.ensure_global_dirs()
    log_file = paths.log_file

    # Level comes from RETRYSHELL_LOG_LEVEL, then settings, default INFO
    level = settings.log_level

    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        handlers=[
            logging.FileHandler(log_file, mode="w"),
        ],
    )
    logging.info("retryshell starting, logging to %s", log_file)


def main() -> None:
    """Main entry point for retryshell."""
    sys.exit(run(configure_logging=setup_logging))


if __name__ == "__main__":
    main()
