"""Argument parser construction for the retryshell CLI."""

from __future__ import annotations

import argparse
from collections.abc import Sequence
from pathlib import Path

from retryshell.runtime.retry import RetryStrategy


def build_parser() -> argparse.ArgumentParser:
    """Build and return the top-level CLI parser."""
    parser = argparse.ArgumentParser(
        description="retryshell - run shell commands with timeouts and retries"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Run command
    run_parser = subparsers.add_parser(
        "run",
        help="Run a shell command, retrying on timeout or failure",
    )
    run_parser.add_argument(
        "shell_command",
        help="Command text passed to the shell",
    )
    run_parser.add_argument(
        "--directory",
        "-C",
        type=Path,
        help="Working directory for the command (default: current directory)",
    )
    run_parser.add_argument(
        "--timeout",
        "-t",
        type=float,
        help="Timeout in seconds for the first attempt (default: from settings)",
    )
    run_parser.add_argument(
        "--retry",
        choices=[strategy.value for strategy in RetryStrategy],
        help="Retry strategy (default: from settings, if_timeout)",
    )
    run_parser.add_argument(
        "--stream",
        action="store_true",
        help="Print output while the command runs instead of at the end",
    )

    # Start-timeout command
    subparsers.add_parser(
        "start-timeout",
        help="Print the timeout a fresh command would start with",
    )

    return parser


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments."""
    return build_parser().parse_args(argv)
