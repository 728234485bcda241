"""CLI orchestration and command routing."""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Callable, Sequence
from typing import TextIO

from retryshell.cli.parser import build_parser, parse_args
from retryshell.runtime.command_runner import ShellRunner
from retryshell.runtime.retry import RetryStrategy

logger = logging.getLogger(__name__)


def cmd_run(args: argparse.Namespace) -> int:
    """Run a shell command through the retrying runner."""
    runner = ShellRunner()
    if args.stream:
        runner.on_output = _writer(sys.stdout)
        runner.on_errors = _writer(sys.stderr)

    strategy = RetryStrategy(args.retry) if args.retry else None
    if args.directory is not None:
        exit_code = runner.run_in_directory(
            args.directory, args.shell_command, args.timeout, strategy
        )
    else:
        exit_code = runner.run(args.shell_command, args.timeout, strategy)

    if not args.stream:
        sys.stdout.write(runner.output)
        sys.stderr.write(runner.errors)
    elif runner.has_timeout:
        # Streamed stderr never contains the timeout note, print it now
        sys.stderr.write(runner.errors.splitlines()[-1] + "\n")
    logger.info("Command %r finished with exit code %d", args.shell_command, exit_code)
    return exit_code


def cmd_start_timeout(args: argparse.Namespace) -> int:
    """Print the timeout a fresh request would start with."""
    print(f"{ShellRunner().starting_timeout():g}")
    return 0


def _writer(stream: TextIO) -> Callable[[str], None]:
    def _write(text: str) -> None:
        stream.write(text)
        stream.flush()

    return _write


def dispatch(args: argparse.Namespace) -> int:
    """Route parsed args to the correct command handler."""
    command_handlers: dict[str, Callable[[argparse.Namespace], int]] = {
        "run": cmd_run,
        "start-timeout": cmd_start_timeout,
    }

    handler = command_handlers.get(args.command)
    if handler is None:
        build_parser().print_help()
        return 2

    return handler(args)


def run(
    argv: Sequence[str] | None = None,
    *,
    configure_logging: Callable[[], None] | None = None,
) -> int:
    """Parse args, apply shared CLI setup, and execute command."""
    args = parse_args(argv)

    if configure_logging is not None:
        configure_logging()

    return dispatch(args)
