"""Shell command runner with streaming capture, deadlines and retries."""

from __future__ import annotations

import codecs
import locale
import logging
import os
import signal
import subprocess
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, replace
from datetime import timedelta
from enum import Enum
from pathlib import Path
from typing import IO

from retryshell.config.settings import settings
from retryshell.runtime.console import ConsoleWriter, get_console_writer
from retryshell.runtime.errors import OutputSinkError, RunnerError
from retryshell.runtime.last_output import LastOutput, get_last_output
from retryshell.runtime.retry import MAX_RETRIES, RetryStrategy, should_retry
from retryshell.runtime.shell import ShellInvocation, os_is_unix, select_shell
from retryshell.runtime.timeout_policy import (
    TimeoutEscalation,
    get_timeout_escalation,
)

logger = logging.getLogger(__name__)

FAULT_EXIT_CODE = 1
ABORTED_EXIT_CODE = -1
# Run routinely to check remote reachability; its timeouts are expected.
REACHABILITY_CHECK_COMMAND = "git ls-remote --heads"

_READ_CHUNK_SIZE = 4096
_DRAIN_GRACE_SECONDS = 5.0

OutputSink = Callable[[str], None]


def _noop_sink(_text: str) -> None:
    return None


class AttemptOutcome(str, Enum):
    """How a single attempt ended."""

    SUCCESS = "success"
    TIMED_OUT = "timed_out"
    FAULT = "fault"
    ABORTED = "aborted"


@dataclass(frozen=True, slots=True)
class ExecutionRequest:
    """What to run and where; only the timeout changes between attempts."""

    command: str
    working_directory: Path
    timeout_seconds: float
    retry_strategy: RetryStrategy

    def with_timeout(self, timeout_seconds: float) -> ExecutionRequest:
        return replace(self, timeout_seconds=timeout_seconds)


@dataclass(frozen=True, slots=True)
class AttemptResult:
    """Result for one command attempt."""

    outcome: AttemptOutcome
    exit_code: int
    timeout_seconds: float
    duration_seconds: float
    stdout: str
    stderr: str

    @property
    def timed_out(self) -> bool:
        return self.outcome == AttemptOutcome.TIMED_OUT


class _StreamPump(threading.Thread):
    """Copies one pipe into a chunk buffer and a sink as data arrives."""

    def __init__(
        self,
        stream_name: str,
        stream: IO[bytes],
        chunks: list[str],
        sink: OutputSink,
    ) -> None:
        super().__init__(name=f"retryshell-{stream_name}", daemon=True)
        self.stream_name = stream_name
        self.sink_error: Exception | None = None
        self._detached = False
        self._stream = stream
        self._chunks = chunks
        self._sink = sink

    def run(self) -> None:
        decoder = codecs.getincrementaldecoder(locale.getpreferredencoding(False))(
            errors="replace"
        )
        try:
            while True:
                data = os.read(self._stream.fileno(), _READ_CHUNK_SIZE)
                if not data:
                    break
                self._deliver(decoder.decode(data))
            self._deliver(decoder.decode(b"", final=True))
        finally:
            self._stream.close()

    def detach(self) -> None:
        """Stop forwarding text to the sink; the pipe is still drained."""
        self._detached = True

    def _deliver(self, text: str) -> None:
        if not text:
            return
        self._chunks.append(text)
        # After a sink failure keep draining the pipe, just stop calling it.
        if self.sink_error is not None or self._detached:
            return
        try:
            self._sink(text)
        except Exception as exc:
            self.sink_error = exc


class ShellRunner:
    """Runs shell commands, retrying timeouts and failures by strategy.

    Captured output of the latest attempt is available through ``output``
    and ``errors``. ``on_output`` and ``on_errors`` receive the same text
    incrementally, on reader threads, while the command runs.

    One attempt at a time per instance; create separate runners for
    concurrent commands.
    """

    def __init__(
        self,
        log: logging.Logger | None = None,
        *,
        timeout_escalation: TimeoutEscalation | None = None,
        last_output: LastOutput | None = None,
        console: ConsoleWriter | None = None,
        shell: ShellInvocation | None = None,
        default_timeout_seconds: float | None = None,
    ) -> None:
        self._log = log or logger
        self._timeout_escalation = timeout_escalation or get_timeout_escalation()
        self._last_output = last_output or get_last_output()
        self._console = console or get_console_writer()
        self._shell = shell or select_shell()
        self._default_timeout_seconds = (
            default_timeout_seconds
            if default_timeout_seconds is not None
            else settings.default_timeout_seconds
        )

        self.on_output: OutputSink = _noop_sink
        self.on_errors: OutputSink = _noop_sink
        self.has_timeout = False
        self.attempts: list[AttemptResult] = []
        self._output_chunks: list[str] = []
        self._error_chunks: list[str] = []

    @property
    def output(self) -> str:
        """Standard output captured by the latest attempt."""
        return "".join(self._output_chunks)

    @property
    def errors(self) -> str:
        """Standard error captured by the latest attempt."""
        return "".join(self._error_chunks)

    def starting_timeout(self) -> float:
        """Budget to use for a fresh request given recent timeouts."""
        return self._timeout_escalation.starting_timeout()

    # --- Facade ---

    def run(
        self,
        command: str,
        timeout_seconds: float | None = None,
        retry_strategy: RetryStrategy | None = None,
    ) -> int:
        """Run a command in the current working directory."""
        return self.run_with_retries(
            command,
            Path.cwd(),
            self._resolve_timeout(timeout_seconds),
            self._resolve_strategy(retry_strategy),
        )

    def run_in_directory(
        self,
        path: str | Path,
        command: str,
        timeout_seconds: float | None = None,
        retry_strategy: RetryStrategy | None = None,
    ) -> int:
        """Run a command in ``path``."""
        return self.run_with_retries(
            command,
            Path(path),
            self._resolve_timeout(timeout_seconds),
            self._resolve_strategy(retry_strategy),
        )

    def _resolve_timeout(self, timeout_seconds: float | None) -> float:
        if timeout_seconds is None:
            return self._default_timeout_seconds
        return timeout_seconds

    @staticmethod
    def _resolve_strategy(retry_strategy: RetryStrategy | None) -> RetryStrategy:
        if retry_strategy is None:
            return RetryStrategy(settings.default_retry_strategy)
        return retry_strategy

    # --- Retry orchestration ---

    def run_with_retries(
        self,
        command: str,
        working_directory: str | Path,
        timeout_seconds: float,
        retry_strategy: RetryStrategy = RetryStrategy.IF_TIMEOUT,
    ) -> int:
        """Run a command up to three times, as ``retry_strategy`` allows.

        The timeout is escalated before each retry that follows a timeout.
        Always returns an exit code; -1 means the attempt was aborted.
        """
        request = ExecutionRequest(
            command=command,
            working_directory=Path(working_directory),
            timeout_seconds=timeout_seconds,
            retry_strategy=retry_strategy,
        )
        self.attempts = []

        result = self._run_request(request)
        retries_left = MAX_RETRIES
        while retries_left > 0 and should_retry(
            request.retry_strategy, result.exit_code, result.timed_out
        ):
            retries_left -= 1
            if result.timed_out:
                request = request.with_timeout(
                    self._timeout_escalation.increase(request.timeout_seconds)
                )
            result = self._run_request(request)
            self._log.debug(
                "EXECUTED %s in %s with exitCode %d and retryStrategy %s",
                request.command,
                request.working_directory,
                result.exit_code,
                request.retry_strategy.value,
            )
        return result.exit_code

    def _run_request(self, request: ExecutionRequest) -> AttemptResult:
        result = self._attempt(
            request.command, request.working_directory, request.timeout_seconds
        )
        self.attempts.append(result)
        return result

    # --- Single attempt ---

    def run_once(
        self,
        command: str,
        working_directory: str | Path,
        timeout_seconds: float,
    ) -> int:
        """Run a command once and return its exit code.

        Returns 1 when the shell could not be started and -1 when the
        attempt timed out or was otherwise aborted.
        """
        result = self._attempt(command, Path(working_directory), timeout_seconds)
        return result.exit_code

    def _before_run(self) -> None:
        self._output_chunks = []
        self._error_chunks = []
        self.has_timeout = False

    def _attempt(
        self,
        command: str,
        working_directory: Path,
        timeout_seconds: float,
    ) -> AttemptResult:
        self._before_run()
        started_at = time.perf_counter()

        try:
            outcome, exit_code = self._execute(
                command, working_directory, timeout_seconds
            )
        except RunnerError as exc:
            self._console.write_error(str(exc))
            self._log.error("%s", exc)
            outcome, exit_code = AttemptOutcome.ABORTED, ABORTED_EXIT_CODE

        duration_seconds = time.perf_counter() - started_at

        if outcome == AttemptOutcome.SUCCESS:
            self._last_output.set(self.output)
            self._log.info(
                "EXECUTED %s in %s in %dms with exitCode %d",
                command,
                working_directory,
                int(duration_seconds * 1000),
                exit_code,
            )
        elif outcome == AttemptOutcome.TIMED_OUT:
            self._report_timeout(command, working_directory, timeout_seconds)

        return AttemptResult(
            outcome=outcome,
            exit_code=exit_code,
            timeout_seconds=timeout_seconds,
            duration_seconds=duration_seconds,
            stdout=self.output,
            stderr=self.errors,
        )

    def _execute(
        self,
        command: str,
        working_directory: Path,
        timeout_seconds: float,
    ) -> tuple[AttemptOutcome, int]:
        if timeout_seconds <= 0:
            return self._mark_timeout(command, working_directory, timeout_seconds)

        deadline = time.monotonic() + timeout_seconds
        try:
            process = subprocess.Popen(
                self._shell.argv(command),
                cwd=str(working_directory),
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                start_new_session=os_is_unix(),
            )
        except (OSError, ValueError) as exc:
            self._log.debug(
                "Failed to start %s in %s: %s", command, working_directory, exc
            )
            return AttemptOutcome.FAULT, FAULT_EXIT_CODE

        assert process.stdout is not None and process.stderr is not None
        pumps = (
            _StreamPump("stdout", process.stdout, self._output_chunks, self.on_output),
            _StreamPump("stderr", process.stderr, self._error_chunks, self.on_errors),
        )
        for pump in pumps:
            pump.start()

        if not _wait_for_completion(process, pumps, deadline):
            _kill_process(process)
            process.wait()
            for pump in pumps:
                pump.join(_DRAIN_GRACE_SECONDS)
                # An escaped grandchild can keep writing into a later attempt.
                pump.detach()
            return self._mark_timeout(command, working_directory, timeout_seconds)

        for pump in pumps:
            if pump.sink_error is not None:
                raise OutputSinkError(pump.stream_name, command, pump.sink_error)
        return AttemptOutcome.SUCCESS, _exit_code(process.returncode)

    def _mark_timeout(
        self,
        command: str,
        working_directory: Path,
        timeout_seconds: float,
    ) -> tuple[AttemptOutcome, int]:
        self.has_timeout = True
        self._error_chunks.append(
            _timeout_message(command, working_directory, timeout_seconds) + "\n"
        )
        return AttemptOutcome.TIMED_OUT, ABORTED_EXIT_CODE

    def _report_timeout(
        self,
        command: str,
        working_directory: Path,
        timeout_seconds: float,
    ) -> None:
        message = _timeout_message(command, working_directory, timeout_seconds)
        if command != REACHABILITY_CHECK_COMMAND:
            self._console.write_warning(message)
        self._log.warning("%s", message)


def _timeout_message(
    command: str, working_directory: Path, timeout_seconds: float
) -> str:
    budget = timedelta(seconds=max(0.0, timeout_seconds))
    return f"Running timeout at {budget} for command {command} in {working_directory}"


def _exit_code(returncode: int) -> int:
    """Report signal deaths the way a POSIX shell does (128 + signal number)."""
    if returncode < 0:
        return 128 - returncode
    return returncode


def _remaining(deadline: float) -> float:
    return max(0.0, deadline - time.monotonic())


def _wait_for_completion(
    process: subprocess.Popen[bytes],
    pumps: tuple[_StreamPump, ...],
    deadline: float,
) -> bool:
    """Wait for exit and for both pipes to close before the deadline."""
    try:
        process.wait(timeout=_remaining(deadline))
    except subprocess.TimeoutExpired:
        return False
    # Background children can hold the pipes open after the shell exits.
    for pump in pumps:
        pump.join(_remaining(deadline))
        if pump.is_alive():
            return False
    return True


def _kill_process(process: subprocess.Popen[bytes]) -> None:
    try:
        if os_is_unix():
            os.killpg(process.pid, signal.SIGKILL)
        else:
            process.kill()
    except (ProcessLookupError, PermissionError):
        return
