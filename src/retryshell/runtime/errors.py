"""Failures raised inside a command attempt."""

from __future__ import annotations


class RunnerError(Exception):
    """Base class for failures of the runner machinery itself."""


class OutputSinkError(RunnerError):
    """Raised when a caller-supplied output sink fails while streaming."""

    def __init__(self, stream_name: str, command: str, cause: BaseException) -> None:
        self.stream_name = stream_name
        self.command = command
        self.cause = cause
        super().__init__(
            f"Output sink for {stream_name} failed while running {command}: {cause}"
        )
