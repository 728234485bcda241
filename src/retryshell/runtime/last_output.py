"""Side channel holding the stdout of the latest successful command."""

from __future__ import annotations

import threading


class LastOutput:
    """Lock-guarded cell shared by all runners in the process.

    Reads and writes are atomic, but with several runners in flight the
    value is whichever completed last. Treat it as advisory.
    """

    def __init__(self) -> None:
        self._value: str | None = None
        self._lock = threading.Lock()

    def get(self) -> str | None:
        with self._lock:
            return self._value

    def set(self, value: str) -> None:
        with self._lock:
            self._value = value

    def clear(self) -> None:
        with self._lock:
            self._value = None


_DEFAULT_LAST_OUTPUT = LastOutput()


def get_last_output() -> LastOutput:
    """Return shared last-output cell."""
    return _DEFAULT_LAST_OUTPUT
