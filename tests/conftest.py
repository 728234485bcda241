from __future__ import annotations

import copy
import io
from collections.abc import Iterator

import pytest
from rich.console import Console

from retryshell.config.settings import settings
from retryshell.runtime.console import ConsoleWriter
from retryshell.runtime.last_output import get_last_output
from retryshell.runtime.timeout_policy import reset_timeout_escalation


@pytest.fixture(autouse=True)
def isolate_settings(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Prevent tests from persisting settings to disk."""
    original_data = copy.deepcopy(settings._data)

    def _noop_save() -> None:
        return None

    monkeypatch.setattr(settings, "_save", _noop_save)
    monkeypatch.delenv("RETRYSHELL_LOG_LEVEL", raising=False)
    try:
        yield
    finally:
        settings._data = original_data


@pytest.fixture(autouse=True)
def reset_shared_runner_state() -> Iterator[None]:
    """Start every test with fresh escalation and last-output state."""
    reset_timeout_escalation()
    get_last_output().clear()
    yield
    reset_timeout_escalation()
    get_last_output().clear()


class RecordingConsole(ConsoleWriter):
    """Console writer that keeps messages instead of printing them."""

    def __init__(self) -> None:
        super().__init__(Console(file=io.StringIO()))
        self.warnings: list[str] = []
        self.errors: list[str] = []

    def write_warning(self, message: str) -> None:
        self.warnings.append(message)

    def write_error(self, message: str) -> None:
        self.errors.append(message)


@pytest.fixture
def recording_console() -> RecordingConsole:
    return RecordingConsole()
