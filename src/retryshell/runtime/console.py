"""User-facing warning and error output."""

from __future__ import annotations

from rich.console import Console
from rich.text import Text


class ConsoleWriter:
    """Prints colored warnings and errors for the person running the tool."""

    def __init__(self, console: Console | None = None) -> None:
        self._console = console or Console(stderr=True)

    def write_warning(self, message: str) -> None:
        self._console.print(Text.assemble(("Warning: ", "yellow"), message))

    def write_error(self, message: str) -> None:
        self._console.print(Text.assemble(("Error: ", "red"), message))


_DEFAULT_CONSOLE_WRITER = ConsoleWriter()


def get_console_writer() -> ConsoleWriter:
    """Return shared console writer."""
    return _DEFAULT_CONSOLE_WRITER
