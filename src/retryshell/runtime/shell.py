"""Shell interpreter selection per host OS family."""

from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ShellInvocation:
    """Interpreter binary plus the flags that make it run one command string."""

    interpreter: str
    flags: tuple[str, ...]

    def format_arguments(self, command: str) -> str:
        """Return the argument string: flags followed by the quoted command."""
        return f"{' '.join(self.flags)} \"{command}\""

    def argv(self, command: str) -> list[str] | str:
        """Return what subprocess needs to launch the command.

        POSIX gets an argument vector so the command text reaches bash
        verbatim. Windows gets a single command line because cmd.exe does
        its own parsing of the quoted tail.
        """
        if self.interpreter == SHELLS["windows"].interpreter:
            return f"{self.interpreter} {self.format_arguments(command)}"
        return [self.interpreter, *self.flags, command]


SHELLS: dict[str, ShellInvocation] = {
    "unix": ShellInvocation(interpreter="/bin/bash", flags=("-lc",)),
    "windows": ShellInvocation(interpreter="cmd", flags=("/D", "/C")),
}


def os_is_unix() -> bool:
    """Whether the host is a Unix-like system."""
    return os.name != "nt"


def select_shell(is_unix: bool | None = None) -> ShellInvocation:
    """Pick the shell for the given OS family (defaults to the host's)."""
    if is_unix is None:
        is_unix = os_is_unix()
    return SHELLS["unix" if is_unix else "windows"]
