"""Centralized path management for retryshell.

Follows XDG Base Directory Specification:
- Config: $XDG_CONFIG_HOME/retryshell (default: ~/.config/retryshell)
- State: $XDG_STATE_HOME/retryshell (default: ~/.local/state/retryshell)
"""

import os
from dataclasses import dataclass, field
from pathlib import Path


def _xdg_config_home() -> Path:
    """Get XDG_CONFIG_HOME, defaulting to ~/.config."""
    return Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))


def _xdg_state_home() -> Path:
    """Get XDG_STATE_HOME, defaulting to ~/.local/state."""
    return Path(os.environ.get("XDG_STATE_HOME", Path.home() / ".local" / "state"))


@dataclass
class RetryshellPaths:
    """Centralized path management following XDG spec."""

    # XDG directories (computed once at init)
    _config_home: Path = field(default_factory=_xdg_config_home)
    _state_home: Path = field(default_factory=_xdg_state_home)

    @property
    def global_config_dir(self) -> Path:
        """Global config: ~/.config/retryshell/"""
        return self._config_home / "retryshell"

    @property
    def global_settings(self) -> Path:
        """Global settings file: ~/.config/retryshell/settings.json"""
        return self.global_config_dir / "settings.json"

    @property
    def global_state_dir(self) -> Path:
        """Global state: ~/.local/state/retryshell/"""
        return self._state_home / "retryshell"

    @property
    def log_file(self) -> Path:
        """Run log: ~/.local/state/retryshell/retryshell.log"""
        return self.global_state_dir / "retryshell.log"

    def ensure_global_dirs(self) -> None:
        """Create global XDG directories."""
        self.global_config_dir.mkdir(parents=True, exist_ok=True)
        self.global_state_dir.mkdir(parents=True, exist_ok=True)


# Singleton instance
_paths: RetryshellPaths | None = None


def get_paths() -> RetryshellPaths:
    """Get the paths singleton."""
    global _paths
    if _paths is None:
        _paths = RetryshellPaths()
    return _paths


def reset_paths() -> None:
    """Reset paths singleton (for testing)."""
    global _paths
    _paths = None
