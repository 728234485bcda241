"""Configuration management for retryshell."""
from __future__ import annotations

from retryshell.config.paths import RetryshellPaths, get_paths, reset_paths
from retryshell.config.settings import Settings, get_settings_path, settings

__all__ = [
    "RetryshellPaths",
    "Settings",
    "get_paths",
    "get_settings_path",
    "reset_paths",
    "settings",
]
