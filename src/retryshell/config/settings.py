"""Configuration and settings persistence."""

import json
import logging
import os
from pathlib import Path
from typing import Any

from retryshell.config.paths import get_paths

logger = logging.getLogger(__name__)

LOG_LEVEL_ENV_VAR = "RETRYSHELL_LOG_LEVEL"
RETRY_STRATEGY_VALUES = ("none", "if_timeout", "if_timeout_or_failed")


def get_settings_path() -> Path:
    """Get the path to the settings file."""
    return get_paths().global_settings


def _positive_float(raw_value: Any, default: float) -> float:
    if raw_value in (None, ""):
        return default
    try:
        value = float(raw_value)
    except (TypeError, ValueError):
        return default
    if value <= 0:
        return default
    return value


class Settings:
    """Persistent settings for retryshell."""

    _defaults: dict[str, Any] = {
        "log_level": "INFO",
    }

    _runner_defaults: dict[str, Any] = {
        # Budget used by run()/run_in_directory() when no timeout is given
        "default_timeout_seconds": 600.0,
        "short_timeout_seconds": 30.0,
        "long_timeout_seconds": 600.0,
        "default_retry_strategy": "if_timeout",
    }

    def __init__(self) -> None:
        self._data: dict[str, Any] = {}
        self._load()

    def _load(self) -> None:
        """Load settings from disk."""
        path = get_settings_path()
        if path.exists():
            try:
                self._data = json.loads(path.read_text(encoding="utf-8"))
            except (json.JSONDecodeError, OSError):
                self._data = {}
        else:
            self._data = {}
        if not isinstance(self._data, dict):
            self._data = {}

    def _save(self) -> None:
        """Save settings to disk."""
        path = get_settings_path()
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(self._data, indent=2), encoding="utf-8")
            logger.info("Saved settings to %s: %s", path, self._data)
        except OSError as e:
            logger.error("Failed to save settings: %s", e)

    def get(self, key: str) -> Any:
        """Get a setting value, falling back to default."""
        return self._data.get(key, self._defaults.get(key))

    def set(self, key: str, value: Any) -> None:
        """Set a setting value and persist to disk."""
        self._data[key] = value
        self._save()

    @property
    def log_level(self) -> str:
        """Get the log level name.

        Priority: RETRYSHELL_LOG_LEVEL env var > settings > INFO
        """
        env_level = os.environ.get(LOG_LEVEL_ENV_VAR)
        if env_level:
            return env_level.upper()
        return str(self.get("log_level")).upper()

    @log_level.setter
    def log_level(self, value: str) -> None:
        """Set the log level name."""
        self.set("log_level", value.upper())

    # --- Runner Settings ---

    def _get_runner_settings(self) -> dict[str, Any]:
        raw = self._data.get("runner", {})
        if isinstance(raw, dict):
            return raw
        return {}

    def _set_runner_value(self, key: str, value: Any) -> None:
        runner = self._get_runner_settings()
        runner[key] = value
        self.set("runner", runner)

    def _runner_timeout(self, key: str) -> float:
        return _positive_float(
            self._get_runner_settings().get(key),
            self._runner_defaults[key],
        )

    @property
    def default_timeout_seconds(self) -> float:
        """Timeout used when a caller does not pass one (10 minutes)."""
        return self._runner_timeout("default_timeout_seconds")

    @default_timeout_seconds.setter
    def default_timeout_seconds(self, value: float) -> None:
        self._set_runner_value("default_timeout_seconds", float(value))

    @property
    def short_timeout_seconds(self) -> float:
        """Starting timeout while the environment has not proven slow."""
        return self._runner_timeout("short_timeout_seconds")

    @short_timeout_seconds.setter
    def short_timeout_seconds(self, value: float) -> None:
        self._set_runner_value("short_timeout_seconds", float(value))

    @property
    def long_timeout_seconds(self) -> float:
        """Timeout that escalation raises budgets to."""
        return self._runner_timeout("long_timeout_seconds")

    @long_timeout_seconds.setter
    def long_timeout_seconds(self, value: float) -> None:
        self._set_runner_value("long_timeout_seconds", float(value))

    @property
    def default_retry_strategy(self) -> str:
        """Retry strategy value used when a caller does not pass one.

        Unknown values fall back to "if_timeout".
        """
        raw = self._get_runner_settings().get("default_retry_strategy")
        if isinstance(raw, str) and raw in RETRY_STRATEGY_VALUES:
            return raw
        return str(self._runner_defaults["default_retry_strategy"])

    @default_retry_strategy.setter
    def default_retry_strategy(self, value: str) -> None:
        self._set_runner_value("default_retry_strategy", value)


# Global settings instance
settings = Settings()
