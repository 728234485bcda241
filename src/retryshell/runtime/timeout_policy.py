"""Process-wide timeout escalation state."""

from __future__ import annotations

import threading

from retryshell.config.settings import settings

SHORT_TIMEOUT_SECONDS = 30.0
LONG_TIMEOUT_SECONDS = 600.0
# Fresh requests switch to the long timeout once failures exceed this count.
FAILURES_BEFORE_LONG_DEFAULT = 1


class TimeoutEscalation:
    """Counts observed timeouts and picks budgets from that history.

    One instance is shared by every runner in the process. The counter is
    updated under a lock, so concurrent runners never lose an increment,
    but the value is still only a hint about how slow the environment is.
    """

    def __init__(
        self,
        short_timeout_seconds: float = SHORT_TIMEOUT_SECONDS,
        long_timeout_seconds: float = LONG_TIMEOUT_SECONDS,
        failures_before_long_default: int = FAILURES_BEFORE_LONG_DEFAULT,
    ) -> None:
        self._short_timeout_seconds = short_timeout_seconds
        self._long_timeout_seconds = long_timeout_seconds
        self._failures_before_long_default = failures_before_long_default
        self._failures = 0
        self._lock = threading.Lock()

    @property
    def short_timeout_seconds(self) -> float:
        return self._short_timeout_seconds

    @property
    def long_timeout_seconds(self) -> float:
        return self._long_timeout_seconds

    @property
    def failures(self) -> int:
        """Number of timeouts recorded so far."""
        with self._lock:
            return self._failures

    def increase(self, previous_timeout_seconds: float) -> float:
        """Record a timeout and return the budget for the next attempt.

        The result is raised to the long default but never lowered, and
        never grown past a budget that is already above it.
        """
        with self._lock:
            self._failures += 1
        if previous_timeout_seconds < self._long_timeout_seconds:
            return self._long_timeout_seconds
        return previous_timeout_seconds

    def starting_timeout(self) -> float:
        """Budget for a fresh request, given the timeouts seen so far."""
        if self.failures > self._failures_before_long_default:
            return self._long_timeout_seconds
        return self._short_timeout_seconds

    def reset(self) -> None:
        """Forget recorded timeouts (for testing)."""
        with self._lock:
            self._failures = 0


_DEFAULT_TIMEOUT_ESCALATION: TimeoutEscalation | None = None


def get_timeout_escalation() -> TimeoutEscalation:
    """Return shared timeout escalation state, configured from settings."""
    global _DEFAULT_TIMEOUT_ESCALATION
    if _DEFAULT_TIMEOUT_ESCALATION is None:
        _DEFAULT_TIMEOUT_ESCALATION = TimeoutEscalation(
            short_timeout_seconds=settings.short_timeout_seconds,
            long_timeout_seconds=settings.long_timeout_seconds,
        )
    return _DEFAULT_TIMEOUT_ESCALATION


def reset_timeout_escalation() -> None:
    """Drop the shared instance so the next lookup rebuilds it (for testing)."""
    global _DEFAULT_TIMEOUT_ESCALATION
    _DEFAULT_TIMEOUT_ESCALATION = None
