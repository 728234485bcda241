"""Retry strategies and the decision of whether to run a command again."""

from __future__ import annotations

from enum import Enum

# Attempts after the first one, whatever the strategy.
MAX_RETRIES = 2


class RetryStrategy(str, Enum):
    """When a finished attempt should be repeated."""

    NONE = "none"
    IF_TIMEOUT = "if_timeout"
    IF_TIMEOUT_OR_FAILED = "if_timeout_or_failed"


def should_retry(strategy: RetryStrategy, exit_code: int, timed_out: bool) -> bool:
    """Decide whether another attempt is warranted.

    A -1 abort counts as a failure for IF_TIMEOUT_OR_FAILED but does not
    trigger IF_TIMEOUT unless the attempt also timed out.
    """
    if strategy == RetryStrategy.IF_TIMEOUT:
        return timed_out
    if strategy == RetryStrategy.IF_TIMEOUT_OR_FAILED:
        return timed_out or exit_code != 0
    return False
