"""Resilient shell command execution with timeouts and retries."""

from retryshell.runtime import RetryStrategy, ShellRunner

__all__ = ["RetryStrategy", "ShellRunner"]
