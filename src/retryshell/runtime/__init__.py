"""Runtime primitives for running shell commands reliably."""

from retryshell.runtime.command_runner import (
    ABORTED_EXIT_CODE,
    FAULT_EXIT_CODE,
    REACHABILITY_CHECK_COMMAND,
    AttemptOutcome,
    AttemptResult,
    ExecutionRequest,
    ShellRunner,
)
from retryshell.runtime.last_output import LastOutput, get_last_output
from retryshell.runtime.retry import RetryStrategy, should_retry
from retryshell.runtime.timeout_policy import TimeoutEscalation, get_timeout_escalation

__all__ = [
    "ABORTED_EXIT_CODE",
    "FAULT_EXIT_CODE",
    "REACHABILITY_CHECK_COMMAND",
    "AttemptOutcome",
    "AttemptResult",
    "ExecutionRequest",
    "LastOutput",
    "RetryStrategy",
    "ShellRunner",
    "TimeoutEscalation",
    "get_last_output",
    "get_timeout_escalation",
    "should_retry",
]
