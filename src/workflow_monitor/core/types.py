"""Core type definitions for workflow-monitor.

This module defines the status enums shared by the store, the remote engine
adapter and the reconciler, together with the fixed table that says which
remote execution states are compatible with each local run status.
"""

from __future__ import annotations

import sys
from enum import Enum

# StrEnum backport for Python < 3.11
if sys.version_info >= (3, 11):
    from enum import StrEnum
else:

    class StrEnum(str, Enum):
        """String enumeration compatibility for Python < 3.11."""

        def __str__(self) -> str:
            return str(self.value)


__all__ = [
    "STATUS_COMPATIBILITY",
    "TERMINAL_STATUSES",
    "ExecutionState",
    "RunStatus",
    "SyncReason",
    "statuses_match",
]


class RunStatus(StrEnum):
    """Locally persisted status of a workflow run.

    Attributes:
        QUEUED: Run was created but not yet dispatched to the workflow engine.
        RUNNING: The workflow engine accepted the execution.
        COMPLETED: The execution finished successfully.
        FAILED: The execution failed, went stale or was failed by an operator.
        CANCELLED: The execution was cancelled in the workflow engine.
    """

    QUEUED = "queued"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        """Whether the status ends the run lifecycle."""
        return self in TERMINAL_STATUSES


class ExecutionState(StrEnum):
    """Normalized state of an execution in the remote workflow engine.

    Attributes:
        ACTIVE: Execution is still in progress.
        SUCCEEDED: Execution finished successfully.
        FAILED: Execution finished with an error.
        CANCELLED: Execution was cancelled.
        UNKNOWN: State could not be determined (not found, error or timeout).
    """

    ACTIVE = "ACTIVE"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"
    UNKNOWN = "UNKNOWN"


class SyncReason(StrEnum):
    """Why a run status was (or would be) rewritten.

    Attributes:
        WORKFLOW_COMPLETED: Remote execution succeeded.
        WORKFLOW_FAILED: Remote execution failed.
        WORKFLOW_CANCELLED: Remote execution was cancelled.
        STALE_TIMEOUT: The run heartbeat exceeded the staleness threshold.
        MANUAL_SYNC: Operator-triggered sync or override, and runs without an execution handle.
    """

    WORKFLOW_COMPLETED = "workflow_completed"
    WORKFLOW_FAILED = "workflow_failed"
    WORKFLOW_CANCELLED = "workflow_cancelled"
    STALE_TIMEOUT = "stale_timeout"
    MANUAL_SYNC = "manual_sync"


TERMINAL_STATUSES: frozenset[RunStatus] = frozenset(
    {RunStatus.COMPLETED, RunStatus.FAILED, RunStatus.CANCELLED},
)
"""Statuses that set ``ended_at`` on a run."""

STATUS_COMPATIBILITY: dict[RunStatus, frozenset[ExecutionState]] = {
    RunStatus.RUNNING: frozenset({ExecutionState.ACTIVE}),
    RunStatus.COMPLETED: frozenset({ExecutionState.SUCCEEDED}),
    RunStatus.FAILED: frozenset({ExecutionState.FAILED}),
    RunStatus.CANCELLED: frozenset({ExecutionState.CANCELLED}),
    # a queued run has not been handed to the engine yet
    RunStatus.QUEUED: frozenset(),
}
"""Remote states that are considered in agreement with each local status."""

if set(STATUS_COMPATIBILITY) != set(RunStatus):  # pragma: no cover
    missing = sorted(set(RunStatus) - set(STATUS_COMPATIBILITY))
    msg = f"STATUS_COMPATIBILITY is missing entries for: {missing}"
    raise RuntimeError(msg)


def statuses_match(local: RunStatus, remote: ExecutionState) -> bool:
    """Check whether a remote execution state agrees with a local run status.

    Args:
        local: The locally persisted run status.
        remote: The normalized remote execution state.

    Returns:
        True if the remote state is compatible with the local status.
    """
    return remote in STATUS_COMPATIBILITY[RunStatus(local)]
