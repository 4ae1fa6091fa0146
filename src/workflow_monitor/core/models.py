"""Concrete data models for workflow-monitor.

This module provides the dataclasses exchanged between the fetcher, the
reconciler and the run store, and returned to API callers.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any
from uuid import UUID

from workflow_monitor.core.types import ExecutionState, RunStatus, SyncReason

__all__ = [
    "MISSING_EXECUTION_MESSAGE",
    "REMOTE_FAILURE_MESSAGE",
    "Correction",
    "ExecutionDetails",
    "WorkflowExecutionStatus",
    "WorkflowSyncResult",
]

MISSING_EXECUTION_MESSAGE = "Workflow marked as failed - no workflow execution found"
REMOTE_FAILURE_MESSAGE = "Workflow execution failed in the workflow engine"


@dataclass(frozen=True)
class Correction:
    """A decided status change for one run.

    Only the ``failed`` producing variants carry an error message. Build
    instances through the named constructors rather than directly.

    Attributes:
        status: The status the run should be moved to.
        reason: Why the correction is required.
        error_message: Diagnostic stored on the run for failed corrections.
    """

    status: RunStatus
    reason: SyncReason
    error_message: str | None = None

    @classmethod
    def missing_execution(cls) -> Correction:
        """A running run that has no execution handle."""
        return cls(RunStatus.FAILED, SyncReason.MANUAL_SYNC, MISSING_EXECUTION_MESSAGE)

    @classmethod
    def stale(cls, stale_hours: float) -> Correction:
        """A running run whose heartbeat exceeded the staleness threshold.

        Args:
            stale_hours: The threshold in hours, quoted in the message.
        """
        return cls(
            RunStatus.FAILED,
            SyncReason.STALE_TIMEOUT,
            f"Workflow marked as failed due to stale timeout ({stale_hours:g} hours without updates)",
        )

    @classmethod
    def completed(cls) -> Correction:
        """The remote execution succeeded."""
        return cls(RunStatus.COMPLETED, SyncReason.WORKFLOW_COMPLETED)

    @classmethod
    def failed(cls) -> Correction:
        """The remote execution failed."""
        return cls(RunStatus.FAILED, SyncReason.WORKFLOW_FAILED, REMOTE_FAILURE_MESSAGE)

    @classmethod
    def cancelled(cls) -> Correction:
        """The remote execution was cancelled."""
        return cls(RunStatus.CANCELLED, SyncReason.WORKFLOW_CANCELLED)


@dataclass
class WorkflowSyncResult:
    """Outcome of reconciling (or overriding) a single run.

    When no correction happened ``previous_status == new_status``.

    Attributes:
        run_id: The reconciled run.
        previous_status: Status before reconciliation.
        new_status: Status after reconciliation.
        execution_name: The remote execution handle, if any.
        sync_reason: Why the status was (or would be) rewritten.
        error_message: Error message written to the run, if any.
    """

    run_id: UUID
    previous_status: RunStatus
    new_status: RunStatus
    execution_name: str | None
    sync_reason: SyncReason
    error_message: str | None = None

    @property
    def changed(self) -> bool:
        """Whether the run status was rewritten."""
        return self.previous_status != self.new_status


@dataclass
class WorkflowExecutionStatus:
    """Diagnostic comparison of a run against its remote execution.

    Attributes:
        run_id: The inspected run.
        story_id: The story the run generates.
        execution_name: The remote execution handle, if any.
        current_status: Locally persisted status.
        execution_state: Remote state (``UNKNOWN`` when not fetched or unavailable).
        status_match: Whether the remote state agrees with the local status.
        last_heartbeat: The run's ``updated_at``.
        is_stale: Whether the heartbeat exceeded the staleness threshold.
        error_message: Error message currently stored on the run.
    """

    run_id: UUID
    story_id: str
    execution_name: str | None
    current_status: RunStatus
    execution_state: ExecutionState
    status_match: bool
    last_heartbeat: datetime | None
    is_stale: bool
    error_message: str | None = None

    @property
    def needs_sync(self) -> bool:
        """Whether a sweep should reconcile this run."""
        return not self.status_match or self.is_stale


@dataclass
class ExecutionDetails:
    """Execution record as reported by the remote workflow engine.

    Attributes:
        name: Full resource name of the execution.
        state: Raw engine state string (e.g. ``ACTIVE``, ``SUCCEEDED``).
        start_time: When the execution started.
        end_time: When the execution ended, if it has.
        result: Serialized execution result, if any.
        error: Engine error payload, if any.
        workflow_revision_id: Revision of the workflow that ran.
        call_log_level: Call logging level configured on the execution.
    """

    name: str
    state: str
    start_time: str | None = None
    end_time: str | None = None
    result: str | None = None
    error: dict[str, Any] | None = None
    workflow_revision_id: str = ""
    call_log_level: str = "None"
