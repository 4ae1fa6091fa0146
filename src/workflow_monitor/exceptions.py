"""Exception hierarchy for workflow-monitor."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from uuid import UUID

__all__ = (
    "DispatcherNotConfiguredError",
    "ExecutionAccessDeniedError",
    "ExecutionClientError",
    "ExecutionHandleMissingError",
    "ExecutionNotFoundError",
    "InvalidRetryError",
    "RunStatusConflictError",
    "WorkflowMonitorError",
    "WorkflowRunNotFoundError",
)


class WorkflowMonitorError(Exception):
    """Base exception for all workflow-monitor errors.

    All exceptions raised by workflow-monitor inherit from this class, so callers
    can catch every monitoring-related error with a single except clause.
    """


class WorkflowRunNotFoundError(WorkflowMonitorError):
    """Raised when a workflow run is not present in the run store.

    Attributes:
        run_id: The ID of the run that was not found.
    """

    def __init__(self, run_id: str | UUID) -> None:
        """Initialize the exception with run details.

        Args:
            run_id: The ID of the run that was not found.
        """
        self.run_id = run_id
        super().__init__(f"Workflow run not found: {run_id}")


class ExecutionHandleMissingError(WorkflowMonitorError):
    """Raised when an operation needs the remote execution of a run that has none.

    Attributes:
        run_id: The ID of the run without an execution handle.
    """

    def __init__(self, run_id: str | UUID) -> None:
        """Initialize the exception with run details.

        Args:
            run_id: The ID of the run without an execution handle.
        """
        self.run_id = run_id
        super().__init__(f"No workflow execution found for run '{run_id}'")


class RunStatusConflictError(WorkflowMonitorError):
    """Raised when a conditional status write finds the run in another status.

    Another worker changed the run between the read and the write.

    Attributes:
        run_id: The ID of the run.
        expected_status: The status the write was conditioned on.
        actual_status: The status found in the store.
    """

    def __init__(self, run_id: str | UUID, expected_status: str, actual_status: str) -> None:
        """Initialize the exception with run state details.

        Args:
            run_id: The ID of the run.
            expected_status: The status the write was conditioned on.
            actual_status: The status found in the store.
        """
        self.run_id = run_id
        self.expected_status = expected_status
        self.actual_status = actual_status
        super().__init__(
            f"Workflow run '{run_id}' changed concurrently (expected {expected_status}, found {actual_status})"
        )


class InvalidRetryError(WorkflowMonitorError):
    """Raised when a retry is requested for a run that is not failed.

    Attributes:
        run_id: The ID of the run.
        status: The current status of the run.
    """

    def __init__(self, run_id: str | UUID, status: str) -> None:
        """Initialize the exception with run state details.

        Args:
            run_id: The ID of the run.
            status: The current status of the run.
        """
        self.run_id = run_id
        self.status = status
        super().__init__(f"Only failed workflows can be retried (run '{run_id}' is {status})")


class DispatcherNotConfiguredError(WorkflowMonitorError):
    """Raised when a retry is requested but no run dispatcher is configured."""

    def __init__(self, message: str | None = None) -> None:
        """Initialize the exception.

        Args:
            message: Optional custom error message.
        """
        super().__init__(message or "Workflow retries require a configured run dispatcher")


class ExecutionClientError(WorkflowMonitorError):
    """Base exception for failures talking to the remote workflow engine.

    Attributes:
        execution_name: The execution that was being queried.
        status_code: HTTP status code returned by the engine, if any.
    """

    def __init__(
        self,
        execution_name: str,
        message: str | None = None,
        *,
        status_code: int | None = None,
    ) -> None:
        """Initialize the exception with request details.

        Args:
            execution_name: The execution that was being queried.
            message: Additional context about the failure.
            status_code: HTTP status code returned by the engine, if any.
        """
        self.execution_name = execution_name
        self.status_code = status_code
        msg = f"Failed to get workflow execution '{execution_name}'"
        if message:
            msg += f": {message}"
        super().__init__(msg)


class ExecutionNotFoundError(ExecutionClientError):
    """Raised when the remote engine has no execution with the given name."""

    def __init__(self, execution_name: str) -> None:
        """Initialize the exception with execution details.

        Args:
            execution_name: The execution that was not found.
        """
        super().__init__(execution_name, "execution not found", status_code=404)


class ExecutionAccessDeniedError(ExecutionClientError):
    """Raised when the remote engine rejects our credentials for an execution."""

    def __init__(self, execution_name: str, status_code: int = 403) -> None:
        """Initialize the exception with execution details.

        Args:
            execution_name: The execution that was being queried.
            status_code: The HTTP status returned (401 or 403).
        """
        super().__init__(execution_name, "access denied", status_code=status_code)
