"""Core protocols for workflow-monitor.

This module defines the Protocol-based interfaces of the collaborators the
reconciliation core consumes: the remote workflow engine, the run dispatcher
used for retries, and the clock. Using Protocol keeps them injectable so tests
can pass simple doubles.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from datetime import datetime
    from uuid import UUID

    from workflow_monitor.core.models import ExecutionDetails


__all__ = ["Clock", "ExecutionsClient", "RunDispatcher"]


@runtime_checkable
class ExecutionsClient(Protocol):
    """Protocol for reading executions from the remote workflow engine.

    Example:
        >>> class StaticClient:
        ...     async def get_execution(self, name: str) -> ExecutionDetails:
        ...         return ExecutionDetails(name=name, state="ACTIVE")
    """

    async def get_execution(self, name: str) -> ExecutionDetails:
        """Fetch one execution by its full resource name.

        Args:
            name: The execution handle stored on the run.

        Returns:
            The execution as reported by the engine.

        Raises:
            ExecutionNotFoundError: If the engine has no such execution.
            ExecutionAccessDeniedError: If the engine refuses access.
            ExecutionClientError: For any other engine or transport failure.
        """
        ...


@runtime_checkable
class RunDispatcher(Protocol):
    """Protocol for handing a queued run to the workflow trigger (e.g. a pub/sub topic)."""

    async def dispatch(self, story_id: str, run_id: UUID) -> None:
        """Request execution of a queued run.

        Args:
            story_id: The story the run generates.
            run_id: The newly created run.
        """
        ...


@runtime_checkable
class Clock(Protocol):
    """Protocol for the source of "now"."""

    def now(self) -> datetime:
        """Return the current time as a timezone-aware UTC datetime."""
        ...
