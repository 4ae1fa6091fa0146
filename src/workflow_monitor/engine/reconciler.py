"""Status reconciliation decisions.

The reconciler is pure: given a run and the remote state of its execution it
computes staleness, agreement and the correction (if any) the run needs.
Fetching and persistence are done by the caller.
"""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING

from workflow_monitor.core.clock import SystemClock, ensure_utc
from workflow_monitor.core.models import Correction, WorkflowExecutionStatus
from workflow_monitor.core.types import ExecutionState, RunStatus, statuses_match

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

    from workflow_monitor.core.protocols import Clock
    from workflow_monitor.db.models import WorkflowRunModel

__all__ = ["StatusReconciler"]

_REMOTE_CORRECTIONS: dict[ExecutionState, Callable[[], Correction] | None] = {
    ExecutionState.SUCCEEDED: Correction.completed,
    ExecutionState.FAILED: Correction.failed,
    ExecutionState.CANCELLED: Correction.cancelled,
    ExecutionState.ACTIVE: None,
    ExecutionState.UNKNOWN: None,
}

if set(_REMOTE_CORRECTIONS) != set(ExecutionState):  # pragma: no cover
    msg = "every ExecutionState needs an entry in _REMOTE_CORRECTIONS"
    raise RuntimeError(msg)


class StatusReconciler:
    """Decides whether a run's stored status is correct.

    Attributes:
        stale_timeout: Heartbeat age after which a running run is stale.
        clock: Source of "now".
    """

    def __init__(
        self,
        stale_timeout: timedelta = timedelta(hours=6),
        clock: Clock | None = None,
    ) -> None:
        self.stale_timeout = stale_timeout
        self.clock = clock or SystemClock()

    def is_stale(self, updated_at: datetime | None) -> bool:
        """Check whether a heartbeat is older than the staleness threshold.

        Args:
            updated_at: The run's last update time.

        Returns:
            True if ``now - updated_at`` exceeds the threshold.
        """
        if updated_at is None:
            return False
        return self.clock.now() - ensure_utc(updated_at) > self.stale_timeout

    def inspect(
        self,
        run: WorkflowRunModel,
        execution_state: ExecutionState = ExecutionState.UNKNOWN,
    ) -> WorkflowExecutionStatus:
        """Compare a run against the remote state of its execution.

        Args:
            run: The persisted run.
            execution_state: Remote state, ``UNKNOWN`` when not fetched.

        Returns:
            The diagnostic status record.
        """
        current_status = RunStatus(run.status)
        return WorkflowExecutionStatus(
            run_id=run.id,
            story_id=run.story_id,
            execution_name=run.execution_name,
            current_status=current_status,
            execution_state=execution_state,
            status_match=bool(run.execution_name) and statuses_match(current_status, execution_state),
            last_heartbeat=run.updated_at,
            is_stale=self.is_stale(run.updated_at),
            error_message=run.error_message,
        )

    def decide(self, status: WorkflowExecutionStatus) -> Correction | None:
        """Pick the correction a run needs, if any.

        Rules are evaluated in priority order. A stale heartbeat outranks
        whatever the remote engine reports.

        Args:
            status: Result of :meth:`inspect`.

        Returns:
            The correction to apply, or None if the stored status stands.
        """
        running = status.current_status == RunStatus.RUNNING

        if running and not status.execution_name:
            return Correction.missing_execution()
        if running and status.is_stale:
            return Correction.stale(self.stale_timeout / timedelta(hours=1))

        if status.status_match:
            return None

        factory = _REMOTE_CORRECTIONS[status.execution_state]
        return factory() if factory is not None else None
