"""Run store mutator.

Every status write for a run that has left ``queued`` goes through here, so
the ``ended_at`` and heartbeat invariants are kept in one place.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import TYPE_CHECKING

from workflow_monitor.core.clock import SystemClock, ensure_utc
from workflow_monitor.core.models import WorkflowSyncResult
from workflow_monitor.core.types import RunStatus, SyncReason

if TYPE_CHECKING:
    from datetime import datetime
    from uuid import UUID

    from workflow_monitor.core.protocols import Clock
    from workflow_monitor.db.models import WorkflowRunModel
    from workflow_monitor.db.repositories import WorkflowRunRepository

__all__ = ["HEARTBEAT_STEP", "RunStoreMutator"]

logger = logging.getLogger(__name__)

HEARTBEAT_STEP = timedelta(microseconds=1)


class RunStoreMutator:
    """Applies decided corrections to persisted runs.

    Store errors (including :class:`WorkflowRunNotFoundError`) propagate to
    the caller; nothing here is retried or swallowed.

    Attributes:
        repository: Repository for the run table.
        clock: Source of "now" for ``updated_at`` and ``ended_at``.
    """

    def __init__(self, repository: WorkflowRunRepository, clock: Clock | None = None) -> None:
        self.repository = repository
        self.clock = clock or SystemClock()

    def next_heartbeat(self, previous: datetime | None) -> datetime:
        """Return the timestamp for the next write of a run.

        The clock reading is used unless it does not lie after ``previous``,
        in which case ``previous`` is advanced by :data:`HEARTBEAT_STEP`.

        Args:
            previous: The run's stored ``updated_at``.

        Returns:
            A timestamp strictly after ``previous``.
        """
        now = self.clock.now()
        if previous is None:
            return now
        previous = ensure_utc(previous)
        if now <= previous:
            return previous + HEARTBEAT_STEP
        return now

    async def apply_correction(
        self,
        run_id: UUID,
        new_status: RunStatus,
        error_message: str | None = None,
        *,
        expected_status: RunStatus | None = None,
    ) -> WorkflowRunModel:
        """Write a new status to a run.

        Sets ``updated_at`` to now, ``ended_at`` to now for terminal statuses
        (and clears it otherwise), and the error message when one is given.

        Args:
            run_id: The run to update.
            new_status: The status to write.
            error_message: Optional error message.
            expected_status: Only write if the stored status is still this one.

        Returns:
            The updated run.

        Raises:
            WorkflowRunNotFoundError: If the run does not exist.
            RunStatusConflictError: If the stored status no longer matches ``expected_status``.
        """
        run = await self.repository.get_run(run_id)
        now = self.next_heartbeat(run.updated_at)
        new_status = RunStatus(new_status)
        return await self.repository.update_status(
            run_id,
            new_status,
            updated_at=now,
            ended_at=now if new_status.is_terminal else None,
            error_message=error_message,
            expected_status=expected_status,
        )

    async def force_mark_failed(self, run_id: UUID, reason: str) -> WorkflowSyncResult:
        """Unconditionally fail a run, whatever its current state.

        Args:
            run_id: The run to fail.
            reason: Stored as the run's error message.

        Returns:
            Sync result with ``sync_reason=manual_sync``.

        Raises:
            WorkflowRunNotFoundError: If the run does not exist.
        """
        run = await self.repository.get_run(run_id)
        previous_status = RunStatus(run.status)
        execution_name = run.execution_name

        await self.apply_correction(run_id, RunStatus.FAILED, reason)

        logger.info(
            "Workflow run force marked as failed",
            extra={"run_id": str(run_id), "previous_status": str(previous_status), "reason": reason},
        )
        return WorkflowSyncResult(
            run_id=run_id,
            previous_status=previous_status,
            new_status=RunStatus.FAILED,
            execution_name=execution_name,
            sync_reason=SyncReason.MANUAL_SYNC,
            error_message=reason,
        )
