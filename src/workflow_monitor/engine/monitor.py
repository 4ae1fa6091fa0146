"""Workflow monitor service.

This module composes the fetcher, the reconciler and the run store mutator
into the operations exposed to the admin API: per-run inspection and sync,
the best-effort sweep over all running runs, stale cleanup, manual override,
execution detail lookup and retries.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from workflow_monitor.core.clock import SystemClock
from workflow_monitor.core.models import WorkflowSyncResult
from workflow_monitor.core.types import ExecutionState, RunStatus, SyncReason
from workflow_monitor.db.repositories import WorkflowRunRepository
from workflow_monitor.engine.config import MonitorConfig
from workflow_monitor.engine.fetcher import ExecutionStatusFetcher
from workflow_monitor.engine.locks import RunLockRegistry
from workflow_monitor.engine.mutator import RunStoreMutator
from workflow_monitor.engine.reconciler import StatusReconciler
from workflow_monitor.exceptions import (
    ExecutionClientError,
    ExecutionHandleMissingError,
    InvalidRetryError,
    RunStatusConflictError,
)

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID

    from sqlalchemy.ext.asyncio import AsyncSession

    from workflow_monitor.core.models import ExecutionDetails, WorkflowExecutionStatus
    from workflow_monitor.core.protocols import Clock, ExecutionsClient, RunDispatcher
    from workflow_monitor.db.models import WorkflowRunModel

__all__ = ["WorkflowMonitorService"]

logger = logging.getLogger(__name__)


class WorkflowMonitorService:
    """Keeps locally stored run statuses in line with the workflow engine.

    Attributes:
        session: SQLAlchemy async session for the run store.
        config: Staleness and timeout settings.
        clock: Source of "now".
        locks: Registry serializing work on the same run.
        repository: Run repository.
        fetcher: Remote status fetcher.
        reconciler: Decision logic.
        mutator: Status writer.
    """

    def __init__(
        self,
        session: AsyncSession,
        executions_client: ExecutionsClient,
        *,
        config: MonitorConfig | None = None,
        clock: Clock | None = None,
        locks: RunLockRegistry | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            session: SQLAlchemy async session.
            executions_client: Client for the remote workflow engine.
            config: Optional monitor configuration.
            clock: Optional clock, defaults to the UTC wall clock.
            locks: Lock registry shared by every service instance in the process.
        """
        self.session = session
        self.executions_client = executions_client
        self.config = config or MonitorConfig()
        self.clock = clock or SystemClock()
        self.locks = locks or RunLockRegistry()

        self.repository = WorkflowRunRepository(session=session)
        self.fetcher = ExecutionStatusFetcher(executions_client, timeout=self.config.fetch_timeout)
        self.reconciler = StatusReconciler(stale_timeout=self.config.stale_timeout, clock=self.clock)
        self.mutator = RunStoreMutator(self.repository, clock=self.clock)

    async def _inspect(self, run: WorkflowRunModel) -> WorkflowExecutionStatus:
        execution_state = ExecutionState.UNKNOWN
        if run.execution_name:
            execution_state = await self.fetcher.fetch_remote_status(run.execution_name)
        elif run.status == RunStatus.RUNNING:
            logger.warning("Running workflow has no execution name", extra={"run_id": str(run.id)})
        return self.reconciler.inspect(run, execution_state)

    async def check_run_status(self, run_id: UUID) -> WorkflowExecutionStatus:
        """Compare one run against its remote execution.

        Args:
            run_id: The run to inspect.

        Returns:
            The diagnostic status.

        Raises:
            WorkflowRunNotFoundError: If the run does not exist.
        """
        run = await self.repository.get_run(run_id)
        return await self._inspect(run)

    async def check_all_running(self) -> list[WorkflowExecutionStatus]:
        """Inspect every run whose local status is ``running``.

        Returns:
            One diagnostic status per running run.
        """
        runs = await self.repository.find_running()
        logger.info("Checking status of running workflow runs", extra={"count": len(runs)})
        return [await self._inspect(run) for run in runs]

    async def reconcile(
        self,
        run_id: UUID,
        reason: SyncReason = SyncReason.MANUAL_SYNC,
    ) -> WorkflowSyncResult:
        """Reconcile one run and persist the correction, if one is due.

        Nothing is written when the stored status stands, or when another
        worker changed the run after it was read.

        Args:
            run_id: The run to reconcile.
            reason: Reported as ``sync_reason`` when no correction is made.

        Returns:
            The sync result; ``previous_status == new_status`` when unchanged.

        Raises:
            WorkflowRunNotFoundError: If the run does not exist.
        """
        async with self.locks.hold(run_id):
            run = await self.repository.get_run(run_id)
            status = await self._inspect(run)
            correction = self.reconciler.decide(status)

            if correction is None:
                return WorkflowSyncResult(
                    run_id=run_id,
                    previous_status=status.current_status,
                    new_status=status.current_status,
                    execution_name=status.execution_name,
                    sync_reason=reason,
                )

            try:
                await self.mutator.apply_correction(
                    run_id,
                    correction.status,
                    correction.error_message,
                    expected_status=status.current_status,
                )
            except RunStatusConflictError as exc:
                logger.warning(
                    "Workflow run changed during sync, correction skipped",
                    extra={
                        "run_id": str(run_id),
                        "expected_status": exc.expected_status,
                        "actual_status": exc.actual_status,
                    },
                )
                current = RunStatus(exc.actual_status)
                return WorkflowSyncResult(
                    run_id=run_id,
                    previous_status=current,
                    new_status=current,
                    execution_name=status.execution_name,
                    sync_reason=reason,
                )

        logger.info(
            "Workflow status synchronized",
            extra={
                "run_id": str(run_id),
                "previous_status": str(status.current_status),
                "new_status": str(correction.status),
                "execution_name": status.execution_name,
                "sync_reason": str(correction.reason),
            },
        )
        return WorkflowSyncResult(
            run_id=run_id,
            previous_status=status.current_status,
            new_status=correction.status,
            execution_name=status.execution_name,
            sync_reason=correction.reason,
            error_message=correction.error_message,
        )

    async def _sweep(self, run_ids: Sequence[UUID], reason: SyncReason) -> list[WorkflowSyncResult]:
        results = []
        for run_id in run_ids:
            try:
                results.append(await self.reconcile(run_id, reason))
            except Exception:
                logger.exception("Failed to sync workflow", extra={"run_id": str(run_id)})
                await self.session.rollback()
        return results

    async def reconcile_all(self) -> list[WorkflowSyncResult]:
        """Reconcile every running run, best effort.

        A failure on one run is logged and skipped; the sweep carries on.

        Returns:
            Results for the runs whose status was corrected.
        """
        run_ids = [run.id for run in await self.repository.find_running()]
        logger.info("Syncing running workflow runs", extra={"count": len(run_ids)})
        results = await self._sweep(run_ids, SyncReason.MANUAL_SYNC)
        return [result for result in results if result.changed]

    async def cleanup_stale(self) -> list[WorkflowSyncResult]:
        """Reconcile every running run whose heartbeat is past the threshold.

        Returns:
            One result per stale run that was processed without error.
        """
        cutoff = self.clock.now() - self.config.stale_timeout
        run_ids = [run.id for run in await self.repository.find_stale(cutoff)]
        logger.info(
            "Cleaning up stale workflow runs",
            extra={"count": len(run_ids), "cutoff": cutoff.isoformat()},
        )
        return await self._sweep(run_ids, SyncReason.STALE_TIMEOUT)

    async def force_mark_failed(self, run_id: UUID, reason: str) -> WorkflowSyncResult:
        """Fail a run unconditionally (operator override).

        Args:
            run_id: The run to fail.
            reason: Stored as the run's error message.

        Returns:
            Sync result with ``sync_reason=manual_sync``.

        Raises:
            WorkflowRunNotFoundError: If the run does not exist.
        """
        async with self.locks.hold(run_id):
            return await self.mutator.force_mark_failed(run_id, reason)

    async def get_execution_details(self, run_id: UUID) -> ExecutionDetails:
        """Fetch the remote execution record of a run.

        Args:
            run_id: The run whose execution to fetch.

        Returns:
            The execution as reported by the engine.

        Raises:
            WorkflowRunNotFoundError: If the run does not exist.
            ExecutionHandleMissingError: If the run has no execution handle.
            ExecutionClientError: If the engine cannot be read.
        """
        run = await self.repository.get_run(run_id)
        if not run.execution_name:
            raise ExecutionHandleMissingError(run_id)

        try:
            return await asyncio.wait_for(
                self.executions_client.get_execution(run.execution_name),
                timeout=self.config.fetch_timeout,
            )
        except asyncio.TimeoutError as exc:
            raise ExecutionClientError(run.execution_name, "timed out") from exc

    async def retry_run(self, run_id: UUID, dispatcher: RunDispatcher) -> WorkflowRunModel:
        """Start a new run for the story of a failed run.

        Args:
            run_id: The failed run.
            dispatcher: Hands the new run to the workflow trigger.

        Returns:
            The newly created, queued run.

        Raises:
            WorkflowRunNotFoundError: If the run does not exist.
            InvalidRetryError: If the run is not failed.
            Exception: Whatever the dispatcher raises; the queued run is removed first.
        """
        original = await self.repository.get_run(run_id)
        if original.status != RunStatus.FAILED:
            raise InvalidRetryError(run_id, str(original.status))

        story_id = original.story_id
        new_run = await self.repository.create_run(story_id, run_id=uuid4())
        try:
            await dispatcher.dispatch(story_id, new_run.id)
        except Exception:
            logger.exception(
                "Workflow retry dispatch failed, discarding queued run",
                extra={"story_id": story_id, "run_id": str(new_run.id), "original_run_id": str(run_id)},
            )
            await self.repository.delete(new_run.id, auto_commit=True)
            raise

        logger.info(
            "Workflow retry requested",
            extra={"story_id": story_id, "run_id": str(new_run.id), "original_run_id": str(run_id)},
        )
        return new_run

    @staticmethod
    def summarize_statuses(statuses: Sequence[WorkflowExecutionStatus]) -> dict[str, Any]:
        """Counts for the ``status`` admin action."""
        return {
            "total": len(statuses),
            "status_match": sum(1 for s in statuses if s.status_match),
            "status_mismatch": sum(1 for s in statuses if not s.status_match),
            "stale": sum(1 for s in statuses if s.is_stale),
            "needs_sync": sum(1 for s in statuses if s.needs_sync),
        }

    @staticmethod
    def summarize_sync(results: Sequence[WorkflowSyncResult]) -> dict[str, Any]:
        """Counts for the ``sync-all`` admin action."""
        return {
            "total": len(results),
            "completed": sum(1 for r in results if r.new_status == RunStatus.COMPLETED),
            "failed": sum(1 for r in results if r.new_status == RunStatus.FAILED),
            "cancelled": sum(1 for r in results if r.new_status == RunStatus.CANCELLED),
            "stale_timeouts": sum(1 for r in results if r.sync_reason == SyncReason.STALE_TIMEOUT),
        }

    @staticmethod
    def summarize_cleanup(results: Sequence[WorkflowSyncResult]) -> dict[str, Any]:
        """Counts for the ``cleanup-stale`` admin action."""
        return {
            "cleaned": len(results),
            "failed": sum(1 for r in results if r.new_status == RunStatus.FAILED),
        }
