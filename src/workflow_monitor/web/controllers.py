"""REST API controllers for workflow run monitoring.

This module provides two controller classes:
- WorkflowMonitorController: Status checks, sync, stale cleanup and overrides
- WorkflowRunController: Run listing, run details and retries
"""

from __future__ import annotations

from math import ceil
from typing import Any, ClassVar, Literal
from uuid import UUID

from litestar import Controller, get, post
from litestar.params import Dependency, Parameter
from litestar.status_codes import HTTP_200_OK

from workflow_monitor.core.models import ExecutionDetails, WorkflowExecutionStatus, WorkflowSyncResult
from workflow_monitor.core.protocols import RunDispatcher  # noqa: TC001 - needed for DI
from workflow_monitor.core.types import RunStatus
from workflow_monitor.db.repositories import (  # noqa: TC001 - needed for DI
    WorkflowRunRepository,
    WorkflowStepRepository,
)
from workflow_monitor.engine.monitor import WorkflowMonitorService  # noqa: TC001 - needed for DI
from workflow_monitor.exceptions import DispatcherNotConfiguredError
from workflow_monitor.web.dto import (
    PaginationDTO,
    RetryResultDTO,
    WorkflowRunDetailDTO,
    WorkflowRunPageDTO,
    run_to_dto,
    step_to_dto,
)
from workflow_monitor.web.exceptions import InvalidActionError

__all__ = [
    "DEFAULT_MARK_FAILED_REASON",
    "WorkflowMonitorController",
    "WorkflowRunController",
]

DEFAULT_MARK_FAILED_REASON = "Manually marked as failed by admin"


class WorkflowMonitorController(Controller):
    """API controller for run reconciliation.

    Every endpoint dispatches on the ``action`` query parameter.

    Tags: Workflow Monitor
    """

    path = "/monitor"
    tags: ClassVar[list[str]] = ["Workflow Monitor"]

    @get("/")
    async def check_workflows(
        self,
        workflow_monitor: WorkflowMonitorService,
        action: str | None = Parameter(
            default=None,
            description="'status' for a full comparison, 'health' for a liveness summary",
        ),
    ) -> dict[str, Any]:
        """Check all running workflow runs against the workflow engine.

        Args:
            workflow_monitor: Injected monitor service.
            action: ``status`` or ``health``.

        Returns:
            Summary counts and per-run statuses, or a health summary.

        Raises:
            InvalidActionError: For any other action.
        """
        if action == "status":
            statuses = await workflow_monitor.check_all_running()
            return {
                "success": True,
                "summary": workflow_monitor.summarize_statuses(statuses),
                "workflows": statuses,
            }

        if action == "health":
            statuses = await workflow_monitor.check_all_running()
            return {
                "success": True,
                "healthy": True,
                "timestamp": workflow_monitor.clock.now().isoformat(),
                "running_workflows": len(statuses),
            }

        raise InvalidActionError(action, ("status", "health"))

    @post("/", status_code=HTTP_200_OK)
    async def sync_workflows(
        self,
        workflow_monitor: WorkflowMonitorService,
        action: str | None = Parameter(
            default=None,
            description="'sync-all' to reconcile every running run, 'cleanup-stale' to fail stale runs",
        ),
    ) -> dict[str, Any]:
        """Reconcile running workflow runs.

        Args:
            workflow_monitor: Injected monitor service.
            action: ``sync-all`` or ``cleanup-stale``.

        Returns:
            Summary counts and the sync results.

        Raises:
            InvalidActionError: For any other action.
        """
        if action == "sync-all":
            results = await workflow_monitor.reconcile_all()
            return {
                "success": True,
                "summary": workflow_monitor.summarize_sync(results),
                "synced": results,
            }

        if action == "cleanup-stale":
            results = await workflow_monitor.cleanup_stale()
            return {
                "success": True,
                "summary": workflow_monitor.summarize_cleanup(results),
                "cleaned": results,
            }

        raise InvalidActionError(action, ("sync-all", "cleanup-stale"))

    @get("/{run_id:uuid}")
    async def check_run(
        self,
        run_id: UUID,
        workflow_monitor: WorkflowMonitorService,
        action: str | None = Parameter(
            default=None,
            description="'status' to compare with the engine, 'logs' for the remote execution record",
        ),
    ) -> dict[str, Any]:
        """Inspect a single workflow run.

        Args:
            run_id: The run ID.
            workflow_monitor: Injected monitor service.
            action: ``status`` or ``logs``.

        Returns:
            The run's status comparison or its remote execution record.

        Raises:
            InvalidActionError: For any other action.
        """
        if action == "status":
            status: WorkflowExecutionStatus = await workflow_monitor.check_run_status(run_id)
            return {"success": True, "workflow": status}

        if action == "logs":
            logs: ExecutionDetails = await workflow_monitor.get_execution_details(run_id)
            return {"success": True, "logs": logs}

        raise InvalidActionError(action, ("status", "logs"))

    @post("/{run_id:uuid}", status_code=HTTP_200_OK)
    async def sync_run(
        self,
        run_id: UUID,
        workflow_monitor: WorkflowMonitorService,
        action: str | None = Parameter(
            default=None,
            description="'sync' to reconcile the run, 'mark-failed' to force it to failed",
        ),
        reason: str = Parameter(
            default=DEFAULT_MARK_FAILED_REASON,
            max_length=2000,
            description="Error message recorded by 'mark-failed'",
        ),
    ) -> dict[str, Any]:
        """Reconcile or override a single workflow run.

        Args:
            run_id: The run ID.
            workflow_monitor: Injected monitor service.
            action: ``sync`` or ``mark-failed``.
            reason: Error message for ``mark-failed``.

        Returns:
            The sync result.

        Raises:
            InvalidActionError: For any other action.
        """
        if action == "sync":
            synced: WorkflowSyncResult = await workflow_monitor.reconcile(run_id)
            return {"success": True, "synced": synced}

        if action == "mark-failed":
            updated = await workflow_monitor.force_mark_failed(run_id, reason)
            return {"success": True, "updated": updated}

        raise InvalidActionError(action, ("sync", "mark-failed"))


class WorkflowRunController(Controller):
    """API controller for browsing and retrying workflow runs.

    Tags: Workflow Runs
    """

    path = "/runs"
    tags: ClassVar[list[str]] = ["Workflow Runs"]

    @get("/")
    async def list_runs(
        self,
        workflow_run_repo: WorkflowRunRepository,
        page: int = Parameter(default=1, ge=1, description="1-based page number"),
        limit: int = Parameter(default=50, ge=1, le=100, description="Page size"),
        status: RunStatus | None = Parameter(default=None, description="Filter by status"),
        search: str | None = Parameter(default=None, description="Substring of story ID or execution name"),
        sort_by: Literal["created_at", "started_at", "ended_at", "updated_at"] = Parameter(
            default="created_at",
            description="Sort column",
        ),
        sort_order: Literal["asc", "desc"] = Parameter(default="desc", description="Sort direction"),
    ) -> WorkflowRunPageDTO:
        """List workflow runs with filtering and pagination.

        Args:
            workflow_run_repo: Injected run repository.
            page: Page number.
            limit: Page size.
            status: Optional status filter.
            search: Optional search string.
            sort_by: Sort column.
            sort_order: Sort direction.

        Returns:
            One page of runs and pagination info.
        """
        runs, total = await workflow_run_repo.find_runs(
            page=page,
            limit=limit,
            status=status,
            search=search,
            sort_by=sort_by,
            sort_order=sort_order,
        )
        return WorkflowRunPageDTO(
            workflows=[run_to_dto(run) for run in runs],
            pagination=PaginationDTO(
                current_page=page,
                total_pages=ceil(total / limit),
                total_items=total,
                items_per_page=limit,
            ),
        )

    @get("/{run_id:uuid}")
    async def get_run(
        self,
        run_id: UUID,
        workflow_run_repo: WorkflowRunRepository,
        workflow_step_repo: WorkflowStepRepository,
    ) -> WorkflowRunDetailDTO:
        """Get a workflow run with its steps.

        Args:
            run_id: The run ID.
            workflow_run_repo: Injected run repository.
            workflow_step_repo: Injected step repository.

        Returns:
            The run details.

        Raises:
            WorkflowRunNotFoundError: If the run does not exist.
        """
        run = await workflow_run_repo.get_run(run_id)
        steps = await workflow_step_repo.find_by_run(run_id)

        return WorkflowRunDetailDTO(
            workflow_run=run_to_dto(run),
            metadata=run.metadata_ or {},
            steps=[step_to_dto(step) for step in steps],
        )

    @post("/{run_id:uuid}/retry", status_code=HTTP_200_OK)
    async def retry_run(
        self,
        run_id: UUID,
        workflow_monitor: WorkflowMonitorService,
        run_dispatcher: RunDispatcher | None = Dependency(skip_validation=True),
    ) -> RetryResultDTO:
        """Retry a failed workflow run.

        Creates a new queued run for the same story and hands it to the
        configured dispatcher.

        Args:
            run_id: The failed run.
            workflow_monitor: Injected monitor service.
            run_dispatcher: Injected run dispatcher, if configured.

        Returns:
            The retry confirmation.

        Raises:
            DispatcherNotConfiguredError: If no dispatcher is configured.
            InvalidRetryError: If the run is not failed.
        """
        if run_dispatcher is None:
            raise DispatcherNotConfiguredError

        new_run = await workflow_monitor.retry_run(run_id, run_dispatcher)
        return RetryResultDTO(
            success=True,
            message="Workflow retry initiated",
            new_run_id=new_run.id,
            original_run_id=run_id,
        )
