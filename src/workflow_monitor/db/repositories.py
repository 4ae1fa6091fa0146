"""Repository implementations for workflow run persistence.

This module provides async repositories for querying and updating run
records using advanced-alchemy's repository pattern.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Literal
from uuid import UUID

from advanced_alchemy.filters import LimitOffset, OrderBy
from advanced_alchemy.repository import SQLAlchemyAsyncRepository
from sqlalchemy import and_, func, or_, select, update

from workflow_monitor.core.types import RunStatus
from workflow_monitor.db.models import WorkflowRunModel, WorkflowStepModel
from workflow_monitor.exceptions import RunStatusConflictError, WorkflowRunNotFoundError

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime

__all__ = [
    "RunSortField",
    "WorkflowRunRepository",
    "WorkflowStepRepository",
]

RunSortField = Literal["created_at", "started_at", "ended_at", "updated_at"]


class WorkflowRunRepository(SQLAlchemyAsyncRepository[WorkflowRunModel]):
    """Repository for workflow run CRUD operations.

    Provides the queries the monitor sweeps over (running and stale runs),
    the admin listing, and the single status-writing method used by the
    run store mutator.
    """

    model_type = WorkflowRunModel

    async def get_run(self, run_id: UUID) -> WorkflowRunModel:
        """Get a run by ID.

        Args:
            run_id: The run ID.

        Returns:
            The run.

        Raises:
            WorkflowRunNotFoundError: If no such run exists.
        """
        run = await self.get_one_or_none(id=run_id)
        if run is None:
            raise WorkflowRunNotFoundError(run_id)
        return run

    async def find_running(self) -> Sequence[WorkflowRunModel]:
        """Find all runs whose local status is ``running``.

        Returns:
            Running runs, least recently updated first.
        """
        stmt = (
            select(WorkflowRunModel)
            .where(WorkflowRunModel.status == RunStatus.RUNNING)
            .order_by(WorkflowRunModel.updated_at)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def find_stale(self, cutoff: datetime) -> Sequence[WorkflowRunModel]:
        """Find running runs whose heartbeat is older than ``cutoff``.

        Args:
            cutoff: Runs updated before this instant are stale.

        Returns:
            Stale running runs, least recently updated first.
        """
        stmt = (
            select(WorkflowRunModel)
            .where(
                and_(
                    WorkflowRunModel.status == RunStatus.RUNNING,
                    WorkflowRunModel.updated_at < cutoff,
                )
            )
            .order_by(WorkflowRunModel.updated_at)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def find_runs(
        self,
        *,
        page: int = 1,
        limit: int = 50,
        status: RunStatus | None = None,
        search: str | None = None,
        sort_by: RunSortField = "created_at",
        sort_order: Literal["asc", "desc"] = "desc",
    ) -> tuple[Sequence[WorkflowRunModel], int]:
        """List runs for the admin view.

        Args:
            page: 1-based page number.
            limit: Page size.
            status: Optional status filter.
            search: Optional substring matched against story ID and execution name.
            sort_by: Column to order by.
            sort_order: ``asc`` or ``desc``.

        Returns:
            Tuple of (runs, total_count).
        """
        conditions: list[Any] = []

        if status:
            conditions.append(WorkflowRunModel.status == status)

        if search:
            pattern = f"%{search}%"
            conditions.append(
                or_(
                    WorkflowRunModel.story_id.ilike(pattern),
                    WorkflowRunModel.execution_name.ilike(pattern),
                )
            )

        return await self.list_and_count(
            *conditions,
            LimitOffset(limit=limit, offset=(max(page, 1) - 1) * limit),
            OrderBy(field_name=sort_by, sort_order=sort_order),
        )

    async def count_by_status(self, status: RunStatus | None = None) -> int:
        """Count runs, optionally restricted to one status.

        Args:
            status: Optional status filter.

        Returns:
            Number of matching runs.
        """
        stmt = select(func.count()).select_from(WorkflowRunModel)
        if status:
            stmt = stmt.where(WorkflowRunModel.status == status)
        result = await self.session.execute(stmt)
        return int(result.scalar_one())

    async def create_run(
        self,
        story_id: str,
        *,
        execution_name: str | None = None,
        run_id: UUID | None = None,
    ) -> WorkflowRunModel:
        """Create a queued run.

        Args:
            story_id: The story the run generates.
            execution_name: Optional remote execution handle.
            run_id: Optional explicit run ID.

        Returns:
            The persisted run.
        """
        run = WorkflowRunModel(
            story_id=story_id,
            execution_name=execution_name,
            status=RunStatus.QUEUED,
            metadata_={},
        )
        if run_id is not None:
            run.id = run_id
        return await self.add(run, auto_commit=True)

    async def update_status(
        self,
        run_id: UUID,
        status: RunStatus,
        *,
        updated_at: datetime,
        ended_at: datetime | None,
        error_message: str | None = None,
        expected_status: RunStatus | None = None,
    ) -> WorkflowRunModel:
        """Write a new status to a run and commit.

        When ``expected_status`` is given the write is a compare-and-set: the
        row is only updated if its stored status still equals it.

        Args:
            run_id: The run ID.
            status: The new status.
            updated_at: The new heartbeat value.
            ended_at: End timestamp, ``None`` for non-terminal statuses.
            error_message: Optional error message; left untouched when ``None``.
            expected_status: Optional status the stored row must still have.

        Returns:
            The updated run.

        Raises:
            WorkflowRunNotFoundError: If no such run exists.
            RunStatusConflictError: If the stored status no longer matches ``expected_status``.
        """
        run = await self.get_run(run_id)
        values: dict[str, Any] = {"status": status, "updated_at": updated_at, "ended_at": ended_at}
        if error_message is not None:
            values["error_message"] = error_message

        stmt = (
            update(WorkflowRunModel)
            .where(WorkflowRunModel.id == run_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if expected_status is not None:
            stmt = stmt.where(WorkflowRunModel.status == expected_status)

        result = await self.session.execute(stmt)
        await self.session.commit()
        await self.session.refresh(run)

        if expected_status is not None and not result.rowcount:  # type: ignore[attr-defined]
            raise RunStatusConflictError(run_id, str(expected_status), str(run.status))
        return run


class WorkflowStepRepository(SQLAlchemyAsyncRepository[WorkflowStepModel]):
    """Repository for run step records."""

    model_type = WorkflowStepModel

    async def find_by_run(self, run_id: UUID) -> Sequence[WorkflowStepModel]:
        """Find all steps recorded for a run.

        Args:
            run_id: The run ID.

        Returns:
            Steps ordered by start time.
        """
        stmt = (
            select(WorkflowStepModel)
            .where(WorkflowStepModel.run_id == run_id)
            .order_by(WorkflowStepModel.started_at, WorkflowStepModel.created_at)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()
