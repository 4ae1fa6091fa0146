"""Data Transfer Objects for the workflow monitor web API.

This module defines DTOs for serializing run records and monitor results
in REST API responses.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any
from uuid import UUID

if TYPE_CHECKING:
    from workflow_monitor.db.models import WorkflowRunModel, WorkflowStepModel

__all__ = [
    "PaginationDTO",
    "RetryResultDTO",
    "WorkflowRunDTO",
    "WorkflowRunDetailDTO",
    "WorkflowRunPageDTO",
    "WorkflowStepDTO",
    "run_to_dto",
    "step_to_dto",
]


@dataclass
class WorkflowRunDTO:
    """DTO for a workflow run summary.

    Attributes:
        id: Run ID.
        story_id: The story the run generates.
        execution_name: Remote execution handle, if dispatched.
        status: Current local status.
        current_step: Step the run last reported.
        error_message: Error message if the run failed.
        started_at: When the remote execution was accepted.
        ended_at: When the run reached a terminal status.
        created_at: When the run was created.
        updated_at: Last status write (heartbeat).
    """

    id: UUID
    story_id: str
    execution_name: str | None
    status: str
    current_step: str | None
    error_message: str | None
    started_at: datetime | None
    ended_at: datetime | None
    created_at: datetime
    updated_at: datetime


@dataclass
class WorkflowStepDTO:
    """DTO for a run step record.

    Attributes:
        id: Step record ID.
        step_name: Name of the workflow step.
        status: Step status.
        detail: Step output or diagnostics.
        error_message: Error message if the step failed.
        started_at: When the step started.
        ended_at: When the step finished.
    """

    id: UUID
    step_name: str
    status: str
    detail: dict[str, Any] | None = None
    error_message: str | None = None
    started_at: datetime | None = None
    ended_at: datetime | None = None


@dataclass
class WorkflowRunDetailDTO:
    """DTO for a run with its metadata and steps.

    Attributes:
        workflow_run: The run summary.
        metadata: Free-form run metadata.
        steps: Steps recorded for the run.
    """

    workflow_run: WorkflowRunDTO
    metadata: dict[str, Any] = field(default_factory=dict)
    steps: list[WorkflowStepDTO] = field(default_factory=list)


@dataclass
class PaginationDTO:
    """DTO for pagination info.

    Attributes:
        current_page: 1-based page number.
        total_pages: Number of pages at the current page size.
        total_items: Number of matching runs.
        items_per_page: Page size.
    """

    current_page: int
    total_pages: int
    total_items: int
    items_per_page: int


@dataclass
class WorkflowRunPageDTO:
    """DTO for one page of the run listing.

    Attributes:
        workflows: Runs on this page.
        pagination: Pagination info.
    """

    workflows: list[WorkflowRunDTO]
    pagination: PaginationDTO


@dataclass
class RetryResultDTO:
    """DTO returned after a retry was requested.

    Attributes:
        success: Always True; failures are reported as errors.
        message: Human-readable confirmation.
        new_run_id: The queued run created for the retry.
        original_run_id: The failed run that was retried.
    """

    success: bool
    message: str
    new_run_id: UUID
    original_run_id: UUID


def run_to_dto(run: WorkflowRunModel) -> WorkflowRunDTO:
    """Convert a run model into its summary DTO."""
    return WorkflowRunDTO(
        id=run.id,
        story_id=run.story_id,
        execution_name=run.execution_name,
        status=str(run.status),
        current_step=run.current_step,
        error_message=run.error_message,
        started_at=run.started_at,
        ended_at=run.ended_at,
        created_at=run.created_at,
        updated_at=run.updated_at,
    )


def step_to_dto(step: WorkflowStepModel) -> WorkflowStepDTO:
    """Convert a step model into its DTO."""
    return WorkflowStepDTO(
        id=step.id,
        step_name=step.step_name,
        status=step.status,
        detail=step.detail,
        error_message=step.error_message,
        started_at=step.started_at,
        ended_at=step.ended_at,
    )
