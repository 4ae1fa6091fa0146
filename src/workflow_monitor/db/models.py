"""SQLAlchemy models for workflow run persistence.

This module defines the database models backing the run store:
- WorkflowRunModel: One locally tracked story-generation run
- WorkflowStepModel: Step progress reported by a run
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from advanced_alchemy.base import UUIDAuditBase
from advanced_alchemy.types import DateTimeUTC
from sqlalchemy import JSON, Enum, ForeignKey, Index, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from workflow_monitor.core.types import RunStatus

__all__ = [
    "WorkflowRunModel",
    "WorkflowStepModel",
]


# Cross-database JSON type: uses JSONB for PostgreSQL, JSON for others (SQLite, MySQL, etc.)
JSONType = JSON().with_variant(JSONB, "postgresql")


def _enum_values(enum_cls: type[RunStatus]) -> list[str]:
    return [member.value for member in enum_cls]


class WorkflowRunModel(UUIDAuditBase):
    """Persisted story-generation run.

    ``updated_at`` doubles as the run heartbeat used for staleness detection,
    and ``ended_at`` is set exactly when ``status`` is terminal.

    Attributes:
        story_id: The story this run generates.
        execution_name: Full resource name of the remote execution, once dispatched.
        status: Local source of truth for the run status.
        current_step: Name of the step the run last reported.
        error_message: Error message if the run failed.
        metadata_: Free-form run metadata.
        started_at: When the remote execution was accepted.
        ended_at: When the run reached a terminal status.
        steps: Related step records.
    """

    __tablename__ = "story_generation_runs"
    __table_args__ = (
        Index("ix_story_generation_runs_status", "status"),
        Index("ix_story_generation_runs_story_id", "story_id"),
        Index("ix_story_generation_runs_status_updated_at", "status", "updated_at"),
    )

    story_id: Mapped[str] = mapped_column(String(255))
    execution_name: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    status: Mapped[RunStatus] = mapped_column(
        Enum(RunStatus, native_enum=False, length=50, values_callable=_enum_values),
        default=RunStatus.QUEUED,
    )
    current_step: Mapped[str | None] = mapped_column(String(255), nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    metadata_: Mapped[dict[str, Any]] = mapped_column(
        "metadata",
        JSONType,
        default=dict,
    )
    started_at: Mapped[datetime | None] = mapped_column(DateTimeUTC(timezone=True), nullable=True)
    ended_at: Mapped[datetime | None] = mapped_column(DateTimeUTC(timezone=True), nullable=True)

    # Relationships
    steps: Mapped[list[WorkflowStepModel]] = relationship(
        back_populates="run",
        lazy="noload",
        order_by="WorkflowStepModel.started_at",
    )


class WorkflowStepModel(UUIDAuditBase):
    """Progress record for one step of a run.

    Attributes:
        run_id: Foreign key to the run.
        step_name: Name of the workflow step.
        status: Step status as reported by the workflow.
        detail: Step output or diagnostic payload.
        error_message: Error message if the step failed.
        started_at: When the step started.
        ended_at: When the step finished.
    """

    __tablename__ = "story_generation_steps"
    __table_args__ = (Index("ix_story_generation_steps_run_id", "run_id"),)

    run_id: Mapped[UUID] = mapped_column(
        ForeignKey("story_generation_runs.id", ondelete="CASCADE"),
    )
    step_name: Mapped[str] = mapped_column(String(255))
    status: Mapped[str] = mapped_column(String(50), default="pending")
    detail: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    started_at: Mapped[datetime | None] = mapped_column(DateTimeUTC(timezone=True), nullable=True)
    ended_at: Mapped[datetime | None] = mapped_column(DateTimeUTC(timezone=True), nullable=True)

    # Relationships
    run: Mapped[WorkflowRunModel] = relationship(
        back_populates="steps",
    )
