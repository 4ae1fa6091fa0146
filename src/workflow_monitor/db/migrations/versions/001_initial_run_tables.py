"""Initial story generation run tables.

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create run and step tables."""
    # Create story_generation_runs table
    op.create_table(
        "story_generation_runs",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("story_id", sa.String(length=255), nullable=False),
        sa.Column("execution_name", sa.String(length=1024), nullable=True),
        sa.Column("status", sa.String(length=50), nullable=False, default="queued"),
        sa.Column("current_step", sa.String(length=255), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("ended_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_story_generation_runs_status",
        "story_generation_runs",
        ["status"],
    )
    op.create_index(
        "ix_story_generation_runs_story_id",
        "story_generation_runs",
        ["story_id"],
    )
    op.create_index(
        "ix_story_generation_runs_status_updated_at",
        "story_generation_runs",
        ["status", "updated_at"],
    )

    # Create story_generation_steps table
    op.create_table(
        "story_generation_steps",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("run_id", sa.Uuid(), nullable=False),
        sa.Column("step_name", sa.String(length=255), nullable=False),
        sa.Column("status", sa.String(length=50), nullable=False, default="pending"),
        sa.Column("detail", sa.JSON(), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("ended_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["run_id"],
            ["story_generation_runs.id"],
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_story_generation_steps_run_id",
        "story_generation_steps",
        ["run_id"],
    )


def downgrade() -> None:
    """Drop run and step tables."""
    op.drop_table("story_generation_steps")
    op.drop_table("story_generation_runs")
