"""Database persistence layer for workflow-monitor.

This module provides SQLAlchemy models and repositories for the run store
that the reconciliation engine reads from and writes to.
"""

from __future__ import annotations

from workflow_monitor.db.models import WorkflowRunModel, WorkflowStepModel
from workflow_monitor.db.repositories import WorkflowRunRepository, WorkflowStepRepository

__all__ = [
    "WorkflowRunModel",
    "WorkflowRunRepository",
    "WorkflowStepModel",
    "WorkflowStepRepository",
]
