"""Core domain module for workflow-monitor.

This module exports the status types, the compatibility table, the result
models and the collaborator protocols used by the reconciliation engine.
"""

from __future__ import annotations

from workflow_monitor.core.clock import SystemClock, ensure_utc
from workflow_monitor.core.models import (
    Correction,
    ExecutionDetails,
    WorkflowExecutionStatus,
    WorkflowSyncResult,
)
from workflow_monitor.core.protocols import Clock, ExecutionsClient, RunDispatcher
from workflow_monitor.core.types import (
    STATUS_COMPATIBILITY,
    TERMINAL_STATUSES,
    ExecutionState,
    RunStatus,
    SyncReason,
    statuses_match,
)

__all__ = [
    "STATUS_COMPATIBILITY",
    "TERMINAL_STATUSES",
    "Clock",
    "Correction",
    "ExecutionDetails",
    "ExecutionState",
    "ExecutionsClient",
    "RunDispatcher",
    "RunStatus",
    "SyncReason",
    "SystemClock",
    "WorkflowExecutionStatus",
    "WorkflowSyncResult",
    "ensure_utc",
    "statuses_match",
]
