"""Workflow Monitor - run status reconciliation for Litestar.

This package keeps locally stored workflow runs in line with the remote
workflow engine that executes them (Google Cloud Workflows). Runs that the
engine finished, failed or cancelled are corrected, runs that stopped
reporting are failed after a staleness threshold, and operators get an admin
API to inspect, sync, override and retry runs.

Key Features:
    - Status compatibility table between local and remote states
    - Per-run reconciliation with a single status write per correction
    - Best-effort sweeps over all running runs
    - Stale run cleanup
    - Litestar plugin with dependency injection and admin endpoints

Example:
    >>> from workflow_monitor import WorkflowMonitorService
    >>>
    >>> async with session_maker() as session:
    ...     service = WorkflowMonitorService(session, executions_client)
    ...     corrected = await service.reconcile_all()
"""

from __future__ import annotations

from workflow_monitor.__metadata__ import __project__, __version__
from workflow_monitor.client.executions import GoogleWorkflowsExecutionsClient
from workflow_monitor.core.models import ExecutionDetails, WorkflowExecutionStatus, WorkflowSyncResult
from workflow_monitor.core.types import ExecutionState, RunStatus, SyncReason
from workflow_monitor.engine.config import MonitorConfig
from workflow_monitor.engine.monitor import WorkflowMonitorService
from workflow_monitor.exceptions import (
    DispatcherNotConfiguredError,
    ExecutionAccessDeniedError,
    ExecutionClientError,
    ExecutionHandleMissingError,
    ExecutionNotFoundError,
    InvalidRetryError,
    RunStatusConflictError,
    WorkflowMonitorError,
    WorkflowRunNotFoundError,
)
from workflow_monitor.plugin import WorkflowMonitorPlugin, WorkflowMonitorPluginConfig

__all__ = (
    "DispatcherNotConfiguredError",
    "ExecutionAccessDeniedError",
    "ExecutionClientError",
    "ExecutionDetails",
    "ExecutionHandleMissingError",
    "ExecutionNotFoundError",
    "ExecutionState",
    "GoogleWorkflowsExecutionsClient",
    "InvalidRetryError",
    "MonitorConfig",
    "RunStatus",
    "RunStatusConflictError",
    "SyncReason",
    "WorkflowExecutionStatus",
    "WorkflowMonitorError",
    "WorkflowMonitorPlugin",
    "WorkflowMonitorPluginConfig",
    "WorkflowMonitorService",
    "WorkflowRunNotFoundError",
    "WorkflowSyncResult",
    "__project__",
    "__version__",
)
