"""Reconciliation engine for workflow-monitor."""

from __future__ import annotations

from workflow_monitor.engine.config import MonitorConfig
from workflow_monitor.engine.fetcher import ExecutionStatusFetcher
from workflow_monitor.engine.locks import RunLockRegistry
from workflow_monitor.engine.monitor import WorkflowMonitorService
from workflow_monitor.engine.mutator import RunStoreMutator
from workflow_monitor.engine.reconciler import StatusReconciler

__all__ = [
    "ExecutionStatusFetcher",
    "MonitorConfig",
    "RunLockRegistry",
    "RunStoreMutator",
    "StatusReconciler",
    "WorkflowMonitorService",
]
