"""Clients for the remote workflow engine."""

from __future__ import annotations

from workflow_monitor.client.executions import (
    DEFAULT_BASE_URL,
    GoogleWorkflowsExecutionsClient,
    execution_from_payload,
)

__all__ = ["DEFAULT_BASE_URL", "GoogleWorkflowsExecutionsClient", "execution_from_payload"]
