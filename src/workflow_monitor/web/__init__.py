"""Web layer for workflow-monitor.

This module provides the admin REST API controllers, the response DTOs and
the exception handlers that the WorkflowMonitorPlugin registers on the app.

Example:
    The API is enabled by default and mounted under ``/admin/workflows``::

        from litestar import Litestar
        from workflow_monitor import WorkflowMonitorPlugin, WorkflowMonitorPluginConfig

        app = Litestar(
            plugins=[
                WorkflowMonitorPlugin(
                    config=WorkflowMonitorPluginConfig(
                        executions_client=client,
                        api_guards=[require_admin_guard],
                    )
                ),
            ],
        )

    Endpoints:
        - ``GET  /monitor?action=status|health``
        - ``POST /monitor?action=sync-all|cleanup-stale``
        - ``GET  /monitor/{run_id}?action=status|logs``
        - ``POST /monitor/{run_id}?action=sync|mark-failed``
        - ``GET  /runs``
        - ``GET  /runs/{run_id}``
        - ``POST /runs/{run_id}/retry``
"""

from __future__ import annotations

from workflow_monitor.web.controllers import (
    DEFAULT_MARK_FAILED_REASON,
    WorkflowMonitorController,
    WorkflowRunController,
)
from workflow_monitor.web.dto import (
    PaginationDTO,
    RetryResultDTO,
    WorkflowRunDetailDTO,
    WorkflowRunDTO,
    WorkflowRunPageDTO,
    WorkflowStepDTO,
)
from workflow_monitor.web.exceptions import InvalidActionError, error_response, exception_handlers

__all__ = [
    "DEFAULT_MARK_FAILED_REASON",
    "InvalidActionError",
    "PaginationDTO",
    "RetryResultDTO",
    "WorkflowMonitorController",
    "WorkflowRunController",
    "WorkflowRunDTO",
    "WorkflowRunDetailDTO",
    "WorkflowRunPageDTO",
    "WorkflowStepDTO",
    "error_response",
    "exception_handlers",
]
