"""Exception handling for workflow monitor web endpoints.

This module maps the workflow-monitor exception hierarchy onto HTTP
responses. Every error body has the shape ``{"success": false, "error": ...}``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from litestar import Response
from litestar.status_codes import (
    HTTP_400_BAD_REQUEST,
    HTTP_404_NOT_FOUND,
    HTTP_409_CONFLICT,
    HTTP_501_NOT_IMPLEMENTED,
    HTTP_502_BAD_GATEWAY,
)

from workflow_monitor.exceptions import (
    DispatcherNotConfiguredError,
    ExecutionClientError,
    ExecutionHandleMissingError,
    InvalidRetryError,
    WorkflowRunNotFoundError,
)

if TYPE_CHECKING:  # pragma: no cover
    from litestar import Request
    from litestar.types import ExceptionHandlersMap

__all__ = [
    "InvalidActionError",
    "error_response",
    "exception_handlers",
]

logger = logging.getLogger(__name__)


class InvalidActionError(Exception):
    """Raised when an admin endpoint gets an ``action`` it does not support.

    Attributes:
        action: The rejected action, if any was given.
        allowed: Actions the endpoint accepts.
    """

    def __init__(self, action: str | None, allowed: tuple[str, ...]) -> None:
        """Initialize the exception.

        Args:
            action: The rejected action.
            allowed: Actions the endpoint accepts.
        """
        self.action = action
        self.allowed = allowed
        options = " or ".join(f"?action={a}" for a in allowed)
        super().__init__(f"Invalid action parameter. Use {options}")


def error_response(message: str, status_code: int) -> Response:
    """Build the standard error body."""
    return Response(
        content={"success": False, "error": message},
        status_code=status_code,
        media_type="application/json",
    )


def _bad_request_handler(_request: Request, exc: Exception) -> Response:
    return error_response(str(exc), HTTP_400_BAD_REQUEST)


def _run_not_found_handler(_request: Request, exc: WorkflowRunNotFoundError) -> Response:
    return error_response(str(exc), HTTP_404_NOT_FOUND)


def _handle_missing_handler(_request: Request, exc: ExecutionHandleMissingError) -> Response:
    return error_response(str(exc), HTTP_409_CONFLICT)


def _dispatcher_handler(_request: Request, exc: DispatcherNotConfiguredError) -> Response:
    return error_response(str(exc), HTTP_501_NOT_IMPLEMENTED)


def _execution_client_handler(_request: Request, exc: ExecutionClientError) -> Response:
    logger.error(
        "Failed to retrieve workflow execution",
        extra={"execution_name": exc.execution_name, "status_code": exc.status_code},
    )
    return error_response(str(exc), HTTP_502_BAD_GATEWAY)


exception_handlers: ExceptionHandlersMap = {
    InvalidActionError: _bad_request_handler,
    InvalidRetryError: _bad_request_handler,
    WorkflowRunNotFoundError: _run_not_found_handler,
    ExecutionHandleMissingError: _handle_missing_handler,
    DispatcherNotConfiguredError: _dispatcher_handler,
    ExecutionClientError: _execution_client_handler,
}
"""Handlers registered on the app by :class:`~workflow_monitor.plugin.WorkflowMonitorPlugin`."""
