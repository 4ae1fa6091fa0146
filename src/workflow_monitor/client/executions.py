"""REST client for the managed workflow engine's execution API.

Talks to the Workflow Executions REST API (``GET /v1/{execution name}``)
and translates HTTP failures into the workflow-monitor exception hierarchy.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx

from workflow_monitor.core.models import ExecutionDetails
from workflow_monitor.exceptions import (
    ExecutionAccessDeniedError,
    ExecutionClientError,
    ExecutionNotFoundError,
)

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

__all__ = ["DEFAULT_BASE_URL", "GoogleWorkflowsExecutionsClient", "execution_from_payload"]

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://workflowexecutions.googleapis.com/v1/"


def execution_from_payload(payload: dict[str, Any]) -> ExecutionDetails:
    """Build :class:`ExecutionDetails` from an API execution resource.

    Args:
        payload: Decoded JSON body of an execution resource.

    Returns:
        The execution details.
    """
    return ExecutionDetails(
        name=str(payload.get("name", "")),
        state=str(payload.get("state") or "UNKNOWN"),
        start_time=payload.get("startTime"),
        end_time=payload.get("endTime"),
        result=payload.get("result"),
        error=payload.get("error"),
        workflow_revision_id=str(payload.get("workflowRevisionId") or ""),
        call_log_level=str(payload.get("callLogLevel") or "None"),
    )


class GoogleWorkflowsExecutionsClient:
    """Async client for reading workflow executions.

    Attributes:
        base_url: API root the execution name is appended to.
        timeout: Transport timeout in seconds for each request.

    Example:
        >>> client = GoogleWorkflowsExecutionsClient(token_provider=fetch_access_token)
        >>> execution = await client.get_execution(
        ...     "projects/p/locations/europe-west9/workflows/story-generation/executions/abc"
        ... )
    """

    def __init__(
        self,
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 15.0,
        token_provider: Callable[[], Awaitable[str]] | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: API root, defaults to the public executions endpoint.
            timeout: Transport timeout in seconds.
            token_provider: Optional coroutine function returning an OAuth bearer token.
            http_client: Optional pre-built ``httpx.AsyncClient`` (mainly for tests).
        """
        self.base_url = base_url
        self.timeout = timeout
        self._token_provider = token_provider
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    async def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self._token_provider is not None:
            headers["Authorization"] = f"Bearer {await self._token_provider()}"
        return headers

    async def get_execution(self, name: str) -> ExecutionDetails:
        """Fetch one execution by its full resource name.

        Args:
            name: Execution resource name, e.g.
                ``projects/{p}/locations/{l}/workflows/{w}/executions/{id}``.

        Returns:
            The execution details.

        Raises:
            ExecutionNotFoundError: On HTTP 404.
            ExecutionAccessDeniedError: On HTTP 401 or 403.
            ExecutionClientError: On any other HTTP or transport failure.
        """
        try:
            response = await self._client.get(name.lstrip("/"), headers=await self._headers())
        except httpx.HTTPError as exc:
            raise ExecutionClientError(name, str(exc) or type(exc).__name__) from exc

        if response.status_code == httpx.codes.NOT_FOUND:
            raise ExecutionNotFoundError(name)
        if response.status_code in (httpx.codes.UNAUTHORIZED, httpx.codes.FORBIDDEN):
            raise ExecutionAccessDeniedError(name, status_code=response.status_code)

        try:
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as exc:
            raise ExecutionClientError(
                name,
                f"HTTP {response.status_code}",
                status_code=response.status_code,
            ) from exc
        except ValueError as exc:
            raise ExecutionClientError(name, "invalid JSON response") from exc

        return execution_from_payload(payload)

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()
