"""Execution status fetcher.

Translates an execution handle into a normalized :class:`ExecutionState`.
Remote problems never propagate from here: they degrade to ``UNKNOWN`` and
the caller decides what an unknown state means.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from workflow_monitor.core.types import ExecutionState
from workflow_monitor.exceptions import ExecutionNotFoundError

if TYPE_CHECKING:
    from workflow_monitor.core.protocols import ExecutionsClient

__all__ = ["ExecutionStatusFetcher"]

logger = logging.getLogger(__name__)

_KNOWN_STATES = {
    "ACTIVE": ExecutionState.ACTIVE,
    "SUCCEEDED": ExecutionState.SUCCEEDED,
    "FAILED": ExecutionState.FAILED,
    "CANCELLED": ExecutionState.CANCELLED,
}


class ExecutionStatusFetcher:
    """Reads the remote state of one execution with a bounded timeout.

    Attributes:
        client: The injected remote engine client.
        timeout: Seconds allowed for one fetch before it counts as ``UNKNOWN``.
    """

    def __init__(self, client: ExecutionsClient, timeout: float = 15.0) -> None:
        self.client = client
        self.timeout = timeout

    async def fetch_remote_status(self, execution_name: str) -> ExecutionState:
        """Get the normalized state of an execution.

        Args:
            execution_name: Non-empty execution handle.

        Returns:
            The remote state, or ``UNKNOWN`` if it is missing, unreadable or slow.
        """
        try:
            execution = await asyncio.wait_for(
                self.client.get_execution(execution_name),
                timeout=self.timeout,
            )
        except ExecutionNotFoundError:
            logger.warning("Workflow execution not found", extra={"execution_name": execution_name})
            return ExecutionState.UNKNOWN
        except asyncio.TimeoutError:
            logger.error(
                "Timed out getting workflow execution status",
                extra={"execution_name": execution_name, "timeout": self.timeout},
            )
            return ExecutionState.UNKNOWN
        except Exception as exc:  # noqa: BLE001
            logger.error(
                "Failed to get workflow execution status",
                extra={"execution_name": execution_name, "error": str(exc) or type(exc).__name__},
            )
            return ExecutionState.UNKNOWN

        state = _KNOWN_STATES.get(str(execution.state).upper())
        if state is None:
            logger.warning(
                "Unknown workflow execution state",
                extra={"execution_name": execution_name, "state": execution.state},
            )
            return ExecutionState.UNKNOWN
        return state
