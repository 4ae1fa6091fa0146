"""Example application wiring workflow-monitor into Litestar.

This example mounts the admin API under ``/admin/workflows`` and runs a
background sweep that reconciles running story-generation runs every few
minutes.

Environment:
    DATABASE_URL: SQLAlchemy async URL (defaults to a local SQLite file).
    WORKFLOWS_ACCESS_TOKEN: OAuth bearer token for the Workflow Executions API.
    SYNC_INTERVAL_SECONDS: Seconds between background sweeps (default 300).

Run with:
    cd examples
    litestar run

Or:
    uvicorn app:app --reload
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
from collections.abc import AsyncIterator
from uuid import UUID

from litestar import Litestar, get
from litestar.plugins.sqlalchemy import SQLAlchemyAsyncConfig, SQLAlchemyPlugin

from workflow_monitor import (
    GoogleWorkflowsExecutionsClient,
    MonitorConfig,
    WorkflowMonitorPlugin,
    WorkflowMonitorPluginConfig,
)

logger = logging.getLogger("workflow_monitor.example")

DATABASE_URL = os.environ.get("DATABASE_URL", "sqlite+aiosqlite:///workflow_monitor.sqlite")
SYNC_INTERVAL_SECONDS = float(os.environ.get("SYNC_INTERVAL_SECONDS", "300"))


# =============================================================================
# Collaborators
# =============================================================================


async def access_token() -> str:
    """Return the bearer token for the executions API."""
    return os.environ.get("WORKFLOWS_ACCESS_TOKEN", "")


class LoggingDispatcher:
    """Dispatcher that only logs; replace with a pub/sub publisher in production."""

    async def dispatch(self, story_id: str, run_id: UUID) -> None:
        logger.info("Story generation requested", extra={"story_id": story_id, "run_id": str(run_id)})


# =============================================================================
# Application
# =============================================================================

db_config = SQLAlchemyAsyncConfig(
    connection_string=DATABASE_URL,
    create_all=True,
    before_send_handler="autocommit",
)

executions_client = GoogleWorkflowsExecutionsClient(token_provider=access_token)

monitor_plugin = WorkflowMonitorPlugin(
    config=WorkflowMonitorPluginConfig(
        executions_client=executions_client,
        dispatcher=LoggingDispatcher(),
        monitor=MonitorConfig(fetch_timeout=20.0),
    )
)


async def sweep_forever() -> None:
    """Reconcile every running run on a fixed interval."""
    while True:
        await asyncio.sleep(SYNC_INTERVAL_SECONDS)
        try:
            async with db_config.get_session() as session:
                corrected = await monitor_plugin.create_service(session).reconcile_all()
        except Exception:
            logger.exception("Scheduled workflow sync failed")
            continue
        logger.info("Scheduled workflow sync finished", extra={"corrected": len(corrected)})


@contextlib.asynccontextmanager
async def background_sweep(_: Litestar) -> AsyncIterator[None]:
    """Run the periodic sweep for the lifetime of the app."""
    task = asyncio.create_task(sweep_forever())
    try:
        yield
    finally:
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        await executions_client.aclose()


@get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}


app = Litestar(
    route_handlers=[health_check],
    plugins=[SQLAlchemyPlugin(config=db_config), monitor_plugin],
    lifespan=[background_sweep],
)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
