"""Shared test fixtures for workflow-monitor test suite."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any
from uuid import UUID, uuid4

import pytest
from sqlalchemy import event, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from workflow_monitor.core.models import ExecutionDetails
from workflow_monitor.core.types import RunStatus
from workflow_monitor.db.models import WorkflowRunModel
from workflow_monitor.db.repositories import WorkflowRunRepository
from workflow_monitor.engine.config import MonitorConfig
from workflow_monitor.engine.monitor import WorkflowMonitorService

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Callable

EXECUTION_PREFIX = "projects/demo/locations/europe-west9/workflows/story-generation/executions"


def execution_name(suffix: str) -> str:
    """Build a full execution resource name."""
    return f"{EXECUTION_PREFIX}/{suffix}"


class FrozenClock:
    """Clock that returns a fixed instant until moved."""

    def __init__(self, now: datetime) -> None:
        self._now = now

    def now(self) -> datetime:
        return self._now

    def advance(self, delta: timedelta) -> None:
        self._now += delta


class FakeExecutionsClient:
    """In-memory executions client.

    Each execution name maps either to a state string or to an exception
    instance that ``get_execution`` raises.
    """

    def __init__(self, executions: dict[str, str | Exception] | None = None, delay: float = 0.0) -> None:
        self.executions: dict[str, str | Exception] = dict(executions or {})
        self.delay = delay
        self.calls: list[str] = []

    async def get_execution(self, name: str) -> ExecutionDetails:
        self.calls.append(name)
        if self.delay:
            await asyncio.sleep(self.delay)
        outcome = self.executions.get(name)
        if outcome is None:
            from workflow_monitor.exceptions import ExecutionNotFoundError

            raise ExecutionNotFoundError(name)
        if isinstance(outcome, Exception):
            raise outcome
        return ExecutionDetails(
            name=name,
            state=outcome,
            start_time="2026-10-19T08:00:00Z",
            end_time=None if outcome == "ACTIVE" else "2026-10-19T08:05:00Z",
            workflow_revision_id="000001-abc",
        )


class RecordingDispatcher:
    """Run dispatcher that records what it was asked to start."""

    def __init__(self) -> None:
        self.dispatched: list[tuple[str, UUID]] = []

    async def dispatch(self, story_id: str, run_id: UUID) -> None:
        self.dispatched.append((story_id, run_id))


# =============================================================================
# Clock and Client Fixtures
# =============================================================================


@pytest.fixture
def clock() -> FrozenClock:
    """Frozen clock pinned to the current instant."""
    return FrozenClock(datetime.now(timezone.utc))


@pytest.fixture
def executions_client() -> FakeExecutionsClient:
    """Empty fake executions client."""
    return FakeExecutionsClient()


@pytest.fixture
def dispatcher() -> RecordingDispatcher:
    """Recording run dispatcher."""
    return RecordingDispatcher()


@pytest.fixture
def monitor_config() -> MonitorConfig:
    """Monitor configuration with the default 6 hour staleness threshold."""
    return MonitorConfig(stale_timeout=timedelta(hours=6), fetch_timeout=5.0)


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture
async def async_engine():
    """Create an async SQLite in-memory engine for testing."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        future=True,
    )

    # Enable foreign keys for SQLite
    @event.listens_for(engine.sync_engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(WorkflowRunModel.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_maker(async_engine) -> async_sessionmaker[AsyncSession]:
    """Create session factory."""
    return async_sessionmaker(
        bind=async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest.fixture
async def async_session(session_maker) -> AsyncIterator[AsyncSession]:
    """Create an async session for testing."""
    async with session_maker() as session:
        yield session
        await session.rollback()


@pytest.fixture
def run_repo(async_session: AsyncSession) -> WorkflowRunRepository:
    """Create a workflow run repository."""
    return WorkflowRunRepository(session=async_session)


@pytest.fixture
def make_run(
    async_session: AsyncSession,
    clock: FrozenClock,
) -> Callable[..., Awaitable[WorkflowRunModel]]:
    """Factory persisting a run.

    ``age`` back-dates the run heartbeat relative to the frozen clock.
    """

    async def _make_run(
        status: RunStatus = RunStatus.RUNNING,
        *,
        execution: str | None = "default",
        story_id: str | None = None,
        age: timedelta = timedelta(minutes=5),
        error_message: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> WorkflowRunModel:
        heartbeat = clock.now() - age
        run = WorkflowRunModel(
            id=uuid4(),
            story_id=story_id or f"story-{uuid4().hex[:8]}",
            execution_name=execution_name(execution) if execution else None,
            status=status,
            error_message=error_message,
            metadata_=metadata or {},
            started_at=None if status == RunStatus.QUEUED else heartbeat,
            ended_at=heartbeat if status.is_terminal else None,
            created_at=heartbeat,
            updated_at=heartbeat,
        )
        async_session.add(run)
        await async_session.commit()
        return run

    return _make_run


@pytest.fixture
def reload_run(async_session: AsyncSession) -> Callable[[UUID], Awaitable[WorkflowRunModel]]:
    """Re-read a run from the database, overwriting the identity map copy."""

    async def _reload(run_id: UUID) -> WorkflowRunModel:
        stmt = select(WorkflowRunModel).where(WorkflowRunModel.id == run_id).execution_options(populate_existing=True)
        result = await async_session.execute(stmt)
        return result.scalar_one()

    return _reload


@pytest.fixture
def monitor_service(
    async_session: AsyncSession,
    executions_client: FakeExecutionsClient,
    monitor_config: MonitorConfig,
    clock: FrozenClock,
) -> WorkflowMonitorService:
    """Monitor service over the test session and fake client."""
    return WorkflowMonitorService(
        async_session,
        executions_client,
        config=monitor_config,
        clock=clock,
    )
