"""Tests for the reconciliation engine building blocks.

Covers the monitor configuration, the remote status fetcher, the pure
reconciliation decisions and the per-run lock registry.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

from tests.conftest import FakeExecutionsClient, FrozenClock, execution_name
from workflow_monitor.core.types import ExecutionState, RunStatus, SyncReason
from workflow_monitor.db.models import WorkflowRunModel


def _run(
    status: RunStatus,
    *,
    execution: str | None = "exec-1",
    updated_at: datetime | None = None,
) -> WorkflowRunModel:
    return WorkflowRunModel(
        id=uuid4(),
        story_id="story-1",
        execution_name=execution_name(execution) if execution else None,
        status=status,
        updated_at=updated_at,
    )


# =============================================================================
# MonitorConfig
# =============================================================================


@pytest.mark.unit
class TestMonitorConfig:
    """Tests for MonitorConfig."""

    def test_defaults(self) -> None:
        """Test default staleness threshold and fetch timeout."""
        from workflow_monitor.engine.config import MonitorConfig

        config = MonitorConfig()

        assert config.stale_timeout == timedelta(hours=6)
        assert config.stale_hours == 6
        assert config.fetch_timeout == 15.0

    def test_rejects_non_positive_stale_timeout(self) -> None:
        """Test a zero staleness threshold is rejected."""
        from workflow_monitor.engine.config import MonitorConfig

        with pytest.raises(ValueError, match="stale_timeout"):
            MonitorConfig(stale_timeout=timedelta(0))

    @pytest.mark.parametrize("timeout", [0.5, 121.0])
    def test_rejects_out_of_range_fetch_timeout(self, timeout: float) -> None:
        """Test fetch timeouts outside 1-120 seconds are rejected."""
        from workflow_monitor.engine.config import MonitorConfig

        with pytest.raises(ValueError, match="fetch_timeout"):
            MonitorConfig(fetch_timeout=timeout)


# =============================================================================
# Clock
# =============================================================================


@pytest.mark.unit
class TestClock:
    """Tests for the clock helpers."""

    def test_system_clock_is_utc(self) -> None:
        """Test SystemClock returns an aware UTC datetime."""
        from workflow_monitor.core.clock import SystemClock

        assert SystemClock().now().tzinfo == timezone.utc

    def test_ensure_utc_naive(self) -> None:
        """Test naive datetimes are taken as UTC."""
        from workflow_monitor.core.clock import ensure_utc

        naive = datetime(2026, 10, 19, 12, 0)

        assert ensure_utc(naive) == datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)

    def test_ensure_utc_converts_offsets(self) -> None:
        """Test aware datetimes are converted to UTC."""
        from workflow_monitor.core.clock import ensure_utc

        paris = timezone(timedelta(hours=2))
        value = ensure_utc(datetime(2026, 10, 19, 14, 0, tzinfo=paris))

        assert value == datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)
        assert value.tzinfo == timezone.utc

    def test_clock_protocol(self) -> None:
        """Test the test clock satisfies the Clock protocol."""
        from workflow_monitor.core.protocols import Clock

        assert isinstance(FrozenClock(datetime.now(timezone.utc)), Clock)


# =============================================================================
# ExecutionStatusFetcher
# =============================================================================


@pytest.mark.unit
@pytest.mark.asyncio
class TestExecutionStatusFetcher:
    """Tests for ExecutionStatusFetcher."""

    @pytest.mark.parametrize("state", ["ACTIVE", "SUCCEEDED", "FAILED", "CANCELLED"])
    async def test_known_states(self, state: str) -> None:
        """Test engine states are passed through."""
        from workflow_monitor.engine.fetcher import ExecutionStatusFetcher

        name = execution_name("abc")
        fetcher = ExecutionStatusFetcher(FakeExecutionsClient({name: state}))

        assert await fetcher.fetch_remote_status(name) == ExecutionState(state)

    async def test_lower_case_state(self) -> None:
        """Test state strings are matched case-insensitively."""
        from workflow_monitor.engine.fetcher import ExecutionStatusFetcher

        name = execution_name("abc")
        fetcher = ExecutionStatusFetcher(FakeExecutionsClient({name: "succeeded"}))

        assert await fetcher.fetch_remote_status(name) == ExecutionState.SUCCEEDED

    async def test_unrecognized_state(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test an unexpected engine state degrades to UNKNOWN."""
        from workflow_monitor.engine.fetcher import ExecutionStatusFetcher

        name = execution_name("abc")
        fetcher = ExecutionStatusFetcher(FakeExecutionsClient({name: "QUEUED"}))

        with caplog.at_level(logging.WARNING, logger="workflow_monitor"):
            assert await fetcher.fetch_remote_status(name) == ExecutionState.UNKNOWN

        assert "Unknown workflow execution state" in caplog.text

    async def test_not_found(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test a missing execution degrades to UNKNOWN with a warning."""
        from workflow_monitor.engine.fetcher import ExecutionStatusFetcher

        fetcher = ExecutionStatusFetcher(FakeExecutionsClient())

        with caplog.at_level(logging.WARNING, logger="workflow_monitor"):
            assert await fetcher.fetch_remote_status(execution_name("gone")) == ExecutionState.UNKNOWN

        assert any(r.levelno == logging.WARNING for r in caplog.records)

    async def test_access_denied(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test a permission failure degrades to UNKNOWN with an error."""
        from workflow_monitor.engine.fetcher import ExecutionStatusFetcher
        from workflow_monitor.exceptions import ExecutionAccessDeniedError

        name = execution_name("abc")
        fetcher = ExecutionStatusFetcher(FakeExecutionsClient({name: ExecutionAccessDeniedError(name)}))

        with caplog.at_level(logging.ERROR, logger="workflow_monitor"):
            assert await fetcher.fetch_remote_status(name) == ExecutionState.UNKNOWN

        assert any(r.levelno == logging.ERROR for r in caplog.records)

    async def test_unexpected_error(self) -> None:
        """Test arbitrary client errors degrade to UNKNOWN."""
        from workflow_monitor.engine.fetcher import ExecutionStatusFetcher

        name = execution_name("abc")
        fetcher = ExecutionStatusFetcher(FakeExecutionsClient({name: RuntimeError("boom")}))

        assert await fetcher.fetch_remote_status(name) == ExecutionState.UNKNOWN

    async def test_timeout(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test a slow engine degrades to UNKNOWN once the timeout elapses."""
        from workflow_monitor.engine.fetcher import ExecutionStatusFetcher

        name = execution_name("slow")
        fetcher = ExecutionStatusFetcher(FakeExecutionsClient({name: "ACTIVE"}, delay=1.0), timeout=0.05)

        with caplog.at_level(logging.ERROR, logger="workflow_monitor"):
            assert await fetcher.fetch_remote_status(name) == ExecutionState.UNKNOWN

        assert "Timed out" in caplog.text


# =============================================================================
# StatusReconciler
# =============================================================================


@pytest.mark.unit
class TestStatusReconciler:
    """Tests for StatusReconciler."""

    @pytest.fixture
    def clock(self) -> FrozenClock:
        return FrozenClock(datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc))

    @pytest.fixture
    def reconciler(self, clock: FrozenClock):
        from workflow_monitor.engine.reconciler import StatusReconciler

        return StatusReconciler(stale_timeout=timedelta(hours=6), clock=clock)

    def test_is_stale_threshold(self, reconciler, clock: FrozenClock) -> None:
        """Test staleness is strictly past the threshold."""
        assert not reconciler.is_stale(clock.now() - timedelta(hours=6))
        assert reconciler.is_stale(clock.now() - timedelta(hours=6, seconds=1))
        assert not reconciler.is_stale(None)

    def test_is_stale_naive_heartbeat(self, reconciler) -> None:
        """Test naive heartbeats are compared as UTC."""
        assert reconciler.is_stale(datetime(2026, 10, 19, 5, 0))
        assert not reconciler.is_stale(datetime(2026, 10, 19, 11, 0))

    def test_inspect_matching_run(self, reconciler, clock: FrozenClock) -> None:
        """Test a running run with an active execution matches."""
        run = _run(RunStatus.RUNNING, updated_at=clock.now())

        status = reconciler.inspect(run, ExecutionState.ACTIVE)

        assert status.run_id == run.id
        assert status.story_id == "story-1"
        assert status.current_status == RunStatus.RUNNING
        assert status.execution_state == ExecutionState.ACTIVE
        assert status.status_match
        assert not status.is_stale
        assert not status.needs_sync
        assert status.last_heartbeat == clock.now()

    def test_inspect_without_handle_never_matches(self, reconciler, clock: FrozenClock) -> None:
        """Test a run without an execution handle is reported as mismatched."""
        run = _run(RunStatus.RUNNING, execution=None, updated_at=clock.now())

        status = reconciler.inspect(run)

        assert status.execution_state == ExecutionState.UNKNOWN
        assert not status.status_match
        assert status.needs_sync

    def test_inspect_accepts_stored_string_status(self, reconciler, clock: FrozenClock) -> None:
        """Test inspect normalizes a raw status string."""
        run = _run(RunStatus.RUNNING, updated_at=clock.now())
        run.status = "completed"  # type: ignore[assignment]

        status = reconciler.inspect(run, ExecutionState.SUCCEEDED)

        assert status.current_status is RunStatus.COMPLETED
        assert status.status_match

    @pytest.mark.parametrize(
        ("remote", "expected_status", "expected_reason"),
        [
            (ExecutionState.SUCCEEDED, RunStatus.COMPLETED, SyncReason.WORKFLOW_COMPLETED),
            (ExecutionState.FAILED, RunStatus.FAILED, SyncReason.WORKFLOW_FAILED),
            (ExecutionState.CANCELLED, RunStatus.CANCELLED, SyncReason.WORKFLOW_CANCELLED),
        ],
    )
    def test_decide_follows_terminal_remote_state(
        self,
        reconciler,
        clock: FrozenClock,
        remote: ExecutionState,
        expected_status: RunStatus,
        expected_reason: SyncReason,
    ) -> None:
        """Test a fresh running run adopts the terminal remote state."""
        run = _run(RunStatus.RUNNING, updated_at=clock.now() - timedelta(minutes=10))

        correction = reconciler.decide(reconciler.inspect(run, remote))

        assert correction is not None
        assert correction.status == expected_status
        assert correction.reason == expected_reason

    @pytest.mark.parametrize("remote", [ExecutionState.ACTIVE, ExecutionState.UNKNOWN])
    def test_decide_keeps_fresh_running_run(self, reconciler, clock: FrozenClock, remote: ExecutionState) -> None:
        """Test active or unknown remote state leaves a fresh running run alone."""
        run = _run(RunStatus.RUNNING, updated_at=clock.now() - timedelta(minutes=10))

        assert reconciler.decide(reconciler.inspect(run, remote)) is None

    @pytest.mark.parametrize("remote", list(ExecutionState))
    def test_decide_stale_beats_remote_state(self, reconciler, clock: FrozenClock, remote: ExecutionState) -> None:
        """Test a stale running run fails with stale_timeout whatever the engine says."""
        run = _run(RunStatus.RUNNING, updated_at=clock.now() - timedelta(hours=7))

        correction = reconciler.decide(reconciler.inspect(run, remote))

        assert correction is not None
        assert correction.status == RunStatus.FAILED
        assert correction.reason == SyncReason.STALE_TIMEOUT
        assert "6 hours" in (correction.error_message or "")

    def test_decide_stale_message_uses_configured_threshold(self, clock: FrozenClock) -> None:
        """Test the stale message quotes the reconciler's own threshold."""
        from workflow_monitor.engine.reconciler import StatusReconciler

        reconciler = StatusReconciler(stale_timeout=timedelta(minutes=90), clock=clock)
        run = _run(RunStatus.RUNNING, updated_at=clock.now() - timedelta(hours=2))

        correction = reconciler.decide(reconciler.inspect(run, ExecutionState.ACTIVE))

        assert correction is not None
        assert "1.5 hours" in (correction.error_message or "")

    @pytest.mark.parametrize("age", [timedelta(minutes=1), timedelta(hours=12)])
    def test_decide_missing_handle(self, reconciler, clock: FrozenClock, age: timedelta) -> None:
        """Test a running run without a handle fails with manual_sync, stale or not."""
        from workflow_monitor.core.models import MISSING_EXECUTION_MESSAGE

        run = _run(RunStatus.RUNNING, execution=None, updated_at=clock.now() - age)

        correction = reconciler.decide(reconciler.inspect(run))

        assert correction is not None
        assert correction.status == RunStatus.FAILED
        assert correction.reason == SyncReason.MANUAL_SYNC
        assert correction.error_message == MISSING_EXECUTION_MESSAGE

    def test_decide_matching_terminal_run_is_untouched(self, reconciler, clock: FrozenClock) -> None:
        """Test a completed run whose execution succeeded needs nothing."""
        run = _run(RunStatus.COMPLETED, updated_at=clock.now() - timedelta(days=3))

        assert reconciler.decide(reconciler.inspect(run, ExecutionState.SUCCEEDED)) is None

    def test_decide_ignores_staleness_of_terminal_runs(self, reconciler, clock: FrozenClock) -> None:
        """Test staleness only applies to running runs."""
        run = _run(RunStatus.FAILED, updated_at=clock.now() - timedelta(days=3))

        status = reconciler.inspect(run, ExecutionState.UNKNOWN)

        assert status.is_stale
        assert reconciler.decide(status) is None

    def test_decide_queued_without_handle(self, reconciler, clock: FrozenClock) -> None:
        """Test a queued run that was never dispatched is left alone."""
        run = _run(RunStatus.QUEUED, execution=None, updated_at=clock.now())

        assert reconciler.decide(reconciler.inspect(run)) is None


# =============================================================================
# RunLockRegistry
# =============================================================================


@pytest.mark.unit
@pytest.mark.asyncio
class TestRunLockRegistry:
    """Tests for RunLockRegistry."""

    async def test_hold_and_release(self) -> None:
        """Test a lock is held inside the block and dropped afterwards."""
        from workflow_monitor.engine.locks import RunLockRegistry

        locks = RunLockRegistry()
        run_id = uuid4()

        async with locks.hold(run_id):
            assert locks.is_locked(run_id)
            assert len(locks) == 1

        assert not locks.is_locked(run_id)
        assert len(locks) == 0

    async def test_serializes_same_run(self) -> None:
        """Test two tasks on the same run never overlap."""
        from workflow_monitor.engine.locks import RunLockRegistry

        locks = RunLockRegistry()
        run_id = uuid4()
        events: list[str] = []

        async def worker(name: str) -> None:
            async with locks.hold(run_id):
                events.append(f"{name}-start")
                await asyncio.sleep(0.01)
                events.append(f"{name}-end")

        await asyncio.gather(worker("a"), worker("b"))

        assert events in (
            ["a-start", "a-end", "b-start", "b-end"],
            ["b-start", "b-end", "a-start", "a-end"],
        )
        assert len(locks) == 0

    async def test_different_runs_do_not_block(self) -> None:
        """Test locks on different runs are independent."""
        from workflow_monitor.engine.locks import RunLockRegistry

        locks = RunLockRegistry()
        first, second = uuid4(), uuid4()

        async with locks.hold(first):
            async with locks.hold(second):
                assert locks.is_locked(first)
                assert locks.is_locked(second)

    async def test_released_on_error(self) -> None:
        """Test the lock is released when the block raises."""
        from workflow_monitor.engine.locks import RunLockRegistry

        locks = RunLockRegistry()
        run_id = uuid4()

        with pytest.raises(RuntimeError):
            async with locks.hold(run_id):
                raise RuntimeError("boom")

        assert not locks.is_locked(run_id)
        assert len(locks) == 0
