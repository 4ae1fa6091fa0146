"""Per-run locking.

A scheduled sweep and an operator's "sync this run" action may target the
same run at once; both go through the same registry so writes to one run
never interleave.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from uuid import UUID

__all__ = ["RunLockRegistry"]


class RunLockRegistry:
    """Process-wide map of ``run_id`` to :class:`asyncio.Lock`.

    Locks are dropped once nobody holds or waits on them.
    """

    def __init__(self) -> None:
        self._locks: dict[UUID, asyncio.Lock] = {}
        self._waiters: dict[UUID, int] = {}

    @asynccontextmanager
    async def hold(self, run_id: UUID) -> AsyncIterator[None]:
        """Hold the lock for one run for the duration of the block.

        Args:
            run_id: The run to serialize on.
        """
        lock = self._locks.setdefault(run_id, asyncio.Lock())
        self._waiters[run_id] = self._waiters.get(run_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._waiters[run_id] -= 1
            if not self._waiters[run_id]:
                del self._waiters[run_id]
                del self._locks[run_id]

    def is_locked(self, run_id: UUID) -> bool:
        """Whether some task currently holds the lock for ``run_id``."""
        lock = self._locks.get(run_id)
        return lock is not None and lock.locked()

    def __len__(self) -> int:
        return len(self._locks)
