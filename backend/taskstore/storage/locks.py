"""Per-table locking for the in-memory store.

Writers hold one asyncio lock per entity kind for the duration of their
validate-then-write section. Multi-table operations acquire locks in
alphabetical order of entity name so two cascades touching overlapping
tables can never deadlock, and every wait is bounded by a timeout.
"""

import asyncio
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager

from ..core import get_logger
from .exceptions import LockTimeoutError

logger = get_logger(__name__)


class TableLockManager:
    """Hands out ordered, time-bounded locks on entity tables."""

    def __init__(self, timeout: float = 5.0):
        self.timeout = timeout
        self._locks: dict[str, asyncio.Lock] = {}

    def _lock_for(self, entity_name: str) -> asyncio.Lock:
        lock = self._locks.get(entity_name)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[entity_name] = lock
        return lock

    def is_locked(self, entity_name: str) -> bool:
        lock = self._locks.get(entity_name)
        return lock is not None and lock.locked()

    @asynccontextmanager
    async def acquire(
        self, entity_names: Iterable[str], timeout: float | None = None
    ) -> AsyncIterator[list[str]]:
        """Hold the locks of every named table.

        Args:
            entity_names: Tables to lock; duplicates are ignored
            timeout: Overall bound on the wait, defaults to the manager's

        Yields:
            The table names in the order they were locked

        Raises:
            LockTimeoutError: If all locks could not be acquired in time
        """
        ordered = sorted(set(entity_names))
        wait = self.timeout if timeout is None else timeout
        loop = asyncio.get_running_loop()
        deadline = loop.time() + wait
        held: list[asyncio.Lock] = []

        try:
            for name in ordered:
                lock = self._lock_for(name)
                if not lock.locked():
                    # A free lock is taken without suspending
                    await lock.acquire()
                    held.append(lock)
                    continue
                remaining = max(deadline - loop.time(), 0)
                try:
                    await asyncio.wait_for(lock.acquire(), timeout=remaining)
                except TimeoutError as e:
                    logger.warning(
                        "Lock acquisition timed out",
                        tables=ordered,
                        waiting_for=name,
                        timeout=wait,
                    )
                    raise LockTimeoutError(ordered, wait) from e
                held.append(lock)

            yield ordered
        finally:
            for lock in reversed(held):
                lock.release()
