import asyncio
from collections.abc import AsyncIterator, Hashable
from contextlib import asynccontextmanager


class InFlightGate:
    """Admit at most one holder per key; later callers are turned away.

    Rejected callers are not queued and do not affect the running holder.
    """

    def __init__(self) -> None:
        self._active: set[Hashable] = set()

    def is_active(self, key: Hashable) -> bool:
        return key in self._active

    def try_acquire(self, key: Hashable) -> bool:
        if key in self._active:
            return False
        self._active.add(key)
        return True

    def release(self, key: Hashable) -> None:
        self._active.discard(key)


class KeyedLocks:
    """One asyncio.Lock per key, created on demand and dropped when idle."""

    def __init__(self) -> None:
        self._locks: dict[Hashable, asyncio.Lock] = {}
        self._waiters: dict[Hashable, int] = {}

    @asynccontextmanager
    async def hold(self, key: Hashable) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._waiters[key] = self._waiters.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._waiters[key] -= 1
            if self._waiters[key] == 0:
                del self._waiters[key]
                del self._locks[key]
