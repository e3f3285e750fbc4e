"""
Per-session turn serialization.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Tuple


class SessionLockRegistry:
    """One asyncio lock per (user, session); idle entries are dropped."""

    def __init__(self) -> None:
        self._locks: Dict[Tuple[str, str], Tuple[asyncio.Lock, int]] = {}

    @asynccontextmanager
    async def hold(self, user_id: str, session_id: str) -> AsyncIterator[None]:
        key = (user_id, session_id)
        lock, waiters = self._locks.get(key, (asyncio.Lock(), 0))
        self._locks[key] = (lock, waiters + 1)
        try:
            async with lock:
                yield
        finally:
            lock, waiters = self._locks[key]
            if waiters <= 1:
                del self._locks[key]
            else:
                self._locks[key] = (lock, waiters - 1)

    def active_sessions(self) -> int:
        return len(self._locks)
