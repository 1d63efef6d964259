"""In-process per-professional booking locks."""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator


class LocalProfessionalLocks:
    """One asyncio.Lock per professional id, created on first use."""

    def __init__(self):
        self._local: dict[str, asyncio.Lock] = {}

    def _local_lock(self, professional_id: str) -> asyncio.Lock:
        lock = self._local.get(professional_id)
        if lock is None:
            lock = asyncio.Lock()
            self._local[professional_id] = lock
        return lock

    @asynccontextmanager
    async def hold(self, professional_id: str) -> AsyncIterator[None]:
        """Hold the booking lock of one professional."""
        async with self._local_lock(professional_id):
            yield
