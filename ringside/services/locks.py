"""
Per-entity locking for championship and show writers.

Reading the open reign and appending to a title's history must not
interleave for the same title, and a show may only be completed once. Each
(kind, id) pair gets its own asyncio.Lock; different entities never block
each other.
"""

import asyncio
from collections import defaultdict
from contextlib import asynccontextmanager
import logging

logger = logging.getLogger(__name__)

class EntityLockRegistry:
    """In-memory single-writer locks keyed by entity kind and id.

    Note: Locks are only held within one process. Multiple worker processes
    sharing a database still rely on the conditional status updates in the
    operations layer.
    """

    def __init__(self):
        self._locks = defaultdict(asyncio.Lock)  # Grows with unique entity keys
        self._lock = asyncio.Lock()  # Guards the registry itself

    async def get_lock(self, kind: str, entity_id: int) -> asyncio.Lock:
        """Get the lock for one entity, creating it on first use."""
        key = f"{kind}:{entity_id}"
        async with self._lock:
            return self._locks[key]

    @asynccontextmanager
    async def hold(self, kind: str, entity_id: int):
        """Hold the single-writer lock for an entity."""
        lock = await self.get_lock(kind, entity_id)
        if lock.locked():
            logger.debug(f"Waiting for {kind} {entity_id} lock")
        async with lock:
            yield

    def is_locked(self, kind: str, entity_id: int) -> bool:
        key = f"{kind}:{entity_id}"
        return key in self._locks and self._locks[key].locked()
