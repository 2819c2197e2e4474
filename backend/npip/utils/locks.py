"""
Per-project run locks

One ingestion run per project at a time. ``hold`` never blocks: it yields
False when another run already owns the project.
"""

import asyncio
import logging
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, Dict, Optional

logger = logging.getLogger(__name__)


class ProjectLockArena:
    """In-process arena of asyncio locks keyed by project id"""

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}

    def __len__(self) -> int:
        return len(self._locks)

    def is_held(self, project_id) -> bool:
        lock = self._locks.get(str(project_id))
        return bool(lock and lock.locked())

    @asynccontextmanager
    async def hold(self, project_id) -> AsyncIterator[bool]:
        key = str(project_id)
        lock = self._locks.setdefault(key, asyncio.Lock())
        if lock.locked():
            yield False
            return

        await lock.acquire()
        try:
            yield True
        finally:
            lock.release()
            # Evict idle locks so the arena does not grow with every project
            if not lock.locked():
                self._locks.pop(key, None)


# Deletes the key only if it still carries our token
_RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
end
return 0
"""


class RedisProjectLock:
    """
    Cross-process project lock on Redis (SET NX EX + token checked release).

    Shared by the API process (manual runs) and Celery workers (scheduled
    runs). Fails open when Redis is unreachable.
    """

    def __init__(
        self,
        client_factory: Optional[Callable[[], Awaitable]] = None,
        ttl_seconds: Optional[int] = None,
        prefix: str = "npip:ingest-lock",
    ):
        if client_factory is None or ttl_seconds is None:
            from npip.config import get_settings
            from npip.utils.cache import get_redis
            client_factory = client_factory or get_redis
            ttl_seconds = ttl_seconds or get_settings().PROJECT_LOCK_TTL_SECONDS
        self._client_factory = client_factory
        self.ttl_seconds = ttl_seconds
        self.prefix = prefix

    def _key(self, project_id) -> str:
        return f"{self.prefix}:{project_id}"

    @asynccontextmanager
    async def hold(self, project_id) -> AsyncIterator[bool]:
        key = self._key(project_id)
        token = uuid.uuid4().hex
        client = None
        try:
            client = await self._client_factory()
            acquired = await client.set(key, token, ex=self.ttl_seconds, nx=True)
        except Exception as e:
            logger.warning(f"Project lock unavailable for {project_id}, running unlocked: {e}")
            client = None
            acquired = True

        if client is None:
            yield True
            return

        if not acquired:
            yield False
            return

        try:
            yield True
        finally:
            try:
                await client.eval(_RELEASE_SCRIPT, 1, key, token)
            except Exception as e:
                logger.warning(f"Failed to release project lock {key}: {e}")
