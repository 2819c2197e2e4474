"""
Redis connection utilities
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import redis.asyncio as redis
from redis.asyncio.connection import ConnectionPool

from npip.config import get_settings

# Connection pool
_pool = None


async def get_redis_pool() -> ConnectionPool:
    """Get or create Redis connection pool"""
    global _pool
    if _pool is None:
        settings = get_settings()
        _pool = ConnectionPool.from_url(
            settings.REDIS_URL,
            max_connections=20,
            decode_responses=True,
        )
    return _pool


async def get_redis() -> redis.Redis:
    """Get Redis client"""
    pool = await get_redis_pool()
    return redis.Redis(connection_pool=pool)


async def close_redis():
    """Close Redis connections"""
    global _pool
    if _pool is not None:
        await _pool.disconnect()
        _pool = None


@asynccontextmanager
async def get_worker_redis_context() -> AsyncGenerator[redis.Redis, None]:
    """
    Redis client for Celery tasks.

    Connections are bound to the event loop that opened them and every task
    runs on a fresh loop, so the client is created and closed per task.
    """
    client = redis.Redis.from_url(get_settings().REDIS_URL, decode_responses=True)
    try:
        yield client
    finally:
        await client.aclose()
