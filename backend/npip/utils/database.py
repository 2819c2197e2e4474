"""
Database connection and session management
"""

import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool

from npip.config import get_settings
from npip.models import Base

# Lazy initialization for serverless environments
_engine = None
_async_session_maker = None


def _get_database_url() -> str:
    """Get and convert database URL for async"""
    settings = get_settings()
    database_url = settings.DATABASE_URL
    if database_url.startswith("postgresql://"):
        database_url = database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    elif database_url.startswith("sqlite://"):
        database_url = database_url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    return database_url


def _is_serverless() -> bool:
    """Check if running in serverless environment"""
    return bool(os.environ.get("VERCEL") or os.environ.get("AWS_LAMBDA_FUNCTION_NAME"))


def _engine_kwargs(null_pool: bool = False) -> dict:
    settings = get_settings()
    engine_kwargs = {
        "echo": settings.DEBUG,
        "pool_pre_ping": True,
    }
    if null_pool or _is_serverless() or _get_database_url().startswith("sqlite"):
        engine_kwargs["poolclass"] = NullPool
    else:
        engine_kwargs["pool_size"] = settings.DATABASE_POOL_SIZE
        engine_kwargs["max_overflow"] = settings.DATABASE_MAX_OVERFLOW
    return engine_kwargs


def _get_engine():
    """Lazy engine initialization"""
    global _engine
    if _engine is None:
        _engine = create_async_engine(_get_database_url(), **_engine_kwargs())
    return _engine


def _make_session_maker(engine) -> async_sessionmaker:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


def _get_session_maker():
    """Lazy session maker initialization"""
    global _async_session_maker
    if _async_session_maker is None:
        _async_session_maker = _make_session_maker(_get_engine())
    return _async_session_maker


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency for getting database session"""
    session_maker = _get_session_maker()
    async with session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


@asynccontextmanager
async def get_db_context() -> AsyncGenerator[AsyncSession, None]:
    """Context manager for database session (for use outside of FastAPI)"""
    session_maker = _get_session_maker()
    async with session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


@asynccontextmanager
async def get_worker_db_context() -> AsyncGenerator[AsyncSession, None]:
    """
    Session for Celery tasks.

    Each task runs on its own event loop, so pooled connections cannot be
    shared between tasks; the engine lives only as long as the session.
    """
    engine = create_async_engine(_get_database_url(), **_engine_kwargs(null_pool=True))
    session_maker = _make_session_maker(engine)
    try:
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise
    finally:
        await engine.dispose()


async def init_db():
    """Initialize database tables"""
    engine = _get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db():
    """Close database connections"""
    global _engine, _async_session_maker
    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _async_session_maker = None


def upsert_insert(session: AsyncSession, model):
    """
    Dialect-specific INSERT supporting ``on_conflict_do_nothing``.

    PostgreSQL in production, SQLite in tests.
    """
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    elif dialect == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    else:
        raise NotImplementedError(f"Conflict-tolerant insert not supported for {dialect}")
    return insert(model)
