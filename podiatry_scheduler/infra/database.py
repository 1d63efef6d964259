"""
Database Connection and Session Management

Provides the async SQLAlchemy 2.0 engine, session factory and lifecycle
helpers used by the SQL appointment store.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from podiatry_scheduler.config import settings
from podiatry_scheduler.models.database import Base


def create_engine_for(url: str, echo: bool = False) -> AsyncEngine:
    """Create an async engine for a database URL."""
    return create_async_engine(url, echo=echo, poolclass=NullPool, future=True)


def create_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create a session factory bound to an engine."""
    return async_sessionmaker(
        bind=bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


# Create async engine
engine = create_engine_for(settings.database_url, echo=settings.debug)

# Create session factory
async_session_factory = create_session_factory(engine)


@asynccontextmanager
async def get_db_context() -> AsyncGenerator[AsyncSession, None]:
    """
    Context manager for database sessions outside the store.

    Usage:
        async with get_db_context() as db:
            result = await db.execute(select(Service))

    Yields:
        AsyncSession: Database session
    """
    session = async_session_factory()
    try:
        yield session
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()


async def init_db(bind: AsyncEngine = None) -> None:
    """
    Create all database tables.

    WARNING: This is for development and tests only. Production schemas
    are managed with migrations.
    """
    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Close all database connections (application shutdown)."""
    await engine.dispose()


async def check_db_health() -> bool:
    """
    Check database connectivity for health checks.

    Returns:
        bool: True if database is accessible, False otherwise
    """
    try:
        async with get_db_context() as db:
            await db.execute(text("SELECT 1"))
        return True
    except Exception:
        return False
