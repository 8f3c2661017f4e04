"""Database connection and session management."""
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from ..config import get_settings
from .models.base import Base

settings = get_settings()

_engine_kwargs: dict = {
    "echo": settings.database_echo,
    "pool_pre_ping": True,
}

# SQLite uses a single-connection pool that rejects sizing arguments
if not settings.is_sqlite:
    _engine_kwargs.update(
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_timeout=10,
        pool_recycle=3600,
    )

# Enforce SSL for database connections in production
if settings.is_production:
    _engine_kwargs["connect_args"] = {"ssl": "require"}

# Create async engine
engine = create_async_engine(settings.database_url, **_engine_kwargs)

# Session factory
async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency for getting database sessions."""
    async with async_session_maker() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


@asynccontextmanager
async def transaction(session: AsyncSession) -> AsyncGenerator[AsyncSession, None]:
    """Scope a group of writes on an existing session.

    Everything flushed inside the block is committed together when the block
    exits normally, and rolled back on any exception.

    Usage:
        async with transaction(db):
            db.add(project)
            await db.flush()
            db.add(ProjectMember(project_id=project.id, ...))
    """
    try:
        yield session
        await session.commit()
    except BaseException:
        await session.rollback()
        raise


async def init_db() -> None:
    """Initialize database tables."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Close database connections."""
    await engine.dispose()
