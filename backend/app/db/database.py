"""Database configuration and session management."""

from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase

from app.config import settings

# Create async engine
engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    pool_pre_ping=True,
)

# Session factory
async_session = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


async def get_db() -> AsyncIterator[AsyncSession]:
    """Dependency to get database session."""
    async with async_session() as session:
        try:
            yield session
        finally:
            await session.close()


@asynccontextmanager
async def worker_session_factory() -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    """Session factory bound to a fresh engine for one worker task.

    Celery tasks run each job in its own event loop, so the pooled module
    engine cannot be shared with them.
    """
    worker_engine = create_async_engine(settings.database_url, pool_pre_ping=True)
    try:
        yield async_sessionmaker(worker_engine, class_=AsyncSession, expire_on_commit=False)
    finally:
        await worker_engine.dispose()


async def init_db():
    """Initialize database tables."""
    # Import all models to register them with Base.metadata
    from app.models import (  # noqa: F401
        broker_intelligence,
        cron_log,
        email,
        exposure,
        job_lock,
        request,
        user,
        whitelist,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
