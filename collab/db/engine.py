"""Async SQLAlchemy engine and session factory.

With DATABASE_URL set (postgresql+asyncpg://...), projects are stored
in PostgreSQL through PgProjectRepo, one session per request.  Without
it, every export here is None and the API uses InMemoryProjectRepo.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from collab.core.config import SETTINGS

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Declarative base for projects, milestones and progress entries."""


engine: AsyncEngine | None
async_session_factory: async_sessionmaker[AsyncSession] | None

if SETTINGS.database_url:
    engine = create_async_engine(
        SETTINGS.database_url,
        echo=SETTINGS.is_dev,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
    )
    async_session_factory = async_sessionmaker(engine, expire_on_commit=False)
else:
    engine = None
    async_session_factory = None


@asynccontextmanager
async def session_scope() -> AsyncGenerator[AsyncSession, None]:
    """One unit of work: commit on success, roll back on any error.

    A ConflictError from PgProjectRepo.save() propagates through here,
    so the losing writer's partial statements are rolled back.
    """
    if async_session_factory is None:
        raise RuntimeError("DATABASE_URL is not configured")
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def lifespan_db():
    if engine is None:
        logger.info("No DATABASE_URL configured; projects are kept in memory")
        yield
        return

    logger.info("Database engine created: %s", engine.url.render_as_string())
    yield
    await engine.dispose()
    logger.info("Database engine disposed")
