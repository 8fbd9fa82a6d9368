"""
Database Configuration

Async SQLAlchemy engine, session factory and the FastAPI session dependency.
"""

import logging
from collections.abc import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from app.core.config import settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""


engine = create_async_engine(
    settings.database_url,
    echo=settings.database_echo,
    pool_pre_ping=True,
)

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency yielding one database session per request.

    The session is rolled back if the request handler raises, and is
    always closed afterwards.
    """
    async with async_session_maker() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """
    Verify database connectivity on startup.

    In development the tables are created directly from the models so a
    fresh database works without running migrations.
    """
    # Register models on Base.metadata
    import app.modules.admins.models  # noqa: F401
    import app.modules.card_applications.models  # noqa: F401
    import app.modules.payments.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.execute(text("SELECT 1"))
        if settings.is_development:
            await conn.run_sync(Base.metadata.create_all)
            logger.info("Database tables ensured (development mode)")


async def close_db() -> None:
    """Dispose of the engine's connection pool."""
    await engine.dispose()
