"""Async engine and sessions for the scheduling store."""

from collections.abc import AsyncGenerator

import structlog
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from firstcare.config import settings

logger = structlog.get_logger()


def build_engine(url: str | None = None) -> AsyncEngine:
    """
    Create an asyncpg engine for the scheduling database.

    Every connection runs in the scheduling time zone, so ``NOW()``
    column defaults are written on the same wall clock as appointment
    dates and times.

    Args:
        url: Override for the configured database URL

    Returns:
        Pooled async engine
    """
    return create_async_engine(
        url or settings.async_database_url,
        echo=settings.debug,
        pool_pre_ping=True,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_recycle=settings.db_pool_recycle,
        connect_args={
            "server_settings": {
                "application_name": settings.app_name,
                "timezone": settings.scheduling_timezone,
            },
        },
    )


engine: AsyncEngine = build_engine()

AsyncSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session; repositories commit their own writes."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def check_database_connection(bind: AsyncEngine | None = None) -> bool:
    """Whether the appointments database answers a trivial query."""
    try:
        async with (bind or engine).connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        logger.warning("database_ping_failed", error=str(e))
        return False
    return True
