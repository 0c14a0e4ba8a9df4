"""Async database setup"""

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from typing import Any, AsyncGenerator, Dict
import logging

from tka_invoice.config import settings

logger = logging.getLogger(__name__)


def engine_connect_args(database_url: str) -> Dict[str, Any]:
    """
    Driver connect arguments for a database URL.

    SQLite allows one writer at a time, so connections wait up to
    DATABASE_CONNECT_TIMEOUT seconds for a lock instead of failing with
    "database is locked" while another handler allocates an invoice number.
    """
    if make_url(database_url).get_backend_name() == "sqlite":
        return {"timeout": settings.DATABASE_CONNECT_TIMEOUT}
    return {}


engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    connect_args=engine_connect_args(settings.DATABASE_URL),
)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False
)

Base = declarative_base()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Get database session (dependency for FastAPI)"""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


async def dispose_engine() -> None:
    """Close pooled connections (application shutdown)"""
    await engine.dispose()
    logger.info("Database connections closed")
