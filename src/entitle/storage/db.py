"""Async database engine and session factory.

Provides a single engine per process with lazy initialization.
All consumers go through get_session() for connection management.
When DATABASE_URL is empty, no store is configured and callers fall
back to their degraded paths; check is_configured() first.
"""

import logging

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from entitle.config import settings
from entitle.core.errors import StoreUnavailableError
from entitle.storage.models import Base

logger = logging.getLogger(__name__)

_engine = None
_session_factory = None


def is_configured() -> bool:
    """True when a persistent store is configured for this process."""
    return bool(settings.database_url)


def _get_engine():
    global _engine
    if _engine is None:
        if not is_configured():
            raise StoreUnavailableError("DATABASE_URL not configured")
        kwargs: dict = {"echo": False}
        connect_args: dict = {"timeout": 10}  # 10s connection timeout for asyncpg
        if settings.database_require_ssl:
            import ssl

            ctx = ssl.create_default_context()
            connect_args["ssl"] = ctx
        kwargs["connect_args"] = connect_args
        _engine = create_async_engine(
            settings.database_url,
            pool_pre_ping=True,
            pool_recycle=300,
            pool_size=5,
            **kwargs,
        )
    return _engine


async def init_db() -> None:
    """Create the PostGIS extension and all tables if they don't exist."""
    engine = _get_engine()
    async with engine.begin() as conn:
        await conn.execute(text("CREATE EXTENSION IF NOT EXISTS postgis;"))
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database initialized")


async def get_session() -> AsyncSession:
    """Get an async database session."""
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(_get_engine(), expire_on_commit=False)
    return _session_factory()
