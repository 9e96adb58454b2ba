"""
SwipeFeed — Async Database Engine & Session Factory

Used only when ``CACHE_BACKEND=sql``.  Two dialects are supported:

1. **PostgreSQL** – ``postgresql+asyncpg://`` URLs get the pooled engine.
2. **SQLite** – ``sqlite+aiosqlite://`` URLs (the local default) use the
   dialect's own pool.

The engine is built lazily on first use so that importing the ORM models
never requires a reachable database.
"""

from __future__ import annotations

import logging
from functools import lru_cache

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from swipefeed.config import get_settings

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------ #
# Declarative base for all ORM models
# ------------------------------------------------------------------ #

class Base(DeclarativeBase):
    """Shared declarative base.

    Every SQLAlchemy model in the project should inherit from this class::

        from swipefeed.database import Base

        class CachedProfile(Base):
            __tablename__ = "cached_profiles"
            ...
    """
    pass


# ------------------------------------------------------------------ #
# Pool configuration (PostgreSQL only)
# ------------------------------------------------------------------ #

_POOL_KWARGS = {
    "pool_size": 10,
    "max_overflow": 5,
    "pool_timeout": 30,
    "pool_recycle": 1800,
    "pool_pre_ping": True,
}


def _normalise_url(url: str) -> str:
    # Transparently upgrade plain schemes to their async drivers.
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if url.startswith("sqlite://"):
        return url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    return url


@lru_cache(maxsize=1)
def get_engine() -> AsyncEngine:
    """Create (once) the async engine described by ``DATABASE_URL``."""
    settings = get_settings()
    url = _normalise_url(settings.DATABASE_URL)

    kwargs = dict(_POOL_KWARGS) if url.startswith("postgresql") else {}
    engine = create_async_engine(
        url,
        echo=(settings.LOG_LEVEL == "DEBUG"),
        **kwargs,
    )

    logger.info("Database engine created for %s", url.split("://", 1)[0])
    return engine


@lru_cache(maxsize=1)
def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Return the process-wide session factory bound to ``get_engine()``."""
    return async_sessionmaker(
        bind=get_engine(),
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def init_models(engine: AsyncEngine | None = None) -> None:
    """Create the cache and ledger tables if they do not exist yet."""
    # Registers every mapped class on Base.metadata.
    import swipefeed.models  # noqa: F401

    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine() -> None:
    """Close the connection pool if an engine was ever created."""
    if get_engine.cache_info().currsize:
        await get_engine().dispose()
        logger.info("Database engine disposed")
