"""Async database engine, session factory and Redis connection."""

from typing import AsyncGenerator, Optional

from redis import asyncio as aioredis
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from allobricolage.config import get_settings

settings = get_settings()

Base = declarative_base()

engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    pool_pre_ping=True,
)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

_redis: Optional[aioredis.Redis] = None


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield a database session per request."""
    async with AsyncSessionLocal() as session:
        yield session


def get_redis() -> Optional[aioredis.Redis]:
    """Shared Redis client, or None when REDIS_URL is not configured."""
    global _redis
    if not settings.REDIS_URL:
        return None
    if _redis is None:
        _redis = aioredis.from_url(settings.REDIS_URL, decode_responses=True)
    return _redis


async def init_db() -> None:
    """Create tables that do not exist yet (migrations handle the rest)."""
    # Import models so they are registered on Base.metadata
    import allobricolage.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Dispose the engine and the Redis connection."""
    global _redis
    await engine.dispose()
    if _redis is not None:
        await _redis.aclose()
        _redis = None
