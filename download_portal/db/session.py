"""Database session configuration."""

from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from download_portal.core.config import settings

Base = declarative_base()


def build_engine(database_url: str, echo: bool = False, **extra: Any) -> AsyncEngine:
    """Create the process-wide async engine (one connection pool per process).

    Bound parameters are kept out of error messages and logs: they carry
    download tokens and session digests.
    """
    options: dict[str, Any] = {"echo": echo, "pool_pre_ping": True, "hide_parameters": True}
    if database_url.startswith("postgresql"):
        options.update(pool_size=10, max_overflow=20)
    options.update(extra)
    return create_async_engine(database_url, **options)


engine = build_engine(settings.DATABASE_URL, echo=settings.DEBUG)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency to get database session.

    IMPORTANT: This does NOT auto-commit. Services that modify data must
    explicitly call `await db.commit()` to persist changes.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
