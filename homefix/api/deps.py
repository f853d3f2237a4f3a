"""
Shared FastAPI dependencies for the HomeFix backend.

Provides the async database session dependency used by all route handlers
and the settings dependency through which handlers receive configuration.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from homefix.core.config import Settings, get_settings, settings

# ---------------------------------------------------------------------------
# Async engine & session factory
# ---------------------------------------------------------------------------
# The engine is created once at module import time.  The session factory
# produces lightweight ``AsyncSession`` instances that are scoped to a single
# request via the ``get_db`` dependency below.
# ---------------------------------------------------------------------------

engine = create_async_engine(
    settings.database_url,
    echo=settings.sql_echo,
    pool_size=settings.db_pool_size,
    max_overflow=settings.db_max_overflow,
    pool_pre_ping=True,
)

async_session_factory = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async database session that is committed on success, rolled
    back on error, and closed after the request completes.

    The assignment engine commits its own units of work; anything still
    pending when the handler returns is committed here.

    Usage in a route::

        @router.get("/items")
        async def list_items(db: DBSession):
            ...
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# ---------------------------------------------------------------------------
# Annotated type aliases for convenience
# ---------------------------------------------------------------------------
DBSession = Annotated[AsyncSession, Depends(get_db)]
AppSettings = Annotated[Settings, Depends(get_settings)]
