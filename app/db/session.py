# app/db/session.py
from __future__ import annotations

"""
# Yunoa — Database Sessions (async SQLAlchemy 2.x)

- One async engine for the process, built from `settings.ASYNC_DATABASE_URL`
  (asyncpg in production; `DATABASE_URI` can point at any async driver).
- `get_async_db` — FastAPI dependency; one session per request, rolled back on error.
- `transactional_async_session` — context manager for jobs outside a request
  (renewal reminders, scripts); commits on success.
- `db_healthcheck` — `SELECT 1` for `/readyz`.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Dict, Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.core.config import settings

logger = logging.getLogger(__name__)


def _engine_kwargs(url: str) -> Dict[str, Any]:
    kwargs: Dict[str, Any] = {"echo": settings.DB_ECHO, "pool_pre_ping": True}
    if url.startswith("postgresql"):
        kwargs.update(
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_recycle=settings.DB_POOL_RECYCLE,
        )
    return kwargs


async_engine = create_async_engine(
    settings.ASYNC_DATABASE_URL,
    **_engine_kwargs(settings.ASYNC_DATABASE_URL),
)

async_session_maker = async_sessionmaker(
    bind=async_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_async_db() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session. Routes commit explicitly; errors roll back."""
    async with async_session_maker() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def transactional_async_session() -> AsyncGenerator[AsyncSession, None]:
    """Session wrapped in a transaction: commit on success, rollback on error."""
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            logger.exception("Transaction rolled back")
            raise


async def db_healthcheck() -> bool:
    try:
        async with async_engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception as e:  # noqa: BLE001
        logger.warning("DB healthcheck failed: %s", e)
        return False


__all__ = [
    "async_engine",
    "async_session_maker",
    "get_async_db",
    "transactional_async_session",
    "db_healthcheck",
]
