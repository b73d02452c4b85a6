"""PostgreSQL store with async SQLAlchemy.

Handles:
- Engine and session lifecycle (pool sized from settings)
- Connectivity check on startup

Repositories (offers, wishlists, import templates) live in services, receive
sessions from get_session() and translate DB_ERRORS into StoreError.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from offerwatch.settings import get_settings

# asyncpg surfaces an unreachable server as a raw OSError (ConnectionRefusedError,
# socket.gaierror, TimeoutError) rather than a SQLAlchemy error.
DB_ERRORS = (SQLAlchemyError, OSError)


class Base(DeclarativeBase):
    """Base class for offerwatch tables."""

    pass


_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


async def init_db() -> None:
    """Create the engine and session factory. Does not connect yet."""
    global _engine, _session_factory

    settings = get_settings()
    _engine = create_async_engine(
        settings.async_database_url,
        echo=settings.debug,
        connect_args=settings.asyncpg_connect_args,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
        pool_pre_ping=True,
    )
    _session_factory = async_sessionmaker(_engine, expire_on_commit=False)


async def ping_db() -> None:
    """Run SELECT 1; raises if Postgres is unreachable."""
    async with get_session() as session:
        await session.execute(text("SELECT 1"))


async def close_db() -> None:
    global _engine, _session_factory
    if _engine:
        await _engine.dispose()
        _engine = None
        _session_factory = None


@asynccontextmanager
async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Session that commits on success and rolls back on any error.

    Usage:
        async with get_session() as session:
            session.add(row)
    """
    if _session_factory is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")

    async with _session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
