"""Async database engine and session management.

Provides async PostgreSQL connections via SQLModel and asyncpg.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from sqlalchemy import event
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlmodel.ext.asyncio.session import AsyncSession

from taskboard.config import get_settings

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from sqlalchemy.ext.asyncio import AsyncEngine

logger = logging.getLogger(__name__)
_pool_logger = logging.getLogger(f"{__name__}.pool")


def _install_pool_listeners(engine: AsyncEngine) -> None:
    """Log new and invalidated pool connections."""
    pool = engine.sync_engine.pool

    @event.listens_for(pool, "connect")
    def _on_connect(_dbapi_conn: object, _rec: object) -> None:
        _pool_logger.info("New database connection")

    @event.listens_for(pool, "invalidate")
    def _on_invalidate(
        _dbapi_conn: object,
        _rec: object,
        exception: BaseException | None,
        soft: bool,
    ) -> None:
        _pool_logger.warning(
            "Connection invalidated soft=%s exception=%s",
            soft,
            type(exception).__name__ if exception else None,
        )


@dataclass
class _DatabaseState:
    """Engine and session factory, created on startup."""

    engine: AsyncEngine | None = field(default=None)
    session_factory: async_sessionmaker[AsyncSession] | None = field(default=None)


_state = _DatabaseState()


def get_database_url() -> str:
    """Return DATABASE__URL from Settings.

    Raises:
        ValueError: If DATABASE__URL is not configured.
    """
    url = get_settings().database.url
    if not url:
        msg = (
            "DATABASE__URL is not configured. "
            "Set it in your .env file or as an environment variable."
        )
        raise ValueError(msg)
    return url


def get_engine() -> AsyncEngine | None:
    """Return the engine if initialised, for test fixtures."""
    return _state.engine


async def init_db() -> None:
    """Create the async engine and session factory.

    Call on application startup (NiceGUI ``app.on_startup``).
    """
    _state.engine = create_async_engine(
        get_database_url(),
        echo=get_settings().dev.database_echo,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
        pool_recycle=3600,
        connect_args={"timeout": 10, "command_timeout": 30},
    )
    _install_pool_listeners(_state.engine)
    _state.session_factory = async_sessionmaker(
        _state.engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def close_db() -> None:
    """Dispose of the engine. Call on application shutdown."""
    if _state.engine:
        await _state.engine.dispose()
        _state.engine = None
        _state.session_factory = None


@asynccontextmanager
async def get_session() -> AsyncIterator[AsyncSession]:
    """Yield a session that commits on success and rolls back on error.

    Initialises the engine lazily so it is bound to the running event loop.

    Usage:
        async with get_session() as session:
            card = await session.get(BoardCard, card_id)
    """
    if _state.session_factory is None:
        await init_db()

    session_factory = _state.session_factory
    assert session_factory is not None

    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            logger.exception("Database session error, rolling back transaction")
            await session.rollback()
            raise
