"""Async engine and session wiring for the SQLAlchemy stores.

The library never opens a connection at import time. Callers build an
engine from a Settings object (or the process-wide one), turn it into a
session factory, and open one session_scope() per unit of work:

    engine = build_engine()
    sessions = build_session_factory(engine)
    async with session_scope(sessions) as db:
        await ActivationProtocol(AccountRepository(db)).find_and_activate(...)
"""

from collections.abc import AsyncIterator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import Any

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from warden.core.config import Settings, settings

SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]


def build_engine(config: Settings | None = None, **engine_kwargs: Any) -> AsyncEngine:
    """Create an async engine for the configured database.

    Args:
        config: Settings to read the database URL from. Defaults to the
            process-wide settings.
        **engine_kwargs: Passed through to create_async_engine (e.g. echo,
            pool_size).

    Returns:
        Engine with pre-ping enabled so stale pooled connections are
        replaced instead of failing the first query.
    """
    config = config or settings
    engine_kwargs.setdefault("pool_pre_ping", True)
    return create_async_engine(config.database_url, **engine_kwargs)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory whose sessions keep attributes loaded after commit.

    WHY expire_on_commit=False: protocol results (the activated or
    authenticated account) are read after the caller commits, and an
    expired attribute would need an implicit async reload.
    """
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@asynccontextmanager
async def session_scope(factory: SessionFactory) -> AsyncIterator[AsyncSession]:
    """Open a session that commits on success and rolls back on error.

    Args:
        factory: Zero-argument callable returning an async session context,
            usually from build_session_factory().

    Yields:
        The open session.
    """
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
