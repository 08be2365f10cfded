"""Shared plumbing for SQLAlchemy-backed stores.

Each store wraps one AsyncSession supplied by the caller, so the caller
still owns the outer transaction (commit/rollback in session_scope). Stores
only flush.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from warden.core.errors import PersistenceError
from warden.models.base import Base

logger = logging.getLogger(__name__)


class SqlAlchemyStore:
    """Write paths and transaction boundary over an AsyncSession."""

    def __init__(self, db: AsyncSession) -> None:
        """Initialize the store.

        Args:
            db: Async database session. The caller controls commit.
        """
        self._db = db
        # One list per open transaction() block: entities whose columns were
        # written by statement and so are invisible to the session's own
        # rollback bookkeeping.
        self._column_writes: list[list[Base]] = []

    async def commit_unchecked(self, entity: Base) -> None:
        """Persist an entity without running validation.

        Used by system-triggered state transitions (token refresh, reset,
        confirm, expire), which must not be blocked by unrelated field
        problems on the record.

        Args:
            entity: Model instance to persist.

        Raises:
            PersistenceError: If the flush fails.
        """
        self._db.add(entity)
        await self._flush()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        """Run a block inside a SAVEPOINT.

        Any exception inside the block rolls the savepoint back and is
        re-raised. Entities changed by statement-level writes inside the
        block are reloaded, so no cached object keeps rolled-back values.
        The enclosing session transaction is left open.
        """
        written: list[Base] = []
        self._column_writes.append(written)
        try:
            async with self._db.begin_nested():
                yield
        except Exception:
            self._column_writes.pop()
            await self._reload(written)
            raise
        self._column_writes.pop()
        if self._column_writes:
            # Still inside an outer block that may roll back later
            self._column_writes[-1].extend(written)

    def _track_column_write(self, entity: Base) -> None:
        if self._column_writes:
            self._column_writes[-1].append(entity)

    async def _reload(self, entities: list[Base]) -> None:
        seen: set[int] = set()
        for entity in entities:
            if id(entity) in seen or not inspect(entity).persistent:
                continue
            seen.add(id(entity))
            await self._db.refresh(entity)

    async def _flush(self) -> None:
        try:
            await self._db.flush()
        except SQLAlchemyError as exc:
            logger.warning("Flush failed: %s", type(exc).__name__)
            raise PersistenceError() from exc
