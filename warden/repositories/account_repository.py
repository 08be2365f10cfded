"""Repository for Account persistence.

Implements the ResourceStore port on top of an AsyncSession: case-insensitive
identifier lookup, uniqueness checks for the token columns, validated and
unchecked commits, and the single-statement column update that activation
relies on.
"""

import logging
import uuid
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm.attributes import set_committed_value

from warden.core.errors import PersistenceError
from warden.models.account import Account
from warden.repositories.base import SqlAlchemyStore
from warden.services.validation import raise_for_errors, taken, validate_account

logger = logging.getLogger(__name__)

# Columns with a uniqueness rule checked by commit_validated().
_UNIQUE_FIELDS: frozenset[str] = frozenset(
    {
        "email",
        "activation_token",
        "auth_token",
    }
)

# Columns that may be written by update_columns().
# Security: Never add 'id' or 'email'. Identity changes need their own flow.
_UPDATABLE_FIELDS: frozenset[str] = frozenset(
    {
        "password_hash",
        "activation_token",
        "activation_token_expires_at",
        "activated_at",
        "auth_token",
        "auth_token_expires_at",
    }
)


class AccountRepository(SqlAlchemyStore):
    """ResourceStore for the accounts table."""

    async def get_by_id(self, account_id: uuid.UUID) -> Account | None:
        """Fetch an account by primary key.

        Args:
            account_id: UUID primary key.

        Returns:
            Account if found, None otherwise.
        """
        return await self._db.get(Account, account_id)

    async def find_by_identifier(self, identifier: str) -> Account | None:
        """Fetch an account by email address (case-insensitive).

        Args:
            identifier: Email address to look up.

        Returns:
            Account if found, None otherwise.
        """
        stmt = select(Account).where(
            func.lower(Account.email) == identifier.strip().lower()
        )
        result = await self._db.execute(stmt)
        return result.scalar_one_or_none()

    async def value_taken(
        self,
        field: str,
        value: str,
        *,
        exclude_id: uuid.UUID | None = None,
    ) -> bool:
        """Check whether any account already holds a value.

        Args:
            field: One of the unique columns.
            value: Value to look for.
            exclude_id: Account to ignore (the one being saved).

        Returns:
            True if another account holds the value.

        Raises:
            ValueError: If ``field`` has no uniqueness rule.
        """
        if field not in _UNIQUE_FIELDS:
            msg = f"No uniqueness rule for field: {field}"
            raise ValueError(msg)

        column = getattr(Account, field)
        stmt = select(Account.id).where(column == value)
        if exclude_id is not None:
            stmt = stmt.where(Account.id != exclude_id)
        with self._db.no_autoflush:
            result = await self._db.execute(stmt.limit(1))
        return result.first() is not None

    async def commit_validated(self, entity: Account) -> None:
        """Validate then persist an account.

        Args:
            entity: Account to save.

        Raises:
            ValidationError: If the account breaks a field or uniqueness rule.
            PersistenceError: If the flush fails.
        """
        errors = validate_account(entity)
        for field in sorted(_UNIQUE_FIELDS):
            value = getattr(entity, field)
            if value and await self.value_taken(field, value, exclude_id=entity.id):
                errors.append(taken(field))
        if errors:
            logger.debug(
                "Account validation failed on: %s",
                ", ".join(sorted({e["field"] for e in errors})),
            )
        raise_for_errors("Account", errors)

        self._db.add(entity)
        await self._flush()

    async def update_columns(self, entity: Account, **fields: Any) -> None:
        """Write several columns in one UPDATE statement.

        Skips validation and leaves other pending changes on the entity
        alone. The in-memory entity is updated to match without being
        marked dirty. If an enclosing transaction() block rolls back, the
        entity is reloaded from the database.

        Args:
            entity: Persisted account to update.
            **fields: Column names and new values.

        Raises:
            ValueError: If an unknown field name is passed.
            PersistenceError: If the account has no row to update.
        """
        unknown = set(fields) - _UPDATABLE_FIELDS
        if unknown:
            msg = f"Unknown fields: {', '.join(sorted(unknown))}"
            raise ValueError(msg)
        if entity.id is None:
            raise PersistenceError("Account has not been saved")

        stmt = (
            update(Account)
            .where(Account.id == entity.id)
            .values(**fields)
            .execution_options(synchronize_session=False)
        )
        try:
            result = await self._db.execute(stmt)
        except SQLAlchemyError as exc:
            raise PersistenceError() from exc

        row_count: int = result.rowcount  # type: ignore[attr-defined]
        if row_count == 0:
            raise PersistenceError("Account has not been saved")

        for field, value in fields.items():
            set_committed_value(entity, field, value)
        self._track_column_write(entity)
