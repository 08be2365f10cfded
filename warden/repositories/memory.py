"""In-memory stores for tests and local experiments.

WHY IN-MEMORY:
- Protocol services can be exercised without a database
- Deterministic: no I/O, no ordering surprises
- Records every write so tests can assert what was (not) persisted

Entities are held by identity, like a session identity map: a lookup
returns the same object that was committed. Not safe for multi-threaded
access.
"""

import uuid
from collections.abc import AsyncIterator, Iterator
from contextlib import asynccontextmanager
from typing import Any, Generic, TypeVar

from sqlalchemy import inspect

from warden.core.errors import PersistenceError
from warden.models.account import Account
from warden.models.token import TokenKind, TokenRecord, underscore
from warden.services.validation import (
    raise_for_errors,
    taken,
    validate_account,
    validate_token_record,
)

_EntityT = TypeVar("_EntityT", Account, TokenRecord)

_ACCOUNT_UNIQUE_FIELDS = ("activation_token", "auth_token", "email")


def _column_keys(entity: object) -> list[str]:
    return [attr.key for attr in inspect(type(entity)).column_attrs]


class _InMemoryStore(Generic[_EntityT]):
    """Shared write paths and snapshot-based transactions.

    Attributes:
        writes: Log of (write_path, entity) tuples, in order.
    """

    def __init__(self) -> None:
        self._rows: dict[uuid.UUID, _EntityT] = {}
        self.writes: list[tuple[str, _EntityT]] = []

    def __iter__(self) -> Iterator[_EntityT]:
        return iter(list(self._rows.values()))

    def __len__(self) -> int:
        return len(self._rows)

    def add(self, entity: _EntityT) -> _EntityT:
        """Seed an entity without validation or write logging."""
        self._store(entity)
        return entity

    async def commit_unchecked(self, entity: _EntityT) -> None:
        """Persist without running validation."""
        self._store(entity)
        self.writes.append(("unchecked", entity))

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        """Snapshot every stored row and restore it if the block raises."""
        snapshot = {
            row_id: (entity, {k: getattr(entity, k) for k in _column_keys(entity)})
            for row_id, entity in self._rows.items()
        }
        writes_before = len(self.writes)
        try:
            yield
        except BaseException:
            for row_id, (entity, values) in snapshot.items():
                for key, value in values.items():
                    setattr(entity, key, value)
            self._rows = {row_id: entity for row_id, (entity, _) in snapshot.items()}
            del self.writes[writes_before:]
            raise

    def _store(self, entity: _EntityT) -> None:
        if entity.id is None:
            entity.id = uuid.uuid4()
        self._rows[entity.id] = entity

    def _others(self, entity: _EntityT) -> list[_EntityT]:
        return [row for row in self._rows.values() if row is not entity]


class InMemoryAccountStore(_InMemoryStore[Account]):
    """ResourceStore for accounts held in a dict."""

    async def find_by_identifier(self, identifier: str) -> Account | None:
        """Case-insensitive email lookup."""
        wanted = identifier.strip().lower()
        for account in self._rows.values():
            if account.email and account.email.lower() == wanted:
                return account
        return None

    async def value_taken(self, field: str, value: str) -> bool:
        """Whether any account holds ``value`` in ``field``."""
        if field not in _ACCOUNT_UNIQUE_FIELDS:
            msg = f"No uniqueness rule for field: {field}"
            raise ValueError(msg)
        return any(getattr(a, field) == value for a in self._rows.values())

    async def commit_validated(self, entity: Account) -> None:
        """Validate then persist an account."""
        errors = validate_account(entity)
        others = self._others(entity)
        for field in _ACCOUNT_UNIQUE_FIELDS:
            value = getattr(entity, field)
            if value and any(getattr(o, field) == value for o in others):
                errors.append(taken(field))
        raise_for_errors("Account", errors)

        self._store(entity)
        self.writes.append(("validated", entity))

    async def update_columns(self, entity: Account, **fields: Any) -> None:
        """Apply several column writes at once, skipping validation."""
        if entity.id is None or self._rows.get(entity.id) is not entity:
            raise PersistenceError("Account has not been saved")
        for field, value in fields.items():
            setattr(entity, field, value)
        self.writes.append(("update_columns", entity))


class InMemoryTokenStore(_InMemoryStore[TokenRecord]):
    """TokenStore for token records held in a dict."""

    async def find(self, kind: TokenKind, token: str) -> TokenRecord | None:
        """Look up a record by kind and token value."""
        kind = TokenKind.parse(kind)
        for record in self._rows.values():
            if record.kind is kind and record.token == token:
                return record
        return None

    async def find_for_resource(
        self, resource_id: uuid.UUID, kind: TokenKind, realm: str
    ) -> TokenRecord | None:
        """Look up an account's record for a kind and realm."""
        kind = TokenKind.parse(kind)
        realm = underscore(realm)
        for record in self._rows.values():
            if (
                record.resource_id == resource_id
                and record.kind is kind
                and record.realm == realm
            ):
                return record
        return None

    async def token_taken(self, kind: TokenKind, token: str) -> bool:
        """Whether ``token`` is already issued for ``kind``."""
        return await self.find(kind, token) is not None

    async def commit_validated(self, entity: TokenRecord) -> None:
        """Validate then persist a token record."""
        errors = validate_token_record(entity)
        if not errors:
            others = self._others(entity)
            if any(o.kind is entity.kind and o.token == entity.token for o in others):
                errors.append(taken("token"))
            if any(
                o.resource_id == entity.resource_id
                and o.kind is entity.kind
                and o.realm == entity.realm
                for o in others
            ):
                errors.append(taken("realm"))
        raise_for_errors("Token", errors)

        self._store(entity)
        self.writes.append(("validated", entity))
