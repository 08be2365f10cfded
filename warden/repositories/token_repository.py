"""Repository for TokenRecord persistence.

Implements the TokenStore port: lookups by (kind, token) and by
(resource, kind, realm), the uniqueness check used by the issuance retry
loop, and validated/unchecked commits.
"""

import logging
import uuid

from sqlalchemy import select

from warden.models.token import TokenKind, TokenRecord, underscore
from warden.repositories.base import SqlAlchemyStore
from warden.services.validation import (
    raise_for_errors,
    taken,
    validate_token_record,
)

logger = logging.getLogger(__name__)


class TokenRepository(SqlAlchemyStore):
    """TokenStore for the tokens table."""

    async def find(self, kind: TokenKind, token: str) -> TokenRecord | None:
        """Look up a record by kind and token value.

        Args:
            kind: Token kind.
            token: Token value.

        Returns:
            TokenRecord if found, None otherwise.
        """
        stmt = select(TokenRecord).where(
            TokenRecord.kind == TokenKind.parse(kind),
            TokenRecord.token == token,
        )
        result = await self._db.execute(stmt)
        return result.scalar_one_or_none()

    async def find_for_resource(
        self,
        resource_id: uuid.UUID,
        kind: TokenKind,
        realm: str,
    ) -> TokenRecord | None:
        """Look up an account's record for a kind and realm.

        Args:
            resource_id: Owning account ID.
            kind: Token kind.
            realm: Realm, normalized before lookup.

        Returns:
            TokenRecord if found, None otherwise.
        """
        stmt = select(TokenRecord).where(
            TokenRecord.resource_id == resource_id,
            TokenRecord.kind == TokenKind.parse(kind),
            TokenRecord.realm == underscore(realm),
        )
        result = await self._db.execute(stmt)
        return result.scalar_one_or_none()

    async def token_taken(
        self,
        kind: TokenKind,
        token: str,
        *,
        exclude_id: uuid.UUID | None = None,
    ) -> bool:
        """Check whether a token value is already issued for a kind.

        Args:
            kind: Token kind (uniqueness scope).
            token: Token value to look for.
            exclude_id: Record to ignore (the one being saved).

        Returns:
            True if another record of this kind holds the value.
        """
        stmt = select(TokenRecord.id).where(
            TokenRecord.kind == TokenKind.parse(kind),
            TokenRecord.token == token,
        )
        if exclude_id is not None:
            stmt = stmt.where(TokenRecord.id != exclude_id)
        with self._db.no_autoflush:
            result = await self._db.execute(stmt.limit(1))
        return result.first() is not None

    async def _realm_taken(self, record: TokenRecord) -> bool:
        stmt = select(TokenRecord.id).where(
            TokenRecord.resource_id == record.resource_id,
            TokenRecord.kind == record.kind,
            TokenRecord.realm == record.realm,
        )
        if record.id is not None:
            stmt = stmt.where(TokenRecord.id != record.id)
        with self._db.no_autoflush:
            result = await self._db.execute(stmt.limit(1))
        return result.first() is not None

    async def commit_validated(self, entity: TokenRecord) -> None:
        """Validate then persist a token record.

        Args:
            entity: Record to save.

        Raises:
            ValidationError: If the record breaks a field or uniqueness rule.
            PersistenceError: If the flush fails.
        """
        errors = validate_token_record(entity)
        if not errors:
            if await self.token_taken(
                entity.kind, entity.token, exclude_id=entity.id
            ):
                errors.append(taken("token"))
            if await self._realm_taken(entity):
                errors.append(taken("realm"))
        if errors:
            logger.debug(
                "Token record validation failed on: %s",
                ", ".join(sorted({e["field"] for e in errors})),
            )
        raise_for_errors("Token", errors)

        self._db.add(entity)
        await self._flush()
