"""State transitions for issued token records.

States: issued-valid, issued-expired, confirmed.

Transitions come in pairs. The plain method only mutates the record in
memory; the ``*_and_persist`` variant mutates and then saves through the
store's unchecked write path. Lifecycle transitions are system-triggered,
so a record with some unrelated invalid field can still be refreshed,
reset, confirmed or expired.
"""

import logging
import uuid
from datetime import timedelta

from warden.core.config import settings
from warden.core.security import TokenGenerator
from warden.models.token import TokenKind, TokenRecord
from warden.services.ports import Clock, TokenIssuer, TokenStore, utc_now
from warden.services.token_policy import TokenPolicy

logger = logging.getLogger(__name__)

# How far into the past expire() moves expires_at
_EXPIRE_OFFSET = timedelta(seconds=1)


class TokenLifecycle:
    """Issues and transitions TokenRecords.

    Args:
        store: Token persistence collaborator.
        policy: TTL per token kind. Defaults to the configured TTLs.
        issuer: Token source. Defaults to a 256-bit TokenGenerator.
        clock: Returns the current time. Defaults to UTC now.
    """

    def __init__(
        self,
        store: TokenStore[TokenRecord],
        policy: TokenPolicy | None = None,
        *,
        issuer: TokenIssuer | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.store = store
        self.policy = policy or TokenPolicy.from_settings(settings)
        self.issuer = issuer or TokenGenerator(settings.token_bytes)
        self.clock = clock or utc_now

    # =========================================================================
    # Issuance
    # =========================================================================

    async def issue(self, record: TokenRecord) -> None:
        """Give a new record its token and expiry.

        Args:
            record: Record that has no token yet.

        Raises:
            ValueError: If the record already carries a token.
        """
        if record.token:
            msg = "Token record already has a token; use reset() to rotate it"
            raise ValueError(msg)
        record.token = await self._unique_token(record.kind)
        self._extend_expiry(record)

    async def create(
        self,
        resource_id: uuid.UUID,
        kind: TokenKind | str,
        realm: str,
    ) -> TokenRecord:
        """Build, issue and save a record for an account.

        Args:
            resource_id: Owning account ID.
            kind: Token kind (parsed, so strings are accepted).
            realm: Scope for this token within the account.

        Returns:
            The persisted record.

        Raises:
            ValidationError: If the kind is unknown, the realm is blank, or
                the account already has a record for this kind and realm.
        """
        record = TokenRecord(resource_id=resource_id, kind=kind, realm=realm)
        await self.issue(record)
        await self.store.commit_validated(record)
        return record

    async def find(self, kind: TokenKind | str, token: str) -> TokenRecord | None:
        """Look up a record by kind and token value."""
        if not token:
            return None
        return await self.store.find(TokenKind.parse(kind), token)

    # =========================================================================
    # Refresh / reset
    # =========================================================================

    def refresh(self, record: TokenRecord) -> None:
        """Push expires_at out by the kind's TTL, keeping the token."""
        self._extend_expiry(record)

    async def refresh_and_persist(self, record: TokenRecord) -> None:
        """Refresh and save without validation."""
        self.refresh(record)
        await self.store.commit_unchecked(record)

    async def reset(self, record: TokenRecord) -> None:
        """Rotate the token and push expires_at out. Does not save."""
        record.token = await self._unique_token(record.kind)
        self._extend_expiry(record)

    async def reset_and_persist(self, record: TokenRecord) -> None:
        """Reset and save without validation."""
        await self.reset(record)
        await self.store.commit_unchecked(record)

    # =========================================================================
    # Confirmation
    # =========================================================================

    def confirm(self, record: TokenRecord) -> None:
        """Mark the record confirmed. No-op if it already is."""
        if not self.is_confirmed(record):
            record.confirmed_at = self.clock()

    async def confirm_and_persist(self, record: TokenRecord) -> None:
        """Confirm and save without validation."""
        self.confirm(record)
        await self.store.commit_unchecked(record)

    def is_confirmed(self, record: TokenRecord) -> bool:
        """Whether the record has been confirmed."""
        return record.confirmed_at is not None

    # =========================================================================
    # Expiration
    # =========================================================================

    def expire(self, record: TokenRecord) -> None:
        """Move expires_at just into the past. No-op if already expired."""
        if not self.is_expired(record):
            record.expires_at = self.clock() - _EXPIRE_OFFSET

    async def expire_and_persist(self, record: TokenRecord) -> None:
        """Expire and save without validation."""
        self.expire(record)
        await self.store.commit_unchecked(record)

    def is_expired(self, record: TokenRecord) -> bool:
        """Whether the current time is past expires_at.

        A record without an expiry counts as expired.
        """
        if record.expires_at is None:
            return True
        return self.clock() > record.expires_at

    # =========================================================================
    # Helpers
    # =========================================================================

    def _extend_expiry(self, record: TokenRecord) -> None:
        record.expires_at = self.clock() + self.policy.ttl_for(record.kind)

    async def _unique_token(self, kind: TokenKind) -> str:
        # Retry instead of locking: a 256-bit collision is practically impossible
        while True:
            token = self.issuer.generate()
            if not await self.store.token_taken(kind, token):
                return token
            logger.debug("Generated %s token collided, retrying", kind.value)
