"""Account activation protocol.

States: pending (unexpired activation token) -> activated (terminal).

Flow for find_and_activate():
1. Blank identifier or token -> False
2. Inside one transaction: look up the account (case-insensitive)
3. Unknown account or expired token -> False
4. Constant-time token comparison; mismatch -> False, nothing written
5. Match -> activate (single atomic write) + success callback -> True

Every failure returns the same False, so callers cannot distinguish an
unknown identifier from a wrong or expired token.
"""

from datetime import datetime, timedelta

import structlog

from warden.core.config import settings
from warden.core.security import TokenGenerator, fingerprint, secure_compare
from warden.services.ports import (
    Activatable,
    Clock,
    ResourceStore,
    TokenIssuer,
    utc_now,
)
from warden.services.protocol_utils import (
    SuccessCallback,
    is_blank,
    run_callback,
    unique_resource_token,
)

logger = structlog.get_logger()


class ActivationProtocol:
    """Pending -> activated state machine for accounts.

    Args:
        store: Account persistence collaborator.
        issuer: Token source. Defaults to a 256-bit TokenGenerator.
        clock: Returns the current time. Defaults to UTC now.
        default_expiry: Activation token lifetime when no explicit expiry
            is given. Defaults to the configured value (1 hour).
    """

    def __init__(
        self,
        store: ResourceStore[Activatable],
        *,
        issuer: TokenIssuer | None = None,
        clock: Clock | None = None,
        default_expiry: timedelta | None = None,
    ) -> None:
        self.store = store
        self.issuer = issuer or TokenGenerator(settings.token_bytes)
        self.clock = clock or utc_now
        self.default_expiry = default_expiry or settings.activation_default_expiry

    async def create_activation_token(
        self,
        resource: Activatable,
        expiry: datetime | None = None,
    ) -> str:
        """Give an account a fresh activation token. Does not save.

        Args:
            resource: Account to update.
            expiry: When the token stops working. Defaults to now plus
                the default expiry.

        Returns:
            The new activation token.
        """
        resource.activation_token = await unique_resource_token(
            self.store, "activation_token", self.issuer
        )
        resource.activation_token_expires_at = expiry or (
            self.clock() + self.default_expiry
        )
        return resource.activation_token

    async def create_activation_token_and_persist(
        self,
        resource: Activatable,
        expiry: datetime | None = None,
    ) -> str:
        """Create an activation token and save without validation."""
        token = await self.create_activation_token(resource, expiry)
        await self.store.commit_unchecked(resource)
        return token

    def is_activation_expired(self, resource: Activatable) -> bool:
        """Whether the activation token can no longer be used.

        An account without an expiry counts as expired (fail closed).
        """
        expires_at = resource.activation_token_expires_at
        if expires_at is None:
            return True
        return expires_at <= self.clock()

    def is_activated(self, resource: Activatable) -> bool:
        """Whether the account has been activated."""
        return resource.activated_at is not None

    async def activate(self, resource: Activatable) -> None:
        """Move the account to the activated state.

        activated_at and the cleared expiry are written in one statement,
        so the two fields are never observed disagreeing. Skips validation.

        Raises:
            PersistenceError: If the account has not been saved.
        """
        await self.store.update_columns(
            resource,
            activated_at=self.clock(),
            activation_token_expires_at=None,
        )

    async def find_and_activate(
        self,
        identifier: str | None,
        presented_token: str | None,
        on_success: SuccessCallback[Activatable] | None = None,
    ) -> bool:
        """Activate the account matching an identifier and token.

        Args:
            identifier: Email address (case-insensitive).
            presented_token: Activation token from the user.
            on_success: Called with the activated account, inside the same
                transaction. May be sync or async. If it raises, the
                activation is rolled back and the exception propagates.

        Returns:
            True if the account was activated, False otherwise.
        """
        if is_blank(identifier) or is_blank(presented_token):
            return False
        assert identifier is not None  # narrowed by is_blank

        async with self.store.transaction():
            resource = await self.store.find_by_identifier(identifier)
            if resource is None:
                logger.info(
                    "activation_failed",
                    reason="not_found",
                    identifier=fingerprint(identifier),
                )
                return False

            if self.is_activation_expired(resource):
                logger.info(
                    "activation_failed",
                    reason="expired",
                    identifier=fingerprint(identifier),
                )
                return False

            if not secure_compare(resource.activation_token, presented_token):
                logger.info(
                    "activation_failed",
                    reason="mismatch",
                    identifier=fingerprint(identifier),
                )
                return False

            await self.activate(resource)
            await run_callback(on_success, resource)

        logger.info("account_activated", identifier=fingerprint(identifier))
        return True
