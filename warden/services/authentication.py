"""Account authentication protocol.

Two ways in:
- authenticate_securely(): identifier + bearer auth token
- find_and_authenticate(): identifier + password, checked by the
  credential verifier

Security:
- Tokens are compared in constant time
- An attempt with an expired token rotates the stored token, so the stale
  value can never be replayed later
- Unknown identifiers, wrong credentials and expired tokens all produce
  the same falsy result; the password path also burns a dummy bcrypt check
  when the identifier is unknown or the input is blank, so response time
  does not reveal either
"""

from datetime import timedelta

import structlog

from warden.core.config import settings
from warden.core.credentials import DUMMY_HASH, BcryptCredentialVerifier
from warden.core.security import TokenGenerator, fingerprint, secure_compare
from warden.services.ports import (
    Authenticatable,
    Clock,
    CredentialVerifier,
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
from warden.services.validation import raise_for_errors, validate_password

logger = structlog.get_logger()

# Hashed against DUMMY_HASH when the request is blank, so blank input costs
# the same bcrypt work as a real attempt
_TIMING_PLAINTEXT = "timing-equalizer"  # nosec B105


class AuthenticationProtocol:
    """Credential matching for accounts.

    Args:
        store: Account persistence collaborator.
        verifier: Password verifier. Defaults to bcrypt.
        issuer: Token source. Defaults to a 256-bit TokenGenerator.
        clock: Returns the current time. Defaults to UTC now.
        ttl: Auth token lifetime. Defaults to the session token TTL.
    """

    def __init__(
        self,
        store: ResourceStore[Authenticatable],
        verifier: CredentialVerifier | None = None,
        *,
        issuer: TokenIssuer | None = None,
        clock: Clock | None = None,
        ttl: timedelta | None = None,
    ) -> None:
        self.store = store
        self.verifier = verifier or BcryptCredentialVerifier()
        self.issuer = issuer or TokenGenerator(settings.token_bytes)
        self.clock = clock or utc_now
        self.ttl = ttl or settings.session_token_ttl
        self.password_min_length = settings.password_min_length
        self.password_max_length = settings.password_max_length

    # =========================================================================
    # Auth token management
    # =========================================================================

    async def ensure_auth_token(self, resource: Authenticatable) -> str:
        """Issue an auth token only if the account has none. Does not save."""
        if not resource.auth_token:
            await self.reset_auth_token(resource)
        assert resource.auth_token is not None
        return resource.auth_token

    async def reset_auth_token(self, resource: Authenticatable) -> str:
        """Rotate the auth token and push its expiry out. Does not save."""
        resource.auth_token = await unique_resource_token(
            self.store, "auth_token", self.issuer
        )
        resource.auth_token_expires_at = self.clock() + self.ttl
        return resource.auth_token

    async def reset_auth_token_and_persist(
        self, resource: Authenticatable
    ) -> str:
        """Rotate the auth token and save without validation."""
        token = await self.reset_auth_token(resource)
        await self.store.commit_unchecked(resource)
        return token

    def is_auth_token_expired(self, resource: Authenticatable) -> bool:
        """Whether the auth token is past its expiry.

        An account without an expiry counts as expired (fail closed).
        """
        expires_at = resource.auth_token_expires_at
        if expires_at is None:
            return True
        return self.clock() > expires_at

    def set_password(self, resource: Authenticatable, plaintext: str | None) -> None:
        """Hash and store a new password on the account. Does not save.

        Args:
            resource: Account to update.
            plaintext: New password.

        Raises:
            ValidationError: If the password is blank, too short or too long.
                The account is left untouched.
        """
        errors = validate_password(
            plaintext,
            min_length=self.password_min_length,
            max_length=self.password_max_length,
        )
        raise_for_errors("Password", errors)
        assert plaintext is not None  # narrowed by validate_password
        resource.password_hash = self.verifier.hash(plaintext)

    # =========================================================================
    # Authentication flows
    # =========================================================================

    async def authenticate_securely(
        self,
        identifier: str | None,
        presented_token: str | None,
        on_success: SuccessCallback[Authenticatable] | None = None,
    ) -> bool:
        """Authenticate by identifier and bearer token.

        Args:
            identifier: Email address (case-insensitive).
            presented_token: Auth token from the client.
            on_success: Called with the matched account inside the
                transaction. May be sync or async.

        Returns:
            True if the token matched, False otherwise.
        """
        if is_blank(identifier) or is_blank(presented_token):
            return False
        assert identifier is not None  # narrowed by is_blank

        async with self.store.transaction():
            resource = await self.store.find_by_identifier(identifier)
            if resource is None:
                logger.info(
                    "authentication_failed",
                    reason="not_found",
                    identifier=fingerprint(identifier),
                )
                return False

            if self.is_auth_token_expired(resource):
                await self.reset_auth_token_and_persist(resource)
                logger.info(
                    "authentication_failed",
                    reason="expired_token_rotated",
                    identifier=fingerprint(identifier),
                )
                return False

            if not secure_compare(resource.auth_token, presented_token):
                logger.info(
                    "authentication_failed",
                    reason="mismatch",
                    identifier=fingerprint(identifier),
                )
                return False

            await run_callback(on_success, resource)

        return True

    async def find_and_authenticate(
        self,
        identifier: str | None,
        plaintext: str | None,
    ) -> Authenticatable | None:
        """Authenticate by identifier and password.

        Args:
            identifier: Email address (case-insensitive).
            plaintext: Password as entered.

        Returns:
            The account if found and the password verifies, None otherwise.
        """
        if is_blank(identifier) or not plaintext:
            self.verifier.verify(plaintext or _TIMING_PLAINTEXT, DUMMY_HASH)
            return None
        assert identifier is not None  # narrowed by is_blank

        resource = await self.store.find_by_identifier(identifier)
        if resource is None:
            # Security: always perform a hash comparison to prevent timing attacks
            self.verifier.verify(plaintext, DUMMY_HASH)
            logger.info(
                "authentication_failed",
                reason="not_found",
                identifier=fingerprint(identifier),
            )
            return None

        if not self.verifier.verify(plaintext, resource.password_hash):
            logger.info(
                "authentication_failed",
                reason="bad_credential",
                identifier=fingerprint(identifier),
            )
            return None

        return resource
