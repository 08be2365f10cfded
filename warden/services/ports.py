"""Capability interfaces consumed by the token services.

The services never reach for a global model or session. Storage, token
generation, credential checks and the clock are handed to them, and any
object with the right shape will do (SQLAlchemy repositories in
production, in-memory stores in tests).

Capabilities:
- TokenIssuer: produces opaque token strings
- Activatable / Authenticatable: resource fields the protocols read and write
- CredentialVerifier: password hashing collaborator
- Store / ResourceStore / TokenStore: persistence collaborators
"""

from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from datetime import UTC, datetime
from typing import Any, Protocol, TypeVar

from warden.models.token import TokenKind

_EntityT = TypeVar("_EntityT")
_EntityContraT = TypeVar("_EntityContraT", contravariant=True)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Default clock: timezone-aware current UTC time."""
    return datetime.now(UTC)


class TokenIssuer(Protocol):
    """Produces opaque tokens. Called repeatedly until a unique one appears."""

    def generate(self) -> str: ...


class Activatable(Protocol):
    """Resource fields used by ActivationProtocol."""

    activation_token: str | None
    activation_token_expires_at: datetime | None
    activated_at: datetime | None


class Authenticatable(Protocol):
    """Resource fields used by AuthenticationProtocol."""

    email: str
    password_hash: str | None
    auth_token: str | None
    auth_token_expires_at: datetime | None


class CredentialVerifier(Protocol):
    """Password hashing collaborator."""

    def hash(self, plaintext: str) -> str: ...

    def verify(self, plaintext: str, stored: str | None) -> bool: ...


class Store(Protocol[_EntityContraT]):
    """Write paths shared by every store.

    Two explicit commit paths instead of a validate flag: user input goes
    through commit_validated, system-triggered state transitions go
    through commit_unchecked.
    """

    async def commit_validated(self, entity: _EntityContraT) -> None:
        """Validate then persist. Raises ValidationError."""
        ...

    async def commit_unchecked(self, entity: _EntityContraT) -> None:
        """Persist without running validation."""
        ...

    def transaction(self) -> AbstractAsyncContextManager[None]:
        """Transaction boundary. Everything inside rolls back on error."""
        ...


class ResourceStore(Store[_EntityT], Protocol[_EntityT]):
    """Storage for activatable/authenticatable resources."""

    async def find_by_identifier(self, identifier: str) -> _EntityT | None:
        """Case-insensitive lookup by identifier (email)."""
        ...

    async def value_taken(self, field: str, value: str) -> bool:
        """Whether any resource already holds ``value`` in ``field``."""
        ...

    async def update_columns(self, entity: _EntityT, **fields: Any) -> None:
        """Write ``fields`` in one atomic statement, skipping validation.

        Raises PersistenceError if nothing was written.
        """
        ...


class TokenStore(Store[_EntityT], Protocol[_EntityT]):
    """Storage for token records."""

    async def find(self, kind: TokenKind, token: str) -> _EntityT | None:
        """Look up a record by kind and token value."""
        ...

    async def find_for_resource(
        self, resource_id: Any, kind: TokenKind, realm: str
    ) -> _EntityT | None:
        """Look up a resource's record for a kind and realm."""
        ...

    async def token_taken(self, kind: TokenKind, token: str) -> bool:
        """Whether ``token`` is already issued for ``kind``."""
        ...
