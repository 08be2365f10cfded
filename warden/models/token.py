"""Token record model - issued tokens bound to an account.

A record is created with a freshly generated token and a policy-derived
expiry, then refreshed, reset, confirmed or expired by TokenLifecycle.
Records are never physically deleted by the lifecycle.
"""

import re
import uuid
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, String, UniqueConstraint, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from warden.core.errors import ValidationError
from warden.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from warden.models.account import Account

# "passwordReset" -> "password_Reset", "HTTPSession" -> "HTTP_Session"
_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


def underscore(value: object) -> str:
    """Normalize a name to trimmed, lower-case snake_case.

    ``"PasswordReset"`` and ``" password-reset "`` both become
    ``"password_reset"``; acronyms split like ``"HTTPSession"`` ->
    ``"http_session"``.
    """
    stripped = str(value).strip()
    return _CAMEL_BOUNDARY.sub("_", stripped).replace("-", "_").lower()


class TokenKind(Enum):
    """Purpose of a token.

    WHY ENUM: the set of kinds is closed. Anything else is rejected when
    it is parsed, so storage never sees an unknown kind.
    """

    ACTIVATION = "activation"
    PASSWORD_RESET = "password_reset"
    SESSION = "session"

    @classmethod
    def parse(cls, value: "TokenKind | str | None") -> "TokenKind":
        """Convert a raw value into a TokenKind.

        Args:
            value: A TokenKind or a kind name in any common casing.

        Returns:
            The matching TokenKind.

        Raises:
            ValidationError: If the value is blank or not a known kind.
        """
        if isinstance(value, cls):
            return value
        name = underscore(value) if value is not None else ""
        try:
            return cls(name)
        except ValueError:
            raise ValidationError(
                "Invalid token kind",
                details=[
                    {
                        "field": "kind",
                        "message": f"must be one of {', '.join(k.value for k in cls)}",
                    }
                ],
            ) from None


class TokenRecord(Base, TimestampMixin):
    """An issued token.

    Attributes:
        id: UUID primary key.
        kind: Token purpose.
        resource_id: Owning account.
        realm: Scope string distinguishing several tokens of the same kind
            for one account (e.g. "web", "mobile"). Stored snake-cased.
        token: Opaque token value, unique within its kind.
        expires_at: When the token stops being valid.
        confirmed_at: When the token was confirmed. NULL = unconfirmed.
    """

    __tablename__ = "tokens"
    __table_args__ = (
        UniqueConstraint("kind", "token", name="uq_tokens_kind_token"),
        UniqueConstraint(
            "resource_id", "kind", "realm", name="uq_tokens_resource_kind_realm"
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=text("gen_random_uuid()"),
    )
    kind: Mapped[TokenKind] = mapped_column(
        SAEnum(
            TokenKind,
            name="token_kind",
            native_enum=False,
            length=20,
            values_callable=lambda kinds: [k.value for k in kinds],
        ),
        nullable=False,
    )
    resource_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=False,
    )
    realm: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )
    token: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    expires_at: Mapped[datetime] = mapped_column(
        nullable=False,
    )
    confirmed_at: Mapped[datetime | None] = mapped_column(
        nullable=True,
    )

    # Relationships
    resource: Mapped["Account"] = relationship(
        "Account",
        back_populates="tokens",
    )

    @validates("kind")
    def _normalize_kind(self, _key: str, value: TokenKind | str) -> TokenKind:
        return TokenKind.parse(value)

    @validates("realm")
    def _normalize_realm(self, _key: str, value: str | None) -> str | None:
        if value is None:
            return None
        return underscore(value)
