"""Account model - the resource that owns tokens.

Carries the activation fields (pending until activated), the bearer auth
token used by AuthenticationProtocol, and an optional password hash.
"""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import String, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from warden.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from warden.models.token import TokenRecord


class Account(Base, TimestampMixin):
    """Account resource for activation and authentication.

    Exactly one of two states holds: pending (activation token and expiry
    set, activated_at NULL) or activated (activated_at set, expiry NULL).
    The activation token itself is kept after activation.

    Attributes:
        id: UUID primary key.
        email: Unique email address, stored lower-cased.
        password_hash: bcrypt hash. Required by validation; NULL only on rows
            written through the unchecked path.
        activation_token: Opaque activation token.
        activation_token_expires_at: When the activation token stops working.
        activated_at: When the account was activated. NULL = pending.
        auth_token: Opaque bearer token for token authentication.
        auth_token_expires_at: When the auth token stops working.
    """

    __tablename__ = "accounts"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=text("gen_random_uuid()"),
    )
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
    )
    password_hash: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )
    activation_token: Mapped[str | None] = mapped_column(
        String(255),
        unique=True,
        nullable=True,
    )
    activation_token_expires_at: Mapped[datetime | None] = mapped_column(
        nullable=True,
    )
    activated_at: Mapped[datetime | None] = mapped_column(
        nullable=True,
    )
    auth_token: Mapped[str | None] = mapped_column(
        String(255),
        unique=True,
        nullable=True,
    )
    auth_token_expires_at: Mapped[datetime | None] = mapped_column(
        nullable=True,
    )

    # Relationships
    tokens: Mapped[list["TokenRecord"]] = relationship(
        "TokenRecord",
        back_populates="resource",
        cascade="all, delete-orphan",
    )

    @validates("email")
    def _normalize_email(self, _key: str, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip().lower()
