"""Time-to-live policy per token kind."""

from dataclasses import dataclass
from datetime import timedelta

from warden.core.config import Settings
from warden.core.errors import ValidationError
from warden.models.token import TokenKind

__all__ = ["TokenKind", "TokenPolicy"]


@dataclass(frozen=True)
class TokenPolicy:
    """Maps a token kind to how long it stays valid.

    Attributes:
        activation_token_ttl: Lifetime of activation tokens.
        password_reset_ttl: Lifetime of password reset tokens.
        session_token_ttl: Lifetime of session tokens, and the fallback
            for anything that is not a recognized kind.
    """

    activation_token_ttl: timedelta
    password_reset_ttl: timedelta
    session_token_ttl: timedelta

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenPolicy":
        """Build a policy from application settings."""
        return cls(
            activation_token_ttl=settings.activation_token_ttl,
            password_reset_ttl=settings.password_reset_ttl,
            session_token_ttl=settings.session_token_ttl,
        )

    def ttl_for(self, kind: TokenKind | str | None) -> timedelta:
        """Return the TTL for a kind.

        Args:
            kind: A TokenKind or kind name. Unknown names fall back to
                the session TTL.

        Returns:
            Duration a token of this kind stays valid.
        """
        try:
            parsed = TokenKind.parse(kind)
        except ValidationError:
            return self.session_token_ttl

        if parsed is TokenKind.ACTIVATION:
            return self.activation_token_ttl
        if parsed is TokenKind.PASSWORD_RESET:
            return self.password_reset_ttl
        return self.session_token_ttl
