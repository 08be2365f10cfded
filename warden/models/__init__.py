"""SQLAlchemy ORM models for Warden.

All models are exported from this module for convenient imports:
    from warden.models import Account, TokenRecord, TokenKind

Models are organized by domain:
- account.py: Account (resource with activation and auth token fields)
- token.py: TokenRecord, TokenKind (issued tokens, FK to accounts)
"""

from warden.models.account import Account
from warden.models.base import Base, TimestampMixin
from warden.models.token import TokenKind, TokenRecord

__all__ = [
    "Account",
    "Base",
    "TimestampMixin",
    "TokenKind",
    "TokenRecord",
]
