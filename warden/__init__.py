"""Warden: issue, validate, expire and rotate opaque bearer tokens.

Typical wiring inside a request handler:

    async with session_scope(sessions) as db:
        activation = ActivationProtocol(AccountRepository(db))
        if await activation.find_and_activate(email, token):
            ...

``sessions`` comes from build_session_factory(build_engine()) in
warden.core.database; session_scope commits on a clean exit.
"""

from warden.core.errors import PersistenceError, ValidationError, WardenError
from warden.core.security import TokenGenerator, friendly_token, secure_compare
from warden.models import Account, TokenKind, TokenRecord
from warden.services.activation import ActivationProtocol
from warden.services.authentication import AuthenticationProtocol
from warden.services.token_lifecycle import TokenLifecycle
from warden.services.token_policy import TokenPolicy

__version__ = "0.1.0"

__all__ = [
    "Account",
    "ActivationProtocol",
    "AuthenticationProtocol",
    "PersistenceError",
    "TokenGenerator",
    "TokenKind",
    "TokenLifecycle",
    "TokenPolicy",
    "TokenRecord",
    "ValidationError",
    "WardenError",
    "friendly_token",
    "secure_compare",
]
