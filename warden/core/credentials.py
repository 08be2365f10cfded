"""Password credential hashing and verification.

Default implementation of the credential-verification collaborator used by
AuthenticationProtocol.find_and_authenticate. Any object with matching
``hash``/``verify`` methods can replace it.
"""

import logging

import bcrypt

from warden.core.config import settings

logger = logging.getLogger(__name__)

# Pre-computed bcrypt hash for timing-safe comparison on user-not-found.
# Security: prevents user enumeration via response time differences.
# Pre-generated to avoid ~300ms bcrypt computation on every startup.
DUMMY_HASH = "$2b$12$ZP2PVB8yI35X.mkRqcUPUuSzJA1CNRt4dZ7X3cyrfJu.2S3w.Qen2"


class BcryptCredentialVerifier:
    """bcrypt-backed password hashing.

    Attributes:
        rounds: bcrypt cost factor used for new hashes.
    """

    def __init__(self, rounds: int | None = None) -> None:
        self.rounds = rounds if rounds is not None else settings.bcrypt_rounds

    def hash(self, plaintext: str) -> str:
        """Hash a plaintext password.

        Args:
            plaintext: Password as entered by the user.

        Returns:
            bcrypt hash string.
        """
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(plaintext.encode(), salt).decode()

    def verify(self, plaintext: str, stored: str | None) -> bool:
        """Check a plaintext password against a stored hash.

        Args:
            plaintext: Password to check.
            stored: bcrypt hash, or None for accounts without a password.

        Returns:
            True if the password matches. Missing or malformed hashes
            return False.
        """
        if not plaintext or not stored:
            return False
        try:
            return bcrypt.checkpw(plaintext.encode(), stored.encode())
        except ValueError:
            logger.warning("Stored credential is not a valid bcrypt hash")
            return False
