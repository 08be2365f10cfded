"""Token generation and constant-time comparison.

Pipeline:
- friendly_token / TokenGenerator: 256-bit random tokens, base64 encoded,
  with visually ambiguous characters mapped to unambiguous ones
- secure_compare: equality check whose running time depends only on length
- fingerprint: short SHA-256 tag for identifiers that appear in logs
"""

import base64
import hashlib
import secrets

from warden.core.config import MIN_TOKEN_BYTES

# One-to-one replacement of characters that are unsafe in URLs/paths or easy
# to misread when a token is copied by hand.
_AMBIGUOUS_CHARS = "+/=lIO0"
_REPLACEMENT_CHARS = "pqrsxyz"
_FRIENDLY_TABLE = str.maketrans(_AMBIGUOUS_CHARS, _REPLACEMENT_CHARS)


def friendly_token(nbytes: int = MIN_TOKEN_BYTES) -> str:
    """Generate a random base64 token without ambiguous characters.

    Args:
        nbytes: Bytes of entropy drawn from the OS CSPRNG.

    Returns:
        Opaque token string. Never contains any of ``+ / = l I O 0``.
    """
    raw = base64.b64encode(secrets.token_bytes(nbytes)).decode("ascii")
    return raw.translate(_FRIENDLY_TABLE)


class TokenGenerator:
    """Produces opaque bearer tokens.

    Stateless apart from its entropy setting, so it can be called
    repeatedly inside a uniqueness retry loop. Uniqueness itself is
    enforced by the caller against storage.
    """

    def __init__(self, nbytes: int = MIN_TOKEN_BYTES) -> None:
        if nbytes < MIN_TOKEN_BYTES:
            msg = f"Tokens need at least {MIN_TOKEN_BYTES} bytes of entropy"
            raise ValueError(msg)
        self.nbytes = nbytes

    def generate(self) -> str:
        """Return a fresh token."""
        return friendly_token(self.nbytes)


def _as_bytes(value: str | bytes) -> bytes:
    if isinstance(value, str):
        return value.encode("utf-8")
    return value


def secure_compare(a: str | bytes | None, b: str | bytes | None) -> bool:
    """Compare two tokens in constant time.

    Returns False straight away when either side is empty or the byte
    lengths differ. Once lengths match, every byte pair is XOR-accumulated
    and there is no early exit, so the time taken does not reveal where the
    first mismatch is.

    Args:
        a: Stored token.
        b: Presented token.

    Returns:
        True only if both are non-empty and byte-for-byte identical.
    """
    if not a or not b:
        return False

    left = _as_bytes(a)
    right = _as_bytes(b)
    if len(left) != len(right):
        return False

    result = 0
    for x, y in zip(left, right, strict=True):
        result |= x ^ y
    return result == 0


def fingerprint(value: str) -> str:
    """Short, non-reversible tag for logging identifiers.

    Args:
        value: Identifier such as an email address.

    Returns:
        First 12 hex characters of the SHA-256 of the normalized value.
    """
    digest = hashlib.sha256(value.strip().lower().encode("utf-8")).hexdigest()
    return digest[:12]
