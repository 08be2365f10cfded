"""Field-level validation rules for accounts and token records.

Rules here only look at a single record. Uniqueness rules need storage and
are checked by the stores' commit_validated paths, which merge their
findings with these before raising ValidationError.
"""

from warden.core.errors import ValidationError
from warden.models.account import Account
from warden.models.token import TokenKind, TokenRecord

_BLANK = "can't be blank"
_TAKEN = "has already been taken"


def _error(field: str, message: str) -> dict:
    return {"field": field, "message": message}


def taken(field: str) -> dict:
    """Detail entry for a uniqueness violation."""
    return _error(field, _TAKEN)


def validate_account(account: Account) -> list[dict]:
    """Check an account's own fields.

    Email, password hash and activation token are always required. The
    activation token is kept after activation, so its presence holds in
    both states.

    Pending and activated are mutually exclusive:
    - pending: activation expiry present, activated_at absent
    - activated: activated_at present, activation expiry absent

    Args:
        account: Account to check.

    Returns:
        List of error details, empty when valid.
    """
    errors: list[dict] = []

    if not account.email:
        errors.append(_error("email", _BLANK))
    if not account.password_hash:
        errors.append(_error("password", _BLANK))
    if not account.activation_token:
        errors.append(_error("activation_token", _BLANK))

    if account.activated_at is None:
        if account.activation_token_expires_at is None:
            errors.append(_error("activation_token_expires_at", _BLANK))
    elif account.activation_token_expires_at is not None:
        errors.append(
            _error(
                "activation_token_expires_at",
                "must be blank once the account is activated",
            )
        )
        errors.append(
            _error("activated_at", "must be blank while activation is pending")
        )

    return errors


def validate_password(
    plaintext: str | None,
    *,
    min_length: int,
    max_length: int,
) -> list[dict]:
    """Check a plaintext password before it is hashed.

    Args:
        plaintext: Password as entered.
        min_length: Fewest characters allowed.
        max_length: Most UTF-8 bytes allowed (bcrypt's input limit).

    Returns:
        List of error details, empty when valid. A missing password is
        reported as both blank and too short.
    """
    errors: list[dict] = []
    value = plaintext or ""

    if not value:
        errors.append(_error("password", _BLANK))
    if len(value) < min_length:
        errors.append(
            _error("password", f"is too short (minimum is {min_length} characters)")
        )
    if len(value.encode("utf-8")) > max_length:
        errors.append(
            _error("password", f"is too long (maximum is {max_length} bytes)")
        )

    return errors


def validate_token_record(record: TokenRecord) -> list[dict]:
    """Check a token record's own fields.

    Args:
        record: Token record to check.

    Returns:
        List of error details, empty when valid.
    """
    errors: list[dict] = []

    if record.resource_id is None:
        errors.append(_error("resource", _BLANK))
    if not isinstance(record.kind, TokenKind):
        errors.append(_error("kind", _BLANK))
    if not record.token:
        errors.append(_error("token", _BLANK))
    if not record.realm:
        errors.append(_error("realm", _BLANK))
    if record.expires_at is None:
        errors.append(_error("expires_at", _BLANK))

    return errors


def raise_for_errors(entity_name: str, errors: list[dict]) -> None:
    """Raise ValidationError if any errors were collected.

    Args:
        entity_name: Name used in the error message (e.g. "Account").
        errors: Collected error details.

    Raises:
        ValidationError: If ``errors`` is non-empty.
    """
    if errors:
        raise ValidationError(f"{entity_name} is invalid", details=errors)
