"""Tests for record validation rules.

Covers the pending XOR activated invariant and required fields on
accounts, password length rules, and the required fields of token records.
"""

import uuid
from datetime import UTC, datetime, timedelta

import pytest

from warden.core.errors import ValidationError
from warden.models import Account, TokenKind, TokenRecord
from warden.services.validation import (
    raise_for_errors,
    validate_account,
    validate_password,
    validate_token_record,
)

_NOW = datetime(2026, 1, 15, 12, 0, 0, tzinfo=UTC)
_RESOURCE_ID = uuid.UUID("10000000-0000-0000-0000-000000000001")
_HASH = "$2b$04$notarealhashbutpresent"


def _fields(errors: list[dict]) -> set[str]:
    return {e["field"] for e in errors}


class TestValidateAccount:
    """Tests for validate_account()."""

    def test_pending_account_is_valid(self):
        """Token and expiry present, not activated."""
        account = Account(
            email="a@b.com",
            password_hash=_HASH,
            activation_token="T1",
            activation_token_expires_at=_NOW,
        )
        assert validate_account(account) == []

    def test_activated_account_is_valid(self):
        """Activated with expiry cleared, token kept."""
        account = Account(
            email="a@b.com",
            password_hash=_HASH,
            activation_token="T1",
            activated_at=_NOW,
        )
        assert validate_account(account) == []

    def test_activated_without_token_is_invalid(self):
        """The activation token is required after activation too."""
        account = Account(email="a@b.com", password_hash=_HASH, activated_at=_NOW)
        assert _fields(validate_account(account)) == {"activation_token"}

    def test_neither_pending_nor_activated_is_invalid(self):
        """Both activation fields absent and not activated."""
        errors = validate_account(Account(email="a@b.com", password_hash=_HASH))
        assert _fields(errors) == {"activation_token", "activation_token_expires_at"}

    def test_both_pending_and_activated_is_invalid(self):
        """Expiry and activated_at together break the invariant."""
        account = Account(
            email="a@b.com",
            password_hash=_HASH,
            activation_token="T1",
            activation_token_expires_at=_NOW,
            activated_at=_NOW,
        )
        errors = validate_account(account)
        assert _fields(errors) == {"activation_token_expires_at", "activated_at"}

    def test_pending_without_token_is_invalid(self):
        """A pending account needs a token."""
        account = Account(
            email="a@b.com", password_hash=_HASH, activation_token_expires_at=_NOW
        )
        assert _fields(validate_account(account)) == {"activation_token"}

    def test_missing_email_is_invalid(self):
        """Email is required."""
        account = Account(password_hash=_HASH, activation_token="T1", activated_at=_NOW)
        assert _fields(validate_account(account)) == {"email"}

    def test_missing_password_is_invalid(self):
        """An account without a password hash is refused."""
        account = Account(email="a@b.com", activation_token="T1", activated_at=_NOW)
        assert _fields(validate_account(account)) == {"password"}


class TestValidatePassword:
    """Tests for validate_password()."""

    def _messages(self, plaintext: str | None) -> list[str]:
        errors = validate_password(plaintext, min_length=8, max_length=72)
        assert _fields(errors) <= {"password"}
        return [e["message"] for e in errors]

    def test_acceptable_length_passes(self):
        """Lengths inside the bounds produce no errors."""
        assert self._messages("x" * 8) == []
        assert self._messages("x" * 72) == []

    @pytest.mark.parametrize("plaintext", [None, ""])
    def test_missing_is_blank_and_too_short(self, plaintext):
        """A missing password is both blank and too short."""
        assert self._messages(plaintext) == [
            "can't be blank",
            "is too short (minimum is 8 characters)",
        ]

    def test_too_short(self):
        """Three characters is under the minimum."""
        assert self._messages("x" * 3) == ["is too short (minimum is 8 characters)"]

    def test_too_long(self):
        """Eighty characters is over the maximum."""
        assert self._messages("x" * 80) == ["is too long (maximum is 72 bytes)"]

    def test_length_limit_counts_bytes(self):
        """Multibyte characters count by their UTF-8 size."""
        assert self._messages("é" * 40) == ["is too long (maximum is 72 bytes)"]

class TestValidateTokenRecord:
    """Tests for validate_token_record()."""

    def test_complete_record_is_valid(self):
        """All required fields present."""
        record = TokenRecord(
            resource_id=_RESOURCE_ID,
            kind=TokenKind.SESSION,
            realm="web",
            token="abc",
            expires_at=_NOW + timedelta(days=1),
        )
        assert validate_token_record(record) == []

    def test_empty_record_lists_every_missing_field(self):
        """Missing fields are all reported at once."""
        errors = validate_token_record(TokenRecord())
        assert _fields(errors) == {"resource", "kind", "token", "realm", "expires_at"}

    def test_blank_realm_is_invalid(self):
        """Whitespace-only realm normalizes to blank."""
        record = TokenRecord(
            resource_id=_RESOURCE_ID,
            kind=TokenKind.SESSION,
            realm="   ",
            token="abc",
            expires_at=_NOW,
        )
        assert _fields(validate_token_record(record)) == {"realm"}


class TestRaiseForErrors:
    """Tests for raise_for_errors()."""

    def test_no_errors_is_silent(self):
        """Nothing is raised for an empty list."""
        raise_for_errors("Account", [])

    def test_raises_with_details(self):
        """Collected errors become ValidationError details."""
        errors = [{"field": "token", "message": "can't be blank"}]
        with pytest.raises(ValidationError) as exc_info:
            raise_for_errors("Token", errors)
        assert exc_info.value.code == "VALIDATION_ERROR"
        assert exc_info.value.message == "Token is invalid"
        assert exc_info.value.details == errors
