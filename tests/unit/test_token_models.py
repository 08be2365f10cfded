"""Tests for model-level normalization.

Covers TokenKind parsing, realm normalization on assignment, and email
normalization on Account.
"""

import uuid

import pytest

from warden.core.errors import ValidationError
from warden.models import Account, TokenKind, TokenRecord
from warden.models.token import underscore

_RESOURCE_ID = uuid.UUID("10000000-0000-0000-0000-000000000001")


class TestUnderscore:
    """Tests for underscore()."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("session", "session"),
            ("  Session  ", "session"),
            ("PasswordReset", "password_reset"),
            ("password-reset", "password_reset"),
            ("PASSWORD_RESET", "password_reset"),
            ("mobileApp", "mobile_app"),
            ("HTTPSession", "http_session"),
            ("APIKeyV2", "api_key_v2"),
        ],
    )
    def test_normalizes(self, raw, expected):
        """Names come out trimmed, snake_cased and lower-case."""
        assert underscore(raw) == expected


class TestTokenKindParse:
    """Tests for TokenKind.parse()."""

    def test_passes_members_through(self):
        """A TokenKind is returned unchanged."""
        assert TokenKind.parse(TokenKind.SESSION) is TokenKind.SESSION

    @pytest.mark.parametrize(
        "raw", ["password_reset", "PasswordReset", " password-reset "]
    )
    def test_parses_strings(self, raw):
        """Common spellings resolve to the member."""
        assert TokenKind.parse(raw) is TokenKind.PASSWORD_RESET

    @pytest.mark.parametrize("raw", ["bogus", "", "   ", None, "sessions"])
    def test_rejects_unknown(self, raw):
        """Anything outside the closed set is a validation error."""
        with pytest.raises(ValidationError) as exc_info:
            TokenKind.parse(raw)
        assert exc_info.value.fields == {"kind"}


class TestTokenRecordNormalization:
    """Tests for TokenRecord attribute normalization."""

    def test_kind_string_becomes_enum(self):
        """Assigning a string kind stores the enum member."""
        record = TokenRecord(resource_id=_RESOURCE_ID, kind="Activation", realm="web")
        assert record.kind is TokenKind.ACTIVATION

    def test_invalid_kind_rejected_on_assignment(self):
        """Unknown kinds never reach the record."""
        with pytest.raises(ValidationError):
            TokenRecord(resource_id=_RESOURCE_ID, kind="magic", realm="web")

    def test_realm_normalized_on_assignment(self):
        """Realm is stored trimmed and snake-cased."""
        record = TokenRecord(
            resource_id=_RESOURCE_ID, kind=TokenKind.SESSION, realm="  MobileApp "
        )
        assert record.realm == "mobile_app"

    def test_realm_normalized_on_reassignment(self):
        """Later assignments are normalized too."""
        record = TokenRecord(
            resource_id=_RESOURCE_ID, kind=TokenKind.SESSION, realm="web"
        )
        record.realm = " Desktop-Client "
        assert record.realm == "desktop_client"


class TestAccountNormalization:
    """Tests for Account attribute normalization."""

    def test_email_lower_cased_and_trimmed(self):
        """Emails are stored in canonical form."""
        account = Account(email="  Foo@Example.COM ")
        assert account.email == "foo@example.com"
