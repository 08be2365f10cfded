"""Tests for TokenPolicy."""

from datetime import timedelta

import pytest

from warden.core.config import Settings
from warden.services.token_policy import TokenKind, TokenPolicy


class TestTtlFor:
    """Tests for TokenPolicy.ttl_for()."""

    @pytest.mark.parametrize(
        ("kind", "expected"),
        [
            (TokenKind.ACTIVATION, timedelta(days=2)),
            (TokenKind.PASSWORD_RESET, timedelta(hours=1)),
            (TokenKind.SESSION, timedelta(days=14)),
        ],
    )
    def test_maps_each_kind(self, policy, kind, expected):
        """Every kind gets its own TTL."""
        assert policy.ttl_for(kind) == expected

    def test_accepts_kind_names(self, policy):
        """Raw names are parsed before lookup."""
        assert policy.ttl_for("PasswordReset") == timedelta(hours=1)

    @pytest.mark.parametrize("kind", ["bogus", "", None])
    def test_unknown_falls_back_to_session(self, policy, kind):
        """Unrecognized kinds get the session TTL."""
        assert policy.ttl_for(kind) == timedelta(days=14)


class TestFromSettings:
    """Tests for TokenPolicy.from_settings()."""

    def test_copies_configured_ttls(self):
        """Policy mirrors the settings it was built from."""
        s = Settings(
            activation_token_ttl=timedelta(hours=6),
            password_reset_ttl=timedelta(minutes=20),
            session_token_ttl=timedelta(hours=2),
        )
        policy = TokenPolicy.from_settings(s)
        assert policy.ttl_for(TokenKind.ACTIVATION) == timedelta(hours=6)
        assert policy.ttl_for(TokenKind.PASSWORD_RESET) == timedelta(minutes=20)
        assert policy.ttl_for(TokenKind.SESSION) == timedelta(hours=2)

    def test_is_immutable(self, policy):
        """Policies cannot be changed after construction."""
        with pytest.raises(AttributeError):
            policy.session_token_ttl = timedelta(0)
