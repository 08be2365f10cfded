import socket
from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession

from warden.core.config import Settings, settings
from warden.core.database import build_engine, build_session_factory
from warden.models.account import Account
from warden.models.base import Base
from warden.repositories.memory import InMemoryAccountStore, InMemoryTokenStore
from warden.services.token_policy import TokenPolicy

# Use separate test database
TEST_SETTINGS = Settings(database_name=f"{settings.database_name}_test")

# Fixed "now" for deterministic expiry arithmetic
FROZEN_NOW = datetime(2026, 1, 15, 12, 0, 0, tzinfo=UTC)

TEST_EMAIL = "a@b.com"


class MutableClock:
    """Test clock that only moves when told to.

    Attributes:
        now: Current time returned by calls.
    """

    def __init__(self, now: datetime = FROZEN_NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        """Move the clock forward."""
        self.now = self.now + delta


class SequenceIssuer:
    """Token issuer that hands out a fixed sequence, then falls back to a counter.

    Attributes:
        calls: Number of generate() calls so far.
    """

    def __init__(self, *tokens: str) -> None:
        self._tokens = list(tokens)
        self.calls = 0

    def generate(self) -> str:
        self.calls += 1
        if self._tokens:
            return self._tokens.pop(0)
        return f"generated-token-{self.calls}"


def _is_postgres_available() -> bool:
    """Check if PostgreSQL is accepting connections.

    Returns:
        True if PostgreSQL is reachable on port 5432, False otherwise.
    """
    try:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.settimeout(1)
        result = sock.connect_ex(("127.0.0.1", 5432))
        sock.close()
        return result == 0
    except OSError:
        return False


# Check once at module load time
_POSTGRES_AVAILABLE = _is_postgres_available()


def skip_if_no_postgres() -> None:
    """Skip test if PostgreSQL is not available.

    Called by fixtures that require database connection.
    """
    if not _POSTGRES_AVAILABLE:
        pytest.skip(
            "PostgreSQL not available on port 5432. "
            "Start database with: docker compose up -d"
        )


# =============================================================================
# In-memory fixtures
# =============================================================================


@pytest.fixture
def clock() -> MutableClock:
    """Clock frozen at FROZEN_NOW until advanced."""
    return MutableClock()


@pytest.fixture
def policy() -> TokenPolicy:
    """Token policy with distinct TTLs per kind."""
    return TokenPolicy(
        activation_token_ttl=timedelta(days=2),
        password_reset_ttl=timedelta(hours=1),
        session_token_ttl=timedelta(days=14),
    )


@pytest.fixture
def account_store() -> InMemoryAccountStore:
    """Empty in-memory account store."""
    return InMemoryAccountStore()


@pytest.fixture
def token_store() -> InMemoryTokenStore:
    """Empty in-memory token store."""
    return InMemoryTokenStore()


@pytest.fixture
def pending_account(account_store: InMemoryAccountStore) -> Account:
    """Stored account awaiting activation with token "T1" valid for an hour."""
    return account_store.add(
        Account(
            email=TEST_EMAIL,
            activation_token="T1",
            activation_token_expires_at=FROZEN_NOW + timedelta(hours=1),
        )
    )


@pytest.fixture
def make_issuer() -> type[SequenceIssuer]:
    """Factory for deterministic token issuers: make_issuer("a", "b")."""
    return SequenceIssuer


# =============================================================================
# Database fixtures
# =============================================================================


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """Create test database engine.

    Skips test if PostgreSQL is not available (e.g., Docker not running).
    """
    skip_if_no_postgres()

    engine = build_engine(TEST_SETTINGS)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    async with build_session_factory(db_engine)() as session:
        yield session
        await session.rollback()
