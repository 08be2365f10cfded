"""Application configuration loaded from environment variables.

Settings for the database connection and the token policy (per-kind TTLs,
token entropy, bcrypt cost). Uses pydantic-settings for validation and .env
file support.
"""

from datetime import timedelta

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Known insecure default password that must not be used in production
# Security: Runtime check in check_security_invariants() prevents use in production
_INSECURE_DEFAULT_PASSWORD = "warden_dev_password"  # nosec B105

# Minimum token entropy in bytes (256 bits)
MIN_TOKEN_BYTES = 32

# bcrypt ignores (or, in newer releases, rejects) input past 72 bytes
BCRYPT_MAX_PASSWORD_BYTES = 72


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Database
    database_host: str = "localhost"
    database_port: int = 5432
    database_name: str = "warden"
    database_user: str = "warden_user"
    database_password: str = _INSECURE_DEFAULT_PASSWORD

    # Application
    environment: str = "development"
    log_level: str = "INFO"

    # Token policy
    # Durations accept seconds ("3600") or ISO 8601 ("PT1H") from the environment
    activation_token_ttl: timedelta = timedelta(days=1)
    password_reset_ttl: timedelta = timedelta(hours=1)
    session_token_ttl: timedelta = timedelta(days=1)
    activation_default_expiry: timedelta = timedelta(hours=1)
    token_bytes: int = MIN_TOKEN_BYTES

    # Credentials
    bcrypt_rounds: int = 12
    password_min_length: int = 8
    password_max_length: int = BCRYPT_MAX_PASSWORD_BYTES

    @property
    def database_url(self) -> str:
        """Async database URL for SQLAlchemy."""
        return (
            f"postgresql+asyncpg://{self.database_user}:{self.database_password}"
            f"@{self.database_host}:{self.database_port}/{self.database_name}"
        )

    @property
    def database_url_sync(self) -> str:
        """Sync database URL for tooling that cannot use asyncpg."""
        return (
            f"postgresql://{self.database_user}:{self.database_password}"
            f"@{self.database_host}:{self.database_port}/{self.database_name}"
        )

    @model_validator(mode="after")
    def check_security_invariants(self) -> "Settings":
        """Validate token policy and production security requirements.

        Checks:
        - Every TTL must be positive (all environments)
        - Tokens must carry at least 256 bits of entropy (all environments)
        - Password length bounds must be ordered and fit bcrypt (all environments)
        - Database password must not be the default in production
        """
        for name in (
            "activation_token_ttl",
            "password_reset_ttl",
            "session_token_ttl",
            "activation_default_expiry",
        ):
            value: timedelta = getattr(self, name)
            if value <= timedelta(0):
                msg = f"{name.upper()} must be positive. Got: {value}"
                raise ValueError(msg)

        if self.token_bytes < MIN_TOKEN_BYTES:
            msg = (
                f"TOKEN_BYTES must be at least {MIN_TOKEN_BYTES} "
                f"(256 bits of entropy). Got: {self.token_bytes}"
            )
            raise ValueError(msg)

        lengths = (self.password_min_length, self.password_max_length)
        if not 1 <= lengths[0] <= lengths[1] <= BCRYPT_MAX_PASSWORD_BYTES:
            msg = (
                "PASSWORD_MIN_LENGTH and PASSWORD_MAX_LENGTH must satisfy "
                f"1 <= min <= max <= {BCRYPT_MAX_PASSWORD_BYTES}. "
                f"Got: {self.password_min_length}, {self.password_max_length}"
            )
            raise ValueError(msg)

        if (
            self.environment == "production"
            and self.database_password == _INSECURE_DEFAULT_PASSWORD
        ):
            msg = (
                "Cannot use default database password in production. "
                "Set DATABASE_PASSWORD environment variable to a secure value."
            )
            raise ValueError(msg)

        return self


settings = Settings()
