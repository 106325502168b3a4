"""Runtime configuration for the quadvote service.

Every option maps to an environment variable (or a ``.env`` entry) named by
its alias. Only ``SECRET_KEY`` is required.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Service configuration; economics defaults grant 100 credits weekly."""

    # Application metadata
    app_name: str = Field(default="QuadVote", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")

    # Security and authentication
    secret_key: str = Field(alias="SECRET_KEY")
    debug: bool = Field(default=False, alias="DEBUG")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(
        default=60 * 24,
        alias="ACCESS_TOKEN_EXPIRE_MINUTES",
    )

    # Database configuration
    database_url: str = Field(default="sqlite:///./quadvote.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")
    sqlite_busy_timeout_seconds: float = Field(default=15.0, alias="SQLITE_BUSY_TIMEOUT_SECONDS")

    # Credit economics
    starting_credits: int = Field(default=100, alias="STARTING_CREDITS")
    replenish_grant: int = Field(default=100, alias="REPLENISH_GRANT")
    replenish_period_days: int = Field(default=7, alias="REPLENISH_PERIOD_DAYS")
    max_award_amount: int = Field(default=1_000, alias="MAX_AWARD_AMOUNT")

    # Background replenishment sweep
    replenish_worker_enabled: bool = Field(default=False, alias="REPLENISH_WORKER_ENABLED")
    replenish_worker_interval_seconds: float = Field(
        default=3_600.0,
        alias="REPLENISH_WORKER_INTERVAL_SECONDS",
    )

    # Change notification fan-out
    notify_backend: str = Field(default="memory", alias="NOTIFY_BACKEND")
    redis_url: str = Field(default="redis://localhost:6379", alias="REDIS_URL")

    # Confidential ballots (exponential ElGamal over Ed25519)
    privacy_enabled: bool = Field(default=False, alias="PRIVACY_ENABLED")
    tally_public_key: str | None = Field(default=None, alias="TALLY_PUBLIC_KEY")
    tally_secret_key: str | None = Field(default=None, alias="TALLY_SECRET_KEY")
    tally_max_total: int = Field(default=1_000_000, alias="TALLY_MAX_TOTAL")

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(
        default=["*"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(
        default=["*"],
        alias="CORS_ALLOW_HEADERS",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @property
    def database_url_sync(self) -> str:
        """URL with any async driver suffix removed, for Alembic and scripts."""
        url = self.effective_database_url
        for async_prefix, sync_prefix in (
            ("postgresql+asyncpg", "postgresql"),
            ("sqlite+aiosqlite", "sqlite"),
        ):
            if url.startswith(async_prefix):
                return sync_prefix + url[len(async_prefix):]
        return url

    @property
    def effective_database_url(self) -> str:
        """Return the database URL respecting testing overrides."""
        if self.use_testing_database and self.test_database_url:
            return self.test_database_url
        return self.database_url

    @property
    def replenish_period_seconds(self) -> int:
        """Length of one replenishment period in seconds."""
        return self.replenish_period_days * 86_400

    @property
    def economics(self) -> dict[str, int]:
        """Return the public credit economics as a convenience dictionary."""
        return {
            "starting_credits": self.starting_credits,
            "replenish_grant": self.replenish_grant,
            "replenish_period_days": self.replenish_period_days,
        }


settings = Settings()  # type: ignore[call-arg]
