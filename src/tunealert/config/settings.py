"""Application settings loaded from environment variables and .env file."""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseModel):
    """Database connection settings."""

    # Hey future me - production runs against hosted Postgres via asyncpg
    # (postgresql+asyncpg://...). SQLite is only for local runs and tests.
    url: str = "sqlite+aiosqlite:///./tunealert.db"
    echo: bool = False
    pool_size: int = 5
    max_overflow: int = 10
    pool_timeout: int = 30
    pool_recycle: int = 1800
    pool_pre_ping: bool = True


class SpotifySettings(BaseModel):
    """Spotify catalog API settings (client-credentials flow)."""

    client_id: str = ""
    client_secret: str = ""
    token_url: str = "https://accounts.spotify.com/api/token"  # nosec B105 - public endpoint URL
    api_base_url: str = "https://api.spotify.com/v1"
    timeout_seconds: float = 30.0
    # Cached token is treated as expired this many seconds before Spotify says so
    token_expiry_margin_seconds: int = 60


class CronSettings(BaseModel):
    """Settings for the externally scheduled trigger."""

    # Empty secret = trigger rejects every call. Never default to "open".
    secret: str = ""


class ReleaseCheckSettings(BaseModel):
    """Tuning knobs for the release notification batch job."""

    job_name: str = "check-new-releases"
    users_per_batch: int = Field(default=30, ge=1, le=500)
    # Stays under a 60s serverless ceiling with margin
    max_execution_seconds: float = Field(default=45.0, gt=0)
    request_delay_seconds: float = Field(default=0.2, ge=0)
    release_window_hours: int = Field(default=6, ge=1)
    releases_per_artist: int = Field(default=10, ge=1, le=50)
    catalog_lookback_months: int = Field(default=24, ge=1)
    rate_limit_backoff_seconds: float = Field(default=1.0, ge=0)
    max_rate_limit_backoff_seconds: float = Field(default=8.0, ge=0)
    exclusive_runs: bool = True
    stale_run_seconds: int = Field(default=300, ge=1)


class ObservabilitySettings(BaseModel):
    """Logging settings."""

    log_json_format: bool = False
    log_request_body: bool = False


class Settings(BaseSettings):
    """Root settings object.

    Nested sections are filled from env vars using ``__`` as delimiter, e.g.
    ``SPOTIFY__CLIENT_ID`` or ``RELEASE_CHECK__USERS_PER_BATCH``.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    app_name: str = "tunealert"
    app_env: Literal["development", "production", "test"] = "development"
    log_level: str = "INFO"

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    spotify: SpotifySettings = Field(default_factory=SpotifySettings)
    cron: CronSettings = Field(default_factory=CronSettings)
    release_check: ReleaseCheckSettings = Field(default_factory=ReleaseCheckSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid log level: {value}")
        return level

    @property
    def is_sqlite(self) -> bool:
        """True when the configured database is SQLite."""
        return self.database.url.startswith("sqlite")

    def _get_sqlite_db_path(self) -> Path | None:
        """Return the SQLite file path, or None for Postgres / in-memory DBs."""
        if not self.is_sqlite:
            return None
        _, _, path = self.database.url.partition(":///")
        if not path or path == ":memory:":
            return None
        return Path(path)


# Hey future me - cached so every Depends(get_settings) returns the SAME object.
# Tests that need different values should build Settings(...) directly and
# override the dependency instead of poking env vars.
@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
