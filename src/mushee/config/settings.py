"""Application settings loaded from environment variables and .env files."""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Database connection settings."""

    model_config = SettingsConfigDict(env_prefix="DATABASE_", extra="ignore")

    url: str = Field(
        default="sqlite+aiosqlite:///./mushee.db",
        description="SQLAlchemy async database URL",
    )
    echo: bool = Field(default=False, description="Log all SQL statements")
    pool_pre_ping: bool = Field(default=True)
    pool_size: int = Field(default=5, ge=1)
    max_overflow: int = Field(default=10, ge=0)
    pool_timeout: int = Field(default=30, ge=1)
    pool_recycle: int = Field(default=1800, ge=-1)
    create_tables: bool = Field(
        default=False,
        description="Create missing tables at startup (dev/tests, production uses Alembic)",
    )


class StorageSettings(BaseSettings):
    """Object storage settings."""

    model_config = SettingsConfigDict(env_prefix="STORAGE_", extra="ignore")

    blob_path: Path = Field(
        default=Path("./data/blobs"),
        description="Root directory of the content-addressed score store",
    )
    blob_extension: str = Field(
        default=".musicxml", description="Fixed extension appended to fingerprint keys"
    )
    scores_path: Path = Field(
        default=Path("./data/scores"),
        description="Directory of public-domain scores for the seeding command",
    )

    @field_validator("blob_extension")
    @classmethod
    def _extension_has_dot(cls, value: str) -> str:
        if not value.startswith("."):
            return f".{value}"
        return value


class UploadSettings(BaseSettings):
    """Upload pipeline limits."""

    model_config = SettingsConfigDict(env_prefix="UPLOAD_", extra="ignore")

    max_file_size_bytes: int = Field(default=10 * 1024 * 1024, ge=1)
    parse_timeout_seconds: float = Field(default=5.0, gt=0)
    max_field_length: int = Field(default=200, ge=1, le=200)


class AuthSettings(BaseSettings):
    """Request identity settings."""

    model_config = SettingsConfigDict(env_prefix="AUTH_", extra="ignore")

    actor_header: str = Field(
        default="X-Actor-Id",
        description="Header carrying the authenticated actor's UUID (set by the auth gateway)",
    )


class ObservabilitySettings(BaseSettings):
    """Logging settings."""

    model_config = SettingsConfigDict(env_prefix="OBSERVABILITY_", extra="ignore")

    log_json_format: bool = Field(default=False)
    log_request_body: bool = Field(default=False)


class Settings(BaseSettings):
    """Root settings object."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    app_name: str = Field(default="mushee")
    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO")
    api_prefix: str = Field(default="/api")

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    upload: UploadSettings = Field(default_factory=UploadSettings)
    auth: AuthSettings = Field(default_factory=AuthSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid log level: {value}")
        return level

    def ensure_directories(self) -> None:
        """Create storage directories if they don't exist."""
        self.storage.blob_path.mkdir(parents=True, exist_ok=True)

    # Hey future me - returns None for non-SQLite URLs (PostgreSQL etc) and for in-memory DBs.
    # lifecycle.py uses this to validate the directory BEFORE the engine is created.
    def _get_sqlite_db_path(self) -> Path | None:
        """Resolve the SQLite database file path from the database URL."""
        url = self.database.url
        if not url.startswith("sqlite"):
            return None
        _, _, path = url.partition(":///")
        if not path or path == ":memory:" or path.startswith(":memory:"):
            return None
        return Path(path)


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
