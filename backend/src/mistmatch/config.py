"""Configuration management for MistMatch Admin.

Uses pydantic-settings to load configuration from environment variables.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _find_env_file() -> Path | None:
    """Search for .env file in common locations."""
    # Check current working directory and its parents (up to 5 levels)
    check_dir = Path.cwd()
    for _ in range(5):
        if (check_dir / ".env").exists():
            return check_dir / ".env"
        parent = check_dir.parent
        if parent == check_dir:
            break
        check_dir = parent

    # Check relative to this config file (backend/src/mistmatch/config.py -> project root)
    project_root = Path(__file__).resolve().parent.parent.parent.parent
    if (project_root / ".env").exists():
        return project_root / ".env"

    return None


_env_file = _find_env_file()


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=str(_env_file) if _env_file else ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # =========================
    # Environment
    # =========================
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False

    # =========================
    # PostgreSQL (record store)
    # =========================
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_db: str = "postgres"
    postgres_user: str = "postgres"
    postgres_password: str = Field(default="", repr=False)
    users_table: str = "users"

    @computed_field
    @property
    def database_url(self) -> str:
        """SQLAlchemy database URL for PostgreSQL."""
        return (
            f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    # =========================
    # Blob storage (verification photos)
    # =========================
    storage_url: str = "http://localhost:54321"
    storage_api_key: str = Field(default="", repr=False)
    verification_bucket: str = "verificationphotos"
    photo_list_limit: int = Field(default=100, ge=1)
    photo_extensions: str = ".jpg,.png,.jpeg"
    storage_timeout_seconds: float = 30.0

    # =========================
    # Pending-verification queue
    # =========================
    queue_batch_size: int = Field(default=20, ge=1)
    queue_low_watermark: int = Field(default=3, ge=0)
    queue_refresh_interval_seconds: float = Field(default=20.0, gt=0)

    # =========================
    # Gender review
    # =========================
    gender_page_size: int = Field(default=20, ge=1)
    gender_success_display_seconds: float = 2.0
    gender_error_display_seconds: float = 3.0

    # =========================
    # Logging
    # =========================
    log_level: str = "INFO"
    log_format: Literal["json", "text"] = "json"

    @property
    def photo_extensions_list(self) -> list[str]:
        """Parse allowed photo extensions as a list."""
        return [ext.strip().lower() for ext in self.photo_extensions.split(",") if ext.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
