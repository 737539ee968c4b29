"""Application configuration using pydantic-settings."""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application environment
    env: Literal["dev", "test", "staging", "prod"] = "dev"

    # Logging
    log_level: str = "INFO"

    # Server-side storage of the children collection
    storage_backend: Literal["database", "file"] = "database"
    database_url: str = "sqlite+aiosqlite:///./portage.db"
    data_file: str = "db.json"
    init_db_on_startup: bool = True

    # Client side: where the persistence service lives
    api_base_url: str = "http://localhost:3000"
    api_timeout_seconds: float = 15.0

    # Quiet period before a batch of edits is written to the remote store
    sync_debounce_seconds: float = 1.0

    # Question bank bundled with the package
    catalog_file: str = "portage-v1.yaml"

    # Remembered professional name/role between sessions
    preferences_file: str = ".portage_preferences.json"

    # Narrative report generation (Gemini)
    gemini_api_key: str | None = None
    gemini_model: str = "gemini-3-flash-preview"
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta/models"
    gemini_timeout_seconds: float = 60.0

    # CORS (browser clients in development)
    cors_origins: list[str] = ["http://localhost:3000", "http://localhost:5173"]

    @property
    def is_dev(self) -> bool:
        """Check if running in development mode."""
        return self.env == "dev"

    @property
    def is_prod(self) -> bool:
        """Check if running in production mode."""
        return self.env == "prod"

    @property
    def is_test(self) -> bool:
        """Check if running in test mode."""
        return self.env == "test"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
