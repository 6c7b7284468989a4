"""
Application configuration using pydantic-settings.
"""
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="OKRDASH_",
        case_sensitive=False,
    )

    # Application
    app_name: str = "okrdash"
    app_version: str = "1.0.0"
    debug: bool = False
    log_level: str = "INFO"

    # Document store. Defaults to a per-machine database in ~/.okrdash/okrdash.db
    @property
    def default_database_url(self) -> str:
        app_dir = Path.home() / ".okrdash"
        app_dir.mkdir(exist_ok=True)
        return f"sqlite+aiosqlite:///{(app_dir / 'okrdash.db').as_posix()}"

    database_url: str = "sqlite+aiosqlite:///./okrdash.db"

    def model_post_init(self, __context):
        if self.database_url == "sqlite+aiosqlite:///./okrdash.db":
            self.database_url = self.default_database_url

    # Static bearer key guarding /api (disabled when unset)
    api_key: Optional[str] = None

    # Defaults applied when migrating legacy local storage
    default_project_key: str = "ION"
    default_refresh_interval_ms: int = 30000

    # Fill empty user Jira credentials from system_config/jira on load
    system_jira_fallback: bool = True

    # Jira
    jira_timeout_seconds: float = 30.0
    # Pause between sequential epic fetches to stay under Jira rate limits
    jira_throttle_seconds: float = 1.0

    # CORS
    cors_origins: list[str] = [
        "http://localhost:5173",
        "http://localhost:5174",
        "http://127.0.0.1:5173",
        "http://127.0.0.1:5174",
    ]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
