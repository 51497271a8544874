"""
Centralized configuration for the contact ledger.

All settings are loaded from environment variables prefixed with LEDGER_
(e.g. LEDGER_UNLOCK_COST=25) or from a local .env file.
"""

from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Contact Ledger API"
    app_version: str = "1.0.0"
    debug: bool = False
    log_level: str = "INFO"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # CORS
    cors_origins: list[str] = ["*"]

    # Points economy
    starting_points: int = 100
    unlock_cost: int = 20
    upload_reward: int = 10

    # Activity log windows
    activity_window: int = 10
    activity_append_window: int = 20
    activity_summary_limit: int = 10


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()
