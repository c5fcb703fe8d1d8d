"""Application configuration settings."""
from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    app_name: str = "liftcycle"
    debug: bool = False
    log_format: Literal["json", "console"] = "json"

    # Item store (single-table key-value layout)
    database_url: str = "sqlite+aiosqlite:///./liftcycle.db"
    store_timeout: float = 5.0  # seconds before a store call counts as failed

    # Single fixed user; every record is partitioned under this identity
    default_user_id: str = "athlete"

    # Bearer token validation (tokens are issued by the external identity provider)
    secret_key: str = "change-me-in-production"
    algorithm: str = "HS256"
    auth_required_for_writes: bool = True

    # LLM provider used for cycle analysis
    llm_provider: Literal["anthropic"] = "anthropic"
    anthropic_api_key: str = ""  # Set via environment variable ANTHROPIC_API_KEY
    anthropic_base_url: str = "https://api.anthropic.com/v1"
    anthropic_model: str = "claude-3-opus-20240229"
    anthropic_version: str = "2023-06-01"
    llm_timeout: float = 60.0  # seconds
    llm_max_tokens: int = 4000
    llm_temperature: float = 0.3

    # Analysis retry policy (fire-and-forget dispatch)
    analysis_max_attempts: int = 3
    analysis_backoff_seconds: float = 2.0  # doubled after every failed attempt

    # Session tracking
    session_autosave_debounce_seconds: float = 1.0
    default_rest_seconds: int = 90

    # Local fallback cache for saves that could not reach the store
    offline_queue_dir: str = "./.liftcycle-offline"

    # Profile defaults used when nothing has been recorded yet
    default_bodyweight: float = 180.0
    default_experience_level: str = "Intermediate"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
