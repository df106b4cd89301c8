"""Application configuration via Pydantic BaseSettings."""

from __future__ import annotations

from enum import Enum
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    development = "development"
    staging = "staging"
    production = "production"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Environment
    ENVIRONMENT: Environment = Environment.development

    # Logging
    LOG_LEVEL: str = "INFO"

    # Record store (deal_c / contact_c / company_c tables)
    RECORD_STORE_URL: str = "http://localhost:8080/api"
    RECORD_STORE_PROJECT_ID: str = ""
    RECORD_STORE_PUBLIC_KEY: str = ""
    RECORD_STORE_TIMEOUT: float = 15.0
    RECORD_STORE_READ_RETRIES: int = 3  # list() only; stage updates are never retried

    # Kanban board
    MOVE_HISTORY_LIMIT: int = 5


@lru_cache
def get_settings() -> Settings:
    """Singleton settings instance."""
    return Settings()
