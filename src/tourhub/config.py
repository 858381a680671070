"""Application configuration and settings."""

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
        frozen=True,
    )

    # Application
    app_name: str = "Tourhub API"
    app_version: str = "0.1.0"
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False

    # API
    api_v1_prefix: str = "/api/v1"

    # CORS
    cors_origins: list[str] = ["*"]
    cors_credentials: bool = True
    cors_methods: list[str] = ["*"]
    cors_headers: list[str] = ["*"]

    # Logging
    log_level: str = "INFO"

    # Storage
    storage_backend: Literal["mongodb", "memory"] = "mongodb"
    mongodb_url: str = "mongodb://localhost:27017"
    mongodb_database: str = "tourhub"
    mongodb_timeout_ms: int = 5000  # Server selection timeout

    # Pagination
    pagination_default_limit: int = 10
    pagination_max_limit: int = 100  # Largest bounded page size
    pagination_memory_threshold: int = 2000  # Max items materialized in hybrid mode

    # Structural writes on embedded reviews
    structural_write_retries: int = 3  # CAS attempts before reporting a conflict


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Settings: Application settings instance.
    """
    return Settings()
