"""
Application settings using Pydantic.

Provides environment-based configuration loading with RDSBROKER_ prefix.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="RDSBROKER_",
    )

    # AWS
    aws_region: str = "us-east-1"
    db_subnet_group_name: str | None = None

    # Catalog (services + plan specifications)
    catalog_path: str = "config/catalog.yaml"

    # Broker API (HTTP basic auth expected from the marketplace)
    broker_username: str | None = None
    broker_password: str | None = None
    api_host: str = "0.0.0.0"
    api_port: int = 5001

    # Provider calls
    provider_max_attempts: int = 3
    page_fetch_timeout: float | None = None
    tag_fetch_timeout: float | None = None

    # Logging
    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
