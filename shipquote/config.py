import os
import sys
from functools import lru_cache
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    environment: str = Field(default="development", alias="NODE_ENV")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Rate providers
    shippo_api_key: str | None = Field(default=None, alias="SHIPPO_API_KEY")
    shippo_base_url: str = Field(default="https://api.goshippo.com", alias="SHIPPO_BASE_URL")
    freightos_api_key: str | None = Field(default=None, alias="FREIGHTOS_API_KEY")
    freightos_base_url: str = Field(default="https://ship.freightos.com", alias="FREIGHTOS_BASE_URL")

    # Address lookups
    geocoder_base_url: str = Field(default="https://nominatim.openstreetmap.org", alias="GEOCODER_BASE_URL")
    geocoder_user_agent: str = Field(
        default="shipquote/1.0 (quote service)",
        alias="GEOCODER_USER_AGENT",
        description="Nominatim usage policy requires an identifying User-Agent",
    )
    postal_base_url: str = Field(default="https://api.zippopotam.us", alias="POSTAL_BASE_URL")

    # Timeouts (seconds)
    provider_timeout: float = Field(
        default=25.0,
        alias="PROVIDER_TIMEOUT",
        description="Upper bound for a whole provider path, address resolution included",
    )
    http_timeout: float = Field(default=15.0, alias="HTTP_TIMEOUT")
    lookup_timeout: float = Field(default=8.0, alias="LOOKUP_TIMEOUT")

    # Address cache
    address_cache_ttl: int = Field(default=86400, alias="ADDRESS_CACHE_TTL")
    address_cache_max_entries: int = Field(default=5000, alias="ADDRESS_CACHE_MAX_ENTRIES")

    # Persistence (optional, quotes are not stored when unset)
    quote_db_path: str | None = Field(default=None, alias="QUOTE_DB_PATH")

    allowed_origins: List[str] = Field(
        default_factory=lambda: [],
        alias="ALLOWED_ORIGINS"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_ignore_empty=True,  # Treat empty strings as not set
    )

    @field_validator("allowed_origins", mode="before")
    @classmethod
    def parse_origins(cls, v):
        """Parse ALLOWED_ORIGINS from comma-separated string or list"""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v or []

    @property
    def dev_mode(self) -> bool:
        """Check if running in development/test mode."""
        in_test = "pytest" in sys.modules or os.getenv("TEST") == "true"
        in_dev = self.environment == "development"
        return in_test or in_dev

    @property
    def shippo_enabled(self) -> bool:
        return bool(self.shippo_api_key)

    @property
    def persistence_enabled(self) -> bool:
        return bool(self.quote_db_path)


@lru_cache
def get_settings() -> Settings:
    return Settings()
