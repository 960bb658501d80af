"""
Configuration management for the order sync
"""
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from typing import Literal, Optional

LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")
LOG_LEVEL_ALIASES = {"WARN": "WARNING", "FATAL": "CRITICAL"}


class Settings(BaseSettings):
    """Sync settings"""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Logging
    log_level: str = "INFO"
    log_dir: str = "logs"
    log_json: bool = True  # One JSON object per stdout line

    # Database (record store)
    database_url: str

    # Shopify
    shopify_store_domain: str
    shopify_admin_access_token: str
    shopify_api_version: str = "2024-01"
    shopify_import_tag: str = "import"
    shopify_processed_tag: str = "imported"
    shopify_requests_per_second: float = Field(default=2.0, ge=0)  # 0 = no client-side limit
    shopify_timeout_seconds: float = Field(default=60.0, gt=0)

    # Sync cycle
    sync_since: Optional[str] = None  # created_at_min filter (ISO-8601)
    sync_interval_minutes: int = Field(default=30, ge=1)
    sync_concurrency: int = Field(default=3, ge=1)
    sync_retries: int = Field(default=2, ge=0)  # Extra attempts after the first
    sync_retry_base_delay: float = Field(default=1.0, ge=0)

    # Read-only API credentials cannot write tags
    retag_enabled: bool = True

    # marker: skip orders already recorded in the store
    # tag: rely on the import tag alone
    idempotency_strategy: Literal["marker", "tag"] = "marker"

    # Stored on every imported order
    purchase_from: str = "primestyle"

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, value):
        """Loguru only knows upper-case level names"""
        level = str(value).strip().upper()
        level = LOG_LEVEL_ALIASES.get(level, level)
        if level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}, got {value!r}")
        return level


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
