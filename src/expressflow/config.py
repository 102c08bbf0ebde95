# =============================================================================
# FILE: src/expressflow/config.py
# Configuration for the ExpressFlow quote workflow
# =============================================================================

from typing import Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Quote workflow configuration."""

    # Service Info
    SERVICE_NAME: str = "expressflow"
    SERVICE_VERSION: str = "1.2.0"
    ENVIRONMENT: str = Field(default="development")
    DEBUG: bool = Field(default=True)

    # Storage
    STORAGE_BACKEND: str = "file"  # memory | file | redis
    STORAGE_DIR: str = ".expressflow"
    QUOTES_KEY: str = "expressflow_quotes"
    USERS_KEY: str = "expressflow_users"

    # Redis (used when STORAGE_BACKEND=redis)
    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_KEY_PREFIX: str = "expressflow:"

    # Workflow rules
    SLA_THRESHOLD_HOURS: float = 22.0
    MIN_SUPPLIER_QUOTES: int = 3
    QUOTE_ID_PREFIX: str = "MTN"
    QUOTE_SEQ_START: int = 1000
    STRICT_STATUS_TRANSITIONS: bool = False
    SEED_DEMO_DATA: bool = False

    # Master administrator
    ADMIN_EMAIL: str = "admin@expressflow.local"
    ADMIN_PASSWORD: Optional[str] = None

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


settings = Settings()
