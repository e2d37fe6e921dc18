"""
Application configuration settings.
"""

from typing import Optional

from pydantic import field_validator, ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings."""

    # Basic application settings
    PROJECT_NAME: str = "Invoice Validation Engine"
    PROJECT_DESCRIPTION: str = "Rule-based duplicate and anomaly checks for submitted invoices"
    VERSION: str = "0.1.0"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./invoice_validation.db"
    DATABASE_POOL_SIZE: int = 10
    DATABASE_MAX_OVERFLOW: int = 20

    # Validation engine
    VALIDATION_CONFIG_CACHE_TTL_SECONDS: int = 300  # 5 minutes
    VALIDATION_PRICE_HISTORY_LIMIT: int = 50
    VALIDATION_RULE_TIMEOUT_SECONDS: float = 10.0

    @field_validator("VALIDATION_CONFIG_CACHE_TTL_SECONDS", "VALIDATION_PRICE_HISTORY_LIMIT", mode="before")
    @classmethod
    def validate_non_negative(cls, v):
        """Reject negative cache TTL and history limits."""
        if int(v) < 0:
            raise ValueError("Value must be >= 0")
        return v

    @field_validator("VALIDATION_RULE_TIMEOUT_SECONDS", mode="before")
    @classmethod
    def validate_rule_timeout(cls, v):
        """Validate per-rule timeout."""
        if float(v) <= 0:
            raise ValueError("Rule timeout must be greater than 0")
        return v

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v.upper()

    model_config = ConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore"  # VALIDATION_RULE_* overrides are read by the config resolver
    )


# Create settings instance
settings = Settings()
