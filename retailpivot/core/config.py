"""Application configuration via Pydantic Settings v2."""

from functools import lru_cache
from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application
    app_name: str = "RetailPivot"
    app_env: Literal["development", "testing", "staging", "production"] = "development"
    debug: bool = False

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    log_format: Literal["json", "console"] = "json"

    # API
    api_host: str = "0.0.0.0"  # noqa: S104
    api_port: int = 8123

    # Pivot engine
    pivot_max_records: int = 10000
    pivot_max_nodes: int = 50000
    pivot_strict_mode: bool = False
    pivot_unknown_label: str = "Unknown"
    pivot_auto_expand_first_level: bool = True

    # Presentation
    pivot_currency_symbol: str = "$"

    @field_validator("pivot_max_records", "pivot_max_nodes")
    @classmethod
    def validate_positive_limit(cls, v: int) -> int:
        """Reject non-positive pivot limits.

        Args:
            v: Configured limit.

        Returns:
            Validated limit.

        Raises:
            ValueError: If the limit is zero or negative.
        """
        if v <= 0:
            raise ValueError(f"Pivot limits must be positive, got {v}")
        return v

    @field_validator("pivot_unknown_label")
    @classmethod
    def validate_unknown_label(cls, v: str) -> str:
        """Ensure the missing-value label is not blank."""
        if not v.strip():
            raise ValueError("pivot_unknown_label must not be blank")
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.app_env == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.app_env == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings singleton."""
    return Settings()
