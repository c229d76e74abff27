"""
Configuration management using Pydantic Settings.
Validates all environment variables at startup for fail-fast behavior.
"""

from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator


class Settings(BaseSettings):
    """Application settings with validation."""

    # Demo data
    DEMO_SEED_COUNT: int = Field(
        default=0,
        ge=0,
        le=200,
        description="Random demo receipts added at startup (0 disables)"
    )
    DEMO_SEED: Optional[int] = Field(
        default=None,
        description="Seed for the demo receipt generator (unset = random)"
    )

    # Listing
    RECENT_RECEIPTS_LIMIT: int = Field(
        default=25,
        ge=1,
        le=1000,
        description="Default number of receipts returned by GET /receipts"
    )

    # URL ingest
    URL_FETCH_TIMEOUT: int = Field(
        default=20,
        ge=1,
        le=120,
        description="Timeout in seconds when fetching receipts by URL (1-120)"
    )

    # Frontend settings
    FRONTEND_ORIGIN: str = Field(
        default="http://localhost:3000",
        description="Frontend origin for CORS (no wildcard allowed)"
    )

    # Logging
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is valid."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of {valid_levels}")
        return v_upper

    @field_validator("FRONTEND_ORIGIN")
    @classmethod
    def validate_no_wildcard_origin(cls, v: str) -> str:
        """Prevent wildcard CORS origin."""
        if v == "*":
            raise ValueError(
                "FRONTEND_ORIGIN cannot be '*' (wildcard). "
                "Set explicit origin or leave unset for localhost:3000 default."
            )
        return v

    @property
    def demo_enabled(self) -> bool:
        """Check if startup demo seeding is on."""
        return self.DEMO_SEED_COUNT > 0


# Global settings instance
settings = Settings()
