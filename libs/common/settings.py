"""Application settings for the StackQA API."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from ``STACKQA_`` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="STACKQA_",
        env_file=None,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Core application settings
    app_env: Literal["development", "staging", "production", "test"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    debug: bool = False

    # Local runner
    host: str = "0.0.0.0"
    port: int = 3000

    # CORS - use string to avoid JSON parsing issues
    cors_origins_str: str = Field(
        default="http://localhost:8080,https://localhost:8080",
        validation_alias=AliasChoices("cors_origins", "stackqa_cors_origins"),
    )

    @property
    def cors_origins(self) -> list[str]:
        """Parse CORS origins from string."""
        if not self.cors_origins_str.strip():
            return ["http://localhost:8080", "https://localhost:8080"]
        return [origin.strip() for origin in self.cors_origins_str.split(",") if origin.strip()]

    # MongoDB
    mongodb_uri: str = "mongodb://localhost:27017"
    mongodb_database: str = "stackqa"
    mongodb_timeout_ms: int = 5000

    # Uploads
    max_profile_image_bytes: int = 2 * 1024 * 1024

    @field_validator("max_profile_image_bytes")
    @classmethod
    def validate_max_profile_image_bytes(cls, v: int) -> int:
        """Ensure the upload limit is positive."""
        if v <= 0:
            raise ValueError("max_profile_image_bytes must be positive")
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
    """Get cached settings instance."""
    return Settings()
