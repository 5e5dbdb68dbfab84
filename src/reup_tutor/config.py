"""
Configuration settings for the tutor.

Uses Pydantic Settings for environment variable management with .env file support.
"""
from functools import lru_cache
from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from reup_tutor.db import DEFAULT_DB_PATH


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="REUP_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Storage
    db_path: str = Field(default=DEFAULT_DB_PATH, description="SQLite file holding plans and sessions")

    # Gemini
    gemini_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("REUP_GEMINI_API_KEY", "GEMINI_API_KEY", "API_KEY"),
        description="Google Gemini API key",
    )
    plan_model: str = Field(default="gemini-2.5-flash")
    question_model: str = Field(default="gemini-2.5-flash")
    grading_model: str = Field(default="gemini-2.5-pro")
    plan_temperature: float = Field(default=0.5, ge=0.0, le=2.0)
    question_temperature: float = Field(default=0.8, ge=0.0, le=2.0)
    grading_temperature: float = Field(default=0.3, ge=0.0, le=2.0)

    # Logging
    log_level: str = Field(default="WARNING")
    log_file: Optional[str] = Field(default=None, description="Optional path for a debug log file")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
