"""
SightSignal Centralized Configuration

Provides validated, type-safe access to all environment variables using Pydantic Settings.

Usage:
    from sightsignal.core.config import get_settings

    settings = get_settings()
    if settings.log_level == "DEBUG":
        ...

Environment Variables:
    SIGHTSIGNAL_LOG_LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    SIGHTSIGNAL_DEBUG: Legacy debug flag (enables DEBUG level if set)
    SIGHTSIGNAL_LOG_JSON: Output logs as JSON
    SIGHTSIGNAL_RANKING_CONCURRENCY: Max in-flight per-signal lookups
    SIGHTSIGNAL_VIRAL_WINDOW_DAYS: Activity snapshots fetched per signal
    SIGHTSIGNAL_VIRAL_MULTIPLIER: Rank multiplier for viral signals
    SIGHTSIGNAL_TOP_CATEGORY_COUNT: Preferred categories used for personalization
"""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _find_project_env_file() -> Path | None:
    """
    Find .env file by searching for project root markers.

    Searches upward from this file's location for pyproject.toml,
    then checks for .env in that directory.
    """
    current = Path(__file__).resolve().parent

    for _ in range(10):  # Limit search depth
        if (current / "pyproject.toml").exists():
            env_file = current / ".env"
            if env_file.exists():
                return env_file
            return None
        parent = current.parent
        if parent == current:
            break
        current = parent

    return None


_ENV_FILE = _find_project_env_file()


class SightSignalSettings(BaseSettings):
    """
    SightSignal configuration settings with validation.

    Environment variables are automatically loaded with the SIGHTSIGNAL_ prefix.
    """

    model_config = SettingsConfigDict(
        env_prefix="SIGHTSIGNAL_",
        env_file=_ENV_FILE,
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # =========================================================================
    # Logging Configuration
    # =========================================================================

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="WARNING",
        description="Log level for SightSignal components",
    )

    debug: bool = Field(
        default=False,
        description="Legacy debug flag (enables DEBUG level if set)",
    )

    log_json: bool = Field(
        default=False,
        description="Output logs in JSON format for machine parsing",
    )

    # =========================================================================
    # Ranking & Evaluation
    # =========================================================================

    ranking_concurrency: int = Field(
        default=16,
        ge=1,
        description="Maximum concurrent per-signal repository lookups",
    )

    viral_window_days: int = Field(
        default=8,
        ge=2,
        description="Daily activity snapshots requested per signal (1 day + 7-day baseline)",
    )

    viral_multiplier: float = Field(
        default=2.0,
        ge=1.0,
        description="Rank score multiplier applied to viral signals",
    )

    top_category_count: int = Field(
        default=3,
        ge=1,
        description="Number of top preferred categories used for personalization",
    )

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("log_level", mode="before")
    @classmethod
    def uppercase_log_level(cls, v: str) -> str:
        """Normalize log level to uppercase."""
        if isinstance(v, str):
            return v.upper()
        return v

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @property
    def effective_log_level(self) -> str:
        """
        Get effective log level, respecting legacy SIGHTSIGNAL_DEBUG.

        Priority:
        1. Explicit SIGHTSIGNAL_LOG_LEVEL
        2. SIGHTSIGNAL_DEBUG=1 -> DEBUG
        3. Default: WARNING
        """
        if self.debug and self.log_level == "WARNING":
            return "DEBUG"
        return self.log_level

    @property
    def log_level_int(self) -> int:
        """Get effective log level as logging constant."""
        return getattr(logging, self.effective_log_level)


@lru_cache(maxsize=1)
def get_settings() -> SightSignalSettings:
    """
    Get the global settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() in tests to reload from the environment.
    """
    return SightSignalSettings()


def reset_settings() -> None:
    """
    Reset the settings cache.

    Useful for testing when environment variables change.
    """
    get_settings.cache_clear()
