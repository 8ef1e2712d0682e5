"""
Application Configuration Module

Centralizes all configuration using environment variables with Pydantic Settings.
Supports two modes:
    - DEVELOPMENT: Uses the in-memory mock backend and mock menu enhancer
    - PRODUCTION: Uses Supabase (auth + tables) and the Gemini REST API

The ENV_MODE variable controls which services are instantiated throughout
the application, so the storefront runs locally without any credentials.

Usage:
    from bistro.core.config import get_settings

    settings = get_settings()
    if settings.is_development:
        # Mock backend, nothing leaves the process
    else:
        # Supabase + Gemini

Author: Khalil Bannouri
Version: 4.0.0
"""

import logging
import sys
from enum import Enum
from typing import Optional
from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class EnvironmentMode(str, Enum):
    """Which backend and enhancer get wired: mocks in development, Supabase/Gemini otherwise."""
    DEVELOPMENT = "development"
    PRODUCTION = "production"
    STAGING = "staging"


class Settings(BaseSettings):
    """
    Storefront settings, read from ENV_MODE, SUPABASE_*, GEMINI_*, MOCK_* and
    friends (or a local .env). Keys stay out of the repository.

    Attributes:
        env_mode: Current environment (development/production/staging)
        debug: Enable verbose logging and error details

        # Backend (Supabase)
        supabase_url: Project URL (https://<ref>.supabase.co)
        supabase_anon_key: Public anon key, sent as the apikey header

        # Menu enhancement (Gemini)
        gemini_api_key: Google Generative Language API key
        gemini_model: Model used to rewrite menu copy

        # Mock services
        mock_failure_rate: Probability of a simulated backend failure
        mock_min_latency / mock_max_latency: Simulated round trip in seconds
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ==========================================================================
    # ENVIRONMENT
    # ==========================================================================

    env_mode: EnvironmentMode = Field(
        default=EnvironmentMode.DEVELOPMENT,
        description="Application environment mode"
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode with verbose logging"
    )

    # ==========================================================================
    # APPLICATION
    # ==========================================================================

    app_name: str = Field(
        default="Bistro Storefront",
        description="Application display name"
    )
    app_version: str = Field(
        default="4.0.0",
        description="Application version"
    )
    api_host: str = Field(
        default="0.0.0.0",
        description="API server host"
    )
    api_port: int = Field(
        default=8001,
        description="API server port"
    )

    # ==========================================================================
    # SUPABASE (AUTH + TABLE STORE)
    # ==========================================================================

    supabase_url: Optional[str] = Field(
        default=None,
        description="Supabase project URL"
    )
    supabase_anon_key: Optional[str] = Field(
        default=None,
        description="Supabase anon (public) API key"
    )
    request_timeout: float = Field(
        default=15.0,
        description="Timeout in seconds for backend HTTP calls"
    )

    # ==========================================================================
    # GEMINI (MENU ENHANCEMENT)
    # ==========================================================================

    gemini_api_key: Optional[str] = Field(
        default=None,
        description="Gemini API key"
    )
    gemini_model: str = Field(
        default="gemini-2.0-flash",
        description="Model used for menu copywriting"
    )
    gemini_base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        description="Generative Language API base URL"
    )

    # ==========================================================================
    # MOCK SERVICES
    # ==========================================================================

    mock_failure_rate: float = Field(
        default=0.0,
        ge=0.0,
        le=1.0,
        description="Probability of a simulated backend failure"
    )
    mock_min_latency: float = Field(
        default=0.05,
        ge=0.0,
        description="Minimum simulated backend latency in seconds"
    )
    mock_max_latency: float = Field(
        default=0.2,
        ge=0.0,
        description="Maximum simulated backend latency in seconds"
    )
    mock_require_email_confirmation: bool = Field(
        default=False,
        description="Mock sign-up withholds the session until e-mail confirmation"
    )

    # ==========================================================================
    # IDENTITY & LOCALE
    # ==========================================================================

    avatar_base_url: str = Field(
        default="https://ui-avatars.com/api/",
        description="Avatar image service used for signed-in users"
    )
    restaurant_timezone: str = Field(
        default="Asia/Kolkata",
        description="IANA zone used for invoice timestamps and receipt dates"
    )

    # ==========================================================================
    # FILE STORAGE
    # ==========================================================================

    data_directory: str = Field(
        default="data",
        description="Directory for data files"
    )
    history_filename: str = Field(
        default="order_history.xlsx",
        description="Excel export filename for the sales log"
    )
    export_lock_timeout: int = Field(
        default=30,
        description="Seconds to wait for file lock"
    )

    # ==========================================================================
    # VALIDATORS
    # ==========================================================================

    @field_validator("restaurant_timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ValueError, ZoneInfoNotFoundError):
            raise ValueError(f"Unknown restaurant_timezone: {v}")
        return v

    @field_validator("env_mode", mode="before")
    @classmethod
    def validate_env_mode(cls, v: str) -> EnvironmentMode:
        """Convert string to EnvironmentMode enum."""
        if isinstance(v, EnvironmentMode):
            return v
        try:
            return EnvironmentMode(v.lower())
        except ValueError:
            valid = [e.value for e in EnvironmentMode]
            raise ValueError(f"Invalid env_mode. Must be one of: {valid}")

    # ==========================================================================
    # COMPUTED PROPERTIES
    # ==========================================================================

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.env_mode == EnvironmentMode.DEVELOPMENT

    @property
    def use_real_services(self) -> bool:
        """Check if real external services should be used."""
        return self.env_mode in (EnvironmentMode.PRODUCTION, EnvironmentMode.STAGING)

    @property
    def restaurant_zone(self) -> ZoneInfo:
        """Zone every invoice date is printed in, wherever the record came from."""
        return ZoneInfo(self.restaurant_timezone)

    # ==========================================================================
    # VALIDATION METHODS
    # ==========================================================================

    def validate_production_config(self) -> list[str]:
        """
        Validate that all required production settings are configured.

        Returns:
            List of missing configuration keys (empty if all present)
        """
        missing = []

        if self.use_real_services:
            if not self.supabase_url:
                missing.append("SUPABASE_URL")
            if not self.supabase_anon_key:
                missing.append("SUPABASE_ANON_KEY")
            if not self.gemini_api_key:
                missing.append("GEMINI_API_KEY")

        return missing


@lru_cache()
def get_settings() -> Settings:
    """Process-wide settings; tests call get_settings.cache_clear() after changing the environment."""
    return Settings()


# =============================================================================
# LOGGING CONFIGURATION
# =============================================================================

def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """Route every bistro logger to stdout (DEBUG when settings.debug is set)."""
    settings = get_settings()

    if settings.debug:
        level = logging.DEBUG

    log_format = "%(asctime)s │ %(levelname)-8s │ %(name)-25s │ %(message)s"
    date_format = "%Y-%m-%d %H:%M:%S"

    logging.basicConfig(
        level=level,
        format=log_format,
        datefmt=date_format,
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("filelock").setLevel(logging.WARNING)

    return logging.getLogger("bistro")
