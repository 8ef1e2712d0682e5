"""
Backend Service Factory

Provides a single entry point for obtaining the backend (auth + tables).

Usage:
    from bistro.services.backend import get_backend

    # Returns MockBackend or SupabaseBackend based on ENV_MODE
    backend = get_backend()

    result = await backend.select("menu_items", {"user_id": user_id})

Environment Switching:
    - ENV_MODE=development → MockBackend (in-memory)
    - ENV_MODE=staging → SupabaseBackend (staging project)
    - ENV_MODE=production → SupabaseBackend (live project)

Author: Khalil Bannouri
Version: 4.0.0
"""

import logging
from functools import lru_cache

from bistro.core.config import get_settings
from bistro.services.backend.base import (
    AuthEvent,
    AuthResult,
    AuthSubscription,
    AuthUser,
    BaseBackend,
    StoreResult,
)
from bistro.services.backend.mock import MockBackend
from bistro.services.backend.supabase import SupabaseBackend

logger = logging.getLogger(__name__)


@lru_cache()
def get_backend() -> BaseBackend:
    """
    Get the configured backend instance.

    The instance is cached so that the session token and the auth
    subscribers are shared across the application.

    Raises:
        ValueError: If production mode but Supabase is not configured
    """
    settings = get_settings()

    if settings.is_development:
        logger.info("Backend: Using MockBackend (development mode)")
        return MockBackend(
            failure_rate=settings.mock_failure_rate,
            min_latency=settings.mock_min_latency,
            max_latency=settings.mock_max_latency,
            require_email_confirmation=settings.mock_require_email_confirmation,
        )
    else:
        logger.info(
            f"Backend: Using SupabaseBackend "
            f"({settings.env_mode.value} mode)"
        )
        return SupabaseBackend()


def reset_backend() -> None:
    """
    Clear the cached backend instance.

    Useful for testing or when configuration changes at runtime.
    """
    get_backend.cache_clear()
    logger.debug("Backend cache cleared")


__all__ = [
    "get_backend",
    "reset_backend",
    "BaseBackend",
    "StoreResult",
    "AuthResult",
    "AuthUser",
    "AuthEvent",
    "AuthSubscription",
    "MockBackend",
    "SupabaseBackend",
]
