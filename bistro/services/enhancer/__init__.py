"""
Menu Enhancer Factory

Returns Mock or Gemini enhancer based on ENV_MODE.

Author: Khalil Bannouri
Version: 4.0.0
"""

import logging
from functools import lru_cache

from bistro.core.config import get_settings
from bistro.services.enhancer.base import BaseMenuEnhancer, EnhancementResult
from bistro.services.enhancer.mock import MockMenuEnhancer
from bistro.services.enhancer.gemini import GeminiMenuEnhancer

logger = logging.getLogger(__name__)


@lru_cache()
def get_enhancer() -> BaseMenuEnhancer:
    """Get the configured menu enhancer."""
    settings = get_settings()

    if settings.is_development:
        logger.info("Menu Enhancer: Using MockMenuEnhancer (development mode)")
        return MockMenuEnhancer(latency=settings.mock_max_latency)
    else:
        logger.info(f"Menu Enhancer: Using GeminiMenuEnhancer ({settings.env_mode.value} mode)")
        return GeminiMenuEnhancer()


def reset_enhancer() -> None:
    """Clear the cached service instance."""
    get_enhancer.cache_clear()


__all__ = [
    "get_enhancer",
    "reset_enhancer",
    "BaseMenuEnhancer",
    "EnhancementResult",
    "MockMenuEnhancer",
    "GeminiMenuEnhancer",
]
