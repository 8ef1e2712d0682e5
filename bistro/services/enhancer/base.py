"""
Menu Enhancer Abstract Base Class

Interface for the text-rewrite collaborator that turns a serialized menu
into a more appetizing copy of itself. The service is best-effort: it
returns a same-shaped list of items or a failure result, and its
unavailability never blocks any storefront flow.

Author: Khalil Bannouri
Version: 4.0.0
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

REWRITE_FIELDS = ("id", "name", "description", "price", "category", "image")


@dataclass
class EnhancementResult:
    """Result from a rewrite request."""
    success: bool
    items: Optional[list[dict[str, Any]]] = None
    error_message: Optional[str] = None
    provider: str = "unknown"


class BaseMenuEnhancer(ABC):
    """Abstract base class for menu enhancers."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name."""
        pass

    @abstractmethod
    async def enhance_menu(self, serialized_menu: str) -> EnhancementResult:
        """
        Rewrite item descriptions.

        Args:
            serialized_menu: JSON array of {id, name, description, price,
                category, image} objects

        Returns:
            EnhancementResult: `items` has the same shape as the input
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check service connectivity."""
        pass

    async def close(self) -> None:
        return None
