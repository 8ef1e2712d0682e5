"""
Mock Menu Enhancer

Rewrites descriptions locally with a fixed flourish for development.
Nothing leaves the process.

Author: Khalil Bannouri
Version: 4.0.0
"""

import asyncio
import json
import random
import logging

from bistro.services.enhancer.base import (
    REWRITE_FIELDS,
    BaseMenuEnhancer,
    EnhancementResult,
)

logger = logging.getLogger(__name__)


class MockMenuEnhancer(BaseMenuEnhancer):
    """Mock enhancer for development."""

    FLOURISHES = [
        "Chef's signature:",
        "A house favourite:",
        "Lovingly prepared:",
    ]

    def __init__(self, failure_rate: float = 0.0, latency: float = 0.0):
        self.failure_rate = failure_rate
        self.latency = latency
        logger.info(f"MockMenuEnhancer initialized (failure_rate={failure_rate:.0%})")

    @property
    def provider_name(self) -> str:
        return "mock"

    async def enhance_menu(self, serialized_menu: str) -> EnhancementResult:
        if self.latency > 0:
            await asyncio.sleep(self.latency)

        if random.random() < self.failure_rate:
            logger.warning("Mock enhancement failed (simulated)")
            return EnhancementResult(
                success=False,
                error_message="Simulated enhancement failure",
                provider="mock",
            )

        try:
            items = json.loads(serialized_menu)
        except json.JSONDecodeError:
            logger.warning("Mock: invalid menu payload")
            return EnhancementResult(
                success=False,
                error_message="Invalid menu payload",
                provider="mock",
            )

        rewritten = []
        for index, item in enumerate(items):
            flourish = self.FLOURISHES[index % len(self.FLOURISHES)]
            entry = {key: item.get(key) for key in REWRITE_FIELDS}
            description = (item.get("description") or "").strip()
            entry["description"] = f"{flourish} {description}".strip()
            rewritten.append(entry)

        logger.info(f"Mock: enhanced {len(rewritten)} menu item(s)")
        return EnhancementResult(success=True, items=rewritten, provider="mock")

    async def health_check(self) -> bool:
        """Mock always returns healthy."""
        return True
