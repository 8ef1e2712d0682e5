"""
Gemini Menu Enhancer

Production implementation calling the Generative Language REST API
(models/<model>:generateContent) with a JSON response schema, so the reply
parses straight back into the menu shape.

Requirements:
    - GEMINI_API_KEY must be set in environment

Author: Khalil Bannouri
Version: 4.0.0
"""

import json
import logging
from typing import Any, Optional

import httpx

from bistro.core.config import get_settings
from bistro.services.enhancer.base import (
    REWRITE_FIELDS,
    BaseMenuEnhancer,
    EnhancementResult,
)

logger = logging.getLogger(__name__)

PROMPT_TEMPLATE = (
    "You are a professional Michelin-star menu copywriter. "
    "Rewrite these food item descriptions to be extremely appetizing and luxurious. "
    "Maintain the same name and category.\n\n"
    "Input: {menu}"
)

RESPONSE_SCHEMA = {
    "type": "ARRAY",
    "items": {
        "type": "OBJECT",
        "properties": {
            "id": {"type": "STRING"},
            "name": {"type": "STRING"},
            "description": {"type": "STRING"},
            "price": {"type": "NUMBER"},
            "category": {"type": "STRING"},
            "image": {"type": "STRING"},
        },
        "required": list(REWRITE_FIELDS),
    },
}


class GeminiMenuEnhancer(BaseMenuEnhancer):
    """Production enhancer backed by Gemini."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()

        api_key = api_key or settings.gemini_api_key
        if not api_key:
            raise ValueError(
                "GEMINI_API_KEY is required for production mode. "
                "Set it in your .env file or environment variables."
            )

        self._api_key = api_key
        self._model = model or settings.gemini_model
        self._client = httpx.AsyncClient(
            base_url=settings.gemini_base_url.rstrip("/"),
            timeout=settings.request_timeout * 4,
            transport=transport,
        )

        logger.info(f"GeminiMenuEnhancer initialized (model={self._model})")

    @property
    def provider_name(self) -> str:
        return "gemini"

    @staticmethod
    def _extract_text(body: dict[str, Any]) -> str:
        candidates = body.get("candidates") or []
        if not candidates:
            return ""
        parts = (candidates[0].get("content") or {}).get("parts") or []
        return "".join(part.get("text", "") for part in parts)

    async def enhance_menu(self, serialized_menu: str) -> EnhancementResult:
        payload = {
            "contents": [
                {"parts": [{"text": PROMPT_TEMPLATE.format(menu=serialized_menu)}]}
            ],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": RESPONSE_SCHEMA,
            },
        }

        try:
            response = await self._client.post(
                f"/models/{self._model}:generateContent",
                params={"key": self._api_key},
                json=payload,
            )
            response.raise_for_status()
            items = json.loads(self._extract_text(response.json()) or "[]")
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Gemini enhancement failed: {e}")
            return EnhancementResult(
                success=False,
                error_message=str(e),
                provider="gemini",
            )

        if not isinstance(items, list) or not items:
            return EnhancementResult(
                success=False,
                error_message="Empty rewrite",
                provider="gemini",
            )
        if not all(isinstance(item, dict) for item in items):
            return EnhancementResult(
                success=False,
                error_message="Rewrite is not a list of menu objects",
                provider="gemini",
            )

        logger.info(f"Gemini: enhanced {len(items)} menu item(s)")
        return EnhancementResult(success=True, items=items, provider="gemini")

    async def health_check(self) -> bool:
        try:
            response = await self._client.get(
                f"/models/{self._model}",
                params={"key": self._api_key},
            )
            return response.status_code == 200
        except httpx.HTTPError as e:
            logger.error(f"Gemini health check failed: {e}")
            return False

    async def close(self) -> None:
        await self._client.aclose()
