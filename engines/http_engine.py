"""
HTTP Translation Engine

Posts JSON to two configured translation endpoints:

    request:  {"text": ..., "source": "ar", "target": "fr"}
    response: {"translation": ..., "confidence": 0.93, "cached": false}
"""

import time
from typing import Any, Dict, Optional

import httpx

from config.logging_config import get_logger
from core.fallback import FallbackContentGenerator
from core.models import ContentIntent, Language

from .base import EngineResult, TranslationEngine

logger = get_logger(__name__)


class HttpTranslationEngine(TranslationEngine):
    """Translation engine backed by two HTTP endpoints"""

    DEFAULT_CONFIDENCE = 0.9

    def __init__(
        self,
        primary_url: Optional[str],
        secondary_url: Optional[str] = None,
        api_key: str = "",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.primary_url = primary_url
        self.secondary_url = secondary_url
        self.api_key = api_key
        self.timeout = timeout
        self.transport = transport
        self._intent = FallbackContentGenerator()

    @classmethod
    def from_settings(cls, settings) -> "HttpTranslationEngine":
        return cls(
            primary_url=settings.primary_engine_url,
            secondary_url=settings.secondary_engine_url,
            api_key=settings.engine_api_key,
            timeout=settings.processing_timeout,
        )

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def _post(self, url: Optional[str], method: str, text: str,
                    source: Language, target: Language) -> EngineResult:
        if not url:
            raise ValueError(f"{method} engine URL is not configured")

        start_time = time.time()
        payload = {"text": text, "source": source.value, "target": target.value}

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            response = await client.post(url, json=payload, headers=self._headers())
            response.raise_for_status()
            data: Dict[str, Any] = response.json()

        translation = data.get("translation", data.get("result"))
        if not isinstance(translation, str):
            raise ValueError(f"Malformed {method} engine response: missing translation")

        elapsed = time.time() - start_time
        logger.debug(f"{method} engine answered in {elapsed:.2f}s ({len(translation)} chars)")
        return EngineResult(
            result=translation,
            confidence=float(data.get("confidence", self.DEFAULT_CONFIDENCE)),
            processing_time=elapsed,
            cached=bool(data.get("cached", False)),
        )

    async def translate_primary(self, text: str, source: Language, target: Language) -> EngineResult:
        return await self._post(self.primary_url, "primary", text, source, target)

    async def translate_secondary(self, text: str, source: Language, target: Language) -> EngineResult:
        return await self._post(self.secondary_url, "secondary", text, source, target)

    async def detect_content_intent(self, text: str) -> ContentIntent:
        # No remote intent endpoint; the keyword heuristic is used directly
        return self._intent.detect_intent(text)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} primary={self.primary_url} secondary={self.secondary_url}>"
