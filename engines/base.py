"""
Base Translation Engine - Abstract Interface
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from core.models import ContentIntent, Language


@dataclass
class EngineResult:
    """Unified engine response"""
    result: str
    confidence: float = 1.0
    processing_time: float = 0.0
    cached: bool = False  # served from the engine's own translation cache


class TranslationEngine(ABC):
    """
    Abstract base class for translation engines.
    Both methods translate the same text; the secondary one is the
    independent route used when the primary output is rejected.
    """

    @abstractmethod
    async def translate_primary(self, text: str, source: Language, target: Language) -> EngineResult:
        """
        Translate with the primary method.

        Args:
            text: Cleaned source text
            source: Source language
            target: Target language

        Returns:
            EngineResult with translated text
        """
        pass

    @abstractmethod
    async def translate_secondary(self, text: str, source: Language, target: Language) -> EngineResult:
        """Translate with the secondary method."""
        pass

    @abstractmethod
    async def detect_content_intent(self, text: str) -> ContentIntent:
        """Detect the legal domain and concepts of the source text."""
        pass

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}>"
