"""
Translation engines

The core reaches machine translation only through TranslationEngine:

    from engines import HttpTranslationEngine

    engine = HttpTranslationEngine(
        primary_url="https://mt.example/primary",
        secondary_url="https://mt.example/secondary",
    )
    result = await engine.translate_primary("عقد البيع", Language.ARABIC, Language.FRENCH)
    print(result.result, result.confidence)
"""

from .base import EngineResult, TranslationEngine
from .http_engine import HttpTranslationEngine

__all__ = [
    "EngineResult",
    "TranslationEngine",
    "HttpTranslationEngine",
]
