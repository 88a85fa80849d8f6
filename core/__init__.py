"""
Pure legal translation core

    from core.pipeline import PureTranslationPipeline
    from core.models import TranslationRequest, Language

    pipeline = PureTranslationPipeline.from_settings()
    result = await pipeline.translate(TranslationRequest(
        text="عقد البيع", source_language=Language.ARABIC, target_language=Language.FRENCH,
    ))
"""

__version__ = "1.0.0"

from .errors import PureTranslationError, InputError
from .models import Language, TranslationRequest, PureTranslationResult, TranslationMethod
from .pipeline import PureTranslationPipeline

__all__ = [
    "PureTranslationError",
    "InputError",
    "Language",
    "TranslationRequest",
    "PureTranslationResult",
    "TranslationMethod",
    "PureTranslationPipeline",
]
