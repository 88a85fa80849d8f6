#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
EmergencyContentGenerator - last-resort, pre-validated content
"""

import threading
from dataclasses import dataclass
from typing import Dict, List, Optional

from config.constants import PURITY_MAX_SCORE
from config.logging_config import get_logger
from core.errors import FallbackGenerationFailure
from core.models import (
    AudienceType,
    ContentType,
    EmergencyContent,
    Language,
    PurityScore,
)
from core.purity import PurityPolicy, PurityValidator

logger = get_logger(__name__)


@dataclass
class EmergencyTemplate:
    """Curated boilerplate for one language and content type"""
    id: str
    language: Language
    text: str
    content_type: Optional[ContentType] = None  # None = generic
    audience: AudienceType = AudienceType.GENERAL_PUBLIC
    professionalism: float = 90.0
    relevance: float = 50.0

    @property
    def is_generic(self) -> bool:
        return self.content_type is None


DEFAULT_TEMPLATES: List[EmergencyTemplate] = [
    EmergencyTemplate(
        id="ar_legal_document",
        language=Language.ARABIC,
        content_type=ContentType.LEGAL_DOCUMENT,
        audience=AudienceType.LEGAL_PROFESSIONAL,
        text="محتوى قانوني مهني متاح. نعتذر عن أي إزعاج، يرجى المحاولة مرة أخرى "
             "أو الاتصال بالدعم الفني للحصول على المساعدة.",
        professionalism=95.0,
        relevance=70.0,
    ),
    EmergencyTemplate(
        id="ar_chat_message",
        language=Language.ARABIC,
        content_type=ContentType.CHAT_MESSAGE,
        text="نعتذر، حدث خطأ في الترجمة. يرجى إعادة صياغة رسالتك أو الاتصال بالدعم.",
        professionalism=90.0,
        relevance=80.0,
    ),
    EmergencyTemplate(
        id="ar_legal_form",
        language=Language.ARABIC,
        content_type=ContentType.LEGAL_FORM,
        audience=AudienceType.LEGAL_PROFESSIONAL,
        text="نموذج قانوني مهني. للحصول على المساعدة في ملء هذا النموذج، يرجى الاتصال بالدعم القانوني.",
        professionalism=95.0,
        relevance=85.0,
    ),
    EmergencyTemplate(
        id="fr_legal_document",
        language=Language.FRENCH,
        content_type=ContentType.LEGAL_DOCUMENT,
        audience=AudienceType.LEGAL_PROFESSIONAL,
        text="Contenu juridique professionnel disponible. Nous nous excusons pour tout "
             "inconvénient, veuillez réessayer ou contacter le support technique pour obtenir de l'aide.",
        professionalism=95.0,
        relevance=70.0,
    ),
    EmergencyTemplate(
        id="fr_chat_message",
        language=Language.FRENCH,
        content_type=ContentType.CHAT_MESSAGE,
        text="Désolé, une erreur de traduction s'est produite. Veuillez reformuler votre "
             "message ou contacter le support.",
        professionalism=90.0,
        relevance=80.0,
    ),
    EmergencyTemplate(
        id="fr_legal_form",
        language=Language.FRENCH,
        content_type=ContentType.LEGAL_FORM,
        audience=AudienceType.LEGAL_PROFESSIONAL,
        text="Formulaire juridique professionnel. Pour obtenir de l'aide pour remplir ce "
             "formulaire, veuillez contacter le support juridique.",
        professionalism=95.0,
        relevance=85.0,
    ),
    EmergencyTemplate(
        id="ar_generic",
        language=Language.ARABIC,
        text="محتوى مهني متاح.",
        professionalism=100.0,
        relevance=50.0,
    ),
    EmergencyTemplate(
        id="fr_generic",
        language=Language.FRENCH,
        text="Contenu professionnel disponible.",
        professionalism=100.0,
        relevance=50.0,
    ),
]


class EmergencyContentGenerator:
    """
    Serves boilerplate that passed zero-tolerance validation at startup.

    Selection is deterministic for a given (language, content type, user):
    a content-type match scores 40, a generic template 10, the audience adds
    20 for a known user on a professional template or 15 for an anonymous
    user on a public one, then professionalism and relevance add a tenth of
    their value. Ties go to declaration order.
    """

    def __init__(self, templates: Optional[List[EmergencyTemplate]] = None,
                 validator: Optional[PurityValidator] = None):
        self.validator = validator or PurityValidator(PurityPolicy(zero_tolerance=True))
        self._lock = threading.Lock()
        self._templates: List[EmergencyTemplate] = []
        self._scores: Dict[str, PurityScore] = {}
        self._metrics = {
            "total_generated": 0,
            "by_language": {},
            "by_content_type": {},
            "relevance_sum": 0.0,
        }

        for template in (DEFAULT_TEMPLATES if templates is None else templates):
            self.add_template(template)

        for language in Language:
            if not any(t.language == language for t in self._templates):
                logger.error(f"No valid emergency template for language '{language.value}'")

    def add_template(self, template: EmergencyTemplate) -> bool:
        """
        Add a template if it validates at 100.

        Returns:
            True when the template joined the pool
        """
        verdict = self.validator.validate(template.text, template.language)
        if verdict.purity_score.overall < PURITY_MAX_SCORE or verdict.violations:
            logger.warning(
                f"Emergency template '{template.id}' rejected: purity "
                f"{verdict.purity_score.overall} ({[v.type for v in verdict.violations]})"
            )
            return False

        with self._lock:
            self._templates = [t for t in self._templates if t.id != template.id]
            self._templates.append(template)
            self._scores[template.id] = verdict.purity_score
        return True

    def list_templates(self, language: Optional[Language] = None) -> List[EmergencyTemplate]:
        with self._lock:
            return [t for t in self._templates if language is None or t.language == language]

    @staticmethod
    def _score(template: EmergencyTemplate, content_type: ContentType, user_id: Optional[str]) -> float:
        score = 0.0
        if template.content_type == content_type:
            score += 40
        elif template.is_generic:
            score += 10

        if user_id:
            if template.audience == AudienceType.LEGAL_PROFESSIONAL:
                score += 20
        elif template.audience == AudienceType.GENERAL_PUBLIC:
            score += 15

        score += template.professionalism * 0.1
        score += template.relevance * 0.1
        return score

    def generate_emergency(self, target_language: Language, failure_reason: str = "unknown",
                           content_type: ContentType = ContentType.LEGAL_DOCUMENT,
                           user_id: Optional[str] = None) -> EmergencyContent:
        """
        Pick the best pre-validated template for the request.

        Raises:
            FallbackGenerationFailure: No template is available for the language
        """
        target_language = Language(target_language)
        content_type = ContentType(content_type)
        candidates = self.list_templates(target_language)
        if not candidates:
            raise FallbackGenerationFailure(
                f"No emergency template available for language '{target_language.value}'"
            )

        # max() keeps the first of equal scores
        template = max(candidates, key=lambda t: self._score(t, content_type, user_id))

        content = EmergencyContent(
            content=template.text,
            template_id=template.id,
            language=target_language,
            content_type=content_type,
            purity_score=self._scores[template.id],
            relevance=template.relevance,
        )

        with self._lock:
            m = self._metrics
            m["total_generated"] += 1
            m["by_language"][target_language.value] = m["by_language"].get(target_language.value, 0) + 1
            m["by_content_type"][content_type.value] = m["by_content_type"].get(content_type.value, 0) + 1
            m["relevance_sum"] += template.relevance

        logger.warning(
            f"Emergency content '{template.id}' served ({failure_reason})"
        )
        return content

    def get_metrics(self) -> Dict:
        with self._lock:
            m = self._metrics
            total = m["total_generated"]
            return {
                "total_generated": total,
                "by_language": dict(m["by_language"]),
                "by_content_type": dict(m["by_content_type"]),
                "average_relevance": round(m["relevance_sum"] / total, 2) if total else 0.0,
                "templates_available": len(self._templates),
            }
