#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
FallbackContentGenerator - domain-aware replacement content

When both engine tiers fail, the generator detects the legal domain of the
source text from bilingual keywords and returns a professional template in
the target language, enhanced with the first detected concept.
"""

import threading
from typing import Dict, List, Optional, Tuple

from config.constants import (
    FALLBACK_BASE_CONFIDENCE,
    FALLBACK_MIN_CONFIDENCE,
    FALLBACK_MAX_CONFIDENCE,
    FALLBACK_SHORT_TEXT_LENGTH,
)
from config.logging_config import get_logger
from core.models import (
    AudienceType,
    ComplexityLevel,
    ContentIntent,
    FallbackContent,
    ContentType,
    FallbackMethod,
    Language,
    LegalDomain,
)

logger = get_logger(__name__)


# ============================================================================
# Templates
# ============================================================================

ARABIC_TEMPLATES: Dict[LegalDomain, List[str]] = {
    LegalDomain.CIVIL_LAW: [
        "يتعلق هذا المحتوى بأحكام القانون المدني الجزائري",
        "وفقاً لأحكام القانون المدني، يجب مراعاة الالتزامات التعاقدية",
        "في إطار القانون المدني الجزائري، تطبق الأحكام ذات الصلة",
    ],
    LegalDomain.CRIMINAL_LAW: [
        "يتعلق هذا المحتوى بأحكام قانون العقوبات الجزائري",
        "وفقاً لقانون الإجراءات الجزائية، تطبق الأحكام المنصوص عليها",
        "في إطار القانون الجنائي الجزائري، يجب احترام الضمانات القانونية",
    ],
    LegalDomain.COMMERCIAL_LAW: [
        "يتعلق هذا المحتوى بأحكام القانون التجاري الجزائري",
        "وفقاً للقانون التجاري، تطبق الأحكام المتعلقة بالأنشطة التجارية",
        "في إطار التشريع التجاري الجزائري، يجب مراعاة الالتزامات المهنية",
    ],
    LegalDomain.ADMINISTRATIVE_LAW: [
        "يتعلق هذا المحتوى بأحكام القانون الإداري الجزائري",
        "وفقاً للقانون الإداري، تطبق الأحكام المتعلقة بالإدارة العمومية",
        "في إطار التشريع الإداري الجزائري، يجب احترام المبادئ العامة",
    ],
    LegalDomain.FAMILY_LAW: [
        "يتعلق هذا المحتوى بأحكام قانون الأسرة الجزائري",
        "وفقاً لقانون الأسرة، تطبق الأحكام المتعلقة بالأحوال الشخصية",
        "في إطار قانون الأسرة الجزائري، يجب مراعاة المصلحة العليا للأسرة",
    ],
    LegalDomain.PROCEDURAL_LAW: [
        "يتعلق هذا المحتوى بأحكام قانون الإجراءات المدنية والإدارية",
        "وفقاً لقانون الإجراءات، يجب احترام الضمانات الإجرائية",
        "في إطار قانون الإجراءات الجزائري، تطبق القواعد الإجرائية",
    ],
}

FRENCH_TEMPLATES: Dict[LegalDomain, List[str]] = {
    LegalDomain.CIVIL_LAW: [
        "Ce contenu concerne les dispositions du Code civil algérien",
        "Conformément au Code civil, les obligations contractuelles doivent être respectées",
        "Dans le cadre du droit civil algérien, les dispositions pertinentes s'appliquent",
    ],
    LegalDomain.CRIMINAL_LAW: [
        "Ce contenu concerne les dispositions du Code pénal algérien",
        "Conformément au Code de procédure pénale, les dispositions prévues s'appliquent",
        "Dans le cadre du droit pénal algérien, les garanties légales doivent être respectées",
    ],
    LegalDomain.COMMERCIAL_LAW: [
        "Ce contenu concerne les dispositions du Code de commerce algérien",
        "Conformément au Code de commerce, les dispositions relatives aux activités commerciales s'appliquent",
        "Dans le cadre de la législation commerciale algérienne, les obligations professionnelles doivent être respectées",
    ],
    LegalDomain.ADMINISTRATIVE_LAW: [
        "Ce contenu concerne les dispositions du droit administratif algérien",
        "Conformément au droit administratif, les dispositions relatives à l'administration publique s'appliquent",
        "Dans le cadre de la législation administrative algérienne, les principes généraux doivent être respectés",
    ],
    LegalDomain.FAMILY_LAW: [
        "Ce contenu concerne les dispositions du Code de la famille algérien",
        "Conformément au Code de la famille, les dispositions relatives au statut personnel s'appliquent",
        "Dans le cadre du Code de la famille algérien, l'intérêt supérieur de la famille doit être pris en compte",
    ],
    LegalDomain.PROCEDURAL_LAW: [
        "Ce contenu concerne les dispositions du Code de procédure civile et administrative",
        "Conformément au Code de procédure, les garanties procédurales doivent être respectées",
        "Dans le cadre du droit procédural algérien, les règles de procédure s'appliquent",
    ],
}

TEMPLATES = {
    Language.ARABIC: ARABIC_TEMPLATES,
    Language.FRENCH: FRENCH_TEMPLATES,
}

GENERIC_TEMPLATES = {
    Language.ARABIC: "هذا محتوى قانوني مهني وفقاً للقانون الجزائري.",
    Language.FRENCH: "Contenu juridique professionnel conforme au droit algérien.",
}

# (Arabic, French) keyword pairs per domain
LEGAL_CONCEPT_KEYWORDS: Dict[LegalDomain, List[Tuple[str, str]]] = {
    LegalDomain.CIVIL_LAW: [
        ("عقد", "contrat"), ("التزام", "obligation"), ("مسؤولية", "responsabilité"),
        ("ضرر", "dommage"), ("تعويض", "indemnisation"), ("ملكية", "propriété"),
        ("حق عيني", "droit réel"),
    ],
    LegalDomain.CRIMINAL_LAW: [
        ("جريمة", "crime"), ("جنحة", "délit"), ("مخالفة", "contravention"),
        ("عقوبة", "peine"), ("متهم", "accusé"), ("ضحية", "victime"), ("محاكمة", "procès"),
    ],
    LegalDomain.COMMERCIAL_LAW: [
        ("شركة", "société"), ("تاجر", "commerçant"), ("إفلاس", "faillite"),
        ("سجل تجاري", "registre de commerce"), ("عمل تجاري", "acte de commerce"),
        ("منافسة", "concurrence"),
    ],
    LegalDomain.ADMINISTRATIVE_LAW: [
        ("قرار إداري", "décision administrative"), ("طعن", "recours"),
        ("مجلس الدولة", "conseil d'état"), ("إدارة", "administration"),
        ("خدمة عمومية", "service public"),
    ],
    LegalDomain.FAMILY_LAW: [
        ("زواج", "mariage"), ("طلاق", "divorce"), ("نفقة", "pension alimentaire"),
        ("حضانة", "garde"), ("ميراث", "succession"), ("وصية", "testament"),
    ],
    LegalDomain.PROCEDURAL_LAW: [
        ("دعوى", "action"), ("حكم", "jugement"), ("قرار", "arrêt"),
        ("استئناف", "appel"), ("نقض", "cassation"), ("تنفيذ", "exécution"),
        ("إجراءات", "procédure"),
    ],
}

DOMAIN_DESCRIPTIONS = {
    LegalDomain.CIVIL_LAW: "Droit civil",
    LegalDomain.CRIMINAL_LAW: "Droit pénal",
    LegalDomain.COMMERCIAL_LAW: "Droit commercial",
    LegalDomain.ADMINISTRATIVE_LAW: "Droit administratif",
    LegalDomain.FAMILY_LAW: "Droit de la famille",
    LegalDomain.PROCEDURAL_LAW: "Droit procédural",
}

COMPLEXITY_TEMPLATE_INDEX = {
    ComplexityLevel.SIMPLE: 0,
    ComplexityLevel.MODERATE: 1,
    ComplexityLevel.COMPLEX: 2,
    ComplexityLevel.EXPERT: 2,
}


class FallbackContentGenerator:
    """Generates domain templates when every translation tier has failed"""

    def __init__(self):
        # keyword (either language, lowercased) -> (arabic, french)
        self._concept_pairs: Dict[str, Tuple[str, str]] = {}
        for pairs in LEGAL_CONCEPT_KEYWORDS.values():
            for arabic, french in pairs:
                self._concept_pairs[arabic] = (arabic, french)
                self._concept_pairs[french.lower()] = (arabic, french)

        self._lock = threading.Lock()
        self._metrics = {
            "total_generated": 0,
            "by_language": {},
            "by_domain": {},
            "by_content_type": {},
            "by_method": {},
            "confidence_sum": 0.0,
        }

    # ------------------------------------------------------------------
    # Intent
    # ------------------------------------------------------------------

    def detect_intent(self, text: str) -> ContentIntent:
        """
        Detect the legal domain, concepts, complexity and audience of text.

        A domain takes over when its keyword score beats twice the current
        confidence; civil law is the default.
        """
        text = text or ""
        lowered = text.lower()
        concepts: List[str] = []
        domain = LegalDomain.CIVIL_LAW
        confidence = FALLBACK_BASE_CONFIDENCE

        for candidate, pairs in LEGAL_CONCEPT_KEYWORDS.items():
            score = 0
            for arabic, french in pairs:
                for keyword in (arabic, french):
                    if keyword.lower() in lowered:
                        concepts.append(keyword)
                        score += 1
            if score > confidence * 2:
                domain = candidate
                confidence = min(FALLBACK_MAX_CONFIDENCE, FALLBACK_BASE_CONFIDENCE + score * 0.1)

        return ContentIntent(
            category=domain,
            concepts=concepts,
            context={"jurisdiction": "Algérie", "law_type": DOMAIN_DESCRIPTIONS[domain]},
            complexity=self._complexity(text, len(concepts)),
            audience=self._audience(len(concepts)),
            confidence=confidence,
        )

    @staticmethod
    def _complexity(text: str, concept_count: int) -> ComplexityLevel:
        length = len(text)
        if length < 50 and concept_count <= 1:
            return ComplexityLevel.SIMPLE
        if length < 200 and concept_count <= 3:
            return ComplexityLevel.MODERATE
        if length < 500 and concept_count <= 5:
            return ComplexityLevel.COMPLEX
        return ComplexityLevel.EXPERT

    @staticmethod
    def _audience(concept_count: int) -> AudienceType:
        if concept_count == 0:
            return AudienceType.GENERAL_PUBLIC
        if concept_count <= 2:
            return AudienceType.LEGAL_PROFESSIONAL
        return AudienceType.LAWYER

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    def generate_fallback(self, original_text: str, target_language: Language,
                          failure_reason: str = "unknown",
                          intent: Optional[ContentIntent] = None,
                          content_type: Optional[ContentType] = None) -> FallbackContent:
        """
        Generate replacement content for a failed translation.

        Args:
            original_text: Source text that could not be translated
            target_language: Language of the content to produce
            failure_reason: Error code of the terminal failure
            intent: Pre-computed intent (detected locally when None)
            content_type: Kind of content requested, counted in the metrics

        Returns:
            FallbackContent with content, confidence and alternatives
        """
        target_language = Language(target_language)
        original_text = original_text or ""
        if intent is None:
            intent = self.detect_intent(original_text)

        templates = TEMPLATES[target_language].get(intent.category)
        if not templates:
            content = GENERIC_TEMPLATES[target_language]
            alternatives = []
        else:
            index = min(COMPLEXITY_TEMPLATE_INDEX[intent.complexity], len(templates) - 1)
            content = self._enhance(templates[index], intent, target_language)
            alternatives = [t + "." for i, t in enumerate(templates) if i != index]

        method = FallbackMethod.CONTEXT_GENERATED if self._concept(intent, target_language) \
            else FallbackMethod.TEMPLATE_BASED
        confidence = self._confidence(intent, original_text)

        fallback = FallbackContent(
            content=content,
            confidence=confidence,
            method=method,
            context={
                "domain": intent.category.value,
                "complexity": intent.complexity.value,
                "audience": intent.audience.value,
                "concepts": list(intent.concepts),
                "failure_reason": failure_reason,
                "original_length": len(original_text),
            },
            alternatives=alternatives,
        )
        self._record(fallback, target_language, intent.category, content_type)
        logger.info(
            f"Generated {method.value} fallback ({intent.category.value}, "
            f"{target_language.value}) after {failure_reason}, confidence {confidence}"
        )
        return fallback

    def _concept(self, intent: ContentIntent, language: Language) -> Optional[str]:
        """First detected concept rendered in the given language"""
        for concept in intent.concepts:
            pair = self._concept_pairs.get(concept) or self._concept_pairs.get(concept.lower())
            if pair:
                return pair[0] if language == Language.ARABIC else pair[1]
        return None

    def _enhance(self, template: str, intent: ContentIntent, language: Language) -> str:
        concept = self._concept(intent, language)
        if concept is None:
            return template + "."
        if language == Language.ARABIC:
            return f"{template}، ويتعلق بشكل خاص بـ{concept}."
        return f"{template}, et concerne en particulier la notion de {concept}."

    @staticmethod
    def _confidence(intent: ContentIntent, original_text: str) -> float:
        confidence = intent.confidence
        if len(original_text) < FALLBACK_SHORT_TEXT_LENGTH:
            confidence -= 0.2
        if not intent.concepts:
            confidence -= 0.1
        else:
            confidence += min(0.2, len(intent.concepts) * 0.05)
        return round(max(FALLBACK_MIN_CONFIDENCE, min(FALLBACK_MAX_CONFIDENCE, confidence)), 3)

    def _record(self, fallback: FallbackContent, language: Language, domain: LegalDomain,
                content_type: Optional[ContentType]):
        with self._lock:
            m = self._metrics
            m["total_generated"] += 1
            m["by_language"][language.value] = m["by_language"].get(language.value, 0) + 1
            m["by_domain"][domain.value] = m["by_domain"].get(domain.value, 0) + 1
            kind = ContentType(content_type).value if content_type else "unspecified"
            m["by_content_type"][kind] = m["by_content_type"].get(kind, 0) + 1
            method = fallback.method.value
            m["by_method"][method] = m["by_method"].get(method, 0) + 1
            m["confidence_sum"] += fallback.confidence

    def get_metrics(self) -> Dict:
        """Generation totals and average confidence"""
        with self._lock:
            m = self._metrics
            total = m["total_generated"]
            return {
                "total_generated": total,
                "by_language": dict(m["by_language"]),
                "by_domain": dict(m["by_domain"]),
                "by_content_type": dict(m["by_content_type"]),
                "by_method": dict(m["by_method"]),
                "average_confidence": round(m["confidence_sum"] / total, 3) if total else 0.0,
            }
