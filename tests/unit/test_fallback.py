"""
Unit tests for core/fallback.py - FallbackContentGenerator
"""
import pytest

from config.constants import FALLBACK_MAX_CONFIDENCE, FALLBACK_MIN_CONFIDENCE
from core.fallback import FallbackContentGenerator
from core.models import (
    AudienceType,
    ComplexityLevel,
    ContentIntent,
    ContentType,
    FallbackMethod,
    Language,
    LegalDomain,
)

CRIMINAL_TEXT = "المتهم ارتكب جنحة وحكم عليه بعقوبة"


@pytest.fixture
def generator():
    return FallbackContentGenerator()


class TestDetectIntent:

    def test_default_domain_is_civil(self, generator):
        intent = generator.detect_intent("Bonjour")
        assert intent.category == LegalDomain.CIVIL_LAW
        assert intent.concepts == []
        assert intent.audience == AudienceType.GENERAL_PUBLIC
        assert intent.complexity == ComplexityLevel.SIMPLE

    def test_criminal_domain(self, generator):
        intent = generator.detect_intent(CRIMINAL_TEXT)
        assert intent.category == LegalDomain.CRIMINAL_LAW
        assert "جنحة" in intent.concepts
        assert intent.audience == AudienceType.LAWYER
        assert intent.confidence > 0.5

    def test_french_keywords(self, generator):
        intent = generator.detect_intent("Le divorce et la pension alimentaire après le mariage")
        assert intent.category == LegalDomain.FAMILY_LAW

    def test_empty_text(self, generator):
        assert generator.detect_intent("").category == LegalDomain.CIVIL_LAW


class TestGenerateFallback:

    def test_domain_template_with_concept(self, generator, validator):
        fallback = generator.generate_fallback(CRIMINAL_TEXT, Language.FRENCH, "secondary_translation_failed")

        assert fallback.method == FallbackMethod.CONTEXT_GENERATED
        assert fallback.context["domain"] == "criminal_law"
        assert fallback.context["failure_reason"] == "secondary_translation_failed"
        assert "délit" in fallback.content
        assert len(fallback.alternatives) == 2
        assert validator.validate(fallback.content, Language.FRENCH).is_pure

    def test_arabic_output(self, generator, validator, sample_texts):
        fallback = generator.generate_fallback(sample_texts["clean_ar"], Language.ARABIC)
        assert "عقد" in fallback.content
        assert validator.validate(fallback.content, Language.ARABIC).is_pure

    def test_no_concept_uses_plain_template(self, generator):
        fallback = generator.generate_fallback("Bonjour", Language.FRENCH)
        assert fallback.method == FallbackMethod.TEMPLATE_BASED
        assert fallback.content.endswith(".")
        assert fallback.confidence == FALLBACK_MIN_CONFIDENCE

    def test_confidence_bounds(self, generator):
        fallback = generator.generate_fallback(CRIMINAL_TEXT, Language.FRENCH)
        assert FALLBACK_MIN_CONFIDENCE <= fallback.confidence <= FALLBACK_MAX_CONFIDENCE

    def test_given_intent_is_used(self, generator):
        intent = ContentIntent(category=LegalDomain.COMMERCIAL_LAW)
        fallback = generator.generate_fallback("texte", Language.FRENCH, intent=intent)
        assert fallback.context["domain"] == "commercial_law"
        assert "commerce" in fallback.content

    @pytest.mark.parametrize("domain", list(LegalDomain))
    @pytest.mark.parametrize("language", list(Language))
    def test_every_template_is_pure(self, generator, validator, domain, language):
        fallback = generator.generate_fallback("", language, intent=ContentIntent(category=domain))
        texts = [fallback.content] + fallback.alternatives
        for text in texts:
            assert validator.validate(text, language).is_pure, text


class TestMetrics:

    def test_metrics(self, generator, sample_texts):
        generator.generate_fallback(sample_texts["clean_ar"], Language.FRENCH)
        generator.generate_fallback(CRIMINAL_TEXT, Language.ARABIC)

        metrics = generator.get_metrics()
        assert metrics["total_generated"] == 2
        assert metrics["by_language"] == {"fr": 1, "ar": 1}
        assert metrics["by_domain"]["criminal_law"] == 1
        assert metrics["average_confidence"] > 0

    def test_metrics_by_content_type(self, generator, sample_texts):
        generator.generate_fallback(sample_texts["clean_ar"], Language.FRENCH,
                                    content_type=ContentType.LEGAL_FORM)
        generator.generate_fallback(sample_texts["clean_ar"], Language.FRENCH,
                                    content_type=ContentType.LEGAL_FORM)
        generator.generate_fallback(CRIMINAL_TEXT, Language.ARABIC)

        assert generator.get_metrics()["by_content_type"] == {"legal_form": 2, "unspecified": 1}
