"""
Unit tests for core/cleaner.py - SpecializedPatternCleaner component
"""
import pytest

from core.cleaner import SpecializedPatternCleaner
from core.models import CleaningRule, PatternType, RuleAction, Severity
from core.rules import REGRESSION_PATTERNS, PatternRuleRegistry


class TestUiContamination:
    """Test removal of UI artifacts from Arabic legal text."""

    def test_concatenated_ui_string(self, cleaner, sample_texts):
        """Legal words survive, UI tokens go."""
        report = cleaner.clean(sample_texts["ui_concatenated"])

        for word in ("محامي", "تحليل", "ملفات"):
            assert word in report.cleaned_text
        for token in ("Pro", "V2", "AUTO-TRANSLATE"):
            assert token not in report.cleaned_text
        assert report.is_safe
        assert report.changed

    def test_unspaced_reported_banner(self, cleaner):
        report = cleaner.clean("محامي دي زادمتصلمحاميProتحليلملفاتV2AUTO-TRANSLATE")

        for word in ("محامي", "تحليل", "ملفات"):
            assert word in report.cleaned_text
        for token in ("Pro", "V2", "AUTO-TRANSLATE"):
            assert token not in report.cleaned_text
        assert "user_reported_complete_1" in [r.rule_id for r in report.applied_rules]
        assert report.is_safe

    def test_glued_ui_tokens(self, cleaner, sample_texts):
        report = cleaner.clean(sample_texts["ui_glued"])
        assert report.cleaned_text == "محامي"

    def test_cyrillic_fragment(self, cleaner, sample_texts):
        report = cleaner.clean(sample_texts["cyrillic"])
        assert "процедة" not in report.cleaned_text
        assert "قانون" in report.cleaned_text
        assert "الإجراءات" in report.cleaned_text

    def test_placeholder_leak(self, cleaner):
        report = cleaner.clean("عقد البيع [object Object] بين الطرفين")
        assert "[object Object]" not in report.cleaned_text
        assert report.cleaned_text == "عقد البيع بين الطرفين"

    def test_encoding_corruption(self, cleaner):
        report = cleaner.clean("عقد� البيع")
        assert "�" not in report.cleaned_text

    def test_user_reported_rules_counted(self, cleaner, sample_texts):
        report = cleaner.clean(sample_texts["ui_concatenated"])
        assert report.user_reported_patterns >= 1
        assert "user_reported_complete_1" in [r.rule_id for r in report.applied_rules]


class TestCleanText:
    """Test that clean text is left alone."""

    def test_clean_arabic_unchanged(self, cleaner, sample_texts):
        report = cleaner.clean(sample_texts["clean_ar"])
        assert report.cleaned_text == sample_texts["clean_ar"]
        assert report.applied_rules == []
        assert report.confidence == 1.0
        assert not report.changed

    def test_clean_french_unchanged(self, cleaner, sample_texts):
        report = cleaner.clean(sample_texts["clean_fr"])
        assert report.cleaned_text == sample_texts["clean_fr"]

    def test_french_words_starting_with_pro(self, cleaner):
        text = "La procédure et le produit sont protégés."
        assert cleaner.clean(text).cleaned_text == text

    def test_empty_text(self, cleaner):
        report = cleaner.clean("")
        assert report.cleaned_text == ""
        assert report.is_safe


class TestIdempotence:
    """Cleaning twice gives the same text as cleaning once."""

    @pytest.mark.parametrize("key", ["ui_concatenated", "ui_glued", "cyrillic", "clean_ar", "clean_fr"])
    def test_clean_is_idempotent(self, cleaner, sample_texts, key):
        once = cleaner.clean(sample_texts[key]).cleaned_text
        twice = cleaner.clean(once)
        assert twice.cleaned_text == once
        assert twice.applied_rules == []


class TestRegressionSet:
    """Reported strings must never come back."""

    @pytest.mark.parametrize("pattern", REGRESSION_PATTERNS)
    def test_reported_pattern_is_cleaned(self, cleaner, pattern):
        report = cleaner.clean(pattern)
        assert report.is_safe, report.remaining_regressions
        assert pattern not in report.cleaned_text

    def test_validate_regressions_passes(self, cleaner):
        assert cleaner.validate_regressions() == {}

    def test_uncleaned_regression_is_unsafe(self, registry, cleaner):
        registry.add_regression_pattern("نص مرفوض")
        report = cleaner.clean("هذا نص مرفوض")
        assert not report.is_safe
        assert report.remaining_regressions == ["نص مرفوض"]
        assert cleaner.validate_regressions() == {"نص مرفوض": ["نص مرفوض"]}

    def test_regression_inside_longer_word_is_safe(self, registry, cleaner):
        registry.add_regression_pattern("Beta")
        assert cleaner.clean("نظام Betamax").is_safe
        assert cleaner.clean("نظام Beta").remaining_regressions == ["Beta"]

    def test_regression_fixed_by_rule(self, registry, cleaner):
        registry.add_regression_pattern("نص مرفوض")
        registry.add_rule(CleaningRule(
            id="rejected_phrase",
            name="Rejected phrase",
            pattern=r"نص مرفوض",
            pattern_type=PatternType.USER_REPORTED,
            action=RuleAction.REMOVE,
            user_reported=True,
        ))
        assert cleaner.clean("هذا نص مرفوض").is_safe


class TestRuleActions:
    """Test flag and replace rules."""

    def test_flag_rule_does_not_change_text(self):
        registry = PatternRuleRegistry(rules=[CleaningRule(
            id="flag_article",
            name="Flag article numbers",
            pattern=r"\d+",
            pattern_type=PatternType.CROSS_SCRIPT,
            severity=Severity.LOW,
            action=RuleAction.FLAG,
        )], regression_patterns=[])
        report = SpecializedPatternCleaner(registry).clean("المادة 12 من القانون")
        assert report.cleaned_text == "المادة 12 من القانون"
        assert [r.rule_id for r in report.flagged_rules] == ["flag_article"]
        assert report.applied_rules == []

    def test_max_passes_bounds_cleaning(self):
        registry = PatternRuleRegistry(rules=[CleaningRule(
            id="shrink",
            name="Remove one x",
            pattern=r"x",
            pattern_type=PatternType.UI_ELEMENT,
            action=RuleAction.REPLACE,
            replacement="",
        )], regression_patterns=[])
        report = SpecializedPatternCleaner(registry, max_passes=1).clean("axxb")
        assert report.passes == 1
        assert report.cleaned_text == "ab"


class TestConfidence:
    """Test cleaning confidence."""

    def test_confidence_drops_with_cleaning(self, cleaner, sample_texts):
        report = cleaner.clean(sample_texts["ui_concatenated"])
        assert 0.1 <= report.confidence < 1.0

    def test_heavy_removal_costs_more(self, cleaner):
        light = cleaner.clean("عقد البيع بين الطرفين المتعاقدين وفق القانون Pro")
        heavy = cleaner.clean("Pro V2 AUTO-TRANSLATE عقد")
        assert heavy.confidence < light.confidence


class TestStatistics:
    """Test cleaner statistics."""

    def test_statistics_count_cleanings(self, cleaner, sample_texts):
        cleaner.clean(sample_texts["ui_concatenated"])
        cleaner.clean(sample_texts["clean_ar"])

        stats = cleaner.get_statistics()
        assert stats["total_cleanings"] == 2
        assert stats["texts_changed"] == 1
        assert stats["rule_hits"]["user_reported_complete_1"] == 1
