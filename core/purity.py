#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
PurityValidator - zero-tolerance purity scoring for translated legal text

Five independent sub-scores (0-100) are combined with fixed weights:
    - script_purity:            share of letters in the target script
    - terminology_consistency:  legal terms of the other language left untranslated
    - encoding_integrity:       replacement characters, NUL and control bytes
    - contextual_coherence:     mixed-script sandwiches and structural noise
    - ui_elements_removed:      product/UI tokens leaking into prose

Validation is deterministic: same text and same terminology give the same verdict.
"""

import re
import unicodedata
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from config.constants import (
    DEFAULT_PURITY_WEIGHTS,
    PURITY_MAX_SCORE,
    SCRIPT_MIXED_TARGET_THRESHOLD,
    SCRIPT_MIXED_FOREIGN_THRESHOLD,
    TERMINOLOGY_PENALTY_PER_TERM,
    UI_TOKEN_PENALTY,
)
from config.logging_config import get_logger
from core.models import Language, PurityScore, PurityVerdict, Severity, Violation
from core.terminology import TerminologyAdapter

logger = get_logger(__name__)


# ============================================================================
# Script ranges
# ============================================================================

ARABIC_RANGES = [
    (0x0600, 0x06FF), (0x0750, 0x077F), (0x08A0, 0x08FF),
    (0xFB50, 0xFDFF), (0xFE70, 0xFEFF),
]
LATIN_RANGES = [
    (0x0041, 0x005A), (0x0061, 0x007A), (0x00C0, 0x00FF),
    (0x0100, 0x017F), (0x0180, 0x024F),
]
CYRILLIC_RANGES = [
    (0x0400, 0x04FF), (0x0500, 0x052F), (0x2DE0, 0x2DFF), (0xA640, 0xA69F),
]

SCRIPT_RANGES = {
    Language.ARABIC: ARABIC_RANGES,
    Language.FRENCH: LATIN_RANGES,
}

UI_TOKEN_REGEX = re.compile(
    r"\[object Object\]|AUTO-TRANSLATE|JuristDZ"
    r"|(?<![A-Za-z])(?:undefined|null|NaN|Defined)(?![A-Za-z])"
    r"|(?<![A-Za-z])Pro(?![a-z])"
    r"|(?<![A-Za-z0-9])V2(?![0-9])"
)

_ARABIC_WORD = r"[؀-ۿ]+"
_LATIN_WORD = r"[A-Za-zÀ-ɏ]+"
SANDWICH_REGEX = {
    Language.ARABIC: re.compile(rf"{_ARABIC_WORD}\s+{_LATIN_WORD}\s+{_ARABIC_WORD}"),
    Language.FRENCH: re.compile(rf"{_LATIN_WORD}\s+{_ARABIC_WORD}\s+{_LATIN_WORD}"),
}

# Tokens made of these characters (and nothing alphanumeric) are layout noise
STRUCTURAL_CHARS = set("#*|<>{}[]=_~^`\\@$%")


def _in_ranges(ch: str, ranges: List[Tuple[int, int]]) -> bool:
    code = ord(ch)
    return any(start <= code <= end for start, end in ranges)


def _is_letter(ch: str) -> bool:
    return unicodedata.category(ch)[0] in ("L", "M")


def _first_run(text: str, predicate) -> str:
    """First maximal run of characters matching predicate"""
    run = []
    for ch in text:
        if predicate(ch):
            run.append(ch)
        elif run:
            break
    return "".join(run)


# ============================================================================
# Policy
# ============================================================================

@dataclass(frozen=True)
class PurityPolicy:
    """Immutable purity configuration handed to the validator"""
    zero_tolerance: bool = True
    minimum_purity_score: float = PURITY_MAX_SCORE
    weights: Dict[str, float] = field(default_factory=lambda: dict(DEFAULT_PURITY_WEIGHTS))

    def __post_init__(self):
        if set(self.weights) != set(DEFAULT_PURITY_WEIGHTS):
            raise ValueError(f"Purity weights must cover exactly: {sorted(DEFAULT_PURITY_WEIGHTS)}")
        if abs(sum(self.weights.values()) - 1.0) > 1e-6:
            raise ValueError(f"Purity weights must sum to 1, got {sum(self.weights.values())}")

    @property
    def threshold(self) -> float:
        """Per-axis score below which a violation is reported"""
        return PURITY_MAX_SCORE if self.zero_tolerance else self.minimum_purity_score

    @classmethod
    def from_settings(cls, settings) -> "PurityPolicy":
        return cls(
            zero_tolerance=settings.zero_tolerance_enabled,
            minimum_purity_score=settings.minimum_purity_score,
            weights=settings.purity_weights(),
        )


# Violation metadata per axis: (type, severity, suggested fix, confidence)
AXIS_VIOLATIONS = {
    "script_purity": (
        "script_contamination", Severity.HIGH,
        "Re-run specialized cleaning, then route to the secondary translation", 0.95,
    ),
    "terminology_consistency": (
        "terminology_inconsistency", Severity.MEDIUM,
        "Translate the remaining legal terms with the terminology dictionary", 0.85,
    ),
    "encoding_integrity": (
        "encoding_corruption", Severity.CRITICAL,
        "Strip corrupted characters and re-request the translation", 1.0,
    ),
    "contextual_coherence": (
        "incoherent_content", Severity.MEDIUM,
        "Route to fallback content generation", 0.8,
    ),
    "ui_elements_removed": (
        "ui_contamination", Severity.HIGH,
        "Re-run specialized cleaning to remove UI artifacts", 0.95,
    ),
}


class PurityValidator:
    """Scores text purity and renders a zero-tolerance verdict"""

    def __init__(self, policy: Optional[PurityPolicy] = None,
                 terminology: Optional[TerminologyAdapter] = None):
        self.policy = policy or PurityPolicy()
        self.terminology = terminology
        self._term_regex_cache: Dict[Tuple[str, str], re.Pattern] = {}

    def validate(self, text: str, target_language: Language) -> PurityVerdict:
        """
        Validate purity of text written in target_language.

        Args:
            text: Text to check
            target_language: Expected output language

        Returns:
            PurityVerdict with sub-scores, violations and recommendations
        """
        target_language = Language(target_language)
        text = unicodedata.normalize("NFC", text or "")

        axes = {
            "script_purity": self._script_purity(text, target_language),
            "terminology_consistency": self._terminology_consistency(text, target_language),
            "encoding_integrity": self._encoding_integrity(text),
            "contextual_coherence": self._contextual_coherence(text, target_language),
            "ui_elements_removed": self._ui_elements(text),
        }

        overall = round(sum(
            self.policy.weights[name] * score for name, (score, _) in axes.items()
        ), 2)
        purity_score = PurityScore(
            overall=overall,
            **{name: score for name, (score, _) in axes.items()}
        )

        violations = []
        recommendations = []
        for name, (score, span) in axes.items():
            if score >= self.policy.threshold:
                continue
            violation_type, severity, fix, confidence = AXIS_VIOLATIONS[name]
            if score == 0 and severity != Severity.CRITICAL:
                severity = severity.escalate()
            violations.append(Violation(
                type=violation_type,
                text=span,
                severity=severity,
                suggested_fix=fix,
                confidence=confidence,
            ))
            if fix not in recommendations:
                recommendations.append(fix)

        if self.policy.zero_tolerance:
            is_pure = overall >= PURITY_MAX_SCORE
        else:
            is_pure = overall >= self.policy.minimum_purity_score

        return PurityVerdict(
            is_pure=is_pure,
            passes_zero_tolerance=overall >= PURITY_MAX_SCORE and not violations,
            purity_score=purity_score,
            violations=violations,
            recommendations=recommendations,
        )

    # ------------------------------------------------------------------
    # Sub-scores: each returns (score, first offending span)
    # ------------------------------------------------------------------

    def _script_purity(self, text: str, target: Language) -> Tuple[float, str]:
        target_ranges = SCRIPT_RANGES[target]
        total = 0
        in_target = 0

        for ch in text:
            if not _is_letter(ch):
                continue
            if _in_ranges(ch, CYRILLIC_RANGES):
                return 0.0, _first_run(text, lambda c: _in_ranges(c, CYRILLIC_RANGES))
            total += 1
            if _in_ranges(ch, target_ranges):
                in_target += 1

        if total == 0 or in_target == total:
            return PURITY_MAX_SCORE, ""

        span = _first_run(text, lambda c: _is_letter(c) and not _in_ranges(c, target_ranges))
        target_pct = in_target / total * 100
        if target_pct < SCRIPT_MIXED_TARGET_THRESHOLD and (100 - target_pct) > SCRIPT_MIXED_FOREIGN_THRESHOLD:
            return 0.0, span
        return round(target_pct, 2), span

    def _term_regex(self, term: str, language: Language) -> re.Pattern:
        key = (term, language.value)
        if key not in self._term_regex_cache:
            if language == Language.FRENCH:
                pattern = re.compile(r"(?<![\w])" + re.escape(term) + r"(?![\w])", re.IGNORECASE)
            else:
                pattern = re.compile(re.escape(term))
            self._term_regex_cache[key] = pattern
        return self._term_regex_cache[key]

    def _terminology_consistency(self, text: str, target: Language) -> Tuple[float, str]:
        if self.terminology is None or not text:
            return PURITY_MAX_SCORE, ""

        other = Language.FRENCH if target == Language.ARABIC else Language.ARABIC
        found = [
            term for term in self.terminology.known_terms(other)
            if self._term_regex(term, other).search(text)
        ]
        if not found:
            return PURITY_MAX_SCORE, ""
        score = max(0.0, PURITY_MAX_SCORE - TERMINOLOGY_PENALTY_PER_TERM * len(found))
        return score, found[0]

    @staticmethod
    def _encoding_integrity(text: str) -> Tuple[float, str]:
        for ch in text:
            if ch == "�" or (unicodedata.category(ch) == "Cc" and ch not in "\t\n\r"):
                return 0.0, repr(ch)
        return PURITY_MAX_SCORE, ""

    @staticmethod
    def _contextual_coherence(text: str, target: Language) -> Tuple[float, str]:
        match = SANDWICH_REGEX[target].search(text)
        if match:
            return 0.0, match.group(0)

        tokens = text.split()
        if not tokens:
            return PURITY_MAX_SCORE, ""
        noise = [
            token for token in tokens
            if not any(ch.isalnum() for ch in token) and any(ch in STRUCTURAL_CHARS for ch in token)
        ]
        if not noise:
            return PURITY_MAX_SCORE, ""
        return round(PURITY_MAX_SCORE * (1 - len(noise) / len(tokens)), 2), noise[0]

    @staticmethod
    def _ui_elements(text: str) -> Tuple[float, str]:
        matches = UI_TOKEN_REGEX.findall(text)
        if not matches:
            return PURITY_MAX_SCORE, ""
        return max(0.0, PURITY_MAX_SCORE - UI_TOKEN_PENALTY * len(matches)), matches[0]
