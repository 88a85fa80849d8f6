#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Error hierarchy for the pure translation core.

Only InputError subclasses are allowed to reach callers of the pipeline.
Every other error is raised inside the recovery state machine, recorded,
and answered with a lower tier of content.
"""

from typing import Optional

from core.models import Severity


class PureTranslationError(Exception):
    """Base error for the pure translation core"""
    code = "pure_translation_error"
    severity = Severity.MEDIUM

    def __init__(self, message: str, severity: Optional[Severity] = None):
        super().__init__(message)
        self.message = message
        if severity is not None:
            self.severity = severity


# ============================================================================
# Input errors (surfaced to the caller)
# ============================================================================

class InputError(PureTranslationError):
    """Request rejected before any translation attempt"""
    code = "invalid_input"
    severity = Severity.LOW


class EmptyTextError(InputError):
    """Request text is empty or whitespace only"""
    code = "empty_text"

    def __init__(self):
        super().__init__("Translation text must not be empty")


class SameLanguageError(InputError):
    """Source and target language are identical"""
    code = "same_language"

    def __init__(self, language: str):
        self.language = language
        super().__init__(f"Source and target language are both '{language}'")


class UnsupportedLanguageError(InputError):
    """Language code outside the supported set"""
    code = "unsupported_language"

    def __init__(self, language: str):
        self.language = language
        super().__init__(f"Unsupported language: {language!r}")


# ============================================================================
# Recoverable errors (absorbed by the recovery pipeline)
# ============================================================================

class TranslationMethodFailure(PureTranslationError):
    """A translation engine method raised or timed out"""

    def __init__(self, method: str, cause: Optional[BaseException] = None, timed_out: bool = False):
        self.method = method
        self.cause = cause
        self.timed_out = timed_out
        if timed_out:
            self.code = "translation_timeout"
            message = f"{method} translation timed out"
        else:
            self.code = f"{method}_translation_failed"
            message = f"{method} translation failed: {cause}"
        severity = Severity.LOW if method == "primary" else Severity.MEDIUM
        super().__init__(message, severity)


class PurityValidationFailure(PureTranslationError):
    """Translated text did not pass the purity policy"""
    code = "purity_validation_failed"

    def __init__(self, verdict, stage: str):
        self.verdict = verdict
        self.stage = stage
        score = verdict.purity_score.overall
        super().__init__(f"{stage} output failed purity validation (score {score})")


class FallbackGenerationFailure(PureTranslationError):
    """Generated fallback content could not be produced or validated"""
    code = "fallback_generation_failed"
    severity = Severity.HIGH


class CleaningRegressionError(PureTranslationError):
    """A previously reported contamination survived cleaning"""
    code = "cleaning_regression"
    severity = Severity.HIGH

    def __init__(self, report):
        self.report = report
        remaining = ", ".join(report.remaining_regressions)
        super().__init__(f"Cleaning left reported patterns in output: {remaining}")


class SystemResourceError(PureTranslationError):
    """Persistent degradation of the translation system"""
    code = "system_resource_error"
    severity = Severity.CRITICAL


class RuleConfigurationError(PureTranslationError):
    """Invalid cleaning rule or rule snapshot"""
    code = "rule_configuration_error"
