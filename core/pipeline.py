#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
PureTranslationPipeline - public entry point of the purity core

Wires the cleaner, validator, recovery machine, escalation and fallback
logging together. Only InputError escapes translate(); every other
failure ends in pure fallback or emergency content.
"""

import asyncio
import threading
import time
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from tqdm import tqdm

from config.logging_config import get_logger
from config.settings import Settings, get_settings
from core.cleaner import SpecializedPatternCleaner
from core.emergency import EmergencyContentGenerator
from core.errors import InputError, RuleConfigurationError
from core.escalation import ErrorEscalationSystem
from core.fallback import FallbackContentGenerator
from core.fallback_logging import FallbackLoggingSystem
from core.health_monitor import HealthMonitor
from core.models import (
    CleaningReport,
    CleaningRule,
    ContaminationIssue,
    Language,
    PatternType,
    PureTranslationResult,
    PurityVerdict,
    RuleAction,
    Severity,
    TranslationRequest,
)
from core.purity import PurityPolicy, PurityValidator
from core.recovery import ErrorRecoverySystem
from core.rules import PatternRuleRegistry, bounded_literal, get_rule_registry
from core.terminology import LegalTerminologyStore, TerminologyAdapter
from engines.base import TranslationEngine

logger = get_logger(__name__)


class PureTranslationPipeline:
    """Translation facade that only ever returns pure text"""

    def __init__(
        self,
        engine: TranslationEngine,
        registry: Optional[PatternRuleRegistry] = None,
        terminology: Optional[TerminologyAdapter] = None,
        validator: Optional[PurityValidator] = None,
        escalation: Optional[ErrorEscalationSystem] = None,
        fallback_logging: Optional[FallbackLoggingSystem] = None,
        monitor: Optional[HealthMonitor] = None,
        emergency_generator: Optional[EmergencyContentGenerator] = None,
        settings: Optional[Settings] = None,
    ):
        """
        Initialize pipeline.

        Args:
            engine: Primary/secondary translation engine
            registry: Cleaning rules (process-wide registry by default)
            terminology: Legal terminology adapter
            validator: Purity validator (built from settings by default)
            escalation: Escalation system (built from settings by default)
            fallback_logging: Fallback log store (built from settings by default)
            monitor: Health monitor
            emergency_generator: Pre-validated emergency pool
            settings: Configuration (get_settings() by default)
        """
        self.settings = settings or get_settings()
        self.engine = engine
        self.registry = registry or get_rule_registry()
        self.terminology = terminology or LegalTerminologyStore(
            terminology_file=self.settings.terminology_file
        )
        self.cleaner = SpecializedPatternCleaner(self.registry)
        self.validator = validator or PurityValidator(
            PurityPolicy.from_settings(self.settings), self.terminology
        )
        self.escalation = escalation or ErrorEscalationSystem.from_settings(self.settings)
        self.fallback_logging = fallback_logging or FallbackLoggingSystem.from_settings(self.settings)
        self.monitor = monitor or HealthMonitor()

        self.recovery = ErrorRecoverySystem(
            engine=engine,
            cleaner=self.cleaner,
            validator=self.validator,
            terminology=self.terminology,
            fallback_generator=FallbackContentGenerator(),
            emergency_generator=emergency_generator or EmergencyContentGenerator(validator=self.validator),
            escalation=self.escalation,
            fallback_logging=self.fallback_logging,
            monitor=self.monitor,
            processing_timeout=self.settings.processing_timeout,
            minimum_confidence=self.settings.minimum_confidence,
            terminology_accuracy_threshold=self.settings.terminology_accuracy_threshold,
        )

        self._issues_lock = threading.Lock()
        self._issues: Dict[str, ContaminationIssue] = {}

        logger.info(
            f"Pipeline ready: {len(self.registry.enabled_rules())} cleaning rules, "
            f"zero tolerance {'on' if self.validator.policy.zero_tolerance else 'off'}"
        )

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "PureTranslationPipeline":
        """Pipeline over the configured HTTP engine"""
        from engines.http_engine import HttpTranslationEngine

        settings = settings or get_settings()
        return cls(engine=HttpTranslationEngine.from_settings(settings), settings=settings)

    # ==================================================================
    # Translation
    # ==================================================================

    async def translate(self, request: TranslationRequest) -> PureTranslationResult:
        """
        Translate one request.

        Raises:
            InputError: empty text, same or unsupported language
        """
        request.validate()
        return await self._translate_validated(request)

    async def _translate_validated(self, request: TranslationRequest) -> PureTranslationResult:
        try:
            return await self.recovery.process(request)
        except InputError:
            raise
        except Exception as e:
            logger.exception(f"[{request.request_id}] Unexpected pipeline failure, serving emergency content")
            return self.recovery.emergency_result(request, e)

    async def translate_batch(self, requests: List[TranslationRequest],
                              show_progress: bool = False) -> List[PureTranslationResult]:
        """
        Translate many requests concurrently.

        Every request is validated before any work starts. Results keep
        request order.
        """
        for request in requests:
            request.validate()
        if not requests:
            return []

        semaphore = asyncio.Semaphore(self.settings.concurrent_request_limit)
        progress_bar = tqdm(total=len(requests), desc="Translating", unit="req") if show_progress else None

        async def run(request: TranslationRequest) -> PureTranslationResult:
            async with semaphore:
                result = await self._translate_validated(request)
            if progress_bar:
                progress_bar.update(1)
            return result

        start_time = time.time()
        try:
            results = await asyncio.gather(*(run(request) for request in requests))
        finally:
            if progress_bar:
                progress_bar.close()

        fallbacks = sum(1 for r in results if r.metadata and r.metadata.fallback_used)
        logger.info(
            f"Batch of {len(requests)} done in {time.time() - start_time:.2f}s "
            f"({fallbacks} served by fallback tiers)"
        )
        return list(results)

    # ==================================================================
    # User-reported contamination
    # ==================================================================

    def report_issue(self, issue: Union[ContaminationIssue, str]) -> str:
        """Queue reported contamination for curation; rules are not touched"""
        if isinstance(issue, str):
            issue = ContaminationIssue(text=issue)
        if not issue.text or not issue.text.strip():
            raise ValueError("Reported issue must contain the contaminated text")

        with self._issues_lock:
            self._issues[issue.id] = issue
            pending = len(self._issues)
        logger.info(f"Issue {issue.id} reported: {issue.text!r} ({pending} pending)")
        return issue.id

    def pending_issues(self) -> List[ContaminationIssue]:
        with self._issues_lock:
            return list(self._issues.values())

    def curate_issue(self, issue_id: str, rule: Optional[CleaningRule] = None) -> CleaningRule:
        """
        Turn a reported issue into a user-reported rule and a regression pattern.

        Args:
            issue_id: Id returned by report_issue
            rule: Rule to register; when omitted, a removal rule for the
                reported text as whole words of its script

        Returns:
            The registered rule
        """
        with self._issues_lock:
            issue = self._issues.get(issue_id)
        if issue is None:
            raise RuleConfigurationError(f"Unknown issue '{issue_id}'")

        if rule is None:
            rule = CleaningRule(
                id=f"user_{issue.id}",
                name=f"User report {issue.id}",
                pattern=bounded_literal(issue.text.strip()),
                pattern_type=PatternType.USER_REPORTED,
                severity=Severity.HIGH,
                action=RuleAction.REMOVE,
                priority=1,
                user_reported=True,
                description=issue.description,
            )
        elif not rule.user_reported:
            rule.user_reported = True

        self.registry.add_rule(rule)
        self.registry.add_regression_pattern(issue.text.strip())

        with self._issues_lock:
            self._issues.pop(issue_id, None)
        logger.info(f"Issue {issue_id} curated into rule '{rule.id}'")
        return rule

    # ==================================================================
    # Pass-throughs
    # ==================================================================

    def clean_text(self, text: str) -> CleaningReport:
        return self.cleaner.clean(text)

    def validate_text(self, text: str, language: Union[Language, str]) -> PurityVerdict:
        return self.validator.validate(text, Language(language))

    # ==================================================================
    # Health & statistics
    # ==================================================================

    def get_system_health(self) -> Dict[str, Any]:
        availability = self.recovery.component_availability()
        health = self.monitor.check_health(
            self.recovery.success_rate(), self.recovery.error_rate(), availability
        )
        return {
            "status": health.status,
            "component_availability": availability,
            "metrics": {
                "recovery": self.recovery.get_statistics(),
                "cleaning": self.cleaner.get_statistics(),
                "fallback_generation": self.recovery.fallback_generator.get_metrics(),
                "emergency_content": self.recovery.emergency_generator.get_metrics(),
                "system": health.components["system"],
                "uptime_seconds": health.uptime_seconds,
            },
            "last_check": datetime.now().isoformat(),
        }

    def get_recovery_statistics(self) -> Dict[str, Any]:
        return self.recovery.get_statistics()

    def get_fallback_analytics(self, start: Optional[float] = None,
                               end: Optional[float] = None) -> Dict[str, Any]:
        analytics = self.fallback_logging.generate_fallback_analytics(start, end)
        analytics["generators"] = {
            "fallback": self.recovery.fallback_generator.get_metrics(),
            "emergency": self.recovery.emergency_generator.get_metrics(),
        }
        return analytics

    def get_escalation_metrics(self) -> Dict[str, Any]:
        return self.escalation.get_metrics()
