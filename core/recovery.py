#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
ErrorRecoverySystem - tiered recovery for one translation request

    CLEAN -> TRY_PRIMARY -> VALIDATE_PRIMARY -> [ACCEPT | TRY_SECONDARY]
          -> VALIDATE_SECONDARY -> [ACCEPT | GENERATE_FALLBACK]
          -> VALIDATE_FALLBACK -> [ACCEPT | EMERGENCY]

Every non-input failure is absorbed: the machine advances to the next tier
and the emergency tier always answers. State is local to each request;
only the statistics and component counters are shared.
"""

import asyncio
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from config.constants import (
    PRIMARY_CONFIDENCE_CAP,
    SECONDARY_CONFIDENCE_CAP,
    FALLBACK_CONFIDENCE_CAP,
    FALLBACK_CONFIDENCE_FLOOR,
    EMERGENCY_CONFIDENCE,
    COMPONENT_FAILURE_THRESHOLD,
    DEFAULT_ERROR_RATE,
    MIN_REQUESTS_FOR_ERROR_RATE,
    TIER_QUALITY,
)
from config.logging_config import get_logger
from core.cleaner import SpecializedPatternCleaner
from core.emergency import EmergencyContentGenerator
from core.errors import (
    CleaningRegressionError,
    FallbackGenerationFailure,
    PurityValidationFailure,
    SystemResourceError,
    TranslationMethodFailure,
)
from core.escalation import ErrorEscalationSystem
from core.fallback import FallbackContentGenerator
from core.fallback_logging import FallbackLoggingSystem
from core.health_monitor import HealthMonitor
from core.models import (
    CleaningReport,
    ContentIntent,
    DegradationLevel,
    ProcessingStep,
    PureTranslationResult,
    PurityScore,
    PurityVerdict,
    QualityMetrics,
    RecoveryAttempt,
    RecoveryState,
    ResultMetadata,
    TranslationMethod,
    TranslationRequest,
    TranslationWarning,
)
from core.purity import PurityValidator
from core.terminology import TerminologyAdapter
from engines.base import TranslationEngine

logger = get_logger(__name__)

COMPONENTS = ("primary", "secondary", "fallback", "validation")

TIER_STATES = {
    "primary": (RecoveryState.TRY_PRIMARY, RecoveryState.VALIDATE_PRIMARY),
    "secondary": (RecoveryState.TRY_SECONDARY, RecoveryState.VALIDATE_SECONDARY),
}

TIER_CAPS = {
    "primary": PRIMARY_CONFIDENCE_CAP,
    "secondary": SECONDARY_CONFIDENCE_CAP,
}


@dataclass
class _RequestRun:
    """Per-request state of the machine"""
    request: TranslationRequest
    start_time: float = field(default_factory=time.time)
    steps: List[ProcessingStep] = field(default_factory=list)
    attempts: List[RecoveryAttempt] = field(default_factory=list)
    warnings: List[TranslationWarning] = field(default_factory=list)
    errors: List[Exception] = field(default_factory=list)
    cleaning: Optional[CleaningReport] = None

    @property
    def last_error(self) -> Optional[Exception]:
        return self.errors[-1] if self.errors else None

    def step(self, state: RecoveryState, started: float, success: bool, **details):
        self.steps.append(ProcessingStep(
            step=state.value,
            duration=time.time() - started,
            success=success,
            details=details,
        ))

    def attempt(self, strategy: str, action: str, started: float, success: bool,
                error: Optional[Exception] = None, confidence: Optional[float] = None):
        self.attempts.append(RecoveryAttempt(
            attempt_number=len(self.attempts) + 1,
            strategy=strategy,
            action=action,
            timestamp=started,
            success=success,
            processing_time=time.time() - started,
            error_message=str(error) if error else None,
            confidence=confidence,
        ))


class ErrorRecoverySystem:
    """Per-request state machine over the translation tiers"""

    def __init__(
        self,
        engine: TranslationEngine,
        cleaner: SpecializedPatternCleaner,
        validator: PurityValidator,
        terminology: Optional[TerminologyAdapter] = None,
        fallback_generator: Optional[FallbackContentGenerator] = None,
        emergency_generator: Optional[EmergencyContentGenerator] = None,
        escalation: Optional[ErrorEscalationSystem] = None,
        fallback_logging: Optional[FallbackLoggingSystem] = None,
        monitor: Optional[HealthMonitor] = None,
        processing_timeout: float = 30.0,
        minimum_confidence: float = 0.8,
        terminology_accuracy_threshold: float = 0.95,
    ):
        self.engine = engine
        self.cleaner = cleaner
        self.validator = validator
        self.terminology = terminology
        self.fallback_generator = fallback_generator or FallbackContentGenerator()
        self.emergency_generator = emergency_generator or EmergencyContentGenerator(validator=validator)
        self.escalation = escalation
        self.fallback_logging = fallback_logging
        self.monitor = monitor or HealthMonitor()
        self.processing_timeout = processing_timeout
        self.minimum_confidence = minimum_confidence
        self.terminology_accuracy_threshold = terminology_accuracy_threshold

        self._lock = threading.Lock()
        self._active = 0
        self._consecutive_failures = {name: 0 for name in COMPONENTS}
        self._stats = {
            "total_requests": 0,
            "failed_requests": 0,
            "total_recovery_attempts": 0,
            "successful_recovery_attempts": 0,
            "failed_recovery_attempts": 0,
            "recovered_requests": 0,
            "recovery_time_sum": 0.0,
            "strategies_used": {},
            "error_types_recovered": {},
            "methods_used": {},
        }

    # ==================================================================
    # State machine
    # ==================================================================

    async def process(self, request: TranslationRequest) -> PureTranslationResult:
        """
        Run the recovery machine for a validated request.

        Returns:
            PureTranslationResult from the first tier whose output is accepted
        """
        run = _RequestRun(request=request)
        with self._lock:
            self._active += 1
        try:
            result = await self._run(run)
        finally:
            with self._lock:
                self._active -= 1

        self._record(run, result)
        if result.method in (TranslationMethod.FALLBACK_GENERATED, TranslationMethod.EMERGENCY):
            await self._report_fallback(run, result)
        return result

    async def _run(self, run: _RequestRun) -> PureTranslationResult:
        request = run.request

        # CLEAN
        started = time.time()
        report = self.cleaner.clean(request.text)
        run.cleaning = report
        run.step(RecoveryState.CLEAN, started, report.is_safe, **report.summary())
        if report.changed:
            run.warnings.append(TranslationWarning(
                "CLEANING_APPLIED",
                f"{len(report.applied_rules)} cleaning rules changed the source text",
            ))

        if report.is_safe:
            for tier in ("primary", "secondary"):
                result = await self._engine_tier(run, tier, report.cleaned_text)
                if result is not None:
                    return result
        else:
            run.errors.append(CleaningRegressionError(report))
            logger.error(f"[{request.request_id}] Unsafe cleaning report, skipping engine tiers")

        result = await self._fallback_tier(run)
        if result is not None:
            return result
        return self._emergency_tier(run)

    async def _engine_tier(self, run: _RequestRun, tier: str, text: str) -> Optional[PureTranslationResult]:
        request = run.request
        try_state, validate_state = TIER_STATES[tier]
        call = self.engine.translate_primary if tier == "primary" else self.engine.translate_secondary

        # TRY_*
        started = time.time()
        engine_result = None
        try:
            engine_result = await asyncio.wait_for(
                call(text, request.source_language, request.target_language),
                timeout=self.processing_timeout,
            )
            if not engine_result.result or not engine_result.result.strip():
                raise ValueError("engine returned an empty translation")
        except asyncio.TimeoutError:
            engine_result = None
            error = TranslationMethodFailure(tier, timed_out=True)
        except Exception as e:
            engine_result = None
            error = TranslationMethodFailure(tier, cause=e)

        if engine_result is None:
            run.errors.append(error)
            run.step(try_state, started, False, error=error.code)
            self._component_result(tier, False)
            if tier != "primary":
                run.attempt(f"{tier}_translation", f"translate_{tier}", started, False, error)
            logger.warning(f"[{request.request_id}] {error.message}")
            return None

        run.step(try_state, started, True, engine_time=engine_result.processing_time)
        self._component_result(tier, True)

        # VALIDATE_*
        validate_started = time.time()
        try:
            verdict = self.validator.validate(engine_result.result, request.target_language)
        except Exception as e:
            self._component_result("validation", False)
            run.errors.append(e)
            run.step(validate_state, validate_started, False, error=str(e))
            if tier != "primary":
                run.attempt(f"{tier}_translation", f"translate_{tier}", started, False, e)
            logger.error(f"[{request.request_id}] Validation crashed on {tier} output: {e}")
            return None
        self._component_result("validation", True)

        if not verdict.is_pure:
            error = PurityValidationFailure(verdict, tier)
            run.errors.append(error)
            run.step(validate_state, validate_started, False,
                     purity=verdict.purity_score.overall,
                     violations=[v.type for v in verdict.violations])
            if tier != "primary":
                run.attempt(f"{tier}_translation", f"translate_{tier}", started, False, error)
            logger.warning(f"[{request.request_id}] {error.message}")
            return None

        text_out, verdict = self._apply_terminology(engine_result.result, verdict, request)
        run.step(validate_state, validate_started, True, purity=verdict.purity_score.overall)

        confidence = round(min(TIER_CAPS[tier], max(0.0, engine_result.confidence)), 3)
        if tier != "primary":
            run.attempt(f"{tier}_translation", f"translate_{tier}", started, True, confidence=confidence)

        method = TranslationMethod.PRIMARY if tier == "primary" else TranslationMethod.SECONDARY
        accuracy = self._terminology_accuracy(run, method, text_out)
        if confidence < self.minimum_confidence:
            run.warnings.append(TranslationWarning(
                "LOW_CONFIDENCE",
                f"{tier} translation confidence {confidence} is below {self.minimum_confidence}",
            ))
        return self._accept(
            run, text_out, method, confidence, verdict.purity_score,
            terminology_accuracy=accuracy,
            contextual_relevance=verdict.purity_score.contextual_coherence,
            cache_hit=engine_result.cached,
        )

    def _apply_terminology(self, text: str, verdict: PurityVerdict, request: TranslationRequest):
        """Canonicalize legal terms; keep the original text if that breaks purity"""
        if self.terminology is None:
            return text, verdict
        adjusted = self.terminology.apply_terminology(text, None, request.target_language)
        if adjusted == text:
            return text, verdict
        adjusted_verdict = self.validator.validate(adjusted, request.target_language)
        if adjusted_verdict.is_pure:
            return adjusted, adjusted_verdict
        logger.warning(f"[{request.request_id}] Terminology pass broke purity, keeping engine output")
        return text, verdict

    def _terminology_accuracy(self, run: _RequestRun, method: TranslationMethod, text: str) -> float:
        tier_value = TIER_QUALITY[method.value][0]
        if self.terminology is None or run.cleaning is None:
            return tier_value

        request = run.request
        score, missing = self.terminology.validate_translation(run.cleaning.cleaned_text, text,
                                                                request.source_language, request.target_language)
        if score < self.terminology_accuracy_threshold:
            run.warnings.append(TranslationWarning(
                "TERMINOLOGY_MISMATCH",
                f"Terminology accuracy {score} below {self.terminology_accuracy_threshold}: "
                + "; ".join(missing[:3]),
            ))
        return min(tier_value, round(score * 100, 2))

    async def _fallback_tier(self, run: _RequestRun) -> Optional[PureTranslationResult]:
        request = run.request
        reason = getattr(run.last_error, "code", "unknown")

        # GENERATE_FALLBACK
        started = time.time()
        intent = None
        try:
            intent = await asyncio.wait_for(
                self.engine.detect_content_intent(request.text),
                timeout=self.processing_timeout,
            )
        except Exception as e:
            logger.debug(f"[{request.request_id}] Engine intent detection failed, using local heuristic: {e}")
        if not isinstance(intent, ContentIntent):
            intent = None

        try:
            fallback = self.fallback_generator.generate_fallback(
                request.text, request.target_language, reason, intent,
                content_type=request.content_type,
            )
        except Exception as e:
            error = FallbackGenerationFailure(f"Fallback generation failed: {e}")
            run.errors.append(error)
            run.step(RecoveryState.GENERATE_FALLBACK, started, False, error=str(e))
            run.attempt("fallback_generation", "generate_fallback", started, False, error)
            self._component_result("fallback", False)
            logger.error(f"[{request.request_id}] {error.message}")
            return None

        run.step(RecoveryState.GENERATE_FALLBACK, started, True,
                 method=fallback.method.value, domain=fallback.context.get("domain"))

        # VALIDATE_FALLBACK: primary content, then each alternative
        validate_started = time.time()
        for candidate in [fallback.content] + list(fallback.alternatives):
            verdict = self.validator.validate(candidate, request.target_language)
            if verdict.is_pure:
                break
        else:
            error = FallbackGenerationFailure("No generated fallback content passed purity validation")
            run.errors.append(error)
            run.step(RecoveryState.VALIDATE_FALLBACK, validate_started, False,
                     candidates=1 + len(fallback.alternatives))
            run.attempt("fallback_generation", "generate_fallback", started, False, error)
            self._component_result("fallback", False)
            logger.error(f"[{request.request_id}] {error.message}")
            return None

        run.step(RecoveryState.VALIDATE_FALLBACK, validate_started, True,
                 purity=verdict.purity_score.overall)
        self._component_result("fallback", True)

        confidence = round(min(FALLBACK_CONFIDENCE_CAP, max(FALLBACK_CONFIDENCE_FLOOR, fallback.confidence)), 3)
        run.attempt("fallback_generation", "generate_fallback", started, True, confidence=confidence)
        run.warnings.append(TranslationWarning(
            "FALLBACK_USED",
            f"Translation unavailable ({reason}); domain content was generated instead",
        ))
        return self._accept(
            run, candidate, TranslationMethod.FALLBACK_GENERATED, confidence, verdict.purity_score,
            contextual_relevance=round(confidence * 100, 2),
        )

    def _emergency_tier(self, run: _RequestRun) -> PureTranslationResult:
        request = run.request
        reason = getattr(run.last_error, "code", "unknown")

        started = time.time()
        emergency = self.emergency_generator.generate_emergency(
            request.target_language, reason, request.content_type, request.user_id
        )
        run.step(RecoveryState.EMERGENCY, started, True, template_id=emergency.template_id)
        run.attempt("emergency_content", "serve_emergency_template", started, True,
                    confidence=EMERGENCY_CONFIDENCE)
        run.warnings.append(TranslationWarning(
            "EMERGENCY_CONTENT",
            f"All translation tiers failed ({reason}); pre-validated content was returned",
        ))
        return self._accept(
            run, emergency.content, TranslationMethod.EMERGENCY, EMERGENCY_CONFIDENCE,
            emergency.purity_score, contextual_relevance=emergency.relevance,
        )

    def emergency_result(self, request: TranslationRequest, error: Exception) -> PureTranslationResult:
        """Emergency answer for a request whose machine run crashed"""
        run = _RequestRun(request=request)
        run.errors.append(error)
        result = self._emergency_tier(run)
        self._record(run, result)
        return result

    def _accept(self, run: _RequestRun, text: str, method: TranslationMethod, confidence: float,
                purity: PurityScore, terminology_accuracy: Optional[float] = None,
                contextual_relevance: float = 100.0, cache_hit: bool = False) -> PureTranslationResult:
        started = time.time()
        tier_terminology, readability, professionalism = TIER_QUALITY[method.value]
        run.step(RecoveryState.ACCEPT, started, True, method=method.value)

        return PureTranslationResult(
            translated_text=text,
            purity_score=purity.overall,
            quality_metrics=QualityMetrics(
                purity=purity,
                terminology_accuracy=tier_terminology if terminology_accuracy is None else terminology_accuracy,
                readability=readability,
                professionalism=professionalism,
                contextual_relevance=contextual_relevance,
            ),
            processing_time=time.time() - run.start_time,
            method=method,
            confidence=confidence,
            warnings=list(run.warnings),
            metadata=ResultMetadata(
                request_id=run.request.request_id,
                processing_steps=list(run.steps),
                recovery_attempts=list(run.attempts),
                fallback_used=method in (TranslationMethod.FALLBACK_GENERATED, TranslationMethod.EMERGENCY),
                cache_hit=cache_hit,
                cleaning=run.cleaning.summary() if run.cleaning else None,
            ),
        )

    # ==================================================================
    # Fallback reporting
    # ==================================================================

    async def _report_fallback(self, run: _RequestRun, result: PureTranslationResult):
        """Snapshot, log and escalate a fallback activation; failures here are absorbed"""
        request = run.request
        error = run.last_error or FallbackGenerationFailure("Fallback tier reached without a recorded error")

        with self._lock:
            active = self._active
        snapshot = self.monitor.capture_snapshot(self.component_availability(), self.error_rate(), active)

        if self.fallback_logging is not None:
            try:
                self.fallback_logging.log_fallback_activation(request, error, run.attempts, result, snapshot)
            except Exception as e:
                logger.error(f"[{request.request_id}] Fallback logging failed: {e}")

        if self.escalation is None:
            return

        context = {
            "request_id": request.request_id,
            "user_id": request.user_id,
            "method": result.method.value,
            "system_state": snapshot,
        }
        try:
            await self.escalation.process_error(error, context)
            if snapshot.degradation_level == DegradationLevel.CRITICAL:
                await self.escalation.process_error(SystemResourceError(
                    f"Critical degradation: error rate {snapshot.error_rate:.2f}, "
                    f"load {snapshot.system_load:.2f}"
                ), context)
        except Exception as e:
            logger.error(f"[{request.request_id}] Escalation failed: {e}")

    # ==================================================================
    # Statistics & availability
    # ==================================================================

    def _component_result(self, component: str, success: bool):
        with self._lock:
            if success:
                if self._consecutive_failures[component] >= COMPONENT_FAILURE_THRESHOLD:
                    logger.info(f"Component '{component}' recovered")
                self._consecutive_failures[component] = 0
            else:
                self._consecutive_failures[component] += 1
                if self._consecutive_failures[component] == COMPONENT_FAILURE_THRESHOLD:
                    logger.warning(
                        f"Component '{component}' marked unavailable after "
                        f"{COMPONENT_FAILURE_THRESHOLD} consecutive failures"
                    )

    def component_availability(self) -> Dict[str, bool]:
        with self._lock:
            return {
                name: count < COMPONENT_FAILURE_THRESHOLD
                for name, count in self._consecutive_failures.items()
            }

    def _record(self, run: _RequestRun, result: PureTranslationResult):
        elapsed = time.time() - run.start_time
        with self._lock:
            s = self._stats
            s["total_requests"] += 1
            if result.method in (TranslationMethod.FALLBACK_GENERATED, TranslationMethod.EMERGENCY):
                s["failed_requests"] += 1
            s["methods_used"][result.method.value] = s["methods_used"].get(result.method.value, 0) + 1

            for attempt in run.attempts:
                s["total_recovery_attempts"] += 1
                if attempt.success:
                    s["successful_recovery_attempts"] += 1
                else:
                    s["failed_recovery_attempts"] += 1
                s["strategies_used"][attempt.strategy] = s["strategies_used"].get(attempt.strategy, 0) + 1

            if run.errors:
                s["recovered_requests"] += 1
                s["recovery_time_sum"] += elapsed
                for error in run.errors:
                    code = getattr(error, "code", type(error).__name__)
                    s["error_types_recovered"][code] = s["error_types_recovered"].get(code, 0) + 1

    def error_rate(self) -> float:
        """Share of requests answered by a fallback tier"""
        with self._lock:
            total = self._stats["total_requests"]
            failed = self._stats["failed_requests"]
        if total < MIN_REQUESTS_FOR_ERROR_RATE:
            return DEFAULT_ERROR_RATE
        return round(failed / total, 4)

    def success_rate(self) -> float:
        """Percentage of requests answered by an engine tier"""
        with self._lock:
            total = self._stats["total_requests"]
            failed = self._stats["failed_requests"]
        if total == 0:
            return 100.0
        return round((total - failed) / total * 100, 2)

    def get_statistics(self) -> Dict[str, Any]:
        with self._lock:
            s = self._stats
            recovered = s["recovered_requests"]
            stats = {
                "total_requests": s["total_requests"],
                "total_recovery_attempts": s["total_recovery_attempts"],
                "successful_recovery_attempts": s["successful_recovery_attempts"],
                "failed_recovery_attempts": s["failed_recovery_attempts"],
                "average_recovery_time": round(s["recovery_time_sum"] / recovered, 4) if recovered else 0.0,
                "strategies_used": dict(s["strategies_used"]),
                "error_types_recovered": dict(s["error_types_recovered"]),
                "methods_used": dict(s["methods_used"]),
                "active_requests": self._active,
            }
        stats["error_rate"] = self.error_rate()
        stats["success_rate"] = self.success_rate()
        return stats
