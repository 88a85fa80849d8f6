#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Data models shared by the cleaning, validation and recovery components.
"""

import time
import uuid
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, List, Optional


# ============================================================================
# Enums
# ============================================================================

class Language(Enum):
    """Supported output languages"""
    ARABIC = "ar"
    FRENCH = "fr"


class ContentType(Enum):
    """Kind of text being translated"""
    CHAT_MESSAGE = "chat_message"
    LEGAL_DOCUMENT = "legal_document"
    LEGAL_FORM = "legal_form"


class TranslationPriority(Enum):
    """Request priority"""
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


class TranslationMethod(Enum):
    """Tier that produced the final text"""
    PRIMARY = "primary"
    SECONDARY = "secondary"
    FALLBACK_GENERATED = "fallback_generated"
    EMERGENCY = "emergency"


class Severity(Enum):
    """Severity levels, ordered low to critical"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_ORDER.index(self)

    def escalate(self) -> "Severity":
        """Next severity level up (critical stays critical)"""
        return _SEVERITY_ORDER[min(self.rank + 1, len(_SEVERITY_ORDER) - 1)]

    @classmethod
    def highest(cls, *severities: "Severity") -> "Severity":
        return max(severities, key=lambda s: s.rank)


_SEVERITY_ORDER = [Severity.LOW, Severity.MEDIUM, Severity.HIGH, Severity.CRITICAL]


class PatternType(Enum):
    """What a cleaning rule targets"""
    UI_ELEMENT = "ui_element"
    CROSS_SCRIPT = "cross_script"
    CYRILLIC_CONTAMINATION = "cyrillic_contamination"
    ENCODING_CORRUPTION = "encoding_corruption"
    USER_REPORTED = "user_reported"


class RuleAction(Enum):
    """What a cleaning rule does with a match"""
    REMOVE = "remove"
    REPLACE = "replace"
    FLAG = "flag"


class RecoveryState(Enum):
    """States of the per-request recovery machine"""
    CLEAN = "clean"
    TRY_PRIMARY = "try_primary"
    VALIDATE_PRIMARY = "validate_primary"
    TRY_SECONDARY = "try_secondary"
    VALIDATE_SECONDARY = "validate_secondary"
    GENERATE_FALLBACK = "generate_fallback"
    VALIDATE_FALLBACK = "validate_fallback"
    EMERGENCY = "emergency"
    ACCEPT = "accept"


class LegalDomain(Enum):
    """Legal domains used for fallback templates"""
    CIVIL_LAW = "civil_law"
    CRIMINAL_LAW = "criminal_law"
    COMMERCIAL_LAW = "commercial_law"
    ADMINISTRATIVE_LAW = "administrative_law"
    FAMILY_LAW = "family_law"
    PROCEDURAL_LAW = "procedural_law"


class ComplexityLevel(Enum):
    SIMPLE = "simple"
    MODERATE = "moderate"
    COMPLEX = "complex"
    EXPERT = "expert"


class AudienceType(Enum):
    GENERAL_PUBLIC = "general_public"
    LEGAL_PROFESSIONAL = "legal_professional"
    LAWYER = "lawyer"


class FallbackMethod(Enum):
    """How fallback content was produced"""
    TEMPLATE_BASED = "template_based"
    CONTEXT_GENERATED = "context_generated"


class DegradationLevel(Enum):
    NONE = "none"
    MODERATE = "moderate"
    SEVERE = "severe"
    CRITICAL = "critical"


class EscalationLevel(Enum):
    """Operator attention required by a fallback activation"""
    NONE = "none"
    AUTOMATIC = "automatic"
    TEAM_NOTIFICATION = "team_notification"
    ADMIN_ALERT = "admin_alert"
    CRITICAL_INCIDENT = "critical_incident"


class ImpactLevel(Enum):
    MINIMAL = "minimal"
    MODERATE = "moderate"
    SIGNIFICANT = "significant"
    SEVERE = "severe"


def _to_plain(pairs) -> Dict[str, Any]:
    """asdict() factory that stores enums by value"""
    result = {}
    for key, value in pairs:
        if isinstance(value, Enum):
            value = value.value
        elif isinstance(value, (list, tuple)):
            value = [v.value if isinstance(v, Enum) else v for v in value]
        result[key] = value
    return result


class SerializableMixin:
    """to_dict() for dataclasses holding enums"""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self, dict_factory=_to_plain)


# ============================================================================
# Request
# ============================================================================

@dataclass(frozen=True)
class TranslationRequest(SerializableMixin):
    """One translation call. Never mutated after creation."""
    text: str
    source_language: Language
    target_language: Language
    content_type: ContentType = ContentType.LEGAL_DOCUMENT
    priority: TranslationPriority = TranslationPriority.NORMAL
    user_id: Optional[str] = None
    context: Optional[Dict[str, Any]] = None
    request_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])

    def __post_init__(self):
        from core.errors import UnsupportedLanguageError

        for name in ("source_language", "target_language"):
            value = getattr(self, name)
            if not isinstance(value, Language):
                try:
                    object.__setattr__(self, name, Language(value))
                except ValueError:
                    raise UnsupportedLanguageError(str(value)) from None
        if not isinstance(self.content_type, ContentType):
            object.__setattr__(self, "content_type", ContentType(self.content_type))
        if not isinstance(self.priority, TranslationPriority):
            object.__setattr__(self, "priority", TranslationPriority(self.priority))

    def validate(self):
        """Raise InputError when the request cannot be translated"""
        from core.errors import EmptyTextError, SameLanguageError

        if not self.text or not self.text.strip():
            raise EmptyTextError()
        if self.source_language == self.target_language:
            raise SameLanguageError(self.source_language.value)


# ============================================================================
# Cleaning
# ============================================================================

@dataclass
class CleaningRule(SerializableMixin):
    """A named regex rule applied by the pattern cleaner"""
    id: str
    name: str
    pattern: str
    pattern_type: PatternType
    severity: Severity = Severity.MEDIUM
    action: RuleAction = RuleAction.REMOVE
    replacement: str = ""
    priority: int = 5
    enabled: bool = True
    user_reported: bool = False
    description: str = ""
    flags: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CleaningRule":
        return cls(
            id=data["id"],
            name=data.get("name", data["id"]),
            pattern=data["pattern"],
            pattern_type=PatternType(data.get("pattern_type", PatternType.USER_REPORTED.value)),
            severity=Severity(data.get("severity", Severity.MEDIUM.value)),
            action=RuleAction(data.get("action", RuleAction.REMOVE.value)),
            replacement=data.get("replacement", ""),
            priority=int(data.get("priority", 5)),
            enabled=bool(data.get("enabled", True)),
            user_reported=bool(data.get("user_reported", False)),
            description=data.get("description", ""),
            flags=int(data.get("flags", 0)),
        )


@dataclass
class AppliedRule(SerializableMixin):
    rule_id: str
    name: str
    severity: Severity
    matches: int
    user_reported: bool = False


@dataclass
class CleaningReport(SerializableMixin):
    """Outcome of one clean() call"""
    original_text: str
    cleaned_text: str
    applied_rules: List[AppliedRule] = field(default_factory=list)
    flagged_rules: List[AppliedRule] = field(default_factory=list)
    user_reported_patterns: int = 0
    specialized_actions: int = 0
    confidence: float = 1.0
    regression_prevented: bool = True
    remaining_regressions: List[str] = field(default_factory=list)
    passes: int = 0
    processing_time: float = 0.0

    @property
    def is_safe(self) -> bool:
        return self.regression_prevented

    @property
    def changed(self) -> bool:
        return self.cleaned_text != self.original_text

    def summary(self) -> Dict[str, Any]:
        return {
            "rules_applied": [rule.rule_id for rule in self.applied_rules],
            "user_reported_patterns": self.user_reported_patterns,
            "confidence": self.confidence,
            "regression_prevented": self.regression_prevented,
        }


# ============================================================================
# Purity
# ============================================================================

@dataclass
class PurityScore(SerializableMixin):
    overall: float = 100.0
    script_purity: float = 100.0
    terminology_consistency: float = 100.0
    encoding_integrity: float = 100.0
    contextual_coherence: float = 100.0
    ui_elements_removed: float = 100.0


@dataclass
class Violation(SerializableMixin):
    type: str
    text: str
    severity: Severity
    suggested_fix: str
    confidence: float = 1.0


@dataclass
class PurityVerdict(SerializableMixin):
    is_pure: bool
    passes_zero_tolerance: bool
    purity_score: PurityScore
    violations: List[Violation] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)


# ============================================================================
# Recovery & results
# ============================================================================

@dataclass
class RecoveryAttempt(SerializableMixin):
    attempt_number: int
    strategy: str
    action: str
    timestamp: float
    success: bool
    processing_time: float = 0.0
    error_message: Optional[str] = None
    confidence: Optional[float] = None


@dataclass
class ProcessingStep(SerializableMixin):
    step: str
    duration: float
    success: bool
    details: Dict[str, Any] = field(default_factory=dict)


@dataclass
class TranslationWarning(SerializableMixin):
    code: str
    message: str


@dataclass
class QualityMetrics(SerializableMixin):
    purity: PurityScore
    terminology_accuracy: float
    readability: float
    professionalism: float
    contextual_relevance: float


@dataclass
class ResultMetadata(SerializableMixin):
    request_id: str
    timestamp: float = field(default_factory=time.time)
    processing_steps: List[ProcessingStep] = field(default_factory=list)
    recovery_attempts: List[RecoveryAttempt] = field(default_factory=list)
    fallback_used: bool = False
    cache_hit: bool = False
    cleaning: Optional[Dict[str, Any]] = None


@dataclass
class PureTranslationResult(SerializableMixin):
    translated_text: str
    purity_score: float
    quality_metrics: QualityMetrics
    processing_time: float
    method: TranslationMethod
    confidence: float
    warnings: List[TranslationWarning] = field(default_factory=list)
    metadata: Optional[ResultMetadata] = None

    def has_warning(self, code: str) -> bool:
        return any(w.code == code for w in self.warnings)


@dataclass
class SystemStateSnapshot(SerializableMixin):
    """System state captured when a fallback tier is reached"""
    primary_available: bool = True
    secondary_available: bool = True
    fallback_available: bool = True
    validation_available: bool = True
    network_connectivity: bool = True
    system_load: float = 0.0
    error_rate: float = 0.0
    memory_usage: float = 0.0
    active_connections: int = 0
    degradation_level: DegradationLevel = DegradationLevel.NONE
    timestamp: float = field(default_factory=time.time)


# ============================================================================
# Content intent & generated content
# ============================================================================

@dataclass
class ContentIntent(SerializableMixin):
    category: LegalDomain = LegalDomain.CIVIL_LAW
    concepts: List[str] = field(default_factory=list)
    context: Dict[str, Any] = field(default_factory=dict)
    complexity: ComplexityLevel = ComplexityLevel.SIMPLE
    audience: AudienceType = AudienceType.GENERAL_PUBLIC
    confidence: float = 0.5


@dataclass
class FallbackContent(SerializableMixin):
    content: str
    confidence: float
    method: FallbackMethod
    context: Dict[str, Any] = field(default_factory=dict)
    alternatives: List[str] = field(default_factory=list)


@dataclass
class EmergencyContent(SerializableMixin):
    content: str
    template_id: str
    language: Language
    content_type: ContentType
    purity_score: PurityScore
    relevance: float = 0.0


# ============================================================================
# Escalation
# ============================================================================

@dataclass
class ExecutedAction(SerializableMixin):
    """One notification dispatch to a channel"""
    channel: str
    timestamp: float
    success: bool
    duration: float = 0.0
    error: Optional[str] = None
    retry_count: int = 0


@dataclass
class EscalationEvent(SerializableMixin):
    id: str
    timestamp: float
    rule_id: str
    rule_name: str
    severity: Severity
    error_code: str
    error_message: str
    executed_actions: List[ExecutedAction] = field(default_factory=list)
    cooldown_key: str = ""
    context: Dict[str, Any] = field(default_factory=dict)
    resolved: bool = False
    resolved_at: Optional[float] = None
    resolution_notes: str = ""


# ============================================================================
# Fallback logging
# ============================================================================

@dataclass
class UserImpact(SerializableMixin):
    level: ImpactLevel
    urgency: str
    user_type: str
    expected_quality_loss: float

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserImpact":
        return cls(
            level=ImpactLevel(data["level"]),
            urgency=data["urgency"],
            user_type=data["user_type"],
            expected_quality_loss=data["expected_quality_loss"],
        )


@dataclass
class ImprovementSuggestion(SerializableMixin):
    category: str
    description: str
    priority: Severity
    estimated_impact: float

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ImprovementSuggestion":
        return cls(
            category=data["category"],
            description=data["description"],
            priority=Severity(data["priority"]),
            estimated_impact=data["estimated_impact"],
        )


@dataclass
class FallbackLogEntry(SerializableMixin):
    """One fallback activation, written when recovery reached a fallback tier"""
    id: str
    timestamp: float
    request: Dict[str, Any]
    error_code: str
    error_message: str
    error_severity: Severity
    fallback_method: TranslationMethod
    emergency_content_used: bool
    recovery_attempts: List[RecoveryAttempt]
    result: Dict[str, Any]
    system_state: SystemStateSnapshot
    user_impact: UserImpact
    escalation_level: EscalationLevel
    improvement_suggestions: List[ImprovementSuggestion] = field(default_factory=list)
    processing_time: float = 0.0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FallbackLogEntry":
        state = dict(data["system_state"])
        state["degradation_level"] = DegradationLevel(state["degradation_level"])
        return cls(
            id=data["id"],
            timestamp=data["timestamp"],
            request=data["request"],
            error_code=data["error_code"],
            error_message=data["error_message"],
            error_severity=Severity(data["error_severity"]),
            fallback_method=TranslationMethod(data["fallback_method"]),
            emergency_content_used=data["emergency_content_used"],
            recovery_attempts=[RecoveryAttempt(**a) for a in data["recovery_attempts"]],
            result=data["result"],
            system_state=SystemStateSnapshot(**state),
            user_impact=UserImpact.from_dict(data["user_impact"]),
            escalation_level=EscalationLevel(data["escalation_level"]),
            improvement_suggestions=[
                ImprovementSuggestion.from_dict(s) for s in data.get("improvement_suggestions", [])
            ],
            processing_time=data.get("processing_time", 0.0),
        )


# ============================================================================
# User-reported issues
# ============================================================================

@dataclass
class ContaminationIssue(SerializableMixin):
    """Contamination a user saw in a translation, queued for rule curation"""
    text: str
    description: str = ""
    user_id: Optional[str] = None
    language: Optional[Language] = None
    request_id: Optional[str] = None
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    reported_at: float = field(default_factory=time.time)
