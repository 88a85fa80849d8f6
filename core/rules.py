#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Pattern Rule Registry

Ordered, versioned table of cleaning rules plus the permanent regression set.
The default table was built from contamination reported in production output
(UI banners, Cyrillic fragments, tool names glued to Arabic words).
"""

import json
import re
import threading
from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, List, Optional, Pattern, Tuple

from config.logging_config import get_logger
from core.errors import RuleConfigurationError
from core.models import CleaningRule, PatternType, RuleAction, Severity

logger = get_logger(__name__)

ARABIC = r"\u0600-\u06FF"
LATIN_WORD = r"A-Za-z\u00C0-\u024F0-9"

# ============================================================================
# Default rule table
# ============================================================================

DEFAULT_RULES: List[CleaningRule] = [
    CleaningRule(
        id="user_reported_complete_1",
        name="Reported UI banner glued to lawyer title",
        pattern=r"محامي\s*دي\s*زاد\s*متصل\s*محامي\s*Pro\s*تحليل\s*ملفات\s*V2\s*AUTO-TRANSLATE",
        pattern_type=PatternType.USER_REPORTED,
        severity=Severity.CRITICAL,
        action=RuleAction.REPLACE,
        replacement="محامي متصل تحليل ملفات",
        priority=1,
        user_reported=True,
        description="Exact string reported from the chat interface",
    ),
    CleaningRule(
        id="user_reported_legal_corrupted",
        name="Reported corrupted witness sentence",
        pattern=(
            r"الشهود\s*Defined\s*في\s*المادة\s*\d*\s*من\s*قانون\s*الإجراءات"
            r"\s*الجنائية\s*ال\s*процедة"
        ),
        pattern_type=PatternType.USER_REPORTED,
        severity=Severity.CRITICAL,
        action=RuleAction.REPLACE,
        replacement="الشهود في المادة من قانون الإجراءات الجنائية",
        priority=1,
        user_reported=True,
    ),
    CleaningRule(
        id="cyrillic_legal_fragment",
        name="Cyrillic procedure fragment",
        pattern=r"\s*процедة\s*",
        pattern_type=PatternType.CYRILLIC_CONTAMINATION,
        severity=Severity.CRITICAL,
        action=RuleAction.REPLACE,
        replacement=" ",
        priority=1,
        user_reported=True,
    ),
    CleaningRule(
        id="encoding_corruption",
        name="Replacement and control characters",
        pattern=r"[\uFFFD\u0000-\u0008\u000B\u000C\u000E-\u001F\u007F-\u009F]",
        pattern_type=PatternType.ENCODING_CORRUPTION,
        severity=Severity.CRITICAL,
        action=RuleAction.REMOVE,
        priority=1,
    ),
    CleaningRule(
        id="concatenated_ui_arabic",
        name="UI tokens glued to lawyer title",
        pattern=r"محامي(?:Pro|V2|AUTO-TRANSLATE|Defined|JuristDZ)+",
        pattern_type=PatternType.UI_ELEMENT,
        severity=Severity.HIGH,
        action=RuleAction.REPLACE,
        replacement="محامي",
        priority=2,
        user_reported=True,
    ),
    CleaningRule(
        id="multiple_ui_concatenated",
        name="Concatenated version banner",
        pattern=r"Pro\s*V2\s*AUTO-TRANSLATE",
        pattern_type=PatternType.UI_ELEMENT,
        severity=Severity.HIGH,
        action=RuleAction.REPLACE,
        replacement=" ",
        priority=2,
    ),
    CleaningRule(
        id="english_arabic_legal_terms",
        name="English legal words between Arabic words",
        pattern=rf"([{ARABIC}]+)\s*(?:Defined|Article|Law|Criminal|Procedure)(?![A-Za-z])\s*([{ARABIC}]*)",
        pattern_type=PatternType.CROSS_SCRIPT,
        severity=Severity.HIGH,
        action=RuleAction.REPLACE,
        replacement=r"\1 \2",
        priority=2,
    ),
    CleaningRule(
        id="ui_version_mixed",
        name="Version tokens next to Arabic words",
        pattern=rf"([{ARABIC}]+)\s*(?:Pro|V2|AUTO-TRANSLATE)(?![a-z])\s*([{ARABIC}]*)",
        pattern_type=PatternType.UI_ELEMENT,
        severity=Severity.HIGH,
        action=RuleAction.REPLACE,
        replacement=r"\1 \2",
        priority=2,
    ),
    CleaningRule(
        id="cyrillic_contamination",
        name="Cyrillic runs",
        pattern=r"[\u0400-\u04FF\u0500-\u052F\u2DE0-\u2DFF\uA640-\uA69F]+",
        pattern_type=PatternType.CYRILLIC_CONTAMINATION,
        severity=Severity.HIGH,
        action=RuleAction.REMOVE,
        priority=2,
    ),
    CleaningRule(
        id="system_artifacts_legal",
        name="Product name between Arabic words",
        pattern=rf"([{ARABIC}]+)\s*(?:JuristDZ|JURIST|DZ)\s*([{ARABIC}]+)",
        pattern_type=PatternType.UI_ELEMENT,
        severity=Severity.MEDIUM,
        action=RuleAction.REPLACE,
        replacement=r"\1 \2",
        priority=3,
    ),
    CleaningRule(
        id="ui_placeholder_leak",
        name="Script placeholders",
        pattern=r"\[object Object\]|(?<![A-Za-z])(?:undefined|null|NaN)(?![A-Za-z])",
        pattern_type=PatternType.UI_ELEMENT,
        severity=Severity.MEDIUM,
        action=RuleAction.REMOVE,
        priority=3,
    ),
    CleaningRule(
        id="mixed_script_boundaries",
        name="Single Latin letter inside Arabic word",
        pattern=rf"([{ARABIC}])[a-zA-Z]([{ARABIC}])",
        pattern_type=PatternType.CROSS_SCRIPT,
        severity=Severity.MEDIUM,
        action=RuleAction.REPLACE,
        replacement=r"\1 \2",
        priority=3,
    ),
    CleaningRule(
        id="standalone_ui_tokens",
        name="Standalone UI tokens",
        pattern=r"(?<![A-Za-z0-9])(?:AUTO-TRANSLATE|JuristDZ|Defined|Pro|V2)(?![A-Za-z0-9])",
        pattern_type=PatternType.UI_ELEMENT,
        severity=Severity.MEDIUM,
        action=RuleAction.REMOVE,
        priority=4,
    ),
]

# Strings reported by users. Append-only: cleaning must never reproduce them.
REGRESSION_PATTERNS: List[str] = [
    "محامي Pro تحليل",
    "الشهود Defined في",
    "قانون процедة الإجراءات",
    "محاميProV2AUTO-TRANSLATE",
    "JuristDZ Pro V2",
    "AUTO-TRANSLATE محامي",
    "Defined في المادة",
    "процедة الجنائية",
]

# Fragments from the reports above that must not survive cleaning anywhere
REGRESSION_TOKENS: List[Tuple[str, Pattern]] = [
    ("Pro", re.compile(r"(?<![A-Za-z])Pro(?![A-Za-z])")),
    ("V2", re.compile(r"(?<![A-Za-z0-9])V2(?![A-Za-z0-9])")),
    ("AUTO-TRANSLATE", re.compile(r"AUTO-TRANSLATE")),
    ("Defined", re.compile(r"(?<![A-Za-z])Defined(?![A-Za-z])")),
    ("JuristDZ", re.compile(r"JuristDZ")),
    ("cyrillic", re.compile(r"[\u0400-\u052F]")),
]


def _edge_guard(ch: str, behind: bool) -> str:
    if re.match(rf"[{LATIN_WORD}]", ch):
        chars = LATIN_WORD
    elif re.match(rf"[{ARABIC}]", ch):
        chars = ARABIC
    else:
        return ""
    return f"(?<![{chars}])" if behind else f"(?![{chars}])"


def bounded_literal(text: str) -> str:
    """
    Regex for a reported string that only matches as whole words of its script.

    An edge letter may not touch another letter of the same script, so a
    reported "Beta" still matches when glued to Arabic ("محاميBeta") but
    not inside "Betamax".
    """
    return f"{_edge_guard(text[0], True)}{re.escape(text)}{_edge_guard(text[-1], False)}"


@lru_cache(maxsize=1024)
def regression_regex(text: str) -> Pattern:
    return re.compile(bounded_literal(text))


@dataclass(frozen=True)
class CompiledRule:
    """Rule snapshot with its compiled regex"""
    rule: CleaningRule
    regex: Pattern
    order: int


class PatternRuleRegistry:
    """Thread-safe store of cleaning rules and regression patterns"""

    def __init__(self, rules: Optional[List[CleaningRule]] = None,
                 regression_patterns: Optional[List[str]] = None):
        self._lock = threading.RLock()
        self._rules: Dict[str, CompiledRule] = {}
        self._regressions: List[str] = []
        self._next_order = 0
        self.version = 0

        for rule in (DEFAULT_RULES if rules is None else rules):
            self.add_rule(rule)
        for text in (REGRESSION_PATTERNS if regression_patterns is None else regression_patterns):
            self.add_regression_pattern(text)

    # ------------------------------------------------------------------
    # Rule CRUD
    # ------------------------------------------------------------------

    @staticmethod
    def _compile(rule: CleaningRule) -> Pattern:
        try:
            return re.compile(rule.pattern, rule.flags)
        except re.error as e:
            raise RuleConfigurationError(f"Invalid pattern for rule '{rule.id}': {e}") from e

    def add_rule(self, rule: CleaningRule) -> CleaningRule:
        """Register a new rule; ids are unique"""
        regex = self._compile(rule)
        with self._lock:
            if rule.id in self._rules:
                raise RuleConfigurationError(f"Rule '{rule.id}' already exists")
            self._rules[rule.id] = CompiledRule(rule=rule, regex=regex, order=self._next_order)
            self._next_order += 1
            self.version += 1
        logger.debug(f"Rule added: {rule.id} (priority {rule.priority})")
        return rule

    def update_rule(self, rule_id: str, **changes) -> CleaningRule:
        """Replace fields of an existing rule"""
        with self._lock:
            current = self._rules.get(rule_id)
            if current is None:
                raise RuleConfigurationError(f"Unknown rule '{rule_id}'")
            if "id" in changes and changes["id"] != rule_id:
                raise RuleConfigurationError("Rule id cannot be changed")

            data = current.rule.to_dict()
            data.update({
                key: value.value if hasattr(value, "value") else value
                for key, value in changes.items()
            })
            updated = CleaningRule.from_dict(data)
            self._rules[rule_id] = CompiledRule(
                rule=updated, regex=self._compile(updated), order=current.order
            )
            self.version += 1
        logger.info(f"Rule updated: {rule_id} ({', '.join(changes)})")
        return updated

    def remove_rule(self, rule_id: str) -> bool:
        with self._lock:
            removed = self._rules.pop(rule_id, None) is not None
            if removed:
                self.version += 1
        if removed:
            logger.info(f"Rule removed: {rule_id}")
        return removed

    def get_rule(self, rule_id: str) -> Optional[CleaningRule]:
        with self._lock:
            compiled = self._rules.get(rule_id)
        return compiled.rule if compiled else None

    def list_rules(self) -> List[CleaningRule]:
        return [compiled.rule for compiled in self._sorted()]

    def enabled_rules(self) -> List[CompiledRule]:
        """Enabled rules in application order (priority, then insertion)"""
        return [compiled for compiled in self._sorted() if compiled.rule.enabled]

    def _sorted(self) -> List[CompiledRule]:
        with self._lock:
            snapshot = list(self._rules.values())
        return sorted(snapshot, key=lambda c: (c.rule.priority, c.order))

    # ------------------------------------------------------------------
    # Regression set
    # ------------------------------------------------------------------

    def add_regression_pattern(self, text: str):
        """Append a reported string to the permanent regression set"""
        if not text:
            raise RuleConfigurationError("Regression pattern must not be empty")
        with self._lock:
            if text not in self._regressions:
                self._regressions.append(text)
                self.version += 1

    def regression_patterns(self) -> Tuple[str, ...]:
        with self._lock:
            return tuple(self._regressions)

    # ------------------------------------------------------------------
    # Import / export
    # ------------------------------------------------------------------

    def export_rules(self) -> str:
        """Serialize rules and regression set to a JSON snapshot"""
        with self._lock:
            payload = {
                "version": self.version,
                "rules": [rule.to_dict() for rule in self.list_rules()],
                "regression_patterns": list(self._regressions),
            }
        return json.dumps(payload, ensure_ascii=False, indent=2)

    def import_rules(self, payload: str, replace: bool = True) -> int:
        """
        Load a snapshot produced by export_rules().

        Args:
            payload: JSON snapshot
            replace: drop current rules first; regression patterns are always kept

        Returns:
            Number of rules imported
        """
        try:
            data = json.loads(payload)
            rules = [CleaningRule.from_dict(item) for item in data["rules"]]
        except (ValueError, KeyError, TypeError) as e:
            raise RuleConfigurationError(f"Malformed rule snapshot: {e}") from e

        compiled = [(rule, self._compile(rule)) for rule in rules]
        with self._lock:
            if replace:
                self._rules.clear()
            for rule, regex in compiled:
                existing = self._rules.get(rule.id)
                order = existing.order if existing else self._next_order
                if not existing:
                    self._next_order += 1
                self._rules[rule.id] = CompiledRule(rule=rule, regex=regex, order=order)
            for text in data.get("regression_patterns", []):
                if text and text not in self._regressions:
                    self._regressions.append(text)
            self.version += 1

        logger.info(f"Imported {len(compiled)} cleaning rules (replace={replace})")
        return len(compiled)

    def get_statistics(self) -> Dict:
        rules = self.list_rules()
        by_type: Dict[str, int] = {}
        for rule in rules:
            by_type[rule.pattern_type.value] = by_type.get(rule.pattern_type.value, 0) + 1
        return {
            "version": self.version,
            "total_rules": len(rules),
            "enabled_rules": sum(1 for r in rules if r.enabled),
            "user_reported_rules": sum(1 for r in rules if r.user_reported),
            "rules_by_type": by_type,
            "regression_patterns": len(self.regression_patterns()),
        }


# Global registry instance
_global_registry: Optional[PatternRuleRegistry] = None
_global_lock = threading.Lock()


def get_rule_registry() -> PatternRuleRegistry:
    """Get global rule registry instance"""
    global _global_registry
    with _global_lock:
        if _global_registry is None:
            _global_registry = PatternRuleRegistry()
    return _global_registry
