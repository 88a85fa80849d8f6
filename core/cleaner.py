#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
SpecializedPatternCleaner - removes UI artifacts and cross-script leakage

Applies the enabled rules of a PatternRuleRegistry in priority order, repeating
until a pass changes nothing, then re-checks the output against the regression
set. A report with surviving regressions is unsafe and must not be used.
"""

import re
import threading
import time
from typing import Dict, List, Optional

from config.constants import (
    MAX_CLEANING_PASSES,
    CLEANING_HIGH_REMOVAL_RATIO,
    CLEANING_MEDIUM_REMOVAL_RATIO,
    CLEANING_MIN_CONFIDENCE,
    CLEANING_SEVERITY_PENALTY,
)
from config.logging_config import get_logger
from core.models import AppliedRule, CleaningReport, RuleAction
from core.rules import PatternRuleRegistry, REGRESSION_TOKENS, get_rule_registry, regression_regex

logger = get_logger(__name__)


class SpecializedPatternCleaner:
    """Rule-driven cleaner for translated legal text"""

    # Normalization applied only when a rule changed the text
    FINALIZE_PATTERNS = [
        (re.compile(r"\(\s*\)|\[\s*\]"), ""),             # empty brackets
        (re.compile(r"[ \t]+"), " "),
        (re.compile(r" *\n *"), "\n"),
        (re.compile(r"\n{3,}"), "\n\n"),
        (re.compile(r"[ \t]+([،؛؟.,])"), r"\1"),          # space before punctuation
    ]

    def __init__(self, registry: Optional[PatternRuleRegistry] = None,
                 max_passes: int = MAX_CLEANING_PASSES):
        self.registry = registry or get_rule_registry()
        self.max_passes = max_passes
        self._stats_lock = threading.Lock()
        self._stats = {
            "total_cleanings": 0,
            "texts_changed": 0,
            "user_reported_hits": 0,
            "regressions_detected": 0,
            "rule_hits": {},
        }

    def clean(self, text: str) -> CleaningReport:
        """
        Clean text with the registry's enabled rules.

        Args:
            text: Raw text

        Returns:
            CleaningReport with cleaned text, applied rules and confidence
        """
        start_time = time.time()
        if not text:
            return CleaningReport(original_text=text or "", cleaned_text=text or "")

        rules = self.registry.enabled_rules()
        current = text
        applied: Dict[str, AppliedRule] = {}
        passes = 0

        while passes < self.max_passes:
            passes += 1
            changed = False
            for compiled in rules:
                rule = compiled.rule
                if rule.action == RuleAction.FLAG:
                    continue
                replacement = rule.replacement if rule.action == RuleAction.REPLACE else ""
                new_text, count = compiled.regex.subn(replacement, current)
                if count == 0 or new_text == current:
                    continue
                current = new_text
                changed = True
                if rule.id in applied:
                    applied[rule.id].matches += count
                else:
                    applied[rule.id] = AppliedRule(
                        rule_id=rule.id,
                        name=rule.name,
                        severity=rule.severity,
                        matches=count,
                        user_reported=rule.user_reported,
                    )
            if not changed:
                break

        if applied:
            current = self._finalize(current)

        flagged = []
        for compiled in rules:
            if compiled.rule.action != RuleAction.FLAG:
                continue
            matches = len(compiled.regex.findall(current))
            if matches:
                flagged.append(AppliedRule(
                    rule_id=compiled.rule.id,
                    name=compiled.rule.name,
                    severity=compiled.rule.severity,
                    matches=matches,
                    user_reported=compiled.rule.user_reported,
                ))

        applied_rules = list(applied.values())
        remaining = self.find_regressions(current)
        report = CleaningReport(
            original_text=text,
            cleaned_text=current,
            applied_rules=applied_rules,
            flagged_rules=flagged,
            user_reported_patterns=sum(1 for r in applied_rules if r.user_reported),
            specialized_actions=sum(r.matches for r in applied_rules),
            confidence=self._calculate_confidence(text, current, applied_rules),
            regression_prevented=not remaining,
            remaining_regressions=remaining,
            passes=passes,
            processing_time=time.time() - start_time,
        )

        self._record(report)
        if remaining:
            logger.error(f"Cleaning regression: reported patterns survived ({', '.join(remaining)})")
        elif applied_rules:
            logger.debug(
                f"Cleaned text with {len(applied_rules)} rules in {passes} passes "
                f"(confidence {report.confidence})"
            )
        return report

    def _finalize(self, text: str) -> str:
        for regex, replacement in self.FINALIZE_PATTERNS:
            text = regex.sub(replacement, text)
        return text.strip()

    @staticmethod
    def _calculate_confidence(original: str, cleaned: str, applied: List[AppliedRule]) -> float:
        """1.0 minus severity penalties, with an extra cut for heavy removal"""
        if not applied:
            return 1.0

        penalty = sum(CLEANING_SEVERITY_PENALTY[rule.severity.value] for rule in applied)
        removal_ratio = 1 - len(cleaned) / len(original)
        if removal_ratio > CLEANING_HIGH_REMOVAL_RATIO:
            penalty += 0.3
        elif removal_ratio > CLEANING_MEDIUM_REMOVAL_RATIO:
            penalty += 0.1

        return round(max(CLEANING_MIN_CONFIDENCE, min(1.0, 1.0 - penalty)), 3)

    def find_regressions(self, text: str) -> List[str]:
        """Reported strings or tokens still present in text"""
        remaining = [pattern for pattern in self.registry.regression_patterns()
                     if regression_regex(pattern).search(text)]
        remaining.extend(name for name, regex in REGRESSION_TOKENS if regex.search(text))
        return remaining

    def validate_regressions(self) -> Dict[str, List[str]]:
        """
        Run every regression-set string through the cleaner.

        Returns:
            Mapping of failing regression strings to what survived (empty when all pass)
        """
        failures = {}
        for pattern in self.registry.regression_patterns():
            report = self.clean(pattern)
            if not report.regression_prevented:
                failures[pattern] = report.remaining_regressions
        if failures:
            logger.warning(f"{len(failures)} regression patterns are no longer cleaned")
        return failures

    def _record(self, report: CleaningReport):
        with self._stats_lock:
            self._stats["total_cleanings"] += 1
            if report.changed:
                self._stats["texts_changed"] += 1
            self._stats["user_reported_hits"] += report.user_reported_patterns
            if not report.regression_prevented:
                self._stats["regressions_detected"] += 1
            hits = self._stats["rule_hits"]
            for rule in report.applied_rules:
                hits[rule.rule_id] = hits.get(rule.rule_id, 0) + rule.matches

    def get_statistics(self) -> Dict:
        with self._stats_lock:
            stats = dict(self._stats)
            stats["rule_hits"] = dict(self._stats["rule_hits"])
        stats["registry"] = self.registry.get_statistics()
        return stats
