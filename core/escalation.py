#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
ErrorEscalationSystem - severity classification, rule evaluation and notifications

Terminal recovery failures are classified, matched against escalation rules
and dispatched to notification channels. A cooldown map keyed by
(rule, error_code) keeps repeated failures from flooding operators.
"""

import asyncio
import threading
import time
import uuid
from abc import ABC, abstractmethod
from collections import OrderedDict, deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Deque, Dict, List, Optional, Tuple

import httpx

from config.constants import (
    ESCALATION_HISTORY_LIMIT,
    ESCALATION_EVENT_LIMIT,
    ESCALATION_DEFAULT_RETRY_ATTEMPTS,
    ESCALATION_DEFAULT_RETRY_DELAY,
    WEBHOOK_TIMEOUT_SECONDS,
)
from config.logging_config import get_logger
from core.models import EscalationEvent, ExecutedAction, Severity

logger = get_logger(__name__)


# ============================================================================
# Notification channels
# ============================================================================

class NotificationChannel(ABC):
    """Destination for escalation events"""

    name: str = "channel"

    @abstractmethod
    async def notify(self, event: EscalationEvent) -> bool:
        """Deliver the event. Return True on success."""
        pass


class LoggingNotificationChannel(NotificationChannel):
    """Writes escalations to the application log"""

    name = "log"

    async def notify(self, event: EscalationEvent) -> bool:
        message = (
            f"ESCALATION [{event.severity.value.upper()}] {event.rule_name}: "
            f"{event.error_code} - {event.error_message}"
        )
        if event.severity == Severity.CRITICAL:
            logger.critical(message)
        else:
            logger.warning(message)
        return True


class WebhookNotificationChannel(NotificationChannel):
    """POSTs the event as JSON to a webhook URL"""

    name = "webhook"

    def __init__(self, url: str, timeout: float = WEBHOOK_TIMEOUT_SECONDS,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.url = url
        self.timeout = timeout
        self.transport = transport

    async def notify(self, event: EscalationEvent) -> bool:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            response = await client.post(self.url, json=event.to_dict())
            response.raise_for_status()
        return True


# ============================================================================
# Rules
# ============================================================================

class ConditionType(Enum):
    ERROR_CODE = "error_code"
    SEVERITY = "severity"
    FREQUENCY = "frequency"
    SYSTEM_STATE = "system_state"


class ConditionOperator(Enum):
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    CONTAINS = "contains"
    IN = "in"
    AT_LEAST = "at_least"


@dataclass
class EscalationCondition:
    """
    One test on an incoming error.

    frequency conditions count same-code errors within time_window seconds;
    system_state conditions read state_field from the context's system state.
    """
    type: ConditionType
    operator: ConditionOperator
    value: Any
    time_window: float = 600.0
    state_field: Optional[str] = None


@dataclass
class EscalationRule:
    id: str
    name: str
    conditions: List[EscalationCondition]
    channels: List[str]
    priority: int = 5
    description: str = ""
    retry_attempts: int = ESCALATION_DEFAULT_RETRY_ATTEMPTS
    retry_delay: float = ESCALATION_DEFAULT_RETRY_DELAY
    max_executions_per_hour: int = 10
    enabled: bool = True
    executions: Deque[float] = field(default_factory=deque, repr=False)


def default_rules() -> List[EscalationRule]:
    return [
        EscalationRule(
            id="critical_failure",
            name="Critical System Failure",
            description="Escalate critical failures immediately",
            priority=1,
            conditions=[EscalationCondition(ConditionType.SEVERITY, ConditionOperator.EQUALS, Severity.CRITICAL)],
            channels=["log", "webhook"],
            retry_attempts=3,
            max_executions_per_hour=10,
        ),
        EscalationRule(
            id="high_severity",
            name="High Severity Failure",
            description="Escalate high severity failures",
            priority=2,
            conditions=[EscalationCondition(ConditionType.SEVERITY, ConditionOperator.EQUALS, Severity.HIGH)],
            channels=["log"],
            max_executions_per_hour=20,
        ),
        EscalationRule(
            id="high_error_rate",
            name="High Error Rate",
            description="More than 10 errors of the same code in 10 minutes",
            priority=3,
            conditions=[EscalationCondition(
                ConditionType.FREQUENCY, ConditionOperator.GREATER_THAN, 10, time_window=600.0
            )],
            channels=["log", "webhook"],
            max_executions_per_hour=4,
        ),
        EscalationRule(
            id="quality_degradation",
            name="Translation Quality Degradation",
            description="Purity validation failing more than 5 times in 15 minutes",
            priority=4,
            conditions=[
                EscalationCondition(ConditionType.ERROR_CODE, ConditionOperator.EQUALS, "purity_validation_failed"),
                EscalationCondition(ConditionType.FREQUENCY, ConditionOperator.GREATER_THAN, 5, time_window=900.0),
            ],
            channels=["log"],
            retry_attempts=1,
            max_executions_per_hour=2,
        ),
    ]


# Base severity per error code; unknown codes are medium
ERROR_CODE_SEVERITY = {
    "primary_translation_failed": Severity.LOW,
    "secondary_translation_failed": Severity.MEDIUM,
    "translation_timeout": Severity.MEDIUM,
    "purity_validation_failed": Severity.MEDIUM,
    "fallback_generation_failed": Severity.HIGH,
    "cleaning_regression": Severity.HIGH,
    "system_resource_error": Severity.CRITICAL,
}


def _state_value(state: Any, name: str, default: Any = None) -> Any:
    if state is None:
        return default
    if isinstance(state, dict):
        return state.get(name, default)
    return getattr(state, name, default)


# ============================================================================
# Escalation system
# ============================================================================

class ErrorEscalationSystem:
    """Classifies failures and notifies operators under a cooldown"""

    def __init__(self, cooldown_seconds: float = 300.0,
                 channels: Optional[List[NotificationChannel]] = None,
                 rules: Optional[List[EscalationRule]] = None,
                 clock: Callable[[], float] = time.time):
        self.cooldown_seconds = cooldown_seconds
        self.clock = clock
        self.channels: Dict[str, NotificationChannel] = {}
        for channel in (channels if channels is not None else [LoggingNotificationChannel()]):
            self.channels[channel.name] = channel

        self.rules: Dict[str, EscalationRule] = {}
        for rule in (default_rules() if rules is None else rules):
            self.rules[rule.id] = rule

        self._lock = threading.Lock()
        self._cooldowns: Dict[Tuple[str, str], float] = {}
        self._history: Deque[Tuple[float, str]] = deque(maxlen=ESCALATION_HISTORY_LIMIT)
        self._events: "OrderedDict[str, EscalationEvent]" = OrderedDict()
        self._metrics = {
            "total_escalations": 0,
            "by_severity": {},
            "by_rule": {},
            "successful_notifications": 0,
            "failed_notifications": 0,
            "suppressed_escalations": 0,
        }

    @classmethod
    def from_settings(cls, settings) -> "ErrorEscalationSystem":
        channels: List[NotificationChannel] = [LoggingNotificationChannel()]
        if settings.notification_webhook_url:
            channels.append(WebhookNotificationChannel(settings.notification_webhook_url))
        rules = default_rules()
        for rule in rules:
            rule.retry_attempts = min(rule.retry_attempts, settings.max_retry_attempts)
        return cls(cooldown_seconds=settings.escalation_cooldown_seconds, channels=channels, rules=rules)

    def add_channel(self, channel: NotificationChannel):
        self.channels[channel.name] = channel

    # ------------------------------------------------------------------
    # Classification
    # ------------------------------------------------------------------

    def classify_severity(self, error: Exception, context: Optional[Dict[str, Any]] = None) -> Severity:
        """Severity from the code map, raised by system state, floored by the error's own severity"""
        code = getattr(error, "code", type(error).__name__)
        severity = ERROR_CODE_SEVERITY.get(code, Severity.MEDIUM)

        state = (context or {}).get("system_state")
        error_rate = _state_value(state, "error_rate", 0.0) or 0.0
        load = _state_value(state, "system_load", 0.0) or 0.0
        if error_rate > 0.5 or load > 0.9:
            severity = Severity.CRITICAL
        elif error_rate > 0.2 or load > 0.8:
            severity = severity.escalate()

        own = getattr(error, "severity", None)
        if isinstance(own, Severity):
            severity = Severity.highest(severity, own)
        return severity

    def _frequency(self, code: str, window: float) -> int:
        cutoff = self.clock() - window
        with self._lock:
            return sum(1 for ts, c in self._history if c == code and ts >= cutoff)

    @staticmethod
    def _compare(operator: ConditionOperator, actual: Any, expected: Any) -> bool:
        if isinstance(actual, Severity):
            if isinstance(expected, (list, tuple, set)):
                expected = [Severity(v) for v in expected]
            else:
                expected = Severity(expected)
            if operator in (ConditionOperator.GREATER_THAN, ConditionOperator.LESS_THAN,
                            ConditionOperator.AT_LEAST):
                actual, expected = actual.rank, expected.rank

        if operator == ConditionOperator.EQUALS:
            return actual == expected
        if operator == ConditionOperator.NOT_EQUALS:
            return actual != expected
        if operator == ConditionOperator.GREATER_THAN:
            return actual is not None and actual > expected
        if operator == ConditionOperator.LESS_THAN:
            return actual is not None and actual < expected
        if operator == ConditionOperator.AT_LEAST:
            return actual is not None and actual >= expected
        if operator == ConditionOperator.CONTAINS:
            return isinstance(actual, str) and str(expected) in actual
        if operator == ConditionOperator.IN:
            return actual in expected
        return False

    def _evaluate(self, condition: EscalationCondition, code: str, severity: Severity,
                  context: Dict[str, Any]) -> bool:
        if condition.type == ConditionType.ERROR_CODE:
            actual = code
        elif condition.type == ConditionType.SEVERITY:
            actual = severity
        elif condition.type == ConditionType.FREQUENCY:
            actual = self._frequency(code, condition.time_window)
        elif condition.type == ConditionType.SYSTEM_STATE:
            actual = _state_value(context.get("system_state"), condition.state_field or "")
        else:
            return False
        return self._compare(condition.operator, actual, condition.value)

    def _matching_rules(self, code: str, severity: Severity, context: Dict[str, Any]) -> List[EscalationRule]:
        matched = [
            rule for rule in self.rules.values()
            if rule.enabled and all(self._evaluate(c, code, severity, context) for c in rule.conditions)
        ]
        return sorted(matched, key=lambda r: r.priority)

    # ------------------------------------------------------------------
    # Processing
    # ------------------------------------------------------------------

    async def process_error(self, error: Exception,
                            context: Optional[Dict[str, Any]] = None) -> Optional[EscalationEvent]:
        """
        Record an error and escalate it when a rule matches.

        Args:
            error: The terminal failure
            context: request_id, user_id, system_state and any extra details

        Returns:
            The EscalationEvent, or None when nothing matched or the
            escalation was suppressed by cooldown or rate limit
        """
        context = dict(context or {})
        code = getattr(error, "code", type(error).__name__)
        message = getattr(error, "message", None) or str(error)
        now = self.clock()

        with self._lock:
            self._history.append((now, code))

        severity = self.classify_severity(error, context)
        rules = self._matching_rules(code, severity, context)
        if not rules:
            return None
        rule = rules[0]

        key = (rule.id, code)
        with self._lock:
            last = self._cooldowns.get(key)
            if last is not None and now - last < self.cooldown_seconds:
                self._metrics["suppressed_escalations"] += 1
                logger.debug(f"Escalation for {key} suppressed by cooldown")
                return None

            while rule.executions and now - rule.executions[0] > 3600:
                rule.executions.popleft()
            if len(rule.executions) >= rule.max_executions_per_hour:
                self._metrics["suppressed_escalations"] += 1
                logger.warning(f"Escalation rule '{rule.id}' hit its hourly limit")
                return None

            self._cooldowns[key] = now
            rule.executions.append(now)

        event = EscalationEvent(
            id=uuid.uuid4().hex[:12],
            timestamp=now,
            rule_id=rule.id,
            rule_name=rule.name,
            severity=severity,
            error_code=code,
            error_message=message,
            cooldown_key=f"{rule.id}:{code}",
            context=self._plain_context(context),
        )

        for name in rule.channels:
            channel = self.channels.get(name)
            if channel is None:
                logger.debug(f"Channel '{name}' not configured, skipping for rule '{rule.id}'")
                continue
            event.executed_actions.append(await self._dispatch(channel, rule, event))

        with self._lock:
            self._events[event.id] = event
            while len(self._events) > ESCALATION_EVENT_LIMIT:
                self._events.popitem(last=False)
            m = self._metrics
            m["total_escalations"] += 1
            m["by_severity"][severity.value] = m["by_severity"].get(severity.value, 0) + 1
            m["by_rule"][rule.id] = m["by_rule"].get(rule.id, 0) + 1
            for action in event.executed_actions:
                if action.success:
                    m["successful_notifications"] += 1
                else:
                    m["failed_notifications"] += 1

        log = logger.critical if severity == Severity.CRITICAL else logger.warning
        log(f"Escalated {code} via rule '{rule.id}' ({severity.value}), event {event.id}")
        return event

    async def _dispatch(self, channel: NotificationChannel, rule: EscalationRule,
                        event: EscalationEvent) -> ExecutedAction:
        start_time = time.time()
        retry_count = 0
        error = None
        success = False

        while True:
            try:
                success = bool(await channel.notify(event))
                error = None if success else "channel reported failure"
            except Exception as e:
                success = False
                error = f"{type(e).__name__}: {e}"
                logger.warning(f"Notification via '{channel.name}' failed: {error}")
            if success or retry_count >= rule.retry_attempts:
                break
            retry_count += 1
            if rule.retry_delay > 0:
                await asyncio.sleep(rule.retry_delay)

        return ExecutedAction(
            channel=channel.name,
            timestamp=start_time,
            success=success,
            duration=time.time() - start_time,
            error=error,
            retry_count=retry_count,
        )

    @staticmethod
    def _plain_context(context: Dict[str, Any]) -> Dict[str, Any]:
        plain = {}
        for key, value in context.items():
            if hasattr(value, "to_dict"):
                value = value.to_dict()
            elif isinstance(value, Enum):
                value = value.value
            plain[key] = value
        return plain

    # ------------------------------------------------------------------
    # Rule management
    # ------------------------------------------------------------------

    def add_rule(self, rule: EscalationRule):
        if rule.id in self.rules:
            raise ValueError(f"Escalation rule already exists: {rule.id}")
        self.rules[rule.id] = rule
        logger.info(f"Added escalation rule '{rule.id}'")

    def update_rule(self, rule_id: str, **changes) -> EscalationRule:
        rule = self.rules.get(rule_id)
        if rule is None:
            raise KeyError(rule_id)
        for name, value in changes.items():
            if not hasattr(rule, name) or name == "id":
                raise ValueError(f"Cannot update escalation rule field: {name}")
            setattr(rule, name, value)
        return rule

    def remove_rule(self, rule_id: str) -> bool:
        return self.rules.pop(rule_id, None) is not None

    def test_rule(self, rule_id: str, error: Exception,
                  context: Optional[Dict[str, Any]] = None) -> bool:
        """Whether the rule's conditions match the error; dispatches nothing"""
        rule = self.rules.get(rule_id)
        if rule is None:
            return False
        context = context or {}
        code = getattr(error, "code", type(error).__name__)
        severity = self.classify_severity(error, context)
        triggered = all(self._evaluate(c, code, severity, context) for c in rule.conditions)
        logger.info(f"Escalation rule test '{rule_id}' for {code}: {triggered}")
        return triggered

    # ------------------------------------------------------------------
    # Events & metrics
    # ------------------------------------------------------------------

    def get_events(self, severity: Optional[Severity] = None, resolved: Optional[bool] = None,
                   limit: Optional[int] = None) -> List[EscalationEvent]:
        """Events newest first"""
        with self._lock:
            events = list(reversed(self._events.values()))
        if severity is not None:
            events = [e for e in events if e.severity == Severity(severity)]
        if resolved is not None:
            events = [e for e in events if e.resolved == resolved]
        return events[:limit] if limit else events

    def resolve_event(self, event_id: str, notes: str = "") -> bool:
        with self._lock:
            event = self._events.get(event_id)
            if event is None or event.resolved:
                return False
            event.resolved = True
            event.resolved_at = self.clock()
            event.resolution_notes = notes
        logger.info(f"Escalation event {event_id} resolved")
        return True

    def get_metrics(self) -> Dict[str, Any]:
        with self._lock:
            metrics = dict(self._metrics)
            metrics["by_severity"] = dict(self._metrics["by_severity"])
            metrics["by_rule"] = dict(self._metrics["by_rule"])
            metrics["unresolved_events"] = sum(1 for e in self._events.values() if not e.resolved)
        metrics["active_rules"] = sum(1 for r in self.rules.values() if r.enabled)
        return metrics
