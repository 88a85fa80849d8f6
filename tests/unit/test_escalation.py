"""
Unit tests for core/escalation.py - ErrorEscalationSystem
"""
import json

import httpx
import pytest

from core.errors import (
    FallbackGenerationFailure,
    SystemResourceError,
    TranslationMethodFailure,
)
from core.escalation import (
    ConditionOperator,
    ConditionType,
    EscalationCondition,
    EscalationRule,
    ErrorEscalationSystem,
    LoggingNotificationChannel,
    NotificationChannel,
    WebhookNotificationChannel,
)
from core.models import Severity, SystemStateSnapshot


class FakeClock:
    def __init__(self, now=1_000_000.0):
        self.now = now

    def __call__(self):
        return self.now


class BrokenChannel(NotificationChannel):
    name = "log"

    async def notify(self, event):
        raise RuntimeError("channel down")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def system(clock):
    return ErrorEscalationSystem(cooldown_seconds=300, clock=clock)


def secondary_failure():
    return TranslationMethodFailure("secondary", ConnectionError("down"))


# ============================================================================
# Classification
# ============================================================================

class TestClassifySeverity:

    def test_code_map(self, system):
        assert system.classify_severity(TranslationMethodFailure("primary", ValueError())) == Severity.LOW
        assert system.classify_severity(secondary_failure()) == Severity.MEDIUM
        assert system.classify_severity(FallbackGenerationFailure("none")) == Severity.HIGH

    def test_unknown_error_is_medium(self, system):
        assert system.classify_severity(ValueError("boom")) == Severity.MEDIUM

    def test_elevated_error_rate_escalates_one_level(self, system):
        context = {"system_state": SystemStateSnapshot(error_rate=0.3)}
        assert system.classify_severity(secondary_failure(), context) == Severity.HIGH

    def test_overload_is_critical(self, system):
        context = {"system_state": {"system_load": 0.95}}
        assert system.classify_severity(secondary_failure(), context) == Severity.CRITICAL


# ============================================================================
# Processing
# ============================================================================

class TestProcessError:

    @pytest.mark.asyncio
    async def test_medium_error_not_escalated(self, system):
        assert await system.process_error(secondary_failure(), {"request_id": "r1"}) is None

    @pytest.mark.asyncio
    async def test_high_error_escalated(self, system):
        event = await system.process_error(FallbackGenerationFailure("no template"), {"request_id": "r1"})

        assert event is not None
        assert event.rule_id == "high_severity"
        assert event.severity == Severity.HIGH
        assert event.error_code == "fallback_generation_failed"
        assert event.cooldown_key == "high_severity:fallback_generation_failed"
        assert [a.channel for a in event.executed_actions] == ["log"]
        assert event.executed_actions[0].success

    @pytest.mark.asyncio
    async def test_context_is_serialized(self, system):
        event = await system.process_error(
            FallbackGenerationFailure("x"),
            {"request_id": "r1", "system_state": SystemStateSnapshot()},
        )
        assert event.context["system_state"]["degradation_level"] == "none"

    @pytest.mark.asyncio
    async def test_frequency_rule(self, system):
        for i in range(10):
            assert await system.process_error(secondary_failure(), {"request_id": f"r{i}"}) is None
        event = await system.process_error(secondary_failure(), {"request_id": "r10"})
        assert event.rule_id == "high_error_rate"


class TestCooldown:

    @pytest.mark.asyncio
    async def test_same_key_suppressed(self, system, clock):
        error = FallbackGenerationFailure("x")
        assert await system.process_error(error, {"request_id": "r1"}) is not None
        clock.now += 299
        assert await system.process_error(error, {"request_id": "r1"}) is None
        assert system.get_metrics()["suppressed_escalations"] == 1

    @pytest.mark.asyncio
    async def test_cooldown_expires(self, system, clock):
        error = FallbackGenerationFailure("x")
        await system.process_error(error, {"request_id": "r1"})
        clock.now += 301
        assert await system.process_error(error, {"request_id": "r1"}) is not None

    @pytest.mark.asyncio
    async def test_recurring_error_on_other_request_suppressed(self, system, clock):
        error = FallbackGenerationFailure("x")
        first = await system.process_error(error, {"request_id": "r1"})
        for i in range(2, 6):
            clock.now += 10
            assert await system.process_error(error, {"request_id": f"r{i}"}) is None
        assert first.context["request_id"] == "r1"
        assert system.get_metrics()["suppressed_escalations"] == 4

    @pytest.mark.asyncio
    async def test_other_error_code_not_suppressed(self, system):
        await system.process_error(FallbackGenerationFailure("x"), {"request_id": "r1"})
        assert await system.process_error(SystemResourceError("y"), {"request_id": "r1"}) is not None

    @pytest.mark.asyncio
    async def test_hourly_limit(self, system, clock):
        system.update_rule("high_severity", max_executions_per_hour=1)
        error = FallbackGenerationFailure("x")
        assert await system.process_error(error, {"request_id": "r1"}) is not None
        clock.now += 301
        assert await system.process_error(error, {"request_id": "r2"}) is None


# ============================================================================
# Channels
# ============================================================================

class TestChannels:

    @pytest.mark.asyncio
    async def test_webhook_receives_event(self, clock):
        received = []

        def handler(request):
            received.append(json.loads(request.content))
            return httpx.Response(200)

        webhook = WebhookNotificationChannel("https://ops.example/hook", transport=httpx.MockTransport(handler))
        system = ErrorEscalationSystem(channels=[LoggingNotificationChannel(), webhook], clock=clock)

        event = await system.process_error(SystemResourceError("degraded"), {"request_id": "r1"})

        assert event.rule_id == "critical_failure"
        assert [a.channel for a in event.executed_actions] == ["log", "webhook"]
        assert all(a.success for a in event.executed_actions)
        assert received[0]["error_code"] == "system_resource_error"
        assert received[0]["severity"] == "critical"

    @pytest.mark.asyncio
    async def test_webhook_retries_then_fails(self, clock):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(500)

        webhook = WebhookNotificationChannel("https://ops.example/hook", transport=httpx.MockTransport(handler))
        system = ErrorEscalationSystem(channels=[webhook], clock=clock)
        system.update_rule("critical_failure", retry_delay=0)

        event = await system.process_error(SystemResourceError("degraded"))

        action = event.executed_actions[0]
        assert not action.success
        assert action.retry_count == 3
        assert len(calls) == 4
        assert system.get_metrics()["failed_notifications"] == 1

    @pytest.mark.asyncio
    async def test_channel_exception_is_recorded(self, clock):
        system = ErrorEscalationSystem(channels=[BrokenChannel()], clock=clock)
        system.update_rule("high_severity", retry_attempts=0)

        event = await system.process_error(FallbackGenerationFailure("x"))

        assert event.executed_actions[0].error == "RuntimeError: channel down"

    def test_from_settings_adds_webhook(self, test_settings):
        test_settings.notification_webhook_url = "https://ops.example/hook"
        system = ErrorEscalationSystem.from_settings(test_settings)
        assert set(system.channels) == {"log", "webhook"}
        assert system.cooldown_seconds == test_settings.escalation_cooldown_seconds


# ============================================================================
# Rules, events and metrics
# ============================================================================

class TestRuleManagement:

    def test_add_duplicate_rule(self, system):
        rule = EscalationRule(
            id="timeouts",
            name="Timeouts",
            conditions=[EscalationCondition(ConditionType.ERROR_CODE, ConditionOperator.EQUALS,
                                            "translation_timeout")],
            channels=["log"],
        )
        system.add_rule(rule)
        with pytest.raises(ValueError):
            system.add_rule(rule)

    def test_update_unknown_rule(self, system):
        with pytest.raises(KeyError):
            system.update_rule("missing", priority=1)

    def test_update_rejects_id(self, system):
        with pytest.raises(ValueError):
            system.update_rule("high_severity", id="other")

    def test_remove_rule(self, system):
        assert system.remove_rule("high_severity") is True
        assert system.remove_rule("high_severity") is False

    def test_test_rule_does_not_dispatch(self, system):
        assert system.test_rule("high_severity", FallbackGenerationFailure("x")) is True
        assert system.test_rule("critical_failure", FallbackGenerationFailure("x")) is False
        assert system.get_metrics()["total_escalations"] == 0

    @pytest.mark.asyncio
    async def test_severity_in_condition(self, system):
        system.add_rule(EscalationRule(
            id="any_medium",
            name="Medium or worse",
            priority=0,
            conditions=[EscalationCondition(ConditionType.SEVERITY, ConditionOperator.AT_LEAST, "medium")],
            channels=["log"],
        ))
        event = await system.process_error(secondary_failure(), {"request_id": "r1"})
        assert event.rule_id == "any_medium"


class TestEvents:

    @pytest.mark.asyncio
    async def test_events_newest_first_and_resolve(self, system):
        first = await system.process_error(FallbackGenerationFailure("a"), {"request_id": "r1"})
        second = await system.process_error(SystemResourceError("b"), {"request_id": "r2"})

        assert [e.id for e in system.get_events()] == [second.id, first.id]
        assert [e.id for e in system.get_events(severity=Severity.HIGH)] == [first.id]

        assert system.resolve_event(first.id, "template restored") is True
        assert system.resolve_event(first.id) is False
        assert system.resolve_event("unknown") is False
        assert [e.id for e in system.get_events(resolved=False)] == [second.id]

        metrics = system.get_metrics()
        assert metrics["total_escalations"] == 2
        assert metrics["unresolved_events"] == 1
        assert metrics["by_rule"] == {"high_severity": 1, "critical_failure": 1}
