"""
Tests for the EscalationPolicy rule table.

Default ladder: log 1, fallback 1, alert 3, circuit break 5.
"""

import pytest


@pytest.fixture
def policy(registry):
    """Policy with default thresholds over the fake-clock registry."""
    from inference_guard.resilience.escalation import EscalationPolicy

    return EscalationPolicy(breakers=registry.breakers, tracker=registry.tracker)


class TestCountThresholds:
    """Escalation by failures in window."""

    def test_zero_failures_is_none(self, policy):
        from inference_guard.models.domain import EscalationLevel, FailureType

        result = policy.determine_escalation("m", FailureType.TIMEOUT, failure_count=0)

        assert result.level is EscalationLevel.NONE
        assert result.should_fallback is False

    @pytest.mark.parametrize("count", [1, 2])
    def test_fallback_level(self, policy, count):
        from inference_guard.models.domain import EscalationLevel, FailureType

        result = policy.determine_escalation("m", FailureType.TIMEOUT, failure_count=count)

        assert result.level is EscalationLevel.FALLBACK
        assert result.should_fallback is True
        assert result.should_alert is False
        assert result.should_trip_breaker is False

    @pytest.mark.parametrize("count", [3, 4])
    def test_alert_level(self, policy, count):
        from inference_guard.models.domain import EscalationLevel, FailureType

        result = policy.determine_escalation("m", FailureType.TIMEOUT, failure_count=count)

        assert result.level is EscalationLevel.ALERT
        assert result.should_alert is True
        assert result.should_trip_breaker is False

    @pytest.mark.parametrize("count", [5, 9])
    def test_circuit_break_level(self, policy, count):
        from inference_guard.models.domain import EscalationLevel, FailureType

        result = policy.determine_escalation("m", FailureType.TIMEOUT, failure_count=count)

        assert result.level is EscalationLevel.CIRCUIT_BREAK
        assert result.should_trip_breaker is True
        assert result.should_alert is True
        assert result.failure_count == count

    def test_count_defaults_to_tracker(self, policy, registry):
        from inference_guard.models.domain import EscalationLevel, FailureType

        for _ in range(3):
            registry.tracker.record_failure("m", FailureType.TIMEOUT)

        result = policy.determine_escalation("m", FailureType.TIMEOUT)

        assert result.level is EscalationLevel.ALERT
        assert result.failure_count == 3


class TestRuleOrder:
    """Open breakers and critical types take precedence."""

    def test_open_breaker_wins(self, policy, registry):
        from inference_guard.models.domain import EscalationLevel, FailureType

        registry.breakers.trip("m", "manual", 5)

        result = policy.determine_escalation("m", FailureType.MODEL_UNAVAILABLE, failure_count=1)

        assert result.level is EscalationLevel.CIRCUIT_BREAK
        assert result.reason == "Circuit breaker active"
        assert result.should_trip_breaker is False
        assert result.remaining_ms > 0

    @pytest.mark.parametrize("failure_type", ["MODEL_UNAVAILABLE", "CONFIDENCE_COLLAPSE"])
    def test_critical_type_on_first_failure(self, policy, failure_type):
        from inference_guard.models.domain import EscalationLevel, FailureType

        result = policy.determine_escalation("m", FailureType(failure_type), failure_count=1)

        assert result.level is EscalationLevel.CRITICAL
        assert result.should_alert is True
        assert result.should_trip_breaker is False

    def test_critical_type_beats_count_threshold(self, policy):
        from inference_guard.models.domain import EscalationLevel, FailureType

        result = policy.determine_escalation("m", FailureType.MODEL_UNAVAILABLE, failure_count=7)

        assert result.level is EscalationLevel.CRITICAL

    def test_rule_names_in_order(self, policy):
        assert [rule.name for rule in policy.rules] == [
            "breaker_open",
            "critical_type",
            "circuit_break_threshold",
            "alert_threshold",
            "fallback_threshold",
            "log_threshold",
        ]


class TestCustomThresholds:
    """Custom ladders and the LOG level."""

    def test_log_level_below_fallback(self, registry):
        from inference_guard.models.domain import EscalationLevel, FailureType
        from inference_guard.resilience.escalation import (
            EscalationPolicy,
            EscalationThresholds,
        )

        policy = EscalationPolicy(
            breakers=registry.breakers,
            tracker=registry.tracker,
            thresholds=EscalationThresholds(log_after=1, fallback_after=2, alert_after=3, circuit_break_after=4),
        )

        assert policy.determine_escalation("m", FailureType.TIMEOUT, 1).level is EscalationLevel.LOG
        assert policy.determine_escalation("m", FailureType.TIMEOUT, 2).level is EscalationLevel.FALLBACK
        assert policy.determine_escalation("m", FailureType.TIMEOUT, 4).level is EscalationLevel.CIRCUIT_BREAK

    def test_no_critical_types(self, registry):
        from inference_guard.models.domain import EscalationLevel, FailureType
        from inference_guard.resilience.escalation import EscalationPolicy

        policy = EscalationPolicy(
            breakers=registry.breakers,
            tracker=registry.tracker,
            critical_types=(),
        )

        result = policy.determine_escalation("m", FailureType.MODEL_UNAVAILABLE, 1)

        assert result.level is EscalationLevel.FALLBACK

    def test_policy_does_not_mutate_state(self, policy, registry):
        from inference_guard.models.domain import FailureType

        policy.determine_escalation("m", FailureType.TIMEOUT, failure_count=10)

        assert registry.breakers.is_open("m") is False
        assert registry.tracker.get_failure_stats("m").failures_in_window == 0
