"""
Escalation Policy.

Decides how severe a failure is from breaker state, failure type and the
number of failures in the window. The decision is an ordered table of
(predicate, builder) rules evaluated top to bottom; the first rule whose
predicate matches produces the EscalationResult.

Rule order:
    1. breaker already open          -> CIRCUIT_BREAK (fallback)
    2. critical failure type         -> CRITICAL (alert, fallback)
    3. count >= circuit_break_after  -> CIRCUIT_BREAK (trip, alert, fallback)
    4. count >= alert_after          -> ALERT (alert, fallback)
    5. count >= fallback_after       -> FALLBACK (fallback)
    6. count >= log_after            -> LOG (fallback)
    7. otherwise                     -> NONE
"""

from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from inference_guard.models.domain import (
    CircuitBreakerStatus,
    EscalationLevel,
    EscalationResult,
    FailureType,
)
from inference_guard.resilience.circuit_breaker import CircuitBreakerRegistry
from inference_guard.resilience.failure_tracker import FailureTracker


@dataclass(frozen=True)
class EscalationThresholds:
    """Failure counts at which each escalation level starts."""

    log_after: int = 1
    fallback_after: int = 1
    alert_after: int = 3
    circuit_break_after: int = 5


@dataclass(frozen=True)
class EscalationInput:
    """Everything a rule may look at."""

    failure_type: FailureType
    failure_count: int
    breaker: CircuitBreakerStatus


@dataclass(frozen=True)
class EscalationRule:
    """One row of the escalation table."""

    name: str
    predicate: Callable[[EscalationInput], bool]
    build: Callable[[EscalationInput], EscalationResult]


def build_rules(
    thresholds: EscalationThresholds,
    critical_types: Iterable[FailureType],
) -> tuple[EscalationRule, ...]:
    """
    Build the ordered escalation table for a set of thresholds.

    Args:
        thresholds: Count thresholds
        critical_types: Failure types that escalate to CRITICAL immediately

    Returns:
        Rules in evaluation order
    """
    critical = frozenset(critical_types)

    return (
        EscalationRule(
            name="breaker_open",
            predicate=lambda i: i.breaker.broken,
            build=lambda i: EscalationResult(
                level=EscalationLevel.CIRCUIT_BREAK,
                reason="Circuit breaker active",
                failure_count=i.failure_count,
                should_fallback=True,
                remaining_ms=i.breaker.remaining_ms,
            ),
        ),
        EscalationRule(
            name="critical_type",
            predicate=lambda i: i.failure_type in critical,
            build=lambda i: EscalationResult(
                level=EscalationLevel.CRITICAL,
                reason=f"Critical failure type: {i.failure_type.value}",
                failure_count=i.failure_count,
                should_alert=True,
                should_fallback=True,
            ),
        ),
        EscalationRule(
            name="circuit_break_threshold",
            predicate=lambda i: i.failure_count >= thresholds.circuit_break_after,
            build=lambda i: EscalationResult(
                level=EscalationLevel.CIRCUIT_BREAK,
                reason=f"{i.failure_count} failures in window exceeds threshold",
                failure_count=i.failure_count,
                should_alert=True,
                should_fallback=True,
                should_trip_breaker=True,
            ),
        ),
        EscalationRule(
            name="alert_threshold",
            predicate=lambda i: i.failure_count >= thresholds.alert_after,
            build=lambda i: EscalationResult(
                level=EscalationLevel.ALERT,
                reason=f"{i.failure_count} failures in window",
                failure_count=i.failure_count,
                should_alert=True,
                should_fallback=True,
            ),
        ),
        EscalationRule(
            name="fallback_threshold",
            predicate=lambda i: i.failure_count >= thresholds.fallback_after,
            build=lambda i: EscalationResult(
                level=EscalationLevel.FALLBACK,
                reason="Failure occurred, using fallback",
                failure_count=i.failure_count,
                should_fallback=True,
            ),
        ),
        EscalationRule(
            name="log_threshold",
            predicate=lambda i: i.failure_count >= thresholds.log_after,
            build=lambda i: EscalationResult(
                level=EscalationLevel.LOG,
                reason="Failure logged",
                failure_count=i.failure_count,
                should_fallback=True,
            ),
        ),
    )


class EscalationPolicy:
    """
    Escalation decisions for inference failures.

    The only state the policy reads is the breaker registry and the failure
    tracker; it never mutates either.
    """

    def __init__(
        self,
        breakers: CircuitBreakerRegistry,
        tracker: FailureTracker,
        thresholds: Optional[EscalationThresholds] = None,
        critical_types: Iterable[FailureType] = (
            FailureType.MODEL_UNAVAILABLE,
            FailureType.CONFIDENCE_COLLAPSE,
        ),
    ) -> None:
        self._breakers = breakers
        self._tracker = tracker
        self._thresholds = thresholds or EscalationThresholds()
        self._rules = build_rules(self._thresholds, critical_types)

    @property
    def thresholds(self) -> EscalationThresholds:
        """Configured count thresholds."""
        return self._thresholds

    @property
    def rules(self) -> tuple[EscalationRule, ...]:
        """The escalation table in evaluation order."""
        return self._rules

    def determine_escalation(
        self,
        model_id: str,
        failure_type: FailureType,
        failure_count: Optional[int] = None,
    ) -> EscalationResult:
        """
        Decide the escalation level for a failure.

        Args:
            model_id: Model identifier
            failure_type: Classified failure type
            failure_count: Override for the window count (defaults to the
                tracker's failures_in_window)

        Returns:
            EscalationResult from the first matching rule
        """
        if failure_count is None:
            failure_count = self._tracker.get_failure_stats(model_id).failures_in_window

        escalation_input = EscalationInput(
            failure_type=FailureType(failure_type),
            failure_count=failure_count,
            breaker=self._breakers.check(model_id),
        )

        for rule in self._rules:
            if rule.predicate(escalation_input):
                return rule.build(escalation_input)

        return EscalationResult(
            level=EscalationLevel.NONE,
            reason="No escalation needed",
            failure_count=failure_count,
        )
