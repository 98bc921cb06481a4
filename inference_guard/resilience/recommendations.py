"""
Recommendation builders.

Short, human-readable follow-ups attached to failure envelopes and model
analyses. Type-specific hints come first, then escalation hints, then
rate-based hints.
"""

from typing import Optional

from inference_guard.models.domain import (
    EscalationLevel,
    EscalationResult,
    FailureStats,
    FailureType,
)

TYPE_RECOMMENDATIONS: dict[FailureType, tuple[str, ...]] = {
    FailureType.TIMEOUT: (
        "Consider increasing timeout if pattern continues",
        "Check for resource contention or slow I/O",
    ),
    FailureType.MODEL_UNAVAILABLE: (
        "Verify model file exists and is accessible",
        "Check model version compatibility",
    ),
    FailureType.NAN_OUTPUT: (
        "Check for invalid input values (e.g., negative for log)",
        "Verify input normalization",
    ),
    FailureType.INVALID_INPUT: (
        "Validate input before inference",
        "Check for missing required fields",
    ),
    FailureType.INVALID_SHAPE: (
        "Check input tensor shape against the model signature",
    ),
    FailureType.OUT_OF_RANGE: (
        "Clamp input values to expected ranges",
    ),
    FailureType.CONFIDENCE_COLLAPSE: (
        "Input may be out-of-distribution",
        "Consider signal drift detection",
    ),
}

DEFAULT_RECOMMENDATION = "Monitor for additional failures"


def build_recommendations(
    failure_type: FailureType,
    escalation: EscalationResult,
    stats: FailureStats,
    high_failure_rate: float = 0.5,
) -> list[str]:
    """
    Recommendations for a single handled failure.

    Args:
        failure_type: Classified failure type
        escalation: Escalation decision for the failure
        stats: Window statistics after recording
        high_failure_rate: Failures per minute considered too high

    Returns:
        Ordered list of recommendations (never empty)
    """
    recommendations = list(
        TYPE_RECOMMENDATIONS.get(failure_type, (DEFAULT_RECOMMENDATION,))
    )

    if escalation.level == EscalationLevel.CIRCUIT_BREAK:
        recommendations.append("Circuit breaker active - ML disabled temporarily")
        recommendations.append("Manual intervention may be required")
    elif escalation.level == EscalationLevel.CRITICAL:
        recommendations.append("Critical failure - alert the model owner")
    elif escalation.level == EscalationLevel.ALERT:
        recommendations.append("Elevated failure rate detected")
        recommendations.append("Review recent changes to input sources")

    if stats.failure_rate > high_failure_rate:
        recommendations.append(
            "High failure rate - consider disabling ML for this model"
        )

    return recommendations


def build_health_recommendations(
    healthy: bool,
    circuit_broken: bool,
    failures_in_window: int,
    alert_after: int,
    cached_at: Optional[str],
) -> list[str]:
    """
    Recommendations for a model analysis. Healthy models get none.
    """
    if healthy:
        return []

    recommendations = []
    if circuit_broken:
        recommendations.append("Wait for circuit breaker to reset or manually reset")
    if failures_in_window >= alert_after:
        recommendations.append("Investigate recent failure causes")
    if cached_at is None:
        recommendations.append("No cached fallback available")
    return recommendations
