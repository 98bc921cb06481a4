"""
Response Models for Inference Guard.

Pydantic envelopes returned by the gateway's failure handler and health
views. Callers typically log or serialize these with model_dump().

Anti-Patterns Avoided:
- Optional fields use Optional[T] with explicit None default
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from inference_guard.models.domain import (
    EscalationLevel,
    FailureType,
    HealthStatus,
)


# =============================================================================
# Failure Handling Envelope
# =============================================================================


class FailureInfo(BaseModel):
    """What failed and the sanitized context it failed in."""

    model_config = ConfigDict(protected_namespaces=())

    type: FailureType = Field(..., description="Classified failure type")
    model_id: str = Field(..., description="Model identifier")
    error: str = Field(default="", description="Error message")
    context: dict[str, Any] = Field(
        default_factory=dict, description="Sanitized scalar context"
    )


class EscalationInfo(BaseModel):
    """Escalation decision as reported to the caller."""

    level: EscalationLevel
    reason: str
    alert_sent: bool = False
    circuit_broken: bool = False


class FailureStatsInfo(BaseModel):
    """Window statistics after the failure was recorded."""

    failures_in_window: int = 0
    window_duration_ms: int = 0
    failure_rate: float = 0.0
    last_success: Optional[str] = None


class FailureHandlingResult(BaseModel):
    """
    Envelope returned by handle_inference_failure.

    Attributes:
        handled: Always True; the failure went through the full pipeline
        timestamp: ISO 8601 time of handling (UTC)
        failure: Classification and sanitized context
        escalation: Escalation decision
        fallback: Substitute result (always has is_fallback=True)
        stats: Window statistics after recording
        recommendations: Human-readable follow-up suggestions
    """

    handled: bool = True
    timestamp: str
    failure: FailureInfo
    escalation: EscalationInfo
    fallback: dict[str, Any]
    stats: FailureStatsInfo
    recommendations: list[str] = Field(default_factory=list)


# =============================================================================
# Health Views
# =============================================================================


class HealthCheck(BaseModel):
    """Result of quick_check."""

    model_config = ConfigDict(protected_namespaces=())

    model_id: str
    healthy: bool
    status: HealthStatus
    circuit_broken: bool = False
    failures_in_window: int = 0
    failure_rate: float = 0.0


class CircuitBreakerInfo(BaseModel):
    """Breaker section of an analysis."""

    broken: bool = False
    remaining_ms: Optional[int] = None
    tripped_at: Optional[str] = None
    reason: Optional[str] = None


class FailureBreakdown(BaseModel):
    """Failures section of an analysis."""

    in_window: int = 0
    window_duration_ms: int = 0
    by_type: dict[FailureType, int] = Field(default_factory=dict)
    rate: float = 0.0
    last_failure: Optional[str] = None
    last_success: Optional[str] = None


class CacheInfo(BaseModel):
    """Cache section of an analysis."""

    available: bool = False
    cached_at: Optional[str] = None


class ThresholdInfo(BaseModel):
    """Configured escalation thresholds."""

    alert_after: int
    circuit_break_after: int
    circuit_break_duration_ms: int
    failure_window_ms: int


class ModelAnalysis(BaseModel):
    """Read-only composite view returned by analyze."""

    model_config = ConfigDict(protected_namespaces=())

    model_id: str
    timestamp: str
    health: HealthCheck
    circuit_breaker: CircuitBreakerInfo
    failures: FailureBreakdown
    cache: CacheInfo
    thresholds: ThresholdInfo
    recommendations: list[str] = Field(default_factory=list)
