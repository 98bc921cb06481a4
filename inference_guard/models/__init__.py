"""Models Package - domain value objects and response envelopes."""

from inference_guard.models.domain import (
    NO_OUTPUT,
    UNDEFINED,
    CacheEntry,
    CircuitBreakerState,
    CircuitBreakerStatus,
    EscalationLevel,
    EscalationResult,
    FailureRecord,
    FailureStats,
    FailureType,
    FallbackStrategy,
    HealthStatus,
    OutputValidation,
)
from inference_guard.models.responses import (
    FailureHandlingResult,
    HealthCheck,
    ModelAnalysis,
)

__all__ = [
    # Sentinels
    "UNDEFINED",
    "NO_OUTPUT",
    # Enums
    "FailureType",
    "EscalationLevel",
    "FallbackStrategy",
    "HealthStatus",
    # Value objects
    "FailureRecord",
    "FailureStats",
    "CircuitBreakerState",
    "CircuitBreakerStatus",
    "EscalationResult",
    "CacheEntry",
    "OutputValidation",
    # Responses
    "FailureHandlingResult",
    "HealthCheck",
    "ModelAnalysis",
]
