"""
Inference Guard - fail-closed gateway for unreliable ML inference calls.

Classifies inference failures, tracks them per model in a sliding window,
trips per-model circuit breakers, escalates through a severity ladder and
resolves safe fallback results.
"""

from inference_guard.gateway import InferenceGateway
from inference_guard.models.domain import (
    NO_OUTPUT,
    UNDEFINED,
    EscalationLevel,
    FailureType,
    FallbackStrategy,
    HealthStatus,
    OutputValidation,
)
from inference_guard.resilience.classifier import classify_failure
from inference_guard.resilience.registry import ResilienceRegistry

__version__ = "1.0.0"

__all__ = [
    "InferenceGateway",
    "ResilienceRegistry",
    "classify_failure",
    "FailureType",
    "EscalationLevel",
    "FallbackStrategy",
    "HealthStatus",
    "OutputValidation",
    "UNDEFINED",
    "NO_OUTPUT",
]
