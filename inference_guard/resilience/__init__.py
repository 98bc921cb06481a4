"""
Resilience patterns for Inference Guard.

This package provides:
- classify_failure: failure classification
- FailureTracker: per-model sliding-window failure ledger
- CircuitBreakerRegistry: per-model breakers with lazy expiry
- EscalationPolicy: ordered escalation rule table
- ResultCache / FallbackResolver: last-known-good cache and fallbacks
- ResilienceRegistry: owner of all per-model state
- Prometheus metrics for failures, escalations and breaker transitions
"""

from inference_guard.resilience.cache import ResultCache
from inference_guard.resilience.circuit_breaker import CircuitBreakerRegistry
from inference_guard.resilience.classifier import classify_failure
from inference_guard.resilience.escalation import (
    EscalationPolicy,
    EscalationRule,
    EscalationThresholds,
)
from inference_guard.resilience.failure_tracker import FailureTracker
from inference_guard.resilience.fallback import DEFAULT_FALLBACKS, FallbackResolver
from inference_guard.resilience.locks import KeyedLock
from inference_guard.resilience.registry import ResilienceRegistry
from inference_guard.resilience.sanitize import sanitize_context

__all__ = [
    "classify_failure",
    "sanitize_context",
    "FailureTracker",
    "CircuitBreakerRegistry",
    "EscalationPolicy",
    "EscalationRule",
    "EscalationThresholds",
    "ResultCache",
    "FallbackResolver",
    "DEFAULT_FALLBACKS",
    "KeyedLock",
    "ResilienceRegistry",
]
