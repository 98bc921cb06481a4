"""
Module-level API backed by a process-wide InferenceGateway.

Calling code that does not want to pass a gateway around uses these
functions; they all delegate to get_gateway(). Tests call reset_gateway()
to start from a clean registry.

Example:
    >>> from inference_guard import api
    >>> score = api.wrap_inference(model.score, "confidence_score", timeout_ms=500)
    >>> result = await score(features)
"""

from functools import lru_cache
from typing import Any, Awaitable, Callable, Mapping, Optional

from inference_guard.core.config import get_settings
from inference_guard.gateway import InferenceFn, InferenceGateway
from inference_guard.models.domain import (
    NO_OUTPUT,
    CircuitBreakerStatus,
    EscalationResult,
    FailureStats,
    FailureType,
    FallbackStrategy,
)
from inference_guard.models.responses import (
    FailureHandlingResult,
    HealthCheck,
    ModelAnalysis,
)
from inference_guard.observability.logging import configure_logging


@lru_cache
def get_gateway() -> InferenceGateway:
    """
    Get the process-wide gateway singleton.

    Logging is configured from settings on first use.
    """
    settings = get_settings()
    configure_logging(level=settings.log_level, json_output=settings.log_json)
    return InferenceGateway(settings=settings)


def reset_gateway() -> None:
    """
    Drop all state held by the process-wide gateway.

    WARNING: This should only be used in tests.
    """
    get_gateway().registry.reset()


# =============================================================================
# Failure Path & Wrapping
# =============================================================================


def handle_inference_failure(
    model_id: str,
    error: Any,
    *,
    context: Optional[Mapping[str, Any]] = None,
    fallback_strategy: Optional[FallbackStrategy] = None,
    output: Any = NO_OUTPUT,
) -> FailureHandlingResult:
    return get_gateway().handle_inference_failure(
        model_id,
        error,
        context=context,
        fallback_strategy=fallback_strategy,
        output=output,
    )


def wrap_inference(
    fn: InferenceFn,
    model_id: str,
    **options: Any,
) -> Callable[..., Awaitable[Any]]:
    return get_gateway().wrap_inference(fn, model_id, **options)


def create_inference_wrapper(
    model_id: str,
    **options: Any,
) -> Callable[[InferenceFn], Callable[..., Awaitable[Any]]]:
    return get_gateway().create_inference_wrapper(model_id, **options)


# =============================================================================
# Health Views
# =============================================================================


def quick_check(model_id: str) -> HealthCheck:
    return get_gateway().quick_check(model_id)


def analyze(model_id: str) -> ModelAnalysis:
    return get_gateway().analyze(model_id)


# =============================================================================
# Administration
# =============================================================================


def record_failure(
    model_id: str,
    failure_type: FailureType,
    message: str = "",
    context: Optional[Mapping[str, Any]] = None,
) -> FailureStats:
    return get_gateway().record_failure(model_id, failure_type, message, context)


def record_success(model_id: str) -> None:
    get_gateway().record_success(model_id)


def get_failure_stats(model_id: str, window_ms: Optional[int] = None) -> FailureStats:
    return get_gateway().get_failure_stats(model_id, window_ms)


def clear_failures(model_id: str) -> None:
    get_gateway().clear_failures(model_id)


def clear_all_failures() -> None:
    get_gateway().clear_all_failures()


def trip_circuit_breaker(
    model_id: str,
    reason: str,
    failure_count: int,
    duration_ms: Optional[int] = None,
) -> None:
    get_gateway().trip_circuit_breaker(model_id, reason, failure_count, duration_ms)


def check_circuit_breaker(model_id: str) -> CircuitBreakerStatus:
    return get_gateway().check_circuit_breaker(model_id)


def reset_circuit_breaker(model_id: str) -> bool:
    return get_gateway().reset_circuit_breaker(model_id)


def reset_all_circuit_breakers() -> None:
    get_gateway().reset_all_circuit_breakers()


def get_active_circuit_breakers() -> list[CircuitBreakerStatus]:
    return get_gateway().get_active_circuit_breakers()


def determine_escalation(
    model_id: str,
    failure_type: FailureType,
    failure_count: Optional[int] = None,
) -> EscalationResult:
    return get_gateway().determine_escalation(model_id, failure_type, failure_count)


def get_fallback(
    model_id: str,
    strategy: FallbackStrategy = FallbackStrategy.USE_DEFAULT,
) -> dict[str, Any]:
    return get_gateway().get_fallback(model_id, strategy)


def cache_result(model_id: str, value: Any) -> None:
    get_gateway().cache_result(model_id, value)


def get_cached_result(model_id: str) -> Optional[Any]:
    return get_gateway().get_cached_result(model_id)
