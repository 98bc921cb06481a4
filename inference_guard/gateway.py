"""
Inference Gateway.

Fail-closed wrapper around unreliable inference callables. Every failure
path (exception, timeout, invalid or rejected output, open breaker) ends in
a tagged fallback result; wrapped calls never raise for ordinary exceptions
and never outlive their deadline.

Failure pipeline:
    classify -> sanitize context -> record -> escalate -> trip breaker
    (when escalation asks for it) -> resolve fallback -> recommendations

Timeout handling:
    By default the inference task is cancelled when the deadline fires.
    With cancel_on_timeout=False the task is left running in the background,
    its late result is discarded and its completion is logged.
"""

import asyncio
import inspect
import math
import time
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Mapping, Optional, Union

from inference_guard.core.config import Settings, get_settings
from inference_guard.core.exceptions import (
    CircuitOpenError,
    InferenceTimeoutError,
    InvalidOutputError,
    OutputValidationError,
)
from inference_guard.models.domain import (
    NO_OUTPUT,
    UNDEFINED,
    CircuitBreakerStatus,
    EscalationLevel,
    EscalationResult,
    FailureStats,
    FailureType,
    FallbackStrategy,
    HealthStatus,
    OutputValidation,
)
from inference_guard.models.responses import (
    CacheInfo,
    CircuitBreakerInfo,
    EscalationInfo,
    FailureBreakdown,
    FailureHandlingResult,
    FailureInfo,
    FailureStatsInfo,
    HealthCheck,
    ModelAnalysis,
    ThresholdInfo,
)
from inference_guard.observability.logging import (
    get_logger,
    inference_context,
)
from inference_guard.observability.tracing import (
    inference_span,
    set_outcome,
    setup_tracing,
)
from inference_guard.resilience.classifier import classify_failure, error_message
from inference_guard.resilience.escalation import EscalationPolicy, EscalationThresholds
from inference_guard.resilience.fallback import FallbackResolver
from inference_guard.resilience.metrics import (
    record_escalation,
    record_inference_duration,
)
from inference_guard.resilience.recommendations import (
    build_health_recommendations,
    build_recommendations,
)
from inference_guard.resilience.registry import ResilienceRegistry
from inference_guard.resilience.sanitize import sanitize_context

logger = get_logger(__name__)

InferenceFn = Callable[..., Union[Awaitable[Any], Any]]
OutputValidator = Callable[[Any], Union[OutputValidation, Mapping[str, Any], bool]]

# =============================================================================
# Constants
# =============================================================================

OUTCOME_SUCCESS = "success"
OUTCOME_FAILURE = "failure"
OUTCOME_TIMEOUT = "timeout"
OUTCOME_CIRCUIT_OPEN = "circuit_open"

ALERT_LEVELS = frozenset(
    {EscalationLevel.ALERT, EscalationLevel.CRITICAL, EscalationLevel.CIRCUIT_BREAK}
)

# Strategy used when the caller does not name one.
IMPLIED_STRATEGIES: dict[EscalationLevel, FallbackStrategy] = {
    EscalationLevel.CRITICAL: FallbackStrategy.USE_CONSERVATIVE,
    EscalationLevel.CIRCUIT_BREAK: FallbackStrategy.USE_CONSERVATIVE,
    EscalationLevel.ALERT: FallbackStrategy.USE_CACHED,
}


def implied_strategy(level: EscalationLevel) -> FallbackStrategy:
    """Fallback strategy implied by an escalation level."""
    return IMPLIED_STRATEGIES.get(level, FallbackStrategy.USE_DEFAULT)


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _describe_error(error: Any) -> str:
    message = error_message(error)
    if message:
        return message
    if error is None:
        return ""
    if isinstance(error, BaseException):
        return type(error).__name__
    return repr(error)


def _invalid_output_type(value: Any) -> Optional[str]:
    """Name of the invalid-output condition for value, if any."""
    if value is None:
        return "Null output"
    if value is UNDEFINED:
        return "Undefined output"
    if isinstance(value, float) and math.isnan(value):
        return "NaN output"
    return None


# =============================================================================
# Inference Gateway
# =============================================================================


class InferenceGateway:
    """
    Orchestrates classification, tracking, escalation, circuit breaking and
    fallback resolution for model inference calls.

    Example:
        >>> gateway = InferenceGateway()
        >>> classify = gateway.wrap_inference(model.predict, "subgenre_classification")
        >>> result = await classify(features)
        >>> if result.get("is_fallback"):
        ...     ...

    Attributes:
        settings: Active configuration
        registry: Per-model state (tracker, breakers, cache)
        policy: Escalation policy
        resolver: Fallback resolver
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        registry: Optional[ResilienceRegistry] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.registry = registry or ResilienceRegistry.from_settings(self.settings)
        self.policy = EscalationPolicy(
            breakers=self.registry.breakers,
            tracker=self.registry.tracker,
            thresholds=EscalationThresholds(
                log_after=self.settings.log_after,
                fallback_after=self.settings.fallback_after,
                alert_after=self.settings.alert_after,
                circuit_break_after=self.settings.circuit_break_after,
            ),
            critical_types=self.settings.critical_failure_types,
        )
        self.resolver = FallbackResolver(
            cache=self.registry.cache,
            defaults=self.settings.fallback_defaults,
            conservative=self.settings.conservative_fallbacks,
        )
        # Timed-out calls left running with cancel_on_timeout=False.
        self._detached: set[asyncio.Future] = set()

        if self.settings.tracing_enabled:
            setup_tracing(self.settings.service_name)

    # =========================================================================
    # Failure Path
    # =========================================================================

    def handle_inference_failure(
        self,
        model_id: str,
        error: Any,
        *,
        context: Optional[Mapping[str, Any]] = None,
        fallback_strategy: Optional[FallbackStrategy] = None,
        output: Any = NO_OUTPUT,
    ) -> FailureHandlingResult:
        """
        Run an inference failure through the full failure pipeline.

        For code that manages its own try/except around inference and wants
        the same classification, escalation and fallback behavior as
        wrapped calls.

        Args:
            model_id: Model identifier
            error: Raised exception, error description or None
            context: Caller context; deny-listed keys and non-scalar values
                are dropped before anything is recorded
            fallback_strategy: Explicit strategy; when None the strategy is
                implied by the escalation level
            output: The inference output, when the failure is about it

        Returns:
            FailureHandlingResult envelope
        """
        timestamp = _utc_now_iso()
        failure_type = classify_failure(error, output)
        message = _describe_error(error)
        safe_context = sanitize_context(context, self.settings.sensitive_context_keys)

        with self.registry.locks.hold(model_id):
            stats = self.registry.tracker.record_failure(
                model_id, failure_type, message, safe_context
            )
            escalation = self.policy.determine_escalation(model_id, failure_type)

            if escalation.should_trip_breaker:
                self.registry.breakers.trip(
                    model_id,
                    escalation.reason,
                    stats.failures_in_window,
                )

        record_escalation(model_id, escalation.level.value)

        strategy = fallback_strategy or implied_strategy(escalation.level)
        fallback = self.resolver.get_fallback(model_id, strategy)

        recommendations = build_recommendations(
            failure_type,
            escalation,
            stats,
            high_failure_rate=self.settings.high_failure_rate,
        )

        self._log_failure(model_id, failure_type, message, escalation, stats, strategy)

        return FailureHandlingResult(
            handled=True,
            timestamp=timestamp,
            failure=FailureInfo(
                type=failure_type,
                model_id=model_id,
                error=message,
                context=safe_context,
            ),
            escalation=EscalationInfo(
                level=escalation.level,
                reason=escalation.reason,
                alert_sent=escalation.should_alert,
                circuit_broken=escalation.level == EscalationLevel.CIRCUIT_BREAK,
            ),
            fallback=fallback,
            stats=FailureStatsInfo(
                failures_in_window=stats.failures_in_window,
                window_duration_ms=stats.window_duration_ms,
                failure_rate=stats.failure_rate,
                last_success=stats.last_success,
            ),
            recommendations=recommendations,
        )

    def _log_failure(
        self,
        model_id: str,
        failure_type: FailureType,
        message: str,
        escalation: EscalationResult,
        stats: FailureStats,
        strategy: FallbackStrategy,
    ) -> None:
        fields = {
            "model_id": model_id,
            "failure_type": failure_type.value,
            "error": message,
            "escalation": escalation.level.value,
            "reason": escalation.reason,
            "failures_in_window": stats.failures_in_window,
            "fallback_strategy": FallbackStrategy(strategy).value,
        }
        if escalation.level in ALERT_LEVELS:
            logger.error("inference_failure_escalated", **fields)
        else:
            logger.warning("inference_failure", **fields)

    # =========================================================================
    # Wrapped Inference
    # =========================================================================

    def wrap_inference(
        self,
        fn: InferenceFn,
        model_id: str,
        *,
        timeout_ms: Optional[int] = None,
        fallback_strategy: Optional[FallbackStrategy] = None,
        validate_output: Optional[OutputValidator] = None,
        cache_successful: bool = True,
        cancel_on_timeout: bool = True,
    ) -> Callable[..., Awaitable[Any]]:
        """
        Wrap an inference callable with fail-closed failure handling.

        Args:
            fn: Async (or plain) inference callable
            model_id: Model identifier
            timeout_ms: Deadline per call (defaults to settings.default_timeout_ms)
            fallback_strategy: Strategy for fallbacks (implied by escalation
                level when None)
            validate_output: Optional validator returning OutputValidation,
                a {"valid", "error"} mapping or a bool
            cache_successful: Cache successful outputs for USE_CACHED
            cancel_on_timeout: Cancel the inference task when the deadline
                fires; when False it keeps running detached

        Returns:
            Async callable with fn's signature that never raises for
            ordinary exceptions
        """
        deadline_ms = timeout_ms if timeout_ms is not None else self.settings.default_timeout_ms

        async def wrapped_inference(*args: Any, **kwargs: Any) -> Any:
            started = time.perf_counter()
            with inference_context(model_id):
                with inference_span(model_id) as span:
                    result, outcome = await self._run_wrapped(
                        fn,
                        model_id,
                        args,
                        kwargs,
                        deadline_ms,
                        fallback_strategy,
                        validate_output,
                        cache_successful,
                        cancel_on_timeout,
                    )
                    set_outcome(span, outcome, success=OUTCOME_SUCCESS)

            record_inference_duration(model_id, outcome, time.perf_counter() - started)
            return result

        wrapped_inference.__name__ = getattr(fn, "__name__", "wrapped_inference")
        wrapped_inference.__doc__ = getattr(fn, "__doc__", None)
        return wrapped_inference

    def create_inference_wrapper(
        self,
        model_id: str,
        **options: Any,
    ) -> Callable[[InferenceFn], Callable[..., Awaitable[Any]]]:
        """
        Curried form of wrap_inference, usable as a decorator.

        Example:
            >>> @gateway.create_inference_wrapper("confidence_score", timeout_ms=500)
            ... async def score(features):
            ...     ...
        """

        def wrapper(fn: InferenceFn) -> Callable[..., Awaitable[Any]]:
            return self.wrap_inference(fn, model_id, **options)

        return wrapper

    async def _run_wrapped(
        self,
        fn: InferenceFn,
        model_id: str,
        args: tuple[Any, ...],
        kwargs: dict[str, Any],
        timeout_ms: int,
        fallback_strategy: Optional[FallbackStrategy],
        validate_output: Optional[OutputValidator],
        cache_successful: bool,
        cancel_on_timeout: bool,
    ) -> tuple[Any, str]:
        breaker = self.registry.breakers.check(model_id)
        if breaker.broken:
            return self._circuit_open_result(model_id, breaker, fallback_strategy), OUTCOME_CIRCUIT_OPEN

        try:
            value = await self._invoke(fn, model_id, args, kwargs, timeout_ms, cancel_on_timeout)

            if validate_output is not None:
                verdict = OutputValidation.coerce(validate_output(value))
                if not verdict.valid:
                    raise OutputValidationError(verdict.error)

            invalid = _invalid_output_type(value)
            if invalid is not None:
                raise InvalidOutputError(invalid, output=value)

        except asyncio.CancelledError:
            raise
        except Exception as e:
            outcome = OUTCOME_TIMEOUT if isinstance(e, InferenceTimeoutError) else OUTCOME_FAILURE
            return self._failure_result(model_id, e, args, kwargs, fallback_strategy), outcome

        self.registry.tracker.record_success(model_id)
        if cache_successful:
            self.registry.cache.cache_result(model_id, value)
        logger.debug("inference_success", model_id=model_id)
        return value, OUTCOME_SUCCESS

    async def _invoke(
        self,
        fn: InferenceFn,
        model_id: str,
        args: tuple[Any, ...],
        kwargs: dict[str, Any],
        timeout_ms: int,
        cancel_on_timeout: bool,
    ) -> Any:
        """
        Call fn and await its result against the deadline.

        Raises:
            InferenceTimeoutError: When the deadline fires first
            Exception: Anything fn raises
        """
        pending = fn(*args, **kwargs)
        if not inspect.isawaitable(pending):
            return pending

        task = asyncio.ensure_future(pending)
        try:
            done, _ = await asyncio.wait({task}, timeout=timeout_ms / 1000.0)
        except asyncio.CancelledError:
            task.cancel()
            raise

        if task in done:
            return task.result()

        if cancel_on_timeout:
            task.cancel()
        else:
            self._detach(task, model_id)
        raise InferenceTimeoutError(model_id, timeout_ms)

    def _detach(self, task: asyncio.Future, model_id: str) -> None:
        self._detached.add(task)

        def _finished(done: asyncio.Future) -> None:
            self._detached.discard(done)
            if done.cancelled():
                outcome = "cancelled"
            elif done.exception() is not None:
                outcome = "error"
            else:
                outcome = "discarded"
            logger.debug("late_inference_completed", model_id=model_id, outcome=outcome)

        task.add_done_callback(_finished)

    @property
    def detached_calls(self) -> int:
        """Number of timed-out calls still running in the background."""
        return len(self._detached)

    def _circuit_open_result(
        self,
        model_id: str,
        breaker: CircuitBreakerStatus,
        fallback_strategy: Optional[FallbackStrategy],
    ) -> dict[str, Any]:
        strategy = fallback_strategy or implied_strategy(EscalationLevel.CIRCUIT_BREAK)
        result = self.resolver.get_fallback(model_id, strategy)
        result["circuit_broken"] = True
        result["remaining_ms"] = breaker.remaining_ms
        logger.debug(
            "inference_short_circuited",
            model_id=model_id,
            remaining_ms=breaker.remaining_ms,
        )
        return result

    def _failure_result(
        self,
        model_id: str,
        error: Exception,
        args: tuple[Any, ...],
        kwargs: dict[str, Any],
        fallback_strategy: Optional[FallbackStrategy],
    ) -> dict[str, Any]:
        output = getattr(error, "output", NO_OUTPUT) if isinstance(error, InvalidOutputError) else NO_OUTPUT
        handled = self.handle_inference_failure(
            model_id,
            error,
            context={"args": "[args provided]" if args or kwargs else "[no args]"},
            fallback_strategy=fallback_strategy,
            output=output,
        )
        result = dict(handled.fallback)
        result["_inference_error"] = {
            "type": handled.failure.type,
            "escalation": handled.escalation.level,
            "message": handled.failure.error,
            "handled": True,
        }
        return result

    def ensure_available(self, model_id: str) -> None:
        """
        Raise CircuitOpenError if the model's breaker is open.

        For callers that prefer an exception over a fallback result.
        """
        status = self.registry.breakers.check(model_id)
        if status.broken:
            raise CircuitOpenError(model_id, status.remaining_ms)

    # =========================================================================
    # Health Views
    # =========================================================================

    def quick_check(self, model_id: str) -> HealthCheck:
        """
        Quick health check for a model.

        Status is CIRCUIT_BROKEN when the breaker is open, else DEGRADED at
        alert_after failures or more, else RECOVERING with any failures,
        else HEALTHY.
        """
        breaker = self.registry.breakers.check(model_id)
        stats = self.registry.tracker.get_failure_stats(model_id)
        alert_after = self.settings.alert_after

        if breaker.broken:
            status = HealthStatus.CIRCUIT_BROKEN
        elif stats.failures_in_window >= alert_after:
            status = HealthStatus.DEGRADED
        elif stats.failures_in_window > 0:
            status = HealthStatus.RECOVERING
        else:
            status = HealthStatus.HEALTHY

        return HealthCheck(
            model_id=model_id,
            healthy=not breaker.broken and stats.failures_in_window < alert_after,
            status=status,
            circuit_broken=breaker.broken,
            failures_in_window=stats.failures_in_window,
            failure_rate=stats.failure_rate,
        )

    def analyze(self, model_id: str) -> ModelAnalysis:
        """Full read-only analysis of a model's failure state."""
        breaker = self.registry.breakers.check(model_id)
        stats = self.registry.tracker.get_failure_stats(model_id)
        entry = self.registry.cache.get_cache_entry(model_id)
        health = self.quick_check(model_id)
        cached_at = entry.cached_at.isoformat() if entry is not None else None

        if breaker.broken:
            breaker_info = CircuitBreakerInfo(
                broken=True,
                remaining_ms=breaker.remaining_ms,
                tripped_at=breaker.tripped_at,
                reason=breaker.reason,
            )
        else:
            breaker_info = CircuitBreakerInfo(broken=False)

        return ModelAnalysis(
            model_id=model_id,
            timestamp=_utc_now_iso(),
            health=health,
            circuit_breaker=breaker_info,
            failures=FailureBreakdown(
                in_window=stats.failures_in_window,
                window_duration_ms=stats.window_duration_ms,
                by_type=dict(stats.by_type),
                rate=stats.failure_rate,
                last_failure=stats.last_failure,
                last_success=stats.last_success,
            ),
            cache=CacheInfo(available=entry is not None, cached_at=cached_at),
            thresholds=ThresholdInfo(
                alert_after=self.settings.alert_after,
                circuit_break_after=self.settings.circuit_break_after,
                circuit_break_duration_ms=self.settings.circuit_break_duration_ms,
                failure_window_ms=self.settings.failure_window_ms,
            ),
            recommendations=build_health_recommendations(
                healthy=health.healthy,
                circuit_broken=health.circuit_broken,
                failures_in_window=stats.failures_in_window,
                alert_after=self.settings.alert_after,
                cached_at=cached_at,
            ),
        )

    # =========================================================================
    # Admin Passthroughs
    # =========================================================================

    def record_failure(
        self,
        model_id: str,
        failure_type: FailureType,
        message: str = "",
        context: Optional[Mapping[str, Any]] = None,
    ) -> FailureStats:
        return self.registry.tracker.record_failure(model_id, failure_type, message, context)

    def record_success(self, model_id: str) -> None:
        self.registry.tracker.record_success(model_id)

    def get_failure_stats(self, model_id: str, window_ms: Optional[int] = None) -> FailureStats:
        return self.registry.tracker.get_failure_stats(model_id, window_ms)

    def clear_failures(self, model_id: str) -> None:
        self.registry.tracker.clear_failures(model_id)

    def clear_all_failures(self) -> None:
        self.registry.tracker.clear_all_failures()

    def trip_circuit_breaker(
        self,
        model_id: str,
        reason: str,
        failure_count: int,
        duration_ms: Optional[int] = None,
    ) -> None:
        self.registry.breakers.trip(model_id, reason, failure_count, duration_ms)

    def check_circuit_breaker(self, model_id: str) -> CircuitBreakerStatus:
        return self.registry.breakers.check(model_id)

    def reset_circuit_breaker(self, model_id: str) -> bool:
        return self.registry.reset_circuit_breaker(model_id)

    def reset_all_circuit_breakers(self) -> None:
        self.registry.reset_all_circuit_breakers()

    def get_active_circuit_breakers(self) -> list[CircuitBreakerStatus]:
        return self.registry.breakers.active()

    def determine_escalation(
        self,
        model_id: str,
        failure_type: FailureType,
        failure_count: Optional[int] = None,
    ) -> EscalationResult:
        return self.policy.determine_escalation(model_id, failure_type, failure_count)

    def get_fallback(
        self,
        model_id: str,
        strategy: FallbackStrategy = FallbackStrategy.USE_DEFAULT,
    ) -> dict[str, Any]:
        return self.resolver.get_fallback(model_id, strategy)

    def cache_result(self, model_id: str, value: Any) -> None:
        self.registry.cache.cache_result(model_id, value)

    def get_cached_result(self, model_id: str) -> Optional[Any]:
        return self.registry.cache.get_cached_result(model_id)
