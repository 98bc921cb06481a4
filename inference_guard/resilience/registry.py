"""
Resilience Registry.

Owns the per-model state of the gateway: failure tracker, circuit breakers
and result cache, all sharing one KeyedLock so that a model's mutations form
a single critical section. One registry is created per process (see
inference_guard.api.get_gateway); tests build fresh ones or call reset().
"""

import time
from typing import Callable, Optional

from inference_guard.core.config import Settings, get_settings
from inference_guard.resilience.cache import ResultCache
from inference_guard.resilience.circuit_breaker import CircuitBreakerRegistry
from inference_guard.resilience.failure_tracker import FailureTracker
from inference_guard.resilience.locks import KeyedLock


class ResilienceRegistry:
    """
    Process-wide resilience state keyed by model id.

    Example:
        >>> registry = ResilienceRegistry.from_settings(Settings())
        >>> registry.breakers.trip("confidence_score", "manual", 0)
        >>> registry.reset_circuit_breaker("confidence_score")
        True

    Attributes:
        tracker: Sliding-window failure ledger
        breakers: Circuit breakers
        cache: Last-known-good results
        locks: Per-model locks shared by the three stores
    """

    def __init__(
        self,
        failure_window_ms: int = 300_000,
        circuit_break_duration_ms: int = 60_000,
        deny_list: Optional[list[str]] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.locks = KeyedLock()
        tracker_kwargs = {"deny_list": deny_list} if deny_list is not None else {}
        self.tracker = FailureTracker(
            window_ms=failure_window_ms,
            locks=self.locks,
            clock=clock,
            **tracker_kwargs,
        )
        self.breakers = CircuitBreakerRegistry(
            default_duration_ms=circuit_break_duration_ms,
            locks=self.locks,
            clock=clock,
        )
        self.cache = ResultCache(locks=self.locks)

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> "ResilienceRegistry":
        """
        Create a registry configured from Settings.

        Args:
            settings: Settings to use (defaults to get_settings())
            clock: Monotonic clock, injectable for tests

        Returns:
            Configured ResilienceRegistry
        """
        settings = settings or get_settings()
        return cls(
            failure_window_ms=settings.failure_window_ms,
            circuit_break_duration_ms=settings.circuit_break_duration_ms,
            deny_list=settings.sensitive_context_keys,
            clock=clock,
        )

    def reset_circuit_breaker(self, model_id: str) -> bool:
        """
        Close a model's breaker and clear its failures as one operation.

        Returns:
            True if a breaker was stored for the model
        """
        with self.locks.hold(model_id):
            existed = self.breakers.reset(model_id)
            self.tracker.clear_failures(model_id)
        return existed

    def reset_all_circuit_breakers(self) -> None:
        """Close every breaker and clear every failure window."""
        model_ids = set(self.breakers.model_ids()) | set(self.tracker.model_ids())
        for model_id in model_ids:
            self.reset_circuit_breaker(model_id)

    def reset(self) -> None:
        """Drop all state: breakers, failures and cached results."""
        self.reset_all_circuit_breakers()
        self.tracker.forget_all()
        self.cache.clear_all()
