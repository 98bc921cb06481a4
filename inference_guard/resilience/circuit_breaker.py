"""
Circuit Breaker Registry.

Per-model trip/check/reset state with duration-based expiry.

State Machine (per model id):
    CLOSED: No stored state, calls pass through
    OPEN: Stored state younger than its duration, calls are short-circuited

    CLOSED -> OPEN: trip()
    OPEN -> CLOSED: reset(), or lazily on check()/active() once the
                    duration has elapsed

Expiry is pull-based: there is no background sweeper. A breaker for a model
that receives no traffic stays in storage past its duration but reports
broken=False the next time it is checked.

Thread Safety:
    Every transition runs under the model's lock from the shared KeyedLock.
"""

import math
import time
from datetime import datetime, timezone
from typing import Callable, Optional

from inference_guard.models.domain import CircuitBreakerState, CircuitBreakerStatus
from inference_guard.observability.logging import get_logger
from inference_guard.resilience.locks import KeyedLock
from inference_guard.resilience.metrics import (
    STATE_CLOSED,
    STATE_OPEN,
    record_circuit_state_transition,
)

logger = get_logger(__name__)

DEFAULT_CIRCUIT_BREAK_DURATION_MS = 60_000
ELAPSED_MS_PRECISION = 3


class CircuitBreakerRegistry:
    """
    Circuit breakers for every model id, keyed by model id.

    Example:
        >>> breakers = CircuitBreakerRegistry()
        >>> breakers.trip("confidence_score", "5 failures in window", 5)
        >>> breakers.check("confidence_score").broken
        True

    Attributes:
        default_duration_ms: Duration used when trip() is given none
    """

    def __init__(
        self,
        default_duration_ms: int = DEFAULT_CIRCUIT_BREAK_DURATION_MS,
        locks: Optional[KeyedLock] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._default_duration_ms = default_duration_ms
        self._locks = locks if locks is not None else KeyedLock()
        self._clock = clock
        self._states: dict[str, CircuitBreakerState] = {}

    @property
    def default_duration_ms(self) -> int:
        """Duration used when trip() is given none."""
        return self._default_duration_ms

    # =========================================================================
    # Transitions
    # =========================================================================

    def trip(
        self,
        model_id: str,
        reason: str,
        failure_count: int,
        duration_ms: Optional[int] = None,
    ) -> CircuitBreakerState:
        """
        Open the breaker for a model.

        Tripping a breaker that is already open (and unexpired) leaves the
        existing state untouched.

        Args:
            model_id: Model identifier
            reason: Why the breaker is tripped
            failure_count: Failures in window at trip time
            duration_ms: How long to stay open (defaults to default_duration_ms)

        Returns:
            The state now stored for the model
        """
        duration = duration_ms if duration_ms is not None else self._default_duration_ms

        with self._locks.hold(model_id):
            existing = self._current(model_id)
            if existing is not None:
                return existing

            state = CircuitBreakerState(
                reason=reason,
                tripped_at=self._clock(),
                tripped_at_wall=datetime.now(timezone.utc),
                duration_ms=duration,
                failure_count_at_trip=failure_count,
            )
            self._states[model_id] = state

        record_circuit_state_transition(model_id, STATE_OPEN, STATE_CLOSED)
        logger.error(
            "circuit_breaker_tripped",
            model_id=model_id,
            reason=reason,
            failure_count=failure_count,
            duration_ms=duration,
        )
        return state

    def reset(self, model_id: str) -> bool:
        """
        Manually close the breaker for a model.

        Returns:
            True if a breaker was stored, False otherwise
        """
        with self._locks.hold(model_id):
            existed = self._states.pop(model_id, None) is not None

        if existed:
            record_circuit_state_transition(model_id, STATE_CLOSED, STATE_OPEN)
            logger.info("circuit_breaker_reset", model_id=model_id)
        return existed

    def model_ids(self) -> list[str]:
        """Model ids with stored breaker state, expired or not."""
        return list(self._states)

    def reset_all(self) -> None:
        """Close every breaker."""
        for model_id in list(self._states):
            self.reset(model_id)

    # =========================================================================
    # Checks
    # =========================================================================

    def _remaining_ms(self, state: CircuitBreakerState) -> int:
        # Clock deltas in float seconds carry noise well below a microsecond.
        elapsed_ms = round((self._clock() - state.tripped_at) * 1000.0, ELAPSED_MS_PRECISION)
        return math.ceil(state.duration_ms - elapsed_ms)

    def _current(self, model_id: str) -> Optional[CircuitBreakerState]:
        """Stored state if unexpired. Caller must hold the model's lock."""
        state = self._states.get(model_id)
        if state is None:
            return None
        if self._remaining_ms(state) <= 0:
            del self._states[model_id]
            record_circuit_state_transition(model_id, STATE_CLOSED, STATE_OPEN)
            logger.info("circuit_breaker_auto_reset", model_id=model_id)
            return None
        return state

    def check(self, model_id: str) -> CircuitBreakerStatus:
        """
        Check a model's breaker, expiring it if its duration has elapsed.

        Returns:
            CircuitBreakerStatus; auto_reset=True when this call expired it
        """
        with self._locks.hold(model_id):
            had_state = model_id in self._states
            state = self._current(model_id)

        if state is None:
            return CircuitBreakerStatus(
                broken=False,
                remaining_ms=0,
                auto_reset=had_state,
                model_id=model_id,
            )

        return CircuitBreakerStatus(
            broken=True,
            remaining_ms=max(self._remaining_ms(state), 1),
            reason=state.reason,
            failure_count=state.failure_count_at_trip,
            tripped_at=state.tripped_at_wall.isoformat(),
            model_id=model_id,
        )

    def is_open(self, model_id: str) -> bool:
        """Shorthand for check(model_id).broken."""
        return self.check(model_id).broken

    def active(self) -> list[CircuitBreakerStatus]:
        """
        Return the status of every breaker that is open right now.

        Expired breakers are cleared and excluded without needing a prior
        check() call.
        """
        active = []
        for model_id in list(self._states):
            status = self.check(model_id)
            if status.broken:
                active.append(status)
        return active
