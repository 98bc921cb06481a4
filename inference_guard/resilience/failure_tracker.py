"""
Failure Tracker.

Per-model sliding-window ledger of failures plus the time of the last
success. Successes never erase failure history; failures only leave the
window by age or through an explicit clear.

Thread Safety:
    All mutations run under the model's lock from the shared KeyedLock.
    Reads copy the record list under the same lock and compute statistics
    outside it.
"""

import time
from collections import Counter, deque
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Callable, Optional

from inference_guard.core.config import DEFAULT_SENSITIVE_CONTEXT_KEYS
from inference_guard.models.domain import FailureRecord, FailureStats, FailureType
from inference_guard.resilience.locks import KeyedLock
from inference_guard.resilience.metrics import record_failure_metric
from inference_guard.resilience.sanitize import sanitize_context

DEFAULT_FAILURE_WINDOW_MS = 300_000
MS_PER_MINUTE = 60_000


@dataclass
class ModelFailureState:
    """Mutable per-model ledger. Only touched under the model's lock."""

    records: deque[FailureRecord] = field(default_factory=deque)
    last_success: Optional[datetime] = None


class FailureTracker:
    """
    Sliding-window failure ledger keyed by model id.

    Example:
        >>> tracker = FailureTracker(window_ms=60_000)
        >>> stats = tracker.record_failure("confidence_score", FailureType.TIMEOUT)
        >>> stats.failures_in_window
        1

    Attributes:
        window_ms: Length of the sliding window in milliseconds
    """

    def __init__(
        self,
        window_ms: int = DEFAULT_FAILURE_WINDOW_MS,
        locks: Optional[KeyedLock] = None,
        clock: Callable[[], float] = time.monotonic,
        deny_list: Iterable[str] = DEFAULT_SENSITIVE_CONTEXT_KEYS,
    ) -> None:
        self._window_ms = window_ms
        self._locks = locks if locks is not None else KeyedLock()
        self._clock = clock
        self._deny_list = tuple(deny_list)
        self._states: dict[str, ModelFailureState] = {}

    @property
    def window_ms(self) -> int:
        """Length of the sliding window in milliseconds."""
        return self._window_ms

    # =========================================================================
    # Mutations
    # =========================================================================

    def record_failure(
        self,
        model_id: str,
        failure_type: FailureType,
        message: str = "",
        context: Optional[Mapping[str, Any]] = None,
    ) -> FailureStats:
        """
        Append a failure and prune records that left the window.

        Context is sanitized before the record is built.

        Args:
            model_id: Model identifier
            failure_type: Classified failure type
            message: Error text
            context: Caller context (scalars only survive)

        Returns:
            Statistics snapshot after recording
        """
        safe_context = sanitize_context(context, self._deny_list)
        now = self._clock()

        with self._locks.hold(model_id):
            state = self._states.setdefault(model_id, ModelFailureState())
            state.records.append(
                FailureRecord(
                    timestamp=datetime.now(timezone.utc),
                    recorded_at=now,
                    type=FailureType(failure_type),
                    message=message or "",
                    context=MappingProxyType(safe_context),
                )
            )
            self._prune(state, now)

        record_failure_metric(model_id, FailureType(failure_type).value)
        return self.get_failure_stats(model_id)

    def record_success(self, model_id: str) -> None:
        """Update the model's last-success time. Failure history is kept."""
        with self._locks.hold(model_id):
            state = self._states.setdefault(model_id, ModelFailureState())
            state.last_success = datetime.now(timezone.utc)

    def clear_failures(self, model_id: str) -> None:
        """Remove all failure records for one model. Last success is kept."""
        with self._locks.hold(model_id):
            state = self._states.get(model_id)
            if state is None:
                return
            if state.last_success is None:
                del self._states[model_id]
            else:
                state.records.clear()

    def model_ids(self) -> list[str]:
        """Model ids with stored failure records."""
        return [model_id for model_id, state in list(self._states.items()) if state.records]

    def clear_all_failures(self) -> None:
        """Remove records for every model."""
        for model_id in list(self._states):
            self.clear_failures(model_id)

    def forget(self, model_id: str) -> None:
        """Drop everything stored for one model, last success included."""
        with self._locks.hold(model_id):
            self._states.pop(model_id, None)

    def forget_all(self) -> None:
        for model_id in list(self._states):
            self.forget(model_id)

    def _prune(self, state: ModelFailureState, now: float) -> None:
        cutoff = now - self._window_ms / 1000.0
        while state.records and state.records[0].recorded_at < cutoff:
            state.records.popleft()

    # =========================================================================
    # Reads
    # =========================================================================

    def records(self, model_id: str) -> list[FailureRecord]:
        """Return a copy of the stored records for a model."""
        with self._locks.hold(model_id):
            state = self._states.get(model_id)
            return list(state.records) if state else []

    def get_failure_stats(
        self,
        model_id: str,
        window_ms: Optional[int] = None,
    ) -> FailureStats:
        """
        Compute statistics for a model's failure window.

        Unknown model ids yield zeroed statistics.

        Args:
            model_id: Model identifier
            window_ms: Optional custom window (defaults to the tracker window)

        Returns:
            FailureStats snapshot

        Raises:
            ValueError: If window_ms is not positive
        """
        window = window_ms if window_ms is not None else self._window_ms
        if window <= 0:
            raise ValueError(f"window_ms must be positive, got {window}")

        with self._locks.hold(model_id):
            state = self._states.get(model_id)
            records = list(state.records) if state else []
            last_success = state.last_success if state else None

        cutoff = self._clock() - window / 1000.0
        recent = [r for r in records if r.recorded_at >= cutoff]

        by_type = dict(Counter(r.type for r in recent))
        last_failure = max((r.timestamp for r in recent), default=None)

        return FailureStats(
            model_id=model_id,
            failures_in_window=len(recent),
            window_duration_ms=window,
            by_type=by_type,
            failure_rate=len(recent) / (window / MS_PER_MINUTE),
            last_failure=last_failure.isoformat() if last_failure else None,
            last_success=last_success.isoformat() if last_success else None,
        )
