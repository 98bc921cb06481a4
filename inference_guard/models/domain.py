"""
Domain Models for Inference Guard.

This module contains the enums and immutable value objects shared by the
failure tracker, circuit breaker, escalation policy, result cache and
fallback resolver.

Pattern: Domain models as value objects (@dataclass(frozen=True))
Pattern: str-valued enums so values serialize cleanly into logs and metrics
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional, Union


Scalar = Union[str, int, float, bool, None]


# =============================================================================
# Output Sentinels
# =============================================================================


class _Sentinel:
    """Named marker object with a readable repr."""

    __slots__ = ("_name",)

    def __init__(self, name: str) -> None:
        self._name = name

    def __repr__(self) -> str:
        return self._name

    def __bool__(self) -> bool:
        return False


# An inference output that is explicitly absent (distinct from None).
UNDEFINED = _Sentinel("UNDEFINED")

# Default for "no output was supplied to the classifier at all".
NO_OUTPUT = _Sentinel("NO_OUTPUT")


# =============================================================================
# Enums
# =============================================================================


class FailureType(str, Enum):
    """Classification of an inference failure."""

    TIMEOUT = "TIMEOUT"
    MODEL_UNAVAILABLE = "MODEL_UNAVAILABLE"
    INVALID_INPUT = "INVALID_INPUT"
    INVALID_SHAPE = "INVALID_SHAPE"
    OUT_OF_RANGE = "OUT_OF_RANGE"
    CONFIDENCE_COLLAPSE = "CONFIDENCE_COLLAPSE"
    NAN_OUTPUT = "NAN_OUTPUT"
    NULL_OUTPUT = "NULL_OUTPUT"
    UNDEFINED_OUTPUT = "UNDEFINED_OUTPUT"
    EXCEPTION = "EXCEPTION"
    UNKNOWN = "UNKNOWN"


class EscalationLevel(str, Enum):
    """
    Severity ladder for inference failures.

    NONE < LOG < FALLBACK < ALERT < CIRCUIT_BREAK / CRITICAL
    """

    NONE = "NONE"
    LOG = "LOG"
    FALLBACK = "FALLBACK"
    ALERT = "ALERT"
    CIRCUIT_BREAK = "CIRCUIT_BREAK"
    CRITICAL = "CRITICAL"


class FallbackStrategy(str, Enum):
    """How a substitute result is produced after a failure."""

    USE_DEFAULT = "USE_DEFAULT"
    USE_CACHED = "USE_CACHED"
    USE_CONSERVATIVE = "USE_CONSERVATIVE"
    SKIP_ML = "SKIP_ML"
    REJECT = "REJECT"


class HealthStatus(str, Enum):
    """Coarse health of a model as reported by quick_check."""

    HEALTHY = "HEALTHY"
    RECOVERING = "RECOVERING"
    DEGRADED = "DEGRADED"
    CIRCUIT_BROKEN = "CIRCUIT_BROKEN"


# =============================================================================
# Failure Tracking
# =============================================================================


@dataclass(frozen=True)
class FailureRecord:
    """
    A single failure inside a model's sliding window.

    Attributes:
        timestamp: Wall-clock time of the failure (UTC)
        recorded_at: Monotonic seconds, used for window pruning
        type: Classified failure type
        message: Error text
        context: Sanitized, read-only scalar context
    """

    timestamp: datetime
    recorded_at: float
    type: FailureType
    message: str = ""
    context: Mapping[str, Scalar] = field(
        default_factory=lambda: MappingProxyType({})
    )


@dataclass(frozen=True)
class FailureStats:
    """Snapshot of a model's failure window."""

    model_id: str
    failures_in_window: int = 0
    window_duration_ms: int = 0
    by_type: Mapping[FailureType, int] = field(default_factory=dict)
    failure_rate: float = 0.0
    last_failure: Optional[str] = None
    last_success: Optional[str] = None


# =============================================================================
# Circuit Breaker
# =============================================================================


@dataclass(frozen=True)
class CircuitBreakerState:
    """
    Stored state of a tripped breaker. Presence in the registry means open.

    Attributes:
        reason: Why the breaker was tripped
        tripped_at: Monotonic seconds at trip time
        tripped_at_wall: Wall-clock trip time (UTC), for reporting
        duration_ms: How long the breaker stays open
        failure_count_at_trip: Failures in window when tripped
    """

    reason: str
    tripped_at: float
    tripped_at_wall: datetime
    duration_ms: int
    failure_count_at_trip: int


@dataclass(frozen=True)
class CircuitBreakerStatus:
    """Result of checking a model's breaker."""

    broken: bool
    remaining_ms: int = 0
    reason: Optional[str] = None
    failure_count: int = 0
    auto_reset: bool = False
    tripped_at: Optional[str] = None
    model_id: Optional[str] = None


# =============================================================================
# Escalation
# =============================================================================


@dataclass(frozen=True)
class EscalationResult:
    """Decision produced by the escalation policy. Never stored."""

    level: EscalationLevel
    reason: str
    failure_count: int = 0
    should_alert: bool = False
    should_fallback: bool = False
    should_trip_breaker: bool = False
    remaining_ms: int = 0


# =============================================================================
# Result Cache
# =============================================================================


@dataclass(frozen=True)
class CacheEntry:
    """Last successful output of a model."""

    value: Any
    cached_at: datetime


# =============================================================================
# Output Validation
# =============================================================================


@dataclass(frozen=True)
class OutputValidation:
    """Verdict returned by a caller-supplied output validator."""

    valid: bool
    error: Optional[str] = None

    @classmethod
    def coerce(cls, verdict: Any) -> "OutputValidation":
        """
        Normalize a validator's return value.

        Accepts an OutputValidation, a mapping with "valid"/"error" keys,
        or a plain bool.
        """
        if isinstance(verdict, OutputValidation):
            return verdict
        if isinstance(verdict, Mapping):
            return cls(
                valid=bool(verdict.get("valid", False)),
                error=verdict.get("error"),
            )
        return cls(valid=bool(verdict))
