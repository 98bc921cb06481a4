"""
Resilience Metrics.

Prometheus metrics for inference failures, escalations, circuit breaker
transitions, fallbacks and wrapped-call latency.

Metrics Provided:
- Failures by model and failure type (counter)
- Escalations by model and level (counter)
- Circuit breaker state transitions (counter) and current state (gauge)
- Fallbacks served by model and strategy (counter)
- Wrapped inference duration by outcome (histogram)
"""

from prometheus_client import Counter, Gauge, Histogram

# =============================================================================
# Constants
# =============================================================================

METRIC_FAILURES = "inference_guard_failures_total"
METRIC_ESCALATIONS = "inference_guard_escalations_total"
METRIC_CIRCUIT_TRANSITIONS = "inference_guard_circuit_breaker_state_transitions_total"
METRIC_CIRCUIT_STATE = "inference_guard_circuit_breaker_state"
METRIC_FALLBACKS = "inference_guard_fallbacks_total"
METRIC_INFERENCE_DURATION = "inference_guard_inference_duration_seconds"

STATE_CLOSED = "closed"
STATE_OPEN = "open"


# =============================================================================
# Failure & Escalation Metrics
# =============================================================================

FAILURES_TOTAL = Counter(
    name=METRIC_FAILURES,
    documentation="Total number of recorded inference failures",
    labelnames=["model_id", "failure_type"],
)

ESCALATIONS_TOTAL = Counter(
    name=METRIC_ESCALATIONS,
    documentation="Total number of escalation decisions by level",
    labelnames=["model_id", "level"],
)


def record_failure_metric(model_id: str, failure_type: str) -> None:
    """
    Record a classified inference failure.

    Args:
        model_id: Model identifier
        failure_type: FailureType value
    """
    FAILURES_TOTAL.labels(model_id=model_id, failure_type=failure_type).inc()


def record_escalation(model_id: str, level: str) -> None:
    """
    Record an escalation decision.

    Args:
        model_id: Model identifier
        level: EscalationLevel value
    """
    ESCALATIONS_TOTAL.labels(model_id=model_id, level=level).inc()


# =============================================================================
# Circuit Breaker Metrics
# =============================================================================

CIRCUIT_STATE_TRANSITIONS = Counter(
    name=METRIC_CIRCUIT_TRANSITIONS,
    documentation="Total number of circuit breaker state transitions",
    labelnames=["model_id", "to_state", "from_state"],
)

CIRCUIT_STATE_GAUGE = Gauge(
    name=METRIC_CIRCUIT_STATE,
    documentation="Current state of circuit breaker (0=closed, 1=open)",
    labelnames=["model_id"],
)

_STATE_TO_NUMERIC = {
    STATE_CLOSED: 0,
    STATE_OPEN: 1,
}


def record_circuit_state_transition(
    model_id: str,
    to_state: str,
    from_state: str,
) -> None:
    """
    Record a circuit breaker state transition.

    Args:
        model_id: Model whose breaker changed state
        to_state: State transitioning to (closed, open)
        from_state: State transitioning from (closed, open)
    """
    CIRCUIT_STATE_TRANSITIONS.labels(
        model_id=model_id,
        to_state=to_state,
        from_state=from_state,
    ).inc()

    CIRCUIT_STATE_GAUGE.labels(model_id=model_id).set(
        _STATE_TO_NUMERIC.get(to_state, 0)
    )


# =============================================================================
# Fallback & Latency Metrics
# =============================================================================

FALLBACKS_TOTAL = Counter(
    name=METRIC_FALLBACKS,
    documentation="Total number of fallback results served",
    labelnames=["model_id", "strategy"],
)

INFERENCE_DURATION_SECONDS = Histogram(
    name=METRIC_INFERENCE_DURATION,
    documentation="Wrapped inference call duration in seconds",
    labelnames=["model_id", "outcome"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)


def record_fallback(model_id: str, strategy: str) -> None:
    """
    Record a fallback result served to a caller.

    Args:
        model_id: Model identifier
        strategy: FallbackStrategy value used
    """
    FALLBACKS_TOTAL.labels(model_id=model_id, strategy=strategy).inc()


def record_inference_duration(
    model_id: str,
    outcome: str,
    duration_seconds: float,
) -> None:
    """
    Record how long a wrapped inference call took.

    Args:
        model_id: Model identifier
        outcome: "success", "failure", "timeout" or "circuit_open"
        duration_seconds: Elapsed wall time of the wrapped call
    """
    INFERENCE_DURATION_SECONDS.labels(model_id=model_id, outcome=outcome).observe(
        duration_seconds
    )
