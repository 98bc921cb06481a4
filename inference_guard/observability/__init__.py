"""
Observability Package.

This package provides:
- Structured JSON logging with correlation IDs (structlog)
- OpenTelemetry span helpers

Prometheus metrics for the resilience layer live in
inference_guard.resilience.metrics.
"""

from inference_guard.observability.logging import (
    clear_correlation_id,
    configure_logging,
    get_correlation_id,
    get_logger,
    inference_context,
    new_correlation_id,
    set_correlation_id,
)
from inference_guard.observability.tracing import (
    create_span,
    get_tracer,
    inference_span,
    set_outcome,
    setup_tracing,
)

__all__ = [
    # Logging
    "get_logger",
    "configure_logging",
    "set_correlation_id",
    "get_correlation_id",
    "clear_correlation_id",
    "inference_context",
    "new_correlation_id",
    # Tracing
    "setup_tracing",
    "get_tracer",
    "create_span",
    "inference_span",
    "set_outcome",
]
