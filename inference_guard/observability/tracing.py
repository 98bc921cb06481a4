"""
OpenTelemetry Tracing Module.

Each wrapped inference call gets one "inference.call" span carrying the model
id, the correlation id and the call outcome. Calls that end in a fallback mark
the span as an error so failed inferences stand out in a trace view even
though the caller never saw an exception.

Until setup_tracing() installs a provider the OpenTelemetry API hands out
no-op spans.
"""

from contextlib import contextmanager
from typing import Any, Generator, Optional

from opentelemetry import trace
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    ConsoleSpanExporter,
    SimpleSpanProcessor,
    SpanExporter,
)
from opentelemetry.trace import Span, Status, StatusCode, Tracer

from inference_guard.observability.logging import get_correlation_id


TRACER_NAME = "inference_guard"
INFERENCE_SPAN_NAME = "inference.call"

ATTR_MODEL_ID = "inference.model_id"
ATTR_CORRELATION_ID = "inference.correlation_id"
ATTR_OUTCOME = "inference.outcome"

_tracer_provider: Optional[TracerProvider] = None


# =============================================================================
# Provider Setup
# =============================================================================


def setup_tracing(
    service_name: str = "inference-guard",
    exporter: Optional[SpanExporter] = None,
) -> TracerProvider:
    """
    Install the global TracerProvider.

    The first call wins; OpenTelemetry does not allow the global provider to
    be replaced, so later calls return the installed one unchanged.

    Args:
        service_name: Value of the service.name resource attribute
        exporter: Span exporter. When given, spans are exported synchronously
            as they end; otherwise they are batched to the console.

    Returns:
        The installed TracerProvider
    """
    global _tracer_provider

    if _tracer_provider is not None:
        return _tracer_provider

    provider = TracerProvider(resource=Resource.create({SERVICE_NAME: service_name}))
    if exporter is None:
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
    else:
        provider.add_span_processor(SimpleSpanProcessor(exporter))

    trace.set_tracer_provider(provider)
    _tracer_provider = provider
    return provider


def get_tracer(name: str = TRACER_NAME) -> Tracer:
    return trace.get_tracer(name)


# =============================================================================
# Span Helpers
# =============================================================================


@contextmanager
def create_span(
    name: str,
    attributes: Optional[dict[str, Any]] = None,
) -> Generator[Span, None, None]:
    """
    Open a span with the given attributes as the current span.

    Exceptions escaping the block are recorded on the span and re-raised.
    """
    with get_tracer().start_as_current_span(name, attributes=attributes) as span:
        yield span


@contextmanager
def inference_span(model_id: str) -> Generator[Span, None, None]:
    """
    Span for one wrapped inference call.

    Picks up the correlation id of the surrounding inference context, so
    open it inside inference_context().

    Example:
        >>> with inference_context("drift_detector"):
        ...     with inference_span("drift_detector") as span:
        ...         set_outcome(span, "success")
    """
    attributes: dict[str, Any] = {ATTR_MODEL_ID: model_id}
    correlation_id = get_correlation_id()
    if correlation_id is not None:
        attributes[ATTR_CORRELATION_ID] = correlation_id

    with create_span(INFERENCE_SPAN_NAME, attributes) as span:
        yield span


def set_outcome(span: Span, outcome: str, success: str = "success") -> None:
    """Record the call outcome; anything other than success is an error."""
    span.set_attribute(ATTR_OUTCOME, outcome)
    if outcome == success:
        span.set_status(Status(StatusCode.OK))
    else:
        span.set_status(Status(StatusCode.ERROR, outcome))
