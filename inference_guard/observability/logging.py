"""
Structured Logging Module.

structlog output for the gateway. Every wrapped inference call runs inside an
inference context carrying a correlation id and the model id, and both are
stamped onto each event logged during the call so that the failure,
escalation and breaker lines of one call can be joined.

Pattern: Structured logging for observability
Pattern: Singleton configuration (configure once at startup)
"""

import contextvars
import logging
import sys
import uuid
from contextlib import contextmanager
from typing import Generator, Optional, TextIO

import structlog
from structlog.types import EventDict, Processor, WrappedLogger


_configured: bool = False

CORRELATION_ID_PREFIX = "inf-"


# =============================================================================
# Inference Call Context
# =============================================================================

_correlation_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "inference_correlation_id", default=None
)
_model_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "inference_model_id", default=None
)


def new_correlation_id() -> str:
    """Return a fresh id of the form inf-<12 hex chars>."""
    return f"{CORRELATION_ID_PREFIX}{uuid.uuid4().hex[:12]}"


def get_correlation_id() -> Optional[str]:
    """Correlation id of the current inference call, if any."""
    return _correlation_id_var.get()


def set_correlation_id(correlation_id: Optional[str]) -> None:
    """
    Set the correlation id for the current context.

    Callers that already carry a request id set it here; wrapped calls made
    afterwards reuse it instead of generating their own.
    """
    _correlation_id_var.set(correlation_id)


def clear_correlation_id() -> None:
    _correlation_id_var.set(None)


@contextmanager
def inference_context(
    model_id: str,
    correlation_id: Optional[str] = None,
) -> Generator[str, None, None]:
    """
    Scope log events to one inference call.

    The correlation id is, in order of preference: the one passed in, the
    one already set in this context, or a new one.

    Args:
        model_id: Model being called
        correlation_id: Explicit id to use

    Yields:
        The correlation id in effect

    Example:
        >>> with inference_context("confidence_score") as call_id:
        ...     logger.info("inference_started")
    """
    call_id = correlation_id or get_correlation_id() or new_correlation_id()
    id_token = _correlation_id_var.set(call_id)
    model_token = _model_id_var.set(model_id)
    try:
        yield call_id
    finally:
        _model_id_var.reset(model_token)
        _correlation_id_var.reset(id_token)


# =============================================================================
# Processors
# =============================================================================


def add_inference_context(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Stamp correlation_id and model_id from the inference context."""
    correlation_id = _correlation_id_var.get()
    if correlation_id is not None:
        event_dict.setdefault("correlation_id", correlation_id)
    model_id = _model_id_var.get()
    if model_id is not None:
        event_dict.setdefault("model_id", model_id)
    return event_dict


def add_level(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    # structlog passes aliases such as "warn" and "exception" as method names.
    event_dict["level"] = {"warn": "warning", "exception": "error"}.get(
        method_name, method_name
    )
    return event_dict


# =============================================================================
# Singleton Configuration
# =============================================================================


def configure_logging(
    level: str = "INFO",
    stream: Optional[TextIO] = None,
    json_output: bool = True,
    force: bool = False,
) -> None:
    """
    Configure structlog for the process.

    Subsequent calls are no-ops unless force=True.

    Args:
        level: Minimum level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        stream: Output stream (default: sys.stdout)
        json_output: Render JSON lines; False renders plain key=value lines
        force: Reconfigure even if already configured (tests)
    """
    global _configured

    if _configured and not force:
        return

    renderer: Processor = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer(colors=False)
    )

    structlog.configure(
        processors=[
            add_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True, key="timestamp"),
            add_inference_context,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level_to_int(level)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream or sys.stdout),
        cache_logger_on_first_use=False,
    )

    _configured = True


def reset_logging() -> None:
    """
    Forget that logging was configured.

    WARNING: This should only be used in tests.
    """
    global _configured
    _configured = False


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Get a structured logger bound to a component name.

    Configures logging with defaults if nothing has configured it yet.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.warning("inference_failure", failure_type="TIMEOUT")
    """
    configure_logging()
    return structlog.get_logger().bind(logger=name)


def level_to_int(level: str) -> int:
    """Map a level name to its logging constant, INFO when unknown."""
    value = logging.getLevelName(level.upper())
    return value if isinstance(value, int) else logging.INFO
