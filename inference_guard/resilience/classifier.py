"""
Failure Classifier.

Maps a raw (error, output) pair from an inference call to a FailureType.

Evaluation order (first match wins):
    1. Output checks, only when an output was supplied:
       NaN (or a mapping holding a NaN) -> NAN_OUTPUT
       None -> NULL_OUTPUT
       UNDEFINED -> UNDEFINED_OUTPUT
    2. Error checks: timeout, model unavailable, invalid input, invalid
       shape, out of range, confidence collapse, "nan" in message
    3. Any exception instance -> EXCEPTION, anything else -> UNKNOWN

The classifier is pure and accepts exceptions, plain strings, mappings with
"code"/"message" keys and arbitrary objects exposing code/errno/message.
"""

import asyncio
import errno
import math
from collections.abc import Mapping
from typing import Any, Optional

from inference_guard.models.domain import NO_OUTPUT, UNDEFINED, FailureType

# =============================================================================
# Constants
# =============================================================================

TIMEOUT_CODES = frozenset({"ETIMEDOUT", "ESOCKETTIMEDOUT"})
MODEL_UNAVAILABLE_CODES = frozenset({"ENOENT"})

TIMEOUT_EXCEPTIONS = (TimeoutError, asyncio.TimeoutError)
MODEL_UNAVAILABLE_EXCEPTIONS = (FileNotFoundError,)

# Ordered keyword rules applied to the lowercased error message.
KEYWORD_RULES: tuple[tuple[FailureType, tuple[str, ...]], ...] = (
    (FailureType.TIMEOUT, ("timeout", "timed out", "exceeded")),
    (
        FailureType.MODEL_UNAVAILABLE,
        ("model not found", "model unavailable", "failed to load model", "no model"),
    ),
    (
        FailureType.INVALID_INPUT,
        ("invalid input", "bad input", "input validation", "missing required"),
    ),
    (
        FailureType.INVALID_SHAPE,
        ("shape", "dimension", "expected array", "type mismatch"),
    ),
    (
        FailureType.OUT_OF_RANGE,
        ("out of range", "overflow", "underflow", "bounds"),
    ),
    (
        FailureType.CONFIDENCE_COLLAPSE,
        ("confidence", "probability", "certainty"),
    ),
    (FailureType.NAN_OUTPUT, ("nan",)),
)


# =============================================================================
# Helpers
# =============================================================================


def _is_nan(value: Any) -> bool:
    return isinstance(value, float) and math.isnan(value)


def _classify_output(output: Any) -> Optional[FailureType]:
    if _is_nan(output):
        return FailureType.NAN_OUTPUT
    if output is None:
        return FailureType.NULL_OUTPUT
    if output is UNDEFINED:
        return FailureType.UNDEFINED_OUTPUT
    if isinstance(output, Mapping) and any(_is_nan(v) for v in output.values()):
        return FailureType.NAN_OUTPUT
    return None


def error_message(error: Any) -> str:
    """
    Extract a message from any supported error shape.

    Args:
        error: Exception, string, mapping or object

    Returns:
        Message text ("" when none can be found)
    """
    if error is None:
        return ""
    if isinstance(error, str):
        return error
    if isinstance(error, Mapping):
        return str(error.get("message") or "")
    message = getattr(error, "message", None)
    if isinstance(message, str) and message:
        return message
    if isinstance(error, BaseException):
        return str(error)
    return ""


def error_code(error: Any) -> Optional[str]:
    """
    Extract a symbolic error code (e.g. "ETIMEDOUT") from an error.

    Integer errno values are translated through errno.errorcode.
    """
    if error is None or isinstance(error, str):
        return None
    if isinstance(error, Mapping):
        code = error.get("code")
    else:
        code = getattr(error, "code", None)
        if code is None:
            code = getattr(error, "errno", None)
    if isinstance(code, int) and not isinstance(code, bool):
        return errno.errorcode.get(code)
    if isinstance(code, str):
        return code.upper()
    return None


# =============================================================================
# Classifier
# =============================================================================


def classify_failure(error: Any, output: Any = NO_OUTPUT) -> FailureType:
    """
    Classify an inference failure.

    Args:
        error: The raised error, an error description, or None
        output: The value the inference produced, if any. Leave unset
            when no output is available; pass UNDEFINED for an output
            that is explicitly absent.

    Returns:
        FailureType

    Example:
        >>> classify_failure(ValueError("Request timeout"))
        <FailureType.TIMEOUT: 'TIMEOUT'>
        >>> classify_failure(None, float("nan"))
        <FailureType.NAN_OUTPUT: 'NAN_OUTPUT'>
    """
    if output is not NO_OUTPUT:
        output_type = _classify_output(output)
        if output_type is not None:
            return output_type

    if error is None:
        return FailureType.UNKNOWN

    code = error_code(error)
    if isinstance(error, TIMEOUT_EXCEPTIONS) or code in TIMEOUT_CODES:
        return FailureType.TIMEOUT

    message = error_message(error).lower()

    for failure_type, keywords in KEYWORD_RULES:
        if failure_type is FailureType.MODEL_UNAVAILABLE and (
            code in MODEL_UNAVAILABLE_CODES
            or isinstance(error, MODEL_UNAVAILABLE_EXCEPTIONS)
        ):
            return failure_type
        if any(keyword in message for keyword in keywords):
            return failure_type

    if isinstance(error, BaseException):
        return FailureType.EXCEPTION

    return FailureType.UNKNOWN
