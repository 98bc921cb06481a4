"""
Failure context sanitization.

Failure context is attached to records, logs and handler envelopes, so it is
cleaned before any record is built:
- keys on the deny-list (matched case-insensitively) are dropped
- values that are not scalars (bytes, buffers, containers, objects) are
  dropped rather than coerced to strings
"""

from collections.abc import Iterable, Mapping
from typing import Any, Optional

from inference_guard.core.config import DEFAULT_SENSITIVE_CONTEXT_KEYS
from inference_guard.models.domain import Scalar
from inference_guard.observability.logging import get_logger

logger = get_logger(__name__)

SCALAR_TYPES = (str, int, float, bool, type(None))


def is_scalar(value: Any) -> bool:
    """Return True for str, int, float, bool and None."""
    return isinstance(value, SCALAR_TYPES)


def sanitize_context(
    context: Optional[Mapping[str, Any]],
    deny_list: Iterable[str] = DEFAULT_SENSITIVE_CONTEXT_KEYS,
) -> dict[str, Scalar]:
    """
    Return a copy of context holding only safe scalar entries.

    Args:
        context: Raw caller-supplied context
        deny_list: Lowercased keys to strip

    Returns:
        New dict with deny-listed keys and non-scalar values removed
    """
    if not context:
        return {}

    denied = {key.lower() for key in deny_list}
    sanitized: dict[str, Scalar] = {}
    rejected: list[str] = []

    for key, value in context.items():
        key_str = str(key)
        if key_str.lower() in denied:
            continue
        if not is_scalar(value):
            rejected.append(key_str)
            continue
        sanitized[key_str] = value

    if rejected:
        logger.debug("context_values_rejected", keys=sorted(rejected))

    return sanitized
