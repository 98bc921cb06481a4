"""
Core module for Inference Guard.

This module contains configuration and exceptions.
"""

from inference_guard.core.config import Settings, get_settings
from inference_guard.core.exceptions import (
    CircuitOpenError,
    ErrorCode,
    InferenceGuardError,
    InferenceTimeoutError,
    InvalidOutputError,
    OutputValidationError,
)

__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Exceptions
    "ErrorCode",
    "InferenceGuardError",
    "InferenceTimeoutError",
    "OutputValidationError",
    "InvalidOutputError",
    "CircuitOpenError",
]
