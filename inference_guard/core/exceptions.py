"""
Custom exceptions for Inference Guard.

All exceptions inherit from InferenceGuardError and include error codes for
consistent handling and logging. Only CircuitOpenError ever reaches a caller
of the gateway (through InferenceGateway.ensure_available); the others are
raised inside the wrapped call path and converted into fallback results.
"""

from enum import Enum
from typing import Any, Optional


# =============================================================================
# Error Codes
# =============================================================================


class ErrorCode(str, Enum):
    """Machine-readable error codes used across the gateway and in logs."""

    GUARD_ERROR = "GUARD_ERROR"
    INFERENCE_TIMEOUT = "INFERENCE_TIMEOUT"
    OUTPUT_VALIDATION_ERROR = "OUTPUT_VALIDATION_ERROR"
    INVALID_OUTPUT = "INVALID_OUTPUT"
    CIRCUIT_OPEN = "CIRCUIT_OPEN"


# =============================================================================
# Base Exception
# =============================================================================


class InferenceGuardError(Exception):
    """
    Base exception for all Inference Guard errors.

    Attributes:
        message: Human-readable error message.
        error_code: Machine-readable error code from ErrorCode enum.
    """

    def __init__(
        self,
        message: str,
        error_code: str = ErrorCode.GUARD_ERROR,
        **kwargs: Any,
    ) -> None:
        """
        Initialize the exception.

        Args:
            message: Human-readable error message.
            error_code: Machine-readable error code.
            **kwargs: Additional attributes to set on the exception.
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code

        for key, value in kwargs.items():
            setattr(self, key, value)


# =============================================================================
# Inference Path Exceptions
# =============================================================================


class InferenceTimeoutError(InferenceGuardError, TimeoutError):
    """
    Raised when a wrapped inference call misses its deadline.

    Attributes:
        model_id: Model whose call timed out.
        timeout_ms: The deadline that was exceeded.
    """

    def __init__(
        self,
        model_id: str,
        timeout_ms: int,
        error_code: str = ErrorCode.INFERENCE_TIMEOUT,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            f"Inference timeout after {timeout_ms}ms", error_code, **kwargs
        )
        self.model_id = model_id
        self.timeout_ms = timeout_ms


class OutputValidationError(InferenceGuardError):
    """
    Raised when a caller-supplied output validator rejects a result.

    The message is the validator's error text so that the classifier can
    pick a failure type from it (e.g. "confidence out of range").
    """

    def __init__(
        self,
        message: Optional[str] = None,
        error_code: str = ErrorCode.OUTPUT_VALIDATION_ERROR,
        **kwargs: Any,
    ) -> None:
        super().__init__(message or "Output validation failed", error_code, **kwargs)


class InvalidOutputError(InferenceGuardError):
    """Raised when inference resolves to None, NaN or UNDEFINED."""

    def __init__(
        self,
        message: str = "Null or undefined output",
        error_code: str = ErrorCode.INVALID_OUTPUT,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, error_code, **kwargs)


class CircuitOpenError(InferenceGuardError):
    """
    Raised by InferenceGateway.ensure_available when a model's breaker is open.

    Attributes:
        model_id: Model whose breaker is open.
        remaining_ms: Milliseconds until the breaker auto-expires.
    """

    def __init__(
        self,
        model_id: str,
        remaining_ms: int,
        error_code: str = ErrorCode.CIRCUIT_OPEN,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            f"Circuit '{model_id}' is open - failing fast ({remaining_ms}ms remaining)",
            error_code,
            **kwargs,
        )
        self.model_id = model_id
        self.remaining_ms = remaining_ms
