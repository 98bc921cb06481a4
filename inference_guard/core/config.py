"""
Core configuration module for Inference Guard.

This module provides centralized configuration management using Pydantic Settings.
All configuration is loaded from environment variables with the INFERENCE_GUARD_ prefix.

Escalation thresholds must keep their ladder ordering:
    circuit_break_after > alert_after >= log_after >= 1
    fallback_after >= log_after

Mapping fields (fallback_defaults, conservative_fallbacks) are read as JSON
from the environment, e.g.:
    INFERENCE_GUARD_CONSERVATIVE_FALLBACKS='{"confidence_score": {"confidence": 0.1}}'
"""

from functools import lru_cache
from typing import Any, Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings

from inference_guard.models.domain import FailureType


DEFAULT_SENSITIVE_CONTEXT_KEYS = (
    "password",
    "token",
    "apikey",
    "api_key",
    "secret",
    "authorization",
    "rawaudio",
    "raw_audio",
    "buffer",
)


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All fields use the INFERENCE_GUARD_ prefix for environment variables.
    Example: INFERENCE_GUARD_ALERT_AFTER=4
    """

    # =========================================================================
    # Service Configuration
    # =========================================================================
    service_name: str = Field(
        default="inference-guard",
        description="Name of the service for logging and tracing",
    )
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Deployment environment",
    )
    log_level: str = Field(
        default="INFO",
        description="Log level for the structured logger",
    )
    log_json: bool = Field(
        default=True,
        description="Render log events as JSON lines; False renders key=value lines",
    )
    tracing_enabled: bool = Field(
        default=False,
        description="Install an OpenTelemetry TracerProvider at gateway startup",
    )

    # =========================================================================
    # Escalation Thresholds
    # =========================================================================
    log_after: int = Field(
        default=1,
        ge=1,
        description="Failures in window before a failure is logged",
    )
    fallback_after: int = Field(
        default=1,
        ge=1,
        description="Failures in window before fallback escalation",
    )
    alert_after: int = Field(
        default=3,
        ge=1,
        description="Failures in window before alerting",
    )
    circuit_break_after: int = Field(
        default=5,
        ge=2,
        description="Failures in window before the circuit breaker trips",
    )
    critical_failure_types: list[FailureType] = Field(
        default_factory=lambda: [
            FailureType.MODEL_UNAVAILABLE,
            FailureType.CONFIDENCE_COLLAPSE,
        ],
        description="Failure types that escalate to CRITICAL regardless of count",
    )

    # =========================================================================
    # Timing Configuration
    # =========================================================================
    circuit_break_duration_ms: int = Field(
        default=60_000,
        ge=1,
        description="How long a tripped breaker stays open",
    )
    failure_window_ms: int = Field(
        default=300_000,
        ge=1,
        description="Length of the sliding failure window",
    )
    default_timeout_ms: int = Field(
        default=5_000,
        ge=1,
        description="Default deadline for wrapped inference calls",
    )
    high_failure_rate: float = Field(
        default=0.5,
        ge=0.0,
        description="Failures per minute above which disabling ML is recommended",
    )

    # =========================================================================
    # Fallback Tables
    # =========================================================================
    fallback_defaults: dict[str, dict[str, Any]] = Field(
        default_factory=dict,
        description="Per-model default fallback values (merged over built-ins)",
    )
    conservative_fallbacks: dict[str, dict[str, Any]] = Field(
        default_factory=dict,
        description="Per-model conservative fallback values",
    )

    # =========================================================================
    # Context Sanitization
    # =========================================================================
    sensitive_context_keys: list[str] = Field(
        default_factory=lambda: list(DEFAULT_SENSITIVE_CONTEXT_KEYS),
        description="Context keys stripped before a failure is recorded",
    )

    model_config = {
        "env_prefix": "INFERENCE_GUARD_",
        "case_sensitive": False,
        "extra": "ignore",
    }

    # =========================================================================
    # Validators
    # =========================================================================
    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate and normalize log level."""
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @field_validator("sensitive_context_keys")
    @classmethod
    def normalize_sensitive_keys(cls, v: list[str]) -> list[str]:
        """Store deny-list keys lowercased for case-insensitive matching."""
        return [key.lower() for key in v]

    @model_validator(mode="after")
    def validate_threshold_ladder(self) -> "Settings":
        """Enforce circuit_break_after > alert_after >= log_after >= 1."""
        if self.alert_after < self.log_after:
            raise ValueError("alert_after must be >= log_after")
        if self.circuit_break_after <= self.alert_after:
            raise ValueError("circuit_break_after must be > alert_after")
        if self.fallback_after < self.log_after:
            raise ValueError("fallback_after must be >= log_after")
        return self


@lru_cache
def get_settings() -> Settings:
    """
    Get the application settings singleton.

    Returns:
        Settings: The application settings instance.
    """
    return Settings()
