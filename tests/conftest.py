"""
Pytest configuration and shared fixtures.

This configuration sets up:
- Test discovery paths
- Test settings with small thresholds
- Fresh registries and gateways per test (no shared per-model state)
- A controllable monotonic clock for window and breaker expiry tests
"""

import sys
from pathlib import Path

import pytest

# Add project root to Python path for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))


# =============================================================================
# Fake Clock
# =============================================================================


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance_ms(self, ms: float) -> None:
        self.now += ms / 1000.0


@pytest.fixture
def fake_clock() -> FakeClock:
    """Controllable monotonic clock."""
    return FakeClock()


# =============================================================================
# Settings, Registry and Gateway Fixtures
# =============================================================================


@pytest.fixture
def test_settings():
    """
    Settings with the default escalation ladder and short timings.

    Thresholds: log 1, fallback 1, alert 3, circuit break 5.
    """
    from inference_guard.core.config import Settings

    return Settings(
        service_name="inference-guard-test",
        environment="development",
        log_after=1,
        fallback_after=1,
        alert_after=3,
        circuit_break_after=5,
        circuit_break_duration_ms=60_000,
        failure_window_ms=300_000,
        default_timeout_ms=1_000,
    )


@pytest.fixture
def registry(test_settings, fake_clock):
    """Fresh registry driven by the fake clock."""
    from inference_guard.resilience.registry import ResilienceRegistry

    return ResilienceRegistry.from_settings(test_settings, clock=fake_clock)


@pytest.fixture
def gateway(test_settings):
    """Fresh gateway with a real clock (for timeout tests)."""
    from inference_guard.gateway import InferenceGateway

    return InferenceGateway(settings=test_settings)


@pytest.fixture
def clocked_gateway(test_settings, registry):
    """Fresh gateway sharing the fake-clock registry."""
    from inference_guard.gateway import InferenceGateway

    return InferenceGateway(settings=test_settings, registry=registry)
