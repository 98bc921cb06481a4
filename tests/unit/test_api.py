"""
Tests for the module-level API in inference_guard/api.py.

All functions delegate to the process-wide gateway singleton.
"""

import pytest


@pytest.fixture(autouse=True)
def clean_gateway():
    """
    Reset the process-wide gateway before and after each test.

    This prevents test pollution from shared per-model state.
    """
    from inference_guard import api

    api.reset_gateway()
    yield
    api.reset_gateway()


class TestSingleton:
    """get_gateway() is cached."""

    def test_same_instance(self):
        from inference_guard import api

        assert api.get_gateway() is api.get_gateway()

    def test_reset_clears_state(self):
        from inference_guard import api
        from inference_guard.models.domain import FailureType

        api.record_failure("m", FailureType.TIMEOUT)
        api.trip_circuit_breaker("m", "manual", 1)
        api.cache_result("m", {"v": 1})

        api.reset_gateway()

        assert api.get_failure_stats("m").failures_in_window == 0
        assert api.check_circuit_breaker("m").broken is False
        assert api.get_cached_result("m") is None


class TestDelegation:
    """Module functions act on the shared gateway."""

    def test_handle_inference_failure(self):
        from inference_guard import api

        result = api.handle_inference_failure("m", RuntimeError("boom"))

        assert result.handled is True
        assert api.get_failure_stats("m").failures_in_window == 1

    def test_breaker_admin(self):
        from inference_guard import api

        api.trip_circuit_breaker("a", "manual", 0)
        api.trip_circuit_breaker("b", "manual", 0)

        assert sorted(s.model_id for s in api.get_active_circuit_breakers()) == ["a", "b"]
        assert api.reset_circuit_breaker("a") is True

        api.reset_all_circuit_breakers()
        assert api.get_active_circuit_breakers() == []

    def test_clear_failures(self):
        from inference_guard import api
        from inference_guard.models.domain import FailureType

        api.record_failure("a", FailureType.TIMEOUT)
        api.record_failure("b", FailureType.TIMEOUT)
        api.clear_failures("a")

        assert api.get_failure_stats("a").failures_in_window == 0
        assert api.get_failure_stats("b").failures_in_window == 1

        api.clear_all_failures()
        assert api.get_failure_stats("b").failures_in_window == 0

    def test_record_success(self):
        from inference_guard import api

        api.record_success("m")

        assert api.get_failure_stats("m").last_success is not None

    def test_determine_escalation_and_fallback(self):
        from inference_guard import api
        from inference_guard.models.domain import EscalationLevel, FailureType, FallbackStrategy

        escalation = api.determine_escalation("m", FailureType.TIMEOUT, 3)
        fallback = api.get_fallback("m", FallbackStrategy.REJECT)

        assert escalation.level is EscalationLevel.ALERT
        assert fallback["rejected"] is True

    def test_health_views(self):
        from inference_guard import api
        from inference_guard.models.domain import HealthStatus

        assert api.quick_check("m").status is HealthStatus.HEALTHY
        assert api.analyze("m").model_id == "m"

    @pytest.mark.asyncio
    async def test_wrap_inference(self):
        from inference_guard import api

        async def infer(x):
            return {"value": x}

        wrapped = api.wrap_inference(infer, "m")

        assert await wrapped(3) == {"value": 3}
        assert api.get_cached_result("m") == {"value": 3}

    @pytest.mark.asyncio
    async def test_create_inference_wrapper(self):
        from inference_guard import api

        @api.create_inference_wrapper("m")
        async def broken():
            raise RuntimeError("boom")

        result = await broken()

        assert result["is_fallback"] is True
