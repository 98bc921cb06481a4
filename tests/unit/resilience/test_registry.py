"""
Tests for ResilienceRegistry and KeyedLock.
"""

import threading


class TestResilienceRegistry:
    """Shared per-model state."""

    def test_components_share_locks(self, registry):
        assert registry.tracker._locks is registry.locks
        assert registry.breakers._locks is registry.locks
        assert registry.cache._locks is registry.locks

    def test_explicit_empty_lock_map_is_used(self):
        from inference_guard.resilience.cache import ResultCache
        from inference_guard.resilience.circuit_breaker import CircuitBreakerRegistry
        from inference_guard.resilience.failure_tracker import FailureTracker
        from inference_guard.resilience.locks import KeyedLock

        locks = KeyedLock()

        assert FailureTracker(locks=locks)._locks is locks
        assert CircuitBreakerRegistry(locks=locks)._locks is locks
        assert ResultCache(locks=locks)._locks is locks

    def test_held_model_lock_blocks_store_writes(self, registry):
        """Tracker and breaker writes wait for a critical section on the same model."""
        from inference_guard.models.domain import FailureType

        done = threading.Event()

        def writer():
            registry.tracker.record_failure("m", FailureType.TIMEOUT)
            registry.breakers.trip("m", "manual", 1)
            done.set()

        with registry.locks.hold("m"):
            thread = threading.Thread(target=writer)
            thread.start()
            assert done.wait(0.2) is False

        thread.join(timeout=5)
        assert done.is_set()
        assert registry.breakers.is_open("m") is True

    def test_other_models_not_blocked(self, registry):
        from inference_guard.models.domain import FailureType

        done = threading.Event()

        def writer():
            registry.tracker.record_failure("other", FailureType.TIMEOUT)
            done.set()

        with registry.locks.hold("m"):
            thread = threading.Thread(target=writer)
            thread.start()
            assert done.wait(5) is True
        thread.join(timeout=5)

    def test_from_settings(self, test_settings):
        from inference_guard.resilience.registry import ResilienceRegistry

        registry = ResilienceRegistry.from_settings(test_settings)

        assert registry.tracker.window_ms == test_settings.failure_window_ms
        assert registry.breakers.default_duration_ms == test_settings.circuit_break_duration_ms

    def test_reset_breaker_clears_failures(self, registry):
        from inference_guard.models.domain import FailureType

        for _ in range(5):
            registry.tracker.record_failure("m", FailureType.TIMEOUT)
        registry.breakers.trip("m", "manual", 5)

        assert registry.reset_circuit_breaker("m") is True
        assert registry.breakers.is_open("m") is False
        assert registry.tracker.get_failure_stats("m").failures_in_window == 0

    def test_reset_breaker_keeps_last_success(self, registry):
        from inference_guard.models.domain import FailureType

        registry.tracker.record_success("m")
        registry.tracker.record_failure("m", FailureType.TIMEOUT)
        registry.breakers.trip("m", "manual", 1)

        registry.reset_circuit_breaker("m")

        stats = registry.tracker.get_failure_stats("m")
        assert stats.failures_in_window == 0
        assert stats.last_success is not None

    def test_reset_breaker_without_breaker(self, registry):
        from inference_guard.models.domain import FailureType

        registry.tracker.record_failure("m", FailureType.TIMEOUT)

        assert registry.reset_circuit_breaker("m") is False
        assert registry.tracker.get_failure_stats("m").failures_in_window == 0

    def test_reset_all_circuit_breakers(self, registry):
        from inference_guard.models.domain import FailureType

        registry.breakers.trip("a", "manual", 0)
        registry.tracker.record_failure("b", FailureType.TIMEOUT)

        registry.reset_all_circuit_breakers()

        assert registry.breakers.active() == []
        assert registry.tracker.model_ids() == []

    def test_reset_keeps_nothing(self, registry):
        registry.cache.cache_result("m", 1)
        registry.breakers.trip("m", "manual", 0)
        registry.tracker.record_success("m")

        registry.reset()

        assert registry.cache.get_cached_result("m") is None
        assert registry.breakers.model_ids() == []
        assert registry.tracker.get_failure_stats("m").last_success is None


class TestKeyedLock:
    """One re-entrant lock per key."""

    def test_same_key_same_lock(self):
        from inference_guard.resilience.locks import KeyedLock

        locks = KeyedLock()

        assert locks.get("a") is locks.get("a")
        assert locks.get("a") is not locks.get("b")
        assert len(locks) == 2

    def test_hold_is_reentrant(self):
        from inference_guard.resilience.locks import KeyedLock

        locks = KeyedLock()

        with locks.hold("a"):
            with locks.hold("a"):
                pass

    def test_concurrent_records_are_all_kept(self):
        from inference_guard.models.domain import FailureType
        from inference_guard.resilience.failure_tracker import FailureTracker

        tracker = FailureTracker(window_ms=60_000)

        def worker():
            for _ in range(50):
                tracker.record_failure("m", FailureType.TIMEOUT)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert tracker.get_failure_stats("m").failures_in_window == 400

    def test_lock_survives_reset(self, registry):
        lock = registry.locks.get("m")
        registry.breakers.trip("m", "manual", 0)

        registry.reset()

        assert registry.locks.get("m") is lock
