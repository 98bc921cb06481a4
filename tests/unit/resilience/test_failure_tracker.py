"""
Tests for the sliding-window FailureTracker.

This module tests:
- Recording failures and statistics snapshots
- Window pruning by age
- Custom stats windows
- Success tracking (never erases failures)
- Context sanitization on record
"""

import pytest


@pytest.fixture
def tracker(fake_clock):
    """Tracker with a 60 second window driven by the fake clock."""
    from inference_guard.resilience.failure_tracker import FailureTracker

    return FailureTracker(window_ms=60_000, clock=fake_clock)


class TestRecordFailure:
    """Recording failures."""

    def test_first_failure(self, tracker):
        from inference_guard.models.domain import FailureType

        stats = tracker.record_failure("confidence_score", FailureType.TIMEOUT, "Request timeout")

        assert stats.model_id == "confidence_score"
        assert stats.failures_in_window == 1
        assert stats.by_type == {FailureType.TIMEOUT: 1}
        assert stats.last_failure is not None
        assert stats.last_success is None

    def test_counts_by_type(self, tracker):
        from inference_guard.models.domain import FailureType

        tracker.record_failure("m", FailureType.TIMEOUT)
        tracker.record_failure("m", FailureType.TIMEOUT)
        stats = tracker.record_failure("m", FailureType.NAN_OUTPUT)

        assert stats.failures_in_window == 3
        assert stats.by_type[FailureType.TIMEOUT] == 2
        assert stats.by_type[FailureType.NAN_OUTPUT] == 1

    def test_accepts_string_failure_type(self, tracker):
        from inference_guard.models.domain import FailureType

        tracker.record_failure("m", "TIMEOUT")

        assert tracker.records("m")[0].type is FailureType.TIMEOUT

    def test_models_are_independent(self, tracker):
        from inference_guard.models.domain import FailureType

        tracker.record_failure("a", FailureType.TIMEOUT)

        assert tracker.get_failure_stats("b").failures_in_window == 0

    def test_context_sanitized_on_record(self, tracker):
        from inference_guard.models.domain import FailureType

        tracker.record_failure(
            "m",
            FailureType.EXCEPTION,
            context={"track_id": "t-1", "token": "abc", "samples": b"\x00"},
        )

        assert dict(tracker.records("m")[0].context) == {"track_id": "t-1"}

    def test_record_context_is_read_only(self, tracker):
        from inference_guard.models.domain import FailureType

        tracker.record_failure("m", FailureType.EXCEPTION, context={"k": "v"})

        with pytest.raises(TypeError):
            tracker.records("m")[0].context["k"] = "changed"


class TestWindow:
    """Sliding-window pruning."""

    def test_old_failures_leave_window(self, tracker, fake_clock):
        from inference_guard.models.domain import FailureType

        tracker.record_failure("m", FailureType.TIMEOUT)
        fake_clock.advance_ms(61_000)

        assert tracker.get_failure_stats("m").failures_in_window == 0

    def test_prune_on_record(self, tracker, fake_clock):
        from inference_guard.models.domain import FailureType

        tracker.record_failure("m", FailureType.TIMEOUT)
        fake_clock.advance_ms(61_000)
        tracker.record_failure("m", FailureType.NAN_OUTPUT)

        records = tracker.records("m")
        assert len(records) == 1
        assert records[0].type is FailureType.NAN_OUTPUT

    def test_failure_at_boundary_stays(self, tracker, fake_clock):
        from inference_guard.models.domain import FailureType

        tracker.record_failure("m", FailureType.TIMEOUT)
        fake_clock.advance_ms(60_000)

        assert tracker.get_failure_stats("m").failures_in_window == 1

    def test_custom_stats_window(self, tracker, fake_clock):
        from inference_guard.models.domain import FailureType

        tracker.record_failure("m", FailureType.TIMEOUT)
        fake_clock.advance_ms(20_000)
        tracker.record_failure("m", FailureType.TIMEOUT)

        stats = tracker.get_failure_stats("m", window_ms=10_000)

        assert stats.failures_in_window == 1
        assert stats.window_duration_ms == 10_000

    def test_failure_rate_per_minute(self, tracker):
        from inference_guard.models.domain import FailureType

        for _ in range(3):
            tracker.record_failure("m", FailureType.TIMEOUT)

        assert tracker.get_failure_stats("m").failure_rate == pytest.approx(3.0)


class TestSuccessAndClear:
    """Success tracking and explicit clearing."""

    def test_success_keeps_failures(self, tracker):
        from inference_guard.models.domain import FailureType

        tracker.record_failure("m", FailureType.TIMEOUT)
        tracker.record_success("m")

        stats = tracker.get_failure_stats("m")
        assert stats.failures_in_window == 1
        assert stats.last_success is not None

    def test_clear_failures(self, tracker):
        from inference_guard.models.domain import FailureType

        tracker.record_failure("m", FailureType.TIMEOUT)
        tracker.clear_failures("m")

        assert tracker.get_failure_stats("m").failures_in_window == 0
        assert "m" not in tracker.model_ids()

    def test_clear_all_failures(self, tracker):
        from inference_guard.models.domain import FailureType

        tracker.record_failure("a", FailureType.TIMEOUT)
        tracker.record_failure("b", FailureType.TIMEOUT)
        tracker.clear_all_failures()

        assert tracker.model_ids() == []

    def test_clear_failures_keeps_last_success(self, tracker):
        from inference_guard.models.domain import FailureType

        tracker.record_success("m")
        tracker.record_failure("m", FailureType.TIMEOUT)
        before = tracker.get_failure_stats("m").last_success

        tracker.clear_failures("m")

        stats = tracker.get_failure_stats("m")
        assert stats.failures_in_window == 0
        assert stats.last_success == before
        assert "m" not in tracker.model_ids()

    def test_clear_all_keeps_last_success(self, tracker):
        from inference_guard.models.domain import FailureType

        tracker.record_success("a")
        tracker.record_failure("a", FailureType.TIMEOUT)
        tracker.clear_all_failures()

        assert tracker.get_failure_stats("a").last_success is not None

    def test_forget_drops_last_success(self, tracker):
        tracker.record_success("m")
        tracker.forget("m")

        assert tracker.get_failure_stats("m").last_success is None

    @pytest.mark.parametrize("window_ms", [0, -1])
    def test_non_positive_window_rejected(self, tracker, window_ms):
        with pytest.raises(ValueError, match="window_ms must be positive"):
            tracker.get_failure_stats("m", window_ms=window_ms)

    def test_unknown_model_stats_are_zero(self, tracker):
        stats = tracker.get_failure_stats("never-seen")

        assert stats.failures_in_window == 0
        assert stats.failure_rate == 0.0
        assert stats.by_type == {}
        assert stats.last_failure is None
