"""Unit tests for the reconnect scheduler."""

from __future__ import annotations

import threading

import pytest

from bosbase.realtime.backoff import BackoffScheduler
from tests.conftest import TimerRecorder


class TestBackoffScheduler:
    """Tests for BackoffScheduler."""

    def test_empty_ladder_rejected(self) -> None:
        with pytest.raises(ValueError):
            BackoffScheduler(())

    def test_delays_follow_ladder_and_clamp(self, timers: TimerRecorder) -> None:
        """Test the delay index clamps at the last interval."""
        backoff = BackoffScheduler((0.2, 0.5, 1.0), timer_factory=timers)

        delays = [backoff.schedule(lambda: None) for _ in range(5)]

        assert delays == [0.2, 0.5, 1.0, 1.0, 1.0]
        assert backoff.attempts == 5
        assert backoff.next_delay() == 1.0

    def test_only_one_timer_pending(self, timers: TimerRecorder) -> None:
        """Test scheduling again cancels the previous timer."""
        backoff = BackoffScheduler((0.2, 0.5), timer_factory=timers)

        backoff.schedule(lambda: None)
        backoff.schedule(lambda: None)

        assert [timer.interval for timer in timers.active] == [0.5]
        assert timers.timers[0].cancelled
        assert all(timer.daemon for timer in timers.timers)

    def test_fire_runs_callback(self, timers: TimerRecorder) -> None:
        """Test the callback runs once and the timer is released."""
        calls: list[int] = []
        backoff = BackoffScheduler((0.2,), timer_factory=timers)

        backoff.schedule(lambda: calls.append(1))
        assert backoff.pending
        timers.fire_only()

        assert calls == [1]
        assert not backoff.pending

    def test_replaced_timer_does_not_fire_callback(self, timers: TimerRecorder) -> None:
        """Test a superseded timer firing late is ignored."""
        calls: list[str] = []
        backoff = BackoffScheduler((0.2,), timer_factory=timers)

        backoff.schedule(lambda: calls.append("old"))
        old = timers.timers[0]
        backoff.schedule(lambda: calls.append("new"))

        old.function()
        assert calls == []

    def test_cancel_keeps_attempts(self, timers: TimerRecorder) -> None:
        """Test cancel() drops the timer but not the counter."""
        backoff = BackoffScheduler((0.2, 0.5), timer_factory=timers)
        backoff.schedule(lambda: None)

        backoff.cancel()

        assert timers.active == []
        assert backoff.attempts == 1
        assert backoff.next_delay() == 0.5

    def test_reset_zeroes_attempts(self, timers: TimerRecorder) -> None:
        """Test reset() restarts the ladder."""
        backoff = BackoffScheduler((0.2, 0.5), timer_factory=timers)
        backoff.schedule(lambda: None)
        backoff.schedule(lambda: None)

        backoff.reset()

        assert backoff.attempts == 0
        assert backoff.next_delay() == 0.2

    def test_real_timer(self) -> None:
        """Test the default threading.Timer fires the callback."""
        fired = threading.Event()
        backoff = BackoffScheduler((0.01,))

        backoff.schedule(fired.set)

        assert fired.wait(2)
