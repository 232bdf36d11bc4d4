"""
Reconnect scheduling shared by the realtime and pub/sub channels.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Sequence
from typing import Any

TimerFactory = Callable[..., Any]


class BackoffScheduler:
    """
    Fixed delay ladder driving a single one-shot reconnect timer.

    The delay for attempt ``n`` is ``intervals[n]``, clamped to the last
    interval once the ladder is exhausted. Only one timer is pending at a
    time; scheduling again replaces it.

    Example:
        >>> backoff = BackoffScheduler((0.2, 0.5, 1.0))
        >>> backoff.schedule(reconnect)
        0.2
        >>> backoff.schedule(reconnect)  # replaces the first timer
        0.5
    """

    def __init__(
        self,
        intervals: Sequence[float],
        *,
        timer_factory: TimerFactory = threading.Timer,
    ) -> None:
        if not intervals:
            raise ValueError("intervals must not be empty")
        self._intervals = tuple(intervals)
        self._timer_factory = timer_factory
        self._lock = threading.Lock()
        self._attempts = 0
        self._timer: Any = None

    @property
    def attempts(self) -> int:
        """Failures since the last successful connection."""
        return self._attempts

    @property
    def intervals(self) -> tuple[float, ...]:
        return self._intervals

    @property
    def pending(self) -> bool:
        """Whether a reconnect timer is waiting to fire."""
        return self._timer is not None

    def next_delay(self) -> float:
        """Delay the next schedule() call would use."""
        index = min(self._attempts, len(self._intervals) - 1)
        return self._intervals[index]

    def schedule(self, callback: Callable[[], None]) -> float:
        """Count a failure and arm the timer; returns the chosen delay."""
        with self._lock:
            self._cancel_locked()
            delay = self.next_delay()
            self._attempts += 1

            def fire() -> None:
                with self._lock:
                    if self._timer is not timer:
                        return
                    self._timer = None
                callback()

            timer = self._timer_factory(delay, fire)
            timer.daemon = True
            self._timer = timer
            timer.start()
            return delay

    def cancel(self) -> None:
        """Drop the pending timer, keeping the attempt count."""
        with self._lock:
            self._cancel_locked()

    def reset(self) -> None:
        """Zero the attempt counter after a successful connection."""
        with self._lock:
            self._attempts = 0

    def _cancel_locked(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
