"""
Request/acknowledgement correlation for the pub/sub channel.
"""

from __future__ import annotations

import threading
import uuid
from collections.abc import Callable
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Any

from bosbase.errors import TimeoutError

TimerFactory = Callable[..., Any]

ACK_TIMEOUT_MESSAGE = "Timed out waiting for pubsub response."


def new_request_id() -> str:
    """Generate a unique request id for an outbound envelope."""
    return uuid.uuid4().hex


@dataclass
class PendingAck:
    """A request waiting for its response frame."""

    request_id: str
    future: Future[dict[str, Any]]
    timer: Any


class AckRegistry:
    """
    Map of request id to pending completion.

    Every entry owns its own timeout timer; settling one entry never affects
    another. An entry is removed exactly once: by resolve(), reject(),
    discard(), its timeout, or reject_all().
    """

    def __init__(
        self,
        timeout: float,
        *,
        timer_factory: TimerFactory = threading.Timer,
    ) -> None:
        self._timeout = timeout
        self._timer_factory = timer_factory
        self._lock = threading.Lock()
        self._pending: dict[str, PendingAck] = {}

    @property
    def timeout(self) -> float:
        return self._timeout

    def register(self, request_id: str) -> Future[dict[str, Any]]:
        """Track a request; the returned future settles with the response frame."""
        future: Future[dict[str, Any]] = Future()
        timer = self._timer_factory(self._timeout, self._expire, args=(request_id,))
        timer.daemon = True
        with self._lock:
            if request_id in self._pending:
                raise ValueError(f"duplicate request id: {request_id}")
            self._pending[request_id] = PendingAck(request_id, future, timer)
        timer.start()
        return future

    def resolve(self, request_id: str, payload: dict[str, Any]) -> bool:
        """Complete a pending request; False if it is unknown or already settled."""
        entry = self._pop(request_id)
        if entry is None:
            return False
        entry.future.set_result(payload)
        return True

    def reject(self, request_id: str, error: BaseException) -> bool:
        """Fail a pending request; False if it is unknown or already settled."""
        entry = self._pop(request_id)
        if entry is None:
            return False
        entry.future.set_exception(error)
        return True

    def discard(self, request_id: str) -> None:
        """Forget a request without settling its future."""
        entry = self._pop(request_id)
        if entry is not None:
            entry.future.cancel()

    def reject_all(self, error: BaseException) -> int:
        """Fail every pending request; returns how many were rejected."""
        with self._lock:
            entries = list(self._pending.values())
            self._pending.clear()
        for entry in entries:
            entry.timer.cancel()
            entry.future.set_exception(error)
        return len(entries)

    def _expire(self, request_id: str) -> None:
        entry = self._pop(request_id, cancel_timer=False)
        if entry is not None:
            entry.future.set_exception(TimeoutError(ACK_TIMEOUT_MESSAGE))

    def _pop(self, request_id: str, *, cancel_timer: bool = True) -> PendingAck | None:
        with self._lock:
            entry = self._pending.pop(request_id, None)
        if entry is not None and cancel_timer:
            entry.timer.cancel()
        return entry

    def __len__(self) -> int:
        with self._lock:
            return len(self._pending)

    def __contains__(self, request_id: object) -> bool:
        with self._lock:
            return request_id in self._pending
