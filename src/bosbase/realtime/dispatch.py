"""
Ordered listener delivery on a dedicated thread.
"""

from __future__ import annotations

import queue
import threading
from collections.abc import Callable
from typing import Any

ErrorHandler = Callable[[BaseException], None]


class ListenerDispatcher:
    """
    Run callbacks one at a time, in submission order, on a daemon thread.

    The worker thread is started by the first submit() and ends on stop().
    A later submit() starts a fresh one.
    """

    def __init__(self, name: str = "bosbase-dispatch", on_error: ErrorHandler | None = None) -> None:
        self._name = name
        self._on_error = on_error
        self._lock = threading.Lock()
        self._queue: queue.Queue[Any] | None = None
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        with self._lock:
            return self._thread is not None

    def submit(self, fn: Callable[..., Any], *args: Any) -> None:
        with self._lock:
            if self._queue is None:
                self._queue = queue.Queue()
                self._thread = threading.Thread(
                    target=self._run, args=(self._queue,), name=self._name, daemon=True
                )
                self._thread.start()
            self._queue.put((fn, args))

    def flush(self, timeout: float | None = None) -> bool:
        """Wait until everything submitted so far has run."""
        with self._lock:
            pending, worker = self._queue, self._thread
        if pending is None or worker is threading.current_thread():
            return True
        done = threading.Event()
        pending.put((done.set, ()))
        return done.wait(timeout)

    def stop(self) -> None:
        """Let the worker finish what is queued, then exit."""
        with self._lock:
            pending, self._queue = self._queue, None
            self._thread = None
        if pending is not None:
            pending.put(None)

    def _run(self, pending: queue.Queue[Any]) -> None:
        while True:
            item = pending.get()
            if item is None:
                return
            fn, args = item
            try:
                fn(*args)
            except Exception as e:
                if self._on_error is not None:
                    self._on_error(e)
