"""
In-memory auth store.

Holds the current auth token (and the record it belongs to) and tells the
realtime channels whether the token may be attached to new connections.
"""

from __future__ import annotations

import base64
import contextlib
import json
import threading
import time
from collections.abc import Callable
from typing import Any

OnStoreChange = Callable[[str | None, dict[str, Any] | None], None]


def get_token_payload(token: str | None) -> dict[str, Any]:
    """Decode the (unverified) payload segment of a JWT."""
    if not token:
        return {}
    parts = token.split(".")
    if len(parts) != 3:
        return {}
    segment = parts[1] + "=" * (-len(parts[1]) % 4)
    try:
        decoded = json.loads(base64.urlsafe_b64decode(segment.encode()))
    except ValueError:
        return {}
    return decoded if isinstance(decoded, dict) else {}


def is_token_expired(token: str | None, expiration_threshold: float = 0) -> bool:
    """Whether the token is missing, malformed or past its exp claim."""
    payload = get_token_payload(token)
    exp = payload.get("exp")
    if not isinstance(exp, (int, float)):
        return True
    return exp - expiration_threshold <= time.time()


class AuthStore:
    """
    Runtime memory auth store.

    Example:
        >>> store = AuthStore()
        >>> store.save("eyJ...", {"id": "user_1"})
        >>> store.is_valid
        True
    """

    def __init__(self, token: str | None = None, record: dict[str, Any] | None = None) -> None:
        self._token = token
        self._record = record
        self._lock = threading.Lock()
        self._callbacks: list[OnStoreChange] = []

    @property
    def token(self) -> str | None:
        return self._token

    @property
    def record(self) -> dict[str, Any] | None:
        return self._record

    @property
    def is_valid(self) -> bool:
        return not is_token_expired(self._token)

    def save(self, token: str, record: dict[str, Any] | None = None) -> None:
        """Store a new token and its auth record."""
        with self._lock:
            self._token = token
            self._record = record
        self._trigger_change()

    def clear(self) -> None:
        """Remove the stored token and record."""
        with self._lock:
            self._token = None
            self._record = None
        self._trigger_change()

    def on_change(
        self,
        callback: OnStoreChange,
        fire_immediately: bool = False,
    ) -> Callable[[], None]:
        """Register a change listener; returns a function removing it."""
        with self._lock:
            self._callbacks.append(callback)
        if fire_immediately:
            callback(self._token, self._record)

        def remove() -> None:
            with self._lock:
                if callback in self._callbacks:
                    self._callbacks.remove(callback)

        return remove

    def _trigger_change(self) -> None:
        with self._lock:
            callbacks = list(self._callbacks)
        for callback in callbacks:
            with contextlib.suppress(Exception):
                callback(self._token, self._record)
