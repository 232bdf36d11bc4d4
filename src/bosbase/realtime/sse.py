"""
Server-Sent Events (SSE) channel for record change subscriptions.
"""

from __future__ import annotations

import contextlib
import json
import threading
from collections.abc import Callable
from typing import TYPE_CHECKING, Any
from urllib.parse import urlencode

import httpx
import sseclient

from bosbase.config import REALTIME_PATH, DebugFn, RealtimeConfig
from bosbase.errors import BosBaseError
from bosbase.realtime.backoff import BackoffScheduler, TimerFactory
from bosbase.realtime.events import (
    CONNECT_EVENT,
    ConnectionState,
    RealtimeSubscriptionRequest,
    validate_topic,
)

if TYPE_CHECKING:
    from bosbase.utils.http import HttpClient

RealtimeListener = Callable[[dict[str, Any]], Any]
EventHandler = Callable[[Any, str, str, "str | None"], None]
CloseHandler = Callable[[Any, "BaseException | None"], None]
TransportFactory = Callable[..., Any]


def build_subscription_key(
    topic: str,
    query: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
) -> str:
    """
    Fold per-subscription options into the topic key.

    Subscriptions to the same topic with different options are tracked as
    distinct server side topics.
    """
    if not query and not headers:
        return topic
    options: dict[str, Any] = {}
    if query:
        options["query"] = query
    if headers:
        options["headers"] = headers
    serialized = json.dumps(options, separators=(",", ":"), default=str)
    separator = "&" if "?" in topic else "?"
    return topic + separator + urlencode({"options": serialized})


def _parse_payload(data: str) -> dict[str, Any]:
    try:
        payload = json.loads(data) if data else {}
    except ValueError:
        return {}
    return payload if isinstance(payload, dict) else {}


class SSETransport:
    """
    One streaming GET request parsed as an event stream on a daemon thread.

    Every event is handed to ``on_event(transport, name, data, id)``. When the
    stream ends or fails, ``on_close(transport, error)`` is called once,
    unless close() was called first.
    """

    def __init__(
        self,
        url: str,
        *,
        headers: dict[str, str],
        on_event: EventHandler,
        on_close: CloseHandler,
        client: httpx.Client | None = None,
    ) -> None:
        self.url = url
        self._headers = headers
        self._on_event = on_event
        self._on_close = on_close
        self._client = client or httpx.Client(timeout=httpx.Timeout(10.0, read=None))
        self._response: httpx.Response | None = None
        self._closed = threading.Event()
        self._thread = threading.Thread(target=self._run, name="bosbase-realtime", daemon=True)

    def start(self) -> None:
        self._thread.start()

    def close(self) -> None:
        self._closed.set()
        if self._response is not None:
            with contextlib.suppress(Exception):
                self._response.close()
        with contextlib.suppress(Exception):
            self._client.close()

    def _run(self) -> None:
        error: BaseException | None = None
        try:
            with self._client.stream("GET", self.url, headers=self._headers) as response:
                self._response = response
                response.raise_for_status()
                events = sseclient.SSEClient(response.iter_bytes())
                for event in events.events():
                    if self._closed.is_set():
                        break
                    self._on_event(self, event.event or "message", event.data, event.id)
        except Exception as e:
            error = e

        if not self._closed.is_set():
            self._on_close(self, error)


class RealtimeChannel:
    """
    Realtime record subscriptions over a single SSE connection.

    Example:
        >>> unsubscribe = client.realtime.subscribe(
        ...     "posts/*", lambda event: print(event["action"], event["record"])
        ... )
        >>> unsubscribe()
    """

    def __init__(
        self,
        http: HttpClient,
        config: RealtimeConfig | None = None,
        *,
        transport_factory: TransportFactory | None = None,
        timer_factory: TimerFactory = threading.Timer,
        debug_fn: DebugFn | None = None,
    ) -> None:
        self._http = http
        self._config = config or RealtimeConfig()
        self._transport_factory = transport_factory or SSETransport
        self._debug_fn = debug_fn

        self._lock = threading.RLock()
        self._subscriptions: dict[str, list[RealtimeListener]] = {}
        self._backoff = BackoffScheduler(
            self._config.reconnect_intervals, timer_factory=timer_factory
        )
        self._connected = threading.Event()

        self._transport: Any = None
        self._state = ConnectionState.DISCONNECTED
        self._manual_close = False
        self._client_id = ""

        self.on_disconnect: Callable[[list[str]], Any] | None = None

    # Properties

    @property
    def client_id(self) -> str:
        return self._client_id

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        with self._lock:
            return self._transport is not None and self._state is ConnectionState.READY

    @property
    def reconnect_attempts(self) -> int:
        return self._backoff.attempts

    @property
    def topics(self) -> list[str]:
        """Currently registered subscription keys."""
        with self._lock:
            return list(self._subscriptions)

    # Public API

    def subscribe(
        self,
        topic: str,
        listener: RealtimeListener,
        *,
        query: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Callable[[], None]:
        """
        Register a listener for a topic; returns a function removing it.

        The topic is one of ``"COLLECTION/*"``, ``"COLLECTION/RECORD_ID"`` or
        any custom topic. Listeners receive the decoded event payload, for
        record topics ``{"action": ..., "record": {...}}``.
        """
        validate_topic(topic)
        key = build_subscription_key(topic, query, headers)

        with self._lock:
            listeners = self._subscriptions.setdefault(key, [])
            is_new_key = not listeners
            if listener not in listeners:
                listeners.append(listener)
            self._manual_close = False
            needs_connect = self._transport is None
            if needs_connect:
                self._connect()

        if is_new_key and not needs_connect:
            self._submit_subscriptions()

        removed = False

        def unsubscribe() -> None:
            nonlocal removed
            if removed:
                return
            removed = True
            self._remove_listeners([key], listener)

        return unsubscribe

    def unsubscribe(self, topic: str | None = None) -> None:
        """Drop a topic with all of its option variants, or everything."""
        if topic is None:
            with self._lock:
                self._subscriptions.clear()
                self._disconnect_locked()
            return

        with self._lock:
            keys = [key for key in self._subscriptions if key == topic or key.startswith(topic + "?")]
        self._remove_keys(keys)

    def unsubscribe_by_prefix(self, prefix: str) -> None:
        """Drop every topic under a prefix, e.g. all topics of one collection."""
        with self._lock:
            keys = [
                key
                for key in self._subscriptions
                if key == prefix or key.startswith((prefix + "/", prefix + "?"))
            ]
        self._remove_keys(keys)

    def unsubscribe_by_topic_and_listener(self, topic: str, listener: RealtimeListener) -> None:
        """Remove one listener from a topic and its option variants."""
        with self._lock:
            keys = [key for key in self._subscriptions if key == topic or key.startswith(topic + "?")]
        self._remove_listeners(keys, listener)

    def disconnect(self) -> None:
        """Close the stream and stop reconnecting. Registrations are kept."""
        with self._lock:
            self._disconnect_locked()

    def wait_for_client_id(self, timeout: float | None = None) -> bool:
        """Block until the server assigned a client id."""
        return self._connected.wait(timeout)

    # Registration helpers

    def _remove_keys(self, keys: list[str]) -> None:
        if not keys:
            return
        with self._lock:
            for key in keys:
                self._subscriptions.pop(key, None)
            idle = self._disconnect_if_idle()
        if not idle:
            self._submit_subscriptions()

    def _remove_listeners(self, keys: list[str], listener: RealtimeListener) -> None:
        changed = False
        with self._lock:
            for key in keys:
                listeners = self._subscriptions.get(key)
                if not listeners or listener not in listeners:
                    continue
                listeners.remove(listener)
                if not listeners:
                    del self._subscriptions[key]
                    changed = True
            idle = changed and self._disconnect_if_idle()
        if changed and not idle:
            self._submit_subscriptions()

    def _disconnect_if_idle(self) -> bool:
        # Called with the lock held.
        if self._subscriptions:
            return False
        self._disconnect_locked()
        return True

    def _disconnect_locked(self) -> None:
        # Called with the lock held.
        self._manual_close = True
        self._backoff.cancel()
        self._close_transport()

    def _submit_subscriptions(self) -> None:
        with self._lock:
            client_id = self._client_id
            keys = list(self._subscriptions)
        if not client_id or not keys:
            return

        request = RealtimeSubscriptionRequest(client_id=client_id, subscriptions=keys)
        try:
            self._http.send(REALTIME_PATH, method="POST", body=request.to_dict())
        except BosBaseError as e:
            self._debug("realtime topic submission failed", {"error": str(e)})

    # Connection management

    def _build_headers(self) -> dict[str, str]:
        return self._http.build_headers(
            {"Accept": "text/event-stream", "Cache-Control": "no-store"}
        )

    def _connect(self) -> None:
        # Called with the lock held.
        if self._manual_close:
            return
        self._close_transport()
        self._backoff.cancel()
        self._state = ConnectionState.CONNECTING

        url = self._http.build_url(REALTIME_PATH)
        transport = self._transport_factory(
            url,
            headers=self._build_headers(),
            on_event=self._handle_event,
            on_close=self._handle_close,
        )
        self._transport = transport
        self._debug("realtime connecting", {"url": url})
        transport.start()

    def _reconnect(self) -> None:
        with self._lock:
            if self._manual_close or not self._subscriptions or self._transport is not None:
                return
            self._connect()

    def _close_transport(self) -> None:
        # Called with the lock held.
        transport, self._transport = self._transport, None
        self._state = ConnectionState.DISCONNECTED
        self._client_id = ""
        self._connected.clear()
        if transport is not None:
            with contextlib.suppress(Exception):
                transport.close()

    # Transport callbacks

    def _handle_event(self, transport: Any, name: str, data: str, event_id: str | None) -> None:
        with self._lock:
            if transport is not self._transport:
                return

        payload = _parse_payload(data)
        if name == CONNECT_EVENT:
            with self._lock:
                if transport is not self._transport:
                    return
                self._client_id = str(payload.get("clientId") or event_id or "")
                self._backoff.reset()
                self._state = ConnectionState.READY
                self._connected.set()
            self._debug("realtime connected", {"client_id": self._client_id})
            self._submit_subscriptions()
            return

        with self._lock:
            listeners = list(self._subscriptions.get(name, ()))
        for listener in listeners:
            try:
                listener(payload)
            except Exception as e:
                self._debug("realtime listener failed", {"topic": name, "error": repr(e)})

    def _handle_close(self, transport: Any, error: BaseException | None) -> None:
        with self._lock:
            if transport is not self._transport:
                return
            self._close_transport()
            active = list(self._subscriptions)
            delay: float | None = None
            if active and not self._manual_close:
                delay = self._backoff.schedule(self._reconnect)

        self._debug(
            "realtime disconnected",
            {"error": str(error) if error else None, "reconnect_in": delay},
        )
        if self.on_disconnect is not None:
            try:
                self.on_disconnect(active)
            except Exception as e:
                self._debug("realtime on_disconnect failed", {"error": repr(e)})

    def _debug(self, message: str, meta: Any) -> None:
        if self._debug_fn:
            self._debug_fn(message, meta)

    # Context manager

    def __enter__(self) -> RealtimeChannel:
        return self

    def __exit__(self, *args: Any) -> None:
        self.disconnect()
