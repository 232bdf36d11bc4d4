"""
WebSocket publish/subscribe channel.
"""

from __future__ import annotations

import contextlib
import json
import threading
from collections.abc import Callable
from concurrent.futures import Future
from typing import TYPE_CHECKING, Any

import httpx
import websockets
import websockets.sync.client as sync_ws

from bosbase.config import PUBSUB_PATH, DebugFn, PubSubConfig
from bosbase.errors import (
    BosBaseError,
    ConnectionClosedError,
    NetworkError,
    PubSubError,
    TimeoutError,
)
from bosbase.realtime.acks import AckRegistry, new_request_id
from bosbase.realtime.backoff import BackoffScheduler, TimerFactory
from bosbase.realtime.dispatch import ListenerDispatcher
from bosbase.realtime.events import (
    ACK_FRAME_TYPES,
    ConnectionState,
    PublishAck,
    PublishCommand,
    PubSubMessage,
    SubscribeCommand,
    UnsubscribeCommand,
    validate_topic,
)

if TYPE_CHECKING:
    from bosbase.utils.http import HttpClient

PubSubListener = Callable[[PubSubMessage], Any]
MessageHandler = Callable[[Any, str], None]
CloseHandler = Callable[[Any, "BaseException | None"], None]
TransportFactory = Callable[..., Any]

CONNECTION_CLOSED_MESSAGE = "pubsub connection closed"


class WebSocketTransport:
    """
    One WebSocket connection read on a daemon thread.

    Every frame is handed to ``on_message(transport, text)``. When the socket
    closes or fails to open, ``on_close(transport, error)`` is called once,
    unless close() was called first.
    """

    def __init__(
        self,
        url: str,
        *,
        on_message: MessageHandler,
        on_close: CloseHandler,
        open_timeout: float | None = None,
        user_agent: str | None = None,
    ) -> None:
        self.url = url
        self._on_message = on_message
        self._on_close = on_close
        self._open_timeout = open_timeout
        self._user_agent = user_agent
        self._ws: Any = None
        self._lock = threading.Lock()
        self._closed = threading.Event()
        self._thread = threading.Thread(target=self._run, name="bosbase-pubsub", daemon=True)

    def start(self) -> None:
        self._thread.start()

    def send(self, payload: str) -> None:
        ws = self._ws
        if ws is None:
            raise NetworkError("Unable to send websocket message - socket not initialized.")
        try:
            ws.send(payload)
        except websockets.ConnectionClosed as e:
            raise ConnectionClosedError(str(e), original_error=e) from e

    def close(self) -> None:
        self._closed.set()
        with self._lock:
            ws, self._ws = self._ws, None
        if ws is not None:
            with contextlib.suppress(Exception):
                ws.close()

    def _connect_options(self) -> dict[str, Any]:
        options: dict[str, Any] = {"open_timeout": self._open_timeout}
        if self._user_agent:
            options["user_agent_header"] = self._user_agent
        return options

    def _run(self) -> None:
        error: BaseException | None = None
        try:
            with sync_ws.connect(self.url, **self._connect_options()) as ws:
                with self._lock:
                    if self._closed.is_set():
                        return
                    self._ws = ws

                for message in ws:
                    if self._closed.is_set():
                        break
                    if isinstance(message, bytes):
                        message = message.decode("utf-8", errors="replace")
                    self._on_message(self, message)
        except Exception as e:
            error = e

        if not self._closed.is_set():
            self._on_close(self, error)


class PubSubChannel:
    """
    WebSocket publish/subscribe channel with ack correlation and replay.

    Example:
        >>> ack = client.pubsub.publish("chat/general", {"text": "hi"})
        >>> ack.id
        'msg_1'
        >>> unsubscribe = client.pubsub.subscribe(
        ...     "chat/general", lambda message: print(message.data)
        ... )
        >>> unsubscribe()
    """

    def __init__(
        self,
        http: HttpClient,
        config: PubSubConfig | None = None,
        *,
        transport_factory: TransportFactory | None = None,
        timer_factory: TimerFactory = threading.Timer,
        debug_fn: DebugFn | None = None,
        user_agent: str | None = None,
    ) -> None:
        self._http = http
        self._config = config or PubSubConfig()
        self._transport_factory = transport_factory or WebSocketTransport
        self._timer_factory = timer_factory
        self._debug_fn = debug_fn
        self._user_agent = user_agent

        self._lock = threading.RLock()
        self._subscriptions: dict[str, set[PubSubListener]] = {}
        self._pending_connects: list[Future[None]] = []
        self._acks = AckRegistry(self._config.ack_timeout, timer_factory=timer_factory)
        self._backoff = BackoffScheduler(
            self._config.reconnect_intervals, timer_factory=timer_factory
        )
        self._dispatcher = ListenerDispatcher(
            "bosbase-pubsub-dispatch",
            on_error=lambda e: self._debug("pubsub dispatch failed", {"error": repr(e)}),
        )

        self._transport: Any = None
        self._connect_timer: Any = None
        self._state = ConnectionState.DISCONNECTED
        self._manual_close = False
        self._client_id = ""

    # Properties

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        with self._lock:
            return self._transport is not None and self._state is ConnectionState.READY

    @property
    def client_id(self) -> str:
        return self._client_id

    @property
    def reconnect_attempts(self) -> int:
        return self._backoff.attempts

    @property
    def pending_requests(self) -> int:
        """Requests still waiting for a server response."""
        return len(self._acks)

    @property
    def topics(self) -> list[str]:
        with self._lock:
            return list(self._subscriptions)

    # Public API

    def publish(self, topic: str, data: Any = None) -> PublishAck:
        """
        Publish a message and wait for the server acknowledgement.

        Raises:
            ValidationError: topic is empty
            NetworkError: the socket could not be connected
            TimeoutError: no ack arrived within ack_timeout
            PubSubError: the server answered with an error frame
        """
        validate_topic(topic)
        self._ensure_socket()

        frame = self._request(PublishCommand(topic=topic, data=data, request_id=new_request_id()))
        return PublishAck.from_frame(frame, topic)

    def subscribe(self, topic: str, listener: PubSubListener) -> Callable[[], None]:
        """
        Register a listener for a topic; returns a function removing it.

        Only the first listener of a topic talks to the server. Failures of
        that subscribe request are not raised: the listener stays registered
        and the subscription is replayed after the next reconnect.
        """
        validate_topic(topic)

        with self._lock:
            listeners = self._subscriptions.setdefault(topic, set())
            is_first = not listeners
            listeners.add(listener)

        if is_first:
            try:
                self._ensure_socket()
                self._request(SubscribeCommand(topic=topic, request_id=new_request_id()))
            except BosBaseError as e:
                self._debug("pubsub subscribe failed", {"topic": topic, "error": str(e)})

        removed = False

        def unsubscribe() -> None:
            nonlocal removed
            if removed:
                return
            removed = True
            self._remove_listener(topic, listener)

        return unsubscribe

    def unsubscribe(self, topic: str | None = None) -> None:
        """Drop one topic, or every topic when none is given."""
        with self._lock:
            if topic is None:
                removed = list(self._subscriptions)
                self._subscriptions.clear()
            elif topic in self._subscriptions:
                removed = [topic]
                del self._subscriptions[topic]
            else:
                removed = []

        if not removed:
            return

        self._send_best_effort(UnsubscribeCommand(topic=topic, request_id=new_request_id()))
        self._disconnect_if_idle()

    def disconnect(self) -> None:
        """Close the socket, drop subscriptions and fail everything pending."""
        with self._lock:
            self._subscriptions.clear()
            waiters = self._shutdown_locked()
        self._release(waiters)

    def flush(self, timeout: float | None = None) -> bool:
        """
        Wait until every message received so far was handed to its listeners.

        Listeners run on a dispatch thread, not on the socket reader, so they
        may publish or subscribe without blocking frame delivery.
        """
        return self._dispatcher.flush(timeout)

    # Requests

    def _request(self, command: Any) -> dict[str, Any]:
        future = self._acks.register(command.request_id)
        try:
            self._send_frame(command.to_dict())
        except BaseException:
            self._acks.discard(command.request_id)
            raise
        return future.result()

    def _send_frame(self, frame: dict[str, Any]) -> None:
        with self._lock:
            ready = self._state is ConnectionState.READY and self._transport is not None
        if not ready:
            self._ensure_socket()

        with self._lock:
            transport = self._transport
        if transport is None:
            raise NetworkError("Unable to send websocket message - socket not initialized.")
        transport.send(json.dumps(frame))

    def _send_best_effort(self, command: Any) -> None:
        with self._lock:
            transport = self._transport if self._state is ConnectionState.READY else None
        if transport is None:
            return
        try:
            transport.send(json.dumps(command.to_dict()))
        except BosBaseError as e:
            self._debug("pubsub send failed", {"type": command.type, "error": str(e)})

    def _remove_listener(self, topic: str, listener: PubSubListener) -> None:
        with self._lock:
            listeners = self._subscriptions.get(topic)
            if not listeners or listener not in listeners:
                return
            listeners.discard(listener)
            if listeners:
                return
            del self._subscriptions[topic]

        self._send_best_effort(UnsubscribeCommand(topic=topic, request_id=new_request_id()))
        self._disconnect_if_idle()

    def _disconnect_if_idle(self) -> None:
        # A subscribe may have landed while the unsubscribe frame was sent
        with self._lock:
            if self._subscriptions:
                return
            waiters = self._shutdown_locked()
        self._release(waiters)

    def _shutdown_locked(self) -> list[Future[None]]:
        # Called with the lock held.
        self._manual_close = True
        self._backoff.cancel()
        self._close_transport()
        return self._take_waiters()

    def _release(self, waiters: list[Future[None]]) -> None:
        error = ConnectionClosedError(CONNECTION_CLOSED_MESSAGE)
        self._acks.reject_all(error)
        self._fail_waiters(waiters, error)
        self._dispatcher.stop()

    # Connection management

    def _build_ws_url(self) -> str:
        query: dict[str, Any] = {}
        token = self._http.auth_store.token
        if token:
            query["token"] = token
        url = httpx.URL(self._http.build_url(PUBSUB_PATH, query))
        scheme = "wss" if url.scheme == "https" else "ws"
        return str(url.copy_with(scheme=scheme))

    def _ensure_socket(self) -> None:
        with self._lock:
            if self._state is ConnectionState.READY and self._transport is not None:
                return
            waiter: Future[None] = Future()
            self._pending_connects.append(waiter)
            if self._state is not ConnectionState.CONNECTING:
                self._init_connect()
        waiter.result()

    def _init_connect(self) -> None:
        # Called with the lock held.
        self._close_transport()
        self._backoff.cancel()
        self._manual_close = False
        self._state = ConnectionState.CONNECTING

        try:
            url = self._build_ws_url()
            transport = self._transport_factory(
                url,
                on_message=self._handle_message,
                on_close=self._handle_close,
                open_timeout=self._config.connect_timeout,
                user_agent=self._user_agent,
            )
        except Exception as e:
            self._state = ConnectionState.DISCONNECTED
            self._handle_failure_locked(NetworkError(str(e), original_error=e))
            return

        self._transport = transport
        timer = self._timer_factory(
            self._config.connect_timeout, self._handle_connect_timeout, args=(transport,)
        )
        timer.daemon = True
        self._connect_timer = timer
        self._debug("pubsub connecting", {"url": url.split("?", 1)[0]})
        transport.start()
        timer.start()

    def _reconnect(self) -> None:
        with self._lock:
            if self._manual_close or not self._subscriptions:
                return
            if self._state is not ConnectionState.DISCONNECTED:
                return
            self._init_connect()

    def _close_transport(self) -> None:
        # Called with the lock held.
        if self._connect_timer is not None:
            self._connect_timer.cancel()
            self._connect_timer = None
        transport, self._transport = self._transport, None
        self._state = ConnectionState.DISCONNECTED
        self._client_id = ""
        if transport is not None:
            with contextlib.suppress(Exception):
                transport.close()

    def _take_waiters(self) -> list[Future[None]]:
        waiters, self._pending_connects = self._pending_connects, []
        return waiters

    @staticmethod
    def _fail_waiters(waiters: list[Future[None]], error: BaseException) -> None:
        for waiter in waiters:
            if not waiter.done():
                waiter.set_exception(error)

    # Transport callbacks

    def _handle_message(self, transport: Any, raw: str) -> None:
        try:
            frame = json.loads(raw)
        except ValueError:
            self._debug("pubsub dropped invalid frame", None)
            return
        if not isinstance(frame, dict):
            return

        with self._lock:
            if transport is not self._transport:
                return

        frame_type = frame.get("type")
        if not isinstance(frame_type, str):
            return
        if frame_type == "ready":
            self._handle_ready(transport, frame)
        elif frame_type == "message":
            self._dispatch(frame)
        elif frame_type in ACK_FRAME_TYPES:
            request_id = frame.get("requestId")
            if request_id:
                self._acks.resolve(str(request_id), frame)
        elif frame_type == "error":
            message = frame.get("message") or "pubsub error"
            request_id = frame.get("requestId")
            if request_id:
                self._acks.reject(str(request_id), PubSubError(str(message), details=frame))
            else:
                self._debug("pubsub server error", {"message": message})

    def _handle_ready(self, transport: Any, frame: dict[str, Any]) -> None:
        with self._lock:
            if transport is not self._transport:
                return
            if self._connect_timer is not None:
                self._connect_timer.cancel()
                self._connect_timer = None
            self._backoff.cancel()
            replay = self._backoff.attempts > 0
            self._backoff.reset()
            self._client_id = str(frame.get("clientId") or "")
            self._state = ConnectionState.READY
            waiters = self._take_waiters()
            topics = list(self._subscriptions) if replay else []

        self._debug("pubsub ready", {"client_id": self._client_id, "replay": topics})
        for waiter in waiters:
            if not waiter.done():
                waiter.set_result(None)

        for topic in topics:
            command = SubscribeCommand(topic=topic, request_id=new_request_id())
            try:
                transport.send(json.dumps(command.to_dict()))
            except BosBaseError as e:
                self._debug("pubsub resubscribe failed", {"topic": topic, "error": str(e)})

    def _dispatch(self, frame: dict[str, Any]) -> None:
        topic = frame.get("topic")
        if not isinstance(topic, str):
            return
        with self._lock:
            if topic not in self._subscriptions:
                return
        self._dispatcher.submit(self._deliver, PubSubMessage.from_frame(frame))

    def _deliver(self, message: PubSubMessage) -> None:
        # Runs on the dispatch thread.
        topic = message.topic
        with self._lock:
            listeners = list(self._subscriptions.get(topic, ()))

        for listener in listeners:
            try:
                listener(message)
            except Exception as e:
                self._debug("pubsub listener failed", {"topic": topic, "error": repr(e)})

    def _handle_close(self, transport: Any, error: BaseException | None) -> None:
        with self._lock:
            if transport is not self._transport:
                return
            if self._manual_close:
                self._close_transport()
                return
            if error is None:
                failure: BosBaseError = ConnectionClosedError(CONNECTION_CLOSED_MESSAGE)
            elif isinstance(error, BosBaseError):
                failure = error
            else:
                failure = NetworkError(str(error) or CONNECTION_CLOSED_MESSAGE, original_error=error)
            self._handle_failure_locked(failure)

    def _handle_connect_timeout(self, transport: Any) -> None:
        with self._lock:
            if transport is not self._transport or self._state is not ConnectionState.CONNECTING:
                return
            self._handle_failure_locked(TimeoutError("WebSocket connect took too long."))

    def _handle_failure_locked(self, error: BosBaseError) -> None:
        # Called with the lock held.
        self._close_transport()
        waiters = self._take_waiters()
        delay: float | None = None
        if self._subscriptions and not self._manual_close:
            delay = self._backoff.schedule(self._reconnect)

        self._debug(
            "pubsub connection lost",
            {"error": str(error), "reconnect_in": delay, "attempt": self._backoff.attempts},
        )
        self._acks.reject_all(ConnectionClosedError(CONNECTION_CLOSED_MESSAGE))
        self._fail_waiters(waiters, error)

    def _debug(self, message: str, meta: Any) -> None:
        if self._debug_fn:
            self._debug_fn(message, meta)

    # Context manager

    def __enter__(self) -> PubSubChannel:
        return self

    def __exit__(self, *args: Any) -> None:
        self.disconnect()
