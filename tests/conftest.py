"""Pytest fixtures and test doubles for the realtime channels."""

from __future__ import annotations

import base64
import json
import time
from collections.abc import Callable, Generator
from typing import Any

import pytest

from bosbase.auth_store import AuthStore
from bosbase.config import BosBaseClientConfig, resolve_config
from bosbase.errors import ConnectionClosedError
from bosbase.utils.http import HttpClient

TEST_BASE_URL = "http://127.0.0.1:8090"


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )


def wait_until(predicate: Callable[[], Any], timeout: float = 2.0) -> Any:
    """Poll until predicate returns a truthy value."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        result = predicate()
        if result:
            return result
        time.sleep(0.005)
    raise AssertionError("condition not met in time")


def make_token(exp_offset: float = 3600) -> str:
    """Build an unsigned JWT whose exp lies exp_offset seconds from now."""

    def encode(value: dict[str, Any]) -> str:
        raw = json.dumps(value).encode()
        return base64.urlsafe_b64encode(raw).rstrip(b"=").decode()

    header = encode({"alg": "HS256", "typ": "JWT"})
    payload = encode({"id": "user_1", "exp": int(time.time() + exp_offset)})
    return f"{header}.{payload}.signature"


# Timers


class FakeTimer:
    """threading.Timer look-alike that only fires when told to."""

    def __init__(
        self,
        interval: float,
        function: Callable[..., Any],
        args: tuple[Any, ...] | None = None,
        kwargs: dict[str, Any] | None = None,
    ) -> None:
        self.interval = interval
        self.function = function
        self.args = tuple(args or ())
        self.kwargs = dict(kwargs or {})
        self.daemon = False
        self.started = False
        self.cancelled = False
        self.fired = False

    @property
    def active(self) -> bool:
        return self.started and not self.cancelled and not self.fired

    def start(self) -> None:
        self.started = True

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        assert self.active, "timer is not armed"
        self.fired = True
        self.function(*self.args, **self.kwargs)


class TimerRecorder:
    """Timer factory remembering every timer it created."""

    def __init__(self) -> None:
        self.timers: list[FakeTimer] = []

    def __call__(self, interval: float, function: Callable[..., Any], **kwargs: Any) -> FakeTimer:
        timer = FakeTimer(interval, function, **kwargs)
        self.timers.append(timer)
        return timer

    @property
    def active(self) -> list[FakeTimer]:
        return [timer for timer in self.timers if timer.active]

    def find(self, *args: Any) -> FakeTimer:
        """The armed timer created with the given callback arguments."""

        def lookup() -> FakeTimer | None:
            for timer in self.active:
                if timer.args == args:
                    return timer
            return None

        return wait_until(lookup)

    def fire_only(self) -> FakeTimer:
        """Fire the single armed timer."""
        active = self.active
        assert len(active) == 1, f"expected one armed timer, got {len(active)}"
        active[0].fire()
        return active[0]


# Transports


class FakeWebSocketTransport:
    """In-memory stand-in for WebSocketTransport."""

    def __init__(
        self,
        url: str,
        *,
        on_message: Callable[[Any, str], None],
        on_close: Callable[[Any, BaseException | None], None],
        **options: Any,
    ) -> None:
        self.url = url
        self.options = options
        self._on_message = on_message
        self._on_close = on_close
        self.sent: list[dict[str, Any]] = []
        self.started = False
        self.closed = False
        self.fail_sends = False
        self.on_send: Callable[[dict[str, Any]], None] | None = None

    def start(self) -> None:
        self.started = True

    def send(self, payload: str) -> None:
        if self.fail_sends or self.closed:
            raise ConnectionClosedError("socket closed")
        frame = json.loads(payload)
        self.sent.append(frame)
        if self.on_send is not None:
            self.on_send(frame)

    def close(self) -> None:
        self.closed = True

    # Server side helpers

    def receive(self, frame: dict[str, Any]) -> None:
        self._on_message(self, json.dumps(frame))

    def receive_raw(self, text: str) -> None:
        self._on_message(self, text)

    def drop(self, error: BaseException | None = None) -> None:
        self._on_close(self, error)

    def frames(self, frame_type: str, topic: str | None = None) -> list[dict[str, Any]]:
        return [
            frame
            for frame in self.sent
            if frame.get("type") == frame_type and (topic is None or frame.get("topic") == topic)
        ]

    def wait_for_frame(self, frame_type: str, topic: str | None = None) -> dict[str, Any]:
        return wait_until(lambda: self.frames(frame_type, topic))[-1]

    def ack(self, frame_type: str, topic: str | None = None, /, **fields: Any) -> dict[str, Any]:
        """Wait for a request frame and answer it with its matching ack."""
        request = self.wait_for_frame(frame_type, topic)
        reply = {
            "publish": "published",
            "subscribe": "subscribed",
            "unsubscribe": "unsubscribed",
        }[frame_type]
        self.receive({"type": reply, "requestId": request["requestId"], **fields})
        return request


class WebSocketRecorder:
    """Transport factory for PubSubChannel tests."""

    def __init__(self) -> None:
        self.transports: list[FakeWebSocketTransport] = []

    def __call__(self, url: str, **kwargs: Any) -> FakeWebSocketTransport:
        transport = FakeWebSocketTransport(url, **kwargs)
        self.transports.append(transport)
        return transport

    @property
    def latest(self) -> FakeWebSocketTransport | None:
        return self.transports[-1] if self.transports else None

    def wait_for_transport(self, count: int = 1) -> FakeWebSocketTransport:
        wait_until(lambda: len(self.transports) >= count)
        return self.transports[count - 1]


class FakeEventSource:
    """In-memory stand-in for SSETransport."""

    def __init__(
        self,
        url: str,
        *,
        headers: dict[str, str],
        on_event: Callable[[Any, str, str, str | None], None],
        on_close: Callable[[Any, BaseException | None], None],
        **options: Any,
    ) -> None:
        self.url = url
        self.headers = headers
        self._on_event = on_event
        self._on_close = on_close
        self.started = False
        self.closed = False

    def start(self) -> None:
        self.started = True

    def close(self) -> None:
        self.closed = True

    def emit(self, name: str, data: Any = None, event_id: str | None = None) -> None:
        payload = data if isinstance(data, str) else json.dumps(data if data is not None else {})
        self._on_event(self, name, payload, event_id)

    def connect(self, client_id: str = "client_1") -> None:
        self.emit("PB_CONNECT", {"clientId": client_id}, client_id)

    def drop(self, error: BaseException | None = None) -> None:
        self._on_close(self, error)


class EventSourceRecorder:
    """Transport factory for RealtimeChannel tests."""

    def __init__(self) -> None:
        self.transports: list[FakeEventSource] = []

    def __call__(self, url: str, **kwargs: Any) -> FakeEventSource:
        transport = FakeEventSource(url, **kwargs)
        self.transports.append(transport)
        return transport

    @property
    def latest(self) -> FakeEventSource | None:
        return self.transports[-1] if self.transports else None


# Fixtures


@pytest.fixture
def base_url() -> str:
    return TEST_BASE_URL


@pytest.fixture
def auth_store() -> AuthStore:
    return AuthStore()


@pytest.fixture
def http_client(auth_store: AuthStore) -> Generator[HttpClient, None, None]:
    """HttpClient pointed at the test server."""
    config = resolve_config(BosBaseClientConfig(base_url=TEST_BASE_URL))
    with HttpClient(config, auth_store) as client:
        yield client


@pytest.fixture
def timers() -> TimerRecorder:
    return TimerRecorder()


@pytest.fixture
def sockets() -> WebSocketRecorder:
    return WebSocketRecorder()


@pytest.fixture
def event_sources() -> EventSourceRecorder:
    return EventSourceRecorder()
