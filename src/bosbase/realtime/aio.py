"""
asyncio facades over the thread based realtime channels.

Blocking calls run in a worker thread. Coroutine listeners are scheduled
onto the event loop that registered them.
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from concurrent.futures import Future
from typing import Any

from bosbase.realtime.events import ConnectionState, PublishAck, PubSubMessage
from bosbase.realtime.pubsub import PubSubChannel
from bosbase.realtime.sse import RealtimeChannel

AsyncUnsubscribe = Callable[[], Awaitable[None]]
DebugReporter = Callable[[str, Any], None]


def _bind_listener(listener: Callable[[Any], Any], debug: DebugReporter) -> Callable[[Any], Any]:
    """Wrap coroutine listeners so they run on the caller's event loop."""
    if not inspect.iscoroutinefunction(listener):
        return listener

    loop = asyncio.get_running_loop()

    def report(future: Future[Any]) -> None:
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            debug("async listener failed", {"error": repr(error)})

    def dispatch(payload: Any) -> None:
        future = asyncio.run_coroutine_threadsafe(listener(payload), loop)
        future.add_done_callback(report)

    return dispatch


class AsyncPubSubChannel:
    """
    Async pub/sub channel.

    Example:
        >>> async with AsyncBosBase("http://127.0.0.1:8090") as client:
        ...     async def on_message(message):
        ...         print(message.data)
        ...     unsubscribe = await client.pubsub.subscribe("chat/general", on_message)
        ...     await client.pubsub.publish("chat/general", {"text": "hi"})
        ...     await unsubscribe()
    """

    def __init__(self, channel: PubSubChannel) -> None:
        self._channel = channel

    @property
    def channel(self) -> PubSubChannel:
        """The underlying thread based channel."""
        return self._channel

    @property
    def is_connected(self) -> bool:
        return self._channel.is_connected

    @property
    def state(self) -> ConnectionState:
        return self._channel.state

    async def publish(self, topic: str, data: Any = None) -> PublishAck:
        return await asyncio.to_thread(self._channel.publish, topic, data)

    async def subscribe(
        self,
        topic: str,
        listener: Callable[[PubSubMessage], Any],
    ) -> AsyncUnsubscribe:
        unsubscribe = await asyncio.to_thread(
            self._channel.subscribe, topic, _bind_listener(listener, self._channel._debug)
        )

        async def aunsubscribe() -> None:
            await asyncio.to_thread(unsubscribe)

        return aunsubscribe

    async def unsubscribe(self, topic: str | None = None) -> None:
        await asyncio.to_thread(self._channel.unsubscribe, topic)

    async def disconnect(self) -> None:
        await asyncio.to_thread(self._channel.disconnect)


class AsyncRealtimeChannel:
    """Async realtime (SSE) channel."""

    def __init__(self, channel: RealtimeChannel) -> None:
        self._channel = channel

    @property
    def channel(self) -> RealtimeChannel:
        """The underlying thread based channel."""
        return self._channel

    @property
    def client_id(self) -> str:
        return self._channel.client_id

    @property
    def is_connected(self) -> bool:
        return self._channel.is_connected

    async def subscribe(
        self,
        topic: str,
        listener: Callable[[dict[str, Any]], Any],
        *,
        query: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> AsyncUnsubscribe:
        unsubscribe = await asyncio.to_thread(
            self._channel.subscribe,
            topic,
            _bind_listener(listener, self._channel._debug),
            query=query,
            headers=headers,
        )

        async def aunsubscribe() -> None:
            await asyncio.to_thread(unsubscribe)

        return aunsubscribe

    async def unsubscribe(self, topic: str | None = None) -> None:
        await asyncio.to_thread(self._channel.unsubscribe, topic)

    async def unsubscribe_by_prefix(self, prefix: str) -> None:
        await asyncio.to_thread(self._channel.unsubscribe_by_prefix, prefix)

    async def wait_for_client_id(self, timeout: float | None = None) -> bool:
        return await asyncio.to_thread(self._channel.wait_for_client_id, timeout)

    async def disconnect(self) -> None:
        await asyncio.to_thread(self._channel.disconnect)
