"""
Async BosBase Client

asyncio entry point for the BosBase SDK. Connections are owned by the
synchronous client; blocking calls are moved onto worker threads.
"""

from __future__ import annotations

import asyncio
from typing import Any

from bosbase.auth_store import AuthStore
from bosbase.client import BosBase
from bosbase.config import BosBaseClientConfig, ResolvedConfig
from bosbase.realtime.aio import AsyncPubSubChannel, AsyncRealtimeChannel
from bosbase.resources.records import AsyncRecordsResource


class AsyncBosBase:
    """
    BosBase SDK Client (asynchronous).

    Example:
        >>> from bosbase import AsyncBosBase
        >>> async with AsyncBosBase("http://127.0.0.1:8090") as client:
        ...     ack = await client.pubsub.publish("chat/general", {"text": "hi"})
        ...     unsubscribe = await client.collection("posts").subscribe("*", on_event)
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        lang: str | None = None,
        auth_store: AuthStore | None = None,
        timeout: float | None = None,
        debug: bool = False,
        config: BosBaseClientConfig | None = None,
        **kwargs: Any,
    ) -> None:
        self._client = BosBase(
            base_url,
            lang=lang,
            auth_store=auth_store,
            timeout=timeout,
            debug=debug,
            config=config,
            **kwargs,
        )
        self._realtime = AsyncRealtimeChannel(self._client.realtime)
        self._pubsub = AsyncPubSubChannel(self._client.pubsub)
        self._collections: dict[str, AsyncRecordsResource] = {}

    @property
    def sync_client(self) -> BosBase:
        """The wrapped synchronous client."""
        return self._client

    @property
    def realtime(self) -> AsyncRealtimeChannel:
        return self._realtime

    @property
    def pubsub(self) -> AsyncPubSubChannel:
        return self._pubsub

    @property
    def auth_store(self) -> AuthStore:
        return self._client.auth_store

    def collection(self, name: str) -> AsyncRecordsResource:
        resource = self._collections.get(name)
        if resource is None:
            resource = AsyncRecordsResource(self._realtime, name)
            self._collections[name] = resource
        return resource

    def build_url(self, path: str, query: dict[str, Any] | None = None) -> str:
        return self._client.build_url(path, query)

    async def send(self, path: str, **kwargs: Any) -> Any:
        return await asyncio.to_thread(self._client.send, path, **kwargs)

    def get_config(self) -> ResolvedConfig:
        return self._client.get_config()

    async def aclose(self) -> None:
        """Disconnect both channels and close the HTTP client."""
        await asyncio.to_thread(self._client.close)

    async def __aenter__(self) -> AsyncBosBase:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()
