"""
BosBase Client (synchronous)

Main entry point for the BosBase SDK.
"""

from __future__ import annotations

from typing import Any

from bosbase.auth_store import AuthStore
from bosbase.config import (
    BosBaseClientConfig,
    ResolvedConfig,
    resolve_config,
    validate_config,
)
from bosbase.realtime.pubsub import PubSubChannel
from bosbase.realtime.sse import RealtimeChannel
from bosbase.resources.records import RecordsResource
from bosbase.utils.http import HttpClient


def build_client_config(
    config: BosBaseClientConfig | None,
    **params: Any,
) -> BosBaseClientConfig:
    """Merge explicit keyword arguments into a client configuration."""
    if config is not None:
        return config
    params = {k: v for k, v in params.items() if v is not None}
    return BosBaseClientConfig(**params)


class BosBase:
    """
    BosBase SDK Client (synchronous).

    Example:
        >>> from bosbase import BosBase
        >>> client = BosBase("http://127.0.0.1:8090")
        >>>
        >>> # Record changes over SSE
        >>> unsubscribe = client.collection("posts").subscribe(
        ...     "*", lambda event: print(event["action"])
        ... )
        >>>
        >>> # Publish over the pub/sub WebSocket
        >>> ack = client.pubsub.publish("chat/general", {"text": "hi"})

    Using as context manager:
        >>> with BosBase("http://127.0.0.1:8090") as client:
        ...     client.pubsub.publish("chat/general", {"text": "hi"})
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
        """
        Initialize the BosBase client.

        Args:
            base_url: Server URL (default: http://127.0.0.1:8090)
            lang: Accept-Language sent with every request
            auth_store: Shared token store (a fresh one when omitted)
            timeout: HTTP request timeout in seconds
            debug: Enable debug logging
            config: Full configuration object (overrides other params)
        """
        self._client_config = build_client_config(
            config,
            base_url=base_url,
            lang=lang,
            timeout=timeout,
            debug=debug,
            **kwargs,
        )
        self._config = resolve_config(self._client_config)
        validate_config(self._config)

        self._auth_store = auth_store or AuthStore()
        self._http = HttpClient(self._config, self._auth_store)

        self._realtime = RealtimeChannel(
            self._http,
            self._config.realtime,
            debug_fn=self._config.debug_fn,
        )
        self._pubsub = PubSubChannel(
            self._http,
            self._config.pubsub,
            debug_fn=self._config.debug_fn,
            user_agent=self._config.user_agent,
        )
        self._collections: dict[str, RecordsResource] = {}

        if self._config.debug_fn:
            self._config.debug_fn(
                "BosBase initialized",
                {
                    "base_url": self._config.base_url,
                    "ws_url": self._config.ws_url,
                    "has_token": bool(self._auth_store.token),
                },
            )

    # Channels and resources

    @property
    def realtime(self) -> RealtimeChannel:
        """Record subscriptions over Server-Sent Events."""
        return self._realtime

    @property
    def pubsub(self) -> PubSubChannel:
        """Publish/subscribe over WebSocket."""
        return self._pubsub

    @property
    def auth_store(self) -> AuthStore:
        return self._auth_store

    @property
    def http(self) -> HttpClient:
        return self._http

    def collection(self, name: str) -> RecordsResource:
        """Record subscriptions for one collection (cached per name)."""
        resource = self._collections.get(name)
        if resource is None:
            resource = RecordsResource(self._realtime, name)
            self._collections[name] = resource
        return resource

    # HTTP helpers

    def build_url(self, path: str, query: dict[str, Any] | None = None) -> str:
        return self._http.build_url(path, query)

    def send(self, path: str, **kwargs: Any) -> Any:
        """Send an authorized request to the server and return the decoded body."""
        return self._http.send(path, **kwargs)

    # Configuration access

    def get_config(self) -> ResolvedConfig:
        """Get current configuration (read-only)."""
        return self._config

    def with_options(self, **kwargs: Any) -> BosBase:
        """
        Create a new client with some configuration values replaced.

        The auth store is shared with the new client; channels are not.
        """
        params = {**self._client_config.model_dump(), **kwargs}
        return BosBase(config=BosBaseClientConfig(**params), auth_store=self._auth_store)

    # Context manager

    def close(self) -> None:
        """Disconnect both channels and close the HTTP client."""
        self._realtime.disconnect()
        self._pubsub.disconnect()
        self._http.close()

    def __enter__(self) -> BosBase:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()


def create_client(base_url: str | None = None, **kwargs: Any) -> BosBase:
    """
    Create a new BosBase instance.

    Example:
        >>> from bosbase import create_client
        >>> client = create_client("http://127.0.0.1:8090")
    """
    return BosBase(base_url, **kwargs)
