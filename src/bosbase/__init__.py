"""
BosBase Python SDK

Realtime record subscriptions (SSE) and WebSocket publish/subscribe for
BosBase servers.

Example:
    >>> from bosbase import BosBase
    >>> client = BosBase("http://127.0.0.1:8090")
    >>> client.pubsub.publish("chat/general", {"text": "hi"})
"""

from bosbase._version import __version__
from bosbase.async_client import AsyncBosBase
from bosbase.auth_store import AuthStore
from bosbase.client import BosBase, create_client
from bosbase.config import BosBaseClientConfig, PubSubConfig, RealtimeConfig
from bosbase.errors import (
    AuthenticationError,
    AuthorizationError,
    BosBaseError,
    ConnectionClosedError,
    NetworkError,
    NotFoundError,
    PubSubError,
    ServerError,
    TimeoutError,
    ValidationError,
)
from bosbase.realtime import (
    AsyncPubSubChannel,
    AsyncRealtimeChannel,
    ConnectionState,
    PublishAck,
    PubSubChannel,
    PubSubMessage,
    RealtimeChannel,
)

__all__ = [
    "__version__",
    # Clients
    "BosBase",
    "AsyncBosBase",
    "create_client",
    "AuthStore",
    # Config
    "BosBaseClientConfig",
    "RealtimeConfig",
    "PubSubConfig",
    # Channels
    "RealtimeChannel",
    "PubSubChannel",
    "AsyncRealtimeChannel",
    "AsyncPubSubChannel",
    "ConnectionState",
    "PubSubMessage",
    "PublishAck",
    # Errors
    "BosBaseError",
    "ValidationError",
    "AuthenticationError",
    "AuthorizationError",
    "NotFoundError",
    "ServerError",
    "NetworkError",
    "ConnectionClosedError",
    "TimeoutError",
    "PubSubError",
]
