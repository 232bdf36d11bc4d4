"""
Realtime module for the BosBase SDK.

Provides the Server-Sent Events record subscription channel and the
WebSocket publish/subscribe channel.
"""

from bosbase.realtime.acks import AckRegistry, PendingAck, new_request_id
from bosbase.realtime.aio import AsyncPubSubChannel, AsyncRealtimeChannel
from bosbase.realtime.backoff import BackoffScheduler
from bosbase.realtime.dispatch import ListenerDispatcher
from bosbase.realtime.events import (
    CONNECT_EVENT,
    ConnectionState,
    PublishAck,
    PublishCommand,
    PubSubMessage,
    RealtimeSubscriptionRequest,
    SubscribeCommand,
    UnsubscribeCommand,
)
from bosbase.realtime.pubsub import PubSubChannel, WebSocketTransport
from bosbase.realtime.sse import RealtimeChannel, SSETransport, build_subscription_key

__all__ = [
    # Events
    "CONNECT_EVENT",
    "ConnectionState",
    "PubSubMessage",
    "PublishAck",
    "PublishCommand",
    "SubscribeCommand",
    "UnsubscribeCommand",
    "RealtimeSubscriptionRequest",
    # Shared machinery
    "AckRegistry",
    "PendingAck",
    "BackoffScheduler",
    "ListenerDispatcher",
    "new_request_id",
    # Pub/sub
    "PubSubChannel",
    "WebSocketTransport",
    "AsyncPubSubChannel",
    # SSE
    "RealtimeChannel",
    "SSETransport",
    "AsyncRealtimeChannel",
    "build_subscription_key",
]
