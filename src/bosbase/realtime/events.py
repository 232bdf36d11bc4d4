"""
Wire types for the realtime (SSE) and pub/sub (WebSocket) channels.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel

from bosbase.errors import ValidationError

# Envelope discriminators used on the pub/sub socket
PubSubFrameType = Literal[
    "publish",
    "subscribe",
    "unsubscribe",
    "ready",
    "message",
    "published",
    "subscribed",
    "unsubscribed",
    "pong",
    "error",
]

# Server frames that settle a pending request
ACK_FRAME_TYPES: frozenset[PubSubFrameType] = frozenset(
    {"published", "subscribed", "unsubscribed", "pong"}
)

# First event of every realtime SSE stream
CONNECT_EVENT = "PB_CONNECT"


def validate_topic(topic: Any) -> str:
    """Reject empty or non-string topics before touching the network."""
    if not isinstance(topic, str) or not topic:
        raise ValidationError("topic must be set.")
    return topic


class ConnectionState(str, Enum):
    """Lifecycle of a channel connection."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    READY = "ready"


class PubSubMessage(BaseModel):
    """Message delivered to pub/sub topic listeners."""

    id: str = ""
    topic: str
    created: str = ""
    data: Any = None

    @classmethod
    def from_frame(cls, frame: dict[str, Any]) -> PubSubMessage:
        """Create message from a server "message" frame."""
        return cls(
            id=str(frame.get("id") or ""),
            topic=str(frame.get("topic") or ""),
            created=str(frame.get("created") or ""),
            data=frame.get("data"),
        )


class PublishAck(BaseModel):
    """Server acknowledgement of a published message."""

    id: str
    topic: str
    created: str = ""

    @classmethod
    def from_frame(cls, frame: dict[str, Any], topic: str) -> PublishAck:
        """Create ack from a "published" frame, falling back to the sent topic."""
        return cls(
            id=str(frame.get("id") or ""),
            topic=str(frame.get("topic") or topic),
            created=str(frame.get("created") or ""),
        )


class PublishCommand(BaseModel):
    """Publish command for the pub/sub socket."""

    type: Literal["publish"] = "publish"
    topic: str
    data: Any = None
    request_id: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for sending."""
        return {
            "type": self.type,
            "topic": self.topic,
            "data": self.data,
            "requestId": self.request_id,
        }


class SubscribeCommand(BaseModel):
    """Subscribe command for the pub/sub socket."""

    type: Literal["subscribe"] = "subscribe"
    topic: str
    request_id: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for sending."""
        return {"type": self.type, "topic": self.topic, "requestId": self.request_id}


class UnsubscribeCommand(BaseModel):
    """Unsubscribe command; without a topic it drops every subscription."""

    type: Literal["unsubscribe"] = "unsubscribe"
    topic: str | None = None
    request_id: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for sending."""
        result: dict[str, Any] = {"type": self.type}
        if self.topic:
            result["topic"] = self.topic
        result["requestId"] = self.request_id
        return result


class RealtimeSubscriptionRequest(BaseModel):
    """Body of the realtime topic submission POST."""

    client_id: str
    subscriptions: list[str]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for sending."""
        return {"clientId": self.client_id, "subscriptions": list(self.subscriptions)}
