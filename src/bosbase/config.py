"""
Configuration for the BosBase SDK.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from bosbase._version import __version__

DEFAULT_BASE_URL = "http://127.0.0.1:8090"
DEFAULT_TIMEOUT = 30.0
DEFAULT_LANG = "en-US"
DEFAULT_USER_AGENT = f"bosbase-python-sdk/{__version__}"

REALTIME_PATH = "/api/realtime"
PUBSUB_PATH = "/api/pubsub"

# Reconnect ladders, in seconds. The last value is reused once exhausted.
REALTIME_RECONNECT_INTERVALS: tuple[float, ...] = (0.2, 0.5, 1.0, 2.0, 5.0)
PUBSUB_RECONNECT_INTERVALS: tuple[float, ...] = (0.2, 0.3, 0.5, 1.0, 1.2, 1.5, 2.0)

DEFAULT_ACK_TIMEOUT = 10.0
DEFAULT_CONNECT_TIMEOUT = 15.0

DebugFn = Callable[[str, Any], None]

logger = logging.getLogger("bosbase")


def _check_intervals(value: tuple[float, ...]) -> tuple[float, ...]:
    if not value:
        raise ValueError("reconnect_intervals must not be empty")
    if any(delay <= 0 for delay in value):
        raise ValueError("reconnect_intervals must be positive")
    return value


class RealtimeConfig(BaseModel):
    """Settings for the SSE realtime channel."""

    reconnect_intervals: tuple[float, ...] = REALTIME_RECONNECT_INTERVALS

    model_config = ConfigDict(frozen=True, extra="forbid")

    @field_validator("reconnect_intervals")
    @classmethod
    def _validate_intervals(cls, value: tuple[float, ...]) -> tuple[float, ...]:
        return _check_intervals(value)


class PubSubConfig(BaseModel):
    """Settings for the WebSocket pub/sub channel."""

    reconnect_intervals: tuple[float, ...] = PUBSUB_RECONNECT_INTERVALS
    ack_timeout: float = Field(default=DEFAULT_ACK_TIMEOUT, gt=0)
    connect_timeout: float = Field(default=DEFAULT_CONNECT_TIMEOUT, gt=0)

    model_config = ConfigDict(frozen=True, extra="forbid")

    @field_validator("reconnect_intervals")
    @classmethod
    def _validate_intervals(cls, value: tuple[float, ...]) -> tuple[float, ...]:
        return _check_intervals(value)


class BosBaseClientConfig(BaseModel):
    """User facing client configuration."""

    base_url: str = DEFAULT_BASE_URL
    lang: str = DEFAULT_LANG
    timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0)
    headers: dict[str, str] = Field(default_factory=dict)
    user_agent: str = DEFAULT_USER_AGENT
    debug: bool = False
    realtime: RealtimeConfig = Field(default_factory=RealtimeConfig)
    pubsub: PubSubConfig = Field(default_factory=PubSubConfig)

    model_config = ConfigDict(extra="forbid")

    def get_ws_url(self) -> str:
        """Derive the WebSocket base URL from base_url."""
        base = self.base_url.rstrip("/")
        if base.startswith("https://"):
            return "wss://" + base[len("https://") :]
        if base.startswith("http://"):
            return "ws://" + base[len("http://") :]
        return base


@dataclass
class ResolvedConfig:
    """Configuration with defaults applied, as consumed by the SDK internals."""

    base_url: str
    ws_url: str
    lang: str
    timeout: float
    user_agent: str
    realtime: RealtimeConfig
    pubsub: PubSubConfig
    headers: dict[str, str] = field(default_factory=dict)
    debug_fn: DebugFn | None = None


def _log_debug(message: str, meta: Any = None) -> None:
    if meta is None:
        logger.debug("[bosbase] %s", message)
    else:
        logger.debug("[bosbase] %s %s", message, meta)


def resolve_config(config: BosBaseClientConfig) -> ResolvedConfig:
    """Apply defaults and normalize a client configuration."""
    return ResolvedConfig(
        base_url=config.base_url.rstrip("/") or "/",
        ws_url=config.get_ws_url(),
        lang=config.lang,
        timeout=config.timeout,
        user_agent=config.user_agent,
        realtime=config.realtime,
        pubsub=config.pubsub,
        headers=dict(config.headers),
        debug_fn=_log_debug if config.debug else None,
    )


def validate_config(config: ResolvedConfig) -> None:
    """Raise ValueError when the resolved configuration is unusable."""
    if not config.base_url.startswith(("http://", "https://")):
        raise ValueError("base_url must start with http:// or https://")
