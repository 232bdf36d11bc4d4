"""
Base classes for BosBase resources.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from bosbase.realtime.aio import AsyncRealtimeChannel
    from bosbase.realtime.sse import RealtimeChannel


class BaseResource:
    """Resource bound to the realtime channel (sync)."""

    def __init__(self, realtime: RealtimeChannel) -> None:
        self._realtime = realtime


class AsyncBaseResource:
    """Resource bound to the realtime channel (async)."""

    def __init__(self, realtime: AsyncRealtimeChannel) -> None:
        self._realtime = realtime
