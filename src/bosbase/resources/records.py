"""
Record subscriptions scoped to one collection.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from bosbase.errors import ValidationError
from bosbase.resources.base import AsyncBaseResource, BaseResource

if TYPE_CHECKING:
    from bosbase.realtime.aio import AsyncRealtimeChannel, AsyncUnsubscribe
    from bosbase.realtime.sse import RealtimeChannel

RecordListener = Callable[[dict[str, Any]], Any]


def _check_collection(collection: str) -> str:
    if not collection:
        raise ValidationError("collection id or name must be set.")
    return collection


class RecordsResource(BaseResource):
    """
    Record change subscriptions for a collection (sync).

    Example:
        >>> posts = client.collection("posts")
        >>> unsubscribe = posts.subscribe("*", lambda e: print(e["action"]))
        >>> posts.subscribe("RECORD_ID", on_change, query={"expand": "author"})
        >>> posts.unsubscribe()  # every posts/* topic
    """

    def __init__(self, realtime: RealtimeChannel, collection: str) -> None:
        super().__init__(realtime)
        self._collection = _check_collection(collection)

    @property
    def collection(self) -> str:
        return self._collection

    def subscribe(
        self,
        topic: str,
        listener: RecordListener,
        *,
        query: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Callable[[], None]:
        """Subscribe to "*" (all records) or a single record id."""
        if not topic:
            raise ValidationError("topic must be set.")
        return self._realtime.subscribe(
            f"{self._collection}/{topic}", listener, query=query, headers=headers
        )

    def unsubscribe(self, topic: str | None = None) -> None:
        """Drop one record topic, or every topic of the collection."""
        if topic:
            self._realtime.unsubscribe(f"{self._collection}/{topic}")
        else:
            self._realtime.unsubscribe_by_prefix(self._collection)


class AsyncRecordsResource(AsyncBaseResource):
    """Record change subscriptions for a collection (async)."""

    def __init__(self, realtime: AsyncRealtimeChannel, collection: str) -> None:
        super().__init__(realtime)
        self._collection = _check_collection(collection)

    @property
    def collection(self) -> str:
        return self._collection

    async def subscribe(
        self,
        topic: str,
        listener: RecordListener,
        *,
        query: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> AsyncUnsubscribe:
        """Subscribe to "*" (all records) or a single record id."""
        if not topic:
            raise ValidationError("topic must be set.")
        return await self._realtime.subscribe(
            f"{self._collection}/{topic}", listener, query=query, headers=headers
        )

    async def unsubscribe(self, topic: str | None = None) -> None:
        """Drop one record topic, or every topic of the collection."""
        if topic:
            await self._realtime.unsubscribe(f"{self._collection}/{topic}")
        else:
            await self._realtime.unsubscribe_by_prefix(self._collection)
