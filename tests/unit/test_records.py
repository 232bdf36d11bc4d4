"""Unit tests for collection scoped record subscriptions."""

from __future__ import annotations

from collections.abc import Generator
from typing import Any

import pytest

from bosbase.errors import ValidationError
from bosbase.realtime import RealtimeChannel, build_subscription_key
from bosbase.resources import RecordsResource
from bosbase.utils.http import HttpClient
from tests.conftest import EventSourceRecorder, TimerRecorder


@pytest.fixture
def realtime(
    http_client: HttpClient,
    event_sources: EventSourceRecorder,
    timers: TimerRecorder,
) -> Generator[RealtimeChannel, None, None]:
    channel = RealtimeChannel(http_client, transport_factory=event_sources, timer_factory=timers)
    yield channel
    channel.disconnect()


class TestRecordsResource:
    """Tests for RecordsResource."""

    def test_collection_required(self, realtime: RealtimeChannel) -> None:
        with pytest.raises(ValidationError):
            RecordsResource(realtime, "")

    def test_subscribe_prefixes_collection(self, realtime: RealtimeChannel) -> None:
        """Test topics are scoped to the collection."""
        posts = RecordsResource(realtime, "posts")

        posts.subscribe("*", lambda e: None)
        posts.subscribe("RECORD_ID", lambda e: None)

        assert realtime.topics == ["posts/*", "posts/RECORD_ID"]

    def test_subscribe_with_options(self, realtime: RealtimeChannel) -> None:
        """Test query and headers are folded into the key."""
        posts = RecordsResource(realtime, "posts")

        posts.subscribe("*", lambda e: None, query={"expand": "author"}, headers={"X-A": "1"})

        assert realtime.topics == [
            build_subscription_key("posts/*", {"expand": "author"}, {"X-A": "1"})
        ]

    def test_empty_topic_rejected(self, realtime: RealtimeChannel) -> None:
        with pytest.raises(ValidationError):
            RecordsResource(realtime, "posts").subscribe("", lambda e: None)

    def test_record_events_delivered(
        self, realtime: RealtimeChannel, event_sources: EventSourceRecorder
    ) -> None:
        """Test record change payloads reach the listener."""
        events: list[dict[str, Any]] = []
        RecordsResource(realtime, "posts").subscribe("*", events.append)
        source = event_sources.latest

        source.emit("posts/*", {"action": "delete", "record": {"id": "r1"}})

        assert events == [{"action": "delete", "record": {"id": "r1"}}]

    def test_unsubscribe_topic(self, realtime: RealtimeChannel) -> None:
        """Test unsubscribe(topic) only drops that record topic."""
        posts = RecordsResource(realtime, "posts")
        posts.subscribe("*", lambda e: None)
        posts.subscribe("abc", lambda e: None)

        posts.unsubscribe("abc")

        assert realtime.topics == ["posts/*"]

    def test_unsubscribe_collection(self, realtime: RealtimeChannel) -> None:
        """Test unsubscribe() drops every topic of the collection only."""
        posts = RecordsResource(realtime, "posts")
        users = RecordsResource(realtime, "users")
        posts.subscribe("*", lambda e: None)
        posts.subscribe("abc", lambda e: None, query={"expand": "author"})
        users.subscribe("*", lambda e: None)

        posts.unsubscribe()

        assert realtime.topics == ["users/*"]

    def test_unsubscribe_closure(self, realtime: RealtimeChannel) -> None:
        """Test the returned closure removes the listener."""
        unsubscribe = RecordsResource(realtime, "posts").subscribe("*", lambda e: None)
        unsubscribe()
        assert realtime.topics == []
        assert not realtime.is_connected
