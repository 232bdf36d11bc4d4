"""Unit tests for the auth store."""

from __future__ import annotations

from typing import Any

from bosbase.auth_store import AuthStore, get_token_payload, is_token_expired
from tests.conftest import make_token


class TestTokenHelpers:
    """Tests for JWT payload helpers."""

    def test_payload_decoded(self) -> None:
        """Test the middle segment is decoded."""
        payload = get_token_payload(make_token())
        assert payload["id"] == "user_1"
        assert "exp" in payload

    def test_malformed_tokens(self) -> None:
        """Test garbage tokens decode to an empty payload."""
        assert get_token_payload(None) == {}
        assert get_token_payload("") == {}
        assert get_token_payload("abc") == {}
        assert get_token_payload("a.!!!.c") == {}

    def test_expiry(self) -> None:
        """Test exp is compared against the current time."""
        assert not is_token_expired(make_token(3600))
        assert is_token_expired(make_token(-10))
        assert is_token_expired(make_token(30), expiration_threshold=60)
        assert is_token_expired("not-a-jwt")


class TestAuthStore:
    """Tests for AuthStore."""

    def test_empty_store(self) -> None:
        """Test a new store is not valid."""
        store = AuthStore()
        assert store.token is None
        assert store.record is None
        assert not store.is_valid

    def test_save_and_clear(self) -> None:
        """Test saving and clearing a token."""
        store = AuthStore()
        token = make_token()

        store.save(token, {"id": "user_1"})
        assert store.token == token
        assert store.record == {"id": "user_1"}
        assert store.is_valid

        store.clear()
        assert store.token is None
        assert not store.is_valid

    def test_on_change(self) -> None:
        """Test listeners see every change until removed."""
        store = AuthStore()
        changes: list[tuple[Any, Any]] = []
        remove = store.on_change(lambda token, record: changes.append((token, record)))

        store.save("t1", {"id": "1"})
        store.clear()
        remove()
        store.save("t2")

        assert changes == [("t1", {"id": "1"}), (None, None)]

    def test_on_change_fire_immediately(self) -> None:
        """Test fire_immediately replays the current state."""
        store = AuthStore("t0")
        changes: list[Any] = []
        store.on_change(lambda token, record: changes.append(token), fire_immediately=True)
        assert changes == ["t0"]

    def test_failing_listener_is_isolated(self) -> None:
        """Test one failing listener does not block others."""
        store = AuthStore()
        seen: list[Any] = []

        def broken(token: Any, record: Any) -> None:
            raise RuntimeError("boom")

        store.on_change(broken)
        store.on_change(lambda token, record: seen.append(token))
        store.save("t1")

        assert seen == ["t1"]
