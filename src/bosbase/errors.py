"""
Error types for the BosBase SDK.
"""

from __future__ import annotations

from typing import Any


class BosBaseError(Exception):
    """Base error for everything raised by the SDK."""

    default_message = "BosBase request failed"
    default_status_code = 0
    default_code = "unknown_error"

    def __init__(
        self,
        message: str | None = None,
        *,
        status_code: int | None = None,
        code: str | None = None,
        details: dict[str, Any] | None = None,
        url: str | None = None,
        original_error: BaseException | None = None,
    ) -> None:
        self.message = message if message is not None else self.default_message
        self.status_code = status_code if status_code is not None else self.default_status_code
        self.code = code if code is not None else self.default_code
        self.details = details
        self.url = url
        self.original_error = original_error
        super().__init__(self.message)

    def is_retryable(self) -> bool:
        """Whether repeating the operation may succeed."""
        return False

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(message={self.message!r}, "
            f"status_code={self.status_code}, code={self.code!r})"
        )


class ValidationError(BosBaseError):
    """Invalid input, rejected before or by the server."""

    default_message = "Validation failed"
    default_status_code = 400
    default_code = "validation_error"


class AuthenticationError(BosBaseError):
    default_message = "Authentication failed"
    default_status_code = 401
    default_code = "authentication_error"


class AuthorizationError(BosBaseError):
    default_message = "Access denied"
    default_status_code = 403
    default_code = "authorization_error"


class NotFoundError(BosBaseError):
    default_message = "Resource not found"
    default_status_code = 404
    default_code = "not_found"


class ServerError(BosBaseError):
    default_message = "Internal server error"
    default_status_code = 500
    default_code = "server_error"

    def is_retryable(self) -> bool:
        return True


class NetworkError(BosBaseError):
    """The transport failed before a response was received."""

    default_message = "Network error"
    default_code = "network_error"

    def is_retryable(self) -> bool:
        return True


class ConnectionClosedError(NetworkError):
    """A realtime connection was closed while an operation was pending."""

    default_message = "Connection closed"
    default_code = "connection_closed"


class TimeoutError(BosBaseError):  # noqa: A001
    default_message = "Request timed out"
    default_code = "timeout"

    def is_retryable(self) -> bool:
        return True


class PubSubError(BosBaseError):
    """An error frame reported by the pub/sub server."""

    default_message = "pubsub error"
    default_code = "pubsub_error"

    def is_retryable(self) -> bool:
        return True


_STATUS_ERRORS: dict[int, type[BosBaseError]] = {
    400: ValidationError,
    401: AuthenticationError,
    403: AuthorizationError,
    404: NotFoundError,
}


def create_error_from_response(
    status_code: int,
    body: Any = None,
    url: str | None = None,
) -> BosBaseError:
    """Build the matching error for a failed HTTP response."""
    details: dict[str, Any] | None = None
    message: str | None = None
    if isinstance(body, dict):
        details = body
        raw_message = body.get("message")
        if raw_message:
            message = str(raw_message)
    elif isinstance(body, str) and body:
        message = body

    if message is None:
        message = f"HTTP {status_code}"

    if status_code >= 500:
        error_cls: type[BosBaseError] = ServerError
    else:
        error_cls = _STATUS_ERRORS.get(status_code, BosBaseError)

    return error_cls(
        message,
        status_code=status_code,
        details=details,
        url=url,
    )


def is_bosbase_error(error: Any) -> bool:
    """Check whether an object is an SDK error."""
    return isinstance(error, BosBaseError)
