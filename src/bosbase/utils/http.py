"""
HTTP client for the BosBase SDK.

A thin wrapper over httpx used for single request/response calls, most
notably the realtime topic submission.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import httpx

from bosbase.errors import NetworkError, TimeoutError, create_error_from_response

if TYPE_CHECKING:
    from bosbase.auth_store import AuthStore
    from bosbase.config import ResolvedConfig


def _normalize_query(query: dict[str, Any] | None) -> dict[str, Any]:
    params: dict[str, Any] = {}
    for key, value in (query or {}).items():
        if value is None:
            continue
        if isinstance(value, bool):
            params[key] = "true" if value else "false"
        elif isinstance(value, (list, tuple)):
            params[key] = [str(v) for v in value if v is not None]
        else:
            params[key] = str(value)
    return params


class HttpClient:
    """Synchronous HTTP client."""

    def __init__(
        self,
        config: ResolvedConfig,
        auth_store: AuthStore,
        client: httpx.Client | None = None,
    ) -> None:
        self._config = config
        self._auth_store = auth_store
        self._client = client or httpx.Client(timeout=config.timeout)

    @property
    def auth_store(self) -> AuthStore:
        return self._auth_store

    def build_url(self, path: str, query: dict[str, Any] | None = None) -> str:
        """Compose base URL, path and query parameters."""
        base = self._config.base_url.rstrip("/")
        target = f"{base}/{path.lstrip('/')}"
        params = _normalize_query(query)
        if not params:
            return target
        return str(httpx.URL(target, params=params))

    def build_headers(self, headers: dict[str, str] | None = None) -> dict[str, str]:
        """Default request headers merged with per-call overrides."""
        result = {
            "Accept-Language": self._config.lang,
            "User-Agent": self._config.user_agent,
            **self._config.headers,
        }
        token = self._auth_store.token
        if token and self._auth_store.is_valid:
            result["Authorization"] = token
        if headers:
            result.update(headers)
        return result

    def send(
        self,
        path: str,
        *,
        method: str = "GET",
        headers: dict[str, str] | None = None,
        query: dict[str, Any] | None = None,
        body: Any = None,
        timeout: float | None = None,
    ) -> Any:
        """
        Perform a single request and return the decoded response.

        Raises:
            BosBaseError: subclass matching the response status
            NetworkError: when the request could not be sent
            TimeoutError: when the request timed out
        """
        url = self.build_url(path, query)
        request_kwargs: dict[str, Any] = {"headers": self.build_headers(headers)}
        if body is not None:
            request_kwargs["json"] = body
        if timeout is not None:
            request_kwargs["timeout"] = timeout

        try:
            response = self._client.request(method.upper() or "GET", url, **request_kwargs)
        except httpx.TimeoutException as e:
            raise TimeoutError(f"Request timed out ({url})", url=url, original_error=e) from e
        except httpx.HTTPError as e:
            raise NetworkError(f"{e} ({url})", url=url, original_error=e) from e

        data = self._parse_response(response)
        if response.status_code >= 400:
            raise create_error_from_response(response.status_code, data, url)
        return data

    def get(self, path: str, **kwargs: Any) -> Any:
        return self.send(path, method="GET", **kwargs)

    def post(self, path: str, body: Any = None, **kwargs: Any) -> Any:
        return self.send(path, method="POST", body=body, **kwargs)

    @staticmethod
    def _parse_response(response: httpx.Response) -> Any:
        if response.status_code == 204 or not response.content:
            return None
        content_type = response.headers.get("content-type", "")
        if "application/json" in content_type:
            try:
                return response.json()
            except ValueError:
                return response.text
        return response.text

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> HttpClient:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
