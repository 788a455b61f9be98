"""httpx wrapper that attaches the bearer token and normalizes errors."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import httpx

from qrshare.exceptions import ApiError

StatusPredicate = Callable[[int], bool]
TokenProvider = Callable[[], "str | None"]


def is_success(status: int) -> bool:
    return 200 <= status < 300


def is_success_or_gone(status: int) -> bool:
    """Delete semantics: already-missing resources count as deleted."""
    return is_success(status) or status in (404, 410)


def error_message(response: httpx.Response) -> str:
    """Best human-readable message the backend gave us."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    text = response.text.strip()
    if text:
        return text
    return response.reason_phrase or f"HTTP {response.status_code}"


class ApiTransport:
    """Thin layer over httpx.Client bound to the backend base URL."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 60.0,
        token_provider: TokenProvider | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._token_provider = token_provider
        self._client: httpx.Client | None = httpx.Client(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
        )

    def _headers(self, extra: dict[str, str] | None) -> dict[str, str]:
        headers: dict[str, str] = {"Accept": "application/json"}
        token = self._token_provider() if self._token_provider else None
        if token:
            headers["Authorization"] = f"Bearer {token}"
        if extra:
            headers.update(extra)
        return headers

    def request(
        self,
        method: str,
        path: str,
        *,
        accept: StatusPredicate = is_success,
        headers: dict[str, str] | None = None,
        **kwargs: Any,
    ) -> httpx.Response:
        """Send a request and return the response if its status is accepted.

        Raises:
            ApiError: On a rejected status or when the request never completed.
        """
        if self._client is None:
            raise ApiError("Transport is closed")
        try:
            response = self._client.request(method, path, headers=self._headers(headers), **kwargs)
        except httpx.TransportError as e:
            raise ApiError(f"Network error: {e}") from e
        if not accept(response.status_code):
            raise ApiError(error_message(response), status_code=response.status_code)
        return response

    def get_json(self, path: str, **kwargs: Any) -> Any:
        return _json_or_none(self.request("GET", path, **kwargs))

    def post_json(self, path: str, **kwargs: Any) -> Any:
        return _json_or_none(self.request("POST", path, **kwargs))

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None


def _json_or_none(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return None
