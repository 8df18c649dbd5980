"""HTTP 传输层：绑定基础 URL 与请求头的传输句柄。

Transport handle returned by :class:`TransportCache.acquire`.

A handle binds a base URL and default headers to a shared, cached
``httpx.AsyncClient``. The shared client is never mutated, so callers with
different headers can use the same destination concurrently.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from enum import Enum
from typing import TYPE_CHECKING, Any

import httpx

from chimera_api._version import __version__
from chimera_api.errors import TransportError

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Mapping

    from chimera_api.transport.proxy import ProxyConfig


_UA_VERSION: str | None = None


def _get_ua_version() -> str:
    """Get package version for User-Agent (cached)."""
    global _UA_VERSION
    if _UA_VERSION is None:
        try:
            from importlib.metadata import version

            _UA_VERSION = version("chimera-api-python")
        except Exception:
            _UA_VERSION = __version__
    return _UA_VERSION


class Route(str, Enum):
    """How a transport reaches its destination."""

    DIRECT = "direct"
    PROXIED = "proxied"


def _error_message(exc: Exception) -> str:
    return str(exc) or type(exc).__name__


class TransportHandle:
    """A cached client bound to one base URL and header set.

    Example:
        >>> handle = await cache.acquire("https://api.example/v1", headers)
        >>> response = await handle.post("chat/completions", json=payload)
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str,
        headers: Mapping[str, str] | None = None,
        *,
        route: Route = Route.DIRECT,
        proxy: ProxyConfig | None = None,
        diagnostic: str | None = None,
    ) -> None:
        """Initialize handle.

        Args:
            client: Shared client owned by the transport cache
            base_url: Base URL prepended to relative request paths
            headers: Default headers sent with every request
            route: Whether the client goes through a proxy
            proxy: Proxy in use when route is PROXIED
            diagnostic: Why the handle is direct despite a configured proxy
        """
        self._client = client
        self._base_url = base_url.rstrip("/")
        self._headers = dict(headers or {})
        self._route = route
        self._proxy = proxy
        self._diagnostic = diagnostic

    @property
    def client(self) -> httpx.AsyncClient:
        """Underlying shared client."""
        return self._client

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def headers(self) -> dict[str, str]:
        """Copy of the bound default headers."""
        return dict(self._headers)

    @property
    def route(self) -> Route:
        return self._route

    @property
    def proxy(self) -> ProxyConfig | None:
        return self._proxy

    @property
    def diagnostic(self) -> str | None:
        return self._diagnostic

    def url(self, path: str) -> str:
        """Resolve ``path`` against the bound base URL."""
        if path.startswith(("http://", "https://")):
            return path
        return f"{self._base_url}/{path.lstrip('/')}"

    def _build_headers(self, extra_headers: Mapping[str, str] | None = None) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": f"chimera-api-python/{_get_ua_version()}",
        }
        headers.update(self._headers)
        if extra_headers:
            headers.update(extra_headers)
        return headers

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        headers: Mapping[str, str] | None = None,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """Make an HTTP request.

        Returns:
            HTTP response with a status below 400

        Raises:
            TransportError: On network errors or error status codes
        """
        url = self.url(path)
        try:
            response = await self._client.request(
                method,
                url,
                json=json,
                headers=self._build_headers(headers),
                params=params,
            )
        except httpx.HTTPError as e:
            raise TransportError(_error_message(e), url=url, cause=e) from e

        if response.status_code >= 400:
            raise TransportError(
                response.text,
                url=url,
                status_code=response.status_code,
                body=response.text,
            )

        return response

    async def post(
        self,
        path: str,
        json: Any = None,
        *,
        headers: Mapping[str, str] | None = None,
    ) -> httpx.Response:
        """Make a POST request."""
        return await self.request("POST", path, json=json, headers=headers)

    async def get(
        self,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> httpx.Response:
        """Make a GET request."""
        return await self.request("GET", path, params=params, headers=headers)

    @asynccontextmanager
    async def stream_request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        headers: Mapping[str, str] | None = None,
    ) -> AsyncIterator[httpx.Response]:
        """Make a streaming HTTP request.

        Example:
            >>> async with handle.stream_request("POST", "chat/completions", json=p) as resp:
            ...     async for chunk in resp.aiter_text():
            ...         process(chunk)
        """
        url = self.url(path)
        try:
            async with self._client.stream(
                method,
                url,
                json=json,
                headers=self._build_headers(headers),
            ) as response:
                if response.status_code >= 400:
                    body = (await response.aread()).decode(
                        response.encoding or "utf-8", errors="replace"
                    )
                    raise TransportError(
                        body,
                        url=url,
                        status_code=response.status_code,
                        body=body,
                    )
                yield response
        except httpx.HTTPError as e:
            raise TransportError(_error_message(e), url=url, cause=e) from e

    async def stream_text(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        headers: Mapping[str, str] | None = None,
    ) -> str:
        """Stream a response and return its whole body as text."""
        parts: list[str] = []
        async with self.stream_request(method, path, json=json, headers=headers) as resp:
            async for chunk in resp.aiter_text():
                parts.append(chunk)
        return "".join(parts)

    def __repr__(self) -> str:
        return f"TransportHandle(base_url={self._base_url!r}, route={self._route.value!r})"
