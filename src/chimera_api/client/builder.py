"""
Builder for fluent client construction.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from chimera_api.client.core import ChimeraClient
    from chimera_api.transport import ProxyConfig, TransportCache


class ChimeraClientBuilder:
    """Builder for creating ChimeraClient instances.

    Example:
        >>> client = (
        ...     ChimeraClientBuilder()
        ...     .api_key("sk-...")
        ...     .proxy("10.0.0.1", 3128, username="me", password="secret")
        ...     .debug_logging()
        ...     .build()
        ... )
    """

    def __init__(self) -> None:
        self._api_key: str | None = None
        self._proxy: ProxyConfig | Mapping[str, Any] | None = None
        self._debug_logging = False
        self._base_url: str | None = None
        self._cache: TransportCache | None = None

    def api_key(self, key: str) -> ChimeraClientBuilder:
        """Set the API key."""
        self._api_key = key
        return self

    def proxy(
        self,
        host: str,
        port: int,
        *,
        protocol: str = "http",
        username: str | None = None,
        password: str | None = None,
        verify_ssl: bool = True,
    ) -> ChimeraClientBuilder:
        """Route traffic through a forward proxy.

        The values are validated when the transport is built, not here; a
        username without a password (or the reverse) makes the proxy invalid.
        """
        config: dict[str, Any] = {
            "host": host,
            "port": port,
            "protocol": protocol,
            "verify_ssl": verify_ssl,
        }
        if username is not None or password is not None:
            config["auth"] = {"username": username, "password": password}
        self._proxy = config
        return self

    def proxy_config(self, config: ProxyConfig | Mapping[str, Any] | None) -> ChimeraClientBuilder:
        """Set a prepared proxy configuration (None clears it)."""
        self._proxy = config
        return self

    def debug_logging(self, enable: bool = True) -> ChimeraClientBuilder:
        """Enable debug logging."""
        self._debug_logging = enable
        return self

    def base_url(self, url: str) -> ChimeraClientBuilder:
        """Override the gateway base URL."""
        self._base_url = url
        return self

    def cache(self, cache: TransportCache) -> ChimeraClientBuilder:
        """Use an isolated transport cache instead of the process-wide one."""
        self._cache = cache
        return self

    def build(self) -> ChimeraClient:
        """Build the client.

        Raises:
            ConfigurationError: If no API key was set
        """
        from chimera_api.client.core import DEFAULT_BASE_URL, ChimeraClient

        return ChimeraClient(
            self._api_key or "",
            self._proxy,
            self._debug_logging,
            base_url=self._base_url or DEFAULT_BASE_URL,
            cache=self._cache,
        )
