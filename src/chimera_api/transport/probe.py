"""
Proxy liveness probe.

A single GET through the candidate proxy to a public, always-available HTTPS
endpoint. Used once when a proxied transport entry is created.
"""

from __future__ import annotations

import time

import httpx

from chimera_api.telemetry import get_logger
from chimera_api.transport.proxy import ProxyConfig

DEFAULT_PROBE_URL = "https://www.google.com/"
DEFAULT_PROBE_TIMEOUT = 5.0

logger = get_logger("chimera_api.transport.probe")


class ProxyProber:
    """Checks whether a forward proxy can reach the internet.

    Example:
        >>> prober = ProxyProber()
        >>> online = await prober.probe(ProxyConfig(host="10.0.0.1", port=3128))
    """

    def __init__(
        self,
        url: str = DEFAULT_PROBE_URL,
        timeout: float = DEFAULT_PROBE_TIMEOUT,
    ) -> None:
        """Initialize prober.

        Args:
            url: HTTPS endpoint requested through the proxy
            timeout: Total probe timeout in seconds
        """
        self._url = url
        self._timeout = timeout

    @property
    def url(self) -> str:
        """Probe target URL."""
        return self._url

    async def probe(self, proxy: ProxyConfig) -> bool:
        """Return True only if the probe target answers 200 through ``proxy``.

        Transport failures (timeouts, refused connections, TLS and proxy
        errors) are logged and reported as False. Never raises.
        """
        start = time.monotonic()
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout,
                trust_env=False,
                **proxy.client_kwargs(),
            ) as client:
                response = await client.get(self._url)
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as e:
            logger.warning(
                "Proxy online check failed",
                proxy=str(proxy),
                error=str(e) or type(e).__name__,
            )
            return False

        latency_ms = (time.monotonic() - start) * 1000
        if response.status_code != 200:
            logger.warning(
                "Proxy online check returned unexpected status",
                proxy=str(proxy),
                status_code=response.status_code,
            )
            return False

        logger.debug("Proxy is online", proxy=str(proxy), latency_ms=round(latency_ms, 1))
        return True


async def probe_proxy(
    proxy: ProxyConfig,
    *,
    url: str = DEFAULT_PROBE_URL,
    timeout: float = DEFAULT_PROBE_TIMEOUT,
) -> bool:
    """Convenience wrapper around :meth:`ProxyProber.probe`."""
    return await ProxyProber(url, timeout).probe(proxy)
