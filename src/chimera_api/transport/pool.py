"""
Transport cache for HTTP clients.

Keeps one ``httpx.AsyncClient`` per destination, decides once per entry
whether a configured forward proxy is usable, falls back to a direct
connection when it is not, and drops entries that sit idle past a TTL.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any

import httpx
import pydantic

from chimera_api._features import HAS_HTTP2
from chimera_api.telemetry import get_logger
from chimera_api.transport.http import Route, TransportHandle
from chimera_api.transport.probe import (
    DEFAULT_PROBE_TIMEOUT,
    DEFAULT_PROBE_URL,
    ProxyProber,
)
from chimera_api.transport.proxy import ProxyConfig, validate_proxy_config

DEFAULT_TTL = 4 * 60 * 60  # 4 hours

logger = get_logger("chimera_api.transport.pool")


@dataclass
class CacheConfig:
    """Configuration for the transport cache.

    Attributes:
        ttl: Seconds an entry may stay idle before it is dropped
        probe_url: Endpoint requested through a proxy to check it is alive
        probe_timeout: Probe timeout in seconds
        max_connections: Maximum total connections per client
        max_keepalive_connections: Maximum idle connections to keep per client
        connect_timeout: Connection timeout in seconds
        read_timeout: Read timeout in seconds
        write_timeout: Write timeout in seconds
        pool_timeout: Timeout waiting for available connection
    """

    ttl: float = DEFAULT_TTL
    probe_url: str = DEFAULT_PROBE_URL
    probe_timeout: float = DEFAULT_PROBE_TIMEOUT
    max_connections: int = 100
    max_keepalive_connections: int = 20
    connect_timeout: float = 10.0
    read_timeout: float = 120.0
    write_timeout: float = 60.0
    pool_timeout: float = 30.0

    @classmethod
    def default(cls) -> CacheConfig:
        """Create default configuration."""
        return cls()

    def to_httpx_limits(self) -> httpx.Limits:
        """Convert to httpx Limits."""
        return httpx.Limits(
            max_connections=self.max_connections,
            max_keepalive_connections=self.max_keepalive_connections,
        )

    def to_httpx_timeout(self) -> httpx.Timeout:
        """Convert to httpx Timeout."""
        return httpx.Timeout(
            connect=self.connect_timeout,
            read=self.read_timeout,
            write=self.write_timeout,
            pool=self.pool_timeout,
        )


@dataclass
class CacheStats:
    """Counters for cache activity."""

    builds: int = 0
    hits: int = 0
    probes: int = 0
    fallbacks: int = 0
    expirations: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "builds": self.builds,
            "hits": self.hits,
            "probes": self.probes,
            "fallbacks": self.fallbacks,
            "expirations": self.expirations,
        }


@dataclass(frozen=True)
class BuildOutcome:
    """A freshly built client and the route it takes.

    ``diagnostic`` explains a direct route when a proxy was requested.
    """

    client: httpx.AsyncClient
    route: Route
    proxy: ProxyConfig | None = None
    diagnostic: str | None = None


@dataclass
class TransportEntry:
    """Cached state for one destination.

    ``is_online`` is None until a proxied entry has been probed; direct
    entries never resolve it.
    """

    client: httpx.AsyncClient
    route: Route
    proxy: ProxyConfig | None = None
    is_online: bool | None = None
    expiry: asyncio.TimerHandle | None = None
    diagnostic: str | None = None

    @classmethod
    def from_outcome(cls, outcome: BuildOutcome) -> TransportEntry:
        return cls(
            client=outcome.client,
            route=outcome.route,
            proxy=outcome.proxy,
            diagnostic=outcome.diagnostic,
        )

    def cancel_expiry(self) -> None:
        if self.expiry is not None:
            self.expiry.cancel()
            self.expiry = None


class TransportBuilder:
    """Builds direct or proxied clients.

    Invalid proxy configuration never raises: it is logged and a direct
    client is returned with a diagnostic.
    """

    def __init__(self, config: CacheConfig | None = None) -> None:
        self._config = config or CacheConfig.default()

    def direct(self, diagnostic: str | None = None) -> BuildOutcome:
        """Build a client with no proxy."""
        return BuildOutcome(
            client=self._new_client(),
            route=Route.DIRECT,
            diagnostic=diagnostic,
        )

    def build(self, proxy: ProxyConfig | Mapping[str, Any] | None = None) -> BuildOutcome:
        """Build a client for ``proxy``, or a direct one if it is absent or unusable.

        Args:
            proxy: Proxy configuration, as a ProxyConfig or a plain mapping

        Returns:
            BuildOutcome describing the client and its route
        """
        if proxy is None:
            return self.direct()

        validation = validate_proxy_config(proxy)
        if not validation.is_valid:
            fields = ", ".join(validation.invalid_fields)
            logger.warning(
                "Invalid proxy config, using direct connection",
                invalid_fields=fields,
            )
            return self.direct(f"invalid proxy config: {fields}")

        try:
            config = ProxyConfig.coerce(proxy)
            client = self._new_client(**config.client_kwargs())
        except (pydantic.ValidationError, httpx.InvalidURL, ValueError) as e:
            logger.warning(
                "Could not build proxied client, using direct connection",
                error=str(e),
            )
            return self.direct(f"proxy client construction failed: {e}")

        return BuildOutcome(client=client, route=Route.PROXIED, proxy=config)

    def _new_client(self, **kwargs: Any) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self._config.to_httpx_timeout(),
            limits=self._config.to_httpx_limits(),
            http2=HAS_HTTP2,
            trust_env=False,
            **kwargs,
        )


class TransportCache:
    """Registry of reusable transports keyed by destination.

    At most one entry exists per destination. A proxied entry is probed once;
    if the proxy is dead the entry is replaced by a direct one and the proxy
    is not tried again until the entry expires.

    Example:
        >>> cache = TransportCache()
        >>> handle = await cache.acquire(
        ...     "https://chimeragpt.adventblocks.cc/v1",
        ...     {"Authorization": "Bearer sk-..."},
        ...     ProxyConfig(host="10.0.0.1", port=3128),
        ... )
        >>> response = await handle.post("moderations", json={"input": "hi"})
        >>> await cache.close()
    """

    def __init__(
        self,
        config: CacheConfig | None = None,
        *,
        builder: TransportBuilder | None = None,
        prober: ProxyProber | None = None,
    ) -> None:
        """Initialize transport cache.

        Args:
            config: Cache configuration
            builder: Client builder (defaults to one using ``config``)
            prober: Proxy prober (defaults to one using ``config``)
        """
        self._config = config or CacheConfig.default()
        self._builder = builder or TransportBuilder(self._config)
        self._prober = prober or ProxyProber(
            self._config.probe_url, self._config.probe_timeout
        )
        self._entries: dict[str, TransportEntry] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}
        self._loop: asyncio.AbstractEventLoop | None = None
        self._closing: set[asyncio.Task[None]] = set()
        self._stats = CacheStats()
        self._closed = False

    async def acquire(
        self,
        destination: str,
        headers: Mapping[str, str] | None = None,
        proxy: ProxyConfig | Mapping[str, Any] | None = None,
    ) -> TransportHandle:
        """Get a transport for ``destination``, building it if needed.

        Every call re-arms the entry's idle expiry.

        Args:
            destination: Base URL; also the cache key
            headers: Default headers bound to the returned handle
            proxy: Proxy used only when a new entry has to be built

        Returns:
            TransportHandle bound to ``destination`` and ``headers``

        Raises:
            RuntimeError: If the cache has been closed
        """
        self._check_open()
        self._bind_loop()

        async with self._locked(destination):
            # close() may have run while waiting for the lock
            self._check_open()
            entry = self._entries.get(destination)
            if entry is None:
                entry = TransportEntry.from_outcome(self._builder.build(proxy))
                self._entries[destination] = entry
                self._stats.builds += 1
                logger.debug(
                    "Built transport",
                    destination=destination,
                    route=entry.route.value,
                )
            else:
                self._stats.hits += 1

            if (
                entry.route is Route.PROXIED
                and entry.proxy is not None
                and entry.is_online is None
            ):
                entry.is_online = await self._prober.probe(entry.proxy)
                self._stats.probes += 1
                if self._closed or self._entries.get(destination) is not entry:
                    # close() ran while the probe was in flight
                    await entry.client.aclose()
                    raise RuntimeError("Transport cache is closed")

            if entry.is_online is False:
                entry = self._fall_back(destination, entry)

            self._arm_expiry(destination, entry)

        return TransportHandle(
            entry.client,
            destination,
            headers,
            route=entry.route,
            proxy=entry.proxy,
            diagnostic=entry.diagnostic,
        )

    def _check_open(self) -> None:
        if self._closed:
            raise RuntimeError("Transport cache is closed")

    def _fall_back(self, destination: str, entry: TransportEntry) -> TransportEntry:
        logger.warning(
            "Proxy is offline, using direct connection",
            destination=destination,
            proxy=str(entry.proxy),
        )
        entry.cancel_expiry()
        self._close_later(entry.client)

        replacement = TransportEntry.from_outcome(
            self._builder.direct(f"proxy {entry.proxy} is unreachable")
        )
        self._entries[destination] = replacement
        self._stats.fallbacks += 1
        return replacement

    def _arm_expiry(self, destination: str, entry: TransportEntry) -> None:
        entry.cancel_expiry()
        loop = asyncio.get_running_loop()
        entry.expiry = loop.call_later(self._config.ttl, self._expire, destination, entry)

    def _expire(self, destination: str, entry: TransportEntry) -> None:
        # A replaced entry may still have a timer in flight.
        if self._entries.get(destination) is not entry:
            return
        del self._entries[destination]
        entry.expiry = None
        self._stats.expirations += 1
        self._close_later(entry.client)
        logger.debug("Transport expired", destination=destination)

    def _close_later(self, client: httpx.AsyncClient) -> None:
        task = asyncio.get_running_loop().create_task(client.aclose())
        self._closing.add(task)
        task.add_done_callback(self._closing.discard)

    @asynccontextmanager
    async def _locked(self, destination: str) -> AsyncIterator[None]:
        """Hold the destination's lock; it is dropped once nobody uses it."""
        lock = self._locks.get(destination)
        if lock is None:
            lock = self._locks[destination] = asyncio.Lock()
        self._lock_users[destination] = self._lock_users.get(destination, 0) + 1
        try:
            async with lock:
                yield
        finally:
            users = self._lock_users.get(destination, 1) - 1
            if users > 0:
                self._lock_users[destination] = users
            else:
                self._lock_users.pop(destination, None)
                self._locks.pop(destination, None)

    def _bind_loop(self) -> None:
        """Tie the cache to the running loop, discarding clients of a previous one.

        Clients and timers belong to the loop that created them and cannot
        be reused or closed once that loop has finished.
        """
        loop = asyncio.get_running_loop()
        if self._loop is loop:
            return
        if self._loop is not None:
            logger.debug(
                "Event loop changed, discarding transports",
                count=len(self._entries),
            )
            for entry in self._entries.values():
                entry.cancel_expiry()
            self._entries.clear()
            self._locks.clear()
            self._lock_users.clear()
            self._closing.clear()
        self._loop = loop

    def get(self, destination: str) -> TransportEntry | None:
        """Look up an entry without touching its expiry."""
        return self._entries.get(destination)

    async def invalidate(self, destination: str) -> None:
        """Drop the entry for ``destination`` and close its client."""
        self._bind_loop()
        async with self._locked(destination):
            entry = self._entries.pop(destination, None)
            if entry is not None:
                entry.cancel_expiry()
                await entry.client.aclose()

    async def close(self) -> None:
        """Cancel all expiry timers and close every client."""
        self._closed = True
        self._bind_loop()
        entries = list(self._entries.values())
        self._entries.clear()
        for entry in entries:
            entry.cancel_expiry()
            await entry.client.aclose()
        if self._closing:
            await asyncio.gather(*self._closing, return_exceptions=True)

    @property
    def stats(self) -> CacheStats:
        return self._stats

    @property
    def config(self) -> CacheConfig:
        return self._config

    @property
    def is_closed(self) -> bool:
        return self._closed

    def destinations(self) -> list[str]:
        """Destinations with a live entry."""
        return list(self._entries)

    def __contains__(self, destination: object) -> bool:
        return destination in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    async def __aenter__(self) -> TransportCache:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()


# Process-wide default cache
_global_cache: TransportCache | None = None


def get_transport_cache() -> TransportCache:
    """Get the process-wide transport cache, creating it on first use."""
    global _global_cache
    if _global_cache is None or _global_cache.is_closed:
        _global_cache = TransportCache()
    return _global_cache


def set_transport_cache(cache: TransportCache) -> None:
    """Replace the process-wide transport cache."""
    global _global_cache
    _global_cache = cache


async def close_transport_cache() -> None:
    """Close the process-wide transport cache."""
    global _global_cache
    if _global_cache is not None:
        await _global_cache.close()
        _global_cache = None
