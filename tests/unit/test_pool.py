"""Tests for the transport cache."""

import asyncio

import httpx
import pytest

from chimera_api.transport import (
    BuildOutcome,
    CacheConfig,
    CacheStats,
    ProxyConfig,
    ProxyProber,
    Route,
    TransportBuilder,
    TransportCache,
)


class RecordingBuilder(TransportBuilder):
    """Builder that remembers every outcome it produced."""

    def __init__(self, config: CacheConfig | None = None) -> None:
        super().__init__(config)
        self.outcomes: list[BuildOutcome] = []

    def build(self, proxy=None) -> BuildOutcome:
        outcome = super().build(proxy)
        self.outcomes.append(outcome)
        return outcome


class GatedProber(ProxyProber):
    """Prober that answers only once released."""

    def __init__(self, result: bool) -> None:
        super().__init__()
        self.result = result
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def probe(self, proxy: ProxyConfig) -> bool:
        self.started.set()
        await self.release.wait()
        return self.result


class TestCacheConfig:
    """Tests for CacheConfig."""

    def test_default_config(self) -> None:
        """Entries live for four idle hours and probes time out after 5s."""
        config = CacheConfig.default()
        assert config.ttl == 4 * 60 * 60
        assert config.probe_timeout == 5.0
        assert config.probe_url == "https://www.google.com/"

    def test_to_httpx_limits(self) -> None:
        config = CacheConfig(max_connections=50, max_keepalive_connections=10)
        limits = config.to_httpx_limits()

        assert limits.max_connections == 50
        assert limits.max_keepalive_connections == 10

    def test_to_httpx_timeout(self) -> None:
        config = CacheConfig(
            connect_timeout=5.0,
            read_timeout=30.0,
            write_timeout=10.0,
            pool_timeout=15.0,
        )
        timeout = config.to_httpx_timeout()

        assert timeout.connect == 5.0
        assert timeout.read == 30.0
        assert timeout.write == 10.0
        assert timeout.pool == 15.0


class TestCacheStats:
    def test_to_dict(self) -> None:
        stats = CacheStats(builds=2, hits=5, probes=1)
        d = stats.to_dict()
        assert d["builds"] == 2
        assert d["hits"] == 5
        assert d["probes"] == 1
        assert d["fallbacks"] == 0


class TestTransportBuilder:
    """Tests for TransportBuilder."""

    @pytest.mark.asyncio
    async def test_no_proxy_builds_direct(self) -> None:
        outcome = TransportBuilder().build(None)
        try:
            assert outcome.route is Route.DIRECT
            assert outcome.proxy is None
            assert outcome.diagnostic is None
        finally:
            await outcome.client.aclose()

    @pytest.mark.asyncio
    async def test_valid_proxy_builds_proxied(self, proxy_config: ProxyConfig) -> None:
        outcome = TransportBuilder().build(proxy_config)
        try:
            assert outcome.route is Route.PROXIED
            assert outcome.proxy == proxy_config
        finally:
            await outcome.client.aclose()

    @pytest.mark.asyncio
    async def test_mapping_proxy_is_coerced(self) -> None:
        """Test that plain mappings become ProxyConfig."""
        outcome = TransportBuilder().build(
            {"host": "10.0.0.1", "port": 3128, "protocol": "https"}
        )
        try:
            assert outcome.route is Route.PROXIED
            assert isinstance(outcome.proxy, ProxyConfig)
            assert outcome.proxy.protocol == "https"
        finally:
            await outcome.client.aclose()

    @pytest.mark.asyncio
    async def test_invalid_proxy_degrades_to_direct(self) -> None:
        """Invalid configuration is not an error: it yields a direct client."""
        outcome = TransportBuilder().build({"host": "h", "protocol": "ftp"})
        try:
            assert outcome.route is Route.DIRECT
            assert outcome.proxy is None
            assert outcome.diagnostic == "invalid proxy config: port, protocol"
        finally:
            await outcome.client.aclose()

    @pytest.mark.asyncio
    async def test_unbuildable_proxy_degrades_to_direct(self) -> None:
        """A config that passes validation but cannot be built falls back."""
        outcome = TransportBuilder().build(
            {"host": "h", "port": 3128, "verify_ssl": "not-a-bool"}
        )
        try:
            assert outcome.route is Route.DIRECT
            assert outcome.diagnostic is not None
        finally:
            await outcome.client.aclose()


class TestTransportCache:
    """Tests for TransportCache."""

    @pytest.mark.asyncio
    async def test_direct_acquire(
        self, httpx_mock, destination: str, auth_headers: dict[str, str]
    ) -> None:
        """Test that no proxy means no probe and a direct route."""
        async with TransportCache() as cache:
            handle = await cache.acquire(destination, auth_headers)

            assert handle.route is Route.DIRECT
            assert handle.base_url == destination
            assert handle.headers == auth_headers
            entry = cache.get(destination)
            assert entry is not None
            assert entry.is_online is None
            assert entry.expiry is not None
            assert cache.stats.probes == 0

        assert httpx_mock.get_requests() == []

    @pytest.mark.asyncio
    async def test_same_client_reused(
        self,
        httpx_mock,
        destination: str,
        auth_headers: dict[str, str],
        probe_url: str,
        proxy_config: ProxyConfig,
    ) -> None:
        """Sequential acquires share one client and probe only once."""
        httpx_mock.add_response(url=probe_url, status_code=200)

        async with TransportCache() as cache:
            first = await cache.acquire(destination, auth_headers, proxy_config)
            second = await cache.acquire(destination, auth_headers, proxy_config)

            assert first.client is second.client
            assert first.route is Route.PROXIED
            assert first.proxy == proxy_config
            assert cache.get(destination).is_online is True
            assert cache.stats.builds == 1
            assert cache.stats.hits == 1
            assert cache.stats.probes == 1

    @pytest.mark.asyncio
    async def test_handles_bind_their_own_headers(
        self, destination: str, auth_headers: dict[str, str]
    ) -> None:
        """Test that a later acquire does not change an earlier handle."""
        async with TransportCache() as cache:
            first = await cache.acquire(destination, auth_headers)
            second = await cache.acquire(destination, {"Authorization": "Bearer other"})

            assert first.client is second.client
            assert first.headers == auth_headers
            assert second.headers == {"Authorization": "Bearer other"}

    @pytest.mark.asyncio
    async def test_different_destinations_different_clients(self) -> None:
        async with TransportCache() as cache:
            a = await cache.acquire("https://a.example/v1")
            b = await cache.acquire("https://b.example/v1")

            assert a.client is not b.client
            assert len(cache) == 2
            assert sorted(cache.destinations()) == [
                "https://a.example/v1",
                "https://b.example/v1",
            ]

    @pytest.mark.asyncio
    async def test_dead_proxy_falls_back_to_direct(
        self,
        httpx_mock,
        destination: str,
        auth_headers: dict[str, str],
        probe_url: str,
        proxy_config: ProxyConfig,
    ) -> None:
        """A failed probe replaces the proxied client with a direct one."""
        httpx_mock.add_exception(httpx.ConnectError("Connection refused"), url=probe_url)
        builder = RecordingBuilder()

        async with TransportCache(builder=builder) as cache:
            handle = await cache.acquire(destination, auth_headers, proxy_config)

            rejected = builder.outcomes[0]
            assert rejected.route is Route.PROXIED
            assert handle.client is not rejected.client
            assert handle.route is Route.DIRECT
            assert handle.proxy is None
            assert "unreachable" in handle.diagnostic

            entry = cache.get(destination)
            assert entry.route is Route.DIRECT
            assert entry.is_online is None
            assert cache.stats.fallbacks == 1
            assert len(cache) == 1

    @pytest.mark.asyncio
    async def test_fallback_entry_is_not_probed_again(
        self,
        httpx_mock,
        destination: str,
        auth_headers: dict[str, str],
        probe_url: str,
        proxy_config: ProxyConfig,
    ) -> None:
        """Test that a dead proxy is not retried while the entry lives."""
        httpx_mock.add_response(url=probe_url, status_code=502)

        async with TransportCache() as cache:
            first = await cache.acquire(destination, auth_headers, proxy_config)
            second = await cache.acquire(destination, auth_headers, proxy_config)

            assert second.client is first.client
            assert second.route is Route.DIRECT
            assert cache.stats.probes == 1
            assert cache.stats.fallbacks == 1

        assert len(httpx_mock.get_requests()) == 1

    @pytest.mark.asyncio
    async def test_fallback_handle_sends_direct(
        self,
        httpx_mock,
        destination: str,
        auth_headers: dict[str, str],
        probe_url: str,
        proxy_config: ProxyConfig,
    ) -> None:
        """Calls after a fallback go out on the direct client."""
        httpx_mock.add_exception(httpx.ConnectTimeout("timed out"), url=probe_url)
        httpx_mock.add_response(
            url=f"{destination}/moderations", method="POST", json={"ok": True}
        )

        async with TransportCache() as cache:
            handle = await cache.acquire(destination, auth_headers, proxy_config)
            response = await handle.post("moderations", json={"input": "hi"})

            assert response.json() == {"ok": True}
            assert handle.route is Route.DIRECT

    @pytest.mark.asyncio
    async def test_invalid_proxy_is_not_probed(
        self, httpx_mock, destination: str
    ) -> None:
        async with TransportCache() as cache:
            handle = await cache.acquire(destination, None, {"host": "h"})

            assert handle.route is Route.DIRECT
            assert handle.diagnostic == "invalid proxy config: port"
            assert cache.stats.probes == 0

        assert httpx_mock.get_requests() == []

    @pytest.mark.asyncio
    async def test_concurrent_acquires_build_once(
        self,
        httpx_mock,
        destination: str,
        probe_url: str,
        proxy_config: ProxyConfig,
    ) -> None:
        """Test that concurrent acquires for one destination single-flight."""
        httpx_mock.add_response(url=probe_url, status_code=200)

        async with TransportCache() as cache:
            handles = await asyncio.gather(
                *(cache.acquire(destination, None, proxy_config) for _ in range(5))
            )

            assert len({id(h.client) for h in handles}) == 1
            assert cache.stats.builds == 1
            assert cache.stats.probes == 1
            assert len(cache) == 1

    @pytest.mark.asyncio
    async def test_entry_expires_after_ttl(
        self, destination: str, short_ttl_config: CacheConfig
    ) -> None:
        async with TransportCache(short_ttl_config) as cache:
            await cache.acquire(destination)
            assert destination in cache

            await asyncio.sleep(0.15)

            assert destination not in cache
            assert cache.stats.expirations == 1

    @pytest.mark.asyncio
    async def test_expired_entry_is_rebuilt_and_reprobed(
        self,
        httpx_mock,
        destination: str,
        probe_url: str,
        proxy_config: ProxyConfig,
        short_ttl_config: CacheConfig,
    ) -> None:
        """After expiry the next acquire starts from scratch."""
        httpx_mock.add_response(url=probe_url, status_code=200)
        httpx_mock.add_response(url=probe_url, status_code=200)

        async with TransportCache(short_ttl_config) as cache:
            first = await cache.acquire(destination, None, proxy_config)
            await asyncio.sleep(0.15)
            second = await cache.acquire(destination, None, proxy_config)

            assert second.client is not first.client
            assert first.client.is_closed
            assert cache.stats.builds == 2
            assert cache.stats.probes == 2

    @pytest.mark.asyncio
    async def test_acquire_rearms_expiry(self, destination: str) -> None:
        """Test that each acquire pushes the expiry back."""
        async with TransportCache(CacheConfig(ttl=0.3)) as cache:
            await cache.acquire(destination)
            await asyncio.sleep(0.2)
            await cache.acquire(destination)
            await asyncio.sleep(0.2)

            assert destination in cache
            assert cache.stats.expirations == 0

    @pytest.mark.asyncio
    async def test_invalidate(self, destination: str) -> None:
        async with TransportCache() as cache:
            handle = await cache.acquire(destination)
            await cache.invalidate(destination)

            assert destination not in cache
            assert handle.client.is_closed

    @pytest.mark.asyncio
    async def test_close(self, destination: str) -> None:
        """Test that closing releases clients and refuses new work."""
        cache = TransportCache()
        handle = await cache.acquire(destination)
        await cache.close()

        assert cache.is_closed
        assert handle.client.is_closed
        assert len(cache) == 0
        with pytest.raises(RuntimeError, match="closed"):
            await cache.acquire(destination)

    @pytest.mark.asyncio
    async def test_close_during_probe(self, destination: str, proxy_config: ProxyConfig) -> None:
        """Test that a probe finishing after close() leaves nothing behind."""
        prober = GatedProber(result=False)
        builder = RecordingBuilder()
        cache = TransportCache(builder=builder, prober=prober)

        pending = asyncio.create_task(cache.acquire(destination, None, proxy_config))
        await prober.started.wait()
        await cache.close()
        prober.release.set()

        with pytest.raises(RuntimeError, match="closed"):
            await pending

        assert len(cache) == 0
        assert cache.stats.fallbacks == 0
        assert len(builder.outcomes) == 1
        assert builder.outcomes[0].client.is_closed

    @pytest.mark.asyncio
    async def test_waiter_after_close_is_refused(
        self, destination: str, proxy_config: ProxyConfig
    ) -> None:
        """Test that an acquire queued behind a probe does not rebuild."""
        prober = GatedProber(result=True)
        builder = RecordingBuilder()
        cache = TransportCache(builder=builder, prober=prober)

        first = asyncio.create_task(cache.acquire(destination, None, proxy_config))
        await prober.started.wait()
        second = asyncio.create_task(cache.acquire(destination, None, proxy_config))
        await asyncio.sleep(0)
        await cache.close()
        prober.release.set()

        results = await asyncio.gather(first, second, return_exceptions=True)

        assert all(isinstance(r, RuntimeError) for r in results)
        assert len(builder.outcomes) == 1
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_locks_released_when_idle(
        self,
        httpx_mock,
        destination: str,
        probe_url: str,
        proxy_config: ProxyConfig,
    ) -> None:
        """Test that per-destination locks do not accumulate."""
        httpx_mock.add_response(url=probe_url, status_code=200)

        async with TransportCache() as cache:
            await asyncio.gather(
                *(cache.acquire(destination, None, proxy_config) for _ in range(5))
            )
            await cache.acquire("https://other.example/v1")
            await cache.invalidate(destination)

            assert cache._locks == {}
            assert cache._lock_users == {}

    def test_reused_across_event_loops(
        self, httpx_mock, destination: str, auth_headers: dict[str, str]
    ) -> None:
        """Test that a new event loop gets fresh clients instead of dead ones."""
        httpx_mock.add_response(url=f"{destination}/ping", json={"ok": True})
        httpx_mock.add_response(url=f"{destination}/ping", json={"ok": True})
        cache = TransportCache()

        async def ping() -> httpx.AsyncClient:
            handle = await cache.acquire(destination, auth_headers)
            response = await handle.post("ping", json={})
            assert response.json() == {"ok": True}
            return handle.client

        first = asyncio.run(ping())
        second = asyncio.run(ping())

        assert first is not second
        assert cache.stats.builds == 2
        assert cache.stats.hits == 0

        asyncio.run(cache.close())
        assert len(cache) == 0
