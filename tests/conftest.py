"""Root pytest fixtures for chimera-api-python tests."""

from __future__ import annotations

import pytest

from chimera_api.telemetry import ChimeraLogger, LogLevel
from chimera_api.transport import CacheConfig, ProxyAuth, ProxyConfig
from chimera_api.transport.probe import DEFAULT_PROBE_URL


@pytest.fixture
def destination() -> str:
    """Base URL used as a cache key."""
    return "https://api.example/v1"


@pytest.fixture
def auth_headers() -> dict[str, str]:
    return {"Authorization": "Bearer sk-test"}


@pytest.fixture
def probe_url() -> str:
    """URL the proxy prober requests."""
    return DEFAULT_PROBE_URL


@pytest.fixture
def proxy_config() -> ProxyConfig:
    """A syntactically valid http proxy."""
    return ProxyConfig(host="10.0.0.1", port=3128)


@pytest.fixture
def authed_proxy_config() -> ProxyConfig:
    return ProxyConfig(
        host="proxy.internal",
        port=8443,
        protocol="https",
        auth=ProxyAuth(username="me", password="secret"),
    )


@pytest.fixture
def short_ttl_config() -> CacheConfig:
    """Cache configuration whose entries expire almost immediately."""
    return CacheConfig(ttl=0.05)


@pytest.fixture(autouse=True)
def _reset_log_level():
    """Undo log level changes made by clients created with debug_logging."""
    yield
    ChimeraLogger.set_level(LogLevel.INFO)
