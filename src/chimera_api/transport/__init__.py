"""
Transport layer - cached HTTP clients with forward-proxy support.

Provides httpx-based transport with:
- One reusable client per destination, expiring after 4 idle hours
- Forward-proxy validation and a one-shot liveness probe
- Fallback to a direct connection when the proxy is unusable
- Bearer authentication and error normalization
"""

from chimera_api.transport.auth import get_auth_header, require_api_key
from chimera_api.transport.http import Route, TransportHandle
from chimera_api.transport.pool import (
    BuildOutcome,
    CacheConfig,
    CacheStats,
    TransportBuilder,
    TransportCache,
    TransportEntry,
    close_transport_cache,
    get_transport_cache,
    set_transport_cache,
)
from chimera_api.transport.probe import ProxyProber, probe_proxy
from chimera_api.transport.proxy import (
    ProxyAuth,
    ProxyConfig,
    ProxyValidation,
    validate_proxy_config,
)

__all__ = [
    "BuildOutcome",
    "CacheConfig",
    "CacheStats",
    "ProxyAuth",
    "ProxyConfig",
    "ProxyProber",
    "ProxyValidation",
    "Route",
    "TransportBuilder",
    "TransportCache",
    "TransportEntry",
    "TransportHandle",
    "close_transport_cache",
    "get_auth_header",
    "get_transport_cache",
    "probe_proxy",
    "require_api_key",
    "set_transport_cache",
    "validate_proxy_config",
]
