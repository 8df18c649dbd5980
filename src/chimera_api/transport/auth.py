"""
API key handling.

The gateway authenticates every call with a bearer token. Keys are passed in
explicitly; nothing is read from the environment.
"""

from __future__ import annotations

from chimera_api.errors import ConfigurationError


def require_api_key(api_key: str | None) -> str:
    """Return ``api_key`` or raise if it is absent or empty.

    Raises:
        ConfigurationError: If no usable key was supplied
    """
    if not api_key or not api_key.strip():
        raise ConfigurationError(
            "No Chimera API key was provided.", setting="api_key"
        ).with_hint("Pass api_key to ChimeraClient")
    return api_key


def get_auth_header(api_key: str) -> dict[str, str]:
    """Get the bearer authentication header for ``api_key``."""
    return {"Authorization": f"Bearer {api_key}"}
