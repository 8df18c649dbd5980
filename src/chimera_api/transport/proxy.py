"""
Forward-proxy configuration and validation.

A proxy is described by host, port, protocol and optional credentials.
``protocol="http"`` means HTTPS traffic is tunnelled (CONNECT) through a plain
HTTP proxy; ``protocol="https"`` means the proxy itself is reached over TLS.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Literal
from urllib.parse import quote

import httpx
from pydantic import BaseModel, ConfigDict, Field

ProxyProtocol = Literal["http", "https"]

_PROTOCOLS = ("http", "https")
_REQUIRED_FIELDS = ("host", "port")


class ProxyAuth(BaseModel):
    """Proxy credentials."""

    model_config = ConfigDict(frozen=True)

    username: str = Field(description="Proxy user name")
    password: str = Field(repr=False, description="Proxy password")


class ProxyConfig(BaseModel):
    """Immutable forward-proxy configuration.

    Example:
        >>> proxy = ProxyConfig(host="10.0.0.1", port=3128)
        >>> proxy.url()
        'http://10.0.0.1:3128'
    """

    model_config = ConfigDict(frozen=True)

    host: str = Field(min_length=1, description="Proxy host name or address")
    port: int = Field(ge=0, le=65535, description="Proxy port")
    protocol: ProxyProtocol = Field(default="http", description="http (tunnel) or https")
    auth: ProxyAuth | None = Field(default=None, description="Optional credentials")
    verify_ssl: bool = Field(
        default=True,
        description="Verify upstream certificates on the https proxy path",
    )

    @classmethod
    def coerce(cls, value: ProxyConfig | Mapping[str, Any]) -> ProxyConfig:
        """Build a ProxyConfig from a mapping, treating ``None`` values as absent."""
        if isinstance(value, ProxyConfig):
            return value
        return cls.model_validate({k: v for k, v in value.items() if v is not None})

    def url(self, *, with_credentials: bool = True) -> str:
        """Proxy URL, optionally with URL-quoted ``user:password@`` userinfo."""
        userinfo = ""
        if with_credentials and self.auth is not None:
            userinfo = (
                f"{quote(self.auth.username, safe='')}:"
                f"{quote(self.auth.password, safe='')}@"
            )
        return f"{self.protocol}://{userinfo}{self.host}:{self.port}"

    def to_httpx_proxy(self) -> httpx.Proxy:
        """Convert to an httpx Proxy.

        The http path embeds credentials in the tunnel URL; the https path
        passes them structurally.
        """
        if self.protocol == "http":
            return httpx.Proxy(self.url())
        auth = (self.auth.username, self.auth.password) if self.auth else None
        return httpx.Proxy(self.url(with_credentials=False), auth=auth)

    def client_kwargs(self) -> dict[str, Any]:
        """Keyword arguments routing an ``httpx.AsyncClient`` through this proxy."""
        kwargs: dict[str, Any] = {"proxy": self.to_httpx_proxy()}
        if self.protocol == "https" and not self.verify_ssl:
            kwargs["verify"] = False
        return kwargs

    def __str__(self) -> str:
        return self.url(with_credentials=False)


@dataclass(frozen=True)
class ProxyValidation:
    """Result of :func:`validate_proxy_config`.

    Attributes:
        is_valid: Whether the configuration can be used
        invalid_fields: Missing fields first, then malformed ones, without duplicates
    """

    is_valid: bool
    invalid_fields: tuple[str, ...] = ()


def _is_valid_auth(value: Any) -> bool:
    if isinstance(value, ProxyAuth):
        return True
    if not isinstance(value, Mapping):
        return False
    return isinstance(value.get("username"), str) and isinstance(
        value.get("password"), str
    )


def _is_valid_port(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and 0 <= value <= 65535


_VALIDATORS = {
    "host": lambda value: isinstance(value, str),
    "port": _is_valid_port,
    "auth": _is_valid_auth,
    "protocol": lambda value: value in _PROTOCOLS,
}


def _is_missing(value: Any) -> bool:
    # Emptiness only counts for strings; port=0 is present.
    return value is None or (isinstance(value, str) and value == "")


def validate_proxy_config(data: ProxyConfig | Mapping[str, Any]) -> ProxyValidation:
    """Validate a possibly partial proxy configuration.

    ``host`` and ``port`` are required; ``auth`` and ``protocol`` may be absent.

    Args:
        data: A mapping of proxy fields, or an already built ProxyConfig

    Returns:
        ProxyValidation naming every missing or malformed field

    Example:
        >>> validate_proxy_config({"host": "h"}).invalid_fields
        ('port',)
    """
    if isinstance(data, ProxyConfig):
        data = {
            "host": data.host,
            "port": data.port,
            "auth": data.auth,
            "protocol": data.protocol,
        }

    missing: list[str] = []
    invalid: list[str] = []

    for key, validator in _VALIDATORS.items():
        value = data.get(key)
        if key in _REQUIRED_FIELDS:
            if _is_missing(value):
                missing.append(key)
                continue
        elif value is None:
            continue
        if not validator(value):
            invalid.append(key)

    fields = tuple(dict.fromkeys([*missing, *invalid]))
    return ProxyValidation(is_valid=not fields, invalid_fields=fields)
