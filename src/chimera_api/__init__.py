"""Chimera 推理网关的 Python 客户端。

chimera-api-python: async client for the Chimera multi-model inference gateway.

Chat completion, image generation, text-to-speech and moderation over one
cached HTTPS transport per destination, with optional forward-proxy routing.
"""
from __future__ import annotations

from chimera_api._version import __version__
from chimera_api.client import ChimeraClient, ChimeraClientBuilder
from chimera_api.errors import ChimeraError, ConfigurationError, TransportError
from chimera_api.transport import (
    CacheConfig,
    ProxyAuth,
    ProxyConfig,
    Route,
    TransportCache,
    TransportHandle,
    close_transport_cache,
    get_transport_cache,
    validate_proxy_config,
)
from chimera_api.types import (
    ChatCompletionRequest,
    ChatCompletionResponse,
    ImageData,
    ImageRequest,
    Message,
    ModerationResponse,
    TextToSpeechRequest,
    TextToSpeechResponse,
)

__all__ = [
    # Client
    "ChimeraClient",
    "ChimeraClientBuilder",
    # Errors
    "ChimeraError",
    "ConfigurationError",
    "TransportError",
    # Transport
    "CacheConfig",
    "ProxyAuth",
    "ProxyConfig",
    "Route",
    "TransportCache",
    "TransportHandle",
    "close_transport_cache",
    "get_transport_cache",
    "validate_proxy_config",
    # Types
    "ChatCompletionRequest",
    "ChatCompletionResponse",
    "ImageData",
    "ImageRequest",
    "Message",
    "ModerationResponse",
    "TextToSpeechRequest",
    "TextToSpeechResponse",
    # Version
    "__version__",
]
