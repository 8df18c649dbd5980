"""
Core client implementation.

Each endpoint method acquires a cached transport for the gateway base URL and
issues exactly one POST. Failures surface as a single TransportError; there
are no retries.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from chimera_api.errors import TransportError
from chimera_api.telemetry import ChimeraLogger, LogLevel
from chimera_api.transport import (
    ProxyConfig,
    TransportHandle,
    get_auth_header,
    get_transport_cache,
    require_api_key,
)
from chimera_api.types import (
    ChatCompletionRequest,
    ChatCompletionResponse,
    ImageData,
    ImageRequest,
    ModerationRequest,
    ModerationResponse,
    TextToSpeechRequest,
    TextToSpeechResponse,
)

if TYPE_CHECKING:
    import httpx

    from chimera_api.client.builder import ChimeraClientBuilder
    from chimera_api.transport import TransportCache

DEFAULT_BASE_URL = "https://chimeragpt.adventblocks.cc/v1"

CHAT_COMPLETIONS_PATH = "chat/completions"
IMAGE_GENERATIONS_PATH = "images/generations"
TEXT_TO_SPEECH_PATH = "audio/tts/generation"
MODERATIONS_PATH = "moderations"


def _json(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError as e:
        raise TransportError(
            f"Invalid JSON in response: {e}",
            url=str(response.request.url),
            status_code=response.status_code,
            body=response.text,
            cause=e,
        ) from e


class ChimeraClient:
    """Client for the Chimera inference gateway.

    Example:
        >>> client = ChimeraClient("sk-...")
        >>> response = await client.chat_completion(
        ...     {"model": "gpt-4", "messages": [{"role": "user", "content": "Hi"}]}
        ... )
        >>> print(response.content)
    """

    def __init__(
        self,
        api_key: str,
        proxy: ProxyConfig | Mapping[str, Any] | None = None,
        debug_logging: bool = False,
        *,
        base_url: str = DEFAULT_BASE_URL,
        cache: TransportCache | None = None,
    ) -> None:
        """Initialize client.

        No network activity happens here.

        Args:
            api_key: Gateway API key
            proxy: Optional forward proxy, as a ProxyConfig or a mapping
            debug_logging: Lower library log level to DEBUG
            base_url: Gateway base URL
            cache: Transport cache (defaults to the process-wide one)

        Raises:
            ConfigurationError: If api_key is missing or empty
        """
        self._api_key = require_api_key(api_key)
        self._proxy = proxy or None
        self._debug_logging = debug_logging
        self._base_url = base_url
        self._cache = cache

        if debug_logging:
            ChimeraLogger.set_level(LogLevel.DEBUG)

    @classmethod
    def builder(cls) -> ChimeraClientBuilder:
        """Get a builder for creating clients."""
        from chimera_api.client.builder import ChimeraClientBuilder

        return ChimeraClientBuilder()

    @property
    def api_key(self) -> str:
        return self._api_key

    @property
    def proxy(self) -> ProxyConfig | Mapping[str, Any] | None:
        return self._proxy

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def debug_logging(self) -> bool:
        return self._debug_logging

    @property
    def cache(self) -> TransportCache:
        """Transport cache used by this client."""
        if self._cache is not None:
            return self._cache
        return get_transport_cache()

    async def transport(self) -> TransportHandle:
        """Acquire a transport bound to the base URL and auth header."""
        return await self.cache.acquire(
            self._base_url,
            get_auth_header(self._api_key),
            self._proxy,
        )

    async def chat_completion(
        self, request: ChatCompletionRequest | Mapping[str, Any]
    ) -> ChatCompletionResponse | str:
        """Create a chat completion.

        Args:
            request: Chat completion request

        Returns:
            ChatCompletionResponse, or the raw streamed body as one string
            when ``request.stream`` is true

        Raises:
            TransportError: If the call fails
        """
        req = ChatCompletionRequest.model_validate(request)
        handle = await self.transport()

        if req.stream:
            return await handle.stream_text(
                "POST", CHAT_COMPLETIONS_PATH, json=req.to_payload()
            )

        response = await handle.post(CHAT_COMPLETIONS_PATH, json=req.to_payload())
        return ChatCompletionResponse.model_validate(_json(response))

    async def image_generation(
        self, request: ImageRequest | Mapping[str, Any]
    ) -> list[ImageData]:
        """Generate images and return the ``data`` entries of the response."""
        req = ImageRequest.model_validate(request)
        handle = await self.transport()
        response = await handle.post(IMAGE_GENERATIONS_PATH, json=req.to_payload())
        body = _json(response)
        return [ImageData.model_validate(item) for item in body.get("data") or []]

    async def text_to_speech(
        self, request: TextToSpeechRequest | Mapping[str, Any]
    ) -> TextToSpeechResponse:
        """Generate speech for ``request.text``."""
        req = TextToSpeechRequest.model_validate(request)
        handle = await self.transport()
        response = await handle.post(TEXT_TO_SPEECH_PATH, json=req.to_payload())
        return TextToSpeechResponse.model_validate(_json(response))

    async def moderation(self, input: str | list[str]) -> ModerationResponse:
        """Classify ``input`` against the moderation categories."""
        req = ModerationRequest(input=input)
        handle = await self.transport()
        response = await handle.post(MODERATIONS_PATH, json=req.to_payload())
        return ModerationResponse.model_validate(_json(response))

    def __repr__(self) -> str:
        return f"ChimeraClient(base_url={self._base_url!r}, proxy={self._proxy is not None})"
