"""
Response models for the Chimera gateway endpoints.

All models keep unknown fields so nothing the gateway returns is lost.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class _Response(BaseModel):
    model_config = ConfigDict(extra="allow")


class Usage(_Response):
    """Token usage for a completion."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class Choice(_Response):
    """One completion candidate."""

    index: int = 0
    message: dict[str, Any] | None = None
    finish_reason: str | None = None

    @property
    def content(self) -> str | None:
        """Message text, if any."""
        if self.message is None:
            return None
        return self.message.get("content")


class ChatCompletionResponse(_Response):
    """Response of ``POST chat/completions``."""

    id: str | None = None
    object: str | None = None
    created: int | None = None
    model: str | None = None
    choices: list[Choice] = Field(default_factory=list)
    usage: Usage | None = None

    @property
    def content(self) -> str | None:
        """Text of the first choice."""
        if not self.choices:
            return None
        return self.choices[0].content


class ImageData(_Response):
    """One generated image."""

    url: str | None = None
    b64_json: str | None = None


class AudioData(_Response):
    url: str | None = None


class TextToSpeechResponse(_Response):
    """Response of ``POST audio/tts/generation``."""

    data: AudioData | None = None


class ModerationResult(_Response):
    flagged: bool = False
    categories: dict[str, bool] = Field(default_factory=dict)
    category_scores: dict[str, float] = Field(default_factory=dict)


class ModerationResponse(_Response):
    """Response of ``POST moderations``."""

    id: str | None = None
    model: str | None = None
    results: list[ModerationResult] = Field(default_factory=list)

    @property
    def flagged(self) -> bool:
        """Whether any input was flagged."""
        return any(result.flagged for result in self.results)
