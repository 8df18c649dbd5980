"""
Request models for the Chimera gateway endpoints.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

Role = Literal["user", "assistant", "system", "function"]
ImageSize = Literal["1024x1024", "512x512", "256x256"]
ImageResponseFormat = Literal["url", "b64_json"]


class _Request(BaseModel):
    model_config = ConfigDict(extra="allow")

    def to_payload(self) -> dict[str, Any]:
        """JSON body for the request, without unset fields."""
        return self.model_dump(exclude_none=True)


class Message(BaseModel):
    """A chat message."""

    model_config = ConfigDict(extra="allow")

    role: Role
    content: str | None = None
    name: str | None = None
    function_call: str | dict[str, Any] | None = None

    @classmethod
    def system(cls, content: str) -> Message:
        return cls(role="system", content=content)

    @classmethod
    def user(cls, content: str) -> Message:
        return cls(role="user", content=content)

    @classmethod
    def assistant(cls, content: str) -> Message:
        return cls(role="assistant", content=content)


class FunctionDefinition(BaseModel):
    """A function the model may call."""

    name: str
    description: str
    parameters: dict[str, Any] = Field(default_factory=dict)


class ChatCompletionRequest(_Request):
    """Body of ``POST chat/completions``.

    When ``stream`` is true the gateway answers with a stream, which the
    client collects into a single string.
    """

    model: str = Field(description="Model identifier, e.g. 'gpt-4'")
    messages: list[Message]
    functions: list[FunctionDefinition] | None = None
    function_call: str | None = None
    temperature: float | None = None
    top_p: float | None = None
    n: int | None = None
    stream: bool | None = None
    stop: list[str] | str | None = None
    max_tokens: int | None = None
    presence_penalty: float | None = None
    frequency_penalty: float | None = None
    logit_bias: dict[str, float] | None = None
    user: str | None = None


class ImageRequest(_Request):
    """Body of ``POST images/generations``."""

    prompt: str
    n: int | None = None
    size: ImageSize | None = None
    response_format: ImageResponseFormat | None = None
    user: str | None = None


class TextToSpeechRequest(_Request):
    """Body of ``POST audio/tts/generation``."""

    text: str


class ModerationRequest(_Request):
    """Body of ``POST moderations``."""

    input: str | list[str]
