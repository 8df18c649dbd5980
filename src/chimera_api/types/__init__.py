"""
Request and response types for the Chimera gateway.
"""

from chimera_api.types.requests import (
    ChatCompletionRequest,
    FunctionDefinition,
    ImageRequest,
    Message,
    ModerationRequest,
    TextToSpeechRequest,
)
from chimera_api.types.responses import (
    AudioData,
    ChatCompletionResponse,
    Choice,
    ImageData,
    ModerationResponse,
    ModerationResult,
    TextToSpeechResponse,
    Usage,
)

__all__ = [
    "AudioData",
    "ChatCompletionRequest",
    "ChatCompletionResponse",
    "Choice",
    "FunctionDefinition",
    "ImageData",
    "ImageRequest",
    "Message",
    "ModerationRequest",
    "ModerationResponse",
    "ModerationResult",
    "TextToSpeechRequest",
    "TextToSpeechResponse",
    "Usage",
]
