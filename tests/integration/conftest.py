"""
Integration test fixtures.

Gateway payloads and a client wired to an isolated transport cache.
"""

from __future__ import annotations

import pytest

BASE_URL = "https://chimeragpt.adventblocks.cc/v1"


def chat_completion_payload(content: str = "Hello from Chimera!", model: str = "gpt-4") -> dict:
    """Create a gateway chat completion body."""
    return {
        "id": "chatcmpl-123",
        "object": "chat.completion",
        "created": 1699012345,
        "model": model,
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": content},
                "finish_reason": "stop",
            }
        ],
        "usage": {"prompt_tokens": 5, "completion_tokens": 4, "total_tokens": 9},
    }


@pytest.fixture
def base_url() -> str:
    return BASE_URL


@pytest.fixture
def chat_payload() -> dict:
    return chat_completion_payload()
