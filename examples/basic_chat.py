#!/usr/bin/env python3
"""
Basic gateway example.

This example demonstrates the simplest way to use chimera-api-python
for chat completions, images, and moderation.

Usage:
    export CHIMERA_API_KEY="your-api-key"
    python examples/basic_chat.py
"""

import asyncio
import os

from chimera_api import ChimeraClient, Message, close_transport_cache
from chimera_api.types import ChatCompletionRequest


async def main() -> None:
    """Run basic chat example."""
    client = ChimeraClient(os.environ["CHIMERA_API_KEY"])

    try:
        # Method 1: Typed request
        response = await client.chat_completion(
            ChatCompletionRequest(
                model="gpt-3.5-turbo",
                messages=[
                    Message.system("You are a helpful assistant."),
                    Message.user("What is the capital of France?"),
                ],
                temperature=0.7,
            )
        )
        print(f"Response: {response.content}")
        if response.usage:
            print(f"Tokens: {response.usage.total_tokens}")
        print()

        # Method 2: Plain mapping, streamed and returned as one string
        body = await client.chat_completion(
            {
                "model": "gpt-3.5-turbo",
                "messages": [{"role": "user", "content": "Count from 1 to 5."}],
                "stream": True,
            }
        )
        print(f"Streamed body:\n{body}")

        images = await client.image_generation(
            {"prompt": "a lighthouse at dusk", "n": 1, "size": "512x512"}
        )
        for image in images:
            print(f"Image: {image.url}")

        result = await client.moderation("I love sunny days")
        print(f"Flagged: {result.flagged}")

    finally:
        await close_transport_cache()


if __name__ == "__main__":
    asyncio.run(main())
