#!/usr/bin/env python3
"""
Forward-proxy example.

Routes gateway calls through an HTTP proxy. If the proxy does not answer
the liveness probe, calls continue over a direct connection and the
handle reports why.

Usage:
    export CHIMERA_API_KEY="your-api-key"
    python examples/proxy.py 10.0.0.1 3128
"""

import asyncio
import os
import sys

from chimera_api import CacheConfig, ChimeraClient, TransportCache
from chimera_api.telemetry import ChimeraLogger, LogLevel


async def main(host: str, port: int) -> None:
    """Run proxy example."""
    ChimeraLogger.configure(level=LogLevel.INFO, format="text")

    # Shorter probe timeout than the default
    config = CacheConfig(probe_timeout=2.0)

    async with TransportCache(config) as cache:
        client = (
            ChimeraClient.builder()
            .api_key(os.environ["CHIMERA_API_KEY"])
            .proxy(host, port)
            .cache(cache)
            .build()
        )

        handle = await client.transport()
        print(f"Route: {handle.route.value}")
        if handle.diagnostic:
            print(f"Diagnostic: {handle.diagnostic}")

        response = await client.chat_completion(
            {
                "model": "gpt-3.5-turbo",
                "messages": [{"role": "user", "content": "Say hello."}],
            }
        )
        print(f"Response: {response.content}")
        print(f"Cache stats: {cache.stats.to_dict()}")


if __name__ == "__main__":
    if len(sys.argv) != 3:
        sys.exit("usage: proxy.py HOST PORT")
    asyncio.run(main(sys.argv[1], int(sys.argv[2])))
