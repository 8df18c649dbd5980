"""
Client module - endpoint wrappers for the Chimera gateway.
"""

from chimera_api.client.builder import ChimeraClientBuilder
from chimera_api.client.core import DEFAULT_BASE_URL, ChimeraClient

__all__ = [
    "DEFAULT_BASE_URL",
    "ChimeraClient",
    "ChimeraClientBuilder",
]
