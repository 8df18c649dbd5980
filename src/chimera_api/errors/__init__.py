"""Error hierarchy for chimera-api-python."""

from chimera_api.errors.base import (
    ChimeraError,
    ConfigurationError,
    ErrorContext,
    TransportError,
)

__all__ = [
    "ChimeraError",
    "ConfigurationError",
    "ErrorContext",
    "TransportError",
]
