"""
Telemetry for chimera-api-python.

Currently limited to masked, structured logging.
"""

from chimera_api.telemetry.logger import (
    ChimeraLogger,
    JsonFormatter,
    LogLevel,
    SensitiveDataMasker,
    TextFormatter,
    get_logger,
)

__all__ = [
    "ChimeraLogger",
    "JsonFormatter",
    "LogLevel",
    "SensitiveDataMasker",
    "TextFormatter",
    "get_logger",
]
