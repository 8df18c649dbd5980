"""
Structured logging for chimera-api-python.

Provides library loggers with sensitive data masking, so API keys and proxy
credentials never reach log output.
"""

from __future__ import annotations

import json
import logging
import re
import sys
import time
from enum import Enum
from typing import Any, ClassVar

_REDACTED = "***REDACTED***"


class LogLevel(str, Enum):
    """Log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"

    def to_logging_level(self) -> int:
        """Convert to standard logging level."""
        return getattr(logging, self.value)


class SensitiveDataMasker:
    """Masks sensitive data in log messages."""

    DEFAULT_PATTERNS: ClassVar[list[tuple[str, str]]] = [
        # API keys
        (r"(sk-[a-zA-Z0-9]{20,})", r"sk-***REDACTED***"),
        (r"(api[_-]?key[\"']?\s*[:=]\s*[\"']?)([^\"'\s]+)", r"\1***REDACTED***"),
        # Bearer tokens
        (r"(Bearer\s+)([^\s]+)", r"\1***REDACTED***"),
        # Authorization headers
        (r"(Authorization[\"']?\s*[:=]\s*[\"']?)([^\"'\s]+)", r"\1***REDACTED***"),
        # Proxy credentials embedded in URLs
        (r"([a-z][a-z0-9+.-]*://)([^/\s:@]+):([^/\s@]+)@", r"\1***:***@"),
    ]

    def __init__(self, patterns: list[tuple[str, str]] | None = None) -> None:
        self._patterns = [
            (re.compile(p, re.IGNORECASE), r)
            for p, r in (patterns or self.DEFAULT_PATTERNS)
        ]

    def mask(self, text: str) -> str:
        """Mask sensitive data in text."""
        result = text
        for pattern, replacement in self._patterns:
            result = pattern.sub(replacement, result)
        return result

    def mask_dict(self, data: dict[str, Any]) -> dict[str, Any]:
        """Mask sensitive data in dictionary.

        Values under keys that look like credentials are replaced outright;
        other strings are run through :meth:`mask`.
        """
        result: dict[str, Any] = {}
        for key, value in data.items():
            key_lower = key.lower()
            if any(
                sensitive in key_lower
                for sensitive in ["key", "token", "secret", "password", "auth"]
            ):
                result[key] = _REDACTED
            elif isinstance(value, str):
                result[key] = self.mask(value)
            elif isinstance(value, dict):
                result[key] = self.mask_dict(value)
            elif isinstance(value, list):
                result[key] = [
                    self.mask_dict(v) if isinstance(v, dict) else v for v in value
                ]
            else:
                result[key] = value
        return result


class JsonFormatter(logging.Formatter):
    """JSON log formatter."""

    def __init__(
        self,
        masker: SensitiveDataMasker | None = None,
        include_timestamp: bool = True,
    ) -> None:
        super().__init__()
        self._masker = masker or SensitiveDataMasker()
        self._include_timestamp = include_timestamp

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data: dict[str, Any] = {
            "level": record.levelname,
            "logger": record.name,
            "message": self._masker.mask(record.getMessage()),
        }

        if self._include_timestamp:
            log_data["timestamp"] = time.strftime(
                "%Y-%m-%dT%H:%M:%S", time.gmtime(record.created)
            ) + f".{int(record.msecs):03d}Z"

        if hasattr(record, "extra_fields"):
            log_data.update(self._masker.mask_dict(record.extra_fields))

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable text formatter."""

    def __init__(self, masker: SensitiveDataMasker | None = None) -> None:
        super().__init__(
            fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        self._masker = masker or SensitiveDataMasker()

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as text, appending masked extra fields."""
        original_msg = record.msg
        record.msg = self._masker.mask(str(record.msg))
        try:
            result = super().format(record)
        finally:
            record.msg = original_msg

        if hasattr(record, "extra_fields") and record.extra_fields:
            extra = self._masker.mask_dict(record.extra_fields)
            result = f"{result} | " + " ".join(f"{k}={v}" for k, v in extra.items())

        return result


class ChimeraLogger:
    """Logger for chimera-api-python with structured keyword fields.

    Example:
        >>> logger = ChimeraLogger.get_logger("chimera_api.transport")
        >>> logger.warning("Proxy unreachable", proxy="http://10.0.0.1:3128")
    """

    _loggers: ClassVar[dict[str, logging.Logger]] = {}
    _level: ClassVar[LogLevel] = LogLevel.INFO
    _handler: ClassVar[logging.Handler | None] = None

    @classmethod
    def configure(
        cls,
        level: LogLevel = LogLevel.INFO,
        format: str = "text",
        stream: Any = None,
        masker: SensitiveDataMasker | None = None,
    ) -> None:
        """Configure global logging settings.

        Args:
            level: Log level
            format: Output format ('json' or 'text')
            stream: Output stream (default: stderr)
            masker: Sensitive data masker
        """
        formatter: logging.Formatter
        if format == "json":
            formatter = JsonFormatter(masker=masker)
        else:
            formatter = TextFormatter(masker=masker)

        cls._handler = logging.StreamHandler(stream or sys.stderr)
        cls._handler.setFormatter(formatter)

        for logger in cls._loggers.values():
            logger.handlers.clear()
            logger.addHandler(cls._handler)
        cls.set_level(level)

    @classmethod
    def set_level(cls, level: LogLevel) -> None:
        """Change the level of every library logger, present and future."""
        cls._level = level
        for logger in cls._loggers.values():
            logger.setLevel(level.to_logging_level())

    @classmethod
    def get_logger(cls, name: str) -> ChimeraLogger:
        """Get or create a logger."""
        if name not in cls._loggers:
            logger = logging.getLogger(name)
            logger.setLevel(cls._level.to_logging_level())

            if cls._handler:
                logger.handlers.clear()
                logger.addHandler(cls._handler)
            elif not logger.handlers:
                handler = logging.StreamHandler(sys.stderr)
                handler.setFormatter(TextFormatter())
                logger.addHandler(handler)

            logger.propagate = False
            cls._loggers[name] = logger

        return cls(cls._loggers[name])

    def __init__(self, logger: logging.Logger) -> None:
        self._logger = logger

    @property
    def name(self) -> str:
        """Underlying logger name."""
        return self._logger.name

    def is_enabled_for(self, level: LogLevel) -> bool:
        """Whether a message at ``level`` would be emitted."""
        return self._logger.isEnabledFor(level.to_logging_level())

    def _log(
        self, level: int, msg: str, exc_info: bool = False, **kwargs: Any
    ) -> None:
        extra = {"extra_fields": kwargs} if kwargs else {}
        self._logger.log(level, msg, exc_info=exc_info, extra=extra)

    def debug(self, msg: str, **kwargs: Any) -> None:
        """Log debug message."""
        self._log(logging.DEBUG, msg, **kwargs)

    def info(self, msg: str, **kwargs: Any) -> None:
        """Log info message."""
        self._log(logging.INFO, msg, **kwargs)

    def warning(self, msg: str, **kwargs: Any) -> None:
        """Log warning message."""
        self._log(logging.WARNING, msg, **kwargs)

    def error(self, msg: str, exc_info: bool = False, **kwargs: Any) -> None:
        """Log error message."""
        self._log(logging.ERROR, msg, exc_info=exc_info, **kwargs)


def get_logger(name: str) -> ChimeraLogger:
    """Get a logger instance."""
    return ChimeraLogger.get_logger(name)
