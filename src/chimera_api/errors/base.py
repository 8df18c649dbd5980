"""错误基类：提供分层错误体系和结构化错误上下文。

Base error classes for chimera-api-python.

Provides a small layered error hierarchy:
- ChimeraError: Base class for all library errors
- ConfigurationError: Client construction errors (missing API key)
- TransportError: Any failed endpoint call, network or HTTP status
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class ErrorContext:
    """Structured error context for diagnostics."""

    details: dict[str, Any] = field(default_factory=dict)
    """Additional details about the error"""

    source: str | None = None
    """Error source (e.g., 'config', 'transport')"""

    hint: str | None = None
    """Actionable hint for resolving the error"""

    def __str__(self) -> str:
        parts = []
        if self.source:
            parts.append(f"[{self.source}]")
        if self.hint:
            parts.append(f"(hint: {self.hint})")
        return " ".join(parts)


class ChimeraError(Exception):
    """Base class for all chimera-api-python errors.

    Attributes:
        message: Human-readable error message
        context: Structured error context
    """

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
    ) -> None:
        self.message = message
        self.context = context or ErrorContext()
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the full error message."""
        ctx_str = str(self.context)
        if ctx_str:
            return f"{self.message} {ctx_str}"
        return self.message

    def with_hint(self, hint: str) -> ChimeraError:
        """Add a hint to this error."""
        self.context.hint = hint
        return self


class ConfigurationError(ChimeraError):
    """Invalid client configuration.

    Raised synchronously at construction time, before any network activity,
    when no API key is supplied.
    """

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        *,
        setting: str | None = None,
    ) -> None:
        ctx = context or ErrorContext(source="config")
        if setting:
            ctx.details["setting"] = setting
        super().__init__(message, ctx)
        self.setting = setting


class TransportError(ChimeraError):
    """A failed call to the gateway.

    ``message`` is the server's response body when a response was received,
    otherwise the message of the underlying httpx error.

    Attributes:
        url: Requested URL
        status_code: HTTP status code, if a response was received
        body: Raw response body text, if a response was received
    """

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        *,
        url: str | None = None,
        status_code: int | None = None,
        body: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        ctx = context or ErrorContext(source="transport")
        if url:
            ctx.details["url"] = url
        if status_code:
            ctx.details["status_code"] = status_code
        super().__init__(message, ctx)
        self.url = url
        self.status_code = status_code
        self.body = body
        self.__cause__ = cause

    def _format_message(self) -> str:
        # str(err) is exactly the body or httpx message; details stay in context.
        return self.message

    @property
    def has_response(self) -> bool:
        """Whether the server answered (as opposed to a network failure)."""
        return self.status_code is not None
