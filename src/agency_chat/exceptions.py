"""Custom exceptions for agency-chat."""

from __future__ import annotations

__all__ = [
    "AgencyChatError",
    "AnnotationParseError",
    "ConfigurationError",
    "ContextAssemblyError",
    "HistoryCompressionError",
    "ProviderError",
    "RateLimitExceededError",
    "StorageError",
]


class AgencyChatError(Exception):
    """Base exception for all agency-chat errors."""


class ConfigurationError(AgencyChatError):
    """Raised when required configuration (e.g. provider credentials) is missing."""


class RateLimitExceededError(AgencyChatError):
    """Raised when a session has used up its message quota for the current window."""

    def __init__(self, message: str, remaining: int = 0) -> None:
        super().__init__(message)
        self.remaining = remaining


class ContextAssemblyError(AgencyChatError):
    """Raised when raw domain context cannot be gathered at all."""


class HistoryCompressionError(AgencyChatError):
    """Raised when the auxiliary summarization call fails or returns nothing usable."""


class ProviderError(AgencyChatError):
    """Raised when the language-model provider fails mid-request."""


class AnnotationParseError(AgencyChatError):
    """Raised when an embedded annotation marker carries malformed JSON."""


class StorageError(AgencyChatError):
    """Raised when a usage or cache backend fails to persist or read a record."""
