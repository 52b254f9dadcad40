"""Response caching for generated answers."""

from .backend import InMemoryResponseCache, normalize_query_key

__all__ = [
    "InMemoryResponseCache",
    "normalize_query_key",
]
