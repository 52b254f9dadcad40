"""Protocol definition for response cache backends."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from agency_chat.models.cache import CacheEntry


@runtime_checkable
class ResponseCache(Protocol):
    """Key-value store of previously generated answers.

    Keys come from ``normalize_query_key(question, page)``. Implementations
    must make ``get`` and ``put`` atomic per key because concurrent
    requests from different sessions share one cache.
    """

    def get(self, key: str) -> CacheEntry | None:
        """Retrieve the cached answer for *key*, or ``None``.

        Parameters:
            key: The normalized query key.

        Returns:
            The stored ``CacheEntry``, or ``None`` on a miss.
        """
        ...

    def put(self, key: str, entry: CacheEntry) -> None:
        """Store *entry* under *key*, replacing any previous answer.

        Parameters:
            key: The normalized query key.
            entry: The answer to store.
        """
        ...

    def invalidate(self, key: str) -> None:
        """Remove a specific key from the cache."""
        ...

    def clear(self) -> None:
        """Remove all entries from the cache."""
        ...
