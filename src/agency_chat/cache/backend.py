"""In-memory response cache and query-key normalization."""

from __future__ import annotations

import hashlib
import logging
import re
import threading

from agency_chat.models.cache import CacheEntry

logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")
_EDGE_PUNCTUATION = "?!.,;: "


def _normalize_page(page: str) -> str:
    cleaned = page.strip() or "/"
    if len(cleaned) > 1:
        cleaned = cleaned.rstrip("/") or "/"
    return cleaned


def normalize_query_key(question: str, page: str) -> str:
    """Derive the cache key for a question asked on a page.

    Case, repeated whitespace and trailing punctuation are ignored, so
    "What is the reserve margin?" and "what is  the reserve margin"
    share a key. The page is part of the key because page context
    changes what "this" refers to.

    This is a pure function: identical inputs always produce the same key.

    Parameters:
        question: The raw question text.
        page: The page the question was asked from.

    Returns:
        A hex SHA-256 digest.
    """
    normalized = _WHITESPACE_RE.sub(" ", question.strip().lower()).strip(_EDGE_PUNCTUATION)
    material = f"{normalized}|{_normalize_page(page)}"
    return hashlib.sha256(material.encode("utf-8")).hexdigest()


class InMemoryResponseCache:
    """Thread-safe in-memory answer cache.

    Entries never expire on a timer; they are replaced only when a
    fresher answer is written for the same key. ``max_size`` bounds
    memory by evicting the oldest entry (by ``created_at``) when full.

    Implements the ``ResponseCache`` protocol.

    Parameters:
        max_size: Maximum number of entries. ``None`` means unbounded.
            Default 1000.
    """

    __slots__ = ("_data", "_lock", "_max_size")

    def __init__(self, max_size: int | None = 1000) -> None:
        if max_size is not None and max_size <= 0:
            msg = "max_size must be a positive integer or None"
            raise ValueError(msg)
        self._max_size = max_size
        self._data: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> CacheEntry | None:
        """Retrieve a cached answer, or None if not found.

        Parameters:
            key: The cache key.

        Returns:
            The cached entry, or None.
        """
        with self._lock:
            return self._data.get(key)

    def put(self, key: str, entry: CacheEntry) -> None:
        """Store an answer, overwriting any previous answer for *key*.

        Parameters:
            key: The cache key.
            entry: The answer to store.
        """
        with self._lock:
            # If key already exists, replace in place (no eviction needed)
            if key in self._data:
                self._data[key] = entry
                return

            if self._max_size is not None:
                while len(self._data) >= self._max_size:
                    self._evict_oldest()

            self._data[key] = entry

    def invalidate(self, key: str) -> None:
        """Remove a specific key from the cache.

        Parameters:
            key: The cache key to remove.
        """
        with self._lock:
            self._data.pop(key, None)

    def clear(self) -> None:
        """Remove all entries from the cache."""
        with self._lock:
            self._data.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    def _evict_oldest(self) -> None:
        """Evict the oldest entry by creation time. Caller holds the lock."""
        if not self._data:
            return
        oldest_key = min(self._data, key=lambda k: self._data[k].created_at)
        logger.debug("Evicting oldest cache entry key=%s", oldest_key[:12])
        del self._data[oldest_key]

    def __repr__(self) -> str:
        return f"InMemoryResponseCache(max_size={self._max_size}, entries={len(self._data)})"
