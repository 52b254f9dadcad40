"""Token counting for history and context budgeting."""

from __future__ import annotations

import functools
import threading
from collections.abc import Iterable
from typing import TYPE_CHECKING

import tiktoken

if TYPE_CHECKING:
    from agency_chat.models.query import ChatMessage
    from agency_chat.protocols.tokenizer import Tokenizer

# Per-message framing overhead (role marker and separators).
MESSAGE_OVERHEAD_TOKENS = 4


class TiktokenCounter:
    """Token counter backed by a tiktoken BPE encoding.

    ``cl100k_base`` is close enough to Claude's tokenizer for budget
    estimates. The encoding is loaded on first use so constructing a
    counter is cheap.

    Implements the ``Tokenizer`` protocol via structural subtyping.
    """

    __slots__ = ("_cache", "_encoding", "_encoding_name", "_lock", "_max_cache_size")

    def __init__(self, encoding_name: str = "cl100k_base", max_cache_size: int = 4096) -> None:
        self._encoding_name = encoding_name
        self._encoding: tiktoken.Encoding | None = None
        self._lock = threading.Lock()
        self._max_cache_size = max_cache_size
        self._cache: dict[str, int] = {}

    def __repr__(self) -> str:
        return f"{type(self).__name__}(encoding={self._encoding_name!r})"

    @property
    def encoding(self) -> tiktoken.Encoding:
        if self._encoding is None:
            with self._lock:
                if self._encoding is None:
                    self._encoding = tiktoken.get_encoding(self._encoding_name)
        return self._encoding

    def count_tokens(self, text: str) -> int:
        """Count the number of tokens in a text string."""
        cached = self._cache.get(text)
        if cached is not None:
            return cached
        count = len(self.encoding.encode(text, disallowed_special=()))
        # History turns repeat across requests; long context payloads do not.
        if len(text) < 2_000:
            if len(self._cache) >= self._max_cache_size:
                self._cache.clear()
            self._cache[text] = count
        return count



def count_message_tokens(messages: Iterable[ChatMessage], tokenizer: Tokenizer) -> int:
    """Estimate the prompt tokens a list of chat messages will consume."""
    return sum(tokenizer.count_tokens(m.content) + MESSAGE_OVERHEAD_TOKENS for m in messages)


@functools.cache
def get_default_counter() -> TiktokenCounter:
    """Return the process-wide ``TiktokenCounter``.

    Call ``get_default_counter.cache_clear()`` to reset it in tests.
    """
    return TiktokenCounter()
