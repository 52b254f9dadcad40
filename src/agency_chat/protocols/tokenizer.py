"""Tokenizer protocol for token counting abstraction."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class Tokenizer(Protocol):
    """Protocol for token counting.

    The default implementation uses tiktoken, but any tokenizer with
    this method can be supplied (tests use a whitespace counter).
    """

    def count_tokens(self, text: str) -> int:
        """Count the number of tokens in a text string.

        Parameters:
            text: The input text to tokenize and count.

        Returns:
            The total number of tokens.
        """
        ...
