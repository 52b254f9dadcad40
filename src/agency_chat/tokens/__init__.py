"""Token counting utilities."""

from .counter import (
    MESSAGE_OVERHEAD_TOKENS,
    TiktokenCounter,
    count_message_tokens,
    get_default_counter,
)

__all__ = [
    "MESSAGE_OVERHEAD_TOKENS",
    "TiktokenCounter",
    "count_message_tokens",
    "get_default_counter",
]
