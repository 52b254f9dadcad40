"""Language-model provider protocol.

Incremental output is modelled as an async iterator of text fragments
pulled by the orchestrator. Leaving the ``stream`` context (normally or
by cancellation) must abort the upstream call.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Sequence
from contextlib import AbstractAsyncContextManager
from typing import Protocol, runtime_checkable

from agency_chat.models.query import ChatMessage
from agency_chat.models.streaming import StreamResult, StreamUsage


@runtime_checkable
class ProviderStream(Protocol):
    """An open streaming call."""

    def text_stream(self) -> AsyncGenerator[str, None]:
        """Yield text fragments as the provider produces them."""
        ...

    async def final_usage(self) -> StreamUsage:
        """Token usage, available once ``text_stream`` is exhausted."""
        ...


@runtime_checkable
class ChatProvider(Protocol):
    """A configured language-model provider."""

    def stream(
        self,
        *,
        model: str,
        max_tokens: int,
        system: str,
        messages: Sequence[ChatMessage],
    ) -> AbstractAsyncContextManager[ProviderStream]:
        """Open one streaming chat-completion call.

        Parameters:
            model: Provider model identifier.
            max_tokens: Output-token cap.
            system: System prompt.
            messages: Conversation, oldest first, ending with the user turn.
        """
        ...

    async def complete(
        self,
        *,
        model: str,
        max_tokens: int,
        messages: Sequence[ChatMessage],
        system: str | None = None,
    ) -> StreamResult:
        """Run one non-streaming call and return its text and usage."""
        ...
