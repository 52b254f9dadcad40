"""Conversation history compression.

Long conversations are condensed before they reach the model: the
older turns are summarized by one cheap auxiliary call and replaced by
a two-turn preamble (the summary as a user turn, then an assistant
acknowledgement), while the most recent turns are kept verbatim. If the
auxiliary call fails for any reason the compressor falls back to plain
truncation. Compression never blocks the pipeline.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

from agency_chat.exceptions import HistoryCompressionError
from agency_chat.models.query import ChatMessage
from agency_chat.tokens.counter import count_message_tokens, get_default_counter

if TYPE_CHECKING:
    from agency_chat.protocols.provider import ChatProvider
    from agency_chat.protocols.tokenizer import Tokenizer

logger = logging.getLogger(__name__)

SUMMARY_PROMPT = (
    "Summarize this conversation between the user and the AI assistant in 2-3 "
    "sentences. Focus on what topics were discussed and key conclusions reached:"
    "\n\n{transcript}"
)
SUMMARY_ACK = "Understood. I have the context from our previous discussion."


def summary_turns(summary: str) -> list[ChatMessage]:
    """Return the two-turn preamble that stands in for summarized history."""
    return [
        ChatMessage(role="user", content=f"[Previous conversation summary: {summary}]"),
        ChatMessage(role="assistant", content=SUMMARY_ACK),
    ]


class HistoryCompressor:
    """Caps and condenses conversation history for one model call.

    Parameters:
        provider: Provider used for the auxiliary summary call. When
            ``None`` every compression falls back to truncation.
        summary_model: Model identifier for the summary call.
        summary_max_tokens: Output cap for the summary call.
        max_turns: Prior turns kept before anything else happens.
        compress_threshold: Compress when the capped conversation
            (including the current message) has more messages than this.
        keep_recent: Messages at the end kept verbatim when compressing.
        fallback_turns: Prior turns kept by the truncation fallback.
        max_tokens: Compress when the capped conversation exceeds this
            many estimated tokens, even below ``compress_threshold``.
        clip_chars: Each summarized message is clipped to this many
            characters before being sent to the summarizer.
        tokenizer: Token counter for the ``max_tokens`` check.
    """

    __slots__ = (
        "_clip_chars",
        "_compress_threshold",
        "_fallback_turns",
        "_keep_recent",
        "_max_tokens",
        "_max_turns",
        "_provider",
        "_summary_max_tokens",
        "_summary_model",
        "_tokenizer",
    )

    def __init__(
        self,
        provider: ChatProvider | None,
        *,
        summary_model: str,
        summary_max_tokens: int = 300,
        max_turns: int = 20,
        compress_threshold: int = 10,
        keep_recent: int = 2,
        fallback_turns: int = 6,
        max_tokens: int = 6000,
        clip_chars: int = 300,
        tokenizer: Tokenizer | None = None,
    ) -> None:
        if keep_recent < 1:
            msg = "keep_recent must be at least 1"
            raise ValueError(msg)
        if compress_threshold <= keep_recent:
            msg = "compress_threshold must be greater than keep_recent"
            raise ValueError(msg)
        self._provider = provider
        self._summary_model = summary_model
        self._summary_max_tokens = summary_max_tokens
        self._max_turns = max_turns
        self._compress_threshold = compress_threshold
        self._keep_recent = keep_recent
        self._fallback_turns = fallback_turns
        self._max_tokens = max_tokens
        self._clip_chars = clip_chars
        self._tokenizer: Tokenizer = tokenizer or get_default_counter()

    def __repr__(self) -> str:
        return (
            f"HistoryCompressor(max_turns={self._max_turns}, "
            f"threshold={self._compress_threshold}, keep_recent={self._keep_recent})"
        )

    def needs_compression(self, messages: Sequence[ChatMessage]) -> bool:
        if len(messages) > self._compress_threshold:
            return True
        return count_message_tokens(messages, self._tokenizer) > self._max_tokens

    def truncate(self, history: Sequence[ChatMessage], message: str) -> list[ChatMessage]:
        """Deterministic fallback: the last few prior turns plus *message*."""
        recent = list(history[-self._fallback_turns :]) if self._fallback_turns > 0 else []
        return [*recent, ChatMessage(role="user", content=message)]

    async def compress(self, history: Sequence[ChatMessage], message: str) -> list[ChatMessage]:
        """Build the message list for the model call.

        Parameters:
            history: Prior turns, oldest first.
            message: The current user message, appended as the final turn.

        Returns:
            The (possibly condensed) conversation ending with *message*.
        """
        capped = [*history[-self._max_turns :], ChatMessage(role="user", content=message)]
        if not self.needs_compression(capped):
            return capped

        older = capped[: -self._keep_recent]
        recent = capped[-self._keep_recent :]
        try:
            summary = await self.summarize(older)
        except Exception:
            logger.exception("History compression failed, using truncation")
            return self.truncate(history, message)

        logger.debug("Compressed %d messages into a summary", len(older))
        return [*summary_turns(summary), *recent]

    async def summarize(self, messages: Sequence[ChatMessage]) -> str:
        """Summarize *messages* with one auxiliary model call.

        Raises:
            HistoryCompressionError: If no provider is configured or the
                summary comes back empty.
        """
        if self._provider is None:
            msg = "no provider configured for history summarization"
            raise HistoryCompressionError(msg)

        transcript = "\n".join(
            f"{'User' if m.role == 'user' else 'AI'}: {m.content[: self._clip_chars]}"
            for m in messages
        )
        result = await self._provider.complete(
            model=self._summary_model,
            max_tokens=self._summary_max_tokens,
            messages=[ChatMessage(role="user", content=SUMMARY_PROMPT.format(transcript=transcript))],
        )
        summary = result.text.strip()
        if not summary:
            msg = "summarizer returned an empty summary"
            raise HistoryCompressionError(msg)
        return summary
