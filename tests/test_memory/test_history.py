"""Tests for agency_chat.memory.history."""

from __future__ import annotations

import pytest

from agency_chat.exceptions import HistoryCompressionError, ProviderError
from agency_chat.memory.history import SUMMARY_ACK, HistoryCompressor, summary_turns
from agency_chat.models.query import ChatMessage
from tests.conftest import FakeProvider, FakeTokenizer


def _history(n: int, *, length: int = 5) -> list[ChatMessage]:
    """*n* alternating turns, oldest first, each *length* words long."""
    return [
        ChatMessage(
            role="user" if i % 2 == 0 else "assistant",
            content=" ".join([f"turn{i}"] * length),
        )
        for i in range(n)
    ]


def _compressor(provider: FakeProvider | None, **kwargs: int) -> HistoryCompressor:
    return HistoryCompressor(
        provider, summary_model="cheap-model", tokenizer=FakeTokenizer(), **kwargs
    )


class TestConfiguration:
    def test_keep_recent_must_be_positive(self) -> None:
        with pytest.raises(ValueError, match="keep_recent"):
            _compressor(None, keep_recent=0)

    def test_threshold_must_exceed_keep_recent(self) -> None:
        with pytest.raises(ValueError, match="compress_threshold"):
            _compressor(None, compress_threshold=2, keep_recent=2)

    def test_repr(self) -> None:
        assert "threshold=10" in repr(_compressor(None))


class TestCompress:
    @pytest.mark.asyncio
    async def test_short_history_passes_through(self, provider: FakeProvider) -> None:
        history = _history(4)
        result = await _compressor(provider).compress(history, "What next?")
        assert result == [*history, ChatMessage(role="user", content="What next?")]
        assert provider.complete_calls == []

    @pytest.mark.asyncio
    async def test_long_history_is_summarized(self, provider: FakeProvider) -> None:
        history = _history(12)
        result = await _compressor(provider).compress(history, "And now?")

        assert len(provider.complete_calls) == 1
        call = provider.complete_calls[0]
        assert call["model"] == "cheap-model"
        assert call["max_tokens"] == 300

        assert result[:2] == summary_turns(provider.summary)
        assert result[0].content == f"[Previous conversation summary: {provider.summary}]"
        assert result[1] == ChatMessage(role="assistant", content=SUMMARY_ACK)
        assert result[2:] == [history[-1], ChatMessage(role="user", content="And now?")]

    @pytest.mark.asyncio
    async def test_summary_transcript_labels_and_clips(self, provider: FakeProvider) -> None:
        history = [ChatMessage(role="user", content="x" * 1000), *_history(11)]
        await _compressor(provider).compress(history, "q")
        prompt = provider.complete_calls[0]["messages"][0].content
        assert "User: " + "x" * 300 + "\n" in prompt
        assert "x" * 301 not in prompt
        assert "AI: turn1" in prompt

    @pytest.mark.asyncio
    async def test_history_capped_to_max_turns(self, provider: FakeProvider) -> None:
        history = _history(30)
        await _compressor(provider).compress(history, "q")
        prompt = provider.complete_calls[0]["messages"][0].content
        assert "turn9 " not in prompt
        assert "turn10" in prompt

    @pytest.mark.asyncio
    async def test_token_threshold_triggers_compression(self, provider: FakeProvider) -> None:
        history = _history(4, length=50)
        result = await _compressor(provider, max_tokens=100).compress(history, "q")
        assert result[:2] == summary_turns(provider.summary)
        assert len(result) == 4

    @pytest.mark.asyncio
    async def test_summary_failure_falls_back_to_truncation(self) -> None:
        provider = FakeProvider(summary_error=ProviderError("overloaded"))
        history = _history(12)
        result = await _compressor(provider).compress(history, "q")
        assert result == [*history[-6:], ChatMessage(role="user", content="q")]

    @pytest.mark.asyncio
    async def test_empty_summary_falls_back(self) -> None:
        provider = FakeProvider(summary="   ")
        result = await _compressor(provider).compress(_history(12), "q")
        assert len(result) == 7
        assert result[-1].content == "q"

    @pytest.mark.asyncio
    async def test_no_provider_falls_back(self) -> None:
        result = await _compressor(None, fallback_turns=2).compress(_history(12), "q")
        assert [m.content for m in result][-1] == "q"
        assert len(result) == 3


class TestSummarize:
    @pytest.mark.asyncio
    async def test_no_provider_raises(self) -> None:
        with pytest.raises(HistoryCompressionError):
            await _compressor(None).summarize(_history(3))

    @pytest.mark.asyncio
    async def test_returns_stripped_text(self) -> None:
        provider = FakeProvider(summary="  Discussed GPL.  ")
        assert await _compressor(provider).summarize(_history(3)) == "Discussed GPL."


class TestTruncate:
    def test_zero_fallback_turns_keeps_only_message(self) -> None:
        result = _compressor(None, fallback_turns=0).truncate(_history(5), "q")
        assert result == [ChatMessage(role="user", content="q")]
