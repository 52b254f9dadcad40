"""Anthropic Messages API provider."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator, AsyncIterator, Sequence
from contextlib import asynccontextmanager
from typing import Any

import anthropic

from agency_chat.exceptions import ProviderError
from agency_chat.models.query import ChatMessage
from agency_chat.models.streaming import StreamResult, StreamUsage

logger = logging.getLogger(__name__)


def _to_messages(messages: Sequence[ChatMessage]) -> list[dict[str, str]]:
    return [{"role": m.role, "content": m.content} for m in messages]


class AnthropicStream:
    """An open ``messages.stream`` call.

    Implements the ``ProviderStream`` protocol. SDK errors raised while
    iterating are re-raised as ``ProviderError``.
    """

    __slots__ = ("_stream",)

    def __init__(self, stream: Any) -> None:
        self._stream = stream

    async def text_stream(self) -> AsyncGenerator[str, None]:
        try:
            async for text in self._stream.text_stream:
                yield text
        except anthropic.APIError as e:
            raise ProviderError(str(e)) from e

    async def final_usage(self) -> StreamUsage:
        try:
            message = await self._stream.get_final_message()
        except anthropic.APIError as e:
            raise ProviderError(str(e)) from e
        usage = message.usage
        return StreamUsage(
            input_tokens=usage.input_tokens or 0,
            output_tokens=usage.output_tokens or 0,
        )


class AnthropicProvider:
    """``ChatProvider`` backed by ``anthropic.AsyncAnthropic``.

    Leaving the ``stream`` context closes the underlying HTTP response,
    which aborts generation upstream. No retries are attempted: partial
    output may already have reached the caller.

    Parameters:
        api_key: Anthropic API key. Falls back to ``ANTHROPIC_API_KEY``.
        client: A pre-built async client (tests inject a fake here).
        timeout: Per-request timeout in seconds passed to the SDK.
    """

    __slots__ = ("_client",)

    def __init__(
        self,
        *,
        api_key: str | None = None,
        client: Any = None,
        timeout: float | None = None,
    ) -> None:
        if client is not None:
            self._client: Any = client
        else:
            kwargs: dict[str, Any] = {"api_key": api_key, "max_retries": 0}
            if timeout is not None:
                kwargs["timeout"] = timeout
            self._client = anthropic.AsyncAnthropic(**kwargs)

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"

    @asynccontextmanager
    async def stream(
        self,
        *,
        model: str,
        max_tokens: int,
        system: str,
        messages: Sequence[ChatMessage],
    ) -> AsyncIterator[AnthropicStream]:
        manager = self._client.messages.stream(
            model=model,
            max_tokens=max_tokens,
            system=system,
            messages=_to_messages(messages),
        )
        try:
            async with manager as stream:
                yield AnthropicStream(stream)
        except anthropic.APIError as e:
            logger.warning("Anthropic stream failed: %s", e)
            raise ProviderError(str(e)) from e

    async def complete(
        self,
        *,
        model: str,
        max_tokens: int,
        messages: Sequence[ChatMessage],
        system: str | None = None,
    ) -> StreamResult:
        kwargs: dict[str, Any] = {
            "model": model,
            "max_tokens": max_tokens,
            "messages": _to_messages(messages),
        }
        if system is not None:
            kwargs["system"] = system
        try:
            response = await self._client.messages.create(**kwargs)
        except anthropic.APIError as e:
            raise ProviderError(str(e)) from e

        text = "".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        )
        return StreamResult(
            text=text,
            usage=StreamUsage(
                input_tokens=response.usage.input_tokens or 0,
                output_tokens=response.usage.output_tokens or 0,
            ),
            model=response.model,
            stop_reason=response.stop_reason or "",
        )
