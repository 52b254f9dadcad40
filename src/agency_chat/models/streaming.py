"""Streaming models for language-model responses."""

from __future__ import annotations

from pydantic import BaseModel, Field


class StreamUsage(BaseModel):
    """Token usage reported by the provider for one completed call."""

    input_tokens: int = Field(default=0, ge=0)
    output_tokens: int = Field(default=0, ge=0)


class StreamResult(BaseModel):
    """Accumulated result from a completed streaming response."""

    text: str = ""
    usage: StreamUsage = Field(default_factory=StreamUsage)
    model: str = ""
    stop_reason: str = ""
