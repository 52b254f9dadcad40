"""Wire contract between the streaming orchestrator and its caller.

A successful request emits ``meta``, zero or more ``text`` events and a
single ``done``. A failed provider call emits ``meta``, zero or more
``text`` events and a single ``error``. ``done`` and ``error`` are
always terminal.
"""

from __future__ import annotations

from typing import Annotated, Literal, TypeAlias

from pydantic import BaseModel, Field, TypeAdapter

from .streaming import StreamUsage
from .tiers import ModelTier


class MetaEvent(BaseModel):
    """First event of every stream: which tier answered and how."""

    type: Literal["meta"] = "meta"
    tier: ModelTier
    tier_label: str
    cached: bool = False
    local: bool = False
    budget_warning: str | None = None


class TextEvent(BaseModel):
    """An incremental fragment of the answer text."""

    type: Literal["text"] = "text"
    text: str


class DoneEvent(BaseModel):
    """Terminal success event carrying usage and remaining quota."""

    type: Literal["done"] = "done"
    tier: ModelTier
    tier_label: str
    cached: bool = False
    local: bool = False
    usage: StreamUsage = Field(default_factory=StreamUsage)
    remaining: int = 0


class ErrorEvent(BaseModel):
    """Terminal failure event."""

    type: Literal["error"] = "error"
    error: str


ChatStreamEvent: TypeAlias = Annotated[
    MetaEvent | TextEvent | DoneEvent | ErrorEvent,
    Field(discriminator="type"),
]

_EVENT_ADAPTER: TypeAdapter[ChatStreamEvent] = TypeAdapter(ChatStreamEvent)


def parse_event(data: str | bytes) -> MetaEvent | TextEvent | DoneEvent | ErrorEvent:
    """Parse one JSON-encoded event record."""
    return _EVENT_ADAPTER.validate_json(data)


def is_terminal(event: BaseModel) -> bool:
    """Whether *event* ends the stream."""
    return isinstance(event, DoneEvent | ErrorEvent)
