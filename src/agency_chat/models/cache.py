"""Response cache records."""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field

from .tiers import ModelTier


class ChatAction(BaseModel):
    """A suggested navigation action extracted from a generated answer."""

    model_config = ConfigDict(frozen=True)

    label: str
    route: str


class CacheEntry(BaseModel):
    """A previously generated answer, replayable at zero model cost.

    Entries are immutable once written; a fresher answer for the same
    ``query_key`` replaces the entry rather than appending to it.
    """

    model_config = ConfigDict(frozen=True)

    query_key: str
    tier: ModelTier
    response_text: str
    suggestions: list[str] = Field(default_factory=list)
    actions: list[ChatAction] = Field(default_factory=list)
    input_tokens: int = Field(default=0, ge=0)
    output_tokens: int = Field(default=0, ge=0)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
