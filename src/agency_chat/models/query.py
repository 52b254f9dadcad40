"""Inbound chat request models."""

from __future__ import annotations

from typing import Literal, TypeAlias

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .snapshot import MetricSnapshot

Role: TypeAlias = Literal["user", "assistant"]

ANONYMOUS_SESSION = "anonymous"


class ChatMessage(BaseModel):
    """A single prior turn in the conversation."""

    model_config = ConfigDict(frozen=True)

    role: Role
    content: str


class ChatQuery(BaseModel):
    """One chat turn as submitted by the caller. Immutable per request.

    Parameters:
        message: The raw question text.
        conversation_history: Prior turns, oldest first.
        current_page: The dashboard page the user is looking at.
        session_id: Opaque session identifier used for rate limiting.
        force_deep: Skip local/cached answers and request the top tier.
        snapshot: Optional pre-computed metrics enabling local answers.
    """

    model_config = ConfigDict(frozen=True)

    message: str
    conversation_history: list[ChatMessage] = Field(default_factory=list)
    current_page: str = "/"
    session_id: str = ANONYMOUS_SESSION
    force_deep: bool = False
    snapshot: MetricSnapshot | None = None

    @field_validator("message")
    @classmethod
    def _require_text(cls, value: str) -> str:
        if not value or not value.strip():
            msg = "Message is required"
            raise ValueError(msg)
        return value

    @field_validator("session_id", mode="before")
    @classmethod
    def _default_session(cls, value: object) -> object:
        if value is None or (isinstance(value, str) and not value.strip()):
            return ANONYMOUS_SESSION
        return value

    @field_validator("current_page", mode="before")
    @classmethod
    def _default_page(cls, value: object) -> object:
        if value is None or (isinstance(value, str) and not value.strip()):
            return "/"
        return value
