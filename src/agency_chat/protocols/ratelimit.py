"""Admission control protocol."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from agency_chat.ratelimit.limiter import RateLimitDecision


@runtime_checkable
class RateLimiter(Protocol):
    """Per-session admission gate shared by all concurrent requests."""

    def admit(self, session_id: str) -> RateLimitDecision:
        """Decide whether *session_id* may make another request now.

        Must be an atomic read-modify-write for the session's entry.
        """
        ...
