"""Per-session fixed-window rate limiting."""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 20
DEFAULT_WINDOW_SECONDS = 60 * 60


@dataclass(slots=True)
class RateLimitEntry:
    """Counter state for one session.

    ``count`` never exceeds the configured limit within a window; a new
    window resets it to 1.
    """

    session_id: str
    count: int
    window_start: float


@dataclass(frozen=True, slots=True)
class RateLimitDecision:
    """Outcome of one admission check."""

    allowed: bool
    remaining: int


class SlidingWindowRateLimiter:
    """Thread-safe per-session admission gate.

    Each session gets ``limit`` requests per ``window_seconds``. The window
    starts at the session's first request and resets once it has fully
    elapsed. Entries idle for more than two windows are removed by
    :meth:`sweep`, which :meth:`run_sweeper` calls periodically.

    Implements the ``RateLimiter`` protocol.

    Parameters:
        limit: Maximum admitted requests per window. Default 20.
        window_seconds: Window length in seconds. Default one hour.
        clock: Monotonic time source, injectable for tests.
    """

    __slots__ = ("_clock", "_entries", "_limit", "_lock", "_window")

    def __init__(
        self,
        limit: int = DEFAULT_LIMIT,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if limit <= 0:
            msg = "limit must be a positive integer"
            raise ValueError(msg)
        if window_seconds <= 0:
            msg = "window_seconds must be positive"
            raise ValueError(msg)
        self._limit = limit
        self._window = window_seconds
        self._clock = clock
        self._entries: dict[str, RateLimitEntry] = {}
        self._lock = threading.Lock()

    def __repr__(self) -> str:
        with self._lock:
            count = len(self._entries)
        return (
            f"SlidingWindowRateLimiter(limit={self._limit}, "
            f"window_seconds={self._window}, sessions={count})"
        )

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def window_seconds(self) -> float:
        return self._window

    def admit(self, session_id: str) -> RateLimitDecision:
        """Check and consume one request slot for *session_id*.

        Parameters:
            session_id: Opaque session identifier.

        Returns:
            ``allowed=False, remaining=0`` when the window's quota is used
            up; otherwise ``allowed=True`` with the slots left after this one.
        """
        now = self._clock()
        with self._lock:
            entry = self._entries.get(session_id)
            if entry is None or (now - entry.window_start) > self._window:
                self._entries[session_id] = RateLimitEntry(session_id, 1, now)
                return RateLimitDecision(allowed=True, remaining=self._limit - 1)

            if entry.count >= self._limit:
                logger.info("Rate limit reached for session=%r", session_id)
                return RateLimitDecision(allowed=False, remaining=0)

            entry.count += 1
            return RateLimitDecision(allowed=True, remaining=self._limit - entry.count)

    def peek(self, session_id: str) -> RateLimitEntry | None:
        """Return a copy of the session's entry without consuming a slot."""
        with self._lock:
            entry = self._entries.get(session_id)
            if entry is None:
                return None
            return RateLimitEntry(entry.session_id, entry.count, entry.window_start)

    def sweep(self, now: float | None = None) -> int:
        """Remove entries whose window started more than two windows ago.

        Returns:
            The number of entries removed.
        """
        current = self._clock() if now is None else now
        horizon = 2 * self._window
        with self._lock:
            stale = [
                key
                for key, entry in self._entries.items()
                if current - entry.window_start > horizon
            ]
            for key in stale:
                del self._entries[key]
        if stale:
            logger.debug("Swept %d stale rate-limit entries", len(stale))
        return len(stale)

    async def run_sweeper(self, interval: float | None = None) -> None:
        """Sweep forever every *interval* seconds (default: one window).

        Intended to run as a background task; cancel it to stop.
        """
        period = self._window if interval is None else interval
        while True:
            await asyncio.sleep(period)
            self.sweep()

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
