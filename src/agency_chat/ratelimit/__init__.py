"""Admission control for chat requests."""

from .limiter import (
    DEFAULT_LIMIT,
    DEFAULT_WINDOW_SECONDS,
    RateLimitDecision,
    RateLimitEntry,
    SlidingWindowRateLimiter,
)

__all__ = [
    "DEFAULT_LIMIT",
    "DEFAULT_WINDOW_SECONDS",
    "RateLimitDecision",
    "RateLimitEntry",
    "SlidingWindowRateLimiter",
]
