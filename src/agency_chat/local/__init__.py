"""Zero-cost local answers from structured metrics."""

from .matcher import DEFAULT_RULES, LocalAnswer, LocalAnswerMatcher, LocalRule

__all__ = [
    "DEFAULT_RULES",
    "LocalAnswer",
    "LocalAnswerMatcher",
    "LocalRule",
]
