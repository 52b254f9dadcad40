"""Query classification into model tiers."""

from .classifiers import (
    CHEAP_PATTERNS,
    DEEP_PATTERNS,
    FORCED_DEEP,
    GENERAL,
    CallbackClassifier,
    Classification,
    PatternTierClassifier,
    TierPattern,
    classify_request,
)

__all__ = [
    "CHEAP_PATTERNS",
    "DEEP_PATTERNS",
    "FORCED_DEEP",
    "GENERAL",
    "CallbackClassifier",
    "Classification",
    "PatternTierClassifier",
    "TierPattern",
    "classify_request",
]
