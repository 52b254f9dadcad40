"""Built-in query classification strategies.

Classifiers inspect a raw question and return a ``Classification``:
the cheapest tier expected to answer it well plus a category label used
for analytics. They implement the ``QueryClassifier`` protocol.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

from agency_chat.models.tiers import ModelTier

if TYPE_CHECKING:
    from agency_chat.protocols.classifier import QueryClassifier

logger = logging.getLogger(__name__)

FORCED_DEEP = "forced_deep"
GENERAL = "general"


@dataclass(frozen=True, slots=True)
class Classification:
    """A tier decision and the query category that produced it."""

    tier: ModelTier
    query_type: str


@dataclass(frozen=True, slots=True)
class TierPattern:
    """A compiled regex that routes matching questions to a category."""

    pattern: re.Pattern[str]
    query_type: str

    @classmethod
    def compile(cls, regex: str, query_type: str) -> TierPattern:
        return cls(re.compile(regex, re.IGNORECASE), query_type)


_WHAT = r"^(what|what's|whats)\s+(is|are)\s+"

CHEAP_PATTERNS: tuple[TierPattern, ...] = (
    TierPattern.compile(_WHAT + r"(the\s+)?(gpl|gwi|cjia|gcaa)\s+health", "health_lookup"),
    TierPattern.compile(_WHAT + r"(the\s+)?health\s+score", "health_lookup"),
    TierPattern.compile(r"health\s+score", "health_lookup"),
    TierPattern.compile(r"^how\s+(many|much)\s+(projects?|tasks?|delayed|overdue)", "count_lookup"),
    TierPattern.compile(
        _WHAT + r"(the\s+)?(current\s+)?(reserve|capacity|peak|demand)", "metric_lookup"
    ),
    TierPattern.compile(
        _WHAT + r"(the\s+)?(total\s+)?(portfolio|project)\s+(value|count)", "metric_lookup"
    ),
    TierPattern.compile(_WHAT + r"(the\s+)?collection\s+rate", "metric_lookup"),
    TierPattern.compile(_WHAT + r"(the\s+)?suppressed\s+(demand|mw)", "metric_lookup"),
    TierPattern.compile(_WHAT + r"(the\s+)?compliance\s+rate", "metric_lookup"),
    TierPattern.compile(r"how\s+many\s+units?\s+(are\s+)?(online|available)", "metric_lookup"),
    TierPattern.compile(
        r"^(show|list|give)\s+(me\s+)?(the\s+)?(overdue|delayed)\s+(tasks?|projects?)",
        "list_lookup",
    ),
    TierPattern.compile(_WHAT + r"(my\s+)?overdue\s+tasks?", "list_lookup"),
    TierPattern.compile(
        _WHAT + r"(the\s+)?(gpl|gwi|cjia|gcaa)\s+(revenue|profit|passengers|inspections)",
        "metric_lookup",
    ),
    TierPattern.compile(_WHAT + r"(the\s+)?on.?time\s+performance", "metric_lookup"),
    TierPattern.compile(_WHAT + r"(the\s+)?resolution\s+rate", "metric_lookup"),
    TierPattern.compile(r"^when\s+(is|are)\s+(my\s+)?(next|today)", "schedule_lookup"),
    TierPattern.compile(
        _WHAT + r"(on\s+)?(my|the)\s+(calendar|schedule)\s+(today|this week)",
        "schedule_lookup",
    ),
)

DEEP_PATTERNS: tuple[TierPattern, ...] = (
    TierPattern.compile(r"compare\s+(all\s+)?(agency|agencies)", "cross_agency_analysis"),
    TierPattern.compile(r"across\s+(all\s+)?(agencies|sectors)", "cross_agency_analysis"),
    TierPattern.compile(r"strategic|strategy|recommend|advise|prioriti[sz]e", "strategic_advice"),
    TierPattern.compile(
        r"root\s+cause|why\s+(is|are|did|has|have).*\b(drop|decline|fall|increase|spike|surge)",
        "causal_analysis",
    ),
    TierPattern.compile(r"forecast|predict|project(ion)?s?\s+(for|over|next)", "forecasting"),
    TierPattern.compile(r"trend\s+analysis|long.?term", "trend_analysis"),
    TierPattern.compile(
        r"what\s+should\s+(i|we|the dg)\s+(do|focus|prioriti[sz]e)", "strategic_advice"
    ),
    TierPattern.compile(
        r"brief\s+(me|the dg)\s+on\s+(everything|all|the full)", "comprehensive_briefing"
    ),
    TierPattern.compile(r"comprehensive|in.?depth|detailed\s+analysis", "deep_analysis"),
    TierPattern.compile(r"risk\s+(assessment|analysis|profile)", "risk_analysis"),
    TierPattern.compile(r"scenario|what\s+if", "scenario_analysis"),
)


class PatternTierClassifier:
    """Routes questions to tiers with ordered regex tables.

    Deep patterns are checked first so an analytical question wins even
    if it also looks like a simple lookup; then cheap patterns; anything
    else goes to ``default``. Deterministic by construction.

    Parameters:
        deep_patterns: Patterns that route to ``ModelTier.DEEP``.
        cheap_patterns: Patterns that route to ``ModelTier.CHEAP``.
        default: Fallback classification when nothing matches.
    """

    __slots__ = ("_cheap", "_deep", "_default")

    def __init__(
        self,
        deep_patterns: Sequence[TierPattern] = DEEP_PATTERNS,
        cheap_patterns: Sequence[TierPattern] = CHEAP_PATTERNS,
        default: Classification = Classification(ModelTier.MID, GENERAL),
    ) -> None:
        self._deep = tuple(deep_patterns)
        self._cheap = tuple(cheap_patterns)
        self._default = default

    def __repr__(self) -> str:
        return (
            f"PatternTierClassifier(deep={len(self._deep)}, "
            f"cheap={len(self._cheap)}, default={self._default.tier.value!r})"
        )

    def classify(self, question: str) -> Classification:
        """Classify by scanning the deep then cheap pattern tables.

        Parameters:
            question: The raw question text.

        Returns:
            The first matching classification, or the default.
        """
        text = question.strip()
        for tier, patterns in ((ModelTier.DEEP, self._deep), (ModelTier.CHEAP, self._cheap)):
            for rule in patterns:
                if rule.pattern.search(text):
                    logger.debug(
                        "PatternTierClassifier matched tier=%s type=%r", tier.value, rule.query_type
                    )
                    return Classification(tier, rule.query_type)
        logger.debug("PatternTierClassifier fell back to default=%s", self._default.tier.value)
        return self._default


class CallbackClassifier:
    """Classifies questions by delegating to a user-supplied callback.

    Useful for plugging in a statistical classifier.

    Parameters:
        classify_fn: A callable ``(str) -> Classification``.
    """

    __slots__ = ("_classify_fn",)

    def __init__(self, classify_fn: Callable[[str], Classification]) -> None:
        self._classify_fn = classify_fn

    def __repr__(self) -> str:
        return "CallbackClassifier()"

    def classify(self, question: str) -> Classification:
        """Classify by delegating to the callback."""
        result = self._classify_fn(question)
        logger.debug("CallbackClassifier returned tier=%s", result.tier.value)
        return result


def classify_request(
    question: str,
    classifier: QueryClassifier,
    *,
    force_deep: bool = False,
) -> Classification:
    """Apply the ``force_deep`` override, otherwise defer to *classifier*."""
    if force_deep:
        return Classification(ModelTier.DEEP, FORCED_DEEP)
    return classifier.classify(question)
