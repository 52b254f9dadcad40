"""Model tiers and their per-tier capability profiles."""

from __future__ import annotations

from enum import StrEnum
from types import MappingProxyType

from pydantic import BaseModel, ConfigDict, Field

LOCAL_TIER_LABEL = "Instant"


class ContextLevel(StrEnum):
    """How much of the assembled context survives compression."""

    MINIMAL = "minimal"
    FOCUSED = "focused"
    FULL = "full"


class ModelTier(StrEnum):
    """Discrete language-model capability/cost levels, totally ordered.

    ``cheap < mid < deep``. Comparison operators follow that order
    rather than the alphabetical order of the string values.
    """

    CHEAP = "cheap"
    MID = "mid"
    DEEP = "deep"

    @property
    def rank(self) -> int:
        return _TIER_ORDER.index(self)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, ModelTier):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, ModelTier):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, ModelTier):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, ModelTier):
            return NotImplemented
        return self.rank >= other.rank


_TIER_ORDER: tuple[ModelTier, ...] = (ModelTier.CHEAP, ModelTier.MID, ModelTier.DEEP)


def min_tier(a: ModelTier, b: ModelTier) -> ModelTier:
    """Return the lower of two tiers under the tier order."""
    return a if a.rank <= b.rank else b


class TierProfile(BaseModel):
    """Everything the pipeline needs to know about one tier.

    Parameters:
        tier: The tier this profile describes.
        model_id: Provider model identifier used for this tier.
        max_output_tokens: Output-token cap passed to the provider.
        context_level: Detail level for the compressed context payload.
        label: Human-readable label shown to the user.
        cost_weight: Relative cost multiplier used by the budget governor
            (deep tier = 1.0).
    """

    model_config = ConfigDict(frozen=True)

    tier: ModelTier
    model_id: str
    max_output_tokens: int = Field(gt=0)
    context_level: ContextLevel
    label: str
    cost_weight: float = Field(default=1.0, gt=0.0)


DEFAULT_TIER_PROFILES: MappingProxyType[ModelTier, TierProfile] = MappingProxyType(
    {
        ModelTier.CHEAP: TierProfile(
            tier=ModelTier.CHEAP,
            model_id="claude-haiku-4-5-20251001",
            max_output_tokens=1024,
            context_level=ContextLevel.MINIMAL,
            label="Quick",
            cost_weight=0.03,
        ),
        ModelTier.MID: TierProfile(
            tier=ModelTier.MID,
            model_id="claude-sonnet-4-5-20250929",
            max_output_tokens=2048,
            context_level=ContextLevel.FOCUSED,
            label="Standard",
            cost_weight=0.1,
        ),
        ModelTier.DEEP: TierProfile(
            tier=ModelTier.DEEP,
            model_id="claude-opus-4-6",
            max_output_tokens=4096,
            context_level=ContextLevel.FULL,
            label="Deep",
            cost_weight=1.0,
        ),
    }
)
