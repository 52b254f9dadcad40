"""Daily spend governor that caps the tier of new requests."""

from __future__ import annotations

import logging
from collections.abc import Mapping

from agency_chat.exceptions import StorageError
from agency_chat.models.tiers import DEFAULT_TIER_PROFILES, ModelTier, TierProfile, min_tier
from agency_chat.models.usage import BudgetStatus
from agency_chat.observability.usage import UsageLedger

logger = logging.getLogger(__name__)

DEFAULT_DAILY_BUDGET = 33_000

# (threshold pct, tier cap, warning), checked highest first.
BUDGET_THRESHOLDS: tuple[tuple[float, ModelTier, str], ...] = (
    (100.0, ModelTier.CHEAP, "Daily AI budget exhausted. Using Quick mode only."),
    (95.0, ModelTier.CHEAP, "AI budget nearly exhausted (95%). Switching to Quick mode."),
    (80.0, ModelTier.MID, "AI budget at 80%. Deep analysis temporarily limited."),
)


class BudgetGovernor:
    """Derives a tier cap from today's weighted token spend.

    Spend is the sum over today's usage events of
    ``(input_tokens + output_tokens) * cost_weight`` for the event's tier,
    expressed in top-tier-equivalent tokens. ``status()`` is a pure read
    and safe to call on every request. If the ledger cannot be read the
    governor fails open and allows every tier.

    Parameters:
        ledger: Source of usage events.
        profiles: Tier profiles supplying each tier's ``cost_weight``.
        daily_budget: Weighted-token ceiling per UTC day.
    """

    __slots__ = ("_daily_budget", "_ledger", "_weights")

    def __init__(
        self,
        ledger: UsageLedger,
        profiles: Mapping[ModelTier, TierProfile] = DEFAULT_TIER_PROFILES,
        *,
        daily_budget: int = DEFAULT_DAILY_BUDGET,
    ) -> None:
        if daily_budget <= 0:
            msg = f"daily_budget must be positive, got {daily_budget}"
            raise ValueError(msg)
        self._ledger = ledger
        self._weights = {tier: profile.cost_weight for tier, profile in profiles.items()}
        self._daily_budget = daily_budget

    def __repr__(self) -> str:
        return f"BudgetGovernor(daily_budget={self._daily_budget})"

    @property
    def daily_budget(self) -> int:
        return self._daily_budget

    def weighted_spend(self) -> float:
        """Return today's spend in weighted tokens.

        Raises:
            StorageError: If the ledger cannot be read.
        """
        total = 0.0
        for event in self._ledger.today():
            total += event.total_tokens * self._weights.get(event.tier, 1.0)
        return total

    def status(self) -> BudgetStatus:
        """Compute the current ``BudgetStatus``. Never raises."""
        try:
            used = self.weighted_spend()
        except StorageError:
            logger.exception("Budget read failed, allowing all tiers")
            return BudgetStatus(limit=self._daily_budget)

        pct = min(100.0, used / self._daily_budget * 100)
        tier_cap = ModelTier.DEEP
        warning: str | None = None
        for threshold, cap, message in BUDGET_THRESHOLDS:
            if pct >= threshold:
                tier_cap, warning = cap, message
                break

        if warning is not None:
            logger.info("Budget at %.0f%%, capping tier at %s", pct, tier_cap)
        return BudgetStatus(
            tier_cap=tier_cap,
            used=round(used),
            limit=self._daily_budget,
            pct=round(pct),
            warning=warning,
        )


def cap_tier(tier: ModelTier, status: BudgetStatus) -> ModelTier:
    """Return ``min(tier, status.tier_cap)``. Never raises a tier."""
    return min_tier(tier, status.tier_cap)
