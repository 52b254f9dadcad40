"""Usage ledger and budget records."""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field

from .tiers import ModelTier


class UsageEvent(BaseModel):
    """One answer produced by the pipeline and what it cost.

    Cached and local answers are recorded with zero tokens so that hit
    rates can be reported alongside spend.
    """

    model_config = ConfigDict(frozen=True)

    session_id: str
    tier: ModelTier
    model_id: str
    input_tokens: int = Field(default=0, ge=0)
    output_tokens: int = Field(default=0, ge=0)
    query_type: str
    page: str = "/"
    was_cached: bool = False
    was_local: bool = False
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


class BudgetStatus(BaseModel):
    """Derived spend status for the current budgeting window.

    Parameters:
        tier_cap: Highest tier allowed for new requests.
        used: Weighted tokens consumed so far in the window.
        limit: Configured weighted-token ceiling for the window.
        pct: ``used / limit`` as a percentage, clamped to 100.
        warning: Human-readable warning once a threshold is crossed.
    """

    model_config = ConfigDict(frozen=True)

    tier_cap: ModelTier = ModelTier.DEEP
    used: int = 0
    limit: int = 0
    pct: int = 0
    warning: str | None = None


class DailyUsage(BaseModel):
    """Per-day usage aggregate."""

    date: str
    tokens_by_tier: dict[ModelTier, int] = Field(default_factory=dict)
    cached_count: int = 0
    local_count: int = 0
    total_requests: int = 0


class UsageStats(BaseModel):
    """Usage aggregate over a window of days."""

    daily: list[DailyUsage] = Field(default_factory=list)
    total_tokens: int = 0
    total_requests: int = 0
    cached_pct: int = 0
    local_pct: int = 0
    by_tier: dict[ModelTier, int] = Field(
        default_factory=lambda: {tier: 0 for tier in ModelTier}
    )
