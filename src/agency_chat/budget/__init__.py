"""Spend-based tier capping."""

from .governor import BUDGET_THRESHOLDS, DEFAULT_DAILY_BUDGET, BudgetGovernor, cap_tier

__all__ = [
    "BUDGET_THRESHOLDS",
    "DEFAULT_DAILY_BUDGET",
    "BudgetGovernor",
    "cap_tier",
]
