"""Core data models for agency-chat."""

from .cache import CacheEntry, ChatAction
from .context import (
    AgencyPortfolio,
    CalendarEvent,
    HealthScores,
    PortfolioSummary,
    PowerData,
    RawContext,
    TaskItem,
    WaterData,
    gap_message,
)
from .events import (
    ChatStreamEvent,
    DoneEvent,
    ErrorEvent,
    MetaEvent,
    TextEvent,
    is_terminal,
    parse_event,
)
from .query import ANONYMOUS_SESSION, ChatMessage, ChatQuery, Role
from .snapshot import (
    AgencyHealth,
    AirportMetrics,
    AviationMetrics,
    MetricSnapshot,
    PowerMetrics,
    ProjectCounts,
    TaskCounts,
    WaterMetrics,
)
from .streaming import StreamResult, StreamUsage
from .tiers import (
    DEFAULT_TIER_PROFILES,
    LOCAL_TIER_LABEL,
    ContextLevel,
    ModelTier,
    TierProfile,
    min_tier,
)
from .usage import BudgetStatus, DailyUsage, UsageEvent, UsageStats

__all__ = [
    "ANONYMOUS_SESSION",
    "DEFAULT_TIER_PROFILES",
    "LOCAL_TIER_LABEL",
    "AgencyHealth",
    "AgencyPortfolio",
    "AirportMetrics",
    "AviationMetrics",
    "BudgetStatus",
    "CacheEntry",
    "CalendarEvent",
    "ChatAction",
    "ChatMessage",
    "ChatQuery",
    "ChatStreamEvent",
    "ContextLevel",
    "DailyUsage",
    "DoneEvent",
    "ErrorEvent",
    "HealthScores",
    "MetaEvent",
    "MetricSnapshot",
    "ModelTier",
    "PortfolioSummary",
    "PowerData",
    "PowerMetrics",
    "ProjectCounts",
    "RawContext",
    "Role",
    "StreamResult",
    "StreamUsage",
    "TaskCounts",
    "TaskItem",
    "TextEvent",
    "TierProfile",
    "UsageEvent",
    "UsageStats",
    "WaterData",
    "WaterMetrics",
    "gap_message",
    "is_terminal",
    "min_tier",
]
