"""agency-chat: Tiered, cost-controlled assistant pipeline for agency oversight.

Pipeline:
    ChatOrchestrator, RequestPlan

Stages:
    SlidingWindowRateLimiter, LocalAnswerMatcher, InMemoryResponseCache,
    PatternTierClassifier, CallbackClassifier, BudgetGovernor,
    ContextAssembler, HistoryCompressor, UsageLedger

Providers:
    AnthropicProvider

Protocols (extension points):
    ChatProvider, ProviderStream, DomainDataProvider, QueryClassifier,
    RateLimiter, ResponseCache, Tokenizer, UsageStore

Storage:
    InMemoryUsageStore, JsonlUsageStore

Models & Types:
    ChatQuery, ChatMessage, MetricSnapshot, ModelTier, TierProfile,
    ChatStreamEvent, MetaEvent, TextEvent, DoneEvent, ErrorEvent,
    UsageEvent, UsageStats, BudgetStatus, CacheEntry, ChatAction,
    StreamResult, StreamUsage

Configuration:
    Settings, get_settings

Exceptions:
    AgencyChatError, ConfigurationError, RateLimitExceededError,
    ContextAssemblyError, HistoryCompressionError, ProviderError,
    AnnotationParseError, StorageError

The HTTP app lives in ``agency_chat.server`` and the command line in
``agency_chat.cli``; neither is imported here.
"""

from importlib.metadata import PackageNotFoundError, version

from agency_chat.annotations import extract_annotations, render_annotations
from agency_chat.budget import BudgetGovernor, cap_tier
from agency_chat.cache import InMemoryResponseCache, normalize_query_key
from agency_chat.config import Settings, get_settings
from agency_chat.context import ContextAssembler, compress_context, fallback_context
from agency_chat.exceptions import (
    AgencyChatError,
    AnnotationParseError,
    ConfigurationError,
    ContextAssemblyError,
    HistoryCompressionError,
    ProviderError,
    RateLimitExceededError,
    StorageError,
)
from agency_chat.local import LocalAnswerMatcher
from agency_chat.memory import HistoryCompressor
from agency_chat.models import (
    BudgetStatus,
    CacheEntry,
    ChatAction,
    ChatMessage,
    ChatQuery,
    ChatStreamEvent,
    DoneEvent,
    ErrorEvent,
    MetaEvent,
    MetricSnapshot,
    ModelTier,
    StreamResult,
    StreamUsage,
    TextEvent,
    TierProfile,
    UsageEvent,
    UsageStats,
)
from agency_chat.observability import InMemoryUsageStore, JsonlUsageStore, UsageLedger
from agency_chat.orchestrator import ChatOrchestrator, RequestPlan
from agency_chat.protocols import (
    ChatProvider,
    DomainDataProvider,
    ProviderStream,
    QueryClassifier,
    RateLimiter,
    ResponseCache,
    Tokenizer,
    UsageStore,
)
from agency_chat.providers import AnthropicProvider
from agency_chat.query import CallbackClassifier, PatternTierClassifier, classify_request
from agency_chat.ratelimit import SlidingWindowRateLimiter
from agency_chat.tokens import TiktokenCounter

try:
    __version__ = version("agency-chat")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"

__all__ = [
    "AgencyChatError",
    "AnnotationParseError",
    "AnthropicProvider",
    "BudgetGovernor",
    "BudgetStatus",
    "CacheEntry",
    "CallbackClassifier",
    "ChatAction",
    "ChatMessage",
    "ChatOrchestrator",
    "ChatProvider",
    "ChatQuery",
    "ChatStreamEvent",
    "ConfigurationError",
    "ContextAssembler",
    "ContextAssemblyError",
    "DomainDataProvider",
    "DoneEvent",
    "ErrorEvent",
    "HistoryCompressionError",
    "HistoryCompressor",
    "InMemoryResponseCache",
    "InMemoryUsageStore",
    "JsonlUsageStore",
    "LocalAnswerMatcher",
    "MetaEvent",
    "MetricSnapshot",
    "ModelTier",
    "PatternTierClassifier",
    "ProviderError",
    "ProviderStream",
    "QueryClassifier",
    "RateLimitExceededError",
    "RateLimiter",
    "RequestPlan",
    "ResponseCache",
    "Settings",
    "SlidingWindowRateLimiter",
    "StorageError",
    "StreamResult",
    "StreamUsage",
    "TextEvent",
    "TierProfile",
    "TiktokenCounter",
    "Tokenizer",
    "UsageEvent",
    "UsageLedger",
    "UsageStats",
    "UsageStore",
    "cap_tier",
    "classify_request",
    "compress_context",
    "extract_annotations",
    "fallback_context",
    "get_settings",
    "normalize_query_key",
    "render_annotations",
]
