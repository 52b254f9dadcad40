"""Request lifecycle for one chat turn.

The orchestrator walks a query through the tiers, cheapest first::

    admit -> local answer -> cached answer -> classify -> budget cap
          -> context -> history -> model stream -> cache write -> usage

Every request produces events in the order ``meta``, ``text*``, then
exactly one of ``done`` or ``error``. Local and cached answers stop
early and never touch the provider. Cache reads and writes, usage
writes, context assembly and history compression are all best-effort:
their failures are logged and the request carries on. A provider
failure ends the stream with ``error`` and records nothing.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator, Callable, Collection, Mapping
from dataclasses import dataclass
from datetime import UTC, date, datetime
from types import MappingProxyType
from typing import TYPE_CHECKING, Self

from agency_chat.annotations import annotation_fragments, extract_annotations, render_annotations
from agency_chat.budget.governor import BudgetGovernor, cap_tier
from agency_chat.cache.backend import InMemoryResponseCache, normalize_query_key
from agency_chat.context.compressor import compress_context, fallback_context
from agency_chat.exceptions import AgencyChatError, RateLimitExceededError, StorageError
from agency_chat.local.matcher import LocalAnswerMatcher
from agency_chat.memory.history import HistoryCompressor
from agency_chat.models.cache import CacheEntry
from agency_chat.models.events import ChatStreamEvent, DoneEvent, ErrorEvent, MetaEvent, TextEvent
from agency_chat.models.query import ChatMessage, ChatQuery
from agency_chat.models.streaming import StreamUsage
from agency_chat.models.tiers import (
    DEFAULT_TIER_PROFILES,
    LOCAL_TIER_LABEL,
    ContextLevel,
    ModelTier,
    TierProfile,
)
from agency_chat.observability.usage import JsonlUsageStore, UsageLedger
from agency_chat.prompts import system_prompt
from agency_chat.query.classifiers import PatternTierClassifier, classify_request
from agency_chat.ratelimit.limiter import RateLimitDecision, SlidingWindowRateLimiter

if TYPE_CHECKING:
    from agency_chat.config import Settings
    from agency_chat.context.assembler import ContextAssembler
    from agency_chat.protocols.cache import ResponseCache
    from agency_chat.protocols.classifier import QueryClassifier
    from agency_chat.protocols.provider import ChatProvider
    from agency_chat.protocols.ratelimit import RateLimiter

logger = logging.getLogger(__name__)

DEFAULT_CACHE_TIERS: frozenset[ModelTier] = frozenset({ModelTier.CHEAP, ModelTier.MID})

LOCAL_MODEL_ID = "local"
CACHED_MODEL_ID = "cached"


@dataclass(frozen=True, slots=True)
class RequestPlan:
    """Routing decisions made before the provider is called."""

    tier: ModelTier
    query_type: str
    profile: TierProfile
    system: str
    messages: list[ChatMessage]
    budget_warning: str | None = None


class ChatOrchestrator:
    """Composes the pipeline stages into one streamed answer per request.

    All collaborators are injected; anything omitted gets the in-process
    default. Shared state lives only in the rate limiter and the
    response cache, both of which are safe to share across concurrent
    requests.

    Parameters:
        provider: The language-model provider.
        limiter: Per-session admission gate.
        matcher: Zero-cost local answer rules.
        cache: Response cache.
        classifier: Question to tier classifier.
        ledger: Usage ledger, also read by the default budget governor.
        governor: Spend governor capping the tier.
        assembler: Domain context assembler. ``None`` uses the
            unavailable-data fallback context for every request.
        history: History compressor. Defaults to one summarizing with
            the cheap tier's model.
        profiles: Tier profiles (model id, output cap, context level).
        cache_tiers: Tiers whose answers are written to the cache.
        timeout: Seconds allowed for the provider stream, or ``None``. Time
            the consumer spends handling each event does not count.
        today: Returns the date stamped into system prompts.
    """

    __slots__ = (
        "_assembler",
        "_cache",
        "_cache_tiers",
        "_classifier",
        "_governor",
        "_history",
        "_ledger",
        "_limiter",
        "_matcher",
        "_profiles",
        "_provider",
        "_timeout",
        "_today",
    )

    def __init__(
        self,
        provider: ChatProvider,
        *,
        limiter: RateLimiter | None = None,
        matcher: LocalAnswerMatcher | None = None,
        cache: ResponseCache | None = None,
        classifier: QueryClassifier | None = None,
        ledger: UsageLedger | None = None,
        governor: BudgetGovernor | None = None,
        assembler: ContextAssembler | None = None,
        history: HistoryCompressor | None = None,
        profiles: Mapping[ModelTier, TierProfile] = DEFAULT_TIER_PROFILES,
        cache_tiers: Collection[ModelTier] = DEFAULT_CACHE_TIERS,
        timeout: float | None = None,
        today: Callable[[], date] = lambda: datetime.now(UTC).date(),
    ) -> None:
        missing = [tier for tier in ModelTier if tier not in profiles]
        if missing:
            msg = f"profiles missing tiers: {', '.join(missing)}"
            raise ValueError(msg)
        self._provider = provider
        self._profiles = MappingProxyType(dict(profiles))
        self._limiter: RateLimiter = limiter if limiter is not None else SlidingWindowRateLimiter()
        self._matcher = matcher if matcher is not None else LocalAnswerMatcher()
        self._cache: ResponseCache = cache if cache is not None else InMemoryResponseCache()
        self._classifier: QueryClassifier = (
            classifier if classifier is not None else PatternTierClassifier()
        )
        self._ledger = ledger if ledger is not None else UsageLedger()
        self._governor = (
            governor if governor is not None else BudgetGovernor(self._ledger, self._profiles)
        )
        self._assembler = assembler
        self._history = (
            history
            if history is not None
            else HistoryCompressor(provider, summary_model=self._profiles[ModelTier.CHEAP].model_id)
        )
        self._cache_tiers = frozenset(cache_tiers)
        self._timeout = timeout
        self._today = today

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        provider: ChatProvider,
        *,
        assembler: ContextAssembler | None = None,
    ) -> Self:
        """Build an orchestrator wired from ``Settings``."""
        profiles = settings.tier_profiles()
        store = JsonlUsageStore(settings.usage_log_path) if settings.usage_log_path else None
        ledger = UsageLedger(store)
        return cls(
            provider,
            limiter=SlidingWindowRateLimiter(settings.rate_limit, settings.rate_window_seconds),
            cache=InMemoryResponseCache(settings.cache_max_size),
            ledger=ledger,
            governor=BudgetGovernor(ledger, profiles, daily_budget=settings.daily_token_budget),
            assembler=assembler,
            history=HistoryCompressor(
                provider,
                summary_model=profiles[ModelTier.CHEAP].model_id,
                max_turns=settings.history_max_turns,
                compress_threshold=settings.history_compress_threshold,
                keep_recent=settings.history_keep_recent,
                fallback_turns=settings.history_fallback_turns,
                max_tokens=settings.history_max_tokens,
            ),
            profiles=profiles,
            cache_tiers=settings.cache_tiers,
            timeout=settings.provider_timeout_seconds,
        )

    def __repr__(self) -> str:
        return (
            f"ChatOrchestrator(provider={type(self._provider).__name__}, "
            f"cache_tiers={sorted(self._cache_tiers)})"
        )

    @property
    def limiter(self) -> RateLimiter:
        return self._limiter

    @property
    def ledger(self) -> UsageLedger:
        return self._ledger

    @property
    def cache(self) -> ResponseCache:
        return self._cache

    @property
    def profiles(self) -> Mapping[ModelTier, TierProfile]:
        return self._profiles

    # ------------------------------------------------------------------
    # Admission
    # ------------------------------------------------------------------

    def admit(self, query: ChatQuery) -> RateLimitDecision:
        """Consume one rate-limit slot for the query's session.

        Raises:
            RateLimitExceededError: If the session's quota is used up.
        """
        decision = self._limiter.admit(query.session_id)
        if not decision.allowed:
            limit = getattr(self._limiter, "limit", None)
            msg = (
                f"Rate limit exceeded \N{EM DASH} max {limit} messages per hour"
                if limit is not None
                else "Rate limit exceeded"
            )
            raise RateLimitExceededError(msg, remaining=0)
        return decision

    def handle(
        self, query: ChatQuery
    ) -> tuple[RateLimitDecision, AsyncIterator[ChatStreamEvent]]:
        """Admit *query* and return its decision with the event stream.

        Raises:
            RateLimitExceededError: Before any event, if not admitted.
        """
        decision = self.admit(query)
        return decision, self.stream(query, decision)

    # ------------------------------------------------------------------
    # Streaming
    # ------------------------------------------------------------------

    async def stream(
        self, query: ChatQuery, decision: RateLimitDecision
    ) -> AsyncIterator[ChatStreamEvent]:
        """Answer an admitted *query* as an ordered event stream.

        Parameters:
            query: The chat turn.
            decision: The admission decision from ``admit``.

        Yields:
            ``MetaEvent``, zero or more ``TextEvent`` and a final
            ``DoneEvent`` or ``ErrorEvent``.
        """
        remaining = decision.remaining

        if not query.force_deep:
            local = self._matcher.try_local(query.message, query.snapshot)
            if local is not None:
                logger.debug("Local answer for session=%r", query.session_id)
                self._record_usage(
                    query,
                    tier=ModelTier.CHEAP,
                    model_id=LOCAL_MODEL_ID,
                    query_type="local_answer",
                    was_local=True,
                )
                yield MetaEvent(tier=ModelTier.CHEAP, tier_label=LOCAL_TIER_LABEL, local=True)
                yield TextEvent(text=local.text + render_annotations(local.suggestions, []))
                yield DoneEvent(
                    tier=ModelTier.CHEAP,
                    tier_label=LOCAL_TIER_LABEL,
                    local=True,
                    remaining=remaining,
                )
                return

            key = normalize_query_key(query.message, query.current_page)
            entry = self._cache_get(key)
            if entry is not None:
                logger.debug("Cache hit for session=%r tier=%s", query.session_id, entry.tier)
                self._record_usage(
                    query,
                    tier=entry.tier,
                    model_id=CACHED_MODEL_ID,
                    query_type="cached",
                    was_cached=True,
                )
                label = self._profiles[entry.tier].label
                yield MetaEvent(tier=entry.tier, tier_label=label, cached=True)
                yield TextEvent(text=entry.response_text)
                for fragment in annotation_fragments(entry.suggestions, entry.actions):
                    yield TextEvent(text=fragment)
                yield DoneEvent(tier=entry.tier, tier_label=label, cached=True, remaining=remaining)
                return

        plan = await self.plan(query)
        profile = plan.profile
        yield MetaEvent(
            tier=plan.tier, tier_label=profile.label, budget_warning=plan.budget_warning
        )

        chunks: list[str] = []
        # The deadline covers provider awaits only, never a suspended yield.
        deadline = (
            None if self._timeout is None else asyncio.get_running_loop().time() + self._timeout
        )
        try:
            async with contextlib.AsyncExitStack() as stack:
                async with asyncio.timeout_at(deadline):
                    provider_stream = await stack.enter_async_context(
                        self._provider.stream(
                            model=profile.model_id,
                            max_tokens=profile.max_output_tokens,
                            system=plan.system,
                            messages=plan.messages,
                        )
                    )
                fragments = await stack.enter_async_context(
                    contextlib.aclosing(provider_stream.text_stream())
                )
                while True:
                    async with asyncio.timeout_at(deadline):
                        fragment = await anext(fragments, None)
                    if fragment is None:
                        break
                    chunks.append(fragment)
                    yield TextEvent(text=fragment)
                async with asyncio.timeout_at(deadline):
                    usage = await provider_stream.final_usage()
        except TimeoutError:
            logger.warning("Provider stream timed out after %ss", self._timeout)
            yield ErrorEvent(error="Model response timed out")
            return
        except Exception as e:
            logger.exception("Provider stream failed")
            yield ErrorEvent(error=str(e) or "Stream error")
            return

        self._record_usage(
            query,
            tier=plan.tier,
            model_id=profile.model_id,
            query_type=plan.query_type,
            usage=usage,
        )
        self._cache_answer(query, plan.tier, "".join(chunks), usage)
        yield DoneEvent(
            tier=plan.tier,
            tier_label=profile.label,
            usage=usage,
            remaining=remaining,
        )

    async def plan(self, query: ChatQuery) -> RequestPlan:
        """Classify, cap, and build the prompt for a provider call."""
        classification = classify_request(
            query.message, self._classifier, force_deep=query.force_deep
        )
        status = self._governor.status()
        tier = cap_tier(classification.tier, status)
        if tier != classification.tier:
            logger.info(
                "Tier capped %s -> %s (%s)", classification.tier, tier, status.warning
            )
        profile = self._profiles[tier]

        context = await self._build_context(query.current_page, profile.context_level)
        messages = await self._history.compress(query.conversation_history, query.message)
        system = system_prompt(
            tier, today=self._today(), page=query.current_page, context=context
        )
        return RequestPlan(
            tier=tier,
            query_type=classification.query_type,
            profile=profile,
            system=system,
            messages=messages,
            budget_warning=status.warning,
        )

    # ------------------------------------------------------------------
    # Best-effort stages
    # ------------------------------------------------------------------

    async def _build_context(self, page: str, level: ContextLevel) -> str:
        if self._assembler is None:
            return fallback_context(page)
        try:
            raw = await self._assembler.assemble()
            return compress_context(raw, page, level)
        except Exception:
            logger.exception("Context assembly failed, using fallback context")
            return fallback_context(page)

    def _cache_get(self, key: str) -> CacheEntry | None:
        try:
            return self._cache.get(key)
        except StorageError:
            logger.exception("Cache read failed, treating as miss")
            return None

    def _cache_answer(
        self, query: ChatQuery, tier: ModelTier, text: str, usage: StreamUsage
    ) -> None:
        if tier not in self._cache_tiers:
            return
        annotated = extract_annotations(text)
        if not annotated.clean:
            return
        key = normalize_query_key(query.message, query.current_page)
        entry = CacheEntry(
            query_key=key,
            tier=tier,
            response_text=annotated.clean,
            suggestions=annotated.suggestions,
            actions=annotated.actions,
            input_tokens=usage.input_tokens,
            output_tokens=usage.output_tokens,
        )
        try:
            self._cache.put(key, entry)
        except AgencyChatError:
            logger.exception("Cache write failed")

    def _record_usage(
        self,
        query: ChatQuery,
        *,
        tier: ModelTier,
        model_id: str,
        query_type: str,
        usage: StreamUsage | None = None,
        was_cached: bool = False,
        was_local: bool = False,
    ) -> None:
        usage = usage or StreamUsage()
        try:
            self._ledger.record(
                session_id=query.session_id,
                tier=tier,
                model_id=model_id,
                query_type=query_type,
                page=query.current_page,
                input_tokens=usage.input_tokens,
                output_tokens=usage.output_tokens,
                was_cached=was_cached,
                was_local=was_local,
            )
        except StorageError:
            logger.exception("Usage write failed")
