"""Tests for top-level package exports."""

from __future__ import annotations

import agency_chat


class TestTopLevelExports:
    """Verify all expected symbols are importable from the top-level package."""

    def test_pipeline_exports(self) -> None:
        from agency_chat import ChatOrchestrator, RequestPlan

        assert ChatOrchestrator is not None
        assert RequestPlan is not None

    def test_stage_exports(self) -> None:
        from agency_chat import (
            BudgetGovernor,
            CallbackClassifier,
            ContextAssembler,
            HistoryCompressor,
            InMemoryResponseCache,
            LocalAnswerMatcher,
            PatternTierClassifier,
            SlidingWindowRateLimiter,
            UsageLedger,
        )

        assert BudgetGovernor is not None
        assert CallbackClassifier is not None
        assert ContextAssembler is not None
        assert HistoryCompressor is not None
        assert InMemoryResponseCache is not None
        assert LocalAnswerMatcher is not None
        assert PatternTierClassifier is not None
        assert SlidingWindowRateLimiter is not None
        assert UsageLedger is not None

    def test_exception_hierarchy(self) -> None:
        from agency_chat import (
            AgencyChatError,
            AnnotationParseError,
            ConfigurationError,
            ContextAssemblyError,
            HistoryCompressionError,
            ProviderError,
            RateLimitExceededError,
            StorageError,
        )

        for exc in (
            AnnotationParseError,
            ConfigurationError,
            ContextAssemblyError,
            HistoryCompressionError,
            ProviderError,
            RateLimitExceededError,
            StorageError,
        ):
            assert issubclass(exc, AgencyChatError)

    def test_all_is_complete(self) -> None:
        for name in agency_chat.__all__:
            assert hasattr(agency_chat, name), name

    def test_all_is_sorted(self) -> None:
        assert agency_chat.__all__ == sorted(agency_chat.__all__)

    def test_version(self) -> None:
        assert isinstance(agency_chat.__version__, str)
