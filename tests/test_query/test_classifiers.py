"""Tests for agency_chat.query.classifiers."""

from __future__ import annotations

import pytest

from agency_chat.models.tiers import ModelTier
from agency_chat.protocols.classifier import QueryClassifier
from agency_chat.query.classifiers import (
    CHEAP_PATTERNS,
    FORCED_DEEP,
    GENERAL,
    CallbackClassifier,
    Classification,
    PatternTierClassifier,
    TierPattern,
    classify_request,
)


class TestPatternTierClassifier:
    """Regex routing to the cheapest adequate tier."""

    def test_protocol_compliance(self) -> None:
        assert isinstance(PatternTierClassifier(), QueryClassifier)

    @pytest.mark.parametrize(
        ("question", "query_type"),
        [
            ("What is the GPL health score?", "health_lookup"),
            ("How many projects are delayed?", "count_lookup"),
            ("What is the current reserve margin?", "metric_lookup"),
            ("Show me the overdue tasks", "list_lookup"),
            ("When is my next meeting?", "schedule_lookup"),
        ],
    )
    def test_cheap_lookups(self, question: str, query_type: str) -> None:
        result = PatternTierClassifier().classify(question)
        assert result == Classification(ModelTier.CHEAP, query_type)

    @pytest.mark.parametrize(
        ("question", "query_type"),
        [
            ("Compare all agencies on delivery", "cross_agency_analysis"),
            ("What do you recommend for GWI collections?", "strategic_advice"),
            ("Why did GWI revenue drop last month?", "causal_analysis"),
            ("Forecast peak demand for next year", "forecasting"),
            ("Give me a risk assessment of the portfolio", "risk_analysis"),
            ("What if GPL loses two more units?", "scenario_analysis"),
        ],
    )
    def test_deep_analysis(self, question: str, query_type: str) -> None:
        result = PatternTierClassifier().classify(question)
        assert result == Classification(ModelTier.DEEP, query_type)

    def test_unmatched_question_defaults_to_mid(self) -> None:
        result = PatternTierClassifier().classify("Tell me about GWI this month")
        assert result == Classification(ModelTier.MID, GENERAL)

    def test_deep_wins_over_cheap(self) -> None:
        # Matches a cheap count pattern and a deep strategy pattern.
        result = PatternTierClassifier().classify("How many projects should we prioritize?")
        assert result.tier is ModelTier.DEEP

    def test_case_insensitive(self) -> None:
        assert PatternTierClassifier().classify("WHAT IS THE GPL HEALTH SCORE").tier is (
            ModelTier.CHEAP
        )

    def test_deterministic(self) -> None:
        classifier = PatternTierClassifier()
        question = "Brief me on everything happening this week"
        assert classifier.classify(question) == classifier.classify(question)

    def test_custom_tables_and_default(self) -> None:
        classifier = PatternTierClassifier(
            deep_patterns=[TierPattern.compile(r"essay", "long_form")],
            cheap_patterns=CHEAP_PATTERNS,
            default=Classification(ModelTier.CHEAP, "fallback"),
        )
        assert classifier.classify("write an essay").tier is ModelTier.DEEP
        assert classifier.classify("hello") == Classification(ModelTier.CHEAP, "fallback")

    def test_repr(self) -> None:
        assert "PatternTierClassifier" in repr(PatternTierClassifier())


class TestCallbackClassifier:
    """Delegation to a user-supplied function."""

    def test_delegates(self) -> None:
        seen: list[str] = []

        def fn(question: str) -> Classification:
            seen.append(question)
            return Classification(ModelTier.DEEP, "custom")

        classifier = CallbackClassifier(fn)
        assert isinstance(classifier, QueryClassifier)
        assert classifier.classify("anything") == Classification(ModelTier.DEEP, "custom")
        assert seen == ["anything"]


class TestClassifyRequest:
    """The force_deep override."""

    def test_force_deep_skips_classifier(self) -> None:
        def explode(_question: str) -> Classification:
            msg = "classifier should not run"
            raise AssertionError(msg)

        result = classify_request("What is the GPL health score?", CallbackClassifier(explode), force_deep=True)
        assert result == Classification(ModelTier.DEEP, FORCED_DEEP)

    def test_without_override_defers(self) -> None:
        result = classify_request("What is the GPL health score?", PatternTierClassifier())
        assert result.tier is ModelTier.CHEAP
