"""Tests for agency_chat.server."""

from __future__ import annotations

from datetime import timedelta
from typing import Any

import pytest
from fastapi.testclient import TestClient

from agency_chat import __version__
from agency_chat.budget.governor import BudgetGovernor
from agency_chat.config import Settings
from agency_chat.exceptions import ProviderError
from agency_chat.models.events import DoneEvent, TextEvent, parse_event
from agency_chat.models.tiers import ModelTier
from agency_chat.models.usage import UsageEvent
from agency_chat.ratelimit.limiter import SlidingWindowRateLimiter
from agency_chat.server import create_app, sse_record
from tests.conftest import NOW, FakeProvider, make_ledger, make_orchestrator, make_snapshot


def _events(body: str) -> list[Any]:
    records = [chunk for chunk in body.split("\n\n") if chunk]
    assert all(r.startswith("data: ") for r in records)
    return [parse_event(r.removeprefix("data: ")) for r in records]


@pytest.fixture()
def client() -> TestClient:
    return TestClient(create_app(make_orchestrator()))


class TestSseRecord:
    def test_format(self) -> None:
        assert sse_record(TextEvent(text="hi")) == 'data: {"type":"text","text":"hi"}\n\n'


class TestHealth:
    def test_health(self, client: TestClient) -> None:
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok", "version": __version__}


class TestChat:
    def test_streams_events(self, client: TestClient) -> None:
        response = client.post(
            "/api/ai/chat",
            json={"message": "Tell me about GWI this month", "current_page": "/intel/gwi"},
        )
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        assert response.headers["cache-control"] == "no-cache"
        assert response.headers["x-ai-tier"] == "mid"
        assert response.headers["x-rate-limit-remaining"] == "19"

        events = _events(response.text)
        assert [e.type for e in events] == ["meta", "text", "text", "done"]
        assert "".join(e.text for e in events if e.type == "text") == "GPL reserve is **50 MW**."
        assert isinstance(events[-1], DoneEvent)
        assert events[-1].usage.input_tokens == 1200

    def test_local_answer_over_http(self, client: TestClient) -> None:
        snapshot = make_snapshot().model_dump(mode="json")
        response = client.post(
            "/api/ai/chat",
            json={"message": "What is the current reserve margin?", "snapshot": snapshot},
        )
        assert response.headers["x-ai-tier"] == "cheap"
        events = _events(response.text)
        assert events[0].local
        assert events[-1].local

    def test_provider_error_streams_error_event(self) -> None:
        provider = FakeProvider(["half"], error=ProviderError("overloaded"))
        client = TestClient(create_app(make_orchestrator(provider)))
        response = client.post("/api/ai/chat", json={"message": "Tell me about GWI"})
        assert response.status_code == 200
        events = _events(response.text)
        assert events[-1].type == "error"
        assert events[-1].error == "overloaded"

    def test_budget_warning_header(self, client: TestClient) -> None:
        response = client.post("/api/ai/chat", json={"message": "Tell me about GWI this month"})
        assert "x-ai-budget-warning" not in response.headers

        ledger = make_ledger()
        ledger.record(
            session_id="x", tier=ModelTier.DEEP, model_id="m", query_type="q", input_tokens=2000
        )
        orchestrator = make_orchestrator(
            ledger=ledger, governor=BudgetGovernor(ledger, daily_budget=1000)
        )
        response = TestClient(create_app(orchestrator)).post(
            "/api/ai/chat", json={"message": "Compare all agencies on project delivery"}
        )
        assert response.status_code == 200
        assert response.headers["x-ai-tier"] == "cheap"
        assert (
            response.headers["x-ai-budget-warning"]
            == "Daily AI budget exhausted. Using Quick mode only."
        )
        assert _events(response.text)[0].budget_warning == response.headers["x-ai-budget-warning"]

    @pytest.mark.parametrize(
        ("body", "error"),
        [
            ({}, "Message is required"),
            ({"message": ""}, "Message is required"),
            ({"message": "   "}, "Message is required"),
            ([1, 2], "Request body must be a JSON object"),
        ],
    )
    def test_bad_request(self, client: TestClient, body: Any, error: str) -> None:
        response = client.post("/api/ai/chat", json=body)
        assert response.status_code == 400
        assert response.json() == {"error": error}

    def test_body_not_json(self, client: TestClient) -> None:
        response = client.post(
            "/api/ai/chat", content=b"not json", headers={"content-type": "application/json"}
        )
        assert response.status_code == 400
        assert response.json() == {"error": "Request body must be JSON"}

    def test_rate_limited(self) -> None:
        orchestrator = make_orchestrator(limiter=SlidingWindowRateLimiter(limit=1))
        client = TestClient(create_app(orchestrator))
        body = {"message": "Tell me about GWI", "session_id": "s1"}
        assert client.post("/api/ai/chat", json=body).status_code == 200

        response = client.post("/api/ai/chat", json=body)
        assert response.status_code == 429
        assert response.json() == {
            "error": "Rate limit exceeded — max 1 messages per hour",
            "remaining": 0,
        }

        other = client.post("/api/ai/chat", json={**body, "session_id": "s2"})
        assert other.status_code == 200

    def test_missing_api_key(self) -> None:
        app = create_app(settings=Settings(anthropic_api_key=None))
        with TestClient(app) as client:
            response = client.post("/api/ai/chat", json={"message": "hi"})
        assert response.status_code == 500
        assert response.json() == {"error": "AI assistant not configured: ANTHROPIC_API_KEY missing"}

    def test_lifespan_runs_with_sweeper(self) -> None:
        with TestClient(create_app(make_orchestrator())) as client:
            assert client.get("/health").status_code == 200


class TestUsage:
    def _client(self) -> TestClient:
        ledger = make_ledger()
        for age_days, tier in ((0, ModelTier.MID), (20, ModelTier.DEEP), (40, ModelTier.CHEAP)):
            ledger.append(
                UsageEvent(
                    session_id="s",
                    tier=tier,
                    model_id="m",
                    query_type="general",
                    input_tokens=100,
                    output_tokens=10,
                    timestamp=NOW - timedelta(days=age_days),
                )
            )
        return TestClient(create_app(make_orchestrator(ledger=ledger)))

    def test_default_window(self) -> None:
        body = self._client().get("/api/ai/usage").json()
        assert body["total_requests"] == 1
        assert body["total_tokens"] == 110
        assert body["by_tier"] == {"cheap": 0, "mid": 110, "deep": 0}
        assert body["daily"][0]["date"] == "2026-10-18"

    def test_days_clamped_to_thirty(self) -> None:
        body = self._client().get("/api/ai/usage", params={"days": 365}).json()
        assert body["total_requests"] == 2

    def test_days_clamped_to_one(self) -> None:
        body = self._client().get("/api/ai/usage", params={"days": 0}).json()
        assert body["total_requests"] == 1

    def test_usage_after_chat(self, client: TestClient) -> None:
        client.post("/api/ai/chat", json={"message": "Tell me about GWI"})
        body = client.get("/api/ai/usage", params={"days": 1}).json()
        assert body["total_requests"] == 1
        assert body["by_tier"]["mid"] == 1500
