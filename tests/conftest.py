"""Shared fixtures and fakes for agency-chat tests."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncGenerator, AsyncIterator, Collection, Sequence
from contextlib import asynccontextmanager
from datetime import UTC, date, datetime
from typing import Any

import pytest

from agency_chat.context.assembler import ContextAssembler
from agency_chat.memory.history import HistoryCompressor
from agency_chat.models.context import (
    AgencyPortfolio,
    CalendarEvent,
    PortfolioSummary,
    PowerData,
    TaskItem,
)
from agency_chat.models.events import ChatStreamEvent
from agency_chat.models.query import ChatMessage
from agency_chat.models.snapshot import (
    AgencyHealth,
    AirportMetrics,
    AviationMetrics,
    MetricSnapshot,
    PowerMetrics,
    ProjectCounts,
    TaskCounts,
    WaterMetrics,
)
from agency_chat.models.streaming import StreamResult, StreamUsage
from agency_chat.models.tiers import DEFAULT_TIER_PROFILES, ModelTier
from agency_chat.observability.usage import UsageLedger
from agency_chat.orchestrator import ChatOrchestrator

NOW = datetime(2026, 10, 18, 9, 30, tzinfo=UTC)
TODAY = NOW.date()


class FakeTokenizer:
    """A simple tokenizer that splits on whitespace for testing.

    Satisfies the Tokenizer protocol without requiring tiktoken's
    network-downloaded encoding data.
    """

    def count_tokens(self, text: str) -> int:
        """Count tokens by splitting on whitespace."""
        if not text or not text.strip():
            return 0
        return len(text.split())


class FakeStream:
    """Scripted ``ProviderStream``: yields fragments, then optionally fails."""

    def __init__(
        self,
        fragments: Sequence[str],
        usage: StreamUsage,
        *,
        error: Exception | None = None,
        delay: float = 0.0,
    ) -> None:
        self._fragments = fragments
        self._usage = usage
        self._error = error
        self._delay = delay

    async def text_stream(self) -> AsyncGenerator[str, None]:
        for fragment in self._fragments:
            if self._delay:
                await asyncio.sleep(self._delay)
            yield fragment
        if self._error is not None:
            raise self._error

    async def final_usage(self) -> StreamUsage:
        return self._usage


class FakeProvider:
    """Scripted ``ChatProvider`` that records every call.

    ``stream`` replays *fragments*; ``complete`` (used for history
    summaries) returns *summary*.
    """

    def __init__(
        self,
        fragments: Sequence[str] = ("GPL reserve is ", "**50 MW**."),
        *,
        usage: StreamUsage | None = None,
        error: Exception | None = None,
        open_error: Exception | None = None,
        delay: float = 0.0,
        summary: str = "The user asked about GPL reserve margins.",
        summary_error: Exception | None = None,
    ) -> None:
        self.fragments = list(fragments)
        self.usage = usage or StreamUsage(input_tokens=1200, output_tokens=300)
        self.error = error
        self.open_error = open_error
        self.delay = delay
        self.summary = summary
        self.summary_error = summary_error
        self.stream_calls: list[dict[str, Any]] = []
        self.complete_calls: list[dict[str, Any]] = []
        self.closed = 0

    @asynccontextmanager
    async def stream(
        self,
        *,
        model: str,
        max_tokens: int,
        system: str,
        messages: Sequence[ChatMessage],
    ) -> AsyncIterator[FakeStream]:
        self.stream_calls.append(
            {"model": model, "max_tokens": max_tokens, "system": system, "messages": list(messages)}
        )
        if self.open_error is not None:
            raise self.open_error
        try:
            yield FakeStream(self.fragments, self.usage, error=self.error, delay=self.delay)
        finally:
            self.closed += 1

    async def complete(
        self,
        *,
        model: str,
        max_tokens: int,
        messages: Sequence[ChatMessage],
        system: str | None = None,
    ) -> StreamResult:
        self.complete_calls.append(
            {"model": model, "max_tokens": max_tokens, "messages": list(messages)}
        )
        if self.summary_error is not None:
            raise self.summary_error
        return StreamResult(
            text=self.summary,
            usage=StreamUsage(input_tokens=80, output_tokens=20),
            model=model,
            stop_reason="end_turn",
        )


POWER_SUMMARY: dict[str, Any] = {
    "total_fossil_capacity_mw": 200.0,
    "expected_peak_demand_mw": 150.0,
    "reserve_capacity_mw": 50.0,
    "evening_peak_on_bars_mw": 140.0,
    "evening_peak_suppressed_mw": 0,
    "total_renewable_mwp": 12.5,
}

STATIONS: list[dict[str, Any]] = [
    {
        "station": "Garden of Eden",
        "units_online": 7,
        "total_units": 8,
        "total_available_mw": 40.0,
        "total_derated_capacity_mw": 45.0,
    },
    {
        "station": "Kingston",
        "units_online": 1,
        "total_units": 2,
        "total_available_mw": 10.0,
        "total_derated_capacity_mw": 20.0,
    },
]

WATER_REPORT: dict[str, Any] = {
    "report_month": "2026-09",
    "financial_data": {
        "net_profit": 1_200_000,
        "net_profit_budget": 1_000_000,
        "total_revenue": 9_500_000,
        "operating_cost": 7_000_000,
        "cash_at_bank": 3_000_000,
    },
    "collections_data": {
        "total_collections": 8_000_000,
        "total_billings": 10_000_000,
        "active_accounts": 185_000,
    },
    "customer_service_data": {
        "total_complaints": 400,
        "resolved_complaints": 340,
        "resolution_rate_pct": 85.0,
        "within_timeline_pct": 70.0,
    },
}

AIRPORT_REPORT: dict[str, Any] = {
    "report_month": "2026-09",
    "passenger_data": {"total_passengers": 52_000},
    "operations_data": {"on_time_performance_pct": 88.0},
}

AVIATION_REPORT: dict[str, Any] = {
    "report_month": "2026-09",
    "compliance_data": {"compliance_rate_pct": 92.0},
    "inspection_data": {"total_inspections": 14},
    "incident_data": {"total_incidents": 0},
}

PORTFOLIO = PortfolioSummary(
    total_projects=120,
    total_value=450_000_000,
    in_progress=70,
    delayed=15,
    complete=25,
    not_started=10,
    agencies=[AgencyPortfolio(agency="GPL", total=40, total_value=200_000_000, delayed=6)],
)

DELAYED: list[dict[str, Any]] = [
    {
        "project_id": "P-001",
        "project_name": "Linden substation upgrade",
        "sub_agency": "GPL",
        "days_overdue": 90,
        "contract_value": 12_000_000,
        "completion_pct": 40,
    },
]

TASKS: list[TaskItem] = [
    TaskItem(title="Review GWI tariff memo", due_date="2026-10-10", agency="GWI"),
    TaskItem(title="Sign CJIA lease", status="In Progress", due_date="2026-10-18", agency="CJIA"),
    TaskItem(title="Plan site visit", due_date="2026-10-21"),
    TaskItem(title="Archive old reports", status="Done", due_date="2026-10-01"),
]

TODAY_EVENTS: list[CalendarEvent] = [
    CalendarEvent(title="Cabinet briefing", start_time="2026-10-18T10:00:00", location="Ministry"),
]


class FakeDomainProvider:
    """``DomainDataProvider`` serving fixed data; *fail* names sections that raise."""

    def __init__(self, *, fail: Collection[str] = ()) -> None:
        self.fail = set(fail)
        self.calls = 0

    def _check(self, section: str) -> None:
        self.calls += 1
        if section in self.fail:
            msg = f"{section} backend down"
            raise RuntimeError(msg)

    async def fetch_power(self) -> PowerData:
        self._check("power")
        return PowerData(
            summary=dict(POWER_SUMMARY),
            stations=[dict(s) for s in STATIONS],
            report_date="2026-10-17",
            kpis={"Collection Rate %": 96.0},
            kpi_month="2026-09",
        )

    async def fetch_water_report(self) -> dict[str, Any] | None:
        self._check("water")
        return WATER_REPORT

    async def fetch_water_insights(self) -> dict[str, Any] | None:
        self._check("water insights")
        return {"insight_json": {"executive_summary": "Collections trail billings by 20%."}}

    async def fetch_water_complaints(self) -> dict[str, Any] | None:
        self._check("water complaints")
        return None

    async def fetch_airport_report(self) -> dict[str, Any] | None:
        self._check("airport")
        return AIRPORT_REPORT

    async def fetch_aviation_report(self) -> dict[str, Any] | None:
        self._check("aviation")
        return AVIATION_REPORT

    async def fetch_portfolio(self) -> PortfolioSummary | None:
        self._check("projects")
        return PORTFOLIO

    async def fetch_delayed_projects(self) -> list[dict[str, Any]]:
        self._check("delayed projects")
        return DELAYED

    async def fetch_tasks(self) -> list[TaskItem]:
        self._check("tasks")
        return TASKS

    async def fetch_today_events(self) -> list[CalendarEvent]:
        self._check("calendar")
        return TODAY_EVENTS

    async def fetch_week_events(self) -> list[CalendarEvent]:
        self._check("week calendar")
        return TODAY_EVENTS


ALL_SECTIONS = (
    "power",
    "water",
    "water insights",
    "water complaints",
    "airport",
    "aviation",
    "projects",
    "delayed projects",
    "tasks",
    "calendar",
    "week calendar",
)


def make_assembler(*, fail: Collection[str] = ()) -> ContextAssembler:
    """Build a ``ContextAssembler`` over ``FakeDomainProvider`` with a fixed clock."""
    return ContextAssembler(FakeDomainProvider(fail=fail), clock=lambda: NOW)


def make_snapshot(**overrides: Any) -> MetricSnapshot:
    """Build a fully populated ``MetricSnapshot``; keyword overrides replace sections."""
    sections: dict[str, Any] = {
        "timestamp": NOW,
        "gpl": PowerMetrics(
            health=AgencyHealth(score=7.0, label="Adequate", breakdown="Reserve Margin 33.3%"),
            capacity_mw=200.0,
            peak_demand_mw=150.0,
            reserve_mw=50.0,
            units_online=8,
            units_total=10,
            suppressed_mw=0.0,
        ),
        "gwi": WaterMetrics(
            health=AgencyHealth(score=6.0, label="Adequate", breakdown="Resolution 85%"),
            resolution_rate_pct=85.0,
        ),
        "cjia": AirportMetrics(
            health=AgencyHealth(score=7.0, label="Adequate", breakdown="On-time 88%"),
            total_passengers=52_000,
            on_time_pct=88.0,
        ),
        "gcaa": AviationMetrics(
            health=AgencyHealth(score=8.0, label="Strong", breakdown="Compliance 92%"),
            compliance_rate_pct=92.0,
        ),
        "projects": ProjectCounts(
            total=120,
            delayed=15,
            in_progress=70,
            complete=25,
            not_started=10,
            total_value=450_000_000,
        ),
        "tasks": TaskCounts(active=3, overdue=1, due_today=1),
    }
    sections.update(overrides)
    return MetricSnapshot(**sections)


def make_ledger() -> UsageLedger:
    """A ``UsageLedger`` on an in-memory store with the fixed test clock."""
    return UsageLedger(clock=lambda: NOW)


def make_orchestrator(provider: FakeProvider | None = None, **kwargs: Any) -> ChatOrchestrator:
    """Build a ``ChatOrchestrator`` with offline defaults.

    History compression uses ``FakeTokenizer`` and the usage ledger uses
    the fixed test clock. Any keyword replaces the default collaborator.
    """
    provider = provider if provider is not None else FakeProvider()
    kwargs.setdefault("ledger", make_ledger())
    kwargs.setdefault(
        "history",
        HistoryCompressor(
            provider,
            summary_model=DEFAULT_TIER_PROFILES[ModelTier.CHEAP].model_id,
            tokenizer=FakeTokenizer(),
        ),
    )
    kwargs.setdefault("today", lambda: date(2026, 10, 18))
    return ChatOrchestrator(provider, **kwargs)


async def collect(events: AsyncIterator[ChatStreamEvent]) -> list[ChatStreamEvent]:
    """Drain an event stream into a list."""
    return [event async for event in events]


@pytest.fixture
def counter() -> FakeTokenizer:
    """Return a FakeTokenizer instance for testing."""
    return FakeTokenizer()


@pytest.fixture
def provider() -> FakeProvider:
    """Return a default scripted provider."""
    return FakeProvider()
