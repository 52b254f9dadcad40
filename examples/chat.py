#!/usr/bin/env python3
"""Interactive chat against a static domain data source.

Demonstrates the full request pipeline:
  1. Local answers   -- "What is the current reserve?" never reaches the model
  2. Tier routing    -- quick lookups, standard questions and deep analysis
  3. Response cache  -- repeat a standard question to get it back for free

Commands inside the loop: ``/deep <question>`` forces the deep tier,
``/page <path>`` changes the dashboard page, ``/usage`` prints today's
spend, ``/quit`` exits.

Requirements:
    pip install agency-chat
    export ANTHROPIC_API_KEY=sk-ant-...
"""

from __future__ import annotations

import asyncio
import sys
from typing import Any

from rich.console import Console
from rich.theme import Theme

from agency_chat import (
    AnthropicProvider,
    ChatMessage,
    ChatOrchestrator,
    ChatQuery,
    ConfigurationError,
    ContextAssembler,
    DoneEvent,
    ErrorEvent,
    MetaEvent,
    MetricSnapshot,
    RateLimitExceededError,
    TextEvent,
    extract_annotations,
    get_settings,
)
from agency_chat.models.context import CalendarEvent, PortfolioSummary, PowerData, TaskItem

_theme = Theme({"info": "dim cyan", "warning": "yellow", "danger": "bold red"})
console = Console(theme=_theme)


class StaticDomainData:
    """A ``DomainDataProvider`` returning fixed figures."""

    async def fetch_power(self) -> PowerData:
        return PowerData(
            summary={
                "total_fossil_capacity_mw": 200.0,
                "expected_peak_demand_mw": 150.0,
                "reserve_capacity_mw": 50.0,
                "evening_peak_suppressed_mw": 0,
            },
            stations=[
                {
                    "station": "Garden of Eden",
                    "units_online": 7,
                    "total_units": 8,
                    "total_available_mw": 40.0,
                    "total_derated_capacity_mw": 45.0,
                },
            ],
            report_date="2026-10-17",
        )

    async def fetch_water_report(self) -> dict[str, Any] | None:
        return {
            "report_month": "2026-09",
            "financial_data": {"net_profit": 1_200_000, "total_revenue": 9_500_000},
            "customer_service_data": {"resolution_rate_pct": 85.0},
        }

    async def fetch_water_insights(self) -> dict[str, Any] | None:
        return None

    async def fetch_water_complaints(self) -> dict[str, Any] | None:
        return None

    async def fetch_airport_report(self) -> dict[str, Any] | None:
        return {
            "report_month": "2026-09",
            "passenger_data": {"total_passengers": 52_000},
            "operations_data": {"on_time_performance_pct": 88.0},
        }

    async def fetch_aviation_report(self) -> dict[str, Any] | None:
        return None

    async def fetch_portfolio(self) -> PortfolioSummary | None:
        return PortfolioSummary(total_projects=120, total_value=450e6, in_progress=70, delayed=15)

    async def fetch_delayed_projects(self) -> list[dict[str, Any]]:
        return []

    async def fetch_tasks(self) -> list[TaskItem]:
        return [TaskItem(title="Review tariff memo", agency="GWI", due_date="2026-10-10")]

    async def fetch_today_events(self) -> list[CalendarEvent]:
        return [CalendarEvent(title="Cabinet briefing", start_time="2026-10-18T10:00:00")]

    async def fetch_week_events(self) -> list[CalendarEvent]:
        return []


SNAPSHOT = MetricSnapshot.model_validate(
    {
        "gpl": {"capacity_mw": 200.0, "peak_demand_mw": 150.0, "reserve_mw": 50.0},
        "projects": {"total": 120, "delayed": 15, "in_progress": 70, "total_value": 450e6},
    }
)


# -- Display helpers --


async def ask(orchestrator: ChatOrchestrator, query: ChatQuery) -> str:
    try:
        _decision, events = orchestrator.handle(query)
    except RateLimitExceededError as e:
        console.print(str(e), style="danger")
        return ""

    chunks: list[str] = []
    async for event in events:
        if isinstance(event, MetaEvent):
            flags = " (cached)" if event.cached else " (local)" if event.local else ""
            console.print(f"[{event.tier_label}{flags}]", style="info", markup=False)
            if event.budget_warning:
                console.print(event.budget_warning, style="warning", markup=False)
        elif isinstance(event, TextEvent):
            chunks.append(event.text)
        elif isinstance(event, DoneEvent):
            answer = extract_annotations("".join(chunks))
            console.print(answer.clean, markup=False)
            for suggestion in answer.suggestions:
                console.print(f"  -> {suggestion}", style="info", markup=False)
            console.print(
                f"{event.usage.input_tokens} in / {event.usage.output_tokens} out, "
                f"{event.remaining} left this hour",
                style="info",
            )
            return answer.clean
        elif isinstance(event, ErrorEvent):
            console.print(f"Error: {event.error}", style="danger", markup=False)
    return ""


async def main() -> int:
    settings = get_settings()
    try:
        provider = AnthropicProvider(api_key=settings.require_api_key())
    except ConfigurationError as e:
        console.print(str(e), style="danger")
        return 1

    orchestrator = ChatOrchestrator.from_settings(
        settings, provider, assembler=ContextAssembler(StaticDomainData())
    )
    history: list[ChatMessage] = []
    page = "/"

    while True:
        try:
            line = console.input("[bold]> [/bold]").strip()
        except (EOFError, KeyboardInterrupt):
            return 0
        if not line:
            continue
        if line == "/quit":
            return 0
        if line == "/usage":
            stats = orchestrator.ledger.stats(1)
            console.print(
                f"{stats.total_requests} requests, {stats.total_tokens} tokens, "
                f"{stats.cached_pct}% cached, {stats.local_pct}% local",
                style="info",
            )
            continue
        if line.startswith("/page "):
            page = line.removeprefix("/page ").strip() or "/"
            continue

        force_deep = line.startswith("/deep ")
        message = line.removeprefix("/deep ").strip()
        query = ChatQuery(
            message=message,
            conversation_history=history,
            current_page=page,
            session_id="example",
            force_deep=force_deep,
            snapshot=SNAPSHOT,
        )
        answer = await ask(orchestrator, query)
        if answer:
            history = [
                *history,
                ChatMessage(role="user", content=message),
                ChatMessage(role="assistant", content=answer),
            ]


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
