"""CLI interface for agency-chat."""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from agency_chat import __version__
from agency_chat.config import get_settings
from agency_chat.exceptions import ConfigurationError, RateLimitExceededError, StorageError
from agency_chat.models.events import DoneEvent, ErrorEvent, MetaEvent, TextEvent
from agency_chat.models.query import ChatQuery
from agency_chat.models.tiers import ModelTier
from agency_chat.observability.usage import JsonlUsageStore, UsageLedger
from agency_chat.orchestrator import ChatOrchestrator
from agency_chat.providers.anthropic import AnthropicProvider
from agency_chat.query.classifiers import PatternTierClassifier, classify_request

app = typer.Typer(
    name="agency-chat",
    help="Tiered assistant pipeline for agency oversight dashboards.",
    add_completion=False,
)
console = Console()


@app.callback()
def main(
    version: bool = typer.Option(False, "--version", "-v", help="Show version"),
) -> None:
    if version:
        console.print(f"agency-chat {__version__}")
        raise typer.Exit()


@app.command()
def info() -> None:
    """Show configuration and the tier table."""
    settings = get_settings()

    table = Table(title="agency-chat info")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Version", __version__)
    table.add_row("Python", sys.version.split()[0])
    table.add_row(
        "API key",
        "configured" if settings.anthropic_api_key else "[red]missing[/red]",
    )
    table.add_row("Rate limit", f"{settings.rate_limit} per {settings.rate_window_seconds:g}s")
    table.add_row("Daily budget", f"{settings.daily_token_budget:,} weighted tokens")
    table.add_row("Cached tiers", ", ".join(sorted(settings.cache_tiers)))
    table.add_row("Usage log", str(settings.usage_log_path or "[dim]in memory[/dim]"))
    console.print(table)

    tiers = Table(title="Tiers")
    tiers.add_column("Tier", style="cyan")
    tiers.add_column("Label")
    tiers.add_column("Model")
    tiers.add_column("Max output", justify="right")
    tiers.add_column("Context")
    tiers.add_column("Weight", justify="right")
    for tier, profile in settings.tier_profiles().items():
        tiers.add_row(
            str(tier),
            profile.label,
            profile.model_id,
            str(profile.max_output_tokens),
            str(profile.context_level),
            f"{profile.cost_weight:g}",
        )
    console.print(tiers)


@app.command()
def classify(
    question: str = typer.Argument(..., help="Question to classify"),
    force_deep: bool = typer.Option(False, "--deep", help="Force the deep tier"),
) -> None:
    """Show which tier a question would be routed to (before budget caps)."""
    result = classify_request(question, PatternTierClassifier(), force_deep=force_deep)
    console.print(f"tier: [cyan]{result.tier}[/cyan]  query_type: [green]{result.query_type}[/green]")


@app.command()
def ask(
    question: str = typer.Argument(..., help="Question to ask"),
    page: str = typer.Option("/", "--page", "-p", help="Dashboard page the question refers to"),
    force_deep: bool = typer.Option(False, "--deep", help="Force the deep tier"),
    session: str = typer.Option("cli", "--session", "-s", help="Session id for rate limiting"),
) -> None:
    """Stream one answer through the pipeline (no domain data attached)."""
    settings = get_settings()
    try:
        provider = AnthropicProvider(
            api_key=settings.require_api_key(),
            timeout=settings.provider_timeout_seconds,
        )
    except ConfigurationError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1) from e

    orchestrator = ChatOrchestrator.from_settings(settings, provider)
    query = ChatQuery(message=question, current_page=page, force_deep=force_deep, session_id=session)

    async def run() -> int:
        try:
            decision, events = orchestrator.handle(query)
        except RateLimitExceededError as e:
            console.print(f"[red]{e}[/red]")
            return 1
        async for event in events:
            if isinstance(event, MetaEvent):
                console.print(f"[dim]tier: {event.tier_label}[/dim]")
                if event.budget_warning:
                    console.print(event.budget_warning, style="yellow", markup=False)
            elif isinstance(event, TextEvent):
                console.print(event.text, end="", markup=False, highlight=False)
            elif isinstance(event, DoneEvent):
                console.print()
                if event.usage is not None:
                    console.print(
                        f"[dim]{event.usage.input_tokens} in / "
                        f"{event.usage.output_tokens} out, "
                        f"{decision.remaining} requests left[/dim]"
                    )
            elif isinstance(event, ErrorEvent):
                console.print(f"\n[red]Error: {event.error}[/red]")
                return 1
        return 0

    code = asyncio.run(run())
    if code:
        raise typer.Exit(code=code)


@app.command()
def usage(
    days: int = typer.Option(7, "--days", "-d", min=1, max=30, help="Days to aggregate"),
    log: Path | None = typer.Option(None, "--log", "-l", help="Usage log (JSON lines)"),  # noqa: B008
) -> None:
    """Summarize a usage log by day and tier."""
    path = log or get_settings().usage_log_path
    if path is None:
        console.print("[red]Error: no usage log configured (use --log)[/red]")
        raise typer.Exit(code=1)
    if not path.exists():
        console.print(f"[red]Error: {path} does not exist[/red]")
        raise typer.Exit(code=1)

    try:
        stats = UsageLedger(JsonlUsageStore(path)).stats(days)
    except StorageError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1) from e

    table = Table(title=f"Usage, last {days} days")
    table.add_column("Date", style="cyan")
    for tier in ModelTier:
        table.add_column(str(tier), justify="right")
    table.add_column("Cached", justify="right")
    table.add_column("Local", justify="right")
    table.add_column("Requests", justify="right")
    for day in stats.daily:
        table.add_row(
            day.date,
            *(f"{day.tokens_by_tier.get(tier, 0):,}" for tier in ModelTier),
            str(day.cached_count),
            str(day.local_count),
            str(day.total_requests),
        )
    console.print(table)
    console.print(
        f"Total requests: {stats.total_requests}  "
        f"cached: {stats.cached_pct}%  local: {stats.local_pct}%"
    )


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Bind address"),
    port: int = typer.Option(8000, "--port", help="Bind port"),
) -> None:
    """Run the HTTP API."""
    import uvicorn

    from agency_chat.server import create_app

    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(create_app(settings=settings), host=host, port=port)


if __name__ == "__main__":
    app()
