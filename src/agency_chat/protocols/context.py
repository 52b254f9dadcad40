"""Domain data collaborator protocol."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from agency_chat.models.context import (
    CalendarEvent,
    PortfolioSummary,
    PowerData,
    TaskItem,
)


@runtime_checkable
class DomainDataProvider(Protocol):
    """Source of live operational data, one fetch per section.

    Every method may raise independently; the ``ContextAssembler`` treats
    each failure as a gap rather than failing the whole request.
    Returning ``None`` means "no data uploaded", which is not a failure.
    """

    async def fetch_power(self) -> PowerData:
        """Latest power utility summary, stations and KPIs."""
        ...

    async def fetch_water_report(self) -> dict[str, Any] | None:
        """Latest water utility monthly report."""
        ...

    async def fetch_water_insights(self) -> dict[str, Any] | None:
        """Latest AI-generated water utility insights."""
        ...

    async def fetch_water_complaints(self) -> dict[str, Any] | None:
        """Latest weekly complaints report."""
        ...

    async def fetch_airport_report(self) -> dict[str, Any] | None:
        """Latest airport monthly report."""
        ...

    async def fetch_aviation_report(self) -> dict[str, Any] | None:
        """Latest aviation regulator monthly report."""
        ...

    async def fetch_portfolio(self) -> PortfolioSummary | None:
        """Project portfolio summary."""
        ...

    async def fetch_delayed_projects(self) -> list[dict[str, Any]]:
        """Delayed projects, most overdue first."""
        ...

    async def fetch_tasks(self) -> list[TaskItem]:
        """All tracked tasks."""
        ...

    async def fetch_today_events(self) -> list[CalendarEvent]:
        """Today's calendar events."""
        ...

    async def fetch_week_events(self) -> list[CalendarEvent]:
        """This week's calendar events."""
        ...
