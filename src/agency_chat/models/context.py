"""Raw domain data gathered fresh for every request."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field

from .snapshot import AgencyHealth


class PowerData(BaseModel):
    """Latest confirmed power utility daily report plus monthly KPIs."""

    summary: dict[str, Any] | None = None
    stations: list[dict[str, Any]] = Field(default_factory=list)
    report_date: str | None = None
    kpis: dict[str, float] = Field(default_factory=dict)
    kpi_month: str | None = None


class WaterData(BaseModel):
    """Latest water utility monthly report, AI insights and weekly complaints."""

    report: dict[str, Any] | None = None
    insights: dict[str, Any] | None = None
    complaints: dict[str, Any] | None = None


class AgencyPortfolio(BaseModel):
    """Per-agency slice of the project portfolio."""

    agency: str
    total: int = 0
    total_value: float = 0.0
    delayed: int = 0


class PortfolioSummary(BaseModel):
    """Infrastructure project portfolio totals."""

    total_projects: int = 0
    total_value: float = 0.0
    in_progress: int = 0
    delayed: int = 0
    complete: int = 0
    not_started: int = 0
    agencies: list[AgencyPortfolio] = Field(default_factory=list)


class TaskItem(BaseModel):
    """A tracked task."""

    title: str
    status: str = "To Do"
    due_date: str | None = None
    agency: str | None = None


class CalendarEvent(BaseModel):
    """A calendar entry."""

    title: str
    start_time: str | None = None
    end_time: str | None = None
    location: str | None = None
    all_day: bool = False


class HealthScores(BaseModel):
    """Computed health for each agency."""

    gpl: AgencyHealth = Field(default_factory=AgencyHealth)
    gwi: AgencyHealth = Field(default_factory=AgencyHealth)
    cjia: AgencyHealth = Field(default_factory=AgencyHealth)
    gcaa: AgencyHealth = Field(default_factory=AgencyHealth)


def gap_message(section: str) -> str:
    """Degradation marker text for a section whose collaborator failed."""
    return f"{section} unavailable"


class RawContext(BaseModel):
    """Best-effort aggregation of live domain data.

    ``gaps`` is the degradation marker: it names every section whose
    collaborator failed during assembly. An empty list means every
    collaborator answered.
    """

    gpl: PowerData = Field(default_factory=PowerData)
    gwi: WaterData = Field(default_factory=WaterData)
    cjia: dict[str, Any] | None = None
    gcaa: dict[str, Any] | None = None
    portfolio: PortfolioSummary | None = None
    delayed: list[dict[str, Any]] = Field(default_factory=list)
    tasks: list[TaskItem] = Field(default_factory=list)
    today_events: list[CalendarEvent] = Field(default_factory=list)
    week_events: list[CalendarEvent] = Field(default_factory=list)
    health: HealthScores = Field(default_factory=HealthScores)
    gaps: list[str] = Field(default_factory=list)
    generated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def degraded(self) -> bool:
        return bool(self.gaps)

    def has_gap(self, section: str) -> bool:
        return gap_message(section) in self.gaps
