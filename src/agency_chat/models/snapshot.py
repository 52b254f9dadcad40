"""Caller-supplied metric snapshot used by the local answer matcher.

Every metric is optional: ``None`` means the value is unknown and any
rule depending on it must decline to answer. Values that are not
finite numbers (strings, booleans, NaN) are coerced to ``None`` rather
than rejected, so a partially broken snapshot degrades to "no local
answer" instead of failing the request.
"""

from __future__ import annotations

import math
from datetime import UTC, datetime
from typing import Annotated, TypeAlias

from pydantic import BaseModel, BeforeValidator, Field


def _finite_number(value: object) -> float | None:
    if isinstance(value, bool) or not isinstance(value, int | float):
        return None
    if not math.isfinite(value):
        return None
    return float(value)


def _whole_number(value: object) -> int | None:
    number = _finite_number(value)
    if number is None or not number.is_integer():
        return None
    return int(number)


def _health_score(value: object) -> float | None:
    number = _finite_number(value)
    if number is None or not 0.0 <= number <= 10.0:
        return None
    return number


Metric: TypeAlias = Annotated[float | None, BeforeValidator(_finite_number)]
Count: TypeAlias = Annotated[int | None, BeforeValidator(_whole_number)]
HealthScore: TypeAlias = Annotated[float | None, BeforeValidator(_health_score)]


class AgencyHealth(BaseModel):
    """A 0-10 health score with a label and a one-line breakdown.

    A score outside 0-10 is treated like any other unusable metric and
    becomes ``None``.
    """

    score: HealthScore = None
    label: str = "No Data"
    breakdown: str = ""


class PowerMetrics(BaseModel):
    """Power utility generation metrics."""

    health: AgencyHealth | None = None
    capacity_mw: Metric = None
    peak_demand_mw: Metric = None
    reserve_mw: Metric = None
    units_online: Count = None
    units_total: Count = None
    suppressed_mw: Metric = None
    report_date: str | None = None


class WaterMetrics(BaseModel):
    """Water utility financial and service metrics."""

    health: AgencyHealth | None = None
    net_profit: Metric = None
    total_revenue: Metric = None
    collections: Metric = None
    resolution_rate_pct: Metric = None
    active_accounts: Count = None
    report_month: str | None = None


class AirportMetrics(BaseModel):
    """Airport passenger and punctuality metrics."""

    health: AgencyHealth | None = None
    total_passengers: Count = None
    on_time_pct: Metric = None
    report_month: str | None = None


class AviationMetrics(BaseModel):
    """Civil aviation regulator compliance metrics."""

    health: AgencyHealth | None = None
    compliance_rate_pct: Metric = None
    total_inspections: Count = None
    incidents: Count = None
    report_month: str | None = None


class ProjectCounts(BaseModel):
    """Infrastructure project portfolio counts."""

    total: Count = None
    delayed: Count = None
    in_progress: Count = None
    complete: Count = None
    not_started: Count = None
    total_value: Metric = None


class TaskCounts(BaseModel):
    """Active task counts."""

    active: Count = None
    overdue: Count = None
    due_today: Count = None


class MetricSnapshot(BaseModel):
    """Structured metrics for the four agencies, projects and tasks."""

    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    gpl: PowerMetrics = Field(default_factory=PowerMetrics)
    gwi: WaterMetrics = Field(default_factory=WaterMetrics)
    cjia: AirportMetrics = Field(default_factory=AirportMetrics)
    gcaa: AviationMetrics = Field(default_factory=AviationMetrics)
    projects: ProjectCounts = Field(default_factory=ProjectCounts)
    tasks: TaskCounts = Field(default_factory=TaskCounts)
