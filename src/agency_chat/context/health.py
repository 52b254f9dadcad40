"""Agency health scoring and metric snapshot derivation.

Each agency starts from a baseline of 5 and gains or loses points per
indicator; the result is clamped to 0-10 and labelled. Missing reports
score 0 with the ``"No Data"`` label.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from datetime import UTC, date, datetime
from typing import Any

from agency_chat.models.context import HealthScores, PowerData, RawContext, TaskItem
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

BASELINE_SCORE = 5


def health_label(score: float) -> str:
    if score >= 8:
        return "Strong"
    if score >= 6:
        return "Adequate"
    if score >= 4:
        return "Concerning"
    if score >= 2:
        return "Poor"
    return "Critical"


def parse_number(value: object) -> float | None:
    """Parse *value* as a finite float; numeric strings are accepted."""
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        try:
            value = float(value)
        except ValueError:
            return None
    if isinstance(value, int | float) and math.isfinite(value):
        return float(value)
    return None


def as_number(value: object, default: float = 0.0) -> float:
    """Coerce *value* to a non-zero finite float, using *default* otherwise."""
    number = parse_number(value)
    return number if number else default


def section_of(report: Mapping[str, Any] | None, key: str) -> Mapping[str, Any]:
    if report is None:
        return {}
    value = report.get(key)
    return value if isinstance(value, Mapping) else {}


def _finish(score: float, parts: list[str], empty: str = "") -> AgencyHealth:
    clamped = max(0.0, min(10.0, score))
    return AgencyHealth(
        score=clamped,
        label=health_label(clamped),
        breakdown=", ".join(parts) if parts else empty,
    )


def _fmt_pct(value: float) -> str:
    return f"{value:g}%"


def station_units(stations: list[dict[str, Any]]) -> tuple[int, int]:
    """Return ``(units_online, units_total)`` summed over all stations."""
    online = sum(int(as_number(st.get("units_online"))) for st in stations)
    total = sum(int(as_number(st.get("total_units"))) for st in stations)
    return online, total


def power_health(power: PowerData) -> AgencyHealth:
    summary = power.summary
    if summary is None:
        return AgencyHealth(score=0.0, breakdown="No GPL data uploaded")

    score = float(BASELINE_SCORE)
    parts: list[str] = []

    reserve = as_number(summary.get("reserve_capacity_mw"))
    peak = as_number(summary.get("expected_peak_demand_mw"), 1.0)
    reserve_pct = reserve / peak * 100
    if reserve_pct >= 20:
        score += 2
    elif reserve_pct >= 10:
        score += 1
    elif reserve_pct < 5:
        score -= 2
    else:
        score -= 1
    parts.append(f"Reserve Margin {reserve_pct:.1f}%")

    online, total = station_units(power.stations)
    availability = online / total * 100 if total > 0 else 0.0
    if availability >= 70:
        score += 1
    elif availability < 50:
        score -= 2
    else:
        score -= 1
    parts.append(f"{online}/{total} units online")

    suppressed = as_number(summary.get("evening_peak_suppressed_mw"))
    if suppressed == 0:
        score += 1
    elif suppressed > 20:
        score -= 1
    if suppressed > 0:
        parts.append(f"{suppressed:.1f}MW suppressed")

    collection = power.kpis.get("Collection Rate %")
    if collection is not None:
        if collection >= 95:
            score += 1
        elif collection < 85:
            score -= 1
        parts.append(f"Collection {collection:.1f}%")

    return _finish(score, parts)


def water_health(report: Mapping[str, Any] | None) -> AgencyHealth:
    if report is None:
        return AgencyHealth(score=0.0, breakdown="No GWI data uploaded")

    score = float(BASELINE_SCORE)
    parts: list[str] = []
    service = section_of(report, "customer_service_data")
    collections = section_of(report, "collections_data")
    financial = section_of(report, "financial_data")

    resolution = as_number(service.get("resolution_rate_pct"))
    if resolution >= 90:
        score += 2
    elif resolution >= 75:
        score += 1
    elif resolution < 60:
        score -= 2
    else:
        score -= 1
    parts.append(f"Resolution {_fmt_pct(resolution)}")

    timeline = as_number(service.get("within_timeline_pct"))
    if timeline >= 80:
        score += 1
    elif timeline < 50:
        score -= 1
    parts.append(f"Within Timeline {_fmt_pct(timeline)}")

    collected = as_number(collections.get("total_collections"))
    billed = as_number(collections.get("total_billings"), 1.0)
    ratio = collected / billed * 100
    if ratio >= 100:
        score += 1
    elif ratio < 80:
        score -= 1
    parts.append(f"Collections ${collected / 1e6:.0f}M")

    profit = as_number(financial.get("net_profit"))
    profit_budget = as_number(financial.get("net_profit_budget"), 1.0)
    if profit >= profit_budget:
        score += 1
    elif profit < 0:
        score -= 2

    return _finish(score, parts)


def airport_health(report: Mapping[str, Any] | None) -> AgencyHealth:
    if report is None:
        return AgencyHealth(score=0.0, breakdown="No CJIA data uploaded")

    score = float(BASELINE_SCORE)
    parts: list[str] = []
    operations = section_of(report, "operations_data")
    passengers = section_of(report, "passenger_data")

    pax = as_number(passengers.get("total_passengers")) or as_number(passengers.get("departures"))
    if pax > 0:
        parts.append(f"{pax / 1000:.1f}K passengers")

    on_time = as_number(operations.get("on_time_performance_pct"))
    if on_time > 0:
        if on_time >= 85:
            score += 2
        elif on_time >= 70:
            score += 1
        else:
            score -= 1
        parts.append(f"On-time {_fmt_pct(on_time)}")

    return _finish(score, parts, "Limited data available")


def aviation_health(report: Mapping[str, Any] | None) -> AgencyHealth:
    if report is None:
        return AgencyHealth(score=0.0, breakdown="No GCAA data uploaded")

    score = float(BASELINE_SCORE)
    parts: list[str] = []
    compliance = section_of(report, "compliance_data")
    inspections = section_of(report, "inspection_data")
    incident_data = section_of(report, "incident_data")

    rate = as_number(compliance.get("compliance_rate_pct"))
    if rate > 0:
        if rate >= 90:
            score += 2
        elif rate >= 75:
            score += 1
        else:
            score -= 1
        parts.append(f"Compliance {_fmt_pct(rate)}")

    total_inspections = int(as_number(inspections.get("total_inspections")))
    if total_inspections > 0:
        parts.append(f"{total_inspections} inspections")

    incidents = int(as_number(incident_data.get("total_incidents")))
    if incidents == 0:
        score += 1
    elif incidents > 5:
        score -= 1
    if incidents > 0:
        parts.append(f"{incidents} incidents")

    return _finish(score, parts, "Limited data available")


def compute_health(raw: RawContext) -> HealthScores:
    """Score all four agencies from *raw*."""
    return HealthScores(
        gpl=power_health(raw.gpl),
        gwi=water_health(raw.gwi.report),
        cjia=airport_health(raw.cjia),
        gcaa=aviation_health(raw.gcaa),
    )


def parse_date(value: str | None) -> date | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value).date()
    except ValueError:
        return None


def task_counts(tasks: list[TaskItem], today: date) -> TaskCounts:
    """Count active, overdue and due-today tasks as of *today*."""
    active = [t for t in tasks if t.status != "Done"]
    due = [parse_date(t.due_date) for t in active]
    return TaskCounts(
        active=len(active),
        overdue=sum(1 for d in due if d is not None and d < today),
        due_today=sum(1 for d in due if d == today),
    )


def _metric(value: object) -> float | None:
    number = as_number(value)
    return number if number else None


def snapshot_from_raw(raw: RawContext, *, now: datetime | None = None) -> MetricSnapshot:
    """Derive a ``MetricSnapshot`` for local answering from *raw*.

    Missing sections become ``None`` fields so the matcher declines
    rather than answering with zeros.
    """
    now = now or datetime.now(UTC)
    summary = raw.gpl.summary
    online, total = station_units(raw.gpl.stations)
    water = raw.gwi.report
    financial = section_of(water, "financial_data")
    collections = section_of(water, "collections_data")
    service = section_of(water, "customer_service_data")
    passengers = section_of(raw.cjia, "passenger_data")
    operations = section_of(raw.cjia, "operations_data")
    portfolio = raw.portfolio

    return MetricSnapshot(
        timestamp=now,
        gpl=PowerMetrics(
            health=raw.health.gpl,
            capacity_mw=_metric(summary.get("total_fossil_capacity_mw")) if summary else None,
            peak_demand_mw=_metric(summary.get("expected_peak_demand_mw")) if summary else None,
            reserve_mw=_metric(summary.get("reserve_capacity_mw")) if summary else None,
            units_online=online or None,
            units_total=total or None,
            suppressed_mw=(
                parse_number(summary.get("evening_peak_suppressed_mw")) if summary else None
            ),
            report_date=raw.gpl.report_date,
        ),
        gwi=WaterMetrics(
            health=raw.health.gwi,
            net_profit=financial.get("net_profit"),
            total_revenue=financial.get("total_revenue"),
            collections=collections.get("total_collections"),
            resolution_rate_pct=service.get("resolution_rate_pct"),
            active_accounts=collections.get("active_accounts"),
            report_month=water.get("report_month") if water else None,
        ),
        cjia=AirportMetrics(
            health=raw.health.cjia,
            total_passengers=passengers.get("total_passengers", passengers.get("departures")),
            on_time_pct=operations.get("on_time_performance_pct"),
            report_month=raw.cjia.get("report_month") if raw.cjia else None,
        ),
        gcaa=AviationMetrics(
            health=raw.health.gcaa,
            compliance_rate_pct=section_of(raw.gcaa, "compliance_data").get("compliance_rate_pct"),
            total_inspections=section_of(raw.gcaa, "inspection_data").get("total_inspections"),
            incidents=section_of(raw.gcaa, "incident_data").get("total_incidents"),
            report_month=raw.gcaa.get("report_month") if raw.gcaa else None,
        ),
        projects=(
            ProjectCounts(
                total=portfolio.total_projects,
                delayed=portfolio.delayed,
                in_progress=portfolio.in_progress,
                complete=portfolio.complete,
                not_started=portfolio.not_started,
                total_value=portfolio.total_value,
            )
            if portfolio is not None
            else ProjectCounts()
        ),
        tasks=(
            task_counts(raw.tasks, now.date()) if not raw.has_gap("tasks") else TaskCounts()
        ),
    )
