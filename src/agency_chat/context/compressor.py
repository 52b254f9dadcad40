"""Renders a ``RawContext`` into a tier-appropriate text payload.

Three detail levels:

- ``minimal``: flat key/value lines, one per agency. For quick lookups.
- ``focused``: full detail for the agency the current page is about,
  one-liners for the rest.
- ``full``: everything, with page-dependent extras (station tables,
  regional collections, complete delayed-project lists).
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from datetime import date, datetime, timedelta
from typing import Any

from agency_chat.models.context import CalendarEvent, RawContext, TaskItem
from agency_chat.models.snapshot import AgencyHealth
from agency_chat.models.tiers import DEFAULT_TIER_PROFILES, ContextLevel, ModelTier

from .health import parse_date, parse_number, section_of, station_units

PAGE_DESCRIPTIONS: dict[str, str] = {
    "/": "Daily Briefing - overview of tasks, calendar, and alerts",
    "/intel": "Agency Intel Overview - comparison of all agencies",
    "/intel/gpl": "GPL Deep Dive - power generation, stations, KPIs, forecasts",
    "/intel/gwi": "GWI Deep Dive - water utility metrics and financials",
    "/intel/cjia": "CJIA Deep Dive - airport passenger analytics",
    "/intel/gcaa": "GCAA Deep Dive - civil aviation compliance",
    "/projects": "PSIP Project Tracker - infrastructure project oversight",
    "/documents": "Document Vault - uploaded documents and AI analysis",
    "/admin": "Admin Portal - user management and data entry",
    "/calendar": "Calendar - schedule and meetings",
}

AGENCIES = ("gpl", "gwi", "cjia", "gcaa")


def context_level_for_tier(tier: ModelTier) -> ContextLevel:
    """Map a tier to its default context detail level."""
    return DEFAULT_TIER_PROFILES[tier].context_level


def describe_page(page: str) -> str:
    return PAGE_DESCRIPTIONS.get(page, page)


def fallback_context(page: str) -> str:
    """Minimal payload used when raw context assembly fails outright."""
    return (
        "=== SYSTEM DATA PARTIALLY UNAVAILABLE ===\n"
        "Context assembly encountered errors.\n"
        f"User is on: {page}"
    )


def detect_focus_agency(page: str) -> str | None:
    for agency in AGENCIES:
        if f"/{agency}" in page:
            return agency
    return None


# -- formatting helpers ------------------------------------------------------


def _num(value: object, decimals: int = 1) -> str:
    number = parse_number(value)
    return "N/A" if number is None else f"{number:.{decimals}f}"


def _short(value: object) -> str:
    number = parse_number(value)
    if number is None:
        return "N/A"
    magnitude = abs(number)
    if magnitude >= 1e9:
        return f"{number / 1e9:.1f}B"
    if magnitude >= 1e6:
        return f"{number / 1e6:.0f}M"
    if magnitude >= 1e3:
        return f"{number / 1e3:.0f}K"
    return f"{number:.0f}"


def _money(value: object) -> str:
    short = _short(value)
    return short if short == "N/A" else f"${short}"


def _pct(value: object) -> str:
    number = parse_number(value)
    return "N/A" if number is None else f"{number:.1f}%"


def _raw(value: object, default: str = "N/A") -> str:
    return default if value is None or value == "" else str(value)


def _timestamp(raw: RawContext) -> str:
    return raw.generated_at.strftime("%Y-%m-%d %H:%M %Z").strip()


def _due(task: TaskItem) -> date | None:
    return parse_date(task.due_date)


class _TaskBuckets:
    __slots__ = ("active", "due_this_week", "due_today", "overdue")

    def __init__(self, tasks: list[TaskItem], today: date) -> None:
        self.active = [t for t in tasks if t.status != "Done"]
        self.overdue: list[TaskItem] = []
        self.due_today: list[TaskItem] = []
        self.due_this_week: list[TaskItem] = []
        horizon = today + timedelta(days=7)
        for task in self.active:
            due = _due(task)
            if due is None:
                continue
            if due < today:
                self.overdue.append(task)
            elif due == today:
                self.due_today.append(task)
            elif due <= horizon:
                self.due_this_week.append(task)


def _event_time(event: CalendarEvent) -> str:
    if event.all_day:
        return "All day"
    if not event.start_time:
        return "??"
    try:
        return datetime.fromisoformat(event.start_time).strftime("%H:%M")
    except ValueError:
        return event.start_time


def _score(health: AgencyHealth) -> str:
    return "N/A" if health.score is None else f"{health.score:g}"


def _health_lines(raw: RawContext) -> list[str]:
    return [
        f"{name.upper()}: {_score(h)}/10 ({h.label}) - {h.breakdown}"
        for name, h in (
            ("gpl", raw.health.gpl),
            ("gwi", raw.health.gwi),
            ("cjia", raw.health.cjia),
            ("gcaa", raw.health.gcaa),
        )
    ]


def _passengers(report: Mapping[str, Any] | None) -> int:
    pax = section_of(report, "passenger_data")
    value = parse_number(pax.get("total_passengers")) or parse_number(pax.get("departures"))
    return int(value or 0)


# -- per-agency detail blocks ------------------------------------------------


def _power_detail(raw: RawContext) -> list[str]:
    s = raw.gpl.summary or {}
    lines = [
        "",
        "== GPL DETAIL ==",
        f"System: Capacity {_num(s.get('total_fossil_capacity_mw'))}MW, "
        f"Peak {_num(s.get('expected_peak_demand_mw'))}MW, "
        f"Reserve {_num(s.get('reserve_capacity_mw'))}MW",
        f"Evening Peak: On-bars {_num(s.get('evening_peak_on_bars_mw'))}MW, "
        f"Suppressed {_num(s.get('evening_peak_suppressed_mw'))}MW",
    ]
    if raw.gpl.stations:
        lines.append("Stations:")
        lines.extend(_station_lines(raw))
    lines.extend(_kpi_lines(raw))
    return lines


def _station_lines(raw: RawContext) -> list[str]:
    return [
        f"  {_raw(st.get('station'), '?')}: {_raw(st.get('units_online'), '0')}/"
        f"{_raw(st.get('total_units'), '0')} online, "
        f"{_num(st.get('total_available_mw'))}/{_num(st.get('total_derated_capacity_mw'))}MW"
        for st in raw.gpl.stations
    ]


def _kpi_lines(raw: RawContext) -> list[str]:
    if not raw.gpl.kpis:
        return []
    lines = [f"KPIs ({raw.gpl.kpi_month or ''}):"]
    lines.extend(f"  {name}: {value:.2f}" for name, value in raw.gpl.kpis.items())
    return lines


def _water_detail(raw: RawContext) -> list[str]:
    report = raw.gwi.report
    fin = section_of(report, "financial_data")
    coll = section_of(report, "collections_data")
    cs = section_of(report, "customer_service_data")
    return [
        "",
        "== GWI DETAIL ==",
        f"Financial: Profit {_money(fin.get('net_profit'))}, "
        f"Revenue {_money(fin.get('total_revenue'))}, "
        f"OpCost {_money(fin.get('operating_cost'))}, Cash {_money(fin.get('cash_at_bank'))}",
        f"Collections: Total {_money(coll.get('total_collections'))}, "
        f"On-time {_pct(coll.get('on_time_payment_pct'))}, "
        f"Receivable {_money(coll.get('accounts_receivable'))}",
        f"Service: Complaints {_raw(cs.get('total_complaints'))}, "
        f"Resolved {_raw(cs.get('resolved_complaints'))} ({_pct(cs.get('resolution_rate_pct'))}), "
        f"Timeline {_pct(cs.get('within_timeline_pct'))}",
    ]


def _json_sections(report: Mapping[str, Any] | None, sections: tuple[tuple[str, str], ...]) -> list[str]:
    lines: list[str] = []
    for key, label in sections:
        data = section_of(report, key)
        if data:
            lines.append(f"{label}: {json.dumps(data, default=str, sort_keys=True)}")
    return lines


_AIRPORT_SECTIONS = (
    ("passenger_data", "Passengers"),
    ("operations_data", "Operations"),
    ("revenue_data", "Revenue"),
)
_AVIATION_SECTIONS = (
    ("compliance_data", "Compliance"),
    ("inspection_data", "Inspections"),
    ("incident_data", "Incidents"),
)


# -- levels ------------------------------------------------------------------


def _render_minimal(raw: RawContext) -> str:
    lines = [f"DATA: {_timestamp(raw)}"]
    if raw.gaps:
        lines.append(f"GAPS: {', '.join(raw.gaps)}")
    h = raw.health
    lines.append(
        f"HEALTH: GPL={_score(h.gpl)}/10, GWI={_score(h.gwi)}/10, "
        f"CJIA={_score(h.cjia)}/10, GCAA={_score(h.gcaa)}/10"
    )

    if raw.gpl.summary:
        s = raw.gpl.summary
        online, total = station_units(raw.gpl.stations)
        lines.append(
            f"GPL: Cap={_num(s.get('total_fossil_capacity_mw'))}MW, "
            f"Peak={_num(s.get('expected_peak_demand_mw'))}MW, "
            f"Reserve={_num(s.get('reserve_capacity_mw'))}MW, {online}/{total} units, "
            f"Suppressed={_num(s.get('evening_peak_suppressed_mw'))}MW"
        )
    else:
        lines.append("GPL: No data")

    if raw.gwi.report:
        fin = section_of(raw.gwi.report, "financial_data")
        cs = section_of(raw.gwi.report, "customer_service_data")
        coll = section_of(raw.gwi.report, "collections_data")
        lines.append(
            f"GWI: Profit={_money(fin.get('net_profit'))}, "
            f"Revenue={_money(fin.get('total_revenue'))}, "
            f"Collections={_money(coll.get('total_collections'))}, "
            f"Resolution={_pct(cs.get('resolution_rate_pct'))}, "
            f"Accounts={_raw(coll.get('active_accounts'), '0')}"
        )
    else:
        lines.append("GWI: No data")

    if raw.cjia:
        ops = section_of(raw.cjia, "operations_data")
        lines.append(
            f"CJIA: Pax={_passengers(raw.cjia)}, "
            f"OnTime={_pct(ops.get('on_time_performance_pct'))}"
        )
    else:
        lines.append("CJIA: No data")

    if raw.gcaa:
        comp = section_of(raw.gcaa, "compliance_data")
        insp = section_of(raw.gcaa, "inspection_data")
        inc = section_of(raw.gcaa, "incident_data")
        lines.append(
            f"GCAA: Compliance={_pct(comp.get('compliance_rate_pct'))}, "
            f"Inspections={_raw(insp.get('total_inspections'), '0')}, "
            f"Incidents={_raw(inc.get('total_incidents'), '0')}"
        )
    else:
        lines.append("GCAA: No data")

    if raw.portfolio:
        p = raw.portfolio
        lines.append(
            f"PROJECTS: {p.total_projects} total, {p.delayed} delayed, "
            f"{p.in_progress} in progress, {_money(p.total_value)} value"
        )

    buckets = _TaskBuckets(raw.tasks, raw.generated_at.date())
    lines.append(f"TASKS: {len(buckets.active)} active, {len(buckets.overdue)} overdue")
    lines.append(f"CALENDAR: {len(raw.today_events)} events today")
    return "\n".join(lines)


def _render_focused(raw: RawContext, page: str) -> str:
    lines = [f"=== DATA AS OF {_timestamp(raw)} ==="]
    if raw.gaps:
        lines.append(f"GAPS: {', '.join(raw.gaps)}")
    lines.extend(["", "== HEALTH ==", *_health_lines(raw)])

    focus = detect_focus_agency(page)

    if raw.gpl.summary:
        if focus == "gpl":
            lines.extend(_power_detail(raw))
        else:
            s = raw.gpl.summary
            online, total = station_units(raw.gpl.stations)
            lines.extend([
                "",
                f"GPL: Cap {_num(s.get('total_fossil_capacity_mw'))}MW, "
                f"Peak {_num(s.get('expected_peak_demand_mw'))}MW, "
                f"Reserve {_num(s.get('reserve_capacity_mw'))}MW, {online}/{total} units",
            ])

    if raw.gwi.report:
        if focus == "gwi":
            lines.extend(_water_detail(raw))
        else:
            fin = section_of(raw.gwi.report, "financial_data")
            cs = section_of(raw.gwi.report, "customer_service_data")
            lines.extend([
                "",
                f"GWI: Profit {_money(fin.get('net_profit'))}, "
                f"Revenue {_money(fin.get('total_revenue'))}, "
                f"Resolution {_pct(cs.get('resolution_rate_pct'))}",
            ])

    if raw.cjia:
        if focus == "cjia":
            lines.extend(["", "== CJIA DETAIL ==", *_json_sections(raw.cjia, _AIRPORT_SECTIONS)])
        else:
            ops = section_of(raw.cjia, "operations_data")
            lines.extend([
                "",
                f"CJIA: {_passengers(raw.cjia)} passengers, "
                f"On-time {_pct(ops.get('on_time_performance_pct'))}",
            ])

    if raw.gcaa:
        if focus == "gcaa":
            lines.extend(["", "== GCAA DETAIL ==", *_json_sections(raw.gcaa, _AVIATION_SECTIONS)])
        else:
            comp = section_of(raw.gcaa, "compliance_data")
            inc = section_of(raw.gcaa, "incident_data")
            lines.extend([
                "",
                f"GCAA: Compliance {_pct(comp.get('compliance_rate_pct'))}, "
                f"Incidents {_raw(inc.get('total_incidents'), '0')}",
            ])

    if raw.portfolio:
        p = raw.portfolio
        lines.extend([
            "",
            "== PROJECTS ==",
            f"Total: {p.total_projects}, Delayed: {p.delayed}, Value: {_money(p.total_value)}",
        ])
        if raw.delayed and (page.startswith("/projects") or focus is None):
            for i, d in enumerate(raw.delayed[:5], start=1):
                lines.append(
                    f"{i}. {d.get('project_name') or d.get('project_id')} - "
                    f"{_raw(d.get('days_overdue'), '?')}d overdue - "
                    f"{_raw(d.get('completion_pct'), '?')}%"
                )

    buckets = _TaskBuckets(raw.tasks, raw.generated_at.date())
    lines.extend([
        "",
        f"== TASKS: {len(buckets.active)} active, {len(buckets.overdue)} overdue, "
        f"{len(buckets.due_today)} today ==",
    ])

    if raw.today_events:
        lines.extend(["", f"== TODAY: {len(raw.today_events)} events =="])
        lines.extend(f"- {_event_time(ev)}: {ev.title}" for ev in raw.today_events[:5])

    lines.extend(["", f"CONTEXT: {page} - {describe_page(page)}"])
    return "\n".join(lines)


def _render_full(raw: RawContext, page: str) -> str:
    lines = [f"=== SYSTEM DATA AS OF {_timestamp(raw)} ==="]
    if raw.gaps:
        lines.extend(["", f"DATA GAPS: {'; '.join(raw.gaps)}"])
    lines.extend(["", "== AGENCY HEALTH SCORES ==", *_health_lines(raw)])
    overview = page == "/intel"

    report = raw.gwi.report
    if report:
        fin = section_of(report, "financial_data")
        coll = section_of(report, "collections_data")
        cs = section_of(report, "customer_service_data")
        lines.extend([
            "",
            f"== GWI - LATEST REPORT ({_raw(report.get('report_month'), 'Unknown')}) ==",
            f"Financial: Net Profit {_money(fin.get('net_profit'))}, "
            f"Total Revenue {_money(fin.get('total_revenue'))}, "
            f"Govt Subvention {_money(fin.get('govt_subvention'))}, "
            f"Operating Cost {_money(fin.get('operating_cost'))}, "
            f"Cash at Bank {_money(fin.get('cash_at_bank'))}, "
            f"Net Assets {_money(fin.get('net_assets'))}",
            f"Collections: Total {_money(coll.get('total_collections'))}, "
            f"YTD {_money(coll.get('ytd_collections'))}, "
            f"On-time {_pct(coll.get('on_time_payment_pct'))}, "
            f"Active Accounts {_raw(coll.get('active_accounts'), '0')}, "
            f"Receivable {_money(coll.get('accounts_receivable'))}",
        ])
        if page == "/intel/gwi" or overview:
            regions = ", ".join(
                f"R{n} {_money(coll.get(f'region_{n}_collections'))}" for n in range(1, 6)
            )
            lines.append(f"  Regional: {regions}")
            lines.append(
                f"  Arrears: 30-day {_money(coll.get('arrears_30_days'))}, "
                f"60-day {_money(coll.get('arrears_60_days'))}, "
                f"90+ {_money(coll.get('arrears_90_plus_days'))}"
            )
        lines.append(
            f"Customer Service: Complaints {_raw(cs.get('total_complaints'))}, "
            f"Resolved {_raw(cs.get('resolved_complaints'))} ({_pct(cs.get('resolution_rate_pct'))}), "
            f"Within timeline {_pct(cs.get('within_timeline_pct'))}, "
            f"Unresolved {_raw(cs.get('unresolved_complaints'))}"
        )
        insight = section_of(raw.gwi.insights, "insight_json")
        if (page == "/intel/gwi" or overview) and insight.get("executive_summary"):
            lines.extend(["", f"GWI AI ANALYSIS: {insight['executive_summary']}"])
    else:
        lines.extend(["", "== GWI - No data uploaded =="])

    complaints = raw.gwi.complaints
    if complaints:
        cd = section_of(complaints, "complaints_data")
        week = _raw(complaints.get("report_week"), "Unknown")
        if cd:
            summary = (
                f"Total {_raw(cd.get('total_complaints'))}, New {_raw(cd.get('new_complaints'))}, "
                f"Resolved {_raw(cd.get('resolved'))}"
            )
        else:
            summary = "No data"
        lines.extend(["", f"GWI Weekly Complaints ({week}): {summary}"])

    if raw.gpl.summary:
        s = raw.gpl.summary
        lines.extend([
            "",
            f"== GPL - LATEST DATA ({raw.gpl.report_date or 'Unknown'}) ==",
            f"System: Fossil Capacity {_num(s.get('total_fossil_capacity_mw'))}MW, "
            f"Peak Demand {_num(s.get('expected_peak_demand_mw'))}MW, "
            f"Reserve {_num(s.get('reserve_capacity_mw'))}MW",
            f"Evening Peak: On-bars {_num(s.get('evening_peak_on_bars_mw'))}MW, "
            f"Suppressed {_num(s.get('evening_peak_suppressed_mw'))}MW",
            f"Renewables: Total {_num(s.get('total_renewable_mwp'))}MWp",
        ])
        if raw.gpl.stations:
            if page == "/intel/gpl" or overview:
                lines.append("Stations:")
                lines.extend(_station_lines(raw))
            else:
                online, total = station_units(raw.gpl.stations)
                lines.append(
                    f"Stations: {len(raw.gpl.stations)} stations, {online}/{total} units online"
                )
        lines.extend(_kpi_lines(raw))
    else:
        lines.extend(["", "== GPL - No data uploaded =="])

    if raw.cjia:
        lines.extend([
            "",
            f"== CJIA - LATEST REPORT ({_raw(raw.cjia.get('report_month'), 'Unknown')}) ==",
            *_json_sections(raw.cjia, _AIRPORT_SECTIONS),
        ])
    else:
        lines.extend(["", "== CJIA - No data uploaded =="])

    if raw.gcaa:
        lines.extend([
            "",
            f"== GCAA - LATEST REPORT ({_raw(raw.gcaa.get('report_month'), 'Unknown')}) ==",
            *_json_sections(raw.gcaa, _AVIATION_SECTIONS),
        ])
    else:
        lines.extend(["", "== GCAA - No data uploaded =="])

    if raw.portfolio:
        p = raw.portfolio
        lines.extend([
            "",
            "== PROJECTS OVERVIEW ==",
            f"Total: {p.total_projects} projects, {_money(p.total_value)} portfolio value",
            f"By Status: {p.in_progress} In Progress, {p.delayed} Delayed, "
            f"{p.complete} Complete, {p.not_started} Not Started",
        ])
        if p.agencies:
            agencies = ", ".join(
                f"{a.agency} {a.total} ({_money(a.total_value)}, {a.delayed} delayed)"
                for a in p.agencies
            )
            lines.append(f"By Agency: {agencies}")
        limit = None if page.startswith("/projects") else 10
        top = raw.delayed[:limit]
        if top:
            lines.extend(["", "TOP DELAYED PROJECTS (most overdue):"])
            for i, d in enumerate(top, start=1):
                lines.append(
                    f"{i}. {d.get('project_name') or d.get('project_id')} - "
                    f"{d.get('sub_agency') or 'Unknown'} - "
                    f"{_raw(d.get('days_overdue'), '?')} days overdue - "
                    f"{_money(d.get('contract_value'))} - "
                    f"{_raw(d.get('completion_pct'), '?')}% complete"
                )
    else:
        lines.extend(["", "== PROJECTS - No data available =="])

    lines.extend(["", "== TASKS =="])
    today = raw.generated_at.date()
    if raw.tasks:
        buckets = _TaskBuckets(raw.tasks, today)
        lines.append(
            f"Total: {len(buckets.active)} active tasks, {len(buckets.overdue)} overdue, "
            f"{len(buckets.due_today)} due today, {len(buckets.due_this_week)} due this week"
        )
        by_agency: dict[str, list[int]] = {}
        overdue_ids = {id(t) for t in buckets.overdue}
        for task in buckets.active:
            counts = by_agency.setdefault(task.agency or "General", [0, 0])
            counts[0] += 1
            if id(task) in overdue_ids:
                counts[1] += 1
        lines.append(
            "By Agency: "
            + ", ".join(
                f"{agency} {total}" + (f" ({over} overdue)" if over else "")
                for agency, (total, over) in by_agency.items()
            )
        )
        if buckets.overdue:
            lines.extend(["", "OVERDUE TASKS:"])
            for i, t in enumerate(buckets.overdue, start=1):
                due = _due(t)
                days = (today - due).days if due else 0
                lines.append(
                    f"{i}. {t.title} - {t.agency or 'General'} - due {t.due_date} - "
                    f"{days} days overdue - {t.status}"
                )
        if buckets.due_today:
            lines.extend(["", "DUE TODAY:"])
            for i, t in enumerate(buckets.due_today, start=1):
                lines.append(f"{i}. {t.title} - {t.agency or 'General'} - {t.status}")
        if page in ("/", "/briefing") and buckets.due_this_week:
            lines.extend(["", "DUE THIS WEEK:"])
            for i, t in enumerate(buckets.due_this_week, start=1):
                lines.append(
                    f"{i}. {t.title} - {t.agency or 'General'} - due {t.due_date} - {t.status}"
                )
    else:
        lines.append("No tasks available")

    lines.extend(["", "== CALENDAR =="])
    today_label = raw.generated_at.strftime("%A, %B %d, %Y")
    if raw.today_events:
        lines.append(f"Today ({today_label}): {len(raw.today_events)} events")
        for ev in raw.today_events:
            location = f" [{ev.location}]" if ev.location else ""
            lines.append(f"- {_event_time(ev)}: {ev.title}{location}")
    else:
        lines.append(f"Today ({today_label}): No events")

    if raw.week_events:
        by_day: dict[str, list[str]] = {}
        for ev in raw.week_events:
            if not ev.start_time:
                continue
            try:
                day = datetime.fromisoformat(ev.start_time).strftime("%A, %b %d")
            except ValueError:
                continue
            by_day.setdefault(day, []).append(ev.title)
        if by_day:
            lines.append("This Week:")
            for day, titles in by_day.items():
                lines.append(f"- {day}: {len(titles)} events - {', '.join(titles)}")

    lines.extend([
        "",
        "== CURRENT CONTEXT ==",
        f"User is on: {page} - {PAGE_DESCRIPTIONS.get(page, f'Page: {page}')}",
    ])
    return "\n".join(lines)


def compress_context(raw: RawContext, page: str, level: ContextLevel) -> str:
    """Render *raw* at *level* for a user on *page*.

    Parameters:
        raw: The assembled context.
        page: The caller's current page path.
        level: Detail level, usually ``context_level_for_tier(tier)``.

    Returns:
        The context payload for the system prompt.
    """
    if level == ContextLevel.MINIMAL:
        return _render_minimal(raw)
    if level == ContextLevel.FOCUSED:
        return _render_focused(raw, page)
    return _render_full(raw, page)
