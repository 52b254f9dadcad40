"""Tests for agency_chat.context.health."""

from __future__ import annotations

from datetime import date

import pytest

from agency_chat.context.health import (
    airport_health,
    aviation_health,
    compute_health,
    health_label,
    parse_number,
    power_health,
    snapshot_from_raw,
    task_counts,
    water_health,
)
from agency_chat.models.context import PowerData, RawContext, TaskItem, gap_message
from tests.conftest import (
    AIRPORT_REPORT,
    AVIATION_REPORT,
    NOW,
    POWER_SUMMARY,
    STATIONS,
    TASKS,
    WATER_REPORT,
    make_assembler,
)


class TestHelpers:
    @pytest.mark.parametrize(
        ("score", "label"),
        [(10, "Strong"), (8, "Strong"), (7.9, "Adequate"), (6, "Adequate"), (4, "Concerning"),
         (2, "Poor"), (1.9, "Critical"), (0, "Critical")],
    )
    def test_health_label(self, score: float, label: str) -> None:
        assert health_label(score) == label

    @pytest.mark.parametrize(
        ("value", "expected"),
        [(3, 3.0), ("4.5", 4.5), (0, 0.0), ("abc", None), (None, None), (True, None),
         (float("inf"), None)],
    )
    def test_parse_number(self, value: object, expected: float | None) -> None:
        assert parse_number(value) == expected


class TestAgencyScores:
    def test_power_strong(self) -> None:
        health = power_health(
            PowerData(summary=POWER_SUMMARY, stations=STATIONS, kpis={"Collection Rate %": 96.0})
        )
        assert health.score == 10
        assert health.label == "Strong"
        assert health.breakdown == "Reserve Margin 33.3%, 8/10 units online, Collection 96.0%"

    def test_power_weak(self) -> None:
        summary = {
            "reserve_capacity_mw": 3,
            "expected_peak_demand_mw": 100,
            "evening_peak_suppressed_mw": 25,
        }
        stations = [{"units_online": 2, "total_units": 10}]
        health = power_health(
            PowerData(summary=summary, stations=stations, kpis={"Collection Rate %": 80.0})
        )
        # 5 - 2 (reserve) - 2 (availability) - 1 (suppressed) - 1 (collection)
        assert health.score == 0
        assert health.label == "Critical"
        assert "25.0MW suppressed" in health.breakdown

    def test_missing_reports(self) -> None:
        assert power_health(PowerData()).breakdown == "No GPL data uploaded"
        assert water_health(None).label == "No Data"
        assert airport_health(None).score == 0
        assert aviation_health(None).breakdown == "No GCAA data uploaded"

    def test_water(self) -> None:
        health = water_health(WATER_REPORT)
        assert health.score == 7
        assert health.breakdown == "Resolution 85%, Within Timeline 70%, Collections $8M"

    def test_airport(self) -> None:
        health = airport_health(AIRPORT_REPORT)
        assert health.score == 7
        assert health.breakdown == "52.0K passengers, On-time 88%"

    def test_airport_without_indicators(self) -> None:
        health = airport_health({"report_month": "2026-09"})
        assert health.score == 5
        assert health.breakdown == "Limited data available"

    def test_aviation(self) -> None:
        health = aviation_health(AVIATION_REPORT)
        assert health.score == 8
        assert health.label == "Strong"
        assert health.breakdown == "Compliance 92%, 14 inspections"


class TestTaskCounts:
    def test_counts_relative_to_today(self) -> None:
        counts = task_counts(TASKS, date(2026, 10, 18))
        assert (counts.active, counts.overdue, counts.due_today) == (3, 1, 1)

    def test_unparseable_due_dates_ignored(self) -> None:
        counts = task_counts([TaskItem(title="x", due_date="soon")], date(2026, 10, 18))
        assert (counts.active, counts.overdue, counts.due_today) == (1, 0, 0)


class TestSnapshotFromRaw:
    @pytest.mark.asyncio
    async def test_snapshot_from_full_context(self) -> None:
        raw = await make_assembler().assemble()
        snapshot = snapshot_from_raw(raw, now=NOW)
        assert snapshot.gpl.reserve_mw == 50.0
        assert snapshot.gpl.suppressed_mw == 0.0
        assert (snapshot.gpl.units_online, snapshot.gpl.units_total) == (8, 10)
        assert snapshot.gpl.health is not None and snapshot.gpl.health.score == 10
        assert snapshot.gwi.resolution_rate_pct == 85.0
        assert snapshot.cjia.total_passengers == 52_000
        assert snapshot.gcaa.compliance_rate_pct == 92.0
        assert snapshot.projects.delayed == 15
        assert snapshot.tasks.overdue == 1

    def test_empty_context_leaves_fields_unknown(self) -> None:
        raw = RawContext(gaps=[gap_message("tasks")])
        raw.health = compute_health(raw)
        snapshot = snapshot_from_raw(raw, now=NOW)
        assert snapshot.gpl.reserve_mw is None
        assert snapshot.gpl.units_online is None
        assert snapshot.projects.total is None
        assert snapshot.tasks.active is None
