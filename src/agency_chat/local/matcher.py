"""Zero-cost answers computed directly from a metric snapshot.

Each rule pairs a question pattern with a handler that reads structured
fields from the caller's ``MetricSnapshot``. A handler answers only when
every field it needs is present and numeric; otherwise it returns
``None`` and the next rule (or the model) gets a chance. Rules never
guess.
"""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from agency_chat.models.snapshot import AgencyHealth, MetricSnapshot

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class LocalAnswer:
    """A fully formed answer with follow-up suggestions."""

    text: str
    suggestions: list[str] = field(default_factory=list)


RuleHandler = Callable[[MetricSnapshot], LocalAnswer | None]


@dataclass(frozen=True, slots=True)
class LocalRule:
    """A question pattern and the handler that answers it."""

    name: str
    pattern: re.Pattern[str]
    handler: RuleHandler


def _is_number(value: object) -> bool:
    return (
        isinstance(value, int | float)
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def _numbers(*values: object) -> bool:
    """True only if every value is a finite real number."""
    return all(_is_number(v) for v in values)


def _fmt(value: float | None) -> str:
    return f"{value:.1f}" if _is_number(value) else "N/A"


def _health_rule(agency: str, label: str, suggestions: list[str]) -> RuleHandler:
    def handler(snapshot: MetricSnapshot) -> LocalAnswer | None:
        health: AgencyHealth | None = getattr(snapshot, agency).health
        if health is None or not _numbers(health.score):
            return None
        return LocalAnswer(
            text=(
                f"**{label} health score: {health.score:g}/10** ({health.label})"
                f"\n\n{health.breakdown}"
            ).rstrip(),
            suggestions=suggestions,
        )

    return handler


def _all_health(snapshot: MetricSnapshot) -> LocalAnswer | None:
    rows: list[str] = []
    for agency, label in (("gpl", "GPL"), ("gwi", "GWI"), ("cjia", "CJIA"), ("gcaa", "GCAA")):
        health = getattr(snapshot, agency).health
        if health is None or not _numbers(health.score):
            return None
        rows.append(
            f"- **{label}:** {health.score:g}/10 ({health.label}) \N{EM DASH} {health.breakdown}"
        )
    return LocalAnswer(
        text="## Agency Health Scores\n\n" + "\n".join(rows),
        suggestions=[
            "Which agency needs the most attention?",
            "Show GPL station details",
            "Show delayed projects",
        ],
    )


def _reserve(snapshot: MetricSnapshot) -> LocalAnswer | None:
    gpl = snapshot.gpl
    if not _numbers(gpl.reserve_mw):
        return None
    return LocalAnswer(
        text=(
            f"**GPL reserve capacity: {gpl.reserve_mw:.1f} MW**\n\n"
            f"Capacity: {_fmt(gpl.capacity_mw)} MW | Peak demand: {_fmt(gpl.peak_demand_mw)} MW"
        ),
        suggestions=[
            "Is this reserve adequate?",
            "Which stations are offline?",
            "What is suppressed demand?",
        ],
    )


def _peak(snapshot: MetricSnapshot) -> LocalAnswer | None:
    gpl = snapshot.gpl
    if not _numbers(gpl.peak_demand_mw):
        return None
    return LocalAnswer(
        text=(
            f"**Expected peak demand: {gpl.peak_demand_mw:.1f} MW**\n\n"
            f"Capacity: {_fmt(gpl.capacity_mw)} MW | Reserve: {_fmt(gpl.reserve_mw)} MW"
        ),
        suggestions=[
            "What is the reserve margin?",
            "How much suppressed demand?",
            "GPL station status",
        ],
    )


def _suppressed(snapshot: MetricSnapshot) -> LocalAnswer | None:
    suppressed = snapshot.gpl.suppressed_mw
    if not _numbers(suppressed):
        return None
    if suppressed == 0:
        text = "**No suppressed demand currently.** All load is being served."
    else:
        text = (
            f"**Suppressed demand: {suppressed:.1f} MW**\n\n"
            "This means some areas may be experiencing load shedding."
        )
    return LocalAnswer(
        text=text,
        suggestions=[
            "What is causing load shedding?",
            "Which stations are offline?",
            "GPL health score",
        ],
    )


def _units_online(snapshot: MetricSnapshot) -> LocalAnswer | None:
    gpl = snapshot.gpl
    if not _numbers(gpl.units_online, gpl.units_total):
        return None
    return LocalAnswer(
        text=f"**{gpl.units_online} of {gpl.units_total} generation units online**",
        suggestions=[
            "Which stations have units offline?",
            "What is total capacity?",
            "GPL health score",
        ],
    )


def _project_total(snapshot: MetricSnapshot) -> LocalAnswer | None:
    p = snapshot.projects
    if not _numbers(p.total, p.in_progress, p.delayed, p.complete, p.not_started, p.total_value):
        return None
    return LocalAnswer(
        text=(
            f"**{p.total} total projects** \N{EM DASH} {p.in_progress} in progress, "
            f"{p.delayed} delayed, {p.complete} complete, {p.not_started} not started\n\n"
            f"Total portfolio value: **${p.total_value / 1e6:.0f}M**"
        ),
        suggestions=[
            "Which delayed projects are most critical?",
            "Summarize projects by agency",
            "What is total delayed project value?",
        ],
    )


def _project_delayed(snapshot: MetricSnapshot) -> LocalAnswer | None:
    p = snapshot.projects
    if not _numbers(p.delayed, p.total):
        return None
    return LocalAnswer(
        text=f"**{p.delayed} projects are delayed** out of {p.total} total projects.",
        suggestions=[
            "Which delayed projects are most critical?",
            "Show projects by region",
            "Compare agency project execution",
        ],
    )


def _tasks_overdue(snapshot: MetricSnapshot) -> LocalAnswer | None:
    t = snapshot.tasks
    if not _numbers(t.overdue, t.active, t.due_today):
        return None
    return LocalAnswer(
        text=(
            f"**{t.overdue} overdue tasks** out of {t.active} active tasks. "
            f"{t.due_today} due today."
        ),
        suggestions=[
            "Show me my overdue tasks",
            "What needs my attention today?",
            "Tasks by agency",
        ],
    )


def _resolution_rate(snapshot: MetricSnapshot) -> LocalAnswer | None:
    rate = snapshot.gwi.resolution_rate_pct
    if not _numbers(rate):
        return None
    return LocalAnswer(
        text=f"**GWI complaint resolution rate: {rate:.1f}%**",
        suggestions=[
            "Is GWI resolution improving?",
            "How many GWI complaints?",
            "GWI health score",
        ],
    )


def _compliance_rate(snapshot: MetricSnapshot) -> LocalAnswer | None:
    rate = snapshot.gcaa.compliance_rate_pct
    if not _numbers(rate):
        return None
    return LocalAnswer(
        text=f"**GCAA compliance rate: {rate:.1f}%**",
        suggestions=[
            "How many inspections completed?",
            "Any aviation incidents?",
            "GCAA health score",
        ],
    )


def _on_time(snapshot: MetricSnapshot) -> LocalAnswer | None:
    pct = snapshot.cjia.on_time_pct
    if not _numbers(pct):
        return None
    return LocalAnswer(
        text=f"**CJIA on-time performance: {pct:.1f}%**",
        suggestions=[
            "How many passengers this month?",
            "CJIA health score",
            "Compare all agency health scores",
        ],
    )


def _passengers(snapshot: MetricSnapshot) -> LocalAnswer | None:
    pax = snapshot.cjia.total_passengers
    if not _numbers(pax):
        return None
    return LocalAnswer(
        text=f"**CJIA passengers: {pax:,}**",
        suggestions=[
            "What is CJIA on-time performance?",
            "CJIA health score",
            "Compare all agency health scores",
        ],
    )


_WHATS = r"(what('s|s| is)|how('s|s| is))\s+(the\s+)?"


def _rule(name: str, regex: str, handler: RuleHandler) -> LocalRule:
    return LocalRule(name, re.compile(regex, re.IGNORECASE), handler)


DEFAULT_RULES: tuple[LocalRule, ...] = (
    _rule(
        "gpl_health",
        r"^" + _WHATS + r"gpl\s+health\s+score",
        _health_rule(
            "gpl",
            "GPL",
            [
                "Which GPL stations need attention?",
                "What is the reserve margin?",
                "Compare all agency health scores",
            ],
        ),
    ),
    _rule(
        "gwi_health",
        r"^" + _WHATS + r"gwi\s+health\s+score",
        _health_rule(
            "gwi",
            "GWI",
            [
                "What is GWI resolution rate?",
                "Show GWI financial summary",
                "Compare all agency health scores",
            ],
        ),
    ),
    _rule(
        "cjia_health",
        r"^" + _WHATS + r"cjia\s+health\s+score",
        _health_rule(
            "cjia",
            "CJIA",
            [
                "How many passengers this month?",
                "What is CJIA on-time performance?",
                "Compare all agency health scores",
            ],
        ),
    ),
    _rule(
        "gcaa_health",
        r"^" + _WHATS + r"gcaa\s+health\s+score",
        _health_rule(
            "gcaa",
            "GCAA",
            [
                "What is the compliance rate?",
                "How many incidents this month?",
                "Compare all agency health scores",
            ],
        ),
    ),
    _rule("all_health", r"(all|every)\s+(agency\s+)?health\s+score", _all_health),
    _rule(
        "reserve",
        r"(what('s|s| is)|how much)\s+(the\s+)?(current\s+)?(reserve|reserve margin|spare capacity)",
        _reserve,
    ),
    _rule("peak_demand", r"(what('s|s| is))\s+(the\s+)?(current\s+)?(peak\s+demand|expected\s+peak)", _peak),
    _rule(
        "suppressed_demand",
        r"(what('s|s| is))\s+(the\s+)?(current\s+)?suppressed\s+(demand|mw|load)",
        _suppressed,
    ),
    _rule(
        "units_online",
        r"how\s+many\s+(generation\s+)?units?\s+(are\s+)?(online|available|running)",
        _units_online,
    ),
    _rule("project_total", r"how\s+many\s+(total\s+)?projects", _project_total),
    _rule("project_delayed", r"how\s+many\s+(projects?\s+)?(are\s+)?delayed", _project_delayed),
    _rule("tasks_overdue", r"how\s+many\s+(tasks?\s+)?(are\s+)?overdue", _tasks_overdue),
    _rule(
        "resolution_rate",
        r"(what('s|s| is))\s+(the\s+)?(gwi\s+)?resolution\s+rate",
        _resolution_rate,
    ),
    _rule(
        "compliance_rate",
        r"(what('s|s| is))\s+(the\s+)?(gcaa\s+)?compliance\s+rate",
        _compliance_rate,
    ),
    _rule(
        "on_time",
        r"(what('s|s| is))\s+(the\s+)?(cjia\s+)?on.?time\s+performance",
        _on_time,
    ),
    _rule("passengers", r"how\s+many\s+(cjia\s+)?passengers", _passengers),
)


class LocalAnswerMatcher:
    """Evaluates an ordered list of local rules against a snapshot.

    Rules are tried in order; the first rule whose pattern matches *and*
    whose handler finds all its fields wins. A matching rule that lacks
    data does not stop the search.

    Parameters:
        rules: The ordered rule list. Defaults to ``DEFAULT_RULES``.
    """

    __slots__ = ("_rules",)

    def __init__(self, rules: Sequence[LocalRule] = DEFAULT_RULES) -> None:
        self._rules = tuple(rules)

    def __repr__(self) -> str:
        return f"LocalAnswerMatcher(rules={len(self._rules)})"

    @property
    def rules(self) -> tuple[LocalRule, ...]:
        return self._rules

    def try_local(self, question: str, snapshot: MetricSnapshot | None) -> LocalAnswer | None:
        """Answer *question* from *snapshot* if a rule can do so exactly.

        Parameters:
            question: The raw question text.
            snapshot: Caller-provided metrics, or ``None``.

        Returns:
            A ``LocalAnswer``, or ``None`` when no rule both matches and
            has every field it needs.
        """
        if snapshot is None:
            return None
        text = question.strip()
        for rule in self._rules:
            if not rule.pattern.search(text):
                continue
            answer = rule.handler(snapshot)
            if answer is not None:
                logger.debug("Local rule %r answered", rule.name)
                return answer
            logger.debug("Local rule %r matched but lacked data", rule.name)
        return None
