"""Gathers raw domain data from collaborators, once per request."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from typing import Any

from agency_chat.exceptions import ContextAssemblyError
from agency_chat.models.context import PowerData, RawContext, WaterData, gap_message
from agency_chat.protocols.context import DomainDataProvider

from .health import compute_health

logger = logging.getLogger(__name__)


class ContextAssembler:
    """Fetches every domain section concurrently and tolerates partial failure.

    Each section is fetched independently. A section whose fetch raises
    is left empty and named in ``RawContext.gaps``; the request carries
    on with whatever did arrive. Only when *every* section fails does
    ``assemble`` raise.

    Parameters:
        provider: The domain data collaborator.
        clock: Returns the current UTC time, stamped on the result.
    """

    __slots__ = ("_clock", "_provider")

    def __init__(
        self,
        provider: DomainDataProvider,
        *,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
    ) -> None:
        self._provider = provider
        self._clock = clock

    def __repr__(self) -> str:
        return f"ContextAssembler(provider={type(self._provider).__name__})"

    def _fetchers(self) -> dict[str, Callable[[], Awaitable[Any]]]:
        p = self._provider
        return {
            "power": p.fetch_power,
            "water": p.fetch_water_report,
            "water insights": p.fetch_water_insights,
            "water complaints": p.fetch_water_complaints,
            "airport": p.fetch_airport_report,
            "aviation": p.fetch_aviation_report,
            "projects": p.fetch_portfolio,
            "delayed projects": p.fetch_delayed_projects,
            "tasks": p.fetch_tasks,
            "calendar": p.fetch_today_events,
            "week calendar": p.fetch_week_events,
        }

    async def assemble(self) -> RawContext:
        """Gather all sections into a ``RawContext``.

        Returns:
            The assembled context with health scores computed and any
            failed sections listed in ``gaps``.

        Raises:
            ContextAssemblyError: If every collaborator call failed.
        """
        fetchers = self._fetchers()
        results = await asyncio.gather(
            *(fetch() for fetch in fetchers.values()), return_exceptions=True
        )

        values: dict[str, Any] = {}
        gaps: list[str] = []
        for section, result in zip(fetchers, results, strict=True):
            if isinstance(result, Exception):
                logger.warning("Context section %r failed: %s", section, result)
                gaps.append(gap_message(section))
                continue
            if isinstance(result, BaseException):
                raise result
            values[section] = result

        if not values:
            msg = f"all {len(fetchers)} context sections failed"
            raise ContextAssemblyError(msg)

        raw = RawContext(
            gpl=values.get("power") or PowerData(),
            gwi=WaterData(
                report=values.get("water"),
                insights=values.get("water insights"),
                complaints=values.get("water complaints"),
            ),
            cjia=values.get("airport"),
            gcaa=values.get("aviation"),
            portfolio=values.get("projects"),
            delayed=values.get("delayed projects") or [],
            tasks=values.get("tasks") or [],
            today_events=values.get("calendar") or [],
            week_events=values.get("week calendar") or [],
            gaps=gaps,
            generated_at=self._clock(),
        )
        raw.health = compute_health(raw)
        if gaps:
            logger.info("Context assembled with gaps: %s", "; ".join(gaps))
        return raw
