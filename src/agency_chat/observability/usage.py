"""Usage ledger: append-only records of every answer the pipeline produced."""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Callable, Iterable
from datetime import UTC, datetime, timedelta
from pathlib import Path

from pydantic import ValidationError

from agency_chat.exceptions import StorageError
from agency_chat.models.tiers import ModelTier
from agency_chat.models.usage import DailyUsage, UsageEvent, UsageStats
from agency_chat.protocols.storage import UsageStore

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(UTC)


def start_of_day(moment: datetime) -> datetime:
    """Return midnight UTC of the day containing *moment*."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    moment = moment.astimezone(UTC)
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


class InMemoryUsageStore:
    """Thread-safe, process-local ``UsageStore``.

    Implements the ``UsageStore`` protocol. Suitable for tests and
    single-process deployments where usage history may be lost on restart.
    """

    __slots__ = ("_events", "_lock")

    def __init__(self) -> None:
        self._events: list[UsageEvent] = []
        self._lock = threading.Lock()

    def __repr__(self) -> str:
        with self._lock:
            count = len(self._events)
        return f"InMemoryUsageStore(events={count})"

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)

    def append(self, event: UsageEvent) -> None:
        with self._lock:
            self._events.append(event)

    def since(self, start: datetime) -> list[UsageEvent]:
        with self._lock:
            events = list(self._events)
        return sorted((e for e in events if e.timestamp >= start), key=lambda e: e.timestamp)

    def clear(self) -> None:
        with self._lock:
            self._events.clear()


class JsonlUsageStore:
    """Durable ``UsageStore`` writing one JSON object per line.

    Appends are serialized with a lock and flushed per event, so a crash
    loses at most the line being written. Malformed lines are skipped with
    a warning when reading.

    Example::

        store = JsonlUsageStore("usage.jsonl")
        ledger = UsageLedger(store)
    """

    __slots__ = ("_file_path", "_lock")

    def __init__(self, file_path: str | Path) -> None:
        self._file_path = Path(file_path).resolve()
        self._lock = threading.Lock()

    def __repr__(self) -> str:
        return f"JsonlUsageStore(file_path={str(self._file_path)!r})"

    @property
    def file_path(self) -> Path:
        return self._file_path

    def append(self, event: UsageEvent) -> None:
        line = json.dumps(event.model_dump(mode="json"), separators=(",", ":"))
        with self._lock:
            try:
                self._file_path.parent.mkdir(parents=True, exist_ok=True)
                with self._file_path.open("a", encoding="utf-8") as f:
                    f.write(line + "\n")
            except OSError as e:
                msg = f"Failed to append usage event to {self._file_path}"
                raise StorageError(msg) from e

    def since(self, start: datetime) -> list[UsageEvent]:
        with self._lock:
            if not self._file_path.exists():
                return []
            try:
                text = self._file_path.read_text(encoding="utf-8")
            except OSError as e:
                msg = f"Failed to read usage log {self._file_path}"
                raise StorageError(msg) from e

        events: list[UsageEvent] = []
        for lineno, raw in enumerate(text.splitlines(), start=1):
            if not raw.strip():
                continue
            try:
                event = UsageEvent.model_validate_json(raw)
            except ValidationError:
                logger.warning("Skipping malformed usage line %d in %s", lineno, self._file_path)
                continue
            if event.timestamp >= start:
                events.append(event)
        events.sort(key=lambda e: e.timestamp)
        return events


class UsageLedger:
    """Front door for recording and reading ``UsageEvent`` records.

    Parameters:
        store: Where events are persisted. Defaults to an in-memory store.
        clock: Returns the current UTC time. Injected for tests.
    """

    __slots__ = ("_clock", "_store")

    def __init__(self, store: UsageStore | None = None, *, clock: Clock = _utcnow) -> None:
        self._store: UsageStore = store if store is not None else InMemoryUsageStore()
        self._clock = clock

    def __repr__(self) -> str:
        return f"UsageLedger(store={self._store!r})"

    @property
    def store(self) -> UsageStore:
        return self._store

    def now(self) -> datetime:
        return self._clock()

    def append(self, event: UsageEvent) -> None:
        """Persist *event*.

        Raises:
            StorageError: If the backing store rejects the write.
        """
        self._store.append(event)
        logger.debug(
            "Usage: session=%s tier=%s model=%s tokens=%d cached=%s local=%s",
            event.session_id,
            event.tier,
            event.model_id,
            event.total_tokens,
            event.was_cached,
            event.was_local,
        )

    def record(
        self,
        *,
        session_id: str,
        tier: ModelTier,
        model_id: str,
        query_type: str,
        page: str = "/",
        input_tokens: int = 0,
        output_tokens: int = 0,
        was_cached: bool = False,
        was_local: bool = False,
    ) -> UsageEvent:
        """Build a ``UsageEvent`` stamped with the ledger clock and append it."""
        event = UsageEvent(
            session_id=session_id,
            tier=tier,
            model_id=model_id,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            query_type=query_type,
            page=page,
            was_cached=was_cached,
            was_local=was_local,
            timestamp=self._clock(),
        )
        self.append(event)
        return event

    def events(self, since: datetime | None = None) -> list[UsageEvent]:
        """Return events recorded at or after *since* (all events if ``None``)."""
        start = since if since is not None else datetime.min.replace(tzinfo=UTC)
        return self._store.since(start)

    def today(self) -> list[UsageEvent]:
        """Return events recorded since midnight UTC."""
        return self._store.since(start_of_day(self._clock()))

    def stats(self, days: int = 7) -> UsageStats:
        """Aggregate the last *days* days of events. See ``usage_stats``."""
        now = self._clock()
        return usage_stats(self._store.since(now - timedelta(days=days)), days, now=now)


def usage_stats(
    events: Iterable[UsageEvent],
    days: int | None = None,
    *,
    now: datetime | None = None,
) -> UsageStats:
    """Aggregate events into per-day and overall totals.

    Parameters:
        events: Events in any order.
        days: When set, only events from the last *days* days count.
        now: Reference time for the *days* window. Defaults to now (UTC).

    Returns:
        A ``UsageStats`` with one ``DailyUsage`` per UTC date (ascending)
        and hit percentages rounded to whole numbers.
    """
    by_date: dict[str, DailyUsage] = {}
    by_tier: dict[ModelTier, int] = {tier: 0 for tier in ModelTier}
    total_tokens = 0
    total_requests = 0
    cached = 0
    local = 0

    if days is not None:
        cutoff = (now or _utcnow()) - timedelta(days=days)
        events = [e for e in events if e.timestamp >= cutoff]

    for event in sorted(events, key=lambda e: e.timestamp):
        date = event.timestamp.astimezone(UTC).date().isoformat()
        day = by_date.get(date)
        if day is None:
            day = DailyUsage(date=date, tokens_by_tier={tier: 0 for tier in ModelTier})
            by_date[date] = day
        tokens = event.total_tokens
        day.tokens_by_tier[event.tier] = day.tokens_by_tier.get(event.tier, 0) + tokens
        day.total_requests += 1
        total_requests += 1
        total_tokens += tokens
        by_tier[event.tier] += tokens
        if event.was_cached:
            day.cached_count += 1
            cached += 1
        if event.was_local:
            day.local_count += 1
            local += 1

    return UsageStats(
        daily=list(by_date.values()),
        total_tokens=total_tokens,
        total_requests=total_requests,
        cached_pct=round(cached / total_requests * 100) if total_requests else 0,
        local_pct=round(local / total_requests * 100) if total_requests else 0,
        by_tier=by_tier,
    )
