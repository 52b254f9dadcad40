"""Usage persistence protocol."""

from __future__ import annotations

from datetime import datetime
from typing import Protocol, runtime_checkable

from agency_chat.models.usage import UsageEvent


@runtime_checkable
class UsageStore(Protocol):
    """Append-only persistence for ``UsageEvent`` records.

    May be in-memory or durable. Implementations must tolerate concurrent
    appends from independent requests.
    """

    def append(self, event: UsageEvent) -> None:
        """Persist a single usage event.

        Raises:
            StorageError: If the event could not be persisted.
        """
        ...

    def since(self, start: datetime) -> list[UsageEvent]:
        """Return every event with ``timestamp >= start``, oldest first.

        Raises:
            StorageError: If the backend could not be read.
        """
        ...
