"""Collaborator protocols: the contract between the metrics engine and the board.

The engine never writes. It consumes three read-only sources:

  - EventLogSource       day-partitioned NDJSON telemetry (plain or gzipped)
  - TaskStore            current task state, used for task metrics and titles
  - StatusHistorySource  per-day active / idle / error time

Implementations shipped with this repository:
  - backend/telemetry_reader.py  (FileEventLog: the telemetry directory)
  - backend/storage_json.py      (JsonTaskStore, JsonStatusHistory)

Any other board backend only has to satisfy these signatures.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator, Protocol, runtime_checkable

from .models import DailyStatusSummary, Task


@dataclass(frozen=True)
class LogPartition:
    """One day's event file."""
    date: str                                   # YYYY-MM-DD (UTC)
    path: Path
    compressed: bool = False


@runtime_checkable
class EventLogSource(Protocol):
    """Read access to the append-only telemetry log."""

    def list_partitions(
        self,
        since_date: str | None = None,
        until_date: str | None = None,
    ) -> list[LogPartition]:
        """Partitions whose date could hold matching events, oldest first.

        since_date=None means every partition from the beginning of history.
        """
        ...

    def read_lines(self, partition: LogPartition) -> AsyncIterator[str]:
        """Lazily yield decoded lines. A vanished partition yields nothing."""
        ...


@runtime_checkable
class TaskStore(Protocol):
    """Read-only view of the board's current tasks."""

    async def list_tasks(self) -> list[Task]:
        ...


@runtime_checkable
class StatusHistorySource(Protocol):
    """Per-day agent activity derived from status transitions."""

    async def get_daily_summary(self, date: str) -> DailyStatusSummary:
        """Summary for one UTC day (YYYY-MM-DD)."""
        ...

    async def get_daily_summaries(self, dates: list[str]) -> list[DailyStatusSummary]:
        """Summaries for several days, in the order given."""
        ...
