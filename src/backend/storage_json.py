"""JSON file adapters for the board's task store and status history.

Files (paths from config, both optional):
  tasks.json            [{"id", "title", "status", "project", ...}, ...]
                        or {"tasks": [...]}
  status-history.json   [{"timestamp", "previousStatus", "newStatus"}, ...]

Both are re-read on every call; the board rewrites them in place and the
metrics engine never caches across calls. A missing file is empty. A file
that exists but cannot be read or parsed raises StoreReadError.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable

from pydantic import ValidationError

from backend import config
from backend.errors import StoreReadError
from shared.models import DailyStatusSummary, StatusHistoryEntry, Task

logger = logging.getLogger(__name__)


def _parse_dt(s: str | datetime | None) -> datetime | None:
    """Parse an ISO 8601 string to a timezone-aware datetime."""
    if s is None:
        return None
    if isinstance(s, datetime):
        return s if s.tzinfo else s.replace(tzinfo=timezone.utc)
    dt = datetime.fromisoformat(s.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def _read_json(path: Path) -> Any:
    """Parsed file content, or None when the file does not exist."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError:
        return None
    except (OSError, ValueError) as exc:
        logger.error("Cannot read %s: %s", path, exc)
        raise StoreReadError(path, exc) from exc


# ═══════════════════════════════════════════════════════════════════════════
#  TASK STORE
# ═══════════════════════════════════════════════════════════════════════════

class JsonTaskStore:
    """TaskStore over a single tasks.json file."""

    def __init__(self, path: str | Path | None = None):
        self._path = Path(path or config.get("tasks_file"))

    async def list_tasks(self) -> list[Task]:
        raw = _read_json(self._path)
        if raw is None:
            return []
        if isinstance(raw, dict):
            raw = raw.get("tasks", [])
        if not isinstance(raw, list):
            raise StoreReadError(self._path, ValueError("expected a list of tasks"))

        tasks: list[Task] = []
        for item in raw:
            try:
                tasks.append(Task.model_validate(item))
            except ValidationError as exc:
                logger.warning("Skipping invalid task record in %s: %s", self._path, exc)
        return tasks


# ═══════════════════════════════════════════════════════════════════════════
#  STATUS HISTORY
# ═══════════════════════════════════════════════════════════════════════════
# Each entry marks the moment the agent switched to `newStatus`. A status
# lasts until the next entry, or until min(now, end of day) for the last one.
# "idle" and "error" are counted as such; every other status is active time.

class JsonStatusHistory:
    """StatusHistorySource over status-history.json."""

    def __init__(
        self,
        path: str | Path | None = None,
        clock: Callable[[], datetime] = _now_utc,
    ):
        self._path = Path(path or config.get("status_history_file"))
        self._clock = clock

    def _entries(self) -> list[tuple[datetime, StatusHistoryEntry]]:
        raw = _read_json(self._path)
        if raw is None:
            return []
        if not isinstance(raw, list):
            raise StoreReadError(self._path, ValueError("expected a list of entries"))

        entries = []
        for item in raw:
            try:
                entry = StatusHistoryEntry.model_validate(item)
                entries.append((_parse_dt(entry.timestamp), entry))
            except (ValidationError, ValueError):
                continue
        entries.sort(key=lambda e: e[0])
        return entries

    async def get_daily_summary(self, date: str) -> DailyStatusSummary:
        return _summarize(self._entries(), date, self._clock())

    async def get_daily_summaries(self, dates: list[str]) -> list[DailyStatusSummary]:
        """One summary per date, reading the history file once."""
        entries = self._entries()
        now = self._clock()
        return [_summarize(entries, date, now) for date in dates]


def _summarize(
    entries: list[tuple[datetime, StatusHistoryEntry]],
    date: str,
    now: datetime,
) -> DailyStatusSummary:
    start = datetime.fromisoformat(date).replace(tzinfo=timezone.utc)
    end = start + timedelta(days=1) - timedelta(milliseconds=1)
    effective_end = now if now < end else end

    totals = {"idle": 0, "error": 0, "active": 0}

    def credit(status: str, ms: int) -> None:
        if ms <= 0:
            return
        key = status if status in ("idle", "error") else "active"
        totals[key] += ms

    day = [(ts, e) for ts, e in entries if start <= ts <= end]
    if day:
        for i, (ts, entry) in enumerate(day):
            until = day[i + 1][0] if i + 1 < len(day) else effective_end
            credit(entry.new_status, int((until - ts).total_seconds() * 1000))
    else:
        # No transition that day: the last earlier status held all day
        before = [e for ts, e in entries if ts < start]
        if before:
            credit(
                before[-1].new_status,
                int((effective_end - start).total_seconds() * 1000),
            )

    return DailyStatusSummary(
        date=date,
        active_ms=totals["active"],
        idle_ms=totals["idle"],
        error_ms=totals["error"],
    )
