"""Telemetry log reader: day partitions in, validated events out.

Layout of the telemetry directory (written by the board, never by us):

    events-2026-10-16.ndjson.gz     older days, compressed
    events-2026-10-17.ndjson.gz
    events-2026-10-18.ndjson        today, still being appended to

Reading rules:
  - A missing directory or a partition deleted mid-scan is simply empty.
  - A malformed or torn line is skipped; it never aborts the scan.
  - Any other I/O failure is logged with its path and raised as
    TelemetryReadError, failing the whole call rather than returning a
    silently incomplete result.
  - Files are streamed line by line; the loop yields to the event loop every
    SCAN_YIELD_EVERY lines so that a cancelled request stops promptly.
"""

from __future__ import annotations

import asyncio
import gzip
import json
import logging
import os
import re
import zlib
from datetime import date, timedelta
from pathlib import Path
from typing import AsyncIterator, Collection

from pydantic import TypeAdapter, ValidationError

from backend import config
from backend.errors import TelemetryReadError
from backend.periods import TimeWindow
from shared.enums import (
    COMPRESSED_SUFFIX,
    PARTITION_PREFIX,
    PARTITION_SUFFIX,
    SCAN_YIELD_EVERY,
)
from shared.models import TelemetryEvent
from shared.storage import EventLogSource, LogPartition

logger = logging.getLogger(__name__)

_PARTITION_RE = re.compile(
    rf"^{re.escape(PARTITION_PREFIX)}(\d{{4}}-\d{{2}}-\d{{2}})"
    rf"{re.escape(PARTITION_SUFFIX)}({re.escape(COMPRESSED_SUFFIX)})?$"
)

_EVENT_ADAPTER: TypeAdapter[TelemetryEvent] = TypeAdapter(TelemetryEvent)


# ═══════════════════════════════════════════════════════════════════════════
#  PARSE-OR-SKIP
# ═══════════════════════════════════════════════════════════════════════════
# The only place a raw line becomes an event.  Returns None for blank lines,
# broken JSON, lines of the wrong shape, and lines outside the filters, so
# every caller handles "skip" the same way.

def parse_line(
    line: str,
    *,
    types: Collection[str] | None = None,
    window: TimeWindow | None = None,
    project: str | None = None,
) -> TelemetryEvent | None:
    """Parse one log line, or return None if it should be skipped.

    Cheap filters (type, timestamp, project) run on the raw dict before the
    pydantic model is built.
    """
    text = line.strip()
    if not text:
        return None
    try:
        raw = json.loads(text)
    except ValueError:
        return None
    if not isinstance(raw, dict):
        return None

    if types is not None and raw.get("type") not in types:
        return None
    timestamp = raw.get("timestamp")
    if not isinstance(timestamp, str):
        return None
    if window is not None and not window.contains(timestamp):
        return None
    if project is not None and raw.get("project") != project:
        return None

    try:
        return _EVENT_ADAPTER.validate_python(raw)
    except ValidationError:
        return None


# ═══════════════════════════════════════════════════════════════════════════
#  FILE-BACKED EVENT LOG
# ═══════════════════════════════════════════════════════════════════════════

class FileEventLog:
    """EventLogSource over a directory of daily NDJSON partitions."""

    def __init__(self, telemetry_dir: str | Path | None = None):
        self._dir = Path(telemetry_dir or config.get("telemetry_dir"))

    @property
    def directory(self) -> Path:
        return self._dir

    def list_partitions(
        self,
        since_date: str | None = None,
        until_date: str | None = None,
    ) -> list[LogPartition]:
        try:
            names = os.listdir(self._dir)
        except FileNotFoundError:
            return []
        except OSError as exc:
            logger.error("Cannot list telemetry directory %s: %s", self._dir, exc)
            raise TelemetryReadError(self._dir, exc) from exc

        # Late writes can stamp an event just before midnight into the next
        # day's file, so the upper bound keeps one extra day.
        last_date = None
        if until_date is not None:
            last_date = (date.fromisoformat(until_date) + timedelta(days=1)).isoformat()

        partitions: list[LogPartition] = []
        for name in names:
            m = _PARTITION_RE.match(name)
            if not m:
                continue
            day = m.group(1)
            if since_date is not None and day < since_date:
                continue
            if last_date is not None and day > last_date:
                continue
            partitions.append(
                LogPartition(date=day, path=self._dir / name, compressed=bool(m.group(2)))
            )

        partitions.sort(key=lambda p: (p.date, p.compressed))
        return partitions

    async def read_lines(self, partition: LogPartition) -> AsyncIterator[str]:
        path = partition.path
        try:
            if partition.compressed:
                fh = gzip.open(path, "rt", encoding="utf-8", errors="replace")
            else:
                fh = open(path, "r", encoding="utf-8", errors="replace")
        except FileNotFoundError:
            logger.debug("Partition vanished before it could be read: %s", path)
            return
        except OSError as exc:
            logger.error("Cannot open telemetry partition %s: %s", path, exc)
            raise TelemetryReadError(path, exc) from exc

        with fh:
            count = 0
            try:
                for line in fh:
                    yield line
                    count += 1
                    if count % SCAN_YIELD_EVERY == 0:
                        await asyncio.sleep(0)
            except (OSError, EOFError, zlib.error) as exc:
                logger.error("Error reading telemetry partition %s: %s", path, exc)
                raise TelemetryReadError(path, exc) from exc


# ═══════════════════════════════════════════════════════════════════════════
#  SCAN
# ═══════════════════════════════════════════════════════════════════════════

async def scan_events(
    log: EventLogSource,
    window: TimeWindow,
    *,
    types: Collection[str] | None = None,
    project: str | None = None,
) -> AsyncIterator[TelemetryEvent]:
    """Stream every event in window, oldest partition first."""
    partitions = log.list_partitions(window.since_date, window.until_date)
    lines = 0
    events = 0
    for partition in partitions:
        async for line in log.read_lines(partition):
            lines += 1
            event = parse_line(line, types=types, window=window, project=project)
            if event is None:
                continue
            events += 1
            yield event
    logger.debug(
        "Scanned %d partitions (%d lines, %d matching events) since=%s until=%s",
        len(partitions), lines, events, window.since, window.until,
    )
