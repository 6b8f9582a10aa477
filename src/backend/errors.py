"""Typed errors raised by the metrics engine.

Typed by kind, so the HTTP surface can pick a status code without guessing:

  InvalidPeriodError   bad input, rejected before any file is opened  → 400
  TelemetryReadError   infrastructure failure while scanning the log  → 500
  StoreReadError       task store or status history file unreadable   → 500

Malformed log lines and missing partitions are not errors at all; they are
skipped or treated as empty by the reader.
"""

from __future__ import annotations

from pathlib import Path


class MetricsError(Exception):
    """Base class for every error the engine raises."""

    code = "metrics_error"


class InvalidPeriodError(MetricsError, ValueError):
    """The requested period cannot be resolved into bounds."""

    code = "invalid_period"


class TelemetryReadError(MetricsError):
    """A partition exists but could not be listed, opened or decoded."""

    code = "telemetry_read_failed"

    def __init__(self, path: Path | str, cause: BaseException):
        self.path = Path(path)
        self.cause = cause
        super().__init__(f"Failed to read telemetry {self.path}: {cause}")


class StoreReadError(MetricsError):
    """A task store or status history file exists but is unreadable."""

    code = "store_read_failed"

    def __init__(self, path: Path | str, cause: BaseException):
        self.path = Path(path)
        self.cause = cause
        super().__init__(f"Failed to read {self.path}: {cause}")
