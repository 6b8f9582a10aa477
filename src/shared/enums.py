"""Task board telemetry enumerations and constants.

Single source of truth for:
- the 8 telemetry event types written to the daily event log
- symbolic metric periods and their nominal durations
- trend / recommendation / budget labels
- fallback pricing rates
"""

from enum import StrEnum


# ---------------------------------------------------------------------------
# Event Types: one per NDJSON line `type` field
# ---------------------------------------------------------------------------

class EventType(StrEnum):
    # Task lifecycle
    TASK_CREATED = "task.created"
    TASK_STATUS_CHANGED = "task.status_changed"
    TASK_ARCHIVED = "task.archived"
    TASK_RESTORED = "task.restored"

    # Agent runs
    RUN_STARTED = "run.started"
    RUN_COMPLETED = "run.completed"
    RUN_ERROR = "run.error"
    RUN_TOKENS = "run.tokens"


RUN_OUTCOME_TYPES = frozenset({EventType.RUN_COMPLETED, EventType.RUN_ERROR})


# ---------------------------------------------------------------------------
# Task status: as stored by the task board
# ---------------------------------------------------------------------------

class TaskStatus(StrEnum):
    TODO = "todo"
    IN_PROGRESS = "in-progress"
    BLOCKED = "blocked"
    DONE = "done"


# ---------------------------------------------------------------------------
# Metric periods
# ---------------------------------------------------------------------------

class MetricsPeriod(StrEnum):
    LAST_24H = "24h"
    LAST_3D = "3d"
    LAST_7D = "7d"
    LAST_30D = "30d"
    LAST_3M = "3m"
    LAST_6M = "6m"
    LAST_12M = "12m"
    ALL = "all"
    CUSTOM = "custom"


_DAY_MS = 24 * 60 * 60 * 1000

# Nominal length of every relative period, in milliseconds
PERIOD_DURATION_MS: dict[str, int] = {
    MetricsPeriod.LAST_24H: _DAY_MS,
    MetricsPeriod.LAST_3D: 3 * _DAY_MS,
    MetricsPeriod.LAST_7D: 7 * _DAY_MS,
    MetricsPeriod.LAST_30D: 30 * _DAY_MS,
    MetricsPeriod.LAST_3M: 90 * _DAY_MS,
    MetricsPeriod.LAST_6M: 180 * _DAY_MS,
    MetricsPeriod.LAST_12M: 365 * _DAY_MS,
}


# ---------------------------------------------------------------------------
# Derived labels
# ---------------------------------------------------------------------------

class TrendDirection(StrEnum):
    UP = "up"
    DOWN = "down"
    FLAT = "flat"


# Changes smaller than this (in percent) are reported as flat
TREND_FLAT_THRESHOLD_PCT = 5


class RecommendationCategory(StrEnum):
    RELIABILITY = "reliability"
    SPEED = "speed"
    COST = "cost"
    EFFICIENCY = "efficiency"


RELIABILITY_MIN_SUCCESS_PCT = 80.0
DEFAULT_MIN_RUNS = 3


class BudgetStatus(StrEnum):
    OK = "ok"
    WARNING = "warning"
    DANGER = "danger"


# ---------------------------------------------------------------------------
# Fallback pricing: USD per 1K tokens
# ---------------------------------------------------------------------------

# General metrics path: dashboard, tokens, daily series, comparison, budget
FALLBACK_INPUT_PER_1K = 0.01
FALLBACK_OUTPUT_PER_1K = 0.03

# Per-task cost rollup: top model tier ($15 / $75 per million)
TASK_TIER_INPUT_PER_1K = 0.015
TASK_TIER_OUTPUT_PER_1K = 0.075


# ---------------------------------------------------------------------------
# Event log layout
# ---------------------------------------------------------------------------

PARTITION_PREFIX = "events-"
PARTITION_SUFFIX = ".ndjson"
COMPRESSED_SUFFIX = ".gz"

# Lines scanned between cooperative yields to the event loop
SCAN_YIELD_EVERY = 1000

DEFAULT_FAILED_RUNS_LIMIT = 50
