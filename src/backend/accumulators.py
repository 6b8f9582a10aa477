"""Accumulators: per-call mutable aggregation state, one per metric family.

Each accumulator is created fresh for a single request, fed events one at a
time, and thrown away once its result model is built. Per-agent maps are
keyed by the free-form agent string found on the event.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from shared.enums import EventType
from shared.models import (
    RunCompletedEvent,
    RunErrorEvent,
    RunOutcomeEvent,
    TaskEvent,
    TelemetryEvent,
    TokenEvent,
)


# ═══════════════════════════════════════════════════════════════════════════
#  RUNS
# ═══════════════════════════════════════════════════════════════════════════

@dataclass
class RunTally:
    """Three-way outcome counts plus positive duration samples."""
    successes: int = 0
    failures: int = 0
    errors: int = 0
    durations: list[float] = field(default_factory=list)

    @property
    def runs(self) -> int:
        return self.successes + self.failures + self.errors

    def add(self, event: RunOutcomeEvent) -> None:
        if isinstance(event, RunErrorEvent):
            self.errors += 1
            return
        if event.is_success:
            self.successes += 1
        else:
            self.failures += 1
        if event.duration_ms and event.duration_ms > 0:
            self.durations.append(event.duration_ms)


@dataclass
class RunAccumulator:
    total: RunTally = field(default_factory=RunTally)
    by_agent: dict[str, RunTally] = field(default_factory=dict)

    def add(self, event: RunOutcomeEvent, agent: str) -> None:
        self.total.add(event)
        tally = self.by_agent.get(agent)
        if tally is None:
            tally = self.by_agent[agent] = RunTally()
        tally.add(event)


# ═══════════════════════════════════════════════════════════════════════════
#  TOKENS
# ═══════════════════════════════════════════════════════════════════════════

@dataclass
class TokenTally:
    total_tokens: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    cache_tokens: int = 0
    runs: int = 0
    cost: float = 0.0

    def add(self, event: TokenEvent, cost: float) -> None:
        self.total_tokens += event.tokens
        self.input_tokens += event.input_tokens
        self.output_tokens += event.output_tokens
        self.cache_tokens += event.cache_tokens or 0
        self.runs += 1
        self.cost += cost


@dataclass
class TokenAccumulator:
    total: TokenTally = field(default_factory=TokenTally)
    tokens_per_run: list[int] = field(default_factory=list)
    by_agent: dict[str, TokenTally] = field(default_factory=dict)

    def add(self, event: TokenEvent, agent: str, cost: float) -> None:
        self.total.add(event, cost)
        self.tokens_per_run.append(event.tokens)
        tally = self.by_agent.get(agent)
        if tally is None:
            tally = self.by_agent[agent] = TokenTally()
        tally.add(event, cost)


# ═══════════════════════════════════════════════════════════════════════════
#  AGENT PROFILES (comparison)
# ═══════════════════════════════════════════════════════════════════════════

@dataclass
class AgentProfile:
    runs: RunTally = field(default_factory=RunTally)
    tokens: TokenTally = field(default_factory=TokenTally)


# ═══════════════════════════════════════════════════════════════════════════
#  DAILY BUCKETS (trend series)
# ═══════════════════════════════════════════════════════════════════════════

@dataclass
class DayBucket:
    successes: int = 0
    failures: int = 0
    errors: int = 0
    total_tokens: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    cost: float = 0.0
    duration_sum: float = 0.0
    duration_count: int = 0
    tasks_created: int = 0
    status_changes: int = 0
    tasks_archived: int = 0

    @property
    def runs(self) -> int:
        return self.successes + self.failures + self.errors


class DailyAccumulator:
    """Day-keyed buckets; the axis is prefilled so empty days still appear."""

    def __init__(self, days: list[str] | None = None):
        self.days: dict[str, DayBucket] = {d: DayBucket() for d in days or []}

    def bucket(self, day: str) -> DayBucket:
        b = self.days.get(day)
        if b is None:
            b = self.days[day] = DayBucket()
        return b

    def add(self, event: TelemetryEvent, cost: float = 0.0) -> None:
        b = self.bucket(event.timestamp[:10])
        if isinstance(event, RunCompletedEvent):
            if event.is_success:
                b.successes += 1
            else:
                b.failures += 1
            if event.duration_ms and event.duration_ms > 0:
                b.duration_sum += event.duration_ms
                b.duration_count += 1
        elif isinstance(event, RunErrorEvent):
            b.errors += 1
        elif isinstance(event, TokenEvent):
            b.total_tokens += event.tokens
            b.input_tokens += event.input_tokens
            b.output_tokens += event.output_tokens
            b.cost += cost
        elif isinstance(event, TaskEvent):
            if event.type == EventType.TASK_CREATED:
                b.tasks_created += 1
            elif event.type == EventType.TASK_STATUS_CHANGED:
                b.status_changes += 1
            elif event.type == EventType.TASK_ARCHIVED:
                b.tasks_archived += 1


# ═══════════════════════════════════════════════════════════════════════════
#  PREVIOUS PERIOD (trend comparison)
# ═══════════════════════════════════════════════════════════════════════════

@dataclass
class PreviousPeriodTally:
    """Only what the trend arrows need; no per-agent state."""
    runs: int = 0
    successes: int = 0
    tokens: int = 0
    duration_sum: float = 0.0
    duration_count: int = 0

    def add(self, event: TelemetryEvent) -> None:
        if isinstance(event, RunCompletedEvent):
            self.runs += 1
            if event.is_success:
                self.successes += 1
            if event.duration_ms and event.duration_ms > 0:
                self.duration_sum += event.duration_ms
                self.duration_count += 1
        elif isinstance(event, RunErrorEvent):
            self.runs += 1
        elif isinstance(event, TokenEvent):
            self.tokens += event.tokens

    @property
    def success_rate(self) -> float:
        return self.successes / self.runs if self.runs > 0 else 0.0

    @property
    def avg_duration_ms(self) -> float:
        return self.duration_sum / self.duration_count if self.duration_count > 0 else 0.0
