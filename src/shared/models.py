"""Task board telemetry Pydantic models: the shared contract.

Three groups:
- Telemetry events: one model per NDJSON line shape, discriminated on `type`
- Collaborator records: tasks and status-history summaries read from the board
- Metric results: what the metrics service returns (camelCase on the wire)

Every model serializes with camelCase aliases so that events written by the
board's log writer parse unchanged and results match the dashboard's
expectations.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Base for every model that crosses the log or the API boundary."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


# ═══════════════════════════════════════════════════════════════════════════
#  TELEMETRY EVENTS: one JSON object per log line
# ═══════════════════════════════════════════════════════════════════════════

class TelemetryEventBase(WireModel):
    id: str | None = None
    timestamp: str                              # ISO 8601, lexically sortable
    task_id: str | None = None
    project: str | None = None
    agent: str | None = None                    # None → built-in orchestrator


class TaskEvent(TelemetryEventBase):
    """task.created / task.status_changed / task.archived / task.restored."""
    type: Literal[
        "task.created",
        "task.status_changed",
        "task.archived",
        "task.restored",
    ]
    status: str | None = None
    previous_status: str | None = None


class RunStartedEvent(TelemetryEventBase):
    type: Literal["run.started"]
    model: str | None = None
    session_key: str | None = None
    attempt_id: str | None = None


class RunCompletedEvent(TelemetryEventBase):
    type: Literal["run.completed"]
    success: Any = None                         # canonical: bool
    status: str | None = None                   # legacy: "success" / "failure"
    duration_ms: float | None = None
    error: str | None = None
    exit_code: int | None = None
    attempt_id: str | None = None

    @property
    def is_success(self) -> bool:
        """`success: true`, or the legacy `status: "success"` shape."""
        return self.success is True or self.status == "success"


class RunErrorEvent(TelemetryEventBase):
    type: Literal["run.error"]
    error: str | None = None
    duration_ms: float | None = None
    stack_trace: str | None = None
    attempt_id: str | None = None


class TokenEvent(TelemetryEventBase):
    type: Literal["run.tokens"]
    input_tokens: int
    output_tokens: int
    total_tokens: int | None = None
    cache_tokens: int | None = None
    cost: float | None = None                   # USD, as reported by the agent
    model: str | None = None
    attempt_id: str | None = None

    @property
    def tokens(self) -> int:
        """Reported total, or input + output when the writer omitted it."""
        if self.total_tokens is not None:
            return self.total_tokens
        return self.input_tokens + self.output_tokens


TelemetryEvent = Annotated[
    Union[TaskEvent, RunStartedEvent, RunCompletedEvent, RunErrorEvent, TokenEvent],
    Field(discriminator="type"),
]

RunOutcomeEvent = Union[RunCompletedEvent, RunErrorEvent]


# ═══════════════════════════════════════════════════════════════════════════
#  COLLABORATOR RECORDS: task store and status history
# ═══════════════════════════════════════════════════════════════════════════

class TimeTracking(WireModel):
    total_seconds: int = 0
    is_running: bool = False


class Task(WireModel):
    """Current task state as listed by the task store."""
    id: str
    title: str = ""
    status: str = "todo"
    project: str | None = None
    created: str | None = None                  # ISO 8601
    updated: str | None = None                  # ISO 8601
    priority: str | None = None
    time_tracking: TimeTracking | None = None


class StatusHistoryEntry(WireModel):
    """One agent status transition in the board's status history."""
    timestamp: str
    previous_status: str | None = None
    new_status: str


class DailyStatusSummary(WireModel):
    date: str                                   # YYYY-MM-DD
    active_ms: int = 0
    idle_ms: int = 0
    error_ms: int = 0


# ═══════════════════════════════════════════════════════════════════════════
#  METRIC RESULTS
# ═══════════════════════════════════════════════════════════════════════════

# --- Runs ---

class AgentRunBreakdown(WireModel):
    agent: str
    runs: int = 0
    successes: int = 0
    failures: int = 0
    errors: int = 0
    success_rate: float = 0.0                   # 0..1
    avg_duration_ms: int = 0
    total_tokens: int = 0                       # filled by the combined pass


class RunMetrics(WireModel):
    period: str
    runs: int = 0
    successes: int = 0
    failures: int = 0
    errors: int = 0
    error_rate: float = 0.0                     # (failures + errors) / runs
    success_rate: float = 0.0                   # successes / runs
    by_agent: list[AgentRunBreakdown] = Field(default_factory=list)


class FailedRun(WireModel):
    timestamp: str
    task_id: str | None = None
    project: str | None = None
    agent: str
    success: bool = False
    error_message: str | None = None
    duration_ms: float | None = None


# --- Tokens ---

class TokenDistribution(WireModel):
    avg: int = 0
    p50: float = 0
    p95: float = 0


class AgentTokenBreakdown(WireModel):
    agent: str
    total_tokens: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    cache_tokens: int = 0
    runs: int = 0
    cost: float = 0.0


class TokenMetrics(WireModel):
    period: str
    total_tokens: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    cache_tokens: int = 0
    runs: int = 0
    total_cost: float = 0.0                     # reported, else fallback rate
    per_run: TokenDistribution = Field(default_factory=TokenDistribution)
    by_agent: list[AgentTokenBreakdown] = Field(default_factory=list)


# --- Duration ---

class AgentDurationBreakdown(WireModel):
    agent: str
    runs: int = 0
    avg_ms: int = 0
    p50_ms: float = 0
    p95_ms: float = 0


class DurationMetrics(WireModel):
    period: str
    runs: int = 0
    avg_ms: int = 0
    p50_ms: float = 0
    p95_ms: float = 0
    by_agent: list[AgentDurationBreakdown] = Field(default_factory=list)


# --- Tasks ---

class TaskMetrics(WireModel):
    by_status: dict[str, int] = Field(default_factory=dict)
    by_priority: dict[str, int] = Field(default_factory=dict)
    total: int = 0
    completed: int = 0
    tracked_seconds: int = 0


# --- Trends (current vs previous period) ---

class MetricTrend(WireModel):
    direction: str                              # up / down / flat (favourability)
    change: int = 0                             # percent vs previous period


class TrendComparison(WireModel):
    runs: MetricTrend
    success_rate: MetricTrend
    tokens: MetricTrend
    duration: MetricTrend


class AllMetrics(WireModel):
    """Dashboard response: every family from a single scan."""
    period: str
    tasks: TaskMetrics
    runs: RunMetrics
    tokens: TokenMetrics
    duration: DurationMetrics
    trends: TrendComparison | None = None       # None when no previous window


# --- Daily series ---

class DailyTrendPoint(WireModel):
    date: str                                   # YYYY-MM-DD
    runs: int = 0
    successes: int = 0
    failures: int = 0
    errors: int = 0
    success_rate: float = 0.0
    total_tokens: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    cost_estimate: float = 0.0
    avg_duration_ms: int = 0
    tasks_created: int = 0
    status_changes: int = 0
    tasks_archived: int = 0


class TrendsData(WireModel):
    period: str
    daily: list[DailyTrendPoint] = Field(default_factory=list)


# --- Budget ---

class BudgetMetrics(WireModel):
    period_start: str                           # first day of month
    period_end: str                             # last day of month
    days_in_month: int
    days_elapsed: int
    days_remaining: int
    total_tokens: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    estimated_cost: float = 0.0
    tokens_per_day: int = 0
    cost_per_day: float = 0.0
    projected_monthly_tokens: int = 0
    projected_monthly_cost: float = 0.0
    token_budget: int = 0                       # 0 = no limit
    cost_budget: float = 0.0                    # 0 = no limit
    token_budget_used: float = 0.0              # percent
    cost_budget_used: float = 0.0               # percent
    projected_token_overage: float = 0.0        # percent
    projected_cost_overage: float = 0.0         # percent
    status: str = "ok"


# --- Agent comparison ---

class AgentComparisonRow(WireModel):
    agent: str
    runs: int
    successes: int
    failures: int                               # failures + errors
    success_rate: float                         # percent, one decimal
    avg_duration_ms: int
    avg_tokens_per_run: int
    total_tokens: int
    avg_cost_per_run: float
    total_cost: float


class AgentRecommendation(WireModel):
    category: str                               # reliability / speed / cost / efficiency
    agent: str
    value: str                                  # human-readable, e.g. "95.5% success rate"
    reason: str


class AgentComparisonResult(WireModel):
    period: str
    min_runs: int
    agents: list[AgentComparisonRow] = Field(default_factory=list)
    recommendations: list[AgentRecommendation] = Field(default_factory=list)
    total_agents: int = 0                       # before the minRuns filter
    qualifying_agents: int = 0


# --- Cost ---

class TaskCostEntry(WireModel):
    task_id: str
    task_title: str | None = None               # None when the task is gone
    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0
    estimated_cost: float = 0.0
    runs: int = 0
    avg_cost_per_run: float = 0.0


class TaskCostMetrics(WireModel):
    period: str
    tasks: list[TaskCostEntry] = Field(default_factory=list)
    total_cost: float = 0.0
    avg_cost_per_task: float = 0.0


class ModelCostBreakdown(WireModel):
    model: str
    total_cost: float = 0.0
    total_tokens: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    cache_tokens: int = 0
    runs: int = 0
    average_cost_per_run: float = 0.0


class CostMetrics(WireModel):
    period: str
    total_cost: float = 0.0
    total_tokens: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    cache_tokens: int = 0
    runs: int = 0
    average_cost_per_run: float = 0.0
    by_model: list[ModelCostBreakdown] = Field(default_factory=list)


# --- Utilization ---

class DailyUtilization(WireModel):
    date: str
    active_ms: int = 0
    idle_ms: int = 0
    error_ms: int = 0
    utilization_percent: float = 0.0


class UtilizationMetrics(WireModel):
    period: str
    total_active_ms: int = 0
    total_idle_ms: int = 0
    total_error_ms: int = 0
    utilization_percent: float = 0.0            # active / (active + idle + error)
    daily: list[DailyUtilization] = Field(default_factory=list)


# ═══════════════════════════════════════════════════════════════════════════
#  API RESPONSE MODELS
# ═══════════════════════════════════════════════════════════════════════════

class ErrorResponse(BaseModel):
    """Standard error shape returned by the HTTP surface."""
    error: str
    message: str
    status: int
    details: dict[str, Any] | None = None
