"""MetricsService: one async entry point per metric family.

Every method resolves the period first (so a bad period fails before any
file is touched), then delegates to the family's computer. Nothing is cached
between calls.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable

from backend import config
from backend.comparison import compute_agent_comparison
from backend.cost_metrics import compute_cost_metrics, compute_task_costs
from backend.dashboard import compute_all_metrics, compute_daily_series
from backend.llm_pricing import LlmPricingEngine
from backend.periods import ResolvedPeriod, resolve_period
from backend.run_metrics import compute_duration_metrics, compute_run_metrics, list_failed_runs
from backend.storage_json import JsonStatusHistory, JsonTaskStore
from backend.task_metrics import compute_task_metrics, compute_utilization
from backend.telemetry_reader import FileEventLog
from backend.token_metrics import compute_budget_metrics, compute_token_metrics
from shared.enums import DEFAULT_FAILED_RUNS_LIMIT, MetricsPeriod
from shared.models import (
    AgentComparisonResult,
    AllMetrics,
    BudgetMetrics,
    CostMetrics,
    DurationMetrics,
    FailedRun,
    RunMetrics,
    TaskCostMetrics,
    TaskMetrics,
    TokenMetrics,
    TrendsData,
    UtilizationMetrics,
)
from shared.storage import EventLogSource, StatusHistorySource, TaskStore


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class MetricsService:
    def __init__(
        self,
        event_log: EventLogSource,
        task_store: TaskStore,
        status_history: StatusHistorySource,
        *,
        pricing: LlmPricingEngine | None = None,
        clock: Callable[[], datetime] = _now_utc,
        default_agent: str | None = None,
    ):
        self.event_log = event_log
        self.task_store = task_store
        self.status_history = status_history
        self.pricing = pricing or LlmPricingEngine()
        self.clock = clock
        self.default_agent = default_agent or config.get("default_agent")

    @classmethod
    def from_config(cls) -> MetricsService:
        """Build a service over the file-backed sources named in config."""
        return cls(
            FileEventLog(config.get("telemetry_dir")),
            JsonTaskStore(config.get("tasks_file")),
            JsonStatusHistory(config.get("status_history_file")),
            pricing=LlmPricingEngine(config.get("pricing_file")),
        )

    def resolve(
        self,
        period: str,
        from_: str | None = None,
        to: str | None = None,
    ) -> ResolvedPeriod:
        return resolve_period(period, from_, to, now=self.clock())

    def _first_day(self, resolved: ResolvedPeriod) -> str | None:
        """Axis anchor for periods with no lower bound."""
        if resolved.since is not None:
            return None
        partitions = self.event_log.list_partitions()
        return partitions[0].date if partitions else None

    # ───────────────────────────────────────────────────────────────────
    #  TASKS
    # ───────────────────────────────────────────────────────────────────

    async def get_task_metrics(
        self,
        project: str | None = None,
        since: str | None = None,
    ) -> TaskMetrics:
        return await compute_task_metrics(self.task_store, project=project, since=since)

    # ───────────────────────────────────────────────────────────────────
    #  RUNS / TOKENS / DURATION
    # ───────────────────────────────────────────────────────────────────

    async def get_run_metrics(
        self,
        period: str = MetricsPeriod.LAST_7D,
        project: str | None = None,
        from_: str | None = None,
        to: str | None = None,
    ) -> RunMetrics:
        resolved = self.resolve(period, from_, to)
        return await compute_run_metrics(
            self.event_log, resolved, default_agent=self.default_agent, project=project,
        )

    async def get_token_metrics(
        self,
        period: str = MetricsPeriod.LAST_7D,
        project: str | None = None,
        from_: str | None = None,
        to: str | None = None,
    ) -> TokenMetrics:
        resolved = self.resolve(period, from_, to)
        return await compute_token_metrics(
            self.event_log, resolved, default_agent=self.default_agent, project=project,
        )

    async def get_duration_metrics(
        self,
        period: str = MetricsPeriod.LAST_7D,
        project: str | None = None,
        from_: str | None = None,
        to: str | None = None,
    ) -> DurationMetrics:
        resolved = self.resolve(period, from_, to)
        return await compute_duration_metrics(
            self.event_log, resolved, default_agent=self.default_agent, project=project,
        )

    async def get_failed_runs(
        self,
        period: str = MetricsPeriod.LAST_7D,
        project: str | None = None,
        from_: str | None = None,
        to: str | None = None,
        limit: int = DEFAULT_FAILED_RUNS_LIMIT,
    ) -> list[FailedRun]:
        resolved = self.resolve(period, from_, to)
        return await list_failed_runs(
            self.event_log,
            resolved,
            default_agent=self.default_agent,
            project=project,
            limit=limit,
        )

    # ───────────────────────────────────────────────────────────────────
    #  DASHBOARD / TRENDS
    # ───────────────────────────────────────────────────────────────────

    async def get_all_metrics(
        self,
        period: str = MetricsPeriod.LAST_7D,
        project: str | None = None,
        from_: str | None = None,
        to: str | None = None,
    ) -> AllMetrics:
        resolved = self.resolve(period, from_, to)
        return await compute_all_metrics(
            self.event_log,
            self.task_store,
            resolved,
            default_agent=self.default_agent,
            project=project,
        )

    async def get_trends(
        self,
        period: str = MetricsPeriod.LAST_7D,
        project: str | None = None,
        from_: str | None = None,
        to: str | None = None,
    ) -> TrendsData:
        resolved = self.resolve(period, from_, to)
        return await compute_daily_series(
            self.event_log,
            resolved,
            default_agent=self.default_agent,
            project=project,
            first_day=self._first_day(resolved),
        )

    # ───────────────────────────────────────────────────────────────────
    #  BUDGET / COMPARISON
    # ───────────────────────────────────────────────────────────────────

    async def get_budget_metrics(
        self,
        token_budget: int = 0,
        cost_budget: float = 0.0,
        warning_threshold: float = 80.0,
        project: str | None = None,
    ) -> BudgetMetrics:
        return await compute_budget_metrics(
            self.event_log,
            self.clock(),
            default_agent=self.default_agent,
            token_budget=token_budget,
            cost_budget=cost_budget,
            warning_threshold=warning_threshold,
            project=project,
        )

    async def get_agent_comparison(
        self,
        period: str = MetricsPeriod.LAST_7D,
        project: str | None = None,
        min_runs: int | None = None,
        from_: str | None = None,
        to: str | None = None,
    ) -> AgentComparisonResult:
        resolved = self.resolve(period, from_, to)
        if min_runs is None:
            min_runs = config.get_int("min_runs")
        return await compute_agent_comparison(
            self.event_log,
            resolved,
            default_agent=self.default_agent,
            project=project,
            min_runs=min_runs,
        )

    # ───────────────────────────────────────────────────────────────────
    #  COST / UTILIZATION
    # ───────────────────────────────────────────────────────────────────

    async def get_task_costs(
        self,
        period: str = MetricsPeriod.LAST_7D,
        project: str | None = None,
        from_: str | None = None,
        to: str | None = None,
        limit: int | None = None,
    ) -> TaskCostMetrics:
        resolved = self.resolve(period, from_, to)
        return await compute_task_costs(
            self.event_log, self.task_store, resolved, project=project, limit=limit,
        )

    async def get_cost_metrics(
        self,
        period: str = MetricsPeriod.LAST_7D,
        project: str | None = None,
        from_: str | None = None,
        to: str | None = None,
    ) -> CostMetrics:
        resolved = self.resolve(period, from_, to)
        return await compute_cost_metrics(self.event_log, self.pricing, resolved, project=project)

    async def get_utilization(
        self,
        period: str = MetricsPeriod.LAST_7D,
        from_: str | None = None,
        to: str | None = None,
    ) -> UtilizationMetrics:
        resolved = self.resolve(period, from_, to)
        return await compute_utilization(
            self.status_history, resolved, first_day=self._first_day(resolved),
        )
