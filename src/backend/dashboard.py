"""Dashboard metrics: every family from one scan, plus the daily trend series.

compute_all_metrics is the latency-sensitive entry point. It scans the union
of the current and previous windows exactly once; EventFold routes each event
either into the current-period accumulators or into the previous-period tally.
"""

from __future__ import annotations

import logging

from backend.accumulators import (
    DailyAccumulator,
    PreviousPeriodTally,
    RunAccumulator,
    TokenAccumulator,
)
from backend.aggregation import (
    EventFold,
    build_duration_metrics,
    build_run_metrics,
    build_token_metrics,
    fold_log,
)
from backend.periods import ResolvedPeriod
from backend.stats import compare, mean_int, ratio
from backend.task_metrics import compute_task_metrics
from shared.enums import EventType, RUN_OUTCOME_TYPES
from shared.models import (
    AllMetrics,
    DailyTrendPoint,
    DurationMetrics,
    RunMetrics,
    TokenMetrics,
    TrendComparison,
    TrendsData,
)
from shared.storage import EventLogSource, TaskStore

logger = logging.getLogger(__name__)

_DASHBOARD_TYPES = RUN_OUTCOME_TYPES | {EventType.RUN_TOKENS}


def build_trends(
    runs: RunMetrics,
    tokens: TokenMetrics,
    duration: DurationMetrics,
    previous: PreviousPeriodTally,
) -> TrendComparison:
    return TrendComparison(
        runs=compare(runs.runs, previous.runs),
        success_rate=compare(runs.success_rate * 100, previous.success_rate * 100),
        tokens=compare(tokens.total_tokens, previous.tokens, higher_is_better=False),
        duration=compare(duration.avg_ms, previous.avg_duration_ms, higher_is_better=False),
    )


async def compute_all_metrics(
    log: EventLogSource,
    task_store: TaskStore,
    period: ResolvedPeriod,
    *,
    default_agent: str,
    project: str | None = None,
) -> AllMetrics:
    runs_acc = RunAccumulator()
    tokens_acc = TokenAccumulator()
    previous = PreviousPeriodTally() if period.previous is not None else None

    fold = EventFold(
        period.window,
        default_agent=default_agent,
        runs=runs_acc,
        tokens=tokens_acc,
        previous_window=period.previous,
        previous=previous,
    )
    await fold_log(log, period.scan_window, fold, types=_DASHBOARD_TYPES, project=project)

    agent_tokens = {agent: t.total_tokens for agent, t in tokens_acc.by_agent.items()}
    runs = build_run_metrics(period.period, runs_acc, agent_tokens)
    tokens = build_token_metrics(period.period, tokens_acc)
    duration = build_duration_metrics(period.period, runs_acc)
    tasks = await compute_task_metrics(task_store, project=project, since=period.since)

    trends = None
    if previous is not None:
        trends = build_trends(runs, tokens, duration, previous)

    return AllMetrics(
        period=period.period,
        tasks=tasks,
        runs=runs,
        tokens=tokens,
        duration=duration,
        trends=trends,
    )


# ═══════════════════════════════════════════════════════════════════════════
#  DAILY SERIES
# ═══════════════════════════════════════════════════════════════════════════

async def compute_daily_series(
    log: EventLogSource,
    period: ResolvedPeriod,
    *,
    default_agent: str,
    project: str | None = None,
    first_day: str | None = None,
) -> TrendsData:
    """One row per UTC day of the period, empty days included.

    first_day anchors the axis for periods without a lower bound.
    """
    daily = DailyAccumulator(period.day_axis(first_day))
    fold = EventFold(period.window, default_agent=default_agent, daily=daily)
    await fold_log(log, period.window, fold, project=project)

    points = []
    for day in sorted(daily.days):
        b = daily.days[day]
        points.append(DailyTrendPoint(
            date=day,
            runs=b.runs,
            successes=b.successes,
            failures=b.failures,
            errors=b.errors,
            success_rate=ratio(b.successes, b.runs),
            total_tokens=b.total_tokens,
            input_tokens=b.input_tokens,
            output_tokens=b.output_tokens,
            cost_estimate=round(b.cost, 4),
            avg_duration_ms=mean_int(b.duration_sum, b.duration_count),
            tasks_created=b.tasks_created,
            status_changes=b.status_changes,
            tasks_archived=b.tasks_archived,
        ))
    return TrendsData(period=period.period, daily=points)
