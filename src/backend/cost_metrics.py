"""Cost rollups: per task (high-end tier) and per model (pricing table)."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from backend.llm_pricing import TASK_TIER_RATE, LlmPricingEngine, event_cost
from backend.periods import ResolvedPeriod
from backend.telemetry_reader import scan_events
from shared.enums import EventType
from shared.models import CostMetrics, ModelCostBreakdown, TaskCostEntry, TaskCostMetrics
from shared.storage import EventLogSource, TaskStore

logger = logging.getLogger(__name__)

_TOKEN_TYPES = frozenset({EventType.RUN_TOKENS})


@dataclass
class _CostTally:
    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0
    cache_tokens: int = 0
    runs: int = 0
    cost: float = 0.0


def _per_run(cost: float, runs: int) -> float:
    return round(cost / runs, 4) if runs > 0 else 0.0


# ═══════════════════════════════════════════════════════════════════════════
#  PER TASK
# ═══════════════════════════════════════════════════════════════════════════

async def compute_task_costs(
    log: EventLogSource,
    task_store: TaskStore,
    period: ResolvedPeriod,
    *,
    project: str | None = None,
    limit: int | None = None,
) -> TaskCostMetrics:
    """Token spend per task, most expensive first.

    Titles come from the task store for display only; tasks that no longer
    exist keep their row with no title. Totals cover every task, not just
    the first `limit` rows.
    """
    by_task: dict[str, _CostTally] = {}
    async for event in scan_events(log, period.window, types=_TOKEN_TYPES, project=project):
        if not event.task_id:
            continue
        t = by_task.get(event.task_id)
        if t is None:
            t = by_task[event.task_id] = _CostTally()
        t.input_tokens += event.input_tokens
        t.output_tokens += event.output_tokens
        t.total_tokens += event.tokens
        t.runs += 1
        t.cost += event_cost(event, TASK_TIER_RATE)

    titles = {task.id: task.title for task in await task_store.list_tasks()}
    missing = sum(1 for task_id in by_task if task_id not in titles)
    if missing:
        logger.debug("Task cost rollup: %d of %d tasks not in store", missing, len(by_task))

    rows = [
        TaskCostEntry(
            task_id=task_id,
            task_title=titles.get(task_id),
            input_tokens=t.input_tokens,
            output_tokens=t.output_tokens,
            total_tokens=t.total_tokens,
            estimated_cost=round(t.cost, 4),
            runs=t.runs,
            avg_cost_per_run=_per_run(t.cost, t.runs),
        )
        for task_id, t in by_task.items()
    ]
    rows.sort(key=lambda r: r.estimated_cost, reverse=True)

    total_cost = sum(t.cost for t in by_task.values())
    if limit is not None:
        rows = rows[:limit]

    return TaskCostMetrics(
        period=period.period,
        tasks=rows,
        total_cost=round(total_cost, 4),
        avg_cost_per_task=round(total_cost / len(by_task), 4) if by_task else 0.0,
    )


# ═══════════════════════════════════════════════════════════════════════════
#  PER MODEL
# ═══════════════════════════════════════════════════════════════════════════

async def compute_cost_metrics(
    log: EventLogSource,
    pricing: LlmPricingEngine,
    period: ResolvedPeriod,
    *,
    project: str | None = None,
) -> CostMetrics:
    total = _CostTally()
    by_model: dict[str, _CostTally] = {}

    async for event in scan_events(log, period.window, types=_TOKEN_TYPES, project=project):
        cost = pricing.model_cost(event)
        model = event.model or "unknown"
        m = by_model.get(model)
        if m is None:
            m = by_model[model] = _CostTally()
        for t in (total, m):
            t.input_tokens += event.input_tokens
            t.output_tokens += event.output_tokens
            t.total_tokens += event.tokens
            t.cache_tokens += event.cache_tokens or 0
            t.runs += 1
            t.cost += cost

    breakdown = [
        ModelCostBreakdown(
            model=model,
            total_cost=round(m.cost, 4),
            total_tokens=m.total_tokens,
            input_tokens=m.input_tokens,
            output_tokens=m.output_tokens,
            cache_tokens=m.cache_tokens,
            runs=m.runs,
            average_cost_per_run=_per_run(m.cost, m.runs),
        )
        for model, m in by_model.items()
    ]
    breakdown.sort(key=lambda b: b.total_cost, reverse=True)

    return CostMetrics(
        period=period.period,
        total_cost=round(total.cost, 4),
        total_tokens=total.total_tokens,
        input_tokens=total.input_tokens,
        output_tokens=total.output_tokens,
        cache_tokens=total.cache_tokens,
        runs=total.runs,
        average_cost_per_run=_per_run(total.cost, total.runs),
        by_model=breakdown,
    )
