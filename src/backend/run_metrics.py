"""Run outcome metrics: success/failure/error counts, durations, failed runs."""

from __future__ import annotations

import heapq
import itertools

from backend.accumulators import RunAccumulator
from backend.aggregation import EventFold, build_duration_metrics, build_run_metrics, fold_log
from backend.periods import ResolvedPeriod
from backend.telemetry_reader import scan_events
from shared.enums import DEFAULT_FAILED_RUNS_LIMIT, EventType, RUN_OUTCOME_TYPES
from shared.models import DurationMetrics, FailedRun, RunErrorEvent, RunMetrics
from shared.storage import EventLogSource


async def compute_run_metrics(
    log: EventLogSource,
    period: ResolvedPeriod,
    *,
    default_agent: str,
    project: str | None = None,
) -> RunMetrics:
    acc = RunAccumulator()
    fold = EventFold(period.window, default_agent=default_agent, runs=acc)
    await fold_log(log, period.window, fold, types=RUN_OUTCOME_TYPES, project=project)
    return build_run_metrics(period.period, acc)


async def compute_duration_metrics(
    log: EventLogSource,
    period: ResolvedPeriod,
    *,
    default_agent: str,
    project: str | None = None,
) -> DurationMetrics:
    # run.error carries no sampled duration, so completed runs are enough
    acc = RunAccumulator()
    fold = EventFold(period.window, default_agent=default_agent, runs=acc)
    await fold_log(
        log, period.window, fold, types={EventType.RUN_COMPLETED}, project=project,
    )
    return build_duration_metrics(period.period, acc)


async def list_failed_runs(
    log: EventLogSource,
    period: ResolvedPeriod,
    *,
    default_agent: str,
    project: str | None = None,
    limit: int = DEFAULT_FAILED_RUNS_LIMIT,
) -> list[FailedRun]:
    """Unsuccessful completions and run errors, newest first.

    Only the newest `limit` entries are ever held in memory.
    """
    if limit <= 0:
        return []
    heap: list[tuple[str, int, FailedRun]] = []
    seq = itertools.count()

    async for event in scan_events(
        log, period.window, types=RUN_OUTCOME_TYPES, project=project,
    ):
        if not isinstance(event, RunErrorEvent) and event.is_success:
            continue
        entry = (
            event.timestamp,
            next(seq),
            FailedRun(
                timestamp=event.timestamp,
                task_id=event.task_id,
                project=event.project,
                agent=event.agent or default_agent,
                success=False,
                error_message=event.error,
                duration_ms=event.duration_ms,
            ),
        )
        if len(heap) < limit:
            heapq.heappush(heap, entry)
        else:
            heapq.heappushpop(heap, entry)

    return [item[2] for item in sorted(heap, reverse=True)]
