"""Task-store metrics and agent utilization from the status history."""

from __future__ import annotations

from backend.periods import ResolvedPeriod, parse_bound
from shared.enums import TaskStatus
from shared.models import DailyUtilization, Task, TaskMetrics, UtilizationMetrics
from shared.storage import StatusHistorySource, TaskStore


def _touched_since(task: Task, since: str) -> bool:
    # Task timestamps are not normalized, so compare instants
    cutoff = parse_bound(since)
    for value in (task.updated, task.created):
        if not value:
            continue
        try:
            if parse_bound(value) >= cutoff:
                return True
        except ValueError:
            continue
    return False


async def compute_task_metrics(
    task_store: TaskStore,
    *,
    project: str | None = None,
    since: str | None = None,
) -> TaskMetrics:
    tasks = await task_store.list_tasks()
    if project is not None:
        tasks = [t for t in tasks if t.project == project]
    if since is not None:
        tasks = [t for t in tasks if _touched_since(t, since)]

    by_status: dict[str, int] = {status.value: 0 for status in TaskStatus}
    by_priority: dict[str, int] = {}
    tracked = 0
    for task in tasks:
        by_status[task.status] = by_status.get(task.status, 0) + 1
        if task.priority:
            by_priority[task.priority] = by_priority.get(task.priority, 0) + 1
        if task.time_tracking is not None:
            tracked += task.time_tracking.total_seconds

    return TaskMetrics(
        by_status=by_status,
        by_priority=by_priority,
        total=len(tasks),
        completed=by_status[TaskStatus.DONE],
        tracked_seconds=tracked,
    )


def _utilization(active: int, idle: int, error: int) -> float:
    denominator = active + idle + error
    if denominator == 0:
        return 0.0
    return round(active / denominator * 100, 1)


async def compute_utilization(
    history: StatusHistorySource,
    period: ResolvedPeriod,
    *,
    first_day: str | None = None,
) -> UtilizationMetrics:
    """Sum the daily active/idle/error summaries over every day of the period."""
    daily: list[DailyUtilization] = []
    active = idle = error = 0
    for summary in await history.get_daily_summaries(period.day_axis(first_day)):
        active += summary.active_ms
        idle += summary.idle_ms
        error += summary.error_ms
        daily.append(DailyUtilization(
            date=summary.date,
            active_ms=summary.active_ms,
            idle_ms=summary.idle_ms,
            error_ms=summary.error_ms,
            utilization_percent=_utilization(
                summary.active_ms, summary.idle_ms, summary.error_ms,
            ),
        ))

    return UtilizationMetrics(
        period=period.period,
        total_active_ms=active,
        total_idle_ms=idle,
        total_error_ms=error,
        utilization_percent=_utilization(active, idle, error),
        daily=daily,
    )
