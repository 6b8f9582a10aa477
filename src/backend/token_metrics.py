"""Token usage metrics and month-to-date budget tracking."""

from __future__ import annotations

import calendar
from datetime import datetime, timezone

from backend.accumulators import TokenAccumulator
from backend.aggregation import EventFold, build_token_metrics, fold_log
from backend.periods import ResolvedPeriod, TimeWindow, to_iso
from shared.enums import BudgetStatus, EventType
from shared.models import BudgetMetrics, TokenMetrics
from shared.storage import EventLogSource

_TOKEN_TYPES = frozenset({EventType.RUN_TOKENS})


async def compute_token_metrics(
    log: EventLogSource,
    period: ResolvedPeriod,
    *,
    default_agent: str,
    project: str | None = None,
) -> TokenMetrics:
    acc = TokenAccumulator()
    fold = EventFold(period.window, default_agent=default_agent, tokens=acc)
    await fold_log(log, period.window, fold, types=_TOKEN_TYPES, project=project)
    return build_token_metrics(period.period, acc)


def _budget_status(usages: list[float], warning_threshold: float) -> BudgetStatus:
    worst = max(usages, default=0.0)
    if worst >= 100:
        return BudgetStatus.DANGER
    if worst > 0 and worst >= warning_threshold:
        return BudgetStatus.WARNING
    return BudgetStatus.OK


async def compute_budget_metrics(
    log: EventLogSource,
    now: datetime,
    *,
    default_agent: str,
    token_budget: int = 0,
    cost_budget: float = 0.0,
    warning_threshold: float = 80.0,
    project: str | None = None,
) -> BudgetMetrics:
    """Month-to-date burn and end-of-month projection for the UTC month of `now`.

    A budget of 0 means "no limit": its usage percentages stay 0 and it
    never drives the status.
    """
    now = now.astimezone(timezone.utc)
    month_start = datetime(now.year, now.month, 1, tzinfo=timezone.utc)
    days_in_month = calendar.monthrange(now.year, now.month)[1]
    days_elapsed = now.day
    period_end = month_start.replace(day=days_in_month)

    acc = TokenAccumulator()
    window = TimeWindow(since=to_iso(month_start))
    fold = EventFold(window, default_agent=default_agent, tokens=acc)
    await fold_log(log, window, fold, types=_TOKEN_TYPES, project=project)

    total = acc.total
    tokens_per_day = total.total_tokens / days_elapsed
    cost_per_day = total.cost / days_elapsed
    projected_tokens = round(tokens_per_day * days_in_month)
    projected_cost = cost_per_day * days_in_month

    token_used = total.total_tokens / token_budget * 100 if token_budget > 0 else 0.0
    cost_used = total.cost / cost_budget * 100 if cost_budget > 0 else 0.0
    token_overage = projected_tokens / token_budget * 100 if token_budget > 0 else 0.0
    cost_overage = projected_cost / cost_budget * 100 if cost_budget > 0 else 0.0

    return BudgetMetrics(
        period_start=month_start.date().isoformat(),
        period_end=period_end.date().isoformat(),
        days_in_month=days_in_month,
        days_elapsed=days_elapsed,
        days_remaining=days_in_month - days_elapsed,
        total_tokens=total.total_tokens,
        input_tokens=total.input_tokens,
        output_tokens=total.output_tokens,
        estimated_cost=round(total.cost, 2),
        tokens_per_day=round(tokens_per_day),
        cost_per_day=round(cost_per_day, 2),
        projected_monthly_tokens=projected_tokens,
        projected_monthly_cost=round(projected_cost, 2),
        token_budget=token_budget,
        cost_budget=cost_budget,
        token_budget_used=round(token_used, 1),
        cost_budget_used=round(cost_used, 1),
        projected_token_overage=round(token_overage, 1),
        projected_cost_overage=round(cost_overage, 1),
        status=_budget_status(
            [token_used, cost_used, token_overage, cost_overage], warning_threshold,
        ),
    )
