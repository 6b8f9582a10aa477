"""Agent comparison: per-agent scorecards and up to four recommendations.

Recommendations are independent of each other; any of them may be absent:

    reliability   highest success rate, only when it reaches 80 %
    speed         lowest average duration among agents with a measured one
    cost          lowest average cost per run among agents with a nonzero cost
    efficiency    fewest tokens per successful run among agents with a success
"""

from __future__ import annotations

from backend.accumulators import AgentProfile
from backend.aggregation import EventFold, fold_log
from backend.periods import ResolvedPeriod
from backend.stats import format_duration, format_tokens, mean_int
from shared.enums import (
    DEFAULT_MIN_RUNS,
    EventType,
    RELIABILITY_MIN_SUCCESS_PCT,
    RUN_OUTCOME_TYPES,
    RecommendationCategory,
)
from shared.models import AgentComparisonResult, AgentComparisonRow, AgentRecommendation
from shared.storage import EventLogSource

_COMPARISON_TYPES = RUN_OUTCOME_TYPES | {EventType.RUN_TOKENS}


def build_row(agent: str, profile: AgentProfile) -> AgentComparisonRow:
    runs = profile.runs
    durations = runs.durations
    success_rate = runs.successes / runs.runs if runs.runs > 0 else 0.0
    return AgentComparisonRow(
        agent=agent,
        runs=runs.runs,
        successes=runs.successes,
        failures=runs.failures + runs.errors,
        success_rate=round(success_rate * 100, 1),
        avg_duration_ms=mean_int(sum(durations), len(durations)),
        avg_tokens_per_run=mean_int(profile.tokens.total_tokens, runs.runs),
        total_tokens=profile.tokens.total_tokens,
        avg_cost_per_run=round(profile.tokens.cost / runs.runs, 2) if runs.runs > 0 else 0.0,
        total_cost=round(profile.tokens.cost, 2),
    )


def recommend(rows: list[AgentComparisonRow], min_runs: int) -> list[AgentRecommendation]:
    """Derive recommendations from the qualifying rows. Ties keep row order."""
    recs: list[AgentRecommendation] = []
    if not rows:
        return recs

    reliable = max(rows, key=lambda r: r.success_rate)
    if reliable.success_rate >= RELIABILITY_MIN_SUCCESS_PCT:
        recs.append(AgentRecommendation(
            category=RecommendationCategory.RELIABILITY,
            agent=reliable.agent,
            value=f"{reliable.success_rate:g}% success rate",
            reason=f"Highest success rate among agents with {min_runs}+ runs",
        ))

    timed = [r for r in rows if r.avg_duration_ms > 0]
    if timed:
        fastest = min(timed, key=lambda r: r.avg_duration_ms)
        recs.append(AgentRecommendation(
            category=RecommendationCategory.SPEED,
            agent=fastest.agent,
            value=format_duration(fastest.avg_duration_ms),
            reason="Shortest average run duration",
        ))

    priced = [r for r in rows if r.avg_cost_per_run > 0]
    if priced:
        cheapest = min(priced, key=lambda r: r.avg_cost_per_run)
        recs.append(AgentRecommendation(
            category=RecommendationCategory.COST,
            agent=cheapest.agent,
            value=f"${cheapest.avg_cost_per_run:.2f}/run",
            reason="Lowest average cost per run",
        ))

    succeeded = [r for r in rows if r.successes > 0]
    if succeeded:
        per_success = {r.agent: round(r.total_tokens / r.successes) for r in succeeded}
        efficient = min(succeeded, key=lambda r: per_success[r.agent])
        recs.append(AgentRecommendation(
            category=RecommendationCategory.EFFICIENCY,
            agent=efficient.agent,
            value=f"{format_tokens(per_success[efficient.agent])}/success",
            reason="Fewest tokens per successful run",
        ))

    return recs


async def compute_agent_comparison(
    log: EventLogSource,
    period: ResolvedPeriod,
    *,
    default_agent: str,
    project: str | None = None,
    min_runs: int = DEFAULT_MIN_RUNS,
) -> AgentComparisonResult:
    profiles: dict[str, AgentProfile] = {}
    fold = EventFold(period.window, default_agent=default_agent, profiles=profiles)
    await fold_log(log, period.window, fold, types=_COMPARISON_TYPES, project=project)

    rows = [
        build_row(agent, profile)
        for agent, profile in profiles.items()
        if profile.runs.runs >= min_runs
    ]
    rows.sort(key=lambda r: r.runs, reverse=True)

    return AgentComparisonResult(
        period=period.period,
        min_runs=min_runs,
        agents=rows,
        recommendations=recommend(rows, min_runs),
        total_agents=len(profiles),
        qualifying_agents=len(rows),
    )
