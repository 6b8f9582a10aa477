"""Event folding and result building shared by every metric family.

EventFold routes each scanned event into whichever accumulators the caller
attached. The dashboard attaches all of them and scans once; the standalone
families attach one and scan only the event types they need.
"""

from __future__ import annotations

import logging
from typing import Collection

from backend.accumulators import (
    AgentProfile,
    DailyAccumulator,
    PreviousPeriodTally,
    RunAccumulator,
    RunTally,
    TokenAccumulator,
)
from backend.llm_pricing import GENERAL_RATE, TokenRate, event_cost
from backend.periods import TimeWindow
from backend.stats import mean_int, percentile, ratio
from backend.telemetry_reader import scan_events
from shared.models import (
    AgentDurationBreakdown,
    AgentRunBreakdown,
    AgentTokenBreakdown,
    DurationMetrics,
    RunCompletedEvent,
    RunErrorEvent,
    RunMetrics,
    TaskEvent,
    TelemetryEvent,
    TokenDistribution,
    TokenEvent,
    TokenMetrics,
)
from shared.storage import EventLogSource

logger = logging.getLogger(__name__)


class EventFold:
    """Dispatch events from one scan into the attached accumulators.

    Events inside `window` feed the current-period accumulators. When a
    previous window is given, events inside it feed `previous` instead.
    """

    def __init__(
        self,
        window: TimeWindow,
        *,
        default_agent: str,
        runs: RunAccumulator | None = None,
        tokens: TokenAccumulator | None = None,
        daily: DailyAccumulator | None = None,
        profiles: dict[str, AgentProfile] | None = None,
        previous_window: TimeWindow | None = None,
        previous: PreviousPeriodTally | None = None,
        rate: TokenRate = GENERAL_RATE,
    ):
        self.window = window
        self.default_agent = default_agent
        self.runs = runs
        self.tokens = tokens
        self.daily = daily
        self.profiles = profiles
        self.previous_window = previous_window
        self.previous = previous
        self.rate = rate

    def agent_of(self, event: TelemetryEvent) -> str:
        return event.agent or self.default_agent

    def add(self, event: TelemetryEvent) -> None:
        ts = event.timestamp
        if self.previous is not None and self.previous_window is not None:
            if self.previous_window.contains(ts):
                self.previous.add(event)
        if not self.window.contains(ts):
            return

        if isinstance(event, (RunCompletedEvent, RunErrorEvent)):
            agent = self.agent_of(event)
            if self.runs is not None:
                self.runs.add(event, agent)
            if self.profiles is not None:
                self._profile(agent).runs.add(event)
            if self.daily is not None:
                self.daily.add(event)
        elif isinstance(event, TokenEvent):
            agent = self.agent_of(event)
            cost = event_cost(event, self.rate)
            if self.tokens is not None:
                self.tokens.add(event, agent, cost)
            if self.profiles is not None:
                self._profile(agent).tokens.add(event, cost)
            if self.daily is not None:
                self.daily.add(event, cost)
        elif isinstance(event, TaskEvent):
            if self.daily is not None:
                self.daily.add(event)

    def _profile(self, agent: str) -> AgentProfile:
        profile = self.profiles.get(agent)
        if profile is None:
            profile = self.profiles[agent] = AgentProfile()
        return profile


async def fold_log(
    log: EventLogSource,
    scan_window: TimeWindow,
    fold: EventFold,
    *,
    types: Collection[str] | None = None,
    project: str | None = None,
) -> EventFold:
    """Run one sequential scan over scan_window, feeding every event to fold."""
    async for event in scan_events(log, scan_window, types=types, project=project):
        fold.add(event)
    return fold


# ═══════════════════════════════════════════════════════════════════════════
#  FINALIZERS
# ═══════════════════════════════════════════════════════════════════════════

def build_run_metrics(
    period: str,
    acc: RunAccumulator,
    agent_tokens: dict[str, int] | None = None,
) -> RunMetrics:
    """Finalize run counts. agent_tokens fills per-agent token totals when known."""
    total = acc.total
    rows = [
        AgentRunBreakdown(
            agent=agent,
            runs=tally.runs,
            successes=tally.successes,
            failures=tally.failures,
            errors=tally.errors,
            success_rate=ratio(tally.successes, tally.runs),
            avg_duration_ms=mean_int(sum(tally.durations), len(tally.durations)),
            total_tokens=(agent_tokens or {}).get(agent, 0),
        )
        for agent, tally in acc.by_agent.items()
    ]
    rows.sort(key=lambda r: r.runs, reverse=True)
    return RunMetrics(
        period=period,
        runs=total.runs,
        successes=total.successes,
        failures=total.failures,
        errors=total.errors,
        error_rate=ratio(total.failures + total.errors, total.runs),
        success_rate=ratio(total.successes, total.runs),
        by_agent=rows,
    )


def build_token_metrics(period: str, acc: TokenAccumulator) -> TokenMetrics:
    total = acc.total
    per_run = sorted(acc.tokens_per_run)
    rows = [
        AgentTokenBreakdown(
            agent=agent,
            total_tokens=tally.total_tokens,
            input_tokens=tally.input_tokens,
            output_tokens=tally.output_tokens,
            cache_tokens=tally.cache_tokens,
            runs=tally.runs,
            cost=round(tally.cost, 4),
        )
        for agent, tally in acc.by_agent.items()
    ]
    rows.sort(key=lambda r: r.total_tokens, reverse=True)
    return TokenMetrics(
        period=period,
        total_tokens=total.total_tokens,
        input_tokens=total.input_tokens,
        output_tokens=total.output_tokens,
        cache_tokens=total.cache_tokens,
        runs=total.runs,
        total_cost=round(total.cost, 4),
        per_run=TokenDistribution(
            avg=mean_int(total.total_tokens, total.runs),
            p50=percentile(per_run, 50),
            p95=percentile(per_run, 95),
        ),
        by_agent=rows,
    )


def _duration_row(agent: str, tally: RunTally) -> AgentDurationBreakdown:
    samples = sorted(tally.durations)
    return AgentDurationBreakdown(
        agent=agent,
        runs=len(samples),
        avg_ms=mean_int(sum(samples), len(samples)),
        p50_ms=percentile(samples, 50),
        p95_ms=percentile(samples, 95),
    )


def build_duration_metrics(period: str, acc: RunAccumulator) -> DurationMetrics:
    """Duration distribution over the positive samples of completed runs."""
    samples = sorted(acc.total.durations)
    rows = [
        _duration_row(agent, tally)
        for agent, tally in acc.by_agent.items()
        if tally.durations
    ]
    rows.sort(key=lambda r: r.runs, reverse=True)
    return DurationMetrics(
        period=period,
        runs=len(samples),
        avg_ms=mean_int(sum(samples), len(samples)),
        p50_ms=percentile(samples, 50),
        p95_ms=percentile(samples, 95),
        by_agent=rows,
    )
