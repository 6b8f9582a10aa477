"""Agent comparison and recommendation tests."""

from __future__ import annotations

from backend.comparison import recommend
from backend.metrics_service import MetricsService
from factories import LogWriter, completed, run_error, tokens
from shared.models import AgentComparisonRow

DAY = "2026-10-17"


def ts(minute: int) -> str:
    return f"{DAY}T10:{minute:02d}:00.000Z"


def _write_agents(log_writer: LogWriter) -> None:
    events = []
    for i in range(4):
        events.append(completed(ts(i), duration_ms=60_000, agent="alpha"))
    events.append(tokens(ts(5), 1000, 1000, agent="alpha"))
    events.append(tokens(ts(6), 1000, 1000, agent="alpha"))

    events.append(completed(ts(10), duration_ms=30_000, agent="beta"))
    events.append(completed(ts(11), duration_ms=30_000, agent="beta"))
    events.append(run_error(ts(12), agent="beta"))
    events.append(tokens(ts(13), 500, 500, agent="beta", cost=0.9))

    events.append(completed(ts(20), agent="gamma"))
    events.append(completed(ts(21), agent="gamma"))
    log_writer.write(DAY, events)


def _row(agent: str, **kw) -> AgentComparisonRow:
    base = dict(
        agent=agent, runs=5, successes=5, failures=0, success_rate=100.0,
        avg_duration_ms=0, avg_tokens_per_run=0, total_tokens=0,
        avg_cost_per_run=0.0, total_cost=0.0,
    )
    base.update(kw)
    return AgentComparisonRow(**base)


class TestAgentComparison:
    async def test_min_runs_filter_is_inclusive(
        self, log_writer: LogWriter, service: MetricsService,
    ):
        _write_agents(log_writer)
        result = await service.get_agent_comparison("7d")
        assert result.min_runs == 3
        assert [a.agent for a in result.agents] == ["alpha", "beta"]
        assert result.total_agents == 3
        assert result.qualifying_agents == 2

        result = await service.get_agent_comparison("7d", min_runs=4)
        assert [a.agent for a in result.agents] == ["alpha"]

        result = await service.get_agent_comparison("7d", min_runs=2)
        assert [a.agent for a in result.agents] == ["alpha", "beta", "gamma"]

    async def test_row_values(self, log_writer: LogWriter, service: MetricsService):
        _write_agents(log_writer)
        result = await service.get_agent_comparison("7d")
        alpha, beta = result.agents

        assert alpha.success_rate == 100.0
        assert alpha.avg_duration_ms == 60_000
        assert alpha.total_tokens == 4000
        assert alpha.avg_tokens_per_run == 1000
        # 2 x ($0.01 + $0.03) at the general rate
        assert alpha.total_cost == 0.08
        assert alpha.avg_cost_per_run == 0.02

        assert beta.runs == 3
        assert beta.failures == 1
        assert beta.success_rate == 66.7
        assert beta.total_cost == 0.9
        assert beta.avg_cost_per_run == 0.3

    async def test_recommendations(self, log_writer: LogWriter, service: MetricsService):
        _write_agents(log_writer)
        result = await service.get_agent_comparison("7d")
        recs = {r.category: r for r in result.recommendations}

        assert recs["reliability"].agent == "alpha"
        assert recs["reliability"].value == "100% success rate"
        assert recs["reliability"].reason == "Highest success rate among agents with 3+ runs"
        assert recs["speed"].agent == "beta"
        assert recs["speed"].value == "30s"
        assert recs["cost"].agent == "alpha"
        assert recs["cost"].value == "$0.02/run"
        assert recs["efficiency"].agent == "beta"
        assert recs["efficiency"].value == "500/success"

    async def test_empty(self, service: MetricsService):
        result = await service.get_agent_comparison("7d")
        assert result.agents == []
        assert result.recommendations == []
        assert result.total_agents == 0


class TestRecommend:
    def test_reliability_needs_eighty_percent(self):
        recs = recommend([_row("a", success_rate=79.9), _row("b", success_rate=50.0)], 3)
        assert "reliability" not in {r.category for r in recs}

        recs = recommend([_row("a", success_rate=80.0)], 3)
        assert recs[0].category == "reliability"
        assert recs[0].value == "80% success rate"

    def test_fractional_success_rate_value(self):
        recs = recommend([_row("a", success_rate=95.5)], 3)
        assert recs[0].value == "95.5% success rate"

    def test_optional_recommendations_skipped_without_data(self):
        recs = recommend([_row("a", successes=0, success_rate=0.0)], 3)
        assert recs == []

    def test_value_formatting(self):
        recs = recommend([
            _row("a", avg_duration_ms=5_400_000, avg_cost_per_run=0.123,
                 total_tokens=7_500, successes=5),
        ], 3)
        by_cat = {r.category: r.value for r in recs}
        assert by_cat["speed"] == "1.5h"
        assert by_cat["cost"] == "$0.12/run"
        assert by_cat["efficiency"] == "1.5K/success"
