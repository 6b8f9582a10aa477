"""Cost rollups (per task, per model) and month-to-date budget."""

from __future__ import annotations

import json

import pytest

from backend.llm_pricing import GENERAL_RATE, TASK_TIER_RATE, LlmPricingEngine, event_cost
from backend.metrics_service import MetricsService
from conftest import fixed_clock
from factories import LogWriter, tokens
from shared.models import TokenEvent

DAY = "2026-10-17"


def ts(hhmm: str, day: str = DAY) -> str:
    return f"{day}T{hhmm}:00.000Z"


# ═══════════════════════════════════════════════════════════════════════════
#  PRICING
# ═══════════════════════════════════════════════════════════════════════════


class TestPricing:
    def test_rates_differ_by_path(self):
        e = TokenEvent.model_validate(tokens(ts("09:00"), 1000, 500))
        assert event_cost(e, GENERAL_RATE) == pytest.approx(0.025)
        assert event_cost(e, TASK_TIER_RATE) == pytest.approx(0.0525)

    def test_reported_cost_wins(self):
        e = TokenEvent.model_validate(tokens(ts("09:00"), 1000, 500, cost=0.0))
        assert event_cost(e, TASK_TIER_RATE) == 0.0
        assert LlmPricingEngine().model_cost(e) == 0.0

    def test_model_matching(self):
        pricing = LlmPricingEngine()
        assert pricing.match_model("GPT-4o-mini")["input_per_m"] == 0.15
        assert pricing.match_model("claude-sonnet-4-20250514")["model_pattern"] == "claude-sonnet-4"
        assert pricing.match_model("llama-3") is None
        assert pricing.estimate_cost("llama-3", 1_000_000, 0) == 3.0
        assert pricing.estimate_cost(None, 0, 1_000_000) == 15.0

    def test_pricing_overrides(self, tmp_path):
        path = tmp_path / "pricing.json"
        path.write_text(
            '[{"model_pattern": "llama-3", "input_per_m": 0.5, "output_per_m": 1.0}]',
            encoding="utf-8",
        )
        assert LlmPricingEngine(path).estimate_cost("llama-3-70b", 2_000_000, 0) == 1.0

    def test_invalid_override_entries_skipped(self, tmp_path):
        path = tmp_path / "pricing.json"
        path.write_text(json.dumps([
            {"model_pattern": "llama-3"},
            {"input_per_m": 1.0, "output_per_m": 1.0},
            "gpt-4o",
            {"model_pattern": "mistral", "input_per_m": 1.0, "output_per_m": 2.0},
        ]), encoding="utf-8")
        pricing = LlmPricingEngine(path)
        assert pricing.estimate_cost("llama-3", 1_000_000, 0) == 3.0
        assert pricing.estimate_cost("mistral-large", 1_000_000, 0) == 1.0
        assert pricing.estimate_cost("gpt-4o", 1_000_000, 0) == 2.5

    def test_override_file_must_be_a_list(self, tmp_path):
        path = tmp_path / "pricing.json"
        path.write_text('{"model_pattern": "llama-3"}', encoding="utf-8")
        assert LlmPricingEngine(path).estimate_cost("llama-3", 1_000_000, 0) == 3.0

    async def test_cost_route_survives_bad_override_file(
        self, tmp_path, log_writer: LogWriter, event_log, task_store, status_history,
    ):
        path = tmp_path / "pricing.json"
        path.write_text('[{"model_pattern": "x"}, 42]', encoding="utf-8")
        service = MetricsService(
            event_log, task_store, status_history,
            pricing=LlmPricingEngine(path), clock=fixed_clock,
        )
        log_writer.write(DAY, [tokens(ts("09:00"), 1_000_000, 0, model="x")])
        result = await service.get_cost_metrics("7d")
        assert result.total_cost == 3.0


# ═══════════════════════════════════════════════════════════════════════════
#  PER TASK
# ═══════════════════════════════════════════════════════════════════════════


class TestTaskCost:
    async def _seed(self, log_writer: LogWriter, write_tasks) -> None:
        write_tasks([
            {"id": "t1", "title": "Write docs", "status": "todo"},
            {"id": "t2", "title": "Fix bug", "status": "done"},
        ])
        log_writer.write(DAY, [
            tokens(ts("09:00"), 1000, 500, taskId="t1"),
            tokens(ts("09:10"), 10, 10, taskId="t2", cost=0.2),
            tokens(ts("09:20"), 2000, 0, taskId="t-gone"),
            tokens(ts("09:30"), 5000, 5000),
        ])

    async def test_rollup_sorted_by_cost(
        self, log_writer: LogWriter, write_tasks, service: MetricsService,
    ):
        await self._seed(log_writer, write_tasks)
        result = await service.get_task_costs("7d")

        assert [t.task_id for t in result.tasks] == ["t2", "t1", "t-gone"]
        t2, t1, gone = result.tasks
        assert t2.task_title == "Fix bug"
        assert t2.estimated_cost == 0.2
        # high-end tier: $0.015 / 1K input + $0.075 / 1K output
        assert t1.estimated_cost == 0.0525
        assert t1.total_tokens == 1500
        assert gone.task_title is None
        assert gone.estimated_cost == 0.03
        assert result.total_cost == pytest.approx(0.2825)
        assert result.avg_cost_per_task == pytest.approx(0.0942)

    async def test_limit_keeps_totals(
        self, log_writer: LogWriter, write_tasks, service: MetricsService,
    ):
        await self._seed(log_writer, write_tasks)
        result = await service.get_task_costs("7d", limit=1)
        assert len(result.tasks) == 1
        assert result.total_cost == pytest.approx(0.2825)

    async def test_runs_and_per_run(self, log_writer: LogWriter, service: MetricsService):
        log_writer.write(DAY, [
            tokens(ts("09:00"), 0, 0, taskId="t1", cost=0.1),
            tokens(ts("09:05"), 0, 0, taskId="t1", cost=0.3),
        ])
        result = await service.get_task_costs("7d")
        assert result.tasks[0].runs == 2
        assert result.tasks[0].avg_cost_per_run == pytest.approx(0.2)


# ═══════════════════════════════════════════════════════════════════════════
#  PER MODEL
# ═══════════════════════════════════════════════════════════════════════════


class TestCostByModel:
    async def test_breakdown(self, log_writer: LogWriter, service: MetricsService):
        log_writer.write(DAY, [
            tokens(ts("09:00"), 1_000_000, 0, model="claude-sonnet-4-20250514"),
            tokens(ts("09:01"), 1_000_000, 0, model="gpt-4o-mini"),
            tokens(ts("09:02"), 0, 1_000_000),
            tokens(ts("09:03"), 10, 10, model="gpt-4o", cost=0.5, cacheTokens=7),
        ])
        result = await service.get_cost_metrics("7d")

        assert [m.model for m in result.by_model] == [
            "unknown", "claude-sonnet-4-20250514", "gpt-4o", "gpt-4o-mini",
        ]
        assert result.by_model[0].total_cost == 15.0
        assert result.by_model[1].total_cost == 3.0
        assert result.by_model[2].total_cost == 0.5
        assert result.by_model[3].total_cost == 0.15
        assert result.total_cost == pytest.approx(18.65)
        assert result.runs == 4
        assert result.cache_tokens == 7
        assert result.average_cost_per_run == pytest.approx(4.6625)


# ═══════════════════════════════════════════════════════════════════════════
#  BUDGET
# ═══════════════════════════════════════════════════════════════════════════


class TestBudget:
    def _seed(self, log_writer: LogWriter) -> None:
        log_writer.write("2026-09-30", [tokens(ts("12:00", "2026-09-30"), 99_000, 0)])
        log_writer.write("2026-10-02", [tokens(ts("12:00", "2026-10-02"), 9000, 0)])
        log_writer.write("2026-10-17", [tokens(ts("12:00"), 0, 9000)])

    async def test_month_to_date(self, log_writer: LogWriter, service: MetricsService):
        self._seed(log_writer)
        b = await service.get_budget_metrics()

        assert b.period_start == "2026-10-01"
        assert b.period_end == "2026-10-31"
        assert (b.days_in_month, b.days_elapsed, b.days_remaining) == (31, 18, 13)
        assert b.total_tokens == 18_000
        assert b.estimated_cost == pytest.approx(0.36)
        assert b.tokens_per_day == 1000
        assert b.cost_per_day == pytest.approx(0.02)
        assert b.projected_monthly_tokens == 31_000
        assert b.projected_monthly_cost == pytest.approx(0.62)
        assert b.token_budget_used == 0
        assert b.status == "ok"

    async def test_danger_on_projected_overage(
        self, log_writer: LogWriter, service: MetricsService,
    ):
        self._seed(log_writer)
        b = await service.get_budget_metrics(token_budget=40_000, cost_budget=0.5)
        assert b.token_budget_used == 45.0
        assert b.projected_token_overage == 77.5
        assert b.cost_budget_used == pytest.approx(72.0)
        assert b.projected_cost_overage == pytest.approx(124.0)
        assert b.status == "danger"

    async def test_warning_threshold(self, log_writer: LogWriter, service: MetricsService):
        self._seed(log_writer)
        b = await service.get_budget_metrics(token_budget=40_000, warning_threshold=75)
        assert b.status == "warning"
        b = await service.get_budget_metrics(token_budget=40_000, warning_threshold=90)
        assert b.status == "ok"

    async def test_zero_threshold_without_usage_is_ok(
        self, log_writer: LogWriter, service: MetricsService,
    ):
        self._seed(log_writer)
        b = await service.get_budget_metrics(warning_threshold=0)
        assert b.status == "ok"
        b = await service.get_budget_metrics(token_budget=10_000_000, warning_threshold=0)
        assert b.status == "warning"
