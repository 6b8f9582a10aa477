"""Percentile, trend and formatting helpers."""

from __future__ import annotations

from backend.stats import (
    compare,
    format_duration,
    format_tokens,
    percentile,
    trend_change,
    trend_direction,
)
from shared.enums import TrendDirection


class TestPercentile:
    def test_empty_is_zero(self):
        assert percentile([], 50) == 0
        assert percentile([], 95) == 0

    def test_single_value(self):
        for pct in (1, 50, 95, 100):
            assert percentile([42], pct) == 42

    def test_rank_selection(self):
        values = list(range(1, 101))
        assert percentile(values, 50) == 50
        assert percentile(values, 95) == 95
        assert percentile([100, 200], 50) == 100
        assert percentile([100, 200], 95) == 200

    def test_p95_not_below_p50(self):
        samples = sorted([5, 1, 9, 3, 3, 7, 12, 2])
        assert percentile(samples, 95) >= percentile(samples, 50)


class TestTrends:
    def test_previous_zero_is_flat_and_zero(self):
        assert trend_change(500, 0) == 0
        assert trend_direction(500, 0) == TrendDirection.FLAT
        assert trend_direction(500, 0, higher_is_better=False) == TrendDirection.FLAT

    def test_change_rounded_percent(self):
        assert trend_change(150, 100) == 50
        assert trend_change(50, 100) == -50
        assert trend_change(1, 3) == -67

    def test_small_change_is_flat(self):
        assert trend_direction(104, 100) == TrendDirection.FLAT
        assert trend_direction(105, 100) == TrendDirection.UP

    def test_lower_is_better(self):
        assert trend_direction(200, 100, higher_is_better=False) == TrendDirection.DOWN
        assert trend_direction(50, 100, higher_is_better=False) == TrendDirection.UP

    def test_compare(self):
        t = compare(120, 100)
        assert t.direction == "up"
        assert t.change == 20


class TestFormatting:
    def test_duration(self):
        assert format_duration(45_000) == "45s"
        assert format_duration(180_000) == "3m"
        assert format_duration(5_400_000) == "1.5h"

    def test_tokens(self):
        assert format_tokens(850) == "850"
        assert format_tokens(1500) == "1.5K"
        assert format_tokens(2_345_678) == "2.35M"
