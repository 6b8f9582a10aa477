"""Small numeric helpers shared by the metric computers."""

from __future__ import annotations

import math
from typing import Sequence

from shared.enums import TREND_FLAT_THRESHOLD_PCT, TrendDirection
from shared.models import MetricTrend


def percentile(sorted_values: Sequence[float], pct: float) -> float:
    """Rank selection on an already sorted sample; 0 for an empty one."""
    if not sorted_values:
        return 0
    index = math.ceil((pct / 100) * len(sorted_values)) - 1
    index = min(max(index, 0), len(sorted_values) - 1)
    return sorted_values[index]


def mean_int(total: float, count: int) -> int:
    return round(total / count) if count > 0 else 0


def ratio(part: float, whole: float) -> float:
    """part / whole, or 0 when whole is 0."""
    return part / whole if whole > 0 else 0.0


def trend_change(current: float, previous: float) -> int:
    """Whole-percent change vs the previous period; 0 when there was none."""
    if previous == 0:
        return 0
    return round((current - previous) / previous * 100)


def trend_direction(
    current: float,
    previous: float,
    higher_is_better: bool = True,
) -> TrendDirection:
    """Favourability of the change, not its raw sign.

    For lower-is-better metrics (tokens, duration) a rise is "down".
    """
    if previous == 0:
        return TrendDirection.FLAT
    change = (current - previous) / previous * 100
    if abs(change) < TREND_FLAT_THRESHOLD_PCT:
        return TrendDirection.FLAT
    rising = current > previous
    if higher_is_better:
        return TrendDirection.UP if rising else TrendDirection.DOWN
    return TrendDirection.DOWN if rising else TrendDirection.UP


def compare(current: float, previous: float, higher_is_better: bool = True) -> MetricTrend:
    return MetricTrend(
        direction=trend_direction(current, previous, higher_is_better),
        change=trend_change(current, previous),
    )


# ───────────────────────────────────────────────────────────────────
#  DISPLAY FORMATTING (recommendations)
# ───────────────────────────────────────────────────────────────────

def format_duration(ms: float) -> str:
    if ms < 60_000:
        return f"{round(ms / 1000)}s"
    if ms < 3_600_000:
        return f"{round(ms / 60_000)}m"
    return f"{ms / 3_600_000:.1f}h"


def format_tokens(tokens: float) -> str:
    if tokens < 1000:
        return f"{round(tokens)}"
    if tokens < 1_000_000:
        return f"{tokens / 1000:.1f}K"
    return f"{tokens / 1_000_000:.2f}M"
