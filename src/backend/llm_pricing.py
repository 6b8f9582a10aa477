"""LLM pricing: cost estimation for run.tokens events that carry no cost.

A cost reported on the event always wins. Otherwise one of three documented
rates applies, depending on the call path:

  general fallback   $0.01 / 1K input,  $0.03 / 1K output
                     (dashboard, tokens, daily series, comparison, budget)
  task tier          $0.015 / 1K input, $0.075 / 1K output
                     (per-task cost rollup)
  per-model table    exact match, then longest prefix, Sonnet-level default
                     (cost-by-model breakdown)

The rates differ between paths; do not fold them into one.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from shared.enums import (
    FALLBACK_INPUT_PER_1K,
    FALLBACK_OUTPUT_PER_1K,
    TASK_TIER_INPUT_PER_1K,
    TASK_TIER_OUTPUT_PER_1K,
)
from shared.models import TokenEvent

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenRate:
    """USD per 1K tokens."""
    input_per_1k: float
    output_per_1k: float

    def cost(self, input_tokens: int, output_tokens: int) -> float:
        return (input_tokens / 1000) * self.input_per_1k + (
            output_tokens / 1000
        ) * self.output_per_1k


GENERAL_RATE = TokenRate(FALLBACK_INPUT_PER_1K, FALLBACK_OUTPUT_PER_1K)
TASK_TIER_RATE = TokenRate(TASK_TIER_INPUT_PER_1K, TASK_TIER_OUTPUT_PER_1K)


def event_cost(event: TokenEvent, rate: TokenRate = GENERAL_RATE) -> float:
    """Reported cost if present, else the rate applied to the token counts."""
    if event.cost is not None:
        return event.cost
    return rate.cost(event.input_tokens, event.output_tokens)


# ───────────────────────────────────────────────────────────────────
#  PER-MODEL PRICING TABLE
# ───────────────────────────────────────────────────────────────────

_DEFAULT_PRICING: list[dict[str, Any]] = [
    # Anthropic
    {"model_pattern": "anthropic/claude-opus-4-5", "input_per_m": 15.0, "output_per_m": 75.0},
    {"model_pattern": "anthropic/claude-sonnet-4-5", "input_per_m": 3.0, "output_per_m": 15.0},
    {"model_pattern": "anthropic/claude-haiku-4-5", "input_per_m": 0.80, "output_per_m": 4.0},
    {"model_pattern": "claude-opus-4", "input_per_m": 15.0, "output_per_m": 75.0},
    {"model_pattern": "claude-sonnet-4", "input_per_m": 3.0, "output_per_m": 15.0},
    {"model_pattern": "claude-haiku-4", "input_per_m": 0.80, "output_per_m": 4.0},
    # OpenAI
    {"model_pattern": "openai-codex/gpt-5.2", "input_per_m": 2.50, "output_per_m": 10.0},
    {"model_pattern": "openai-codex/gpt-5.1", "input_per_m": 2.0, "output_per_m": 8.0},
    {"model_pattern": "gpt-4o", "input_per_m": 2.50, "output_per_m": 10.0},
    {"model_pattern": "gpt-4o-mini", "input_per_m": 0.15, "output_per_m": 0.60},
]

# Unknown models are priced at Sonnet level
_UNKNOWN_MODEL = {"model_pattern": "unknown", "input_per_m": 3.0, "output_per_m": 15.0}


class PricingEntry(BaseModel):
    """One row of a pricing override file, USD per million tokens."""
    model_pattern: str = Field(min_length=1)
    input_per_m: float = Field(ge=0)
    output_per_m: float = Field(ge=0)


class LlmPricingEngine:
    """Read-only model pricing table with optional JSON overrides."""

    def __init__(self, pricing_file: str | Path | None = None):
        self._entries: list[dict[str, Any]] = list(_DEFAULT_PRICING)
        if pricing_file is not None:
            self._load_overrides(Path(pricing_file))

    def _load_overrides(self, path: Path) -> None:
        if not path.exists():
            return
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as exc:
            logger.warning("Ignoring unreadable pricing file %s: %s", path, exc)
            return
        if not isinstance(raw, list):
            logger.warning("Ignoring pricing file %s: expected a list of entries", path)
            return

        overrides: list[dict[str, Any]] = []
        for item in raw:
            try:
                overrides.append(PricingEntry.model_validate(item).model_dump())
            except ValidationError as exc:
                logger.warning("Skipping invalid pricing entry in %s: %s", path, exc)
        # Overrides go first so an exact match on them wins
        self._entries = overrides + self._entries

    # ───────────────────────────────────────────────────────────────
    #  MODEL MATCHING
    # ───────────────────────────────────────────────────────────────

    def match_model(self, model_name: str) -> dict[str, Any] | None:
        """Find best pricing entry for a model string.

        Priority:
        1. Exact match (case-insensitive)
        2. Longest prefix match (case-insensitive)
        """
        lower = model_name.lower()

        for entry in self._entries:
            if entry["model_pattern"].lower() == lower:
                return entry

        best: dict[str, Any] | None = None
        best_len = 0
        for entry in self._entries:
            pattern = entry["model_pattern"].lower()
            if lower.startswith(pattern) and len(pattern) > best_len:
                best = entry
                best_len = len(pattern)

        return best

    def estimate_cost(self, model: str | None, tokens_in: int, tokens_out: int) -> float:
        """Cost of a call at the matched model's rates (default when unknown)."""
        entry = (self.match_model(model) if model else None) or _UNKNOWN_MODEL
        cost = (tokens_in * entry["input_per_m"] / 1_000_000) + (
            tokens_out * entry["output_per_m"] / 1_000_000
        )
        return round(cost, 6)

    def model_cost(self, event: TokenEvent) -> float:
        """Reported cost if present, else the per-model estimate."""
        if event.cost is not None:
            return event.cost
        return self.estimate_cost(event.model, event.input_tokens, event.output_tokens)
