"""Task board telemetry shared types: the engine's contract.

This package is the single source of truth for:
- Enumerations and constants (enums.py)
- Pydantic data models (models.py)
- Collaborator protocols (storage.py)
"""

from .enums import (
    EventType,
    MetricsPeriod,
    TaskStatus,
    TrendDirection,
    RecommendationCategory,
    BudgetStatus,
    PERIOD_DURATION_MS,
)
from .models import (
    TelemetryEvent,
    TaskEvent,
    RunStartedEvent,
    RunCompletedEvent,
    RunErrorEvent,
    TokenEvent,
    Task,
    DailyStatusSummary,
    RunMetrics,
    TokenMetrics,
    DurationMetrics,
    TaskMetrics,
    AllMetrics,
    TrendComparison,
    TrendsData,
    BudgetMetrics,
    AgentComparisonResult,
    TaskCostMetrics,
    CostMetrics,
    UtilizationMetrics,
    FailedRun,
    ErrorResponse,
)
from .storage import EventLogSource, LogPartition, StatusHistorySource, TaskStore
