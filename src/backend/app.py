"""Task board metrics API: FastAPI application.

Run with: uvicorn backend.app:app --reload

Thin read-only surface over MetricsService. Each route resolves query
parameters, calls one service method and serializes the result with
camelCase keys. Engine errors map to the standard error envelope.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException

from backend import config
from backend.errors import InvalidPeriodError, MetricsError
from backend.metrics_service import MetricsService
from shared.enums import DEFAULT_FAILED_RUNS_LIMIT
from shared.models import ErrorResponse

logger = logging.getLogger(__name__)

VERSION = "0.1.0"


# ═══════════════════════════════════════════════════════════════════════════
#  APP LIFECYCLE
# ═══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(
        level=str(config.get("log_level")).upper(),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    app.state.metrics = MetricsService.from_config()
    logger.info("Metrics engine reading telemetry from %s", config.get("telemetry_dir"))
    yield


app = FastAPI(
    title="Task Board Metrics API",
    version=VERSION,
    description="Telemetry aggregation for agent runs on the task board",
    lifespan=lifespan,
)

# CORS: read-only API, any origin
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["GET"],
    allow_headers=["*"],
)


def _error(
    status: int, error: str, message: str, details: dict | None = None,
) -> JSONResponse:
    body = ErrorResponse(error=error, message=message, status=status, details=details)
    return JSONResponse(status_code=status, content=body.model_dump(exclude_none=True))


def _dump(model: BaseModel) -> dict:
    return model.model_dump(mode="json", by_alias=True)


def _service(request: Request) -> MetricsService:
    return request.app.state.metrics


# ═══════════════════════════════════════════════════════════════════════════
#  ERROR HANDLING
# ═══════════════════════════════════════════════════════════════════════════

@app.exception_handler(InvalidPeriodError)
async def invalid_period_handler(request: Request, exc: InvalidPeriodError):
    return _error(400, exc.code, str(exc))


@app.exception_handler(MetricsError)
async def metrics_error_handler(request: Request, exc: MetricsError):
    # Paths stay in the server log
    logger.error("Metrics request %s failed: %s", request.url.path, exc)
    return _error(500, exc.code, "Failed to read metrics data")


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    if isinstance(exc.detail, dict):
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.detail,
        )
    return _error(
        exc.status_code,
        exc.detail if isinstance(exc.detail, str) else "error",
        str(exc.detail),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    field_errors = []
    for err in exc.errors():
        field_errors.append({
            "field": ".".join(str(loc) for loc in err.get("loc", [])),
            "message": err.get("msg", ""),
            "type": err.get("type", ""),
        })
    return _error(
        400, "validation_error", "Request validation failed", {"fields": field_errors},
    )


# ═══════════════════════════════════════════════════════════════════════════
#  HEALTH
# ═══════════════════════════════════════════════════════════════════════════

@app.get("/health")
async def health():
    return {"status": "ok", "version": VERSION}


# ═══════════════════════════════════════════════════════════════════════════
#  METRICS
# ═══════════════════════════════════════════════════════════════════════════

# --- GET /api/metrics/tasks ---

@app.get("/api/metrics/tasks")
async def get_task_metrics(
    request: Request,
    project: str | None = None,
    since: str | None = None,
):
    return _dump(await _service(request).get_task_metrics(project, since))


# --- GET /api/metrics/runs ---

@app.get("/api/metrics/runs")
async def get_run_metrics(
    request: Request,
    period: str = "7d",
    project: str | None = None,
    from_: str | None = Query(default=None, alias="from"),
    to: str | None = None,
):
    return _dump(await _service(request).get_run_metrics(period, project, from_, to))


# --- GET /api/metrics/tokens ---

@app.get("/api/metrics/tokens")
async def get_token_metrics(
    request: Request,
    period: str = "7d",
    project: str | None = None,
    from_: str | None = Query(default=None, alias="from"),
    to: str | None = None,
):
    return _dump(await _service(request).get_token_metrics(period, project, from_, to))


# --- GET /api/metrics/duration ---

@app.get("/api/metrics/duration")
async def get_duration_metrics(
    request: Request,
    period: str = "7d",
    project: str | None = None,
    from_: str | None = Query(default=None, alias="from"),
    to: str | None = None,
):
    return _dump(await _service(request).get_duration_metrics(period, project, from_, to))


# --- GET /api/metrics/all ---

@app.get("/api/metrics/all")
async def get_all_metrics(
    request: Request,
    period: str = "7d",
    project: str | None = None,
    from_: str | None = Query(default=None, alias="from"),
    to: str | None = None,
):
    return _dump(await _service(request).get_all_metrics(period, project, from_, to))


# --- GET /api/metrics/trends ---

@app.get("/api/metrics/trends")
async def get_trends(
    request: Request,
    period: str = "7d",
    project: str | None = None,
    from_: str | None = Query(default=None, alias="from"),
    to: str | None = None,
):
    return _dump(await _service(request).get_trends(period, project, from_, to))


# --- GET /api/metrics/budget ---

@app.get("/api/metrics/budget")
async def get_budget_metrics(
    request: Request,
    project: str | None = None,
    token_budget: int = Query(default=0, ge=0, alias="tokenBudget"),
    cost_budget: float = Query(default=0.0, ge=0, alias="costBudget"),
    warning_threshold: float = Query(default=80.0, ge=0, le=100, alias="warningThreshold"),
):
    result = await _service(request).get_budget_metrics(
        token_budget, cost_budget, warning_threshold, project,
    )
    return _dump(result)


# --- GET /api/metrics/agents/comparison ---

@app.get("/api/metrics/agents/comparison")
async def get_agent_comparison(
    request: Request,
    period: str = "7d",
    project: str | None = None,
    min_runs: int | None = Query(default=None, ge=1, alias="minRuns"),
    from_: str | None = Query(default=None, alias="from"),
    to: str | None = None,
):
    result = await _service(request).get_agent_comparison(period, project, min_runs, from_, to)
    return _dump(result)


# --- GET /api/metrics/failed-runs ---

@app.get("/api/metrics/failed-runs")
async def get_failed_runs(
    request: Request,
    period: str = "7d",
    project: str | None = None,
    from_: str | None = Query(default=None, alias="from"),
    to: str | None = None,
    limit: int = Query(default=DEFAULT_FAILED_RUNS_LIMIT, ge=1, le=200),
):
    runs = await _service(request).get_failed_runs(period, project, from_, to, limit)
    return {"data": [_dump(r) for r in runs]}


# --- GET /api/metrics/task-cost ---

@app.get("/api/metrics/task-cost")
async def get_task_costs(
    request: Request,
    period: str = "7d",
    project: str | None = None,
    from_: str | None = Query(default=None, alias="from"),
    to: str | None = None,
    limit: int | None = Query(default=None, ge=1),
):
    return _dump(await _service(request).get_task_costs(period, project, from_, to, limit))


# --- GET /api/metrics/cost ---

@app.get("/api/metrics/cost")
async def get_cost_metrics(
    request: Request,
    period: str = "7d",
    project: str | None = None,
    from_: str | None = Query(default=None, alias="from"),
    to: str | None = None,
):
    return _dump(await _service(request).get_cost_metrics(period, project, from_, to))


# --- GET /api/metrics/utilization ---

@app.get("/api/metrics/utilization")
async def get_utilization(
    request: Request,
    period: str = "7d",
    from_: str | None = Query(default=None, alias="from"),
    to: str | None = None,
):
    return _dump(await _service(request).get_utilization(period, from_, to))
