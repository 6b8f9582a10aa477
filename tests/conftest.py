"""Test harness: a fresh telemetry directory and task files per test."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from backend.metrics_service import MetricsService
from backend.storage_json import JsonStatusHistory, JsonTaskStore
from backend.telemetry_reader import FileEventLog
from factories import LogWriter

# Fixed "now" for every test: Sunday 2026-10-18, noon UTC
NOW = datetime(2026, 10, 18, 12, 0, 0, tzinfo=timezone.utc)


def fixed_clock() -> datetime:
    return NOW


@pytest.fixture
def telemetry_dir(tmp_path: Path) -> Path:
    return tmp_path / "telemetry"


@pytest.fixture
def log_writer(telemetry_dir: Path) -> LogWriter:
    return LogWriter(telemetry_dir)


@pytest.fixture
def event_log(telemetry_dir: Path) -> FileEventLog:
    return FileEventLog(telemetry_dir)


@pytest.fixture
def tasks_file(tmp_path: Path) -> Path:
    return tmp_path / "tasks.json"


@pytest.fixture
def write_tasks(tasks_file: Path):
    """Write a list of task dicts to the task store file."""
    def _write(tasks: list[dict]) -> None:
        tasks_file.write_text(json.dumps(tasks), encoding="utf-8")
    return _write


@pytest.fixture
def task_store(tasks_file: Path) -> JsonTaskStore:
    return JsonTaskStore(tasks_file)


@pytest.fixture
def history_file(tmp_path: Path) -> Path:
    return tmp_path / "status-history.json"


@pytest.fixture
def status_history(history_file: Path) -> JsonStatusHistory:
    return JsonStatusHistory(history_file, clock=fixed_clock)


@pytest.fixture
def service(
    event_log: FileEventLog,
    task_store: JsonTaskStore,
    status_history: JsonStatusHistory,
) -> MetricsService:
    return MetricsService(
        event_log,
        task_store,
        status_history,
        clock=fixed_clock,
        default_agent="orchestrator",
    )
