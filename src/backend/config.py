"""Configuration loader for the task board metrics engine.

Reads from config.json in the project root. Falls back to environment
variables (TASKBOARD_<KEY>), then to defaults.
"""

from __future__ import annotations

import json
import os
from pathlib import Path

_CONFIG: dict | None = None

DEFAULTS: dict = {
    "telemetry_dir": ".taskboard/telemetry",
    "tasks_file": ".taskboard/tasks.json",
    "status_history_file": ".taskboard/status-history.json",
    "default_agent": "orchestrator",
    "min_runs": 3,
    "log_level": "INFO",
    "pricing_file": None,
}


def _load() -> dict:
    global _CONFIG
    if _CONFIG is not None:
        return _CONFIG

    config_path = Path(
        os.environ.get("TASKBOARD_CONFIG")
        or Path(__file__).resolve().parent.parent.parent / "config.json"
    )
    if config_path.exists():
        with open(config_path, encoding="utf-8") as f:
            _CONFIG = json.load(f)
    else:
        _CONFIG = {}
    return _CONFIG


def get(key: str, default=None):
    """Get a config value. Checks config.json first, then env var TASKBOARD_{KEY}, then default."""
    cfg = _load()
    if key in cfg:
        return cfg[key]
    env_key = f"TASKBOARD_{key.upper()}"
    env_val = os.environ.get(env_key)
    if env_val is not None:
        return env_val
    if default is None:
        return DEFAULTS.get(key)
    return default


def get_int(key: str, default: int | None = None) -> int:
    """Like get(), coerced to int (env vars always arrive as strings)."""
    return int(get(key, default))


def reload():
    """Force reload config from disk (useful for tests)."""
    global _CONFIG
    _CONFIG = None
