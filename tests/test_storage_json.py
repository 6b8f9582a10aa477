"""JSON task store and status history adapters."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from backend import storage_json
from backend.errors import MetricsError, StoreReadError
from backend.storage_json import JsonStatusHistory, JsonTaskStore
from conftest import fixed_clock


class TestJsonTaskStore:
    async def test_missing_file_is_empty(self, tmp_path: Path):
        store = JsonTaskStore(tmp_path / "nope.json")
        assert await store.list_tasks() == []

    async def test_reads_camel_case_records(self, tasks_file: Path, task_store: JsonTaskStore):
        tasks_file.write_text(json.dumps([
            {"id": "t1", "title": "A", "status": "done",
             "timeTracking": {"totalSeconds": 60, "isRunning": True}},
        ]), encoding="utf-8")
        (task,) = await task_store.list_tasks()
        assert task.id == "t1"
        assert task.time_tracking.total_seconds == 60
        assert task.time_tracking.is_running is True

    async def test_invalid_records_skipped(self, write_tasks, task_store: JsonTaskStore):
        write_tasks([{"title": "no id"}, {"id": "t2"}])
        tasks = await task_store.list_tasks()
        assert [t.id for t in tasks] == ["t2"]
        assert tasks[0].status == "todo"

    async def test_corrupt_file_raises(self, tasks_file: Path, task_store: JsonTaskStore):
        tasks_file.write_text("[{", encoding="utf-8")
        with pytest.raises(StoreReadError) as info:
            await task_store.list_tasks()
        assert info.value.path == tasks_file
        assert isinstance(info.value, MetricsError)

    async def test_wrong_shape_raises(self, tasks_file: Path, task_store: JsonTaskStore):
        tasks_file.write_text('"tasks"', encoding="utf-8")
        with pytest.raises(StoreReadError):
            await task_store.list_tasks()

    async def test_reread_every_call(self, write_tasks, task_store: JsonTaskStore):
        write_tasks([{"id": "t1"}])
        assert len(await task_store.list_tasks()) == 1
        write_tasks([{"id": "t1"}, {"id": "t2"}])
        assert len(await task_store.list_tasks()) == 2


class TestJsonStatusHistory:
    def _write(self, path: Path, entries: list[dict]) -> None:
        path.write_text(json.dumps(entries), encoding="utf-8")

    async def test_transitions_within_day(self, history_file: Path, status_history):
        self._write(history_file, [
            {"timestamp": "2026-10-16T10:00:00.000Z", "newStatus": "idle"},
            {"timestamp": "2026-10-16T09:00:00.000Z", "newStatus": "working"},
            {"timestamp": "2026-10-16T23:00:00.000Z", "newStatus": "offline"},
        ])
        s = await status_history.get_daily_summary("2026-10-16")
        # entries are ordered by timestamp before slicing
        assert s.active_ms == 3_600_000 + 3_599_999
        assert s.idle_ms == 13 * 3_600_000
        assert s.error_ms == 0

    async def test_carry_over_from_earlier_day(self, history_file: Path, status_history):
        self._write(history_file, [
            {"timestamp": "2026-10-10T09:00:00.000Z", "newStatus": "error"},
        ])
        s = await status_history.get_daily_summary("2026-10-12")
        assert s.error_ms == 86_399_999
        assert s.active_ms == 0

    async def test_today_capped_at_now(self, history_file: Path, status_history):
        self._write(history_file, [
            {"timestamp": "2026-10-18T10:00:00.000Z", "newStatus": "working"},
        ])
        s = await status_history.get_daily_summary("2026-10-18")
        assert s.active_ms == 2 * 3_600_000

    async def test_day_before_any_entry_is_empty(self, history_file: Path, status_history):
        self._write(history_file, [
            {"timestamp": "2026-10-17T10:00:00.000Z", "newStatus": "working"},
        ])
        s = await status_history.get_daily_summary("2026-10-16")
        assert (s.active_ms, s.idle_ms, s.error_ms) == (0, 0, 0)

    async def test_unparseable_entries_ignored(self, history_file: Path, status_history):
        self._write(history_file, [
            {"timestamp": "whenever", "newStatus": "idle"},
            {"newStatus": "idle"},
            {"timestamp": "2026-10-17T12:00:00.000Z", "newStatus": "idle"},
        ])
        s = await status_history.get_daily_summary("2026-10-17")
        assert s.idle_ms == 12 * 3_600_000 - 1

    async def test_corrupt_file_raises(self, tmp_path: Path):
        path = tmp_path / "history.json"
        path.write_text("{not json", encoding="utf-8")
        history = JsonStatusHistory(path, clock=fixed_clock)
        with pytest.raises(StoreReadError):
            await history.get_daily_summary("2026-10-17")

    async def test_batch_summaries_read_file_once(
        self, history_file: Path, status_history, monkeypatch,
    ):
        self._write(history_file, [
            {"timestamp": "2026-10-10T09:00:00.000Z", "newStatus": "working"},
            {"timestamp": "2026-10-16T12:00:00.000Z", "newStatus": "idle"},
        ])
        reads = []
        real_read = storage_json._read_json

        def counting_read(path):
            reads.append(path)
            return real_read(path)

        monkeypatch.setattr(storage_json, "_read_json", counting_read)
        dates = ["2026-10-15", "2026-10-16", "2026-10-17"]
        batch = await status_history.get_daily_summaries(dates)

        assert len(reads) == 1
        assert [s.date for s in batch] == dates
        for summary in batch:
            assert summary == await status_history.get_daily_summary(summary.date)
        assert batch[0].active_ms == 86_399_999
        assert batch[1].active_ms == 0
        assert batch[1].idle_ms == 12 * 3_600_000 - 1
