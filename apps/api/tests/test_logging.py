"""Structured logging tests"""
import json
import logging
from unittest.mock import MagicMock, patch

from core.logging import JSONFormatter, TaskContextFilter, TextFormatter


def _record(msg="Generation complete for 2024-03-04", **extra):
    record = logging.LogRecord("services.audio_generation", logging.INFO, __file__, 10, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    def test_extra_fields_are_merged(self):
        record = _record(extra_fields={"date": "2024-03-04", "ready": 2, "failed": 0})
        data = json.loads(JSONFormatter().format(record))

        assert data["level"] == "INFO"
        assert data["logger"] == "services.audio_generation"
        assert data["message"] == "Generation complete for 2024-03-04"
        assert data["ready"] == 2
        assert "task_id" not in data

    def test_task_context(self):
        data = json.loads(JSONFormatter().format(
            _record(task_id="abc-123", task_name="tasks.generate_nightly_habit_audio")
        ))
        assert data["task_id"] == "abc-123"
        assert data["task_name"] == "tasks.generate_nightly_habit_audio"


class TestTaskContextFilter:
    def test_outside_a_task_leaves_record_alone(self):
        record = _record()
        assert TaskContextFilter().filter(record) is True
        assert not hasattr(record, "task_id")

    def test_inside_a_task(self):
        task = MagicMock()
        task.name = "tasks.generate_habit_audio_for_date"
        task.request.id = "job-9"
        record = _record()

        with patch("core.logging.current_task", task):
            TaskContextFilter().filter(record)

        assert record.task_id == "job-9"
        assert TextFormatter().format(record).endswith("[task job-9]")
