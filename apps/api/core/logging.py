"""
Structured logging configuration.

JSON-formatted logs for the API, the Celery worker and beat, so a nightly
generation run can be followed habit by habit in the aggregated output.
Records emitted inside a Celery task carry that task's id and name.
"""
import logging
import sys
import json
from datetime import datetime, timezone
from typing import Any, Dict
from celery import current_task
from core.config import settings


class TaskContextFilter(logging.Filter):
    """Attach the running Celery task (if any) to every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        task = current_task
        if task and getattr(task, "request", None) and task.request.id:
            record.task_id = task.request.id
            record.task_name = task.name
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        task_id = getattr(record, "task_id", None)
        if task_id:
            log_data["task_id"] = task_id
            log_data["task_name"] = getattr(record, "task_name", None)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Structured context passed as extra={"extra_fields": {...}}
        if hasattr(record, "extra_fields"):
            log_data.update(record.extra_fields)

        return json.dumps(log_data, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable lines for local runs; task id appended when present."""

    def __init__(self):
        super().__init__("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        task_id = getattr(record, "task_id", None)
        if task_id:
            line = f"{line} [task {task_id}]"
        return line


def setup_logging():
    """
    Configure the root logger once per process (API, worker or beat).

    LOG_FORMAT=json (or ENVIRONMENT=production) selects JSONFormatter;
    anything else gets plain text.
    """
    log_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    if settings.LOG_FORMAT == "json" or settings.ENVIRONMENT == "production":
        formatter = JSONFormatter()
    else:
        formatter = TextFormatter()

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    console_handler.addFilter(TaskContextFilter())
    root_logger.addHandler(console_handler)

    # Set levels for noisy libraries
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("celery").setLevel(logging.INFO)
    logging.getLogger("multipart").setLevel(logging.WARNING)

    return root_logger
