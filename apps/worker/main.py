"""
Celery worker entry point.

Runs the habit audio tasks defined under apps/api/tasks (nightly beat entry
and manual regeneration).

    celery -A main worker --loglevel=info
    celery -A main beat --loglevel=info
"""
import os
import sys

# Add API directory to path so we can import tasks
sys.path.insert(0, os.environ.get("API_DIR", os.path.join(os.path.dirname(os.path.abspath(__file__)), "..", "api")))

from core.logging import setup_logging  # noqa: E402
from tasks import celery_app  # noqa: E402

setup_logging()

# This makes Celery discover tasks
celery_app.autodiscover_tasks(['tasks'])

