"""
Celery tasks for background processing.

Tasks are defined here and imported by both the API (to enqueue) and
the worker (to execute). Beat reads the nightly schedule from
celerybeat_schedule.
"""
from celery import Celery
from core.config import settings
from celerybeat_schedule import beat_schedule

# Create Celery app instance
celery_app = Celery(
    "habit_narrator",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    # Crontab entries fire in AUDIO_GENERATION_TZ; server local time when unset
    timezone=settings.AUDIO_GENERATION_TZ,
    enable_utc=bool(settings.AUDIO_GENERATION_TZ),
    task_track_started=True,
    task_time_limit=6 * 60 * 60,  # a full day of habits with a cold TTS server
    task_soft_time_limit=5 * 60 * 60 + 45 * 60,
    beat_schedule=beat_schedule,
)

# Import tasks to register them
from . import audio_tasks  # noqa: E402

__all__ = ["celery_app"]
