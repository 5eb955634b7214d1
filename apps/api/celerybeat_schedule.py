"""
Celery Beat Schedule Configuration

Defines periodic tasks that run on a schedule.
"""

from celery.schedules import crontab

from core.config import settings

# Schedule configuration
beat_schedule = {
    # Nightly habit audio - generates today's clips at 01:00 in
    # AUDIO_GENERATION_TZ (celery_app.conf.timezone).
    'nightly-habit-audio': {
        'task': 'tasks.generate_nightly_habit_audio',
        'schedule': crontab(
            hour=settings.AUDIO_GENERATION_HOUR,
            minute=settings.AUDIO_GENERATION_MINUTE,
        ),
    },
}
