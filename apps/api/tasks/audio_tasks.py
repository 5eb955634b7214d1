"""
Habit Audio Celery Tasks

- tasks.generate_nightly_habit_audio: fired by Celery Beat once a day
  (AUDIO_GENERATION_HOUR:MINUTE in AUDIO_GENERATION_TZ) for "today".
- tasks.generate_habit_audio_for_date: manual re-run for an explicit date
  and/or narrator.

Both share run_generation(), which is also the synchronous entry point for
operator scripts. Re-running a date overwrites that date's clips.
"""

import logging
from typing import Dict, Optional

from celery import Task

from core.config import settings
from core.database import get_db_sync
from services.audio_errors import AudioGenerationError
from services.audio_generation import generate_clips_for_date
from services.habit_resolver import today_local
from tasks import celery_app

logger = logging.getLogger(__name__)


def run_generation(
    target_date: Optional[str] = None,
    narrator_id: Optional[int] = None,
    trigger: str = "manual",
) -> Dict:
    """
    Generate clips for one date and return a JSON-able summary.

    Never raises: run-level failures (bad date, unknown narrator) come back
    as {"status": "error", ...}.
    """
    db = get_db_sync()
    try:
        result = generate_clips_for_date(db, target_date=target_date, narrator_id=narrator_id)
        payload = result.to_dict()
        summary = payload["summary"]
        logger.info(
            f"{trigger.capitalize()} generation complete for {payload['date']}: "
            f"{summary['ready']}/{summary['total']} ready, {summary['failed']} failed"
        )
        return {"status": "ok", "trigger": trigger, **payload}
    except AudioGenerationError as e:
        logger.error(f"{trigger.capitalize()} audio generation failed: {e}")
        return {"status": "error", "trigger": trigger, "message": str(e)}
    except Exception as e:
        logger.error(f"{trigger.capitalize()} audio generation failed: {e}", exc_info=True)
        return {"status": "error", "trigger": trigger, "message": str(e)}
    finally:
        db.close()


@celery_app.task(
    name="tasks.generate_nightly_habit_audio",
    bind=True,
    max_retries=0,  # Habits fail individually; the batch is never retried
)
def generate_nightly_habit_audio(self: Task, narrator_id: Optional[int] = None) -> Dict:
    """Generate today's clips. Runs nightly via Celery Beat."""
    logger.info("Nightly audio generation triggered")
    target = today_local(settings.AUDIO_GENERATION_TZ)
    return run_generation(
        target_date=target.isoformat(),
        narrator_id=narrator_id if narrator_id is not None else settings.AUDIO_GENERATION_NARRATOR_ID,
        trigger="nightly",
    )


@celery_app.task(
    name="tasks.generate_habit_audio_for_date",
    bind=True,
    max_retries=0,
)
def generate_habit_audio_for_date(
    self: Task,
    target_date: Optional[str] = None,
    narrator_id: Optional[int] = None,
) -> Dict:
    """
    Manual trigger for a given date (ISO string, defaults to today) and an
    optional narrator override.
    """
    return run_generation(target_date=target_date, narrator_id=narrator_id, trigger="manual")
