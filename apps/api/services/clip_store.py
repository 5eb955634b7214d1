"""
Clip Store

Persistence for generated habit clips. One row per (habit_id, habit_type,
scheduled_date); every generation attempt upserts that row, so re-running a
date never adds rows, it overwrites them (last write wins).
"""
from __future__ import annotations

import logging
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional

from sqlalchemy import and_, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core.config import settings
from models import (
    DaySpecificHabit,
    DefaultHabit,
    HabitAudioClip,
    HABIT_TYPE_DAY_SPECIFIC,
    HABIT_TYPE_DEFAULT,
)
from services.audio_errors import ClipPersistenceError

logger = logging.getLogger(__name__)

_CLIP_KEY = ["habit_id", "habit_type", "scheduled_date"]


def _dialect_insert(db: Session):
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    elif dialect == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    else:
        raise ClipPersistenceError(f"Clip upsert is not supported on {dialect}")
    return insert


def upsert_clip(
    db: Session,
    *,
    habit_id: int,
    habit_type: str,
    scheduled_date: date,
    narrator_id: int,
    script: str,
    audio_path: str,
    status: str,
    error_message: Optional[str] = None,
) -> None:
    """Insert the clip row or overwrite every mutable field of the existing one."""
    insert = _dialect_insert(db)
    stmt = insert(HabitAudioClip).values(
        habit_id=habit_id,
        habit_type=habit_type,
        scheduled_date=scheduled_date,
        narrator_id=narrator_id,
        script=script or "",
        audio_path=audio_path or "",
        status=status,
        error_message=error_message,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=_CLIP_KEY,
        set_={
            "narrator_id": stmt.excluded.narrator_id,
            "script": stmt.excluded.script,
            "audio_path": stmt.excluded.audio_path,
            "status": stmt.excluded.status,
            "error_message": stmt.excluded.error_message,
            "updated_at": func.now(),
        },
    )
    try:
        db.execute(stmt)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise ClipPersistenceError(
            f"Failed to store clip {habit_type}#{habit_id} for {scheduled_date.isoformat()}: {e}"
        ) from e

    logger.info(
        f"Clip record upserted {habit_type}#{habit_id} {scheduled_date.isoformat()} "
        f"narrator={narrator_id} status={status}"
    )


def get_clip(db: Session, habit_type: str, habit_id: int, scheduled_date: date) -> Optional[HabitAudioClip]:
    return (
        db.query(HabitAudioClip)
        .populate_existing()
        .filter(
            HabitAudioClip.habit_id == habit_id,
            HabitAudioClip.habit_type == habit_type,
            HabitAudioClip.scheduled_date == scheduled_date,
        )
        .first()
    )


def resolve_audio_path(audio_path: str, project_root: Optional[Path] = None) -> Path:
    path = Path(audio_path)
    if path.is_absolute():
        return path
    return Path(project_root or settings.PROJECT_ROOT) / path


def remove_prior_artifact(
    db: Session,
    habit_id: int,
    habit_type: str,
    scheduled_date: date,
    project_root: Optional[Path] = None,
) -> bool:
    """
    Delete the audio file the existing row points at, if any.

    A missing file is fine (the goal is that no stale file remains). Other
    filesystem errors are logged and swallowed. Returns True if a file was removed.
    """
    clip = get_clip(db, habit_type, habit_id, scheduled_date)
    if not clip or not clip.audio_path:
        return False

    path = resolve_audio_path(clip.audio_path, project_root)
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    except OSError as e:
        logger.error(
            f"Failed to delete previous audio file for {habit_type}#{habit_id} "
            f"({scheduled_date.isoformat()}): {e}"
        )
        return False

    logger.info(f"Removed previous audio file for {habit_type}#{habit_id} ({scheduled_date.isoformat()})")
    return True


def list_clips_for_date(db: Session, scheduled_date: date) -> List[Dict[str, Any]]:
    """Every clip row for a date with the habit's display name as `event`."""
    rows = (
        db.query(HabitAudioClip, DefaultHabit.event, DaySpecificHabit.event)
        .outerjoin(
            DefaultHabit,
            and_(
                HabitAudioClip.habit_type == HABIT_TYPE_DEFAULT,
                HabitAudioClip.habit_id == DefaultHabit.id,
            ),
        )
        .outerjoin(
            DaySpecificHabit,
            and_(
                HabitAudioClip.habit_type == HABIT_TYPE_DAY_SPECIFIC,
                HabitAudioClip.habit_id == DaySpecificHabit.id,
            ),
        )
        .filter(HabitAudioClip.scheduled_date == scheduled_date)
        .populate_existing()
        .order_by(HabitAudioClip.habit_type, HabitAudioClip.habit_id)
        .all()
    )

    clips = []
    for clip, default_event, specific_event in rows:
        clips.append({
            "id": clip.id,
            "habit_id": clip.habit_id,
            "habit_type": clip.habit_type,
            "scheduled_date": clip.scheduled_date,
            "narrator_id": clip.narrator_id,
            "script": clip.script,
            "audio_path": clip.audio_path,
            "status": clip.status,
            "error_message": clip.error_message,
            "created_at": clip.created_at,
            "updated_at": clip.updated_at,
            "event": default_event if clip.habit_type == HABIT_TYPE_DEFAULT else specific_event,
        })
    return clips
