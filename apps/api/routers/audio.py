"""
Habit Audio API Router

- POST /v1/audio/generate: run the generation pipeline for a date
- GET  /v1/audio/clips: clip rows for a date, with habit names
- GET  /v1/audio/habit/{habit_type}/{habit_id}: stream one clip's .wav
"""

from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session

from core.config import settings
from core.database import get_db
from core.exceptions import BadRequestError, ConflictError, NotFoundError
from models import CLIP_STATUS_READY
from schemas import ClipListResponse, GenerateRequest, GenerationResponse
from services.audio_errors import InvalidDateError, NarratorNotFoundError, NoDefaultNarratorError
from services.audio_generation import generate_clips_for_date
from services.clip_store import get_clip, list_clips_for_date, resolve_audio_path
from services.habit_resolver import HabitType, parse_target_date

router = APIRouter(prefix="/v1/audio", tags=["Habit Audio"])


def _parse_date(raw: Optional[str]):
    try:
        return parse_target_date(raw, settings.AUDIO_GENERATION_TZ)
    except InvalidDateError as e:
        raise BadRequestError(str(e))


@router.post("/generate", response_model=GenerationResponse)
def generate(payload: Optional[GenerateRequest] = None, db: Session = Depends(get_db)):
    """
    Manual trigger: generate (or regenerate) every clip for a date.

    Same semantics as the nightly run; existing clips for the date are overwritten.
    """
    payload = payload or GenerateRequest()
    try:
        result = generate_clips_for_date(db, target_date=payload.date, narrator_id=payload.narrator_id)
    except InvalidDateError as e:
        raise BadRequestError(str(e))
    except NarratorNotFoundError as e:
        raise NotFoundError(str(e))
    except NoDefaultNarratorError as e:
        raise ConflictError(str(e))
    return result.to_dict()


@router.get("/clips", response_model=ClipListResponse)
def list_clips(date: Optional[str] = None, db: Session = Depends(get_db)):
    day = _parse_date(date)
    return {"date": day, "clips": list_clips_for_date(db, day)}


@router.get("/habit/{habit_type}/{habit_id}")
def stream_habit_clip(
    habit_type: str,
    habit_id: int,
    date: Optional[str] = None,
    db: Session = Depends(get_db),
):
    kind = HabitType.parse(habit_type)
    if kind is None:
        raise BadRequestError("Invalid habit type")
    day = _parse_date(date)

    clip = get_clip(db, kind.value, habit_id, day)
    if not clip:
        raise NotFoundError("Audio clip not found for the given habit/date")

    if clip.status != CLIP_STATUS_READY:
        raise ConflictError({
            "error": f"Clip status is '{clip.status}', cannot stream audio",
            "status": clip.status,
            "message": clip.error_message,
        })

    if not clip.audio_path:
        raise NotFoundError("No audio file stored for this clip")

    path = resolve_audio_path(clip.audio_path)
    if not path.is_file():
        raise NotFoundError("Audio file is missing from storage")

    return FileResponse(
        path,
        media_type="audio/wav",
        headers={"Cache-Control": "no-store"},
    )
