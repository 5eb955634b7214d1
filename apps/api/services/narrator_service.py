"""
Narrator Service

Narrator resolution for the audio pipeline plus the narrator/sample write
path used by the API.

Default-narrator invariant:
- At most one narrator has is_default = True.
- Whenever narrators exist, one of them is the default. Deleting the default
  (or trying to unset it) re-promotes a narrator instead of leaving none.
- Promotion is a single UPDATE that clears every flag and sets one, so no
  reader ever sees two defaults.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from core.config import settings
from models import Narrator, NarratorSample, HabitAudioClip, CLIP_STATUS_READY
from services.audio_errors import (
    DuplicateNarratorError,
    NarratorNotFoundError,
    NarratorValidationError,
    NoDefaultNarratorError,
    SampleNotFoundError,
)

logger = logging.getLogger(__name__)

DEFAULT_TEMPERATURE = 0.7

_UPDATABLE_FIELDS = ("name", "role_prompt", "style_prompt", "voice", "sample_path", "temperature")


# ---------------------------------------------------------------------------
# Resolution (read path used by the generation pipeline)
# ---------------------------------------------------------------------------

def get_narrator(db: Session, narrator_id: int) -> Optional[Narrator]:
    return db.query(Narrator).filter(Narrator.id == narrator_id).first()


def get_default_narrator(db: Session) -> Optional[Narrator]:
    return (
        db.query(Narrator)
        .filter(Narrator.is_default.is_(True))
        .order_by(Narrator.id)
        .first()
    )


def resolve_narrator(db: Session, narrator_id: Optional[int] = None) -> Narrator:
    """
    Return the requested narrator, or the default one when no id is given.

    Raises NarratorNotFoundError / NoDefaultNarratorError.
    """
    if narrator_id is not None:
        narrator = get_narrator(db, narrator_id)
        if not narrator:
            raise NarratorNotFoundError(narrator_id)
        logger.info(f"Using narrator #{narrator.id} ({narrator.name}) requested by caller")
        return narrator

    narrator = get_default_narrator(db)
    if not narrator:
        raise NoDefaultNarratorError()
    logger.info(f"Using default narrator #{narrator.id} ({narrator.name})")
    return narrator


def list_narrators(db: Session) -> List[Dict[str, Any]]:
    """All narrators with their clip counts, default first then by name."""
    clip_count = func.count(HabitAudioClip.id)
    ready_count = func.coalesce(
        func.sum(case((HabitAudioClip.status == CLIP_STATUS_READY, 1), else_=0)),
        0,
    )
    rows = (
        db.query(Narrator, clip_count, ready_count)
        .outerjoin(HabitAudioClip, HabitAudioClip.narrator_id == Narrator.id)
        .group_by(Narrator.id)
        .order_by(Narrator.is_default.desc(), func.lower(Narrator.name))
        .all()
    )
    result = []
    for narrator, clips, ready in rows:
        item = narrator_to_dict(narrator)
        item["clip_count"] = int(clips or 0)
        item["ready_clip_count"] = int(ready or 0)
        result.append(item)
    return result


def narrator_to_dict(narrator: Narrator) -> Dict[str, Any]:
    return {
        "id": narrator.id,
        "name": narrator.name,
        "role_prompt": narrator.role_prompt,
        "style_prompt": narrator.style_prompt,
        "voice": narrator.voice,
        "sample_path": narrator.sample_path,
        "temperature": narrator.temperature,
        "is_default": bool(narrator.is_default),
        "created_at": narrator.created_at,
        "updated_at": narrator.updated_at,
    }


# ---------------------------------------------------------------------------
# Default flag
# ---------------------------------------------------------------------------

def set_default_narrator(db: Session, narrator_id: int) -> Narrator:
    """Make narrator_id the only default narrator."""
    narrator = get_narrator(db, narrator_id)
    if not narrator:
        raise NarratorNotFoundError(narrator_id)

    db.query(Narrator).update(
        {Narrator.is_default: case((Narrator.id == narrator_id, True), else_=False)},
        synchronize_session=False,
    )
    db.commit()
    db.expire_all()
    logger.info(f"Narrator #{narrator_id} is now the default")
    return narrator


def ensure_default_narrator(db: Session) -> Optional[Narrator]:
    """Promote the lowest-id narrator when none is flagged default."""
    current = get_default_narrator(db)
    if current:
        return current
    first = db.query(Narrator).order_by(Narrator.id).first()
    if not first:
        logger.info("No narrators left; no default narrator")
        return None
    logger.info(f"Promoting narrator #{first.id} ({first.name}) to default")
    return set_default_narrator(db, first.id)


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------

def _coerce_temperature(value: Any, fallback: float) -> float:
    if value is None:
        return fallback
    if isinstance(value, bool):
        raise NarratorValidationError("temperature must be a number")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise NarratorValidationError("temperature must be a number")


def _check_name_available(db: Session, name: str, exclude_id: Optional[int] = None) -> None:
    q = db.query(Narrator.id).filter(Narrator.name == name)
    if exclude_id is not None:
        q = q.filter(Narrator.id != exclude_id)
    if q.first():
        raise DuplicateNarratorError(name)


def create_narrator(
    db: Session,
    name: str,
    role_prompt: str,
    style_prompt: Optional[str] = None,
    voice: Optional[str] = None,
    sample_path: Optional[str] = None,
    temperature: Optional[float] = DEFAULT_TEMPERATURE,
    is_default: bool = False,
) -> Narrator:
    if not name or not name.strip() or not role_prompt or not role_prompt.strip():
        raise NarratorValidationError("name and role_prompt are required")
    name = name.strip()
    _check_name_available(db, name)

    narrator = Narrator(
        name=name,
        role_prompt=role_prompt,
        style_prompt=style_prompt,
        voice=voice,
        sample_path=sample_path,
        temperature=_coerce_temperature(temperature, DEFAULT_TEMPERATURE),
        is_default=False,
    )
    db.add(narrator)
    db.commit()
    db.refresh(narrator)
    logger.info(f"Created narrator #{narrator.id} ({narrator.name})")

    if is_default:
        set_default_narrator(db, narrator.id)
    else:
        ensure_default_narrator(db)

    db.refresh(narrator)
    return narrator


def update_narrator(db: Session, narrator_id: int, changes: Dict[str, Any]) -> Narrator:
    """
    Partial update. Keys absent from `changes` are left alone.

    is_default=True promotes this narrator. is_default=False on the current
    default is ignored, since that would leave no default.
    """
    narrator = get_narrator(db, narrator_id)
    if not narrator:
        raise NarratorNotFoundError(narrator_id)

    for field in _UPDATABLE_FIELDS:
        if field not in changes:
            continue
        value = changes[field]
        if field in ("name", "role_prompt"):
            if not value or not str(value).strip():
                raise NarratorValidationError(f"{field} cannot be empty")
            value = str(value).strip() if field == "name" else value
            if field == "name":
                _check_name_available(db, value, exclude_id=narrator_id)
        elif field == "temperature":
            value = _coerce_temperature(value, narrator.temperature)
        setattr(narrator, field, value)

    db.commit()

    is_default = changes.get("is_default")
    if is_default:
        set_default_narrator(db, narrator_id)
    elif is_default is False and narrator.is_default:
        logger.info(f"Ignoring request to unset default on narrator #{narrator_id}; it stays default")

    ensure_default_narrator(db)
    db.refresh(narrator)
    return narrator


def delete_narrator(db: Session, narrator_id: int) -> Dict[str, Any]:
    """Delete a narrator (its clips go with it) and re-promote a default if needed."""
    narrator = get_narrator(db, narrator_id)
    if not narrator:
        raise NarratorNotFoundError(narrator_id)

    snapshot = narrator_to_dict(narrator)
    db.delete(narrator)
    db.commit()
    logger.info(f"Deleted narrator #{narrator_id} ({snapshot['name']})")

    ensure_default_narrator(db)
    return snapshot


# ---------------------------------------------------------------------------
# Reference samples
# ---------------------------------------------------------------------------

def ensure_sample_directory() -> Path:
    sample_dir = Path(settings.narrator_sample_dir)
    sample_dir.mkdir(parents=True, exist_ok=True)
    return sample_dir


def list_samples(db: Session) -> List[NarratorSample]:
    return (
        db.query(NarratorSample)
        .order_by(NarratorSample.created_at.desc(), func.lower(NarratorSample.label))
        .all()
    )


def get_sample(db: Session, sample_id: int) -> Optional[NarratorSample]:
    return db.query(NarratorSample).filter(NarratorSample.id == sample_id).first()


def _relative_to_root(path: Path) -> str:
    root = Path(settings.PROJECT_ROOT).resolve()
    try:
        return str(path.resolve().relative_to(root))
    except ValueError:
        return str(path.resolve())


def create_sample(db: Session, file_path: Path, label: Optional[str] = None) -> NarratorSample:
    if not file_path:
        raise NarratorValidationError("file_path is required")
    file_path = Path(file_path)
    sample = NarratorSample(
        label=label or file_path.name,
        file_path=_relative_to_root(file_path),
    )
    db.add(sample)
    db.commit()
    db.refresh(sample)
    logger.info(f"Registered narrator sample #{sample.id} at {sample.file_path}")
    return sample


def delete_sample(db: Session, sample_id: int, remove_file: bool = False) -> NarratorSample:
    sample = get_sample(db, sample_id)
    if not sample:
        raise SampleNotFoundError(sample_id)

    file_path = sample.file_path
    db.delete(sample)
    db.commit()

    if remove_file and file_path:
        path = Path(file_path)
        if not path.is_absolute():
            path = Path(settings.PROJECT_ROOT) / path
        try:
            path.unlink()
        except OSError as e:
            logger.warning(f"Failed to remove sample file {path}: {e}")
    return sample
