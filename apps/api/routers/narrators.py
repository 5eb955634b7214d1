"""
Narrator API Router

Narrator CRUD, the default-narrator switch, reference sample uploads and
"generate today's clips with this narrator".
"""

from __future__ import annotations

import logging
import os
import time
import uuid
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from sqlalchemy.orm import Session

from core.database import get_db
from core.exceptions import BadRequestError, ConflictError, NotFoundError, ValidationError
from schemas import (
    GenerationResponse,
    NarratorCreate,
    NarratorGenerateRequest,
    NarratorListResponse,
    NarratorResponse,
    NarratorSampleListResponse,
    NarratorSampleResponse,
    NarratorUpdate,
)
from services import narrator_service
from services.audio_errors import (
    DuplicateNarratorError,
    InvalidDateError,
    NarratorNotFoundError,
    NarratorValidationError,
    NoDefaultNarratorError,
    SampleNotFoundError,
)
from services.audio_generation import generate_clips_for_date

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/narrators", tags=["Narrators"])


def _raise_http(e: Exception):
    if isinstance(e, (NarratorNotFoundError, SampleNotFoundError)):
        raise NotFoundError(str(e))
    if isinstance(e, DuplicateNarratorError):
        raise ConflictError(str(e))
    if isinstance(e, NoDefaultNarratorError):
        raise ConflictError(str(e))
    if isinstance(e, InvalidDateError):
        raise BadRequestError(str(e))
    if isinstance(e, NarratorValidationError):
        raise ValidationError(str(e))
    raise e


def _safe_filename(name: str) -> str:
    base = os.path.basename(name or "")
    keep = []
    for ch in base:
        if ch.isalnum() or ch in (".", "_", "-"):
            keep.append(ch)
        else:
            keep.append("_")
    return "".join(keep)[:180]


# ---------------------------------------------------------------------------
# Reference samples
# ---------------------------------------------------------------------------

@router.get("/samples", response_model=NarratorSampleListResponse)
def list_samples(db: Session = Depends(get_db)):
    narrator_service.ensure_sample_directory()
    return {"samples": narrator_service.list_samples(db)}


@router.post("/samples", response_model=NarratorSampleResponse, status_code=status.HTTP_201_CREATED)
async def upload_sample(
    file: UploadFile = File(...),
    label: Optional[str] = Form(default=None),
    db: Session = Depends(get_db),
):
    """Store an uploaded voice sample under NARRATOR_SAMPLE_DIR and register it."""
    sample_dir = narrator_service.ensure_sample_directory()
    original = _safe_filename(file.filename or "")
    suffix = Path(original).suffix
    stored_path = sample_dir / f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}{suffix}"

    try:
        with stored_path.open("wb") as out:
            while True:
                chunk = await file.read(1024 * 1024)
                if not chunk:
                    break
                out.write(chunk)
    finally:
        await file.close()

    logger.info(f"Stored narrator sample upload {original or '<unnamed>'} at {stored_path}")
    return narrator_service.create_sample(db, stored_path, label=label or original or None)


@router.delete("/samples/{sample_id}", response_model=NarratorSampleResponse)
def delete_sample(sample_id: int, remove_file: bool = False, db: Session = Depends(get_db)):
    try:
        return narrator_service.delete_sample(db, sample_id, remove_file=remove_file)
    except SampleNotFoundError as e:
        _raise_http(e)


# ---------------------------------------------------------------------------
# Narrators
# ---------------------------------------------------------------------------

@router.get("", response_model=NarratorListResponse)
def list_narrators(db: Session = Depends(get_db)):
    logger.info("Fetching narrator list")
    return {"narrators": narrator_service.list_narrators(db)}


@router.get("/{narrator_id}", response_model=NarratorResponse)
def get_narrator(narrator_id: int, db: Session = Depends(get_db)):
    narrator = narrator_service.get_narrator(db, narrator_id)
    if not narrator:
        raise NotFoundError(f"Narrator not found: {narrator_id}")
    return narrator


@router.post("", response_model=NarratorResponse, status_code=status.HTTP_201_CREATED)
def create_narrator(payload: NarratorCreate, db: Session = Depends(get_db)):
    try:
        return narrator_service.create_narrator(db, **payload.model_dump())
    except NarratorValidationError as e:
        _raise_http(e)


@router.patch("/{narrator_id}", response_model=NarratorResponse)
def update_narrator(narrator_id: int, payload: NarratorUpdate, db: Session = Depends(get_db)):
    try:
        return narrator_service.update_narrator(db, narrator_id, payload.model_dump(exclude_unset=True))
    except (NarratorNotFoundError, NarratorValidationError) as e:
        _raise_http(e)


@router.delete("/{narrator_id}", response_model=NarratorResponse)
def delete_narrator(narrator_id: int, db: Session = Depends(get_db)):
    try:
        return narrator_service.delete_narrator(db, narrator_id)
    except NarratorNotFoundError as e:
        _raise_http(e)


@router.post("/{narrator_id}/default", response_model=NarratorResponse)
def make_default(narrator_id: int, db: Session = Depends(get_db)):
    try:
        return narrator_service.set_default_narrator(db, narrator_id)
    except NarratorNotFoundError as e:
        _raise_http(e)


@router.post("/{narrator_id}/generate", response_model=GenerationResponse)
def generate_with_narrator(
    narrator_id: int,
    payload: Optional[NarratorGenerateRequest] = None,
    db: Session = Depends(get_db),
):
    """
    Generate clips for a date (today by default) with this narrator.

    Runs synchronously and returns the run summary; per-habit failures are
    reported in `clips`, not as an HTTP error.
    """
    target_date = payload.date if payload else None
    try:
        result = generate_clips_for_date(db, target_date=target_date, narrator_id=narrator_id)
    except (InvalidDateError, NarratorNotFoundError) as e:
        _raise_http(e)
    return result.to_dict()
