"""
Habit Audio Generation

Turns one day's schedule into narrated clips:

    date -> narrator -> habits -> for each habit:
        drop stale file -> script -> TTS -> copy into audio/generated/<date>/ -> upsert row

Rules:
- Date and narrator problems abort the run (there is nothing to generate against).
- Anything that goes wrong for one habit is recorded as a `failed` clip row
  with the error message, and the run moves on to the next habit.
- Habits are processed one at a time, in resolution order (defaults first).
  The TTS backend is a single stateful server, so there is no fan-out.
- Re-running a date overwrites rows and files for the same keys.

Two runs for the same date at the same time are not coordinated; both upsert
the same keys and the last write wins. Operators re-running a date after a
partial failure rely on exactly that.
"""
from __future__ import annotations

import logging
import os
import shutil
from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from sqlalchemy.orm import Session

from core.config import settings
from models import CLIP_STATUS_FAILED, CLIP_STATUS_READY
from services.audio_errors import ClipPersistenceError
from services.clip_store import remove_prior_artifact, upsert_clip
from services.habit_resolver import ScheduledHabit, parse_target_date, resolve_habits_for_date
from services.narrator_service import narrator_to_dict, resolve_narrator
from services.script_generator import ScriptGenerator
from services.tts_synthesizer import TtsSynthesizer, new_output_token

logger = logging.getLogger(__name__)


@dataclass
class ClipResult:
    habit_id: int
    habit_type: str
    status: str
    audio_path: Optional[str] = None
    script: Optional[str] = None
    message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {"habitId": self.habit_id, "habitType": self.habit_type, "status": self.status}
        if self.audio_path is not None:
            data["audioPath"] = self.audio_path
        if self.script is not None:
            data["script"] = self.script
        if self.message is not None:
            data["message"] = self.message
        return data


@dataclass
class GenerationSummary:
    total: int = 0
    ready: int = 0
    failed: int = 0

    @classmethod
    def from_clips(cls, clips: List[ClipResult]) -> "GenerationSummary":
        ready = sum(1 for c in clips if c.status == CLIP_STATUS_READY)
        return cls(total=len(clips), ready=ready, failed=len(clips) - ready)


@dataclass
class GenerationResult:
    date: date
    narrator: Dict[str, Any]
    summary: GenerationSummary = field(default_factory=GenerationSummary)
    clips: List[ClipResult] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        narrator = dict(self.narrator)
        for key in ("created_at", "updated_at"):
            if isinstance(narrator.get(key), datetime):
                narrator[key] = narrator[key].isoformat()
        return {
            "date": self.date.isoformat(),
            "narrator": narrator,
            "summary": asdict(self.summary),
            "clips": [c.to_dict() for c in self.clips],
        }


class AudioGenerationService:
    """
    Generation orchestrator for one database session.

    script_generator / synthesizer default to the settings-configured
    clients and are only built once there is at least one habit to process.
    """

    def __init__(
        self,
        db: Session,
        script_generator: Optional[ScriptGenerator] = None,
        synthesizer: Optional[TtsSynthesizer] = None,
        output_dir: Optional[Path] = None,
        project_root: Optional[Path] = None,
        tz_name: Optional[str] = None,
    ):
        self.db = db
        self._script_generator = script_generator
        self._synthesizer = synthesizer
        self.output_dir = Path(output_dir or settings.audio_output_dir)
        self.project_root = Path(project_root or settings.PROJECT_ROOT)
        self.tz_name = tz_name if tz_name is not None else settings.AUDIO_GENERATION_TZ

    @property
    def script_generator(self) -> ScriptGenerator:
        if self._script_generator is None:
            self._script_generator = ScriptGenerator.from_settings()
        return self._script_generator

    @property
    def synthesizer(self) -> TtsSynthesizer:
        if self._synthesizer is None:
            self._synthesizer = TtsSynthesizer.from_settings()
        return self._synthesizer

    # ------------------------------------------------------------------
    # Batch
    # ------------------------------------------------------------------

    def generate_for_date(
        self,
        target_date: Union[None, str, date, datetime] = None,
        narrator_id: Optional[int] = None,
    ) -> GenerationResult:
        day = parse_target_date(target_date, self.tz_name)
        narrator = resolve_narrator(self.db, narrator_id)
        resolved = resolve_habits_for_date(self.db, day)
        habits = resolved.habits

        if not habits:
            logger.info(f"No habits found for {day.isoformat()}; skipping generation")
            return GenerationResult(date=day, narrator=narrator_to_dict(narrator))

        logger.info(
            f"Generating clips for {len(habits)} habit(s) on {day.isoformat()} "
            f"({resolved.day_name}) with narrator \"{narrator.name}\""
        )

        clips = []
        for habit in habits:
            clips.append(self.generate_for_habit(habit, narrator, day))

        summary = GenerationSummary.from_clips(clips)
        logger.info(
            f"Generation complete for {day.isoformat()}: "
            f"{summary.ready}/{summary.total} ready, {summary.failed} failed",
            extra={"extra_fields": {"date": day.isoformat(), **asdict(summary)}},
        )
        return GenerationResult(
            date=day,
            narrator=narrator_to_dict(narrator),
            summary=summary,
            clips=clips,
        )

    # ------------------------------------------------------------------
    # Single habit
    # ------------------------------------------------------------------

    def _destination_for(self, habit: ScheduledHabit, day: date) -> Path:
        daily_dir = self.output_dir / day.isoformat()
        daily_dir.mkdir(parents=True, exist_ok=True)
        return daily_dir / f"{habit.type.value}-{habit.id}.wav"

    def _relative(self, path: Path) -> str:
        return os.path.relpath(path, self.project_root)

    def generate_for_habit(self, habit: ScheduledHabit, narrator, day: date) -> ClipResult:
        """
        One attempt for one habit. Never raises except ClipPersistenceError
        when even the failure row cannot be written.
        """
        script = ""
        try:
            logger.info(
                f"Starting generation for {habit.label} \"{habit.event}\" "
                f"({habit.start_time}-{habit.end_time}) on {day.isoformat()}"
            )
            remove_prior_artifact(self.db, habit.id, habit.type.value, day, self.project_root)

            script = self.script_generator.generate(narrator, habit)

            token = new_output_token(habit, day)
            source = self.synthesizer.synthesize(narrator, script, token)

            destination = self._destination_for(habit, day)
            shutil.copyfile(source, destination)
            logger.info(f"Audio saved for {habit.label} to {destination}")

            relative_path = self._relative(destination)
            upsert_clip(
                self.db,
                habit_id=habit.id,
                habit_type=habit.type.value,
                scheduled_date=day,
                narrator_id=narrator.id,
                script=script,
                audio_path=relative_path,
                status=CLIP_STATUS_READY,
            )
            return ClipResult(
                habit_id=habit.id,
                habit_type=habit.type.value,
                status=CLIP_STATUS_READY,
                audio_path=relative_path,
                script=script,
            )
        except Exception as e:
            logger.error(f"Generation failed for {habit.label} on {day.isoformat()}: {e}", exc_info=True)
            message = str(e) or type(e).__name__
            try:
                upsert_clip(
                    self.db,
                    habit_id=habit.id,
                    habit_type=habit.type.value,
                    scheduled_date=day,
                    narrator_id=narrator.id,
                    script=script,
                    audio_path="",
                    status=CLIP_STATUS_FAILED,
                    error_message=message,
                )
            except ClipPersistenceError:
                logger.error(f"Could not record failure for {habit.label} on {day.isoformat()}")
                raise
            return ClipResult(
                habit_id=habit.id,
                habit_type=habit.type.value,
                status=CLIP_STATUS_FAILED,
                message=message,
            )


def generate_clips_for_date(
    db: Session,
    target_date: Union[None, str, date, datetime] = None,
    narrator_id: Optional[int] = None,
    **service_kwargs,
) -> GenerationResult:
    """Functional entry point used by the API routes and Celery tasks."""
    service = AudioGenerationService(db, **service_kwargs)
    return service.generate_for_date(target_date=target_date, narrator_id=narrator_id)
