"""
Clip Store Tests

Upsert keyed by (habit_id, habit_type, scheduled_date), stale artifact
removal and the per-date listing.
"""
import pytest
from datetime import date
from unittest.mock import MagicMock

from models import HabitAudioClip
from services import clip_store
from services.audio_errors import ClipPersistenceError


DAY = date(2024, 3, 4)


def _upsert(db, narrator_id, **overrides):
    values = dict(
        habit_id=1,
        habit_type="default",
        scheduled_date=DAY,
        narrator_id=narrator_id,
        script="Time to work.",
        audio_path="audio/generated/2024-03-04/default-1.wav",
        status="ready",
    )
    values.update(overrides)
    clip_store.upsert_clip(db, **values)


class TestUpsertClip:
    def test_insert(self, db_session, default_narrator):
        _upsert(db_session, default_narrator.id)

        clip = clip_store.get_clip(db_session, "default", 1, DAY)
        assert clip.status == "ready"
        assert clip.script == "Time to work."
        assert clip.error_message is None

    def test_second_write_overwrites_same_row(self, db_session, default_narrator):
        _upsert(db_session, default_narrator.id)
        _upsert(
            db_session,
            default_narrator.id,
            script="",
            audio_path="",
            status="failed",
            error_message="TTS server failed to respond after 300 attempts",
        )

        assert db_session.query(HabitAudioClip).count() == 1
        clip = clip_store.get_clip(db_session, "default", 1, DAY)
        assert clip.status == "failed"
        assert clip.audio_path == ""
        assert clip.error_message.startswith("TTS server failed")

    def test_key_includes_type_and_date(self, db_session, default_narrator):
        _upsert(db_session, default_narrator.id)
        _upsert(db_session, default_narrator.id, habit_type="day-specific")
        _upsert(db_session, default_narrator.id, scheduled_date=date(2024, 3, 5))
        assert db_session.query(HabitAudioClip).count() == 3

    def test_unknown_narrator_is_persistence_error(self, db_session):
        with pytest.raises(ClipPersistenceError):
            _upsert(db_session, 999)

    def test_unsupported_dialect(self, default_narrator):
        db = MagicMock()
        db.get_bind.return_value.dialect.name = "mysql"
        with pytest.raises(ClipPersistenceError, match="not supported on mysql"):
            _upsert(db, default_narrator.id)


class TestRemovePriorArtifact:
    def test_removes_file_of_existing_row(self, db_session, default_narrator, project_root):
        wav = project_root / "audio/generated/2024-03-04/default-1.wav"
        wav.parent.mkdir(parents=True)
        wav.write_bytes(b"wav")
        _upsert(db_session, default_narrator.id)

        assert clip_store.remove_prior_artifact(db_session, 1, "default", DAY, project_root) is True
        assert not wav.exists()

    def test_missing_file_is_fine(self, db_session, default_narrator, project_root):
        _upsert(db_session, default_narrator.id)
        assert clip_store.remove_prior_artifact(db_session, 1, "default", DAY, project_root) is False

    def test_no_row(self, db_session, project_root):
        assert clip_store.remove_prior_artifact(db_session, 1, "default", DAY, project_root) is False

    def test_failed_row_without_path(self, db_session, default_narrator, project_root):
        _upsert(db_session, default_narrator.id, audio_path="", status="failed", error_message="x")
        assert clip_store.remove_prior_artifact(db_session, 1, "default", DAY, project_root) is False

    def test_other_os_errors_are_swallowed(self, db_session, default_narrator, project_root):
        # A directory where the file should be: unlink raises an OSError that is not FileNotFoundError
        target = project_root / "audio/generated/2024-03-04/default-1.wav"
        target.mkdir(parents=True)
        _upsert(db_session, default_narrator.id)

        assert clip_store.remove_prior_artifact(db_session, 1, "default", DAY, project_root) is False
        assert target.exists()


class TestListClipsForDate:
    def test_joins_event_names(self, db_session, default_narrator, monday_schedule):
        _upsert(db_session, default_narrator.id, habit_id=7, habit_type="day-specific")
        _upsert(db_session, default_narrator.id)
        _upsert(db_session, default_narrator.id, scheduled_date=date(2024, 3, 11))

        clips = clip_store.list_clips_for_date(db_session, DAY)

        assert [(c["habit_type"], c["habit_id"], c["event"]) for c in clips] == [
            ("day-specific", 7, "Yoga"),
            ("default", 1, "Work"),
        ]

    def test_event_missing_when_habit_deleted(self, db_session, default_narrator):
        _upsert(db_session, default_narrator.id, habit_id=42)
        clips = clip_store.list_clips_for_date(db_session, DAY)
        assert clips[0]["event"] is None


class TestResolveAudioPath:
    def test_relative_joined_with_root(self, tmp_path):
        assert clip_store.resolve_audio_path("a/b.wav", tmp_path) == tmp_path / "a/b.wav"

    def test_absolute_kept(self, tmp_path):
        absolute = tmp_path / "x.wav"
        assert clip_store.resolve_audio_path(str(absolute), tmp_path / "other") == absolute
