"""
Habit Audio Task Tests

The nightly and manual Celery tasks share run_generation(); tasks are
invoked with .run() so no broker is involved.
"""
import pytest
from datetime import date
from unittest.mock import MagicMock, patch

from services.audio_generation import GenerationResult, GenerationSummary


@pytest.fixture
def fake_result():
    return GenerationResult(
        date=date(2024, 3, 4),
        narrator={"id": 1, "name": "Default Narrator"},
        summary=GenerationSummary(total=2, ready=2, failed=0),
        clips=[],
    )


class TestRunGeneration:
    def test_success_payload(self, fake_result):
        from tasks.audio_tasks import run_generation

        db = MagicMock()
        with patch("tasks.audio_tasks.get_db_sync", return_value=db), \
                patch("tasks.audio_tasks.generate_clips_for_date", return_value=fake_result) as gen:
            payload = run_generation(target_date="2024-03-04", narrator_id=1, trigger="manual")

        gen.assert_called_once_with(db, target_date="2024-03-04", narrator_id=1)
        assert payload["status"] == "ok"
        assert payload["trigger"] == "manual"
        assert payload["date"] == "2024-03-04"
        assert payload["summary"] == {"total": 2, "ready": 2, "failed": 0}
        db.close.assert_called_once()

    def test_run_level_error_is_returned(self, db_session):
        from tasks.audio_tasks import run_generation

        # No narrators at all: the run cannot pick a default
        with patch("tasks.audio_tasks.get_db_sync", return_value=db_session):
            payload = run_generation(target_date="2024-03-04")

        assert payload == {
            "status": "error",
            "trigger": "manual",
            "message": "No default narrator configured",
        }

    def test_unexpected_error_is_returned(self):
        from tasks.audio_tasks import run_generation

        db = MagicMock()
        with patch("tasks.audio_tasks.get_db_sync", return_value=db), \
                patch("tasks.audio_tasks.generate_clips_for_date", side_effect=OSError("disk full")):
            payload = run_generation()

        assert payload["status"] == "error"
        assert payload["message"] == "disk full"
        db.close.assert_called_once()


class TestTasks:
    def test_nightly_uses_today_and_configured_narrator(self, monkeypatch):
        from tasks import audio_tasks

        monkeypatch.setattr(audio_tasks.settings, "AUDIO_GENERATION_NARRATOR_ID", 5)
        monkeypatch.setattr(audio_tasks.settings, "AUDIO_GENERATION_TZ", "UTC")
        with patch("tasks.audio_tasks.today_local", return_value=date(2024, 3, 4)) as today, \
                patch("tasks.audio_tasks.run_generation", return_value={"status": "ok"}) as run:
            assert audio_tasks.generate_nightly_habit_audio.run() == {"status": "ok"}

        today.assert_called_once_with("UTC")
        run.assert_called_once_with(target_date="2024-03-04", narrator_id=5, trigger="nightly")

    def test_nightly_explicit_narrator_wins(self, monkeypatch):
        from tasks import audio_tasks

        monkeypatch.setattr(audio_tasks.settings, "AUDIO_GENERATION_NARRATOR_ID", 5)
        with patch("tasks.audio_tasks.run_generation", return_value={"status": "ok"}) as run:
            audio_tasks.generate_nightly_habit_audio.run(narrator_id=2)

        assert run.call_args.kwargs["narrator_id"] == 2

    def test_manual_task_passes_through(self):
        from tasks import audio_tasks

        with patch("tasks.audio_tasks.run_generation", return_value={"status": "ok"}) as run:
            audio_tasks.generate_habit_audio_for_date.run(target_date="2024-03-05", narrator_id=3)

        run.assert_called_once_with(target_date="2024-03-05", narrator_id=3, trigger="manual")

    def test_task_names_registered(self):
        from tasks import celery_app

        assert "tasks.generate_nightly_habit_audio" in celery_app.tasks
        assert "tasks.generate_habit_audio_for_date" in celery_app.tasks


class TestBeatSchedule:
    def test_nightly_entry(self):
        from celerybeat_schedule import beat_schedule

        entry = beat_schedule["nightly-habit-audio"]
        assert entry["task"] == "tasks.generate_nightly_habit_audio"
        assert entry["schedule"].hour == {1}
        assert entry["schedule"].minute == {0}
