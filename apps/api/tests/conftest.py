"""
Pytest configuration and fixtures

Every test gets a fresh in-memory SQLite database built from the models, so
nothing needs Postgres, Redis, the text-generation API or a TTS server.
"""
import pytest
import sys
import os
from pathlib import Path
from unittest.mock import MagicMock

# Add the parent directory to the path so we can import from services
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Point the app-level engine at SQLite before core.database is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LOG_FORMAT", "text")

from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from core.database import Base
from models import DaySpecificHabit, DefaultHabit, Narrator
from services.retry import PollPolicy, RetryPolicy
from services.tts_synthesizer import TtsSynthesizer


@pytest.fixture(scope="function")
def db_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _fk_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(db_engine):
    """Session on a throwaway schema; commits are real but die with the engine."""
    session = Session(bind=db_engine, expire_on_commit=False)
    yield session
    session.close()


@pytest.fixture
def default_narrator(db_session):
    narrator = Narrator(
        name="Default Narrator",
        role_prompt="You are a calm, encouraging coach.",
        style_prompt="Warm and brief.",
        voice="v2/en_speaker_6",
        temperature=0.7,
        is_default=True,
    )
    db_session.add(narrator)
    db_session.commit()
    db_session.refresh(narrator)
    return narrator


@pytest.fixture
def monday_schedule(db_session):
    """One default habit and one Monday habit, plus a Tuesday habit that must be ignored."""
    db_session.add_all([
        DefaultHabit(id=1, event="Work", start_time="09:00", end_time="09:45"),
        DaySpecificHabit(id=7, event="Yoga", day_of_week="Monday", start_time="18:00", end_time="19:00"),
        DaySpecificHabit(id=8, event="Swim", day_of_week="Tuesday", start_time="07:00", end_time="08:00"),
    ])
    db_session.commit()


@pytest.fixture
def project_root(tmp_path):
    root = tmp_path / "project"
    root.mkdir()
    return root


@pytest.fixture
def voices_dir(tmp_path):
    path = tmp_path / "voices"
    path.mkdir()
    return path


@pytest.fixture
def tts_http(voices_dir):
    """
    Fake TTS server: readiness GETs succeed, and a synthesis GET (one with an
    `output` param) writes <output>.wav into the shared voices dir.
    """
    http = MagicMock()

    def _get(url, params=None, timeout=None):
        if params and "output" in params:
            (voices_dir / f"{params['output']}.wav").write_bytes(b"RIFF....WAVEfmt ")
        response = MagicMock()
        response.raise_for_status.return_value = None
        return response

    http.get.side_effect = _get
    return http


@pytest.fixture
def make_synthesizer(voices_dir, project_root):
    """Build a TtsSynthesizer with instant sleeps and a manual clock."""

    def _make(http, warmup_attempts=3, file_timeout_s=1.0):
        now = [0.0]

        def clock():
            return now[0]

        def sleep(seconds):
            now[0] += seconds

        return TtsSynthesizer(
            generate_url="http://tts.test:5000/generate_audio",
            voices_dir=voices_dir,
            project_root=project_root,
            warmup=RetryPolicy(max_attempts=warmup_attempts, delay_s=0.5),
            file_wait=PollPolicy(timeout_s=file_timeout_s, interval_s=0.25),
            http=http,
            sleep=sleep,
            clock=clock,
        )

    return _make


@pytest.fixture
def script_generator():
    """Script generator stub returning a predictable line per habit."""
    generator = MagicMock()
    generator.generate.side_effect = lambda narrator, habit: f"Time for {habit.event}."
    return generator


@pytest.fixture
def output_dir(project_root) -> Path:
    return project_root / "audio" / "generated"
