from sqlalchemy import Column, Integer, Boolean, CheckConstraint, Float, Date, DateTime, ForeignKey, Text, Index, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from core.database import Base


HABIT_TYPE_DEFAULT = "default"
HABIT_TYPE_DAY_SPECIFIC = "day-specific"

CLIP_STATUS_READY = "ready"
CLIP_STATUS_FAILED = "failed"


class DefaultHabit(Base):
    """A habit scheduled every day."""
    __tablename__ = "default_schedule"

    id = Column(Integer, primary_key=True, autoincrement=True)
    event = Column(Text, nullable=False)
    start_time = Column(Text, nullable=True)  # "HH:MM"
    end_time = Column(Text, nullable=True)


class DaySpecificHabit(Base):
    """A habit scheduled on a single weekday ("Monday" ... "Sunday")."""
    __tablename__ = "day_specific_schedule"

    id = Column(Integer, primary_key=True, autoincrement=True)
    event = Column(Text, nullable=False)
    day_of_week = Column(Text, nullable=False)
    start_time = Column(Text, nullable=True)
    end_time = Column(Text, nullable=True)

    __table_args__ = (
        Index("ix_day_specific_schedule_day_of_week", "day_of_week"),
    )


class Narrator(Base):
    """
    Voice persona used to script and synthesize habit clips.

    At most one row has is_default = True; narrator_service keeps that
    invariant on every write.
    """
    __tablename__ = "narrators"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(Text, unique=True, nullable=False)
    role_prompt = Column(Text, nullable=False)
    style_prompt = Column(Text, nullable=True)
    voice = Column(Text, nullable=True)  # TTS speaker selector
    sample_path = Column(Text, nullable=True)  # reference sample, absolute or PROJECT_ROOT-relative
    temperature = Column(Float, nullable=False, default=0.7)
    is_default = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    clips = relationship(
        "HabitAudioClip",
        back_populates="narrator",
        cascade="all, delete-orphan",
    )


class NarratorSample(Base):
    """Uploaded reference recording a narrator can clone its voice from."""
    __tablename__ = "narrator_samples"

    id = Column(Integer, primary_key=True, autoincrement=True)
    label = Column(Text, nullable=False)
    file_path = Column(Text, nullable=False)  # relative to PROJECT_ROOT
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class HabitAudioClip(Base):
    """
    Latest generated clip for one habit on one calendar day.

    Keyed by (habit_id, habit_type, scheduled_date); regeneration overwrites
    the row in place.
    """
    __tablename__ = "habit_audio_clips"

    id = Column(Integer, primary_key=True, autoincrement=True)
    habit_id = Column(Integer, nullable=False)
    habit_type = Column(Text, nullable=False)
    scheduled_date = Column(Date, nullable=False)
    narrator_id = Column(Integer, ForeignKey("narrators.id", ondelete="CASCADE"), nullable=False)
    script = Column(Text, nullable=False, default="")
    audio_path = Column(Text, nullable=False, default="")  # relative to PROJECT_ROOT, "" when failed
    status = Column(Text, nullable=False)
    error_message = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    narrator = relationship("Narrator", back_populates="clips")

    __table_args__ = (
        UniqueConstraint("habit_id", "habit_type", "scheduled_date", name="uq_habit_audio_clip_key"),
        Index("ix_habit_audio_clips_date_type_id", "scheduled_date", "habit_type", "habit_id"),
        CheckConstraint(
            "habit_type IN ('default', 'day-specific')",
            name="ck_habit_audio_clip_habit_type",
        ),
        CheckConstraint(
            "status IN ('ready', 'failed')",
            name="ck_habit_audio_clip_status",
        ),
    )
