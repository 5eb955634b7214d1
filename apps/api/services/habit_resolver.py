"""
Habit Resolver

Answers "which habits apply on this calendar day": every default habit plus
the day-specific habits whose weekday matches, defaults first, each partition
ordered by start time.

Habits come back as a small tagged union (ScheduledDefaultHabit |
ScheduledDaySpecificHabit) detached from the ORM session, so the generation
run never lazily touches schedule rows mid-batch.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import List, Optional, Union

from sqlalchemy import func
from sqlalchemy.orm import Session

from models import DefaultHabit, DaySpecificHabit, HABIT_TYPE_DEFAULT, HABIT_TYPE_DAY_SPECIFIC
from services.audio_errors import InvalidDateError

logger = logging.getLogger(__name__)

DAY_NAMES = (
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
)


class HabitType(str, Enum):
    DEFAULT = HABIT_TYPE_DEFAULT
    DAY_SPECIFIC = HABIT_TYPE_DAY_SPECIFIC

    @classmethod
    def parse(cls, raw: Optional[str]) -> Optional["HabitType"]:
        """Accept the spellings clients send ("defaults", "day_specific", ...)."""
        if not raw:
            return None
        normalized = str(raw).strip().lower()
        if normalized in ("default", "defaults"):
            return cls.DEFAULT
        if normalized in ("day-specific", "day_specific", "dayspecific"):
            return cls.DAY_SPECIFIC
        return None


@dataclass(frozen=True)
class ScheduledDefaultHabit:
    id: int
    event: str
    start_time: Optional[str] = None
    end_time: Optional[str] = None

    @property
    def type(self) -> HabitType:
        return HabitType.DEFAULT

    @property
    def label(self) -> str:
        return f"{self.type.value}#{self.id}"


@dataclass(frozen=True)
class ScheduledDaySpecificHabit:
    id: int
    event: str
    day_of_week: str
    start_time: Optional[str] = None
    end_time: Optional[str] = None

    @property
    def type(self) -> HabitType:
        return HabitType.DAY_SPECIFIC

    @property
    def label(self) -> str:
        return f"{self.type.value}#{self.id}"


ScheduledHabit = Union[ScheduledDefaultHabit, ScheduledDaySpecificHabit]


@dataclass
class HabitsForDate:
    target_date: date
    day_name: str
    default_habits: List[ScheduledDefaultHabit] = field(default_factory=list)
    specific_habits: List[ScheduledDaySpecificHabit] = field(default_factory=list)

    @property
    def habits(self) -> List[ScheduledHabit]:
        return [*self.default_habits, *self.specific_habits]


def today_local(tz_name: Optional[str] = None) -> date:
    """Today's date in tz_name, or in the server's local time zone."""
    if tz_name:
        from zoneinfo import ZoneInfo
        return datetime.now(ZoneInfo(tz_name)).date()
    return date.today()


def parse_target_date(value: Union[None, str, date, datetime], tz_name: Optional[str] = None) -> date:
    """
    Normalize a caller-supplied date.

    None/"" means today; strings may be YYYY-MM-DD or a full ISO timestamp.
    Raises InvalidDateError for anything else.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        return today_local(tz_name)
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        raw = value.strip()
        try:
            return date.fromisoformat(raw)
        except ValueError:
            pass
        try:
            return datetime.fromisoformat(raw.replace("Z", "+00:00")).date()
        except ValueError:
            pass
    raise InvalidDateError(f"Invalid date {value!r}; expected YYYY-MM-DD")


def _by_start_time(habit) -> tuple:
    return (habit.start_time or "", habit.id)


def fetch_default_habits(db: Session) -> List[ScheduledDefaultHabit]:
    rows = db.query(DefaultHabit).all()
    return [
        ScheduledDefaultHabit(id=r.id, event=r.event, start_time=r.start_time, end_time=r.end_time)
        for r in sorted(rows, key=_by_start_time)
    ]


def fetch_day_specific_habits(db: Session, day_name: str) -> List[ScheduledDaySpecificHabit]:
    rows = (
        db.query(DaySpecificHabit)
        .filter(func.lower(DaySpecificHabit.day_of_week) == day_name.lower())
        .all()
    )
    return [
        ScheduledDaySpecificHabit(
            id=r.id,
            event=r.event,
            day_of_week=r.day_of_week,
            start_time=r.start_time,
            end_time=r.end_time,
        )
        for r in sorted(rows, key=_by_start_time)
    ]


def resolve_habits_for_date(
    db: Session,
    target_date: Union[None, str, date, datetime] = None,
    tz_name: Optional[str] = None,
) -> HabitsForDate:
    """Resolve the habits applicable on target_date (today when omitted)."""
    day = parse_target_date(target_date, tz_name)
    day_name = DAY_NAMES[day.weekday()]

    defaults = fetch_default_habits(db)
    specific = fetch_day_specific_habits(db, day_name)
    logger.debug(
        f"Resolved {len(defaults)} default and {len(specific)} {day_name} habit(s) for {day.isoformat()}"
    )
    return HabitsForDate(
        target_date=day,
        day_name=day_name,
        default_habits=defaults,
        specific_habits=specific,
    )
