"""
Habit Resolver Tests

Which habits apply on a calendar day, in what order, and how caller dates
are normalized.
"""
import pytest
from datetime import date, datetime, timezone

from models import DaySpecificHabit, DefaultHabit
from services.audio_errors import InvalidDateError
from services.habit_resolver import (
    DAY_NAMES,
    HabitType,
    ScheduledDaySpecificHabit,
    ScheduledDefaultHabit,
    parse_target_date,
    resolve_habits_for_date,
    today_local,
)


class TestParseTargetDate:
    def test_iso_date_string(self):
        assert parse_target_date("2024-03-04") == date(2024, 3, 4)

    def test_iso_timestamp_with_z(self):
        assert parse_target_date("2024-03-04T23:15:00Z") == date(2024, 3, 4)

    def test_date_and_datetime_pass_through(self):
        assert parse_target_date(date(2024, 3, 4)) == date(2024, 3, 4)
        assert parse_target_date(datetime(2024, 3, 4, 8, 30, tzinfo=timezone.utc)) == date(2024, 3, 4)

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_empty_means_today(self, value):
        assert parse_target_date(value) == date.today()

    def test_today_in_named_zone(self):
        assert parse_target_date(None, "UTC") == datetime.now(timezone.utc).date()
        assert today_local("UTC") == datetime.now(timezone.utc).date()

    @pytest.mark.parametrize("value", ["not-a-date", "2024-13-40", 12345])
    def test_invalid_raises(self, value):
        with pytest.raises(InvalidDateError):
            parse_target_date(value)


class TestHabitType:
    @pytest.mark.parametrize("raw,expected", [
        ("default", HabitType.DEFAULT),
        ("defaults", HabitType.DEFAULT),
        ("Day-Specific", HabitType.DAY_SPECIFIC),
        ("day_specific", HabitType.DAY_SPECIFIC),
        ("dayspecific", HabitType.DAY_SPECIFIC),
    ])
    def test_parse_accepts_client_spellings(self, raw, expected):
        assert HabitType.parse(raw) is expected

    @pytest.mark.parametrize("raw", [None, "", "weekly"])
    def test_parse_rejects_unknown(self, raw):
        assert HabitType.parse(raw) is None

    def test_values_match_stored_types(self):
        assert HabitType.DEFAULT.value == "default"
        assert HabitType.DAY_SPECIFIC.value == "day-specific"


class TestResolveHabitsForDate:
    def test_monday_defaults_then_day_specific(self, db_session, monday_schedule):
        resolved = resolve_habits_for_date(db_session, "2024-03-04")

        assert resolved.day_name == "Monday"
        assert [(h.type, h.id) for h in resolved.habits] == [
            (HabitType.DEFAULT, 1),
            (HabitType.DAY_SPECIFIC, 7),
        ]
        assert isinstance(resolved.habits[0], ScheduledDefaultHabit)
        assert isinstance(resolved.habits[1], ScheduledDaySpecificHabit)
        assert resolved.habits[1].day_of_week == "Monday"

    def test_other_days_only_get_defaults(self, db_session, monday_schedule):
        resolved = resolve_habits_for_date(db_session, "2024-03-06")  # Wednesday
        assert [h.id for h in resolved.habits] == [1]
        assert resolved.specific_habits == []

    def test_day_match_is_case_insensitive(self, db_session):
        db_session.add(DaySpecificHabit(id=3, event="Run", day_of_week="tuesday", start_time="06:00"))
        db_session.commit()
        resolved = resolve_habits_for_date(db_session, date(2024, 3, 5))
        assert [h.id for h in resolved.specific_habits] == [3]

    def test_partitions_ordered_by_start_time(self, db_session):
        db_session.add_all([
            DefaultHabit(id=1, event="Lunch", start_time="12:00"),
            DefaultHabit(id=2, event="Wake", start_time="06:30"),
            DaySpecificHabit(id=5, event="Piano", day_of_week="Monday", start_time="20:00"),
            DaySpecificHabit(id=4, event="Gym", day_of_week="Monday", start_time="07:15"),
        ])
        db_session.commit()

        resolved = resolve_habits_for_date(db_session, "2024-03-04")
        assert [h.id for h in resolved.default_habits] == [2, 1]
        assert [h.id for h in resolved.specific_habits] == [4, 5]

    def test_empty_schedule(self, db_session):
        resolved = resolve_habits_for_date(db_session, "2024-03-04")
        assert resolved.habits == []

    def test_label(self):
        assert ScheduledDefaultHabit(id=1, event="Work").label == "default#1"
        assert ScheduledDaySpecificHabit(id=7, event="Yoga", day_of_week="Monday").label == "day-specific#7"

    def test_day_names_follow_weekday_index(self):
        assert DAY_NAMES[date(2024, 3, 4).weekday()] == "Monday"
        assert DAY_NAMES[date(2024, 3, 10).weekday()] == "Sunday"
