"""
Tests for time and date normalization at the scheduling-service boundary.
"""

from __future__ import annotations

from datetime import date, datetime

import pytest

from booking_agent.domain.entities.calendar_time import (
    TimeOfDay,
    add_months,
    appointment_end,
    days_in_month,
    format_api_date,
    format_api_datetime,
    parse_api_datetime,
    parse_duration_minutes,
)
from booking_agent.domain.entities.scheduling import Slot


def test_twelve_hour_times_are_normalized():
    assert str(TimeOfDay.parse("02:30 PM")) == "14:30"
    assert str(TimeOfDay.parse("12:00 AM")) == "00:00"
    assert str(TimeOfDay.parse("12:00 PM")) == "12:00"
    assert str(TimeOfDay.parse("9:05 am")) == "09:05"


def test_twenty_four_hour_times_pass_through():
    assert str(TimeOfDay.parse("14:30")) == "14:30"
    assert str(TimeOfDay.parse("07:00:00")) == "07:00"


@pytest.mark.parametrize("value", ["", "25:00", "13:00 PM", "noon", "10:75"])
def test_invalid_times_are_rejected(value):
    with pytest.raises(ValueError):
        TimeOfDay.parse(value)


def test_display_uses_twelve_hour_form():
    assert TimeOfDay(14, 30).display() == "2:30 PM"
    assert TimeOfDay(0, 15).display() == "12:15 AM"


def test_interchange_formats_are_locale_independent():
    moment = datetime(2025, 9, 16, 10, 0)
    assert format_api_date(moment.date()) == "16-Sep-2025"
    assert format_api_datetime(moment) == "16-Sep-2025 10:00:00"
    assert parse_api_datetime("16-Sep-2025 02:30 PM") == datetime(2025, 9, 16, 14, 30)


def test_duration_uses_first_integer_with_default():
    assert parse_duration_minutes("45 mins") == 45
    assert parse_duration_minutes("1 hour 30 mins") == 1
    assert parse_duration_minutes("") == 30
    assert parse_duration_minutes(None) == 30
    assert parse_duration_minutes(60) == 60


def test_end_time_adds_duration():
    start = datetime(2025, 9, 16, 23, 45)
    assert appointment_end(start, 30) == datetime(2025, 9, 17, 0, 15)


def test_month_helpers_cross_year_boundary():
    assert add_months(date(2025, 11, 1), 2) == date(2026, 1, 1)
    assert len(days_in_month(date(2024, 2, 1))) == 29


def test_slot_ids_round_trip_and_sort_chronologically():
    first = Slot.build(date(2025, 9, 16), TimeOfDay(9, 30), 1)
    second = Slot.build(date(2025, 9, 16), TimeOfDay(14, 0), 2)
    third = Slot.build(date(2025, 9, 17), TimeOfDay(8, 0), 3)

    assert first.id == "slot:20250916:0930:0001"
    assert Slot.from_id(second.id) == second
    assert sorted([third.id, first.id, second.id]) == [first.id, second.id, third.id]
    assert second.label() == "16-Sep-2025 2:00 PM"


def test_malformed_slot_id_is_rejected():
    with pytest.raises(ValueError):
        Slot.from_id("slot:2025-09-16")
    with pytest.raises(ValueError):
        Slot.from_id("staff:20250916:0930:0001")
