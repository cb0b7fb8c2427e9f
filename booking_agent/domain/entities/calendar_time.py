from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

# Interchange format is locale independent, so month names are not taken from strftime("%b").
MONTH_ABBREVIATIONS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")
DEFAULT_DURATION_MINUTES = 30

_TIME_RE = re.compile(r"^\s*(\d{1,2})(?::(\d{2}))?(?::\d{2})?\s*([AaPp]\.?\s?[Mm]\.?)?\s*$")
_FIRST_INT_RE = re.compile(r"\d+")


@dataclass(frozen=True, order=True)
class TimeOfDay:
    """Canonical 24-hour wall-clock time. Provider strings are converted here, once."""

    hour: int
    minute: int

    @classmethod
    def parse(cls, value: str) -> "TimeOfDay":
        match = _TIME_RE.match(value or "")
        if not match:
            raise ValueError(f"Unrecognized time: {value!r}")
        hour = int(match.group(1))
        minute = int(match.group(2) or 0)
        suffix = re.sub(r"[\s.]", "", match.group(3) or "").upper()
        if suffix:
            if not 1 <= hour <= 12:
                raise ValueError(f"Hour out of range for 12-hour time: {value!r}")
            if suffix == "PM" and hour != 12:
                hour += 12
            elif suffix == "AM" and hour == 12:
                hour = 0
        if not (0 <= hour < 24 and 0 <= minute < 60):
            raise ValueError(f"Time out of range: {value!r}")
        return cls(hour=hour, minute=minute)

    def __str__(self) -> str:
        return f"{self.hour:02d}:{self.minute:02d}"

    def display(self) -> str:
        suffix = "PM" if self.hour >= 12 else "AM"
        hour = self.hour % 12 or 12
        return f"{hour}:{self.minute:02d} {suffix}"

    def compact(self) -> str:
        return f"{self.hour:02d}{self.minute:02d}"

    def on(self, day: date) -> datetime:
        return datetime.combine(day, time(self.hour, self.minute))


def format_api_date(day: date) -> str:
    """16-Sep-2025"""
    return f"{day.day:02d}-{MONTH_ABBREVIATIONS[day.month - 1]}-{day.year}"


def parse_api_date(value: str) -> date:
    try:
        day_text, month_text, year_text = value.strip().split("-")
        month = [m.lower() for m in MONTH_ABBREVIATIONS].index(month_text[:3].lower()) + 1
        return date(int(year_text), month, int(day_text))
    except (ValueError, AttributeError) as e:
        raise ValueError(f"Unrecognized date: {value!r}") from e


def format_api_datetime(moment: datetime) -> str:
    """16-Sep-2025 10:00:00"""
    return f"{format_api_date(moment.date())} {moment:%H:%M:%S}"


def parse_api_datetime(value: str) -> datetime:
    date_text, _, time_text = (value or "").strip().partition(" ")
    return TimeOfDay.parse(time_text or "00:00").on(parse_api_date(date_text))


def parse_duration_minutes(text: str | int | None) -> int:
    if isinstance(text, int):
        return text if text > 0 else DEFAULT_DURATION_MINUTES
    match = _FIRST_INT_RE.search(text or "")
    if not match or int(match.group(0)) <= 0:
        return DEFAULT_DURATION_MINUTES
    return int(match.group(0))


def appointment_end(start: datetime, duration_minutes: int) -> datetime:
    return start + timedelta(minutes=duration_minutes)


def month_start(day: date) -> date:
    return day.replace(day=1)


def add_months(day: date, months: int) -> date:
    index = day.month - 1 + months
    return date(day.year + index // 12, index % 12 + 1, 1)


def month_key(day: date) -> str:
    return f"{day.year:04d}-{day.month:02d}"


def parse_month_key(value: str) -> date:
    year_text, month_text = value.split("-")
    return date(int(year_text), int(month_text), 1)


def days_in_month(first: date) -> list[date]:
    following = add_months(first, 1)
    return [first + timedelta(days=i) for i in range((following - first).days)]
