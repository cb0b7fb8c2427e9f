from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum

from booking_agent.domain.entities.calendar_time import TimeOfDay, format_api_date


class ServiceCategory(str, Enum):
    APPOINTMENT = "APPOINTMENT"  # individual staff member
    COLLECTIVE = "COLLECTIVE"  # staffed group session
    RESOURCE = "RESOURCE"  # physical resource

    @classmethod
    def from_provider(cls, value: str | None) -> "ServiceCategory":
        normalized = (value or "").strip().upper()
        if normalized in ("COLLECTIVE", "GROUP", "COLLECTIVE_BOOKING"):
            return cls.COLLECTIVE
        if normalized in ("RESOURCE", "RESOURCE_BOOKING"):
            return cls.RESOURCE
        return cls.APPOINTMENT

    @property
    def assignee_field(self) -> str:
        """Identifier key the scheduling service expects for this category."""
        return {
            ServiceCategory.APPOINTMENT: "staff_id",
            ServiceCategory.COLLECTIVE: "group_id",
            ServiceCategory.RESOURCE: "resource_id",
        }[self]


@dataclass(frozen=True)
class Service:
    id: str
    name: str
    duration_minutes: int
    price: float = 0.0
    currency: str | None = None
    category: ServiceCategory = ServiceCategory.APPOINTMENT
    assignee_ids: tuple[str, ...] = ()

    @property
    def requires_payment(self) -> bool:
        return self.price > 0


@dataclass(frozen=True)
class Staff:
    """A bookable assignee: staff member, group or resource depending on the service category."""

    id: str
    name: str


@dataclass(frozen=True)
class Slot:
    id: str
    day: date
    start: TimeOfDay

    @classmethod
    def build(cls, day: date, start: TimeOfDay, counter: int) -> "Slot":
        # Date and time lead the id so ids sort chronologically; the counter disambiguates.
        return cls(id=f"slot:{day:%Y%m%d}:{start.compact()}:{counter:04d}", day=day, start=start)

    @classmethod
    def from_id(cls, slot_id: str) -> "Slot":
        try:
            prefix, day_text, time_text, counter_text = slot_id.split(":")
        except ValueError as e:
            raise ValueError(f"Malformed slot id: {slot_id!r}") from e
        if prefix != "slot" or len(time_text) != 4 or not counter_text.isdigit():
            raise ValueError(f"Malformed slot id: {slot_id!r}")
        day = datetime.strptime(day_text, "%Y%m%d").date()
        start = TimeOfDay(hour=int(time_text[:2]), minute=int(time_text[2:]))
        return cls(id=slot_id, day=day, start=start)

    @property
    def starts_at(self) -> datetime:
        return self.start.on(self.day)

    def label(self) -> str:
        return f"{format_api_date(self.day)} {self.start.display()}"


@dataclass(frozen=True)
class Appointment:
    booking_id: str
    service_id: str | None = None
    service_name: str | None = None
    staff_id: str | None = None
    staff_name: str | None = None
    starts_at: datetime | None = None
    status: str | None = None
    summary_url: str | None = None
    duration_minutes: int | None = None
