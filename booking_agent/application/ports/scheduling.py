from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, datetime

from booking_agent.domain.entities.calendar_time import TimeOfDay
from booking_agent.domain.entities.scheduling import Appointment, Service, Staff
from booking_agent.domain.entities.session import Session


@dataclass(frozen=True)
class AppointmentRequest:
    service: Service
    assignee_id: str | None
    starts_at: datetime
    ends_at: datetime
    customer_name: str
    customer_email: str
    customer_phone: str
    timezone: str
    notes: str = ""
    cost_paid: float = 0.0


@dataclass(frozen=True)
class CommandResult:
    success: bool
    booking_id: str | None = None
    summary_url: str | None = None
    status: str | None = None
    message: str | None = None


class SchedulingPort(ABC):
    @abstractmethod
    def list_services(self, session: Session) -> list[Service]:
        raise NotImplementedError

    @abstractmethod
    def list_assignees(self, session: Session, service: Service) -> list[Staff]:
        """Staff, groups or resources that can deliver the service."""
        raise NotImplementedError

    @abstractmethod
    def get_available_times(
        self,
        session: Session,
        service: Service,
        assignee_id: str | None,
        day: date,
    ) -> list[TimeOfDay]:
        raise NotImplementedError

    @abstractmethod
    def create_appointment(self, session: Session, request: AppointmentRequest) -> CommandResult:
        raise NotImplementedError

    @abstractmethod
    def cancel_appointment(self, session: Session, booking_id: str) -> CommandResult:
        raise NotImplementedError

    @abstractmethod
    def reschedule_appointment(
        self,
        session: Session,
        booking_id: str,
        assignee_id: str | None,
        starts_at: datetime,
    ) -> CommandResult:
        raise NotImplementedError

    @abstractmethod
    def find_appointments(self, session: Session, email: str) -> list[Appointment]:
        """Upcoming appointments booked with this contact email."""
        raise NotImplementedError
