from __future__ import annotations

import logging
from datetime import date, datetime, timedelta

from booking_agent.application.ports.scheduling import AppointmentRequest, CommandResult, SchedulingPort
from booking_agent.domain.entities.calendar_time import TimeOfDay
from booking_agent.domain.entities.scheduling import Appointment, Service, ServiceCategory, Staff
from booking_agent.domain.entities.session import Session

DEFAULT_SERVICES = (
    Service(id="svc_consult", name="Consultation", duration_minutes=30, category=ServiceCategory.APPOINTMENT,
            assignee_ids=("staff_1", "staff_2")),
    Service(id="svc_therapy", name="Therapy Session", duration_minutes=60, price=500.0, currency="INR",
            category=ServiceCategory.APPOINTMENT, assignee_ids=("staff_1",)),
    Service(id="svc_room", name="Meeting Room", duration_minutes=60, category=ServiceCategory.RESOURCE,
            assignee_ids=("room_a",)),
)
DEFAULT_ASSIGNEES = {
    "svc_consult": [Staff(id="staff_1", name="Dr. Rao"), Staff(id="staff_2", name="Dr. Mehta")],
    "svc_therapy": [Staff(id="staff_1", name="Dr. Rao")],
    "svc_room": [Staff(id="room_a", name="Room A")],
}


class MockScheduling(SchedulingPort):
    """In-process scheduling service: weekday slots every 30 minutes from 10:00 to 17:00."""

    def __init__(
        self,
        services: list[Service] | None = None,
        assignees: dict[str, list[Staff]] | None = None,
        times_by_day: dict[date, list[str]] | None = None,
        start_hour: int = 10,
        end_hour: int = 17,
    ) -> None:
        self._services = list(services if services is not None else DEFAULT_SERVICES)
        self._assignees = assignees if assignees is not None else DEFAULT_ASSIGNEES
        self._times_by_day = times_by_day
        self._start_hour = start_hour
        self._end_hour = end_hour
        self._bookings: dict[str, Appointment] = {}
        self._emails: dict[str, str] = {}
        self.availability_queries: list[date] = []
        self._logger = logging.getLogger(__name__)

    def list_services(self, session: Session) -> list[Service]:
        return list(self._services)

    def list_assignees(self, session: Session, service: Service) -> list[Staff]:
        return list(self._assignees.get(service.id, []))

    def get_available_times(
        self,
        session: Session,
        service: Service,
        assignee_id: str | None,
        day: date,
    ) -> list[TimeOfDay]:
        self.availability_queries.append(day)
        if self._times_by_day is not None:
            raw = self._times_by_day.get(day, [])
        else:
            raw = self._generated_times(day)
        taken = {
            appt.starts_at
            for appt in self._bookings.values()
            if appt.staff_id == assignee_id and appt.status != "cancel"
        }
        times = sorted({TimeOfDay.parse(value) for value in raw})
        return [t for t in times if t.on(day) not in taken]

    def create_appointment(self, session: Session, request: AppointmentRequest) -> CommandResult:
        booking_id = f"#mock-{len(self._bookings) + 1:05d}"
        self._bookings[booking_id] = Appointment(
            booking_id=booking_id,
            service_id=request.service.id,
            service_name=request.service.name,
            staff_id=request.assignee_id,
            starts_at=request.starts_at,
            status="upcoming",
            summary_url=f"https://bookings.example.com/summary/{booking_id.lstrip('#')}",
            duration_minutes=request.service.duration_minutes,
        )
        self._emails[booking_id] = request.customer_email.lower()
        self._logger.info("Mock appointment created", extra={"booking_id": booking_id})
        return CommandResult(success=True, booking_id=booking_id,
                             summary_url=self._bookings[booking_id].summary_url, status="upcoming")

    def cancel_appointment(self, session: Session, booking_id: str) -> CommandResult:
        appointment = self._bookings.get(booking_id)
        if appointment is None:
            return CommandResult(success=False, status="failure", message="Booking not found")
        self._bookings[booking_id] = _with_status(appointment, "cancel")
        return CommandResult(success=True, booking_id=booking_id, status="cancel")

    def reschedule_appointment(
        self,
        session: Session,
        booking_id: str,
        assignee_id: str | None,
        starts_at: datetime,
    ) -> CommandResult:
        appointment = self._bookings.get(booking_id)
        if appointment is None:
            return CommandResult(success=False, status="failure", message="Booking not found")
        self._bookings[booking_id] = Appointment(
            booking_id=booking_id,
            service_id=appointment.service_id,
            service_name=appointment.service_name,
            staff_id=assignee_id or appointment.staff_id,
            starts_at=starts_at,
            status="upcoming",
            summary_url=appointment.summary_url,
            duration_minutes=appointment.duration_minutes,
        )
        return CommandResult(success=True, booking_id=booking_id, summary_url=appointment.summary_url,
                             status="upcoming")

    def find_appointments(self, session: Session, email: str) -> list[Appointment]:
        return [
            appt
            for booking_id, appt in self._bookings.items()
            if self._emails.get(booking_id) == email.lower() and appt.status == "upcoming"
        ]

    def _generated_times(self, day: date) -> list[str]:
        if day.weekday() >= 5:
            return []
        current = datetime.combine(day, datetime.min.time().replace(hour=self._start_hour))
        end = datetime.combine(day, datetime.min.time().replace(hour=self._end_hour))
        times: list[str] = []
        while current < end:
            times.append(current.strftime("%I:%M %p"))
            current += timedelta(minutes=30)
        return times


def _with_status(appointment: Appointment, status: str) -> Appointment:
    return Appointment(
        booking_id=appointment.booking_id,
        service_id=appointment.service_id,
        service_name=appointment.service_name,
        staff_id=appointment.staff_id,
        staff_name=appointment.staff_name,
        starts_at=appointment.starts_at,
        status=status,
        summary_url=appointment.summary_url,
        duration_minutes=appointment.duration_minutes,
    )
