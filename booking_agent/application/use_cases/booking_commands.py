from __future__ import annotations

import logging
from dataclasses import dataclass, field

from booking_agent.application.exceptions import MissingSelectionError
from booking_agent.application.ports.scheduling import AppointmentRequest, SchedulingPort
from booking_agent.application.utils import message_builders as mb
from booking_agent.application.utils.i18n import translate
from booking_agent.domain.entities.calendar_time import appointment_end
from booking_agent.domain.entities.outbound import OutboundMessage
from booking_agent.domain.entities.session import Session


@dataclass(frozen=True)
class CommandOutcome:
    success: bool
    messages: list[OutboundMessage] = field(default_factory=list)
    booking_id: str | None = None


def _require(value, name: str):
    if value is None or value == "":
        raise MissingSelectionError(f"{name} has not been selected")
    return value


class BookingCommands:
    """
    Turns a finished session into a scheduling-service mutation.

    A failed booking is never retried automatically: a duplicate booking is
    worse than asking the user to start again.
    """

    def __init__(self, scheduling: SchedulingPort, timezone: str) -> None:
        self._scheduling = scheduling
        self._timezone = timezone
        self._logger = logging.getLogger(__name__)

    def create_appointment(self, session: Session) -> CommandOutcome:
        service = _require(session.service, "service")
        slot = _require(session.slot, "slot")
        starts_at = slot.starts_at
        paid = session.payment.payment_id if session.payment else None

        request = AppointmentRequest(
            service=service,
            assignee_id=session.staff.id if session.staff else None,
            starts_at=starts_at,
            ends_at=appointment_end(starts_at, service.duration_minutes),
            customer_name=_require(session.customer_name, "customer_name"),
            customer_email=_require(session.customer_email, "customer_email"),
            customer_phone=_require(session.customer_phone, "customer_phone"),
            timezone=self._timezone,
            notes=f"Booked via WhatsApp (session {session.id})",
            cost_paid=session.payment.amount if paid else 0.0,
        )
        result = self._scheduling.create_appointment(session, request)

        if result.success and result.booking_id:
            self._logger.info(
                "Appointment booked",
                extra={"user_id": session.user_id, "booking_id": result.booking_id, "service": service.id},
            )
            return CommandOutcome(
                success=True,
                messages=[mb.booking_confirmed(result.booking_id, service, slot, result.summary_url, session.language)],
                booking_id=result.booking_id,
            )

        if paid:
            # Payment captured but no booking: needs a human, no automatic refund.
            self._logger.error(
                "Booking failed after payment",
                extra={"user_id": session.user_id, "session_id": session.id, "payment_id": paid,
                       "reason": result.message},
            )
            body = translate("booking_failed_after_payment", session.language, payment_id=paid)
        else:
            self._logger.warning(
                "Booking failed", extra={"user_id": session.user_id, "reason": result.message, "status": result.status}
            )
            body = translate("booking_failed", session.language)
        return CommandOutcome(success=False, messages=[mb.text_message(body)])

    def cancel_appointment(self, session: Session) -> CommandOutcome:
        appointment = _require(session.appointment, "appointment")
        result = self._scheduling.cancel_appointment(session, appointment.booking_id)
        if result.success:
            self._logger.info("Appointment cancelled", extra={"user_id": session.user_id, "booking_id": appointment.booking_id})
            body = translate("cancelled", session.language, booking_id=appointment.booking_id)
            return CommandOutcome(success=True, messages=[mb.text_message(body)], booking_id=appointment.booking_id)

        self._logger.warning("Cancellation failed", extra={"user_id": session.user_id, "reason": result.message})
        return CommandOutcome(success=False, messages=[mb.text_message(translate("cancel_failed", session.language))])

    def reschedule_appointment(self, session: Session) -> CommandOutcome:
        appointment = _require(session.appointment, "appointment")
        slot = _require(session.slot, "slot")
        assignee_id = session.staff.id if session.staff else appointment.staff_id
        result = self._scheduling.reschedule_appointment(session, appointment.booking_id, assignee_id, slot.starts_at)
        if result.success:
            self._logger.info(
                "Appointment rescheduled", extra={"user_id": session.user_id, "booking_id": appointment.booking_id}
            )
            body = translate("rescheduled", session.language, booking_id=appointment.booking_id, slot=slot.label())
            return CommandOutcome(success=True, messages=[mb.text_message(body)], booking_id=appointment.booking_id)

        self._logger.warning("Reschedule failed", extra={"user_id": session.user_id, "reason": result.message})
        return CommandOutcome(success=False, messages=[mb.text_message(translate("reschedule_failed", session.language))])
