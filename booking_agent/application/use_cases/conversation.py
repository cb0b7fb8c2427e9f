from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Callable

from booking_agent.application.exceptions import MissingSelectionError, PaymentError, UpstreamUnavailableError
from booking_agent.application.ports.payment import PaymentPort
from booking_agent.application.ports.scheduling import SchedulingPort
from booking_agent.application.ports.support import SupportTicketPort
from booking_agent.application.use_cases.booking_commands import BookingCommands
from booking_agent.application.use_cases.slot_discovery import SlotDiscoveryEngine
from booking_agent.application.utils import message_builders as mb
from booking_agent.application.utils.i18n import DEFAULT_LANGUAGE, translate
from booking_agent.application.utils.validators import (
    clean_description,
    clean_email,
    clean_name,
    clean_phone,
    match_language,
)
from booking_agent.domain.entities.calendar_time import add_months, days_in_month, month_start, parse_month_key
from booking_agent.domain.entities.message import EventKind, InboundEvent
from booking_agent.domain.entities.outbound import OutboundMessage
from booking_agent.domain.entities.scheduling import Appointment, Service, Slot, Staff
from booking_agent.domain.entities.session import PaymentState, Session
from booking_agent.domain.entities.step import BookingMode, Step

BOOKING_STEPS = frozenset(
    {
        Step.AWAIT_BOOKING_MENU,
        Step.AWAIT_SERVICE,
        Step.AWAIT_STAFF,
        Step.AWAIT_MONTH,
        Step.AWAIT_DATE,
        Step.AWAIT_SLOT,
        Step.AWAIT_NAME,
        Step.AWAIT_EMAIL,
        Step.AWAIT_PHONE,
    }
)
RESCHEDULE_STEPS = frozenset(
    {Step.AWAIT_RESCHEDULE_EMAIL, Step.AWAIT_APPOINTMENT_LIST_RESCHEDULE, Step.AWAIT_RESCHEDULE_SLOT}
)
CANCEL_STEPS = frozenset({Step.AWAIT_CANCEL_EMAIL, Step.AWAIT_APPOINTMENT_LIST_CANCEL})


@dataclass
class Turn:
    messages: list[OutboundMessage] = field(default_factory=list)
    clear_session: bool = False


Handler = Callable[[Session, InboundEvent], Turn]


class ConversationEngine:
    """
    Step-indexed booking wizard.

    Every inbound event is routed through one table keyed by
    (current step, event kind). Pairs missing from the table fall through to
    a default handler that returns the user to the main menu, so a
    conversation cannot get stuck in a step.
    """

    def __init__(
        self,
        scheduling: SchedulingPort,
        slot_discovery: SlotDiscoveryEngine,
        commands: BookingCommands,
        payments: PaymentPort | None,
        support: SupportTicketPort,
        today: Callable[[], date],
        page_size: int = 9,
        scan_max_days: int = 30,
        max_attempts: int = 3,
        months_ahead: int = 3,
        currency: str = "INR",
        ask_language: bool = True,
        default_language: str = DEFAULT_LANGUAGE,
    ) -> None:
        self._scheduling = scheduling
        self._slots = slot_discovery
        self._commands = commands
        self._payments = payments
        self._support = support
        self._today = today
        self._page_size = page_size
        self._scan_max_days = scan_max_days
        self._max_attempts = max_attempts
        self._months_ahead = months_ahead
        self._currency = currency
        self._ask_language = ask_language
        self._default_language = default_language
        self._logger = logging.getLogger(__name__)

        text, button, listed = EventKind.TEXT, EventKind.BUTTON, EventKind.LIST
        self._routes: dict[tuple[Step, EventKind], Handler] = {
            (Step.INIT, text): self._start,
            (Step.INIT, button): self._start,
            (Step.INIT, listed): self._start,
            (Step.AWAIT_LANGUAGE, text): self._on_language,
            (Step.AWAIT_LANGUAGE, button): self._on_language,
            (Step.AWAIT_MAIN, listed): self._on_main_menu,
            (Step.AWAIT_MAIN, button): self._on_main_menu,
            (Step.AWAIT_BOOKING_MENU, button): self._on_booking_menu,
            (Step.AWAIT_SERVICE, listed): self._on_service,
            (Step.AWAIT_STAFF, listed): self._on_staff,
            (Step.AWAIT_MONTH, listed): self._on_month,
            (Step.AWAIT_DATE, listed): self._on_date,
            (Step.AWAIT_SLOT, listed): self._on_slot,
            (Step.AWAIT_NAME, text): self._on_name,
            (Step.AWAIT_EMAIL, text): self._on_email,
            (Step.AWAIT_PHONE, text): self._on_phone,
            (Step.AWAIT_PHONE, button): self._on_phone,
            (Step.AWAIT_PAYMENT, button): self._on_payment,
            (Step.AWAIT_PAYMENT, text): self._remind_payment,
            (Step.AWAIT_PAYMENT, listed): self._remind_payment,
            (Step.AWAIT_HELP_NAME, text): self._on_help_name,
            (Step.AWAIT_HELP_EMAIL, text): self._on_help_email,
            (Step.AWAIT_HELP_DESCRIPTION, text): self._on_help_description,
            (Step.AWAIT_RESCHEDULE_EMAIL, text): self._on_lookup_email,
            (Step.AWAIT_CANCEL_EMAIL, text): self._on_lookup_email,
            (Step.AWAIT_APPOINTMENT_LIST_RESCHEDULE, listed): self._on_appointment,
            (Step.AWAIT_APPOINTMENT_LIST_CANCEL, listed): self._on_appointment,
            (Step.AWAIT_RESCHEDULE_SLOT, listed): self._on_reschedule_slot,
        }

    def handle(self, session: Session, event: InboundEvent) -> Turn:
        return self._guarded(session, lambda: self._dispatch(session, event))

    def resume_payment(self, session: Session) -> Turn:
        """Entry point for the payment processor callback."""
        if session.step is not Step.AWAIT_PAYMENT:
            return Turn()
        return self._guarded(session, lambda: self._confirm_payment(session))

    def payment_captured(self, session: Session) -> bool:
        if session.payment is None or self._payments is None:
            return False
        return self._payments.get_payment_status(session.payment.link_id).paid

    def _dispatch(self, session: Session, event: InboundEvent) -> Turn:
        selection = event.selection
        if selection == mb.HOME:
            return self._go_home(session)
        if selection == mb.TRY_AGAIN:
            return self._try_again(session)
        handler = self._routes.get((session.step, event.kind), self._default)
        return handler(session, event)

    def _guarded(self, session: Session, action: Callable[[], Turn]) -> Turn:
        try:
            return action()
        except UpstreamUnavailableError as e:
            self._logger.warning(
                "Provider unavailable", extra={"user_id": session.user_id, "step": session.step.value, "reason": str(e)}
            )
            return Turn([mb.try_again_prompt(session.language)])
        except MissingSelectionError as e:
            self._logger.warning(
                "Missing selection", extra={"user_id": session.user_id, "step": session.step.value, "reason": str(e)}
            )
            session.reset_selection()
            session.step = Step.AWAIT_MAIN
            return Turn([mb.text_message(translate("session_error", session.language)), mb.main_menu(session.language)])

    # Shared transitions

    def _default(self, session: Session, event: InboundEvent) -> Turn:
        self._logger.info(
            "Unhandled event for step",
            extra={"user_id": session.user_id, "step": session.step.value, "reason": event.kind.value},
        )
        if session.language is None:
            session.language = self._default_language
        session.step = Step.AWAIT_MAIN
        return Turn([mb.main_menu(session.language)])

    def _go_home(self, session: Session) -> Turn:
        session.reset_selection()
        if session.language is None:
            session.language = self._default_language
        session.step = Step.AWAIT_MAIN
        return Turn([mb.main_menu(session.language)])

    def _try_again(self, session: Session) -> Turn:
        if session.step is Step.AWAIT_PAYMENT:
            return self._confirm_payment(session)
        if session.step in RESCHEDULE_STEPS:
            return self._ask_lookup_email(session, Step.AWAIT_RESCHEDULE_EMAIL)
        if session.step in CANCEL_STEPS:
            return self._ask_lookup_email(session, Step.AWAIT_CANCEL_EMAIL)
        if session.step in BOOKING_STEPS and session.booking_mode is not None:
            mode = session.booking_mode
            session.reset_selection()
            session.booking_mode = mode
            return self._show_services(session, page=0)
        return self._go_home(session)

    def _invalid(self, session: Session, field_name: str, reprompt: list[OutboundMessage]) -> Turn:
        count = session.attempts.get(field_name, 0) + 1
        session.attempts[field_name] = count
        if count >= self._max_attempts:
            self._logger.info(
                "Input attempts exhausted",
                extra={"user_id": session.user_id, "step": session.step.value, "attempt": count},
            )
            return Turn([mb.text_message(translate("too_many_attempts", session.language))], clear_session=True)
        return Turn(reprompt)

    def _accepted(self, session: Session, field_name: str) -> None:
        session.attempts.pop(field_name, None)

    # Entry, language and menus

    def _start(self, session: Session, event: InboundEvent) -> Turn:
        if session.language is None and self._ask_language:
            session.step = Step.AWAIT_LANGUAGE
            return Turn([mb.language_prompt()])
        if session.language is None:
            session.language = self._default_language
        session.step = Step.AWAIT_MAIN
        return Turn([mb.main_menu(session.language)])

    def _on_language(self, session: Session, event: InboundEvent) -> Turn:
        selection = event.selection or ""
        if selection.startswith(mb.LANG_PREFIX):
            language = match_language(selection[len(mb.LANG_PREFIX):])
        else:
            language = match_language(event.text)
        if language is None:
            return self._invalid(
                session, "language", [mb.text_message(translate("language_invalid", session.language)), mb.language_prompt()]
            )
        self._accepted(session, "language")
        session.language = language
        session.step = Step.AWAIT_MAIN
        return Turn([mb.main_menu(language)])

    def _on_main_menu(self, session: Session, event: InboundEvent) -> Turn:
        selection = event.selection
        if selection == mb.MENU_BOOK:
            session.reset_selection()
            session.step = Step.AWAIT_BOOKING_MENU
            return Turn([mb.booking_menu(session.language)])
        if selection == mb.MENU_RESCHEDULE:
            return self._ask_lookup_email(session, Step.AWAIT_RESCHEDULE_EMAIL)
        if selection == mb.MENU_CANCEL:
            return self._ask_lookup_email(session, Step.AWAIT_CANCEL_EMAIL)
        if selection == mb.MENU_HELP:
            session.reset_selection()
            session.step = Step.AWAIT_HELP_NAME
            return Turn([mb.text_message(translate("help_ask_name", session.language))])
        if selection == mb.MENU_LANGUAGE:
            session.step = Step.AWAIT_LANGUAGE
            return Turn([mb.language_prompt()])
        return self._default(session, event)

    def _on_booking_menu(self, session: Session, event: InboundEvent) -> Turn:
        if event.selection == mb.NEXT_AVAILABLE:
            session.booking_mode = BookingMode.NEXT_AVAILABLE
        elif event.selection == mb.PICK_DATE:
            session.booking_mode = BookingMode.PICK_DATE
        else:
            return self._default(session, event)
        return self._show_services(session, page=0)

    # Booking branch

    def _show_services(self, session: Session, page: int) -> Turn:
        if not session.services:
            session.services = self._scheduling.list_services(session)
        if not session.services:
            session.step = Step.AWAIT_MAIN
            return Turn([mb.with_recovery(translate("no_services", session.language), session.language)])
        session.step = Step.AWAIT_SERVICE
        return Turn([mb.services_list(session.services, page, self._page_size, session.language)])

    def _on_service(self, session: Session, event: InboundEvent) -> Turn:
        selection = event.selection or ""
        page = mb.parse_page(selection, mb.MORE_SERVICES)
        if page is not None:
            return self._show_services(session, page)
        service = _find(session.services, lambda s: f"{mb.SERVICE_PREFIX}{s.id}" == selection)
        if service is None:
            return self._show_services(session, page=0)

        session.service = service
        session.staff = None
        session.slot_cursor = None
        assignees = self._scheduling.list_assignees(session, service)
        if not assignees:
            session.step = Step.AWAIT_MAIN
            return Turn([mb.with_recovery(translate("no_staff", session.language), session.language)])
        if len(assignees) == 1:
            session.staff = assignees[0]
            return self._after_staff(session)
        session.staff_options = assignees
        session.step = Step.AWAIT_STAFF
        return Turn([mb.staff_list(assignees, 0, self._page_size, session.language)])

    def _on_staff(self, session: Session, event: InboundEvent) -> Turn:
        selection = event.selection or ""
        page = mb.parse_page(selection, mb.MORE_STAFF)
        if page is not None:
            return Turn([mb.staff_list(session.staff_options, page, self._page_size, session.language)])
        staff = _find(session.staff_options, lambda s: f"{mb.STAFF_PREFIX}{s.id}" == selection)
        if staff is None:
            return Turn([mb.staff_list(session.staff_options, 0, self._page_size, session.language)])
        session.staff = staff
        session.slot_cursor = None
        return self._after_staff(session)

    def _after_staff(self, session: Session) -> Turn:
        if session.booking_mode is BookingMode.NEXT_AVAILABLE:
            turn = self._show_slots(session, self._today(), self._scan_max_days, Step.AWAIT_SLOT, "choose_slot")
            if turn is not None:
                return turn
            session.step = Step.AWAIT_MAIN
            return Turn([mb.with_recovery(translate("no_slots", session.language, days=self._scan_max_days),
                                          session.language)])
        if session.booking_mode is BookingMode.PICK_DATE:
            session.step = Step.AWAIT_MONTH
            return Turn([mb.months_list(self._offered_months(), session.language)])
        raise MissingSelectionError("booking mode has not been selected")

    def _offered_months(self) -> list[date]:
        first = month_start(self._today())
        return [add_months(first, i) for i in range(self._months_ahead)]

    def _on_month(self, session: Session, event: InboundEvent) -> Turn:
        selection = event.selection or ""
        month = None
        if selection.startswith(mb.MONTH_PREFIX):
            try:
                month = parse_month_key(selection[len(mb.MONTH_PREFIX):])
            except ValueError:
                month = None
        if month is None or month not in self._offered_months():
            return Turn([mb.months_list(self._offered_months(), session.language)])
        session.month = month
        session.day = None
        session.date_page = 0
        return self._show_dates(session)

    def _open_days(self, session: Session) -> list[date]:
        if session.month is None:
            raise MissingSelectionError("month has not been selected")
        today = self._today()
        return [d for d in days_in_month(session.month) if d >= today]

    def _show_dates(self, session: Session) -> Turn:
        days = self._open_days(session)
        if not days:
            session.step = Step.AWAIT_MONTH
            return Turn([mb.text_message(translate("no_more_dates", session.language)),
                         mb.months_list(self._offered_months(), session.language)])
        session.step = Step.AWAIT_DATE
        return Turn([mb.dates_list(days, session.date_page, self._page_size, session.language)])

    def _on_date(self, session: Session, event: InboundEvent) -> Turn:
        selection = event.selection or ""
        page = mb.parse_page(selection, mb.MORE_DATES)
        if page is not None:
            session.date_page = page
            return self._show_dates(session)

        day = None
        if selection.startswith(mb.DATE_PREFIX):
            try:
                day = date.fromisoformat(selection[len(mb.DATE_PREFIX):])
            except ValueError:
                day = None
        if day is None or day not in self._open_days(session):
            return self._show_dates(session)

        session.day = day
        session.slot_cursor = None
        turn = self._show_slots(session, day, 1, Step.AWAIT_SLOT, "choose_slot")
        if turn is not None:
            return turn
        dates = self._show_dates(session)
        notice = mb.text_message(translate("no_slots_on_date", session.language, date=mb.day_label(day)))
        return Turn([notice, *dates.messages])

    def _show_slots(self, session: Session, start: date, max_days: int, step: Step, body_key: str) -> Turn | None:
        page = self._slots.find_next_available(session, start, self._page_size, max_days)
        if not page.slots:
            return None
        session.step = step
        return Turn([mb.slots_list(page.slots, page.has_more, session.language, body_key)])

    def _more_slots(self, session: Session, body_key: str) -> Turn:
        cursor = session.slot_cursor
        if cursor is None:
            raise MissingSelectionError("no slot scan to continue")
        max_days = self._scan_max_days
        if session.booking_mode is BookingMode.PICK_DATE and session.step is Step.AWAIT_SLOT:
            max_days = 1  # a picked date is scanned alone
        turn = self._show_slots(session, cursor.origin, max_days, session.step, body_key)
        if turn is None:
            return Turn([mb.with_recovery(translate("no_more_slots", session.language), session.language)])
        return turn

    def _picked_slot(self, session: Session, selection: str) -> Slot | None:
        try:
            slot = Slot.from_id(selection)
        except ValueError:
            return None
        cursor = session.slot_cursor
        # Only slots handed out by the current scan are accepted.
        if cursor is None or slot.id not in cursor.offered:
            return None
        return slot

    def _on_slot(self, session: Session, event: InboundEvent) -> Turn:
        selection = event.selection or ""
        if selection == mb.MORE_SLOTS:
            return self._more_slots(session, "choose_slot")
        slot = self._picked_slot(session, selection)
        if slot is None:
            return self._default(session, event)
        session.slot = slot
        session.step = Step.AWAIT_NAME
        return Turn([mb.text_message(translate("ask_name", session.language, slot=slot.label()))])

    def _on_name(self, session: Session, event: InboundEvent) -> Turn:
        name = clean_name(event.text)
        if name is None:
            return self._invalid(session, "name", [mb.text_message(translate("invalid_name", session.language))])
        self._accepted(session, "name")
        session.customer_name = name
        session.step = Step.AWAIT_EMAIL
        return Turn([mb.text_message(translate("ask_email", session.language, name=name))])

    def _on_email(self, session: Session, event: InboundEvent) -> Turn:
        email = clean_email(event.text)
        if email is None:
            return self._invalid(session, "email", [mb.text_message(translate("invalid_email", session.language))])
        self._accepted(session, "email")
        session.customer_email = email
        session.step = Step.AWAIT_PHONE
        return Turn([mb.phone_prompt(session.language)])

    def _on_phone(self, session: Session, event: InboundEvent) -> Turn:
        if event.kind is EventKind.BUTTON:
            if event.selection != mb.USE_THIS_NUMBER:
                return self._default(session, event)
            phone = clean_phone(f"+{session.user_id.lstrip('+')}")
        else:
            phone = clean_phone(event.text)
        if phone is None:
            return self._invalid(
                session, "phone", [mb.text_message(translate("invalid_phone", session.language)),
                                   mb.phone_prompt(session.language)]
            )
        self._accepted(session, "phone")
        session.customer_phone = phone
        return self._checkout(session)

    def _checkout(self, session: Session) -> Turn:
        service = session.service
        if service is None:
            raise MissingSelectionError("service has not been selected")
        if not service.requires_payment or self._payments is None:
            return self._book(session)

        currency = service.currency or self._currency
        try:
            link = self._payments.create_payment_link(
                amount=service.price,
                currency=currency,
                reference_id=session.id,
                description=service.name,
                customer={
                    "name": session.customer_name or "",
                    "email": session.customer_email or "",
                    "contact": session.customer_phone or "",
                },
                notes={"user_id": session.user_id, "service_id": service.id,
                       "slot": session.slot.id if session.slot else ""},
            )
        except PaymentError as e:
            self._logger.warning("Payment link unavailable", extra={"user_id": session.user_id, "reason": str(e)})
            return Turn([mb.with_recovery(translate("payment_unavailable", session.language), session.language)],
                        clear_session=True)

        session.payment = PaymentState(link_id=link.id, link_url=link.url, amount=service.price, currency=currency)
        session.step = Step.AWAIT_PAYMENT
        return Turn([mb.payment_prompt(service, service.price, currency, link.url, session.language)])

    def _on_payment(self, session: Session, event: InboundEvent) -> Turn:
        if event.selection != mb.PAYMENT_DONE:
            return self._remind_payment(session, event)
        return self._confirm_payment(session)

    def _remind_payment(self, session: Session, event: InboundEvent) -> Turn:
        # The link stays open until the user pays or leaves with the home button.
        payment = session.payment
        if payment is None:
            raise MissingSelectionError("no payment in progress")
        return Turn([mb.payment_pending(payment.link_url, session.language)])

    def _confirm_payment(self, session: Session) -> Turn:
        payment = session.payment
        if payment is None or self._payments is None:
            raise MissingSelectionError("no payment in progress")
        status = self._payments.get_payment_status(payment.link_id)
        if not status.paid:
            return Turn([mb.payment_pending(payment.link_url, session.language)])
        payment.payment_id = status.payment_id or payment.link_id
        self._logger.info("Payment confirmed", extra={"user_id": session.user_id, "payment_id": payment.payment_id})
        return self._book(session)

    def _book(self, session: Session) -> Turn:
        outcome = self._commands.create_appointment(session)
        return Turn(outcome.messages, clear_session=True)

    # Help branch

    def _on_help_name(self, session: Session, event: InboundEvent) -> Turn:
        name = clean_name(event.text)
        if name is None:
            return self._invalid(session, "help_name", [mb.text_message(translate("invalid_name", session.language))])
        self._accepted(session, "help_name")
        session.help_name = name
        session.step = Step.AWAIT_HELP_EMAIL
        return Turn([mb.text_message(translate("help_ask_email", session.language))])

    def _on_help_email(self, session: Session, event: InboundEvent) -> Turn:
        email = clean_email(event.text)
        if email is None:
            return self._invalid(session, "help_email", [mb.text_message(translate("invalid_email", session.language))])
        self._accepted(session, "help_email")
        session.help_email = email
        session.step = Step.AWAIT_HELP_DESCRIPTION
        return Turn([mb.text_message(translate("help_ask_description", session.language))])

    def _on_help_description(self, session: Session, event: InboundEvent) -> Turn:
        description = clean_description(event.text)
        if description is None:
            return self._invalid(
                session, "help_description", [mb.text_message(translate("invalid_description", session.language))]
            )
        if not session.help_name or not session.help_email:
            raise MissingSelectionError("help contact details are incomplete")
        ticket = self._support.create_ticket(
            session, session.help_name, session.help_email, session.user_id, description
        )
        self._accepted(session, "help_description")
        session.help_name = None
        session.help_email = None
        session.step = Step.AWAIT_MAIN
        if ticket is None:
            notice = mb.text_message(translate("help_failed", session.language))
        else:
            notice = mb.text_message(translate("help_created", session.language, ticket=ticket))
        return Turn([notice, mb.main_menu(session.language)])

    # Reschedule and cancel branches

    def _ask_lookup_email(self, session: Session, step: Step) -> Turn:
        session.reset_selection()
        session.step = step
        return Turn([mb.text_message(translate("ask_lookup_email", session.language))])

    def _appointment_prompt_key(self, session: Session) -> str:
        if session.step is Step.AWAIT_APPOINTMENT_LIST_RESCHEDULE:
            return "choose_appointment_reschedule"
        return "choose_appointment_cancel"

    def _on_lookup_email(self, session: Session, event: InboundEvent) -> Turn:
        email = clean_email(event.text)
        if email is None:
            return self._invalid(session, "lookup_email", [mb.text_message(translate("invalid_email", session.language))])
        self._accepted(session, "lookup_email")
        session.lookup_email = email
        appointments = self._scheduling.find_appointments(session, email)
        if not appointments:
            session.step = Step.AWAIT_MAIN
            return Turn([mb.with_recovery(translate("no_appointments", session.language, email=email), session.language)])

        session.appointments = appointments
        session.step = (
            Step.AWAIT_APPOINTMENT_LIST_RESCHEDULE
            if session.step is Step.AWAIT_RESCHEDULE_EMAIL
            else Step.AWAIT_APPOINTMENT_LIST_CANCEL
        )
        return Turn([mb.appointments_list(appointments, 0, self._page_size, session.language,
                                          self._appointment_prompt_key(session))])

    def _on_appointment(self, session: Session, event: InboundEvent) -> Turn:
        selection = event.selection or ""
        page = mb.parse_page(selection, mb.MORE_APPOINTMENTS)
        if page is not None:
            return Turn([mb.appointments_list(session.appointments, page, self._page_size, session.language,
                                              self._appointment_prompt_key(session))])
        appointment = _find(session.appointments, lambda a: f"{mb.APPOINTMENT_PREFIX}{a.booking_id}" == selection)
        if appointment is None:
            return self._default(session, event)
        session.appointment = appointment

        if session.step is Step.AWAIT_APPOINTMENT_LIST_CANCEL:
            outcome = self._commands.cancel_appointment(session)
            return Turn(outcome.messages, clear_session=True)

        session.service = self._service_for(session, appointment)
        session.staff = None
        if appointment.staff_id:
            session.staff = Staff(id=appointment.staff_id, name=appointment.staff_name or appointment.staff_id)
        session.slot_cursor = None
        turn = self._show_slots(session, self._today(), self._scan_max_days, Step.AWAIT_RESCHEDULE_SLOT,
                                "choose_new_slot")
        if turn is not None:
            return turn
        session.step = Step.AWAIT_MAIN
        return Turn([mb.with_recovery(translate("no_slots", session.language, days=self._scan_max_days),
                                      session.language)])

    def _service_for(self, session: Session, appointment: Appointment) -> Service:
        if not session.services:
            session.services = self._scheduling.list_services(session)
        service = _find(session.services, lambda s: s.id == appointment.service_id) or _find(
            session.services, lambda s: bool(appointment.service_name) and s.name == appointment.service_name
        )
        if service is not None:
            return service
        if not appointment.service_id:
            raise MissingSelectionError("appointment has no service to reschedule against")
        return Service(
            id=appointment.service_id,
            name=appointment.service_name or appointment.service_id,
            duration_minutes=appointment.duration_minutes or 30,
        )

    def _on_reschedule_slot(self, session: Session, event: InboundEvent) -> Turn:
        selection = event.selection or ""
        if selection == mb.MORE_SLOTS:
            return self._more_slots(session, "choose_new_slot")
        slot = self._picked_slot(session, selection)
        if slot is None:
            return self._default(session, event)
        session.slot = slot
        outcome = self._commands.reschedule_appointment(session)
        return Turn(outcome.messages, clear_session=True)


def _find(items, predicate):
    for item in items:
        if predicate(item):
            return item
    return None
