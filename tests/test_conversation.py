"""
Conversation flows driven through HandleIncomingEventUseCase with in-process fakes.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from itertools import count

from booking_agent.application.exceptions import UpstreamUnavailableError
from booking_agent.application.ports.scheduling import AppointmentRequest
from booking_agent.application.use_cases.booking_commands import BookingCommands
from booking_agent.application.use_cases.conversation import ConversationEngine
from booking_agent.application.use_cases.handle_incoming_event import HandleIncomingEventUseCase
from booking_agent.application.use_cases.send_reply import SendReplyUseCase
from booking_agent.application.use_cases.slot_discovery import SlotDiscoveryEngine
from booking_agent.application.utils import message_builders as mb
from booking_agent.domain.entities.message import EventKind, InboundEvent
from booking_agent.domain.entities.outbound import OutboundMessage
from booking_agent.domain.entities.session import Session
from booking_agent.domain.entities.step import Step
from booking_agent.infrastructure.payments.mock_payment import MockPaymentProcessor
from booking_agent.infrastructure.store.memory_store import MemorySessionStore
from booking_agent.infrastructure.support.mock_desk import MockTicketSink
from booking_agent.infrastructure.whatsapp.mock_platform import MockWhatsAppPlatform
from booking_agent.infrastructure.zoho.mock_scheduling import DEFAULT_SERVICES, MockScheduling

TODAY = date(2025, 9, 15)  # Monday
USER = "919800000001"


class FlakyScheduling(MockScheduling):
    def __init__(self, error: Exception | None = None, **kwargs) -> None:
        super().__init__(**kwargs)
        self.error = error

    def list_services(self, session):
        if self.error is not None:
            raise self.error
        return super().list_services(session)


class Chat:
    def __init__(
        self,
        scheduling: MockScheduling | None = None,
        ask_language: bool = False,
        store: MemorySessionStore | None = None,
    ) -> None:
        self.scheduling = scheduling or MockScheduling()
        self.payments = MockPaymentProcessor()
        self.support = MockTicketSink()
        self.store = store or MemorySessionStore()
        self.platform = MockWhatsAppPlatform()
        engine = ConversationEngine(
            scheduling=self.scheduling,
            slot_discovery=SlotDiscoveryEngine(self.scheduling),
            commands=BookingCommands(self.scheduling, timezone="Asia/Kolkata"),
            payments=self.payments,
            support=self.support,
            today=lambda: TODAY,
            ask_language=ask_language,
        )
        self.use_case = HandleIncomingEventUseCase(self.store, engine, SendReplyUseCase(self.platform))
        self._ids = count(1)

    def send(self, event: InboundEvent) -> list[OutboundMessage]:
        before = len(self.platform.sent)
        self.use_case.handle(event)
        return [message for _, message in self.platform.sent[before:]]

    def event(self, kind: EventKind, text: str = "", reply_id: str | None = None) -> InboundEvent:
        return InboundEvent(id=f"wamid.{next(self._ids)}", sender_id=USER, kind=kind, text=text, reply_id=reply_id)

    def text(self, body: str) -> list[OutboundMessage]:
        return self.send(self.event(EventKind.TEXT, text=body))

    def pick(self, reply_id: str) -> list[OutboundMessage]:
        return self.send(self.event(EventKind.LIST, reply_id=reply_id))

    def tap(self, reply_id: str) -> list[OutboundMessage]:
        return self.send(self.event(EventKind.BUTTON, reply_id=reply_id))

    @property
    def session(self) -> Session:
        return self.store.get(USER)


class InterleavingStore(MemorySessionStore):
    """Runs `before_lock` once, just before the next lock is handed out."""

    def __init__(self) -> None:
        super().__init__()
        self.before_lock = None

    def lock(self, user_id: str):
        hook, self.before_lock = self.before_lock, None
        if hook is not None:
            hook()
        return super().lock(user_id)


def _row_ids(message: OutboundMessage) -> list[str]:
    return [row.id for row in message.rows]


def _to_contact_details(chat: Chat, service_id: str = "svc_consult") -> None:
    chat.text("hi")
    chat.pick(mb.MENU_BOOK)
    chat.tap(mb.NEXT_AVAILABLE)
    replies = chat.pick(f"{mb.SERVICE_PREFIX}{service_id}")
    if chat.session.step is Step.AWAIT_STAFF:
        replies = chat.pick(f"{mb.STAFF_PREFIX}staff_1")
    chat.pick(_row_ids(replies[-1])[0])
    chat.text("Asha Rao")
    chat.text("asha@example.com")


def _prebook(chat: Chat, starts_at: datetime) -> str:
    service = DEFAULT_SERVICES[0]
    result = chat.scheduling.create_appointment(
        Session(user_id="setup"),
        AppointmentRequest(
            service=service,
            assignee_id="staff_1",
            starts_at=starts_at,
            ends_at=starts_at,
            customer_name="Asha Rao",
            customer_email="asha@example.com",
            customer_phone="+919800000001",
            timezone="Asia/Kolkata",
        ),
    )
    return result.booking_id


def test_free_text_shows_main_menu():
    chat = Chat()
    replies = chat.text("hello")

    assert len(replies) == 1
    assert replies[0].kind == "list"
    assert _row_ids(replies[0])[0] == mb.MENU_BOOK
    assert chat.session.step is Step.AWAIT_MAIN


def test_language_is_asked_first_when_enabled():
    chat = Chat(ask_language=True)
    prompt = chat.text("hola")
    assert prompt[0].kind == "buttons"
    assert chat.session.step is Step.AWAIT_LANGUAGE

    menu = chat.tap("lang:es")
    assert menu[0].body.startswith("¡Hola!")
    assert chat.session.language == "es"


def test_typed_language_name_is_accepted():
    chat = Chat(ask_language=True)
    chat.text("hi")
    chat.text("English")
    assert chat.session.language == "en"
    assert chat.session.step is Step.AWAIT_MAIN


def test_replayed_event_sends_nothing_and_changes_nothing():
    chat = Chat()
    chat.text("hi")
    event = chat.event(EventKind.LIST, reply_id=mb.MENU_BOOK)

    assert len(chat.send(event)) == 1
    assert chat.session.step is Step.AWAIT_BOOKING_MENU
    assert chat.send(event) == []
    assert chat.session.step is Step.AWAIT_BOOKING_MENU


def test_end_to_end_paid_booking_clears_session():
    chat = Chat()
    chat.text("hi")
    assert chat.pick(mb.MENU_BOOK)[0].kind == "buttons"
    services = chat.tap(mb.NEXT_AVAILABLE)[0]
    assert "service:svc_therapy" in _row_ids(services)

    # Single assignee: staff selection is skipped.
    slots = chat.pick("service:svc_therapy")[0]
    assert chat.session.staff.id == "staff_1"
    assert _row_ids(slots)[0] == "slot:20250915:1000:0001"
    assert _row_ids(slots)[-1] == mb.MORE_SLOTS

    chat.pick(_row_ids(slots)[0])
    assert chat.session.step is Step.AWAIT_NAME
    chat.text("Asha Rao")
    chat.text("asha@example.com")
    payment = chat.tap(mb.USE_THIS_NUMBER)[0]

    session = chat.session
    assert session.step is Step.AWAIT_PAYMENT
    assert session.customer_phone == "+919800000001"
    assert "https://pay.example.com/plink_mock_1" in payment.body

    pending = chat.tap(mb.PAYMENT_DONE)[0]
    assert "https://pay.example.com/plink_mock_1" in pending.body
    assert chat.session.step is Step.AWAIT_PAYMENT

    chat.payments.mark_paid("plink_mock_1")
    confirmation = chat.tap(mb.PAYMENT_DONE)[0]

    assert confirmation.kind == "cta_url"
    assert "#mock-00001" in confirmation.body
    assert confirmation.url == "https://bookings.example.com/summary/mock-00001"
    assert chat.store.find_by_id(session.id) is None
    assert chat.scheduling.find_appointments(Session(user_id="x"), "asha@example.com")[0].staff_id == "staff_1"


def test_payment_callback_resumes_waiting_session():
    chat = Chat()
    _to_contact_details(chat, service_id="svc_therapy")
    chat.text("+91 98000 00001")
    session = chat.session
    assert session.step is Step.AWAIT_PAYMENT

    chat.payments.mark_paid(session.payment.link_id)
    before = len(chat.platform.sent)
    assert chat.use_case.handle_payment_callback(session.id)

    assert chat.platform.sent[before][1].kind == "cta_url"
    assert chat.store.find_by_id(session.id) is None
    assert not chat.use_case.handle_payment_callback(session.id)


def test_payment_callback_after_user_confirmed_does_not_book_twice():
    store = InterleavingStore()
    chat = Chat(store=store)
    _to_contact_details(chat, service_id="svc_therapy")
    chat.text("+91 98000 00001")
    session = chat.session
    chat.payments.mark_paid(session.payment.link_id)

    # The user's "I've paid" tap wins the race for the lock.
    store.before_lock = lambda: chat.tap(mb.PAYMENT_DONE)
    assert not chat.use_case.handle_payment_callback(session.id)

    assert len(chat.scheduling.find_appointments(Session(user_id="x"), "asha@example.com")) == 1


def test_text_while_waiting_for_payment_keeps_link_open():
    chat = Chat()
    _to_contact_details(chat, service_id="svc_therapy")
    chat.text("+91 98000 00001")
    session = chat.session
    link = session.payment.link_id

    reminder = chat.text("hello?")[0]
    assert session.payment.link_url in reminder.body
    assert chat.session.step is Step.AWAIT_PAYMENT

    chat.payments.mark_paid(link)
    assert chat.use_case.handle_payment_callback(session.id)
    assert len(chat.scheduling.find_appointments(Session(user_id="x"), "asha@example.com")) == 1


def test_captured_payment_on_session_that_moved_on_is_logged_as_error(caplog):
    chat = Chat()
    _to_contact_details(chat, service_id="svc_therapy")
    chat.text("+91 98000 00001")
    session = chat.session
    chat.payments.mark_paid(session.payment.link_id)
    session.step = Step.AWAIT_MAIN
    chat.store.save(session)

    with caplog.at_level(logging.ERROR):
        assert not chat.use_case.handle_payment_callback(session.id)

    assert any("Payment captured" in record.getMessage() for record in caplog.records)


def test_free_service_books_without_payment():
    chat = Chat()
    _to_contact_details(chat)
    replies = chat.text("9800000001")

    assert "#mock-00001" in replies[0].body
    assert chat.session.step is Step.INIT


def test_three_invalid_phones_clear_session():
    chat = Chat()
    _to_contact_details(chat)
    session_id = chat.session.id

    first = chat.text("123")
    second = chat.text("not a phone")
    assert first[0].body == second[0].body
    assert chat.session.attempts["phone"] == 2

    final = chat.text("42")
    assert "Too many invalid attempts" in final[0].body
    assert chat.store.find_by_id(session_id) is None


def test_valid_input_resets_attempt_counter():
    chat = Chat()
    chat.text("hi")
    chat.pick(mb.MENU_HELP)
    chat.text("x")
    chat.text("Asha")
    assert "help_name" not in chat.session.attempts


def test_unexpected_event_returns_to_main_menu_without_touching_selections():
    chat = Chat()
    _to_contact_details(chat)
    session = chat.session
    slot, email = session.slot, session.customer_email

    replies = chat.pick("service:svc_room")

    assert replies[0].kind == "list"
    assert _row_ids(replies[0])[0] == mb.MENU_BOOK
    assert chat.session.step is Step.AWAIT_MAIN
    assert chat.session.slot == slot
    assert chat.session.customer_email == email


def test_home_resets_selection():
    chat = Chat()
    _to_contact_details(chat)
    chat.tap(mb.HOME)

    assert chat.session.step is Step.AWAIT_MAIN
    assert chat.session.service is None
    assert chat.session.slot is None


def test_slot_that_was_never_offered_is_rejected():
    # Outside the scanned days, and inside them at a time the provider never returned.
    for forged in ("slot:20300101:1000:0001", "slot:20250915:0315:0001"):
        chat = Chat()
        chat.text("hi")
        chat.pick(mb.MENU_BOOK)
        chat.tap(mb.NEXT_AVAILABLE)
        chat.pick("service:svc_therapy")

        chat.pick(forged)
        assert chat.session.step is Step.AWAIT_MAIN
        assert chat.session.slot is None


def test_pick_a_date_flow_limits_slots_to_that_day():
    chat = Chat()
    chat.text("hi")
    chat.pick(mb.MENU_BOOK)
    chat.tap(mb.PICK_DATE)
    staff = chat.pick("service:svc_consult")[0]
    assert _row_ids(staff) == ["staff:staff_1", "staff:staff_2"]

    months = chat.pick("staff:staff_2")[0]
    assert _row_ids(months) == ["month:2025-09", "month:2025-10", "month:2025-11"]

    dates = chat.pick("month:2025-09")[0]
    assert _row_ids(dates)[0] == "date:2025-09-15"
    assert _row_ids(dates)[-1] == "more_dates:1"

    # Saturday: no slots, the date list is shown again.
    weekend = chat.pick("date:2025-09-20")
    assert "20-Sep-2025" in weekend[0].body
    assert chat.session.step is Step.AWAIT_DATE

    first = chat.pick("date:2025-09-16")[0]
    assert chat.session.step is Step.AWAIT_SLOT
    assert len(first.rows) == 10
    rest = chat.pick(mb.MORE_SLOTS)[0]
    assert len(rest.rows) == 5
    offered = [row.id for row in (*first.rows, *rest.rows) if row.id != mb.MORE_SLOTS]
    assert all(slot_id.startswith("slot:20250916:") for slot_id in offered)
    assert len(set(offered)) == 14


def test_no_slots_in_window_offers_main_menu_button():
    chat = Chat(MockScheduling(times_by_day={}))
    chat.text("hi")
    chat.pick(mb.MENU_BOOK)
    chat.tap(mb.NEXT_AVAILABLE)
    replies = chat.pick("service:svc_therapy")

    assert replies[0].kind == "buttons"
    assert replies[0].buttons[0].id == mb.HOME
    assert "30 days" in replies[0].body
    assert chat.session.step is Step.AWAIT_MAIN


def test_provider_outage_offers_try_again_and_keeps_session():
    scheduling = FlakyScheduling(error=UpstreamUnavailableError("down"))
    chat = Chat(scheduling)
    chat.text("hi")
    chat.pick(mb.MENU_BOOK)
    session_id = chat.session.id

    outage = chat.tap(mb.NEXT_AVAILABLE)[0]
    assert [b.id for b in outage.buttons] == [mb.TRY_AGAIN, mb.HOME]
    assert chat.session.id == session_id

    scheduling.error = None
    services = chat.tap(mb.TRY_AGAIN)[0]
    assert chat.session.step is Step.AWAIT_SERVICE
    assert "service:svc_consult" in _row_ids(services)


def test_unexpected_error_sends_generic_apology():
    chat = Chat(FlakyScheduling(error=RuntimeError("boom")))
    chat.text("hi")
    chat.pick(mb.MENU_BOOK)

    replies = chat.tap(mb.NEXT_AVAILABLE)
    assert replies[-1].kind == "text"
    assert "something went wrong" in replies[-1].body


def test_missing_selection_restarts_at_main_menu():
    chat = Chat()
    session = chat.session
    session.language = "en"
    session.step = Step.AWAIT_SLOT
    chat.store.save(session)

    replies = chat.pick(mb.MORE_SLOTS)
    assert "start over" in replies[0].body
    assert replies[1].kind == "list"
    assert chat.session.step is Step.AWAIT_MAIN


def test_help_flow_creates_ticket_and_returns_to_menu():
    chat = Chat()
    chat.text("hi")
    chat.pick(mb.MENU_HELP)
    chat.text("Asha Rao")
    chat.text("asha@example.com")
    replies = chat.text("I need to change my address")

    assert "T-0001" in replies[0].body
    assert replies[1].kind == "list"
    assert chat.session.step is Step.AWAIT_MAIN
    assert chat.support.tickets[0]["phone"] == USER


def test_cancel_flow():
    chat = Chat()
    booking_id = _prebook(chat, datetime(2025, 9, 16, 11, 0))
    chat.text("hi")
    chat.pick(mb.MENU_CANCEL)
    appointments = chat.text("ASHA@example.com")[0]
    assert _row_ids(appointments) == [f"appt:{booking_id}"]

    session_id = chat.session.id
    replies = chat.pick(f"appt:{booking_id}")

    assert "cancelled" in replies[0].body
    assert chat.store.find_by_id(session_id) is None
    assert chat.scheduling.find_appointments(Session(user_id="x"), "asha@example.com") == []


def test_reschedule_flow():
    chat = Chat()
    booking_id = _prebook(chat, datetime(2025, 9, 15, 10, 0))
    chat.text("hi")
    chat.pick(mb.MENU_RESCHEDULE)
    chat.text("asha@example.com")
    slots = chat.pick(f"appt:{booking_id}")[0]

    assert chat.session.step is Step.AWAIT_RESCHEDULE_SLOT
    # The booked 10:00 slot is not offered again.
    assert _row_ids(slots)[0] == "slot:20250915:1030:0001"

    replies = chat.pick(_row_ids(slots)[1])
    assert "moved" in replies[0].body
    moved = chat.scheduling.find_appointments(Session(user_id="x"), "asha@example.com")[0]
    assert moved.starts_at == datetime(2025, 9, 15, 11, 0)


def test_lookup_without_appointments_offers_main_menu():
    chat = Chat()
    chat.text("hi")
    chat.pick(mb.MENU_RESCHEDULE)
    replies = chat.text("nobody@example.com")

    assert "nobody@example.com" in replies[0].body
    assert replies[0].buttons[0].id == mb.HOME
    assert chat.session.step is Step.AWAIT_MAIN
