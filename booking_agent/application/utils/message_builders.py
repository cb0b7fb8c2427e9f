"""
Pure builders from domain data to outbound WhatsApp message payloads.

WhatsApp limits: 10 rows per list, 24 characters per row title, 3 reply
buttons, 20 characters per button title.
"""

from __future__ import annotations

from datetime import date

from booking_agent.application.utils.i18n import translate
from booking_agent.domain.entities.calendar_time import MONTH_ABBREVIATIONS, format_api_date, month_key
from booking_agent.domain.entities.outbound import Button, ListRow, OutboundMessage
from booking_agent.domain.entities.scheduling import Appointment, Service, Slot, Staff

MAX_LIST_ROWS = 10
MAX_ROW_TITLE = 24
MAX_ROW_DESCRIPTION = 72
MAX_BUTTONS = 3
MAX_BUTTON_TITLE = 20
ELLIPSIS = "..."

# Reply ids shared with the conversation engine.
HOME = "home"
TRY_AGAIN = "try_again"
LANG_PREFIX = "lang:"
MENU_BOOK = "menu:book"
MENU_RESCHEDULE = "menu:reschedule"
MENU_CANCEL = "menu:cancel"
MENU_HELP = "menu:help"
MENU_LANGUAGE = "menu:language"
NEXT_AVAILABLE = "book:next_available"
PICK_DATE = "book:pick_date"
USE_THIS_NUMBER = "phone:use_sender"
PAYMENT_DONE = "payment:done"
SERVICE_PREFIX = "service:"
STAFF_PREFIX = "staff:"
MONTH_PREFIX = "month:"
DATE_PREFIX = "date:"
APPOINTMENT_PREFIX = "appt:"
MORE_SERVICES = "more_services"
MORE_STAFF = "more_staff"
MORE_DATES = "more_dates"
MORE_APPOINTMENTS = "more_appts"
MORE_SLOTS = "more_slots"

WEEKDAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")


def truncate(title: str, limit: int = MAX_ROW_TITLE) -> str:
    if len(title) <= limit:
        return title
    return title[: limit - len(ELLIPSIS)] + ELLIPSIS


def more_row_id(prefix: str, next_page: int) -> str:
    return f"{prefix}:{next_page}"


def parse_page(reply_id: str, prefix: str) -> int | None:
    """Page index encoded in a show-more row id, or None when reply_id is not one."""
    head, _, page = reply_id.partition(":")
    if head != prefix or not page.isdigit():
        return None
    return int(page)


def text_message(body: str) -> OutboundMessage:
    return OutboundMessage(kind="text", body=body)


def button_message(body: str, buttons: list[Button], header: str | None = None) -> OutboundMessage:
    trimmed = tuple(Button(id=b.id, title=truncate(b.title, MAX_BUTTON_TITLE)) for b in buttons[:MAX_BUTTONS])
    return OutboundMessage(kind="buttons", body=body, buttons=trimmed, header=header)


def list_message(body: str, rows: list[ListRow], action_label: str, header: str | None = None) -> OutboundMessage:
    trimmed = tuple(
        ListRow(
            id=row.id,
            title=truncate(row.title),
            description=truncate(row.description, MAX_ROW_DESCRIPTION) if row.description else None,
        )
        for row in rows[:MAX_LIST_ROWS]
    )
    return OutboundMessage(kind="list", body=body, rows=trimmed, action_label=truncate(action_label, MAX_BUTTON_TITLE),
                           header=header)


def paginate(rows: list[ListRow], page: int, page_size: int, more_prefix: str, language: str | None) -> list[ListRow]:
    """Slice one page of rows and append a show-more row when rows remain."""
    page_size = min(page_size, MAX_LIST_ROWS - 1)
    start = page * page_size
    visible = rows[start : start + page_size]
    if start + page_size < len(rows):
        visible.append(ListRow(id=more_row_id(more_prefix, page + 1), title=translate("show_more", language)))
    return visible


def language_prompt() -> OutboundMessage:
    return button_message(
        translate("language_prompt", "en"),
        [Button(id=f"{LANG_PREFIX}en", title="English"), Button(id=f"{LANG_PREFIX}es", title="Español")],
    )


def main_menu(language: str | None) -> OutboundMessage:
    rows = [
        ListRow(id=MENU_BOOK, title=translate("menu_book", language)),
        ListRow(id=MENU_RESCHEDULE, title=translate("menu_reschedule", language)),
        ListRow(id=MENU_CANCEL, title=translate("menu_cancel", language)),
        ListRow(id=MENU_HELP, title=translate("menu_help", language)),
        ListRow(id=MENU_LANGUAGE, title=translate("menu_language", language)),
    ]
    return list_message(translate("main_menu", language), rows, translate("main_menu_button", language))


def booking_menu(language: str | None) -> OutboundMessage:
    return button_message(
        translate("booking_menu", language),
        [
            Button(id=NEXT_AVAILABLE, title=translate("booking_next_available", language)),
            Button(id=PICK_DATE, title=translate("booking_pick_date", language)),
            Button(id=HOME, title=translate("home", language)),
        ],
    )


def with_recovery(body: str, language: str | None) -> OutboundMessage:
    """Business failure message carrying a way back to the main menu."""
    return button_message(body, [Button(id=HOME, title=translate("home", language))])


def try_again_prompt(language: str | None) -> OutboundMessage:
    return button_message(
        translate("try_again_prompt", language),
        [Button(id=TRY_AGAIN, title=translate("try_again", language)), Button(id=HOME, title=translate("home", language))],
    )


def services_list(services: list[Service], page: int, page_size: int, language: str | None) -> OutboundMessage:
    rows = [ListRow(id=f"{SERVICE_PREFIX}{s.id}", title=s.name, description=_service_description(s, language))
            for s in services]
    return list_message(
        translate("choose_service", language),
        paginate(rows, page, page_size, MORE_SERVICES, language),
        translate("select", language),
    )


def staff_list(staff: list[Staff], page: int, page_size: int, language: str | None) -> OutboundMessage:
    rows = [ListRow(id=f"{STAFF_PREFIX}{s.id}", title=s.name) for s in staff]
    return list_message(
        translate("choose_staff", language),
        paginate(rows, page, page_size, MORE_STAFF, language),
        translate("select", language),
    )


def months_list(months: list[date], language: str | None) -> OutboundMessage:
    rows = [ListRow(id=f"{MONTH_PREFIX}{month_key(m)}", title=f"{MONTH_ABBREVIATIONS[m.month - 1]} {m.year}")
            for m in months]
    return list_message(translate("choose_month", language), rows, translate("select", language))


def dates_list(days: list[date], page: int, page_size: int, language: str | None) -> OutboundMessage:
    rows = [ListRow(id=f"{DATE_PREFIX}{d.isoformat()}", title=day_label(d)) for d in days]
    return list_message(
        translate("choose_date", language),
        paginate(rows, page, page_size, MORE_DATES, language),
        translate("select", language),
    )


def slots_list(slots: list[Slot], has_more: bool, language: str | None, body_key: str = "choose_slot") -> OutboundMessage:
    """Slot pages are sized by slot discovery; the show-more row resumes the scan."""
    rows = [ListRow(id=slot.id, title=slot.label()) for slot in slots[: MAX_LIST_ROWS - 1]]
    if has_more:
        rows.append(ListRow(id=MORE_SLOTS, title=translate("show_more", language)))
    return list_message(translate(body_key, language), rows, translate("select", language))


def appointments_list(
    appointments: list[Appointment],
    page: int,
    page_size: int,
    language: str | None,
    body_key: str,
) -> OutboundMessage:
    rows = [
        ListRow(
            id=f"{APPOINTMENT_PREFIX}{a.booking_id}",
            title=a.service_name or a.booking_id,
            description=_appointment_description(a),
        )
        for a in appointments
    ]
    return list_message(
        translate(body_key, language),
        paginate(rows, page, page_size, MORE_APPOINTMENTS, language),
        translate("select", language),
    )


def phone_prompt(language: str | None) -> OutboundMessage:
    return button_message(
        translate("ask_phone", language),
        [Button(id=USE_THIS_NUMBER, title=translate("use_this_number", language))],
    )


def payment_prompt(service: Service, amount: float, currency: str, url: str, language: str | None) -> OutboundMessage:
    return button_message(
        translate("payment_required", language, service=service.name, amount=f"{amount:.2f}", currency=currency, url=url),
        [
            Button(id=PAYMENT_DONE, title=translate("payment_done", language)),
            Button(id=HOME, title=translate("home", language)),
        ],
    )


def payment_pending(url: str, language: str | None) -> OutboundMessage:
    return button_message(
        translate("payment_pending", language, url=url),
        [
            Button(id=PAYMENT_DONE, title=translate("payment_done", language)),
            Button(id=HOME, title=translate("home", language)),
        ],
    )


def booking_confirmed(
    booking_id: str,
    service: Service,
    slot: Slot,
    summary_url: str | None,
    language: str | None,
) -> OutboundMessage:
    body = translate("booking_confirmed", language, service=service.name, slot=slot.label(), booking_id=booking_id)
    if summary_url:
        return OutboundMessage(kind="cta_url", body=body, url=summary_url,
                               action_label=translate("booking_link", language))
    return text_message(body)


def day_label(day: date) -> str:
    return f"{WEEKDAYS[day.weekday()]} {format_api_date(day)}"


def _service_description(service: Service, language: str | None) -> str:
    parts = [translate("minutes", language, minutes=service.duration_minutes)]
    if service.requires_payment:
        parts.append(f"{service.price:.2f} {service.currency or ''}".strip())
    return " · ".join(parts)


def _appointment_description(appointment: Appointment) -> str | None:
    parts = []
    if appointment.starts_at is not None:
        parts.append(f"{format_api_date(appointment.starts_at.date())} {appointment.starts_at:%H:%M}")
    if appointment.staff_name:
        parts.append(appointment.staff_name)
    return " · ".join(parts) or None
