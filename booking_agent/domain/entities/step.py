from enum import Enum


class Step(str, Enum):
    INIT = "INIT"
    AWAIT_LANGUAGE = "AWAIT_LANGUAGE"
    AWAIT_MAIN = "AWAIT_MAIN"
    AWAIT_BOOKING_MENU = "AWAIT_BOOKING_MENU"
    AWAIT_SERVICE = "AWAIT_SERVICE"
    AWAIT_STAFF = "AWAIT_STAFF"
    AWAIT_MONTH = "AWAIT_MONTH"
    AWAIT_DATE = "AWAIT_DATE"
    AWAIT_SLOT = "AWAIT_SLOT"
    AWAIT_NAME = "AWAIT_NAME"
    AWAIT_EMAIL = "AWAIT_EMAIL"
    AWAIT_PHONE = "AWAIT_PHONE"
    AWAIT_PAYMENT = "AWAIT_PAYMENT"
    AWAIT_HELP_NAME = "AWAIT_HELP_NAME"
    AWAIT_HELP_EMAIL = "AWAIT_HELP_EMAIL"
    AWAIT_HELP_DESCRIPTION = "AWAIT_HELP_DESCRIPTION"
    AWAIT_RESCHEDULE_EMAIL = "AWAIT_RESCHEDULE_EMAIL"
    AWAIT_CANCEL_EMAIL = "AWAIT_CANCEL_EMAIL"
    AWAIT_APPOINTMENT_LIST_RESCHEDULE = "AWAIT_APPOINTMENT_LIST_RESCHEDULE"
    AWAIT_APPOINTMENT_LIST_CANCEL = "AWAIT_APPOINTMENT_LIST_CANCEL"
    AWAIT_RESCHEDULE_SLOT = "AWAIT_RESCHEDULE_SLOT"


class BookingMode(str, Enum):
    NEXT_AVAILABLE = "next_available"
    PICK_DATE = "pick_date"
