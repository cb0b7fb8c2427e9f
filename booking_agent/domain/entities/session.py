from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any
from uuid import uuid4

from booking_agent.domain.entities.calendar_time import TimeOfDay
from booking_agent.domain.entities.scheduling import Appointment, Service, Slot, Staff
from booking_agent.domain.entities.step import BookingMode, Step


@dataclass
class SlotScanCursor:
    """Resumable position of the slot discovery scan."""

    origin: date
    scan_date: date
    scope: str  # service/assignee the cached day belongs to
    day_slots: list[TimeOfDay] | None = None  # None until scan_date is fetched
    day_offset: int = 0
    counter: int = 0
    offered: list[str] = field(default_factory=list)  # ids of slots already shown


@dataclass
class Credential:
    access_token: str
    issued_at: float


@dataclass
class PaymentState:
    link_id: str
    link_url: str
    amount: float
    currency: str
    payment_id: str | None = None


@dataclass
class Session:
    user_id: str
    id: str = field(default_factory=lambda: uuid4().hex)
    step: Step = Step.INIT
    language: str | None = None
    updated_at: float = 0.0
    last_processed_event_id: str | None = None

    # Booking selections, filled in wizard order.
    booking_mode: BookingMode | None = None
    service: Service | None = None
    staff: Staff | None = None
    month: date | None = None
    day: date | None = None
    slot: Slot | None = None
    customer_name: str | None = None
    customer_email: str | None = None
    customer_phone: str | None = None

    # Reschedule/cancel and help branches.
    lookup_email: str | None = None
    appointment: Appointment | None = None
    help_name: str | None = None
    help_email: str | None = None

    date_page: int = 0
    slot_cursor: SlotScanCursor | None = None
    credential: Credential | None = None
    payment: PaymentState | None = None
    attempts: dict[str, int] = field(default_factory=dict)

    # Read-only provider projections, valid for this session only.
    services: list[Service] = field(default_factory=list)
    staff_options: list[Staff] = field(default_factory=list)
    appointments: list[Appointment] = field(default_factory=list)

    def reset_selection(self) -> None:
        self.booking_mode = None
        self.service = None
        self.staff = None
        self.month = None
        self.day = None
        self.slot = None
        self.customer_name = None
        self.customer_email = None
        self.customer_phone = None
        self.lookup_email = None
        self.appointment = None
        self.help_name = None
        self.help_email = None
        self.date_page = 0
        self.slot_cursor = None
        self.payment = None
        self.attempts = {}
        self.staff_options = []
        self.appointments = []

    def to_debug_dict(self) -> dict[str, Any]:
        data = asdict(self)
        if data.get("credential"):
            data["credential"]["access_token"] = "***"
        return _jsonable(data)


def _jsonable(value: Any) -> Any:
    if isinstance(value, dict):
        return {key: _jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value
