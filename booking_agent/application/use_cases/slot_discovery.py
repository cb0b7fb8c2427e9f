from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta

from booking_agent.application.exceptions import MissingSelectionError
from booking_agent.application.ports.scheduling import SchedulingPort
from booking_agent.domain.entities.scheduling import Slot
from booking_agent.domain.entities.session import Session, SlotScanCursor


@dataclass(frozen=True)
class SlotPage:
    slots: list[Slot]
    next_cursor: SlotScanCursor | None
    has_more: bool


class SlotDiscoveryEngine:
    """
    Materializes "next N open slots" on top of a provider that only answers
    "open slots on day X".

    The scan position lives on the session, so a show-more request resumes
    where the previous page stopped and days already fetched are not queried
    again. A different start date or a different service/assignee restarts
    the scan.
    """

    def __init__(self, scheduling: SchedulingPort) -> None:
        self._scheduling = scheduling
        self._logger = logging.getLogger(__name__)

    def find_next_available(
        self,
        session: Session,
        start_date: date,
        limit: int,
        max_days_to_scan: int,
    ) -> SlotPage:
        service = session.service
        if service is None:
            raise MissingSelectionError("Slot discovery requires a selected service")
        assignee_id = session.staff.id if session.staff else None
        scope = f"{service.id}|{assignee_id or ''}"

        cursor = session.slot_cursor
        if cursor is None or cursor.origin != start_date or cursor.scope != scope:
            cursor = SlotScanCursor(origin=start_date, scan_date=start_date, scope=scope)
            session.slot_cursor = cursor

        scan_end = start_date + timedelta(days=max_days_to_scan)  # exclusive
        slots: list[Slot] = []
        fetched_days = 0

        while len(slots) < limit and cursor.scan_date < scan_end:
            if cursor.day_slots is None:
                cursor.day_slots = self._scheduling.get_available_times(
                    session, service, assignee_id, cursor.scan_date
                )
                cursor.day_offset = 0
                fetched_days += 1

            while len(slots) < limit and cursor.day_offset < len(cursor.day_slots):
                start = cursor.day_slots[cursor.day_offset]
                cursor.day_offset += 1
                cursor.counter += 1
                slot = Slot.build(cursor.scan_date, start, cursor.counter)
                cursor.offered.append(slot.id)
                slots.append(slot)

            if cursor.day_offset >= len(cursor.day_slots):
                cursor.scan_date += timedelta(days=1)
                cursor.day_slots = None
                cursor.day_offset = 0

        self._logger.info(
            "Slot page scanned",
            extra={
                "user_id": session.user_id,
                "service": service.id,
                "slot_count": len(slots),
                "fetched_days": fetched_days,
            },
        )
        # Exactly `limit` results is taken as a hint that more may exist.
        return SlotPage(slots=slots, next_cursor=cursor, has_more=len(slots) == limit)
