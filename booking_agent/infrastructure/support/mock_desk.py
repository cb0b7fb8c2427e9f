from __future__ import annotations

import logging

from booking_agent.application.ports.support import SupportTicketPort
from booking_agent.domain.entities.session import Session


class MockTicketSink(SupportTicketPort):
    def __init__(self) -> None:
        self.tickets: list[dict[str, str]] = []
        self._logger = logging.getLogger(__name__)

    def create_ticket(self, session: Session, name: str, email: str, phone: str, description: str) -> str | None:
        self.tickets.append({"name": name, "email": email, "phone": phone, "description": description})
        reference = f"T-{len(self.tickets):04d}"
        self._logger.info("Mock support ticket created", extra={"user_id": session.user_id, "reason": reference})
        return reference
