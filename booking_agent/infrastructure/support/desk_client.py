from __future__ import annotations

import logging

from booking_agent.application.ports.support import SupportTicketPort
from booking_agent.domain.entities.session import Session
from booking_agent.infrastructure.http.resilient_client import ApiRequest, ResilientApiClient


class ZohoDeskTicketClient(SupportTicketPort):
    def __init__(
        self,
        api: ResilientApiClient,
        base_url: str,
        org_id: str | None,
        department_id: str | None,
    ) -> None:
        self._api = api
        self._base_url = base_url.rstrip("/")
        self._org_id = org_id
        self._department_id = department_id
        self._logger = logging.getLogger(__name__)

    def create_ticket(self, session: Session, name: str, email: str, phone: str, description: str) -> str | None:
        payload = {
            "subject": f"WhatsApp help request from {name}",
            "departmentId": self._department_id,
            "description": description,
            "channel": "Chat",
            "contact": {"lastName": name, "email": email, "phone": phone},
        }
        headers = {"orgId": self._org_id} if self._org_id else None
        resp = self._api.call(
            ApiRequest("POST", f"{self._base_url}/tickets", json=payload, headers=headers),
            session,
        )
        data = resp.json_or_empty()
        if not resp.ok or not (data.get("ticketNumber") or data.get("id")):
            self._logger.error("Support ticket creation failed", extra={"status": resp.status, "user_id": session.user_id})
            return None
        return str(data.get("ticketNumber") or data["id"])
