from __future__ import annotations

import logging
from typing import Any

import httpx

from booking_agent.domain.entities.outbound import OutboundMessage


def to_whatsapp_payload(recipient_id: str, message: OutboundMessage) -> dict[str, Any]:
    payload: dict[str, Any] = {"messaging_product": "whatsapp", "recipient_type": "individual", "to": recipient_id}
    if message.kind == "text":
        payload["type"] = "text"
        payload["text"] = {"body": message.body, "preview_url": True}
        return payload

    interactive: dict[str, Any] = {"body": {"text": message.body}}
    if message.header:
        interactive["header"] = {"type": "text", "text": message.header}
    if message.footer:
        interactive["footer"] = {"text": message.footer}

    if message.kind == "buttons":
        interactive["type"] = "button"
        interactive["action"] = {
            "buttons": [{"type": "reply", "reply": {"id": b.id, "title": b.title}} for b in message.buttons]
        }
    elif message.kind == "list":
        rows = []
        for row in message.rows:
            item = {"id": row.id, "title": row.title}
            if row.description:
                item["description"] = row.description
            rows.append(item)
        interactive["type"] = "list"
        interactive["action"] = {
            "button": message.action_label or "Select",
            "sections": [{"title": (message.header or "Options")[:24], "rows": rows}],
        }
    elif message.kind == "cta_url":
        interactive["type"] = "cta_url"
        interactive["action"] = {
            "name": "cta_url",
            "parameters": {"display_text": message.action_label or "Open", "url": message.url},
        }
    else:
        raise ValueError(f"Unsupported outbound message kind: {message.kind}")

    payload["type"] = "interactive"
    payload["interactive"] = interactive
    return payload


class WhatsAppClient:
    def __init__(self, access_token: str, phone_number_id: str, api_version: str = "v17.0") -> None:
        self._access_token = access_token
        self._send_endpoint = f"https://graph.facebook.com/{api_version}/{phone_number_id}/messages"
        self._client = httpx.Client(timeout=10.0)
        self._logger = logging.getLogger(__name__)

    def send(self, recipient_id: str, message: OutboundMessage) -> bool:
        payload = to_whatsapp_payload(recipient_id, message)
        headers = {"Authorization": f"Bearer {self._access_token}"}
        try:
            resp = self._client.post(self._send_endpoint, headers=headers, json=payload)
        except httpx.TransportError as e:
            self._logger.error("WhatsApp send failed", extra={"user_id": recipient_id, "reason": str(e)})
            return False

        if resp.status_code >= 400:
            try:
                error_json = resp.json()
                error_code = error_json.get("error", {}).get("code")
                error_message = error_json.get("error", {}).get("message")
            except Exception:
                error_code = None
                error_message = resp.text

            self._logger.error(
                "WhatsApp send failed",
                extra={
                    "status": resp.status_code,
                    "error_code": error_code,
                    "reason": error_message,
                    "user_id": recipient_id,
                    "message_kind": message.kind,
                },
            )
            return False
        return True
