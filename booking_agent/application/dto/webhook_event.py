from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from booking_agent.domain.entities.message import EventKind, InboundEvent


class WebhookEventDTO(BaseModel):
    object: str | None = None
    entry: list[dict[str, Any]] = Field(default_factory=list)

    def extract_events(self) -> list[InboundEvent]:
        events: list[InboundEvent] = []
        for entry in self.entry or []:
            for change in entry.get("changes", []) or []:
                value = change.get("value") or {}
                # Delivery/read status callbacks carry no "messages" and are skipped.
                for msg in value.get("messages", []) or []:
                    event = _to_event(msg)
                    if event is not None:
                        events.append(event)
        return events


def _to_event(msg: dict[str, Any]) -> InboundEvent | None:
    mid = msg.get("id")
    sender = msg.get("from")
    if not (mid and sender):
        return None

    try:
        timestamp = int(msg.get("timestamp") or 0)
    except (TypeError, ValueError):
        timestamp = 0
    msg_type = msg.get("type")

    if msg_type == "text":
        body = (msg.get("text") or {}).get("body")
        if not body:
            return None
        return InboundEvent(id=str(mid), sender_id=str(sender), kind=EventKind.TEXT, text=str(body), timestamp=timestamp)

    if msg_type == "interactive":
        interactive = msg.get("interactive") or {}
        if interactive.get("type") == "button_reply":
            reply, kind = interactive.get("button_reply") or {}, EventKind.BUTTON
        elif interactive.get("type") == "list_reply":
            reply, kind = interactive.get("list_reply") or {}, EventKind.LIST
        else:
            return None
        if not reply.get("id"):
            return None
        return InboundEvent(
            id=str(mid),
            sender_id=str(sender),
            kind=kind,
            text=str(reply.get("title") or ""),
            reply_id=str(reply["id"]),
            timestamp=timestamp,
        )

    if msg_type == "button":
        # Quick-reply buttons on template messages.
        button = msg.get("button") or {}
        payload = button.get("payload") or button.get("text")
        if not payload:
            return None
        return InboundEvent(
            id=str(mid),
            sender_id=str(sender),
            kind=EventKind.BUTTON,
            text=str(button.get("text") or ""),
            reply_id=str(payload),
            timestamp=timestamp,
        )

    return None
