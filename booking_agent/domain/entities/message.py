from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class EventKind(str, Enum):
    TEXT = "text"
    BUTTON = "button"
    LIST = "list"


@dataclass(frozen=True)
class InboundEvent:
    id: str
    sender_id: str
    kind: EventKind
    text: str = ""
    reply_id: str | None = None
    timestamp: int = 0
    platform: str = "whatsapp"

    @property
    def selection(self) -> str | None:
        """Reply id for button/list events, None for free text."""
        return self.reply_id if self.kind is not EventKind.TEXT else None
