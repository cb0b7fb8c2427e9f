from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ListRow:
    id: str
    title: str
    description: str | None = None


@dataclass(frozen=True)
class Button:
    id: str
    title: str


@dataclass(frozen=True)
class OutboundMessage:
    kind: str  # "text", "buttons", "list", "cta_url"
    body: str
    buttons: tuple[Button, ...] = ()
    rows: tuple[ListRow, ...] = ()
    action_label: str | None = None  # list button label or cta link label
    url: str | None = None
    header: str | None = None
    footer: str | None = None
