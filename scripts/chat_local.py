#!/usr/bin/env python3
"""
Interactive local chat harness (no HTTP, no WhatsApp).

Usage:
  ENV=dev python3 scripts/chat_local.py

What it does:
- Keeps a stable sender id for the session
- Sends your typed messages through the same HandleIncomingEventUseCase
- Prints every outbound message, including list rows and buttons with their ids
- A line starting with "#" taps the button or list row with that id
"""

from __future__ import annotations

import os
import sys
import time
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from booking_agent.domain.entities.message import EventKind, InboundEvent  # noqa: E402
from booking_agent.domain.entities.outbound import OutboundMessage  # noqa: E402
from booking_agent.wiring.dependencies import get_container  # noqa: E402


def _print_header(sender_id: str) -> None:
    print("\nLocal Chat Harness")
    print("-" * 60)
    print(f"sender_id: {sender_id}")
    print("Type a message, or #<id> to tap a button/list row.")
    print("Commands: /new (new sender), /session, /pay, /quit, /help")
    print("-" * 60)


def _print_message(message: OutboundMessage) -> None:
    print(f"\n(bot:{message.kind}) {message.body}")
    for button in message.buttons:
        print(f"   [#{button.id}] {button.title}")
    for row in message.rows:
        suffix = f" - {row.description}" if row.description else ""
        print(f"   #{row.id}  {row.title}{suffix}")
    if message.url:
        print(f"   -> {message.action_label}: {message.url}")


def _event(sender_id: str, user_text: str, last: OutboundMessage | None) -> InboundEvent:
    event_id = f"wamid.local_{int(time.time() * 1000)}"
    if not user_text.startswith("#"):
        return InboundEvent(id=event_id, sender_id=sender_id, kind=EventKind.TEXT, text=user_text,
                            timestamp=int(time.time()), platform="local")
    reply_id = user_text[1:].strip()
    kind = EventKind.LIST if last is not None and last.kind == "list" else EventKind.BUTTON
    return InboundEvent(id=event_id, sender_id=sender_id, kind=kind, reply_id=reply_id,
                        timestamp=int(time.time()), platform="local")


def main() -> None:
    sender_id = os.getenv("CHAT_SENDER_ID", "919800000001")
    container = get_container()
    use_case = container["use_case"]
    store = container["store"]
    platform = container["platform"]
    payments = container["payments"]
    if not hasattr(platform, "sent"):
        print("Local chat needs the mock WhatsApp platform (run with ENV=dev and no WHATSAPP_TOKEN).")
        return
    _print_header(sender_id)
    last: OutboundMessage | None = None

    while True:
        try:
            user_text = input("\n> ").strip()
        except (EOFError, KeyboardInterrupt):
            print("\nBye!")
            return

        if not user_text:
            continue

        cmd = user_text.lower()
        if cmd in ("/quit", "/exit"):
            print("Bye!")
            return
        if cmd == "/help":
            print("Commands:")
            print("  /new     -> start over with a new sender id")
            print("  /session -> show the current session state")
            print("  /pay     -> mark the pending mock payment link as paid")
            print("  /quit    -> exit")
            continue
        if cmd == "/new":
            sender_id = f"9198{int(time.time()) % 10**8:08d}"
            print(f"New sender_id: {sender_id}")
            continue
        if cmd == "/session":
            session = store.get(sender_id)
            print(session.to_debug_dict())
            continue
        if cmd == "/pay":
            session = store.get(sender_id)
            if session.payment is None or not hasattr(payments, "mark_paid"):
                print("(no mock payment pending)")
                continue
            payments.mark_paid(session.payment.link_id)
            print(f"Marked {session.payment.link_id} as paid. Tap #payment:done or wait for the callback.")
            continue

        before = len(platform.sent)
        use_case.handle(_event(sender_id, user_text, last))
        outbound = [message for _, message in platform.sent[before:]]
        if not outbound:
            print("(no outbound message)")
            continue
        for message in outbound:
            _print_message(message)
        last = outbound[-1]


if __name__ == "__main__":
    main()
