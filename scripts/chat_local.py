#!/usr/bin/env python3
"""
Interactive local chat harness (no HTTP, no WhatsApp).

Usage:
  STORE_PROVIDER=memory python3 scripts/chat_local.py

What it does:
- Uses one fake phone number per session as the customer address
- Sends your typed messages through the same HandleIncomingMessageUseCase as the webhook
- Prints the reply, and with /appointments or /calendar the state of both stores
"""

from __future__ import annotations

import os
import sys
import time
from datetime import datetime
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from booking_assistant.domain.entities.message import InboundMessage  # noqa: E402
from booking_assistant.wiring.dependencies import get_container, get_timezone  # noqa: E402


def _print_header(address: str) -> None:
    print("\nLocal Chat Harness")
    print("-" * 60)
    print(f"customer address: {address}")
    print("Type your message and press Enter. /reset is handled by the assistant.")
    print("Commands: /new (new customer), /history, /appointments, /calendar, /quit, /help")
    print("-" * 60)


def main() -> None:
    address = os.getenv("CHAT_ADDRESS", "570000000001")
    container = get_container()
    use_case = container["use_case"]
    repository = container["repository"]
    calendar = container["calendar"]
    tz = get_timezone()
    _print_header(address)

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
            print("  /new          -> start over as a brand-new customer address")
            print("  /history      -> show the last 10 recorded turns")
            print("  /appointments -> list upcoming appointments in the store")
            print("  /calendar     -> list events held by the calendar (mock calendar only)")
            print("  /quit         -> exit")
            continue
        if cmd == "/new":
            address = f"57{int(time.time())}"
            print(f"New customer address: {address}")
            continue
        if cmd == "/history":
            print("\n--- History (last 10) ---")
            for turn in repository.get_recent_turns(address, limit=10):
                print(f"{turn.role.value}: {turn.content}")
            continue
        if cmd == "/appointments":
            upcoming = repository.list_future_appointments(address, datetime.now(tz), limit=20)
            if not upcoming:
                print("(none)")
            for appointment in upcoming:
                print(f"{appointment.start_time.isoformat()}  event={appointment.external_event_id}")
            continue
        if cmd == "/calendar":
            events = getattr(calendar, "events", None)
            if events is None:
                print("(only available with the mock calendar)")
                continue
            for event in events.values():
                print(f"{event.id}: {event.start} -> {event.end} [{event.status}] {event.summary or ''}")
            continue

        message = InboundMessage(
            id=f"local_{int(time.time() * 1000)}",
            sender_address=address,
            text=user_text,
            timestamp=int(time.time()),
            platform="local",
        )

        try:
            reply_text = use_case.handle(message)
        except Exception as e:
            print(f"ERROR: {e}")
            continue

        print("\n--- Reply ---")
        print((reply_text or "(duplicate message ignored)").strip())
        print("-" * 60)


if __name__ == "__main__":
    main()
