from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from booking_assistant.domain.entities.message import InboundMessage


class WebhookEventDTO(BaseModel):
    object: str | None = None
    entry: list[dict[str, Any]] = Field(default_factory=list)

    def extract_messages(self) -> list[InboundMessage]:
        """Pull text messages out of a WhatsApp Cloud API webhook payload; everything else is skipped."""
        messages: list[InboundMessage] = []
        if self.object not in (None, "whatsapp_business_account"):
            return messages

        for entry in self.entry or []:
            for change in entry.get("changes", []) or []:
                value = change.get("value") or {}
                for msg in value.get("messages", []) or []:
                    if msg.get("type", "text") != "text":
                        continue
                    text = (msg.get("text") or {}).get("body")
                    mid = msg.get("id")
                    sender = msg.get("from")
                    timestamp = msg.get("timestamp")

                    if not (mid and sender and text and timestamp):
                        continue

                    try:
                        ts = int(timestamp)
                    except (TypeError, ValueError):
                        continue

                    messages.append(
                        InboundMessage(
                            id=str(mid),
                            sender_address=str(sender),
                            text=str(text),
                            timestamp=ts,
                            platform="whatsapp",
                        )
                    )

        return messages
