from dataclasses import dataclass


@dataclass(frozen=True)
class InboundMessage:
    id: str
    sender_address: str
    text: str
    timestamp: int
    platform: str = "whatsapp"
