from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class TurnRole(str, Enum):
    CUSTOMER = "customer"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class ConversationTurn:
    customer_address: str
    role: TurnRole
    content: str
    created_at: float
