from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from booking_assistant.domain.entities.conversation_turn import ConversationTurn
from booking_assistant.domain.entities.intent import ResolvedIntent


class IntentResolverPort(ABC):
    @abstractmethod
    def resolve(
        self,
        text: str,
        customer_name: str,
        history: list[ConversationTurn],
        now: datetime,
    ) -> ResolvedIntent:
        """
        Classify a customer message into one of the five intents.

        Requirements:
        - `now` is timezone-aware; relative dates ("mañana", "el viernes") resolve against it
        - `date` on booking/reschedule intents carries a fixed UTC offset when present
        - `reply_text` is always a non-empty string usable as a chat reply

        Raises:
            ResolverUpstreamError: provider unreachable or timed out
            ResolverContractError: output could not be mapped to an intent
        """
        raise NotImplementedError
