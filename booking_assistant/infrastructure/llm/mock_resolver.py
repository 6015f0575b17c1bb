from __future__ import annotations

import unicodedata
from datetime import datetime

from booking_assistant.application.ports.intent_resolver import IntentResolverPort
from booking_assistant.application.utils.date_parser import parse_requested_datetime
from booking_assistant.application.utils.replies import render
from booking_assistant.domain.entities.conversation_turn import ConversationTurn
from booking_assistant.domain.entities.intent import (
    BookingIntent,
    CancelIntent,
    ChatIntent,
    CheckIntent,
    RescheduleIntent,
    ResolvedIntent,
)

CANCEL_WORDS = ("cancel", "anula", "borra la cita")
RESCHEDULE_WORDS = ("reagend", "reprogram", "mover", "muev", "cambia", "reschedul", "move my")
CHECK_WORDS = ("mis citas", "que citas", "tengo cita", "tengo alguna", "cuando es", "my appointment", "do i have")
BOOKING_WORDS = ("cita", "agendar", "agenda", "reservar", "reserva", "turno", "book", "appointment")


class MockIntentResolver(IntentResolverPort):
    """Keyword rules plus the local date parser; used in dev when no OpenAI key is configured."""

    def __init__(self, language: str = "es") -> None:
        self._language = language

    def resolve(
        self,
        text: str,
        customer_name: str,
        history: list[ConversationTurn],
        now: datetime,
    ) -> ResolvedIntent:
        normalized = _strip_accents(text.lower())
        requested = parse_requested_datetime(text, now.tzinfo, now) if now.tzinfo else None

        if any(word in normalized for word in CANCEL_WORDS):
            return CancelIntent(reply_text="")
        if any(word in normalized for word in RESCHEDULE_WORDS):
            return RescheduleIntent(reply_text="", date=requested)
        if any(word in normalized for word in CHECK_WORDS):
            return CheckIntent(reply_text="")
        if any(word in normalized for word in BOOKING_WORDS) or requested is not None:
            return BookingIntent(reply_text="", date=requested)

        first_name = (customer_name or "").split(" ")[0]
        greeting = f"¡Hola, {first_name}! " if self._language == "es" else f"Hi {first_name}! "
        return ChatIntent(reply_text=greeting + render("fallback", self._language))


def _strip_accents(text: str) -> str:
    decomposed = unicodedata.normalize("NFD", text)
    return "".join(ch for ch in decomposed if unicodedata.category(ch) != "Mn")
