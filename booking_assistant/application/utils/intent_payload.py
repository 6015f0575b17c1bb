from __future__ import annotations

import json
from datetime import datetime
from typing import Any

from booking_assistant.application.exceptions import ResolverContractError
from booking_assistant.domain.entities.intent import (
    BookingIntent,
    CancelIntent,
    ChatIntent,
    CheckIntent,
    IntentKind,
    RescheduleIntent,
    ResolvedIntent,
)

_INTENT_ALIASES = {
    "book": IntentKind.BOOKING,
    "agendar": IntentKind.BOOKING,
    "consultar": IntentKind.CHECK,
    "cancelar": IntentKind.CANCEL,
    "reagendar": IntentKind.RESCHEDULE,
    "conversation": IntentKind.CHAT,
    "general": IntentKind.CHAT,
}


def parse_intent_json(text: str) -> ResolvedIntent:
    try:
        data = json.loads(text)
    except Exception:
        snippet = (text or "")[:200].replace("\n", " ")
        raise ResolverContractError(f"Intent: invalid JSON. Snippet: {snippet!r}")
    return parse_intent_payload(data)


def parse_intent_payload(data: Any) -> ResolvedIntent:
    """
    Map a loosely shaped resolver payload onto the typed intent union.

    Accepted keys: intent, date (ISO 8601), human_date / humanReadableDate, reply / replyText.
    An unparseable date is dropped rather than rejected; the booking flow asks again.
    """
    if not isinstance(data, dict):
        raise ResolverContractError("Intent: expected a JSON object.")

    kind = _parse_kind(data.get("intent"))

    reply = data.get("reply", data.get("replyText", data.get("reply_text")))
    reply_text = reply.strip() if isinstance(reply, str) else ""
    if kind == IntentKind.CHAT and not reply_text:
        raise ResolverContractError("Intent: chat intent without reply text.")

    if kind == IntentKind.BOOKING:
        return BookingIntent(
            reply_text=reply_text,
            date=parse_iso_datetime(data.get("date")),
            human_readable_date=_optional_str(data.get("human_date", data.get("humanReadableDate"))),
        )
    if kind == IntentKind.RESCHEDULE:
        return RescheduleIntent(
            reply_text=reply_text,
            date=parse_iso_datetime(data.get("date")),
            human_readable_date=_optional_str(data.get("human_date", data.get("humanReadableDate"))),
        )
    if kind == IntentKind.CHECK:
        return CheckIntent(reply_text=reply_text)
    if kind == IntentKind.CANCEL:
        return CancelIntent(reply_text=reply_text)
    return ChatIntent(reply_text=reply_text)


def parse_iso_datetime(value: Any) -> datetime | None:
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        return datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None


def _parse_kind(value: Any) -> IntentKind:
    if not isinstance(value, str):
        raise ResolverContractError("Intent: 'intent' must be a string.")
    normalized = value.strip().lower()
    try:
        return IntentKind(normalized)
    except ValueError:
        pass
    if normalized in _INTENT_ALIASES:
        return _INTENT_ALIASES[normalized]
    raise ResolverContractError(f"Intent: unknown intent {value!r}.")


def _optional_str(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None
