from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from booking_assistant.application.exceptions import ResolverContractError
from booking_assistant.application.utils.intent_payload import (
    parse_intent_json,
    parse_intent_payload,
    parse_iso_datetime,
)
from booking_assistant.domain.entities.intent import (
    BookingIntent,
    CancelIntent,
    ChatIntent,
    CheckIntent,
    IntentKind,
    RescheduleIntent,
)


def test_booking_payload_with_offset():
    intent = parse_intent_json(
        '{"intent": "booking", "date": "2026-10-20T15:00:00-05:00", '
        '"human_date": "martes 20 de octubre a las 3:00 PM", "reply": "¡Claro!"}'
    )

    assert isinstance(intent, BookingIntent)
    assert intent.date == datetime(2026, 10, 20, 15, 0, tzinfo=timezone(timedelta(hours=-5)))
    assert intent.human_readable_date == "martes 20 de octubre a las 3:00 PM"
    assert intent.reply_text == "¡Claro!"


def test_camel_case_keys_are_accepted():
    intent = parse_intent_payload(
        {"intent": "reschedule", "date": "2026-10-21T16:00:00Z", "humanReadableDate": "miércoles", "replyText": "ok"}
    )

    assert isinstance(intent, RescheduleIntent)
    assert intent.date == datetime(2026, 10, 21, 16, 0, tzinfo=timezone.utc)
    assert intent.human_readable_date == "miércoles"


def test_booking_with_unparseable_date_keeps_intent():
    intent = parse_intent_payload({"intent": "booking", "date": "mañana a las 3"})

    assert isinstance(intent, BookingIntent)
    assert intent.date is None


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("check", CheckIntent),
        ("CANCEL", CancelIntent),
        ("agendar", BookingIntent),
        ("consultar", CheckIntent),
        ("cancelar", CancelIntent),
        ("reagendar", RescheduleIntent),
    ],
)
def test_intent_names_and_aliases(raw, expected):
    assert isinstance(parse_intent_payload({"intent": raw, "reply": "x"}), expected)


def test_chat_requires_reply_text():
    with pytest.raises(ResolverContractError):
        parse_intent_payload({"intent": "chat", "reply": "   "})


def test_chat_payload():
    intent = parse_intent_payload({"intent": "general", "reply": "Abrimos a las 9."})

    assert isinstance(intent, ChatIntent)
    assert intent.kind == IntentKind.CHAT
    assert not intent.fallback


@pytest.mark.parametrize("payload", [{"intent": "order_pizza"}, {"intent": 3}, {}, ["booking"], "booking"])
def test_malformed_payloads_raise_contract_error(payload):
    with pytest.raises(ResolverContractError):
        parse_intent_payload(payload)


def test_invalid_json_raises_contract_error():
    with pytest.raises(ResolverContractError) as exc:
        parse_intent_json("Sure! Here is the JSON: {intent: booking")
    assert "invalid JSON" in str(exc.value)


def test_parse_iso_datetime_rejects_non_strings():
    assert parse_iso_datetime(None) is None
    assert parse_iso_datetime(12) is None
    assert parse_iso_datetime("") is None
