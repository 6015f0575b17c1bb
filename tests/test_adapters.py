from __future__ import annotations

import json
from datetime import timedelta
from types import SimpleNamespace

import httpx
import pytest

from booking_assistant.application.exceptions import (
    CalendarError,
    MessageDeliveryError,
    ResolverContractError,
    ResolverUpstreamError,
)
from booking_assistant.core.config import settings
from booking_assistant.domain.entities.calendar_event import AvailabilityStatus, DeleteOutcome
from booking_assistant.domain.entities.conversation_turn import ConversationTurn, TurnRole
from booking_assistant.domain.entities.intent import BookingIntent
from booking_assistant.infrastructure.calendar.google_calendar import GoogleAccessTokenProvider, GoogleCalendar
from booking_assistant.infrastructure.llm.openai_resolver import OpenAIIntentResolver
from booking_assistant.infrastructure.llm.prompts import build_intent_prompt
from booking_assistant.infrastructure.whatsapp.whatsapp_client import WhatsAppClient

from conftest import NOW, PHONE, TOMORROW_3PM


class FakeGoogle:
    """Minimal stand-in for the OAuth token endpoint and the Calendar v3 events resource."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.items: list[dict] = []
        self.token_calls = 0
        self.fail_status: int | None = None
        self.raw_body: str | None = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.host == "oauth2.googleapis.com":
            self.token_calls += 1
            return httpx.Response(200, json={"access_token": "ya29.token", "expires_in": 3599})
        if self.fail_status:
            return httpx.Response(self.fail_status, json={"error": {"message": "backend"}})
        if self.raw_body is not None:
            return httpx.Response(200, text=self.raw_body)
        if request.method == "GET":
            return httpx.Response(200, json={"items": self.items})
        if request.method == "POST":
            return httpx.Response(200, json={"id": "evt_google_1"})
        if request.method == "PATCH":
            return httpx.Response(200, json={"id": request.url.path.rsplit("/", 1)[-1]})
        if request.method == "DELETE":
            if request.url.path.endswith("/gone"):
                return httpx.Response(410)
            return httpx.Response(204)
        return httpx.Response(405)


@pytest.fixture
def google():
    fake = FakeGoogle()
    client = httpx.Client(transport=httpx.MockTransport(fake))
    tokens = GoogleAccessTokenProvider("client-id", "client-secret", "refresh", http_client=client)
    return fake, GoogleCalendar("barberia@example.com", token_provider=tokens, http_client=client)


def test_google_list_events_filters_cancelled_and_transparent(google):
    fake, calendar = google
    end = TOMORROW_3PM + timedelta(hours=1)
    fake.items = [
        {"id": "a", "status": "cancelled", "start": {"dateTime": TOMORROW_3PM.isoformat()}, "end": {"dateTime": end.isoformat()}},
        {"id": "b", "transparency": "transparent", "start": {"dateTime": "2026-10-20T15:00:00-05:00"}, "end": {"dateTime": "2026-10-20T16:00:00-05:00"}},
    ]

    assert calendar.check_availability(TOMORROW_3PM, end).status == AvailabilityStatus.FREE

    fake.items.append({"id": "c", "start": {"dateTime": "2026-10-20T20:30:00Z"}, "end": {"dateTime": "2026-10-20T21:30:00Z"}})
    result = calendar.check_availability(TOMORROW_3PM, end)
    assert result.status == AvailabilityStatus.BUSY
    assert result.conflicts == ("c",)

    listing = [r for r in fake.requests if r.method == "GET"][-1]
    assert listing.url.path.endswith("/events")
    assert listing.url.params["singleEvents"] == "true"
    assert listing.headers["Authorization"] == "Bearer ya29.token"


def test_google_token_is_cached(google):
    fake, calendar = google

    calendar.list_events(TOMORROW_3PM, TOMORROW_3PM + timedelta(hours=1))
    calendar.list_events(TOMORROW_3PM, TOMORROW_3PM + timedelta(hours=1))

    assert fake.token_calls == 1


def test_google_http_error_becomes_availability_error(google):
    fake, calendar = google
    fake.fail_status = 503

    result = calendar.check_availability(TOMORROW_3PM, TOMORROW_3PM + timedelta(hours=1))

    assert result.status == AvailabilityStatus.ERROR
    assert "503" in result.detail


def test_google_create_update_delete(google):
    fake, calendar = google
    end = TOMORROW_3PM + timedelta(hours=1)

    event_id = calendar.create_event(TOMORROW_3PM, end, "Cita: Jordan Smith", attendee_email="jordan@example.com")
    created = json.loads([r for r in fake.requests if r.method == "POST" and "events" in r.url.path][0].content)
    calendar.update_event(event_id, end, end + timedelta(hours=1))
    outcome = calendar.delete_event(event_id)

    assert event_id == "evt_google_1"
    assert created["start"] == {"dateTime": "2026-10-20T15:00:00-05:00"}
    assert created["attendees"] == [{"email": "jordan@example.com"}]
    assert outcome == DeleteOutcome.DELETED
    assert calendar.delete_event("gone") == DeleteOutcome.NOT_FOUND


def test_google_write_failure_raises_calendar_error(google):
    fake, calendar = google
    fake.fail_status = 403

    with pytest.raises(CalendarError):
        calendar.create_event(TOMORROW_3PM, TOMORROW_3PM + timedelta(hours=1), "Cita")


def test_google_token_refresh_failure():
    client = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(400, json={"error": "invalid_grant"})))
    tokens = GoogleAccessTokenProvider("id", "secret", "revoked", http_client=client)
    calendar = GoogleCalendar("barberia@example.com", token_provider=tokens, http_client=client)

    result = calendar.check_availability(TOMORROW_3PM, TOMORROW_3PM + timedelta(hours=1))

    assert result.status == AvailabilityStatus.ERROR


def test_google_non_json_listing_becomes_availability_error(google):
    fake, calendar = google
    fake.raw_body = "<html>502 Bad Gateway</html>"

    result = calendar.check_availability(TOMORROW_3PM, TOMORROW_3PM + timedelta(hours=1))

    assert result.status == AvailabilityStatus.ERROR
    assert "not valid JSON" in result.detail


def test_google_non_object_listing_becomes_availability_error(google):
    fake, calendar = google
    fake.raw_body = "[]"

    result = calendar.check_availability(TOMORROW_3PM, TOMORROW_3PM + timedelta(hours=1))

    assert result.status == AvailabilityStatus.ERROR


def test_google_non_json_create_raises_calendar_error(google):
    fake, calendar = google
    fake.raw_body = "<html>proxy error</html>"

    with pytest.raises(CalendarError):
        calendar.create_event(TOMORROW_3PM, TOMORROW_3PM + timedelta(hours=1), "Cita")


def test_google_non_json_token_response_becomes_availability_error():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "oauth2.googleapis.com":
            return httpx.Response(200, text="<html>captive portal</html>")
        return httpx.Response(200, json={"items": []})

    client = httpx.Client(transport=httpx.MockTransport(handler))
    tokens = GoogleAccessTokenProvider("id", "secret", "refresh", http_client=client)
    calendar = GoogleCalendar("barberia@example.com", token_provider=tokens, http_client=client)

    result = calendar.check_availability(TOMORROW_3PM, TOMORROW_3PM + timedelta(hours=1))

    assert result.status == AvailabilityStatus.ERROR
    assert "calendar.token" in result.detail


def test_whatsapp_client_sends_text_payload():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"messages": [{"id": "wamid.out"}]})

    client = WhatsAppClient("token", "PHONE_ID", http_client=httpx.Client(transport=httpx.MockTransport(handler)))
    client.send_text(PHONE, "Hola")

    request = seen[0]
    assert str(request.url) == "https://graph.facebook.com/v18.0/PHONE_ID/messages"
    assert request.headers["Authorization"] == "Bearer token"
    assert json.loads(request.content) == {
        "messaging_product": "whatsapp",
        "to": PHONE,
        "type": "text",
        "text": {"body": "Hola"},
    }


def test_whatsapp_client_error_raises_delivery_error():
    transport = httpx.MockTransport(
        lambda request: httpx.Response(401, json={"error": {"code": 190, "message": "Invalid OAuth access token"}})
    )
    client = WhatsAppClient("expired", "PHONE_ID", http_client=httpx.Client(transport=transport))

    with pytest.raises(MessageDeliveryError) as exc:
        client.send_text(PHONE, "Hola")
    assert "Invalid OAuth access token" in str(exc.value)


def _fake_openai(content=None, error=None):
    def create(**kwargs):
        if error is not None:
            raise error
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])

    return SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))


@pytest.fixture
def openai_resolver(monkeypatch):
    monkeypatch.setattr(settings, "OPENAI_API_KEY", "sk-test")
    return OpenAIIntentResolver(business_name="Barbería Central", language="es")


def test_openai_resolver_parses_json(openai_resolver):
    openai_resolver.client = _fake_openai(
        '{"intent": "booking", "date": "2026-10-20T15:00:00-05:00", "human_date": "mañana 3pm", "reply": "Listo"}'
    )

    intent = openai_resolver.resolve("cita mañana a las 3pm", "Jordan Smith", [], NOW)

    assert isinstance(intent, BookingIntent)
    assert intent.date == TOMORROW_3PM


def test_openai_resolver_upstream_error(openai_resolver):
    openai_resolver.client = _fake_openai(error=TimeoutError("read timeout"))

    with pytest.raises(ResolverUpstreamError):
        openai_resolver.resolve("hola", "Jordan", [], NOW)


def test_openai_resolver_empty_content(openai_resolver):
    openai_resolver.client = _fake_openai(content="")

    with pytest.raises(ResolverContractError):
        openai_resolver.resolve("hola", "Jordan", [], NOW)


def test_prompt_carries_offset_and_history():
    history = [
        ConversationTurn(PHONE, TurnRole.CUSTOMER, "hola", NOW.timestamp()),
        ConversationTurn(PHONE, TurnRole.ASSISTANT, "¡Hola Jordan!", NOW.timestamp()),
    ]

    prompt = build_intent_prompt("cita mañana", "Jordan Smith", history, NOW, "Barbería Central", "es")

    assert "-05:00" in prompt
    assert "Customer: hola" in prompt
    assert "Assistant: ¡Hola Jordan!" in prompt
    assert "Spanish" in prompt
    assert "Customer message: cita mañana" in prompt
