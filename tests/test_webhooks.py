from __future__ import annotations

import hashlib
import hmac
import json

import pytest
from fastapi.testclient import TestClient

from booking_assistant.api import webhooks
from booking_assistant.application.dto.webhook_event import WebhookEventDTO
from booking_assistant.core.config import settings
from booking_assistant.infrastructure.whatsapp.webhook_verify import verify_post_signature, verify_subscription
from booking_assistant.main import app

from conftest import PHONE, build_handler


def _payload(*messages: dict) -> dict:
    return {
        "object": "whatsapp_business_account",
        "entry": [
            {
                "id": "WABA_ID",
                "changes": [
                    {
                        "field": "messages",
                        "value": {
                            "messaging_product": "whatsapp",
                            "metadata": {"phone_number_id": "PHONE_ID"},
                            "messages": list(messages),
                        },
                    }
                ],
            }
        ],
    }


def _text(body: str, mid: str = "wamid.A", sender: str = PHONE) -> dict:
    return {"from": sender, "id": mid, "timestamp": "1792422000", "type": "text", "text": {"body": body}}


def test_extract_text_messages():
    messages = WebhookEventDTO.model_validate(_payload(_text("Hola"))).extract_messages()

    assert len(messages) == 1
    message = messages[0]
    assert (message.id, message.sender_address, message.text, message.timestamp) == ("wamid.A", PHONE, "Hola", 1792422000)


def test_non_text_and_incomplete_messages_are_skipped():
    image = {"from": PHONE, "id": "wamid.B", "timestamp": "1", "type": "image", "image": {"id": "media"}}
    no_body = {"from": PHONE, "id": "wamid.C", "timestamp": "1", "type": "text", "text": {}}
    bad_ts = _text("hola", mid="wamid.D") | {"timestamp": "yesterday"}

    messages = WebhookEventDTO.model_validate(_payload(image, no_body, bad_ts, _text("ok", mid="wamid.E"))).extract_messages()

    assert [m.id for m in messages] == ["wamid.E"]


def test_status_updates_produce_no_messages():
    payload = _payload()
    payload["entry"][0]["changes"][0]["value"] = {"statuses": [{"id": "wamid.A", "status": "delivered"}]}

    assert WebhookEventDTO.model_validate(payload).extract_messages() == []


def test_other_objects_are_ignored():
    payload = _payload(_text("Hola")) | {"object": "instagram"}

    assert WebhookEventDTO.model_validate(payload).extract_messages() == []


def test_verify_subscription():
    assert verify_subscription("subscribe", "secret", "1158201444", "secret") == "1158201444"
    assert verify_subscription("subscribe", "wrong", "1158201444", "secret") is None
    assert verify_subscription("unsubscribe", "secret", "1158201444", "secret") is None
    assert verify_subscription("subscribe", "", "1158201444", "") is None


def test_post_signature():
    body = b'{"object":"whatsapp_business_account"}'
    signature = "sha256=" + hmac.new(b"app-secret", body, hashlib.sha256).hexdigest()

    assert verify_post_signature(body, signature, "app-secret", "prod")
    assert not verify_post_signature(body + b" ", signature, "app-secret", "prod")
    assert not verify_post_signature(body, signature, None, "prod")
    assert not verify_post_signature(body, None, "app-secret", "prod")
    assert verify_post_signature(body, None, "app-secret", "dev")


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def wired(monkeypatch, repository, calendar, resolver, platform):
    handler = build_handler(repository, calendar, resolver, platform)
    monkeypatch.setattr(webhooks, "get_handle_incoming_message_use_case", lambda: handler)
    monkeypatch.setattr(settings, "ENV", "dev")
    return handler


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_get_webhook_echoes_challenge(client, monkeypatch):
    monkeypatch.setattr(settings, "META_VERIFY_TOKEN", "verify-me")

    response = client.get(
        "/webhook", params={"hub.mode": "subscribe", "hub.verify_token": "verify-me", "hub.challenge": "42"}
    )

    assert response.status_code == 200
    assert response.text == "42"


def test_get_webhook_rejects_wrong_token(client, monkeypatch):
    monkeypatch.setattr(settings, "META_VERIFY_TOKEN", "verify-me")

    response = client.get("/webhook", params={"hub.mode": "subscribe", "hub.verify_token": "nope", "hub.challenge": "42"})

    assert response.status_code == 403


def test_post_webhook_handles_message(client, wired, platform, repository):
    response = client.post("/webhook", json=_payload(_text("Hola")))

    assert response.status_code == 200
    assert len(platform.sent) == 1
    assert platform.sent[0][0] == PHONE
    assert repository.get_customer(PHONE) is not None


def test_post_webhook_redelivery_replies_once(client, wired, platform):
    client.post("/webhook", json=_payload(_text("Hola", mid="wamid.same")))
    client.post("/webhook", json=_payload(_text("Hola", mid="wamid.same")))

    assert len(platform.sent) == 1


def test_post_webhook_with_bad_signature_is_rejected(client, wired, platform, monkeypatch):
    monkeypatch.setattr(settings, "ENV", "prod")
    monkeypatch.setattr(settings, "META_APP_SECRET", "app-secret")

    response = client.post(
        "/webhook",
        content=json.dumps(_payload(_text("Hola"))),
        headers={"Content-Type": "application/json", "X-Hub-Signature-256": "sha256=deadbeef"},
    )

    assert response.status_code == 403
    assert platform.sent == []


def test_post_webhook_with_invalid_json(client, wired):
    response = client.post("/webhook", content=b"{not json", headers={"Content-Type": "application/json"})

    assert response.status_code == 400
