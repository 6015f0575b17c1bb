#!/usr/bin/env python3
from __future__ import annotations

import argparse
import hashlib
import hmac
import json
import time
from typing import Any

import httpx
from httpx import ConnectError


def build_payload(sender: str, phone_number_id: str, text: str) -> dict[str, Any]:
    now = int(time.time())
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
                            "metadata": {"phone_number_id": phone_number_id},
                            "contacts": [{"wa_id": sender, "profile": {"name": "Local Tester"}}],
                            "messages": [
                                {
                                    "from": sender,
                                    "id": f"wamid.local_{now}_{time.time_ns() % 1000000}",
                                    "timestamp": str(now),
                                    "type": "text",
                                    "text": {"body": text},
                                }
                            ],
                        },
                    }
                ],
            }
        ],
    }


def sign_body(secret: str, body: bytes) -> str:
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return f"sha256={digest}"


def main() -> None:
    parser = argparse.ArgumentParser(description="Send a WhatsApp Cloud API style webhook POST")
    parser.add_argument("--url", default="http://127.0.0.1:8001/webhook")
    parser.add_argument("--sender", default="570000000001")
    parser.add_argument("--phone-id", default="PHONE_ID")
    parser.add_argument("--text", default="Hola")
    parser.add_argument("--app-secret", default="", help="Meta app secret for signature")
    args = parser.parse_args()

    payload = build_payload(args.sender, args.phone_id, args.text)
    body = json.dumps(payload).encode("utf-8")

    headers = {"Content-Type": "application/json"}
    if args.app_secret:
        headers["X-Hub-Signature-256"] = sign_body(args.app_secret, body)

    try:
        resp = httpx.post(args.url, content=body, headers=headers, timeout=10.0)
    except ConnectError:
        print("Connection refused. Is the FastAPI server running?")
        print("Try: uvicorn booking_assistant.main:app --reload --port 8001")
        return

    print(resp.status_code)
    if resp.text:
        print(resp.text)


if __name__ == "__main__":
    main()
