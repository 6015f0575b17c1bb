from __future__ import annotations

import logging

import httpx

from booking_assistant.application.exceptions import MessageDeliveryError

GRAPH_API_BASE = "https://graph.facebook.com"


class WhatsAppClient:
    def __init__(
        self,
        access_token: str,
        phone_number_id: str,
        api_version: str = "v18.0",
        timeout: float = 10.0,
        http_client: httpx.Client | None = None,
    ) -> None:
        self._access_token = access_token
        self._send_endpoint = f"{GRAPH_API_BASE}/{api_version}/{phone_number_id}/messages"
        self._client = http_client or httpx.Client(timeout=timeout)
        self._logger = logging.getLogger(__name__)

    def send_text(self, recipient_id: str, text: str) -> None:
        payload = {
            "messaging_product": "whatsapp",
            "to": recipient_id,
            "type": "text",
            "text": {"body": text},
        }
        headers = {
            "Authorization": f"Bearer {self._access_token}",
            "Content-Type": "application/json",
        }
        try:
            resp = self._client.post(self._send_endpoint, headers=headers, json=payload)
        except httpx.HTTPError as e:
            self._logger.error("WhatsApp send failed: no response", extra={"sender": recipient_id, "reason": str(e)})
            raise MessageDeliveryError(f"WhatsApp API unreachable: {e}") from e

        if resp.status_code >= 400:
            error_body = resp.text
            try:
                error_json = resp.json()
                error_code = error_json.get("error", {}).get("code")
                error_message = error_json.get("error", {}).get("message")
            except Exception:
                error_code = None
                error_message = error_body

            self._logger.error(
                "WhatsApp send failed",
                extra={
                    "status": resp.status_code,
                    "error_code": error_code,
                    "reason": error_message,
                    "sender": recipient_id,
                    "text_length": len(text),
                },
            )
            raise MessageDeliveryError(f"WhatsApp API error {resp.status_code}: {error_message}")
