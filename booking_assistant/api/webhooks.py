from __future__ import annotations

import json
import logging

from fastapi import APIRouter, BackgroundTasks, HTTPException, Query, Request, Response
from fastapi.responses import PlainTextResponse

from booking_assistant.application.dto.webhook_event import WebhookEventDTO
from booking_assistant.core.config import settings
from booking_assistant.infrastructure.whatsapp.webhook_verify import verify_post_signature, verify_subscription
from booking_assistant.wiring.dependencies import get_handle_incoming_message_use_case


router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/webhook")
def verify_webhook(
    hub_mode: str | None = Query(None, alias="hub.mode"),
    hub_verify_token: str | None = Query(None, alias="hub.verify_token"),
    hub_challenge: str | None = Query(None, alias="hub.challenge"),
):
    challenge = verify_subscription(hub_mode, hub_verify_token, hub_challenge, settings.META_VERIFY_TOKEN)
    if challenge is not None:
        logger.info("Webhook verified")
        return PlainTextResponse(challenge)
    logger.warning("Webhook verification failed")
    raise HTTPException(status_code=403, detail="Verification failed")


@router.post("/webhook")
async def whatsapp_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
) -> Response:
    try:
        try:
            use_case = get_handle_incoming_message_use_case()
        except Exception as e:
            logger.exception("Failed to initialize use case", extra={"reason": str(e)})
            return Response(status_code=500)

        body = await request.body()
        signature = request.headers.get("X-Hub-Signature-256")
        if not verify_post_signature(body, signature, settings.META_APP_SECRET, settings.ENV):
            return Response(status_code=403)

        try:
            payload = json.loads(body.decode("utf-8")) if body else {}
        except Exception:
            logger.exception("Failed to parse webhook body")
            return Response(status_code=400)

        try:
            event = WebhookEventDTO.model_validate(payload)
            messages = event.extract_messages()

            logger.info("Webhook received", extra={"message_count": len(messages)})

            # Acknowledge immediately; each message is handled in its own task.
            for message in messages:
                background_tasks.add_task(use_case.handle, message)

            return Response(status_code=200)
        except Exception as e:
            logger.exception("Error processing webhook event", extra={"reason": str(e)})
            return Response(status_code=500)
    except Exception as e:
        logger.exception("Fatal error in webhook handler", extra={"reason": str(e)})
        return Response(status_code=500)
