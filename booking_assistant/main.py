from fastapi import FastAPI

from booking_assistant.api.webhooks import router as webhooks_router
from booking_assistant.core.config import settings
from booking_assistant.core.logging_setup import configure_logging

configure_logging(settings.LOG_LEVEL)

app = FastAPI(title="WhatsApp Booking Assistant", version="1.0.0")

app.include_router(webhooks_router, tags=["webhooks"])


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
