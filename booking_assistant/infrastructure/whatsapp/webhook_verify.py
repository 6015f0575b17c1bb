from __future__ import annotations

import hashlib
import hmac
import logging

logger = logging.getLogger(__name__)

SIGNATURE_PREFIX = "sha256="


def verify_subscription(mode: str | None, token: str | None, challenge: str | None, expected_token: str) -> str | None:
    """Return the challenge to echo back when Meta's subscription handshake matches, else None."""
    if mode != "subscribe" or not token or not expected_token:
        return None
    if not hmac.compare_digest(token, expected_token):
        return None
    return challenge or ""


def verify_post_signature(body: bytes, signature_header: str | None, app_secret: str | None, env: str) -> bool:
    """Check X-Hub-Signature-256 against the raw body. Unsigned requests pass only in dev/local."""
    if not signature_header:
        if env.lower() in {"dev", "local"}:
            logger.warning("Missing signature header; accepting in dev mode")
            return True
        return False

    if not app_secret:
        logger.error("Missing app secret for signature verification")
        return False

    if not signature_header.lower().startswith(SIGNATURE_PREFIX):
        return False

    received = signature_header[len(SIGNATURE_PREFIX):]
    expected = hmac.new(app_secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, received)
