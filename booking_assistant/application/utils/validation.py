from __future__ import annotations

import re
from datetime import datetime
from zoneinfo import ZoneInfo

MIN_NAME_LENGTH = 3
RESET_COMMAND = "/reset"

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def is_reset_command(text: str) -> bool:
    return (text or "").strip().lower() == RESET_COMMAND


def normalize_name(text: str) -> str | None:
    """
    Validate a name answer and return it title-cased, or None if it is not a name candidate.
    "  jordan   smith " -> "Jordan Smith"
    """
    words = (text or "").split()
    candidate = " ".join(words)
    if len(candidate) < MIN_NAME_LENGTH:
        return None
    if not any(ch.isalpha() for ch in candidate):
        return None
    return " ".join(word[:1].upper() + word[1:].lower() for word in words)


def is_valid_display_name(name: str | None) -> bool:
    return bool(name) and normalize_name(name) is not None


def normalize_email(text: str) -> str | None:
    candidate = (text or "").strip().lower()
    if not _EMAIL_RE.match(candidate):
        return None
    return candidate


def ensure_aware(value: datetime, timezone: ZoneInfo) -> datetime:
    """Naive datetimes are interpreted in the business timezone."""
    if value.tzinfo is None or value.tzinfo.utcoffset(value) is None:
        return value.replace(tzinfo=timezone)
    return value


def validate_requested_start(value: datetime | None, now: datetime, timezone: ZoneInfo) -> datetime | None:
    """Return the requested start if it is a usable future instant, else None."""
    if value is None:
        return None
    start = ensure_aware(value, timezone).replace(second=0, microsecond=0)
    if start <= now:
        return None
    return start
