from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Union


class IntentKind(str, Enum):
    BOOKING = "booking"
    CHECK = "check"
    CANCEL = "cancel"
    RESCHEDULE = "reschedule"
    CHAT = "chat"


@dataclass(frozen=True)
class BookingIntent:
    reply_text: str
    date: datetime | None = None
    human_readable_date: str | None = None
    kind: IntentKind = IntentKind.BOOKING


@dataclass(frozen=True)
class CheckIntent:
    reply_text: str
    kind: IntentKind = IntentKind.CHECK


@dataclass(frozen=True)
class CancelIntent:
    reply_text: str
    kind: IntentKind = IntentKind.CANCEL


@dataclass(frozen=True)
class RescheduleIntent:
    reply_text: str
    date: datetime | None = None
    human_readable_date: str | None = None
    kind: IntentKind = IntentKind.RESCHEDULE


@dataclass(frozen=True)
class ChatIntent:
    reply_text: str
    fallback: bool = False
    kind: IntentKind = IntentKind.CHAT


ResolvedIntent = Union[BookingIntent, CheckIntent, CancelIntent, RescheduleIntent, ChatIntent]
