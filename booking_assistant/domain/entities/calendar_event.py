from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class AvailabilityStatus(str, Enum):
    FREE = "free"
    BUSY = "busy"
    ERROR = "error"


@dataclass(frozen=True)
class CalendarEvent:
    id: str
    start: datetime | None
    end: datetime | None
    status: str = "confirmed"  # "confirmed", "tentative", "cancelled"
    transparency: str = "opaque"  # "opaque" blocks time, "transparent" shows as free
    summary: str | None = None


@dataclass(frozen=True)
class AvailabilityResult:
    status: AvailabilityStatus
    detail: str | None = None
    conflicts: tuple[str, ...] = ()

    @property
    def is_free(self) -> bool:
        return self.status == AvailabilityStatus.FREE


class DeleteOutcome(str, Enum):
    DELETED = "deleted"
    NOT_FOUND = "not_found"
